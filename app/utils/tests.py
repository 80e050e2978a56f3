from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI
from fastapi.testclient import TestClient

from infrastructure.services.providers import get_engine, get_settings

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from modules.bot_engine.engine import BotEngine


def create_test_app(
    routers,
    engine: Optional["BotEngine"] = None,
    settings: Optional["Settings"] = None,
    middlewares=None,
) -> FastAPI:
    """
    Create a FastAPI test application with the given routers and middlewares.

    Args:
        routers: The router, or list of routers, to include in the app.
        engine: Optional engine served by the EngineDep dependency.
        settings: Optional settings served by the SettingsDep dependency.
        middlewares: Optional list of (middleware_class, config_dict) tuples.

    Returns:
        FastAPI: A configured FastAPI application.

    Example:
        app = create_test_app([admin_router], engine=engine)
    """
    app = FastAPI()

    from api.dependencies.rate_limits import setup_rate_limiter

    setup_rate_limiter(app)

    if middlewares:
        for middleware_class, middleware_config in middlewares:
            app.add_middleware(middleware_class, **middleware_config)

    if not isinstance(routers, list):
        routers = [routers]
    for router in routers:
        app.include_router(router)

    if engine is not None:
        app.dependency_overrides[get_engine] = lambda: engine
    if settings is not None:
        app.dependency_overrides[get_settings] = lambda: settings

    return app


def rate_limiting_helper(
    client: TestClient,
    endpoint: str,
    request_limit: int,
    method: str = "get",
    expected_status: int = 200,
    headers: Optional[dict] = None,
    **request_kwargs,
):
    """
    Helper function to test rate limiting for an endpoint.

    Args:
        client: TestClient wrapping the app under test.
        endpoint: The endpoint to test.
        request_limit: Number of requests allowed before rate limiting.
        method: HTTP method to use (e.g., "get", "post").
        expected_status: Expected status code for requests within the limit.
        headers: Optional headers to include in the requests.
        **request_kwargs: Extra arguments for each request (e.g. json).
    """
    headers = headers or {}
    http_method = getattr(client, method.lower())

    for i in range(request_limit):
        response = http_method(endpoint, headers=headers, **request_kwargs)
        assert (
            response.status_code == expected_status
        ), f"Request {i+1} failed with status {response.status_code}"

    response = http_method(endpoint, headers=headers, **request_kwargs)
    assert response.status_code == 429, "Expected rate limiting to trigger"
    assert response.json() == {"message": "Rate limit exceeded"}
