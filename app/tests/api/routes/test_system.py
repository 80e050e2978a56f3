from fastapi.testclient import TestClient

from api.routes.system import router as system_router
from infrastructure.configuration import Settings
from utils.tests import create_test_app


def test_get_version_unknown(engine):
    client = TestClient(create_test_app(system_router, engine=engine))

    response = client.get("/version")

    assert response.status_code == 200
    assert response.json() == {"version": "Unknown"}


def test_get_version_known(engine):
    settings = Settings(GIT_SHA="foo")
    app = create_test_app(system_router, engine=engine, settings=settings)

    response = TestClient(app).get("/version")

    assert response.json() == {"version": "foo"}


def test_health_reports_queue_stats(engine):
    engine.notify(1, "hello")
    client = TestClient(create_test_app(system_router, engine=engine))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "delivery_queue": {
            "active_records": 1,
            "claimed_records": 0,
            "dlq_records": 0,
        },
    }
