from fastapi import APIRouter, Request

from api.dependencies.rate_limits import get_limiter
from infrastructure.services import EngineDep, SettingsDep

router = APIRouter(tags=["System"])
limiter = get_limiter()


# Load balancer health checks hit these often; keep the limits generous
@router.get("/version")
@limiter.limit("50/minute")
def get_version(request: Request, settings: SettingsDep):  # pylint: disable=unused-argument
    """Get the version of the application."""
    return {"version": settings.GIT_SHA}


@router.get("/health")
@limiter.limit("50/minute")
def get_health(request: Request, engine: EngineDep):  # pylint: disable=unused-argument
    """Healthcheck endpoint, with delivery queue statistics."""
    stats = getattr(engine.retry_store, "get_stats", None)
    return {"status": "ok", "delivery_queue": stats() if stats else None}
