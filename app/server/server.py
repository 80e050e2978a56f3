from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.dependencies.rate_limits import get_limiter, setup_rate_limiter
from api.router import api_router
from infrastructure.services import get_settings
from server.lifespan import lifespan

settings = get_settings()

handler = FastAPI(title="Telegram Bot Engine", lifespan=lifespan)
setup_rate_limiter(handler)
limiter = get_limiter()

handler.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_production else settings.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

handler.include_router(api_router)
