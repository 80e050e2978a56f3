from fastapi import APIRouter

from api.routes.admin import router as admin_router
from api.routes.system import router as system_router
from api.routes.telegram import router as telegram_router

api_router = APIRouter()

api_router.include_router(system_router)
api_router.include_router(telegram_router)
api_router.include_router(admin_router)
