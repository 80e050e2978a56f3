from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Header, HTTPException, Request

from api.dependencies.rate_limits import get_limiter, webhook_key_func
from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.services import EngineDep, SettingsDep
from integrations.telegram import TelegramError

logger = get_module_logger()
router = APIRouter(prefix="/telegram", tags=["Telegram"])
limiter = get_limiter()


@router.post("/webhook")
@limiter.limit("120/minute", key_func=webhook_key_func)
def telegram_webhook(
    request: Request,
    engine: EngineDep,
    settings: SettingsDep,
    update: Dict[str, Any] = Body(...),
    x_telegram_bot_api_secret_token: Optional[str] = Header(default=None),
):
    """Receive one Telegram update and hand it to the command gateway.

    When TELEGRAM_WEBHOOK_SECRET is set, the secret Telegram echoes in the
    X-Telegram-Bot-Api-Secret-Token header must match.

    Failing to send the reply is logged and still acknowledged: a non-2xx
    answer would make Telegram redeliver the update and run the command again.
    """
    expected = settings.telegram.TELEGRAM_WEBHOOK_SECRET
    if expected and x_telegram_bot_api_secret_token != expected:
        logger.warning(
            "telegram_webhook_rejected",
            ip_address=request.client.host if request.client else "unknown",
        )
        raise HTTPException(status_code=401, detail="Invalid secret token")

    with bind_request_context(
        request_path=request.url.path,
        request_method=request.method,
        update_id=update.get("update_id"),
    ):
        try:
            engine.gateway.handle_update(update)
        except TelegramError as e:
            logger.error(
                "telegram_reply_failed",
                error=str(e),
                error_code=e.error_code,
            )

    return {"ok": True}
