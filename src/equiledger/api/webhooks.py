"""Inbound chat webhooks for WhatsApp (Twilio) and Telegram."""

from typing import Any

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/webhooks")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.post("/whatsapp")
async def whatsapp_webhook(request: Request):
    """Answer a WhatsApp message relayed by Twilio."""
    state = request.app.state
    try:
        form = await request.form()
        params = {key: str(value) for key, value in form.items()}
        signature = request.headers.get("X-Twilio-Signature", "")

        if not state.whatsapp.validate_signature(str(request.url), params, signature):
            logger.warning("twilio_signature_invalid")
            return _error("Unauthorized", 401)

        sender, text = params.get("From"), params.get("Body")
        if not sender or not text:
            return _error("Missing required fields", 400)

        reply = await state.router.handle("whatsapp", sender, text)
        message_id = await state.whatsapp.send_message(sender, reply.text)
        return {"success": True, "messageId": message_id, "responseText": reply.text}
    except Exception:
        logger.exception("whatsapp_webhook_error")
        return _error("Internal server error", 500)


@router.get("/whatsapp")
async def whatsapp_verify(request: Request):
    return {"challenge": request.query_params.get("hub.challenge")}


@router.post("/telegram")
async def telegram_webhook(request: Request):
    """Answer a Telegram update delivered by the Bot API."""
    state = request.app.state
    try:
        secret = request.headers.get("X-Telegram-Bot-Api-Secret-Token")
        if not state.telegram.verify_secret_token(secret):
            logger.warning("telegram_secret_invalid")
            return _error("Unauthorized", 401)

        update: dict[str, Any] = await request.json()
        message = update.get("message") if isinstance(update, dict) else None
        if not message:
            return _error("Invalid payload", 400)

        text = message.get("text")
        if not text:
            return {"ok": True}

        telegram_id = str(message["from"]["id"])
        reply = await state.router.handle("telegram", telegram_id, text)
        await state.telegram.send_message(message["chat"]["id"], reply.text)
        return {"ok": True}
    except Exception:
        logger.exception("telegram_webhook_error")
        return _error("Internal server error", 500)
