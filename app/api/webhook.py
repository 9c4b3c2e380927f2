"""
app/api/webhook.py

Purpose: WhatsApp webhook endpoints

- GET: subscription verification handshake
- POST: signature gate, payload extraction, dispatch
- Always acknowledges 200 unless something unexpected breaks (500)
"""

import json

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from app.core.config import settings
from app.core.logging import LogContext, get_logger
from app.core.security import verify_webhook_signature
from app.flow.dispatcher import get_dispatcher
from app.schemas.response import ErrorResponse, WebhookAck
from app.schemas.webhook import extract_message
from utils.whatsapp_utils import preview

logger = get_logger(__name__)
router = APIRouter()


def _query_param(request: Request, name: str):
    params = request.query_params
    return params.get(f"hub.{name}") or params.get(name)


@router.get("/webhook")
async def webhook_verification(request: Request):
    """
    Webhook verification handshake.

    GET /webhook?hub.mode=subscribe&hub.verify_token=TOKEN&hub.challenge=CHALLENGE
    (plain mode / token / challenge parameters are accepted too)
    """
    mode = _query_param(request, "mode")
    token = _query_param(request, "verify_token") or _query_param(request, "token")
    challenge = _query_param(request, "challenge")

    logger.info(
        f"Webhook verification request: mode={mode}, "
        f"token={'present' if token else 'missing'}, challenge={'present' if challenge else 'missing'}"
    )

    if not mode or not token or not challenge:
        logger.warning("Webhook verification failed - missing parameters")
        return PlainTextResponse("Bad Request", status_code=400)

    if mode == "subscribe" and settings.VERIFY_TOKEN and token == settings.VERIFY_TOKEN:
        logger.info("Webhook verified successfully")
        return PlainTextResponse(challenge, status_code=200)

    logger.warning("Webhook verification failed - invalid token or mode")
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("/webhook", response_model=WebhookAck)
async def webhook_handler(request: Request):
    """
    Inbound message webhook.

    Supports WaSender events and WhatsApp Cloud API payloads.
    """
    body = await request.body()
    verify_webhook_signature(body, request.headers.get(settings.WEBHOOK_SIGNATURE_HEADER))

    try:
        payload = json.loads(body or b"null")
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="Invalid webhook payload", code="INVALID_PAYLOAD").model_dump(),
        )

    try:
        message = extract_message(payload)
        if message is None:
            return WebhookAck(action="ignored")

        with LogContext(provider=message.provider):
            logger.info(
                f"📱 {message.provider} message from {message.sender}: {preview(message.text)}"
            )
            result = await get_dispatcher().dispatch(message.sender, message.text)
        return WebhookAck(action=result.action.value)

    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)
        error = "An internal error occurred." if settings.is_production else str(e)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=error, code="INTERNAL_ERROR").model_dump(),
        )
