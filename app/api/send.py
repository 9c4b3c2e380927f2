"""
app/api/send.py

Purpose: Manual send endpoint (operations / testing)

POST /send {"to": "+2348012345678", "text": "Hello"}
"""

from fastapi import APIRouter

from app.core.logging import get_logger
from app.schemas.response import SendRequest, SendResponse
from app.services.whatsapp_service import get_whatsapp_service
from utils.whatsapp_utils import preview

logger = get_logger(__name__)
router = APIRouter()


@router.post("/send", response_model=SendResponse)
async def send_message(request: SendRequest):
    """
    Sends a message through the delivery client.
    RateLimited (429) and DeliveryFailed (502) are rendered by the error handlers.
    """
    logger.info(f"Send message request to {request.to}: {preview(request.text)}")

    result = await get_whatsapp_service().send_text(request.to, request.text)

    return SendResponse(
        success=True,
        message="Message sent successfully",
        to=request.to,
        result=result,
    )
