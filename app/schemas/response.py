from pydantic import BaseModel, Field
from typing import Optional, Any


class ErrorResponse(BaseModel):
    """
    Standard error response structure.
    """
    error: str
    code: str
    details: Optional[Any] = None


class WebhookAck(BaseModel):
    status: str = "ok"
    action: Optional[str] = None


class SendRequest(BaseModel):
    to: str = Field(..., min_length=1, description="Recipient phone number")
    text: str = Field(..., min_length=1, description="Message text")


class SendResponse(BaseModel):
    success: bool
    message: str
    to: str
    result: Optional[Any] = None
