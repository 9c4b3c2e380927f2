"""
app/schemas/webhook.py

Purpose: Inbound webhook payload schemas and extraction

- WaSender message events (messages.upsert / messages.received)
- WaSender test / ping events (acknowledged, never processed)
- WhatsApp Cloud API payloads (object = whatsapp_business_account)
- One extraction function normalizes all of them into InboundMessage
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from app.core.exceptions import ExtractionEmpty
from app.core.logging import get_logger
from utils.validation_utils import sanitize_input
from utils.whatsapp_utils import jid_to_uid

logger = get_logger(__name__)

WASENDER_MESSAGE_EVENTS = {"messages.upsert", "messages.received", "messages-personal.received"}
WASENDER_PING_EVENTS = {"webhook.test", "test", "ping"}
CLOUD_OBJECT = "whatsapp_business_account"


class InboundMessage(BaseModel):
    """
    Normalized message for internal processing.
    """
    sender: str = Field(..., description="Sender id (phone-number-like, opaque)")
    text: str = Field(..., description="Message text content")
    provider: Literal["wasender", "cloud"] = Field(..., description="Source payload shape")
    message_id: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "sender": "2348012345678",
                "text": "agenda",
                "provider": "wasender",
                "message_id": "3EB0C431C26A1916E07B"
            }
        }
    )


# ── WaSender ─────────────────────────────────────────────────────────

class _Loose(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class WaSenderKey(_Loose):
    remote_jid: Optional[str] = Field(default=None, alias="remoteJid")
    from_me: bool = Field(default=False, alias="fromMe")
    id: Optional[str] = None


class WaSenderExtendedText(_Loose):
    text: Optional[str] = None


class WaSenderMessageContent(_Loose):
    conversation: Optional[str] = None
    extended_text: Optional[WaSenderExtendedText] = Field(default=None, alias="extendedTextMessage")


class WaSenderMessage(_Loose):
    key: WaSenderKey = Field(default_factory=WaSenderKey)
    message_body: Optional[str] = Field(default=None, alias="messageBody")
    message: Optional[WaSenderMessageContent] = None
    remote_jid: Optional[str] = Field(default=None, alias="remoteJid")

    @property
    def text(self) -> str:
        if self.message_body:
            return self.message_body
        if self.message:
            if self.message.conversation:
                return self.message.conversation
            if self.message.extended_text and self.message.extended_text.text:
                return self.message.extended_text.text
        return ""


class WaSenderData(_Loose):
    messages: Union[WaSenderMessage, List[WaSenderMessage], None] = None


class WaSenderEvent(_Loose):
    event: str
    data: Optional[WaSenderData] = None


# ── WhatsApp Cloud API ───────────────────────────────────────────────

class CloudText(_Loose):
    body: str = ""


class CloudMessage(_Loose):
    from_: str = Field(alias="from")
    id: Optional[str] = None
    type: Optional[str] = None
    text: Optional[CloudText] = None


class CloudValue(_Loose):
    messages: List[CloudMessage] = Field(default_factory=list)


class CloudChange(_Loose):
    value: CloudValue = Field(default_factory=CloudValue)


class CloudEntry(_Loose):
    changes: List[CloudChange] = Field(default_factory=list)


class CloudPayload(_Loose):
    object: Literal["whatsapp_business_account"]
    entry: List[CloudEntry] = Field(default_factory=list)


# ── Extraction ───────────────────────────────────────────────────────

def _normalized(sender: Optional[str], text: Optional[str], provider: str,
                message_id: Optional[str]) -> InboundMessage:
    sender = (sender or "").strip()
    text = sanitize_input(text)
    if not sender:
        raise ExtractionEmpty("No sender")
    if not text:
        raise ExtractionEmpty("Empty message text")
    return InboundMessage(sender=sender, text=text, provider=provider, message_id=message_id)


def parse_wasender_event(payload: Dict[str, Any]) -> InboundMessage:
    """
    WaSender format (JSON):
    {
        "event": "messages.upsert",
        "data": {
            "messages": {
                "key": {"remoteJid": "2348012345678@s.whatsapp.net", "fromMe": false, "id": "..."},
                "messageBody": "agenda",
                "message": {"conversation": "agenda"}
            }
        }
    }

    Raises:
        ExtractionEmpty: ping/test events, own messages, groups, empty bodies
    """
    event = WaSenderEvent.model_validate(payload)

    if event.event in WASENDER_PING_EVENTS:
        logger.info(f"WaSender {event.event} event acknowledged")
        raise ExtractionEmpty(f"Ping event: {event.event}")
    if event.event not in WASENDER_MESSAGE_EVENTS or event.data is None:
        raise ExtractionEmpty(f"Unhandled event: {event.event}")

    messages = event.data.messages
    if isinstance(messages, list):
        messages = messages[0] if messages else None
    if messages is None:
        raise ExtractionEmpty("No messages in event")
    if messages.key.from_me:
        raise ExtractionEmpty("Own outbound message")

    sender = jid_to_uid(messages.key.remote_jid or messages.remote_jid)
    return _normalized(sender, messages.text, "wasender", messages.key.id)


def parse_cloud_payload(payload: Dict[str, Any]) -> InboundMessage:
    """
    Cloud API format (JSON):
    {
        "object": "whatsapp_business_account",
        "entry": [{"changes": [{"value": {"messages": [
            {"from": "2348012345678", "id": "wamid...", "type": "text", "text": {"body": "hi"}}
        ]}}]}]
    }

    Raises:
        ExtractionEmpty: status updates and non-text messages
    """
    cloud = CloudPayload.model_validate(payload)
    if not cloud.entry or not cloud.entry[0].changes:
        raise ExtractionEmpty("No changes in payload")
    messages = cloud.entry[0].changes[0].value.messages
    if not messages:
        raise ExtractionEmpty("No messages in change (status update?)")
    message = messages[0]
    text = message.text.body if message.text else ""
    return _normalized(message.from_, text, "cloud", message.id)


def detect_provider(payload: Any) -> Optional[Literal["wasender", "cloud"]]:
    """
    Detects the payload shape.

    Cloud: has object == whatsapp_business_account
    WaSender: has an 'event' field
    """
    if not isinstance(payload, dict):
        return None
    if payload.get("object") == CLOUD_OBJECT:
        return "cloud"
    if isinstance(payload.get("event"), str):
        return "wasender"
    return None


def extract_message(payload: Any) -> Optional[InboundMessage]:
    """
    Resolves any supported payload to a (sender, text) pair.

    Returns:
        InboundMessage, or None when there is nothing to process
    """
    provider = detect_provider(payload)
    if provider is None:
        logger.debug("Unknown webhook payload shape")
        return None

    try:
        if provider == "cloud":
            return parse_cloud_payload(payload)
        return parse_wasender_event(payload)
    except ExtractionEmpty as e:
        logger.debug(f"Nothing to process in {provider} payload: {e.message}")
        return None
    except ValidationError as e:
        logger.warning(f"Malformed {provider} payload: {e.error_count()} validation errors")
        return None
