"""
app/services/whatsapp_service.py

Purpose: WhatsApp message sending via WaSender

- Sends text messages with bearer-token auth
- Retries 5xx / 408 / transport errors with exponential backoff
- Honours provider 429 retry_after, raises RateLimited when attempts run out
- Fails fast on other 4xx
- Retry waits suspend (asyncio.sleep) so other requests keep flowing
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from app.core.config import settings
from app.core.exceptions import DeliveryFailed, RateLimited
from app.core.logging import get_logger
from utils.constants import WASENDER_SEND_PATH, WASENDER_TEST_API_KEY
from utils.whatsapp_utils import normalize_recipient

logger = get_logger(__name__)

RETRYABLE_STATUS = {408}


class WhatsAppService:
    """Service for sending WhatsApp messages via the WaSender API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        *,
        max_attempts: Optional[int] = None,
        base_delay: Optional[float] = None,
        timeout: Optional[float] = None,
        default_retry_after: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.api_key = api_key if api_key is not None else settings.WASENDER_API_KEY
        self.base_url = (base_url or settings.WASENDER_BASE_URL).rstrip("/")
        self.max_attempts = max_attempts or settings.SEND_MAX_ATTEMPTS
        self.base_delay = settings.SEND_BASE_DELAY_SECONDS if base_delay is None else base_delay
        self.timeout = timeout or settings.SEND_TIMEOUT_SECONDS
        self.default_retry_after = default_retry_after or settings.SEND_DEFAULT_RETRY_AFTER_SECONDS
        self._transport = transport
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        """Delay after a failed attempt: base * 2^(attempt-1)."""
        return self.base_delay * (2 ** (attempt - 1))

    def _retry_after(self, response: httpx.Response) -> float:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("retry_after") is not None:
            try:
                return float(body["retry_after"])
            except (TypeError, ValueError):
                pass
        header = response.headers.get("Retry-After")
        if header:
            try:
                return float(header)
            except ValueError:
                pass
        return self.default_retry_after

    async def send_text(self, to: str, text: str) -> Dict[str, Any]:
        """
        Sends a text message.

        Args:
            to: Recipient phone (a leading "+" is stripped)
            text: Message body

        Returns:
            Provider response body

        Raises:
            RateLimited: provider kept answering 429
            DeliveryFailed: permanent error or retries exhausted
        """
        recipient = normalize_recipient(to)
        payload = {"to": recipient, "text": text}

        logger.info(f"📤 Sending message to {recipient} ({len(text)} chars)")

        if self.api_key == WASENDER_TEST_API_KEY:
            logger.info(f"Mock message sent (test mode) to {recipient}")
            return {"success": True, "message": "Mock message sent"}

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        async with httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=self._transport,
        ) as client:
            for attempt in range(1, self.max_attempts + 1):
                last_attempt = attempt == self.max_attempts

                try:
                    response = await client.post(WASENDER_SEND_PATH, json=payload)
                except httpx.TransportError as e:
                    if last_attempt:
                        logger.error(f"❌ WaSender transport error, giving up: {type(e).__name__}")
                        raise DeliveryFailed(
                            f"Failed to send message: {type(e).__name__}: {e}"
                        ) from e
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"WaSender attempt {attempt}/{self.max_attempts} failed "
                        f"({type(e).__name__}). Retrying in {delay:.1f}s"
                    )
                    await self._sleep(delay)
                    continue

                status = response.status_code

                if 200 <= status < 300:
                    logger.info(f"✅ Message sent to {recipient} (attempt {attempt})")
                    try:
                        return response.json()
                    except ValueError:
                        return {"success": True, "status": status}

                if status == 429:
                    retry_after = self._retry_after(response)
                    if last_attempt:
                        logger.error(f"❌ WaSender rate limit persisted, retry after {retry_after:g}s")
                        raise RateLimited(retry_after)
                    logger.warning(
                        f"WaSender rate limited on attempt {attempt}/{self.max_attempts}. "
                        f"Waiting {retry_after:g}s"
                    )
                    await self._sleep(retry_after)
                    continue

                if status >= 500 or status in RETRYABLE_STATUS:
                    if last_attempt:
                        logger.error(f"❌ WaSender error {status}, giving up")
                        raise DeliveryFailed(
                            f"WaSender API error: {status}", status_code=status
                        )
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"WaSender error {status} on attempt {attempt}/{self.max_attempts}. "
                        f"Retrying in {delay:.1f}s"
                    )
                    await self._sleep(delay)
                    continue

                logger.error(f"❌ WaSender API error: {status} - {response.text[:200]}")
                raise DeliveryFailed(f"WaSender API error: {status}", status_code=status)

        # Unreachable: the loop either returns or raises on the last attempt
        raise DeliveryFailed("Message delivery failed")

    def is_configured(self) -> bool:
        """Check if WaSender is properly configured"""
        return bool(self.api_key and self.base_url)


_whatsapp_service: Optional[WhatsAppService] = None


def get_whatsapp_service() -> WhatsAppService:
    """Singleton instance"""
    global _whatsapp_service
    if _whatsapp_service is None:
        _whatsapp_service = WhatsAppService()
    return _whatsapp_service
