"""
app/core/security.py

Purpose: Inbound webhook authentication

- HMAC-SHA256 over the raw request body
- Hex digest, optionally prefixed "sha256="
- Fail-closed: when enforcement is on, a missing secret rejects every call
"""

import hashlib
import hmac
from typing import Optional

from app.core.config import Settings, settings
from app.core.exceptions import AuthenticationError
from app.core.logging import get_logger

logger = get_logger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def is_valid_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    if not secret or not signature:
        return False
    signature = signature.strip()
    if signature.lower().startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]
    return hmac.compare_digest(compute_signature(body, secret), signature.lower())


def verify_webhook_signature(body: bytes, signature: Optional[str], config: Optional[Settings] = None):
    """
    Enforces the webhook signature policy.

    Raises:
        AuthenticationError: enforcement is on and the signature is missing,
            wrong, or no secret is configured
    """
    config = config or settings

    if not config.WEBHOOK_SIGNATURE_REQUIRED:
        return

    if not config.WEBHOOK_SECRET:
        logger.error("Webhook signature required but WEBHOOK_SECRET is not set")
        raise AuthenticationError("Webhook signature cannot be verified")

    if not signature:
        logger.warning("Webhook call without signature rejected")
        raise AuthenticationError("Missing webhook signature")

    if not is_valid_signature(body, signature, config.WEBHOOK_SECRET):
        logger.warning("Webhook call with invalid signature rejected")
        raise AuthenticationError("Invalid webhook signature")
