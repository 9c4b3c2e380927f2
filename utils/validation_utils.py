"""
utils/validation_utils.py

Purpose: Input validation

- Onboarding field rules (name, email, phone)
- Timezone name validation
- Input sanitization
"""

import re
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.constants import SKIP_TOKEN

# Non-space, one "@", a dot in the domain part
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

MIN_NAME_LENGTH = 2


def validate_name(name: Optional[str]) -> bool:
    """
    A name is valid when it has at least 2 characters after trimming.
    """
    return len((name or "").strip()) >= MIN_NAME_LENGTH


def validate_email(email: Optional[str]) -> bool:
    """
    Validates an email with a simple pattern (not full RFC 5322).

    Example:
        validate_email("jo@x.com")      -> True
        validate_email("not-an-email")  -> False
    """
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def parse_optional_phone(text: Optional[str]) -> str:
    """
    Phone is optional: anything is accepted, "skip" means empty.
    """
    value = (text or "").strip()
    if value.lower() == SKIP_TOKEN:
        return ""
    return value


def validate_timezone(name: Optional[str]) -> bool:
    """
    Checks that name is a known IANA timezone.
    """
    if not name or not name.strip():
        return False
    try:
        ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def sanitize_input(text: Optional[str], max_length: int = 1000) -> str:
    """
    Trims whitespace, strips control characters and bounds the length.
    """
    if not text:
        return ""
    cleaned = "".join(ch for ch in text if ch.isprintable() or ch in "\n\t")
    return cleaned.strip()[:max_length]
