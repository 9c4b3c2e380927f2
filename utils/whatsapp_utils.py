"""
utils/whatsapp_utils.py

Purpose: WhatsApp identifier helpers

- Recipient normalization for the WaSender API
- JID parsing for inbound WaSender events
- Log-safe message previews
"""

from typing import Optional

USER_JID_SUFFIXES = ("@s.whatsapp.net", "@c.us")
GROUP_JID_SUFFIX = "@g.us"


def normalize_recipient(to: str) -> str:
    """
    Strips surrounding whitespace and a leading "+" (WaSender expects bare digits).

    Example:
        normalize_recipient("+2348012345678") -> "2348012345678"
    """
    value = (to or "").strip()
    if value.startswith("+"):
        value = value[1:]
    return value


def jid_to_uid(jid: Optional[str]) -> Optional[str]:
    """
    Converts a WhatsApp JID to a user id.

    "2348012345678@s.whatsapp.net" -> "2348012345678"
    Group JIDs and empty values return None.
    """
    if not jid:
        return None
    jid = jid.strip()
    if jid.endswith(GROUP_JID_SUFFIX):
        return None
    for suffix in USER_JID_SUFFIXES:
        if jid.endswith(suffix):
            jid = jid[: -len(suffix)]
            break
    # Device suffix, e.g. "2348012345678:12"
    jid = jid.split(":", 1)[0]
    return jid or None


def preview(text: Optional[str], limit: int = 50) -> str:
    """Shortens text for logging."""
    text = text or ""
    return text[:limit] + ("..." if len(text) > limit else "")
