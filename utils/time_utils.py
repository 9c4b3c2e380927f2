"""
utils/time_utils.py

Purpose: Time helpers

- Day window in a user's timezone
- Event start formatting for the agenda
- Epoch timestamps for rate limiting
"""

import time
from datetime import datetime, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

from utils.constants import ALL_DAY_LABEL


def now_ts() -> float:
    """Current epoch time in seconds."""
    return time.time()


def day_window(tz_name: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Returns (start, end) of the current local day in tz_name as aware datetimes.
    """
    tz = ZoneInfo(tz_name)
    current = now.astimezone(tz) if now else datetime.now(tz)
    start = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def format_event_time(start: Optional[str]) -> str:
    """
    Formats an event start for the agenda.

    "2026-10-19T09:30:00+01:00" -> "09:30"
    "2026-10-19"                -> "All-day"
    """
    if not start or "T" not in start:
        return ALL_DAY_LABEL
    hhmm = start.split("T", 1)[1][:5]
    return hhmm if len(hhmm) == 5 else ALL_DAY_LABEL
