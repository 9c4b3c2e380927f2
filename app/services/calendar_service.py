"""
app/services/calendar_service.py

Purpose: Google Calendar lookup

- Builds per-user credentials from the stored refresh token
- Lists today's events in the user's timezone and calendar
- Runs the blocking Google client in a worker thread
- Converts every Google/transport failure into CalendarLookupFailed
"""

import asyncio
from typing import Callable, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from pydantic import BaseModel

from app.core.config import settings
from app.core.exceptions import CalendarLookupFailed, CalendarNotLinked
from app.core.logging import get_logger, LogContext
from app.services.user_service import UserService
from utils.constants import AGENDA_LINE, NO_TITLE_LABEL
from utils.time_utils import day_window, format_event_time
from utils.validation_utils import validate_timezone

logger = get_logger(__name__)

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
CALENDAR_SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly",
    "https://www.googleapis.com/auth/calendar.events",
]


class CalendarEvent(BaseModel):
    start: str  # RFC3339 dateTime, or YYYY-MM-DD for all-day events
    summary: str

    def to_line(self) -> str:
        return AGENDA_LINE.format(time=format_event_time(self.start), summary=self.summary)


def build_calendar_client(credentials: Credentials):
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


class CalendarService:
    """Reads today's events for a linked user."""

    def __init__(
        self,
        users: Optional[UserService] = None,
        client_factory: Callable = build_calendar_client,
    ):
        self.users = users or UserService()
        self._client_factory = client_factory

    def _credentials(self, refresh_token: str, access_token: Optional[str]) -> Credentials:
        return Credentials(
            token=access_token,
            refresh_token=refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            scopes=CALENDAR_SCOPES,
        )

    def _list_events(self, credentials: Credentials, calendar_id: str, tz: str) -> List[dict]:
        start, end = day_window(tz)
        service = self._client_factory(credentials)
        result = (
            service.events()
            .list(
                calendarId=calendar_id,
                timeMin=start.isoformat(),
                timeMax=end.isoformat(),
                singleEvents=True,
                orderBy="startTime",
                timeZone=tz,
            )
            .execute()
        )
        return result.get("items", []) or []

    async def list_events_for_today(
        self,
        uid: str,
        timezone: Optional[str] = None,
        calendar_id: Optional[str] = None,
    ) -> List[CalendarEvent]:
        """
        Lists today's events in the order Google returns them (by start time).

        Args:
            uid: User id
            timezone: IANA timezone of "today"; read from settings when omitted
            calendar_id: Calendar to read; read from settings when omitted

        Raises:
            CalendarNotLinked: no stored refresh token
            CalendarLookupFailed: any other failure
        """
        with LogContext(uid=uid):
            link = await self.users.get_calendar_link(uid)
            if link is None:
                raise CalendarNotLinked()

            if timezone is None or calendar_id is None:
                user_settings = await self.users.get_settings(uid)
                timezone = timezone or user_settings.timezone
                calendar_id = calendar_id or user_settings.calendar_id

            if not validate_timezone(timezone):
                raise CalendarLookupFailed(f"Unknown timezone: {timezone}")

            credentials = self._credentials(link.refresh_token, link.access_token)
            try:
                items = await asyncio.to_thread(
                    self._list_events, credentials, calendar_id, timezone
                )
            except Exception as e:
                logger.error(f"Calendar lookup failed: {type(e).__name__}: {e}")
                raise CalendarLookupFailed(f"Calendar lookup failed: {e}") from e

            if credentials.token and credentials.token != link.access_token:
                await self.users.update_access_token(uid, credentials.token)

            events = [
                CalendarEvent(
                    start=(item.get("start") or {}).get("dateTime")
                    or (item.get("start") or {}).get("date")
                    or "",
                    summary=item.get("summary") or NO_TITLE_LABEL,
                )
                for item in items
            ]
            logger.info(f"Fetched {len(events)} events for today")
            return events


_calendar_service: Optional[CalendarService] = None


def get_calendar_service() -> CalendarService:
    global _calendar_service
    if _calendar_service is None:
        _calendar_service = CalendarService()
    return _calendar_service
