"""
app/services/user_service.py

Purpose: User directory

- Lazy, idempotent registration on first inbound message
- Settings (timezone, calendar id) with process defaults
- Profile written at the end of onboarding
- Calendar link credential (its presence means "connected")
- Last-send timestamp used by the dispatcher's rate limit
"""

from typing import List, Optional

from app.core.config import settings
from app.core.logging import get_logger, LogContext
from app.db.store import Store, get_store
from app.models.user import CalendarLink, UserProfile, UserSettings
from utils.constants import (
    GCAL_KEY,
    LAST_SEND_KEY,
    PROFILE_KEY,
    SETTINGS_KEY,
    USERS_SET_KEY,
)

logger = get_logger(__name__)

PROFILE_FIELDS = ("name", "email", "phone")


class UserService:
    """
    Store-backed user directory. Every method is a single-key read or write.
    """

    def __init__(self, store: Optional[Store] = None):
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or get_store()

    async def register_if_new(self, uid: str) -> bool:
        """
        Adds the user to the known-users set on first sight and writes
        default settings for fields not already present.

        Returns:
            True if the user was newly registered
        """
        with LogContext(uid=uid):
            if await self.store.sismember(USERS_SET_KEY, uid):
                return False

            added = await self.store.sadd(USERS_SET_KEY, uid)

            key = SETTINGS_KEY.format(uid=uid)
            if not await self.store.hget(key, "tz"):
                await self.store.hset(key, "tz", settings.DEFAULT_TIMEZONE)
            if not await self.store.hget(key, "calendarId"):
                await self.store.hset(key, "calendarId", settings.DEFAULT_CALENDAR_ID)

            if added:
                logger.info("New user registered")
            return added

    async def list_users(self) -> List[str]:
        return await self.store.smembers(USERS_SET_KEY)

    async def get_settings(self, uid: str) -> UserSettings:
        stored = await self.store.hgetall(SETTINGS_KEY.format(uid=uid))
        return UserSettings(
            timezone=stored.get("tz") or settings.DEFAULT_TIMEZONE,
            calendar_id=stored.get("calendarId") or settings.DEFAULT_CALENDAR_ID,
        )

    async def set_settings(
        self,
        uid: str,
        timezone: Optional[str] = None,
        calendar_id: Optional[str] = None,
    ) -> UserSettings:
        """
        Partial update: only non-blank values are written.

        Returns:
            Settings as stored after the update
        """
        key = SETTINGS_KEY.format(uid=uid)
        if timezone and timezone.strip():
            await self.store.hset(key, "tz", timezone.strip())
        if calendar_id and calendar_id.strip():
            await self.store.hset(key, "calendarId", calendar_id.strip())

        updated = await self.get_settings(uid)
        logger.info(
            f"Settings updated: tz={updated.timezone}, calendarId={updated.calendar_id}",
            extra={"uid": uid}
        )
        return updated

    async def get_profile(self, uid: str) -> Optional[UserProfile]:
        stored = await self.store.hgetall(PROFILE_KEY.format(uid=uid))
        if not stored:
            return None
        return UserProfile(**{f: stored.get(f, "") for f in PROFILE_FIELDS})

    async def save_profile(self, uid: str, profile: UserProfile):
        """
        Writes every profile field; a skipped phone is stored as "".
        """
        key = PROFILE_KEY.format(uid=uid)
        for field in PROFILE_FIELDS:
            await self.store.hset(key, field, getattr(profile, field))
        logger.info("Profile saved", extra={"uid": uid})

    async def has_completed_onboarding(self, uid: str) -> bool:
        profile = await self.get_profile(uid)
        return bool(profile and profile.is_complete)

    async def has_calendar_linked(self, uid: str) -> bool:
        return bool(await self.store.hget(GCAL_KEY.format(uid=uid), "refresh_token"))

    async def get_calendar_link(self, uid: str) -> Optional[CalendarLink]:
        stored = await self.store.hgetall(GCAL_KEY.format(uid=uid))
        if not stored.get("refresh_token"):
            return None
        return CalendarLink(
            refresh_token=stored["refresh_token"],
            access_token=stored.get("access_token"),
        )

    async def save_calendar_link(self, uid: str, refresh_token: str, access_token: Optional[str] = None):
        key = GCAL_KEY.format(uid=uid)
        await self.store.hset(key, "refresh_token", refresh_token)
        if access_token:
            await self.store.hset(key, "access_token", access_token)
        logger.info("Calendar link stored", extra={"uid": uid})

    async def update_access_token(self, uid: str, access_token: str):
        await self.store.hset(GCAL_KEY.format(uid=uid), "access_token", access_token)

    async def get_last_send(self, uid: str) -> Optional[float]:
        raw = await self.store.get(LAST_SEND_KEY.format(uid=uid))
        if raw is None:
            return None
        try:
            return float(raw)
        except ValueError:
            logger.warning(f"Ignoring corrupt last-send value: {raw!r}", extra={"uid": uid})
            return None

    async def set_last_send(self, uid: str, timestamp: float):
        await self.store.set(LAST_SEND_KEY.format(uid=uid), repr(float(timestamp)))
