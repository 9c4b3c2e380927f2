"""
app/flow/dispatcher.py

Purpose: Central message dispatcher

- Receives normalized (sender, text) pairs from the webhook
- Registers the sender, gates un-onboarded users into onboarding
- Ignores free text that is not a command
- Enforces the per-user reply interval
- Executes commands and sends the reply via WaSender
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from app.core.config import settings
from app.core.exceptions import CalendarLookupFailed, DeliveryFailed, OAuthError, RateLimited
from app.core.logging import get_logger, LogContext
from app.flow.commands import Command, ParsedCommand, classify, normalize
from app.flow.onboarding import OnboardingFlow
from app.services.calendar_service import CalendarService, get_calendar_service
from app.services.oauth_service import OAuthService, get_oauth_service
from app.services.user_service import UserService
from app.services.whatsapp_service import WhatsAppService, get_whatsapp_service
from utils.constants import (
    AGENDA_EMPTY_MESSAGE,
    AGENDA_FAILED_MESSAGE,
    AGENDA_HEADER,
    AGENDA_NOT_LINKED_MESSAGE,
    CALENDAR_CONNECTED_LABEL,
    CALENDAR_NOT_CONNECTED_LABEL,
    CALENDAR_UPDATED_MESSAGE,
    CONNECT_ALREADY_LINKED_MESSAGE,
    CONNECT_LINK_MESSAGE,
    CONNECT_UNAVAILABLE_MESSAGE,
    GREETING_MESSAGE,
    GREETING_NAMED_MESSAGE,
    HELP_MESSAGE,
    NOT_PROVIDED_LABEL,
    TIMEZONE_UPDATED_MESSAGE,
    UNKNOWN_COMMAND_MESSAGE,
    WHOAMI_MESSAGE,
    WHOAMI_NO_PROFILE_MESSAGE,
)
from utils.time_utils import now_ts
from utils.whatsapp_utils import preview

logger = get_logger(__name__)


class DispatchAction(str, Enum):
    IGNORED = "ignored"
    RATE_LIMITED = "rate_limited"
    REPLIED = "replied"
    SEND_FAILED = "send_failed"
    THROTTLED = "throttled"  # provider 429, reply dropped


@dataclass
class DispatchResult:
    action: DispatchAction
    reply: Optional[str] = None
    command: Optional[str] = None
    is_new_user: bool = False


class Dispatcher:
    """
    Decides what (if anything) to answer for each inbound message.
    Collaborators are injected so each can be replaced in tests.
    """

    def __init__(
        self,
        users: Optional[UserService] = None,
        onboarding: Optional[OnboardingFlow] = None,
        whatsapp: Optional[WhatsAppService] = None,
        calendar: Optional[CalendarService] = None,
        oauth: Optional[OAuthService] = None,
        clock: Callable[[], float] = now_ts,
        min_interval: Optional[float] = None,
    ):
        self.users = users or UserService()
        self.onboarding = onboarding or OnboardingFlow(users=self.users)
        self.whatsapp = whatsapp or get_whatsapp_service()
        self.calendar = calendar or get_calendar_service()
        self.oauth = oauth or get_oauth_service()
        self.clock = clock
        self.min_interval = settings.SEND_MIN_INTERVAL_SECONDS if min_interval is None else min_interval

    async def dispatch(self, uid: str, text: str) -> DispatchResult:
        """
        Handles one inbound message.

        Args:
            uid: Sender id (opaque, trimmed)
            text: Message text

        Returns:
            DispatchResult describing what happened
        """
        uid = (uid or "").strip()
        text = (text or "").strip()
        parsed = classify(text)
        command_name = parsed.command.value if parsed else None

        with LogContext(uid=uid, command=command_name or "-"):
            logger.info(f"📨 Dispatching message: {preview(text)}")

            is_new = await self.users.register_if_new(uid)

            has_onboarded = await self.users.has_completed_onboarding(uid)
            in_onboarding = await self.onboarding.is_in_onboarding(uid)

            # Random chatter from strangers gets no reply
            if not has_onboarded and not in_onboarding and parsed is None:
                logger.info("Ignoring non-command from un-onboarded user")
                return DispatchResult(DispatchAction.IGNORED, is_new_user=is_new)

            # Onboarding has priority over everything except "connect"
            if not has_onboarded and normalize(text) != Command.CONNECT.value:
                if not in_onboarding:
                    reply = await self.onboarding.start(uid)
                else:
                    reply = await self.onboarding.advance(uid, text)
                return await self._reply(uid, reply, command_name, is_new)

            # Re-onboarding after "onboard": free text answers the current step
            if in_onboarding and parsed is None:
                reply = await self.onboarding.advance(uid, text)
                return await self._reply(uid, reply, command_name, is_new)

            if parsed is None:
                logger.info("Ignoring non-command from onboarded user")
                return DispatchResult(DispatchAction.IGNORED, is_new_user=is_new)

            now = self.clock()
            last_send = await self.users.get_last_send(uid)
            if last_send is not None and now - last_send < self.min_interval:
                logger.info(
                    f"Reply suppressed by rate limit ({now - last_send:.1f}s since last send)"
                )
                return DispatchResult(DispatchAction.RATE_LIMITED, command=command_name, is_new_user=is_new)

            # Reserve the slot before the network call
            await self.users.set_last_send(uid, now)

            return await self._execute(uid, parsed, is_new)

    async def _execute(self, uid: str, parsed: ParsedCommand, is_new: bool) -> DispatchResult:
        command = parsed.command

        if command in (Command.HI, Command.HELLO):
            profile = await self.users.get_profile(uid)
            if profile and profile.name:
                reply = GREETING_NAMED_MESSAGE.format(name=profile.name)
            else:
                reply = GREETING_MESSAGE
            return await self._reply(uid, reply, command.value, is_new)

        if command == Command.CONNECT:
            return await self._reply(uid, await self._connect_message(uid), command.value, is_new)

        if command == Command.ONBOARD:
            reply = await self.onboarding.start(uid)
            return await self._reply(uid, reply, command.value, is_new)

        if command == Command.AGENDA:
            return await self._agenda(uid, is_new)

        if command == Command.HELP:
            return await self._reply(uid, HELP_MESSAGE, command.value, is_new)

        if command == Command.WHOAMI:
            return await self._reply(uid, await self._whoami_message(uid), command.value, is_new)

        if command == Command.SET_TZ:
            updated = await self.users.set_settings(uid, timezone=parsed.argument)
            reply = TIMEZONE_UPDATED_MESSAGE.format(tz=updated.timezone)
            return await self._reply(uid, reply, command.value, is_new)

        if command == Command.SET_CALENDAR:
            updated = await self.users.set_settings(uid, calendar_id=parsed.argument)
            reply = CALENDAR_UPDATED_MESSAGE.format(calendar_id=updated.calendar_id)
            return await self._reply(uid, reply, command.value, is_new)

        return await self._reply(uid, UNKNOWN_COMMAND_MESSAGE, command.value, is_new)

    async def _connect_message(self, uid: str) -> str:
        if await self.users.has_calendar_linked(uid):
            return CONNECT_ALREADY_LINKED_MESSAGE
        try:
            url = self.oauth.get_authorization_url(uid)
        except OAuthError as e:
            logger.error(f"Could not build authorization URL: {e.message}")
            return CONNECT_UNAVAILABLE_MESSAGE
        return CONNECT_LINK_MESSAGE.format(url=url)

    async def _whoami_message(self, uid: str) -> str:
        profile = await self.users.get_profile(uid)
        if profile is None:
            return WHOAMI_NO_PROFILE_MESSAGE
        linked = await self.users.has_calendar_linked(uid)
        return WHOAMI_MESSAGE.format(
            name=profile.name or NOT_PROVIDED_LABEL,
            email=profile.email or NOT_PROVIDED_LABEL,
            phone=profile.phone or NOT_PROVIDED_LABEL,
            calendar=CALENDAR_CONNECTED_LABEL if linked else CALENDAR_NOT_CONNECTED_LABEL,
        )

    async def _agenda(self, uid: str, is_new: bool) -> DispatchResult:
        command = Command.AGENDA.value

        if not await self.users.has_calendar_linked(uid):
            return await self._reply(uid, AGENDA_NOT_LINKED_MESSAGE, command, is_new)

        user_settings = await self.users.get_settings(uid)
        try:
            events = await self.calendar.list_events_for_today(
                uid,
                timezone=user_settings.timezone,
                calendar_id=user_settings.calendar_id,
            )
        except CalendarLookupFailed as e:
            logger.error(f"Failed to fetch agenda: {e.message}")
            return await self._reply(uid, AGENDA_FAILED_MESSAGE, command, is_new)

        if not events:
            reply = AGENDA_EMPTY_MESSAGE
        else:
            reply = "\n".join([AGENDA_HEADER] + [event.to_line() for event in events])

        result = await self._reply(uid, reply, command, is_new)
        if result.action == DispatchAction.SEND_FAILED and reply != AGENDA_FAILED_MESSAGE:
            # The agenda itself was refused (e.g. too long); apologise instead.
            # A provider 429 gets no second message.
            return await self._reply(uid, AGENDA_FAILED_MESSAGE, command, is_new)
        logger.info(f"Agenda sent ({len(events)} events)")
        return result

    async def _reply(self, uid: str, text: Optional[str], command: Optional[str], is_new: bool) -> DispatchResult:
        if not text:
            logger.warning("⚠️ Empty reply, nothing sent")
            return DispatchResult(DispatchAction.IGNORED, command=command, is_new_user=is_new)

        return DispatchResult(
            await self._send(uid, text),
            reply=text,
            command=command,
            is_new_user=is_new,
        )

    async def _send(self, uid: str, text: str) -> DispatchAction:
        """
        Sends through WaSender. Delivery errors are logged, never raised:
        the webhook is acknowledged either way.

        Returns:
            REPLIED, THROTTLED (provider 429) or SEND_FAILED
        """
        try:
            await self.whatsapp.send_text(uid, text)
            return DispatchAction.REPLIED
        except RateLimited as e:
            logger.warning(f"Provider rate limit, reply dropped (retry after {e.retry_after_seconds:g}s)")
            return DispatchAction.THROTTLED
        except DeliveryFailed as e:
            logger.error(f"❌ Failed to deliver reply: {e.message}")
            return DispatchAction.SEND_FAILED


_dispatcher: Optional[Dispatcher] = None


def get_dispatcher() -> Dispatcher:
    """Process-wide dispatcher bound to the process store and services."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = Dispatcher()
    return _dispatcher


def reset_dispatcher():
    global _dispatcher
    _dispatcher = None
