"""
app/flow/onboarding.py

Handles: profile collection dialog

- ASK_NAME -> ASK_EMAIL -> ASK_PHONE -> DONE
- Progress is persisted in the store under onboarding:<uid>
- On completion the profile is written to the user directory
"""

import json
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.logging import get_logger, LogContext
from app.db.store import Store, get_store
from app.flow.states import NEXT_STATE, OnboardingState, get_state_metadata, is_valid_transition
from app.models.user import OnboardingRecord, UserProfile
from app.services.user_service import UserService
from utils.constants import (
    ASK_EMAIL_MESSAGE,
    ASK_PHONE_MESSAGE,
    INVALID_EMAIL_MESSAGE,
    INVALID_NAME_MESSAGE,
    ONBOARDING_COMPLETE_MESSAGE,
    ONBOARDING_KEY,
    ONBOARDING_WELCOME_MESSAGE,
)
from utils.validation_utils import parse_optional_phone, validate_email, validate_name

logger = get_logger(__name__)


class OnboardingFlow:
    """
    Onboarding state machine. Each call is a read-modify-write of a single
    store key; concurrent duplicate deliveries resolve as last-writer-wins.
    """

    def __init__(self, store: Optional[Store] = None, users: Optional[UserService] = None):
        self._store = store
        self.users = users or UserService(store)

    @property
    def store(self) -> Store:
        return self._store or get_store()

    async def current_state(self, uid: str) -> OnboardingRecord:
        """
        Reads persisted progress. Missing or unreadable records mean DONE.
        """
        raw = await self.store.get(ONBOARDING_KEY.format(uid=uid))
        if not raw:
            return OnboardingRecord()
        try:
            return OnboardingRecord(**json.loads(raw))
        except (ValueError, TypeError, PydanticValidationError) as e:
            logger.error(f"Failed to parse onboarding state: {e}", extra={"uid": uid})
            return OnboardingRecord()

    async def _save(self, uid: str, record: OnboardingRecord):
        await self.store.set(
            ONBOARDING_KEY.format(uid=uid),
            json.dumps({"state": record.state.value, "data": record.data}),
        )
        logger.info(
            "Onboarding state updated",
            extra={"uid": uid, "state": record.state.value}
        )

    async def start(self, uid: str) -> str:
        """
        Force-restarts onboarding at ASK_NAME, discarding collected fields.

        Returns:
            Welcome prompt
        """
        with LogContext(uid=uid, state=OnboardingState.ASK_NAME.value):
            await self._save(uid, OnboardingRecord(state=OnboardingState.ASK_NAME))
            logger.info("Onboarding started")
            return ONBOARDING_WELCOME_MESSAGE

    async def advance(self, uid: str, text: str) -> Optional[str]:
        """
        Feeds one user message to the current step.

        Returns:
            None if the user is not onboarding (caller handles the message),
            otherwise the re-prompt or next prompt
        """
        record = await self.current_state(uid)
        if record.state == OnboardingState.DONE:
            return None

        value = (text or "").strip()

        with LogContext(uid=uid, state=record.state.value):
            if record.state == OnboardingState.ASK_NAME:
                if not validate_name(value):
                    logger.info("Rejected name input")
                    return INVALID_NAME_MESSAGE
                await self._transition(uid, record, value)
                return ASK_EMAIL_MESSAGE.format(name=value)

            if record.state == OnboardingState.ASK_EMAIL:
                if not validate_email(value):
                    logger.info("Rejected email input")
                    return INVALID_EMAIL_MESSAGE
                await self._transition(uid, record, value)
                return ASK_PHONE_MESSAGE

            # ASK_PHONE: anything is accepted
            profile = UserProfile(
                name=record.data.get("name", ""),
                email=record.data.get("email", ""),
                phone=parse_optional_phone(value),
            )
            await self.users.save_profile(uid, profile)
            await self._save(uid, OnboardingRecord(state=OnboardingState.DONE))
            logger.info("User onboarding completed")
            return ONBOARDING_COMPLETE_MESSAGE.format(name=profile.name)

    async def _transition(self, uid: str, record: OnboardingRecord, value: str):
        field = get_state_metadata(record.state).field
        next_state = NEXT_STATE[record.state]
        if not is_valid_transition(record.state, next_state):
            raise ValueError(f"Invalid onboarding transition: {record.state} -> {next_state}")
        await self._save(
            uid,
            OnboardingRecord(state=next_state, data={**record.data, field: value}),
        )

    async def is_in_onboarding(self, uid: str) -> bool:
        return (await self.current_state(uid)).in_progress
