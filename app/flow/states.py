"""
app/flow/states.py

Purpose: Defines the onboarding conversation states

- ASK_NAME -> ASK_EMAIL -> ASK_PHONE -> DONE
- DONE is both the resting state (never started / finished) and terminal
- State transition validation
- Metadata for each state (field collected)
"""

from enum import Enum
from typing import Dict, List, Optional
from dataclasses import dataclass


class OnboardingState(str, Enum):
    """
    Each state names the profile field the assistant is waiting for.
    """

    ASK_NAME = "ask_name"
    ASK_EMAIL = "ask_email"
    ASK_PHONE = "ask_phone"
    DONE = "done"


@dataclass
class StateMetadata:
    """
    Metadata associated with each onboarding state.
    """
    name: OnboardingState
    field: Optional[str] = None  # Profile field collected in this state


STATE_METADATA: Dict[OnboardingState, StateMetadata] = {
    OnboardingState.ASK_NAME: StateMetadata(name=OnboardingState.ASK_NAME, field="name"),
    OnboardingState.ASK_EMAIL: StateMetadata(name=OnboardingState.ASK_EMAIL, field="email"),
    OnboardingState.ASK_PHONE: StateMetadata(name=OnboardingState.ASK_PHONE, field="phone"),
    OnboardingState.DONE: StateMetadata(name=OnboardingState.DONE),
}


# Valid state transitions. Re-prompting keeps the same state.
STATE_TRANSITIONS: Dict[OnboardingState, List[OnboardingState]] = {
    OnboardingState.DONE: [
        OnboardingState.ASK_NAME,
        OnboardingState.DONE,
    ],
    OnboardingState.ASK_NAME: [
        OnboardingState.ASK_EMAIL,
        OnboardingState.ASK_NAME,
    ],
    OnboardingState.ASK_EMAIL: [
        OnboardingState.ASK_PHONE,
        OnboardingState.ASK_EMAIL,
    ],
    OnboardingState.ASK_PHONE: [
        OnboardingState.DONE,
    ],
}

NEXT_STATE: Dict[OnboardingState, OnboardingState] = {
    OnboardingState.ASK_NAME: OnboardingState.ASK_EMAIL,
    OnboardingState.ASK_EMAIL: OnboardingState.ASK_PHONE,
    OnboardingState.ASK_PHONE: OnboardingState.DONE,
}


def is_valid_transition(from_state: OnboardingState, to_state: OnboardingState) -> bool:
    """
    Checks if a state transition is valid.

    A forced restart (start()) is always allowed and bypasses this check.
    """
    return to_state in STATE_TRANSITIONS.get(from_state, [])


def get_state_metadata(state: OnboardingState) -> StateMetadata:
    return STATE_METADATA.get(state, StateMetadata(name=state))
