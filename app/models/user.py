"""
app/models/user.py

Purpose: User record models

- Settings (timezone, calendar id)
- Profile collected during onboarding
- Calendar link credential
- Persisted onboarding progress
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field

from app.flow.states import OnboardingState


class UserSettings(BaseModel):
    timezone: str
    calendar_id: str


class UserProfile(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""

    @property
    def is_complete(self) -> bool:
        """Onboarding is complete once name and email are both present."""
        return bool(self.name and self.email)


class CalendarLink(BaseModel):
    refresh_token: str
    access_token: Optional[str] = None


class OnboardingRecord(BaseModel):
    """
    Onboarding progress as stored under onboarding:<uid>.
    """
    state: OnboardingState = OnboardingState.DONE
    data: Dict[str, str] = Field(default_factory=dict)

    @property
    def in_progress(self) -> bool:
        return self.state != OnboardingState.DONE
