"""Shared test fixtures for the assistant test suite."""

import os
from typing import List, Optional

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE app modules are imported."""
    os.environ.setdefault("ENVIRONMENT", "development")
    os.environ.setdefault("STORE_BACKEND", "memory")
    os.environ.setdefault("VERIFY_TOKEN", "test-verify-token")
    os.environ.setdefault("WEBHOOK_SECRET", "test-webhook-secret")
    os.environ.setdefault("WASENDER_API_KEY", "test-wasender-key")


class FakeWhatsApp:
    """Records outbound messages instead of calling WaSender."""

    def __init__(self, error: Optional[Exception] = None):
        self.sent: List[tuple] = []
        self.error = error

    async def send_text(self, to, text):
        if self.error is not None:
            raise self.error
        self.sent.append((to, text))
        return {"success": True}

    @property
    def texts(self):
        return [text for _, text in self.sent]


class FakeCalendar:
    def __init__(self, events=None, error: Optional[Exception] = None):
        self.events = events or []
        self.error = error
        self.calls: List[dict] = []

    async def list_events_for_today(self, uid, timezone=None, calendar_id=None):
        self.calls.append({"uid": uid, "timezone": timezone, "calendar_id": calendar_id})
        if self.error is not None:
            raise self.error
        return self.events


class FakeOAuth:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.requested: List[str] = []

    def get_authorization_url(self, uid):
        if self.error is not None:
            raise self.error
        self.requested.append(uid)
        return f"https://auth.example/consent?state={uid}"


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def store():
    from app.db.store import MemoryStore, set_store
    from app.flow.dispatcher import reset_dispatcher

    memory = MemoryStore()
    set_store(memory)
    yield memory
    set_store(None)
    reset_dispatcher()


@pytest.fixture
def users(store):
    from app.services.user_service import UserService
    return UserService(store)


@pytest.fixture
def onboarding(store, users):
    from app.flow.onboarding import OnboardingFlow
    return OnboardingFlow(store=store, users=users)


@pytest.fixture
def whatsapp():
    return FakeWhatsApp()


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def oauth():
    return FakeOAuth()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher(users, onboarding, whatsapp, calendar, oauth, clock):
    from app.flow.dispatcher import Dispatcher
    return Dispatcher(
        users=users,
        onboarding=onboarding,
        whatsapp=whatsapp,
        calendar=calendar,
        oauth=oauth,
        clock=clock,
        min_interval=65,
    )
