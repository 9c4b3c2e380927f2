"""Tests for the Google Calendar lookup."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import CalendarLookupFailed, CalendarNotLinked
from app.services.calendar_service import CalendarEvent, CalendarService
from utils.time_utils import day_window, format_event_time

UID = "2348012345678"


def fake_client(items=None, error=None):
    client = MagicMock()
    request = client.events.return_value.list.return_value
    if error is not None:
        request.execute.side_effect = error
    else:
        request.execute.return_value = {"items": items or []}
    return client


@pytest.fixture
def linked(users):
    asyncio.run(users.save_calendar_link(UID, refresh_token="rt", access_token="at"))
    return users


def test_not_linked_raises(users):
    service = CalendarService(users=users, client_factory=lambda creds: fake_client())
    with pytest.raises(CalendarNotLinked):
        asyncio.run(service.list_events_for_today(UID))


def test_lists_events_with_stored_settings(linked):
    client = fake_client(items=[
        {"start": {"dateTime": "2026-10-19T09:00:00-04:00"}, "summary": "Standup"},
        {"start": {"date": "2026-10-19"}},
    ])
    seen = []

    def factory(credentials):
        seen.append(credentials)
        return client

    asyncio.run(linked.set_settings(UID, timezone="America/New_York", calendar_id="team@example.com"))
    service = CalendarService(users=linked, client_factory=factory)

    events = asyncio.run(service.list_events_for_today(UID))

    assert events == [
        CalendarEvent(start="2026-10-19T09:00:00-04:00", summary="Standup"),
        CalendarEvent(start="2026-10-19", summary="(no title)"),
    ]
    assert seen[0].refresh_token == "rt"
    kwargs = client.events.return_value.list.call_args.kwargs
    assert kwargs["calendarId"] == "team@example.com"
    assert kwargs["timeZone"] == "America/New_York"
    assert kwargs["singleEvents"] is True
    assert kwargs["orderBy"] == "startTime"


def test_explicit_timezone_and_calendar_override_settings(linked):
    client = fake_client()
    service = CalendarService(users=linked, client_factory=lambda creds: client)

    asyncio.run(service.list_events_for_today(UID, timezone="Asia/Tokyo", calendar_id="work"))

    kwargs = client.events.return_value.list.call_args.kwargs
    assert kwargs["calendarId"] == "work"
    assert kwargs["timeZone"] == "Asia/Tokyo"
    assert kwargs["timeMin"].endswith("+09:00")


def test_unknown_timezone_fails_lookup(linked):
    client = fake_client()
    service = CalendarService(users=linked, client_factory=lambda creds: client)

    with pytest.raises(CalendarLookupFailed):
        asyncio.run(service.list_events_for_today(UID, timezone="Mars/Olympus", calendar_id="primary"))
    client.events.assert_not_called()


def test_google_errors_become_lookup_failures(linked):
    client = fake_client(error=RuntimeError("invalid_grant"))
    service = CalendarService(users=linked, client_factory=lambda creds: client)

    with pytest.raises(CalendarLookupFailed) as exc_info:
        asyncio.run(service.list_events_for_today(UID))
    assert not isinstance(exc_info.value, CalendarNotLinked)


def test_day_window_spans_local_day():
    now = datetime(2026, 10, 19, 23, 30, tzinfo=timezone.utc)
    start, end = day_window("Africa/Lagos", now=now)

    assert start.isoformat() == "2026-10-20T00:00:00+01:00"
    assert end.isoformat() == "2026-10-21T00:00:00+01:00"


@pytest.mark.parametrize("start, expected", [
    ("2026-10-19T09:05:00+01:00", "09:05"),
    ("2026-10-19T18:30:00Z", "18:30"),
    ("2026-10-19", "All-day"),
    ("", "All-day"),
    (None, "All-day"),
])
def test_format_event_time(start, expected):
    assert format_event_time(start) == expected


def test_event_line():
    assert CalendarEvent(start="2026-10-19T14:00:00Z", summary="Review").to_line() == "• 14:00 — Review"
