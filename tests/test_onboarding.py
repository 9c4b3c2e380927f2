"""Tests for the onboarding state machine."""

import asyncio

from app.flow.states import OnboardingState, get_state_metadata, is_valid_transition
from app.models.user import UserProfile
from utils.constants import (
    ASK_PHONE_MESSAGE,
    INVALID_EMAIL_MESSAGE,
    INVALID_NAME_MESSAGE,
    ONBOARDING_WELCOME_MESSAGE,
)


def test_absent_record_is_done(onboarding):
    record = asyncio.run(onboarding.current_state("u1"))
    assert record.state == OnboardingState.DONE
    assert record.data == {}


def test_corrupt_record_is_done(onboarding, store):
    asyncio.run(store.set("onboarding:u1", "{not json"))
    assert asyncio.run(onboarding.current_state("u1")).state == OnboardingState.DONE


def test_advance_when_done_returns_none(onboarding):
    assert asyncio.run(onboarding.advance("u1", "hello")) is None


def test_start_prompts_for_name(onboarding):
    async def scenario():
        reply = await onboarding.start("u1")
        return reply, await onboarding.current_state("u1")

    reply, record = asyncio.run(scenario())
    assert reply == ONBOARDING_WELCOME_MESSAGE
    assert record.state == OnboardingState.ASK_NAME


def test_full_sequence_persists_profile(onboarding, users):
    async def scenario():
        replies = [await onboarding.start("u1")]
        for text in ["Jo", "not-an-email", "jo@x.com", "skip"]:
            replies.append(await onboarding.advance("u1", text))
        return replies, await onboarding.current_state("u1"), await users.get_profile("u1")

    replies, record, profile = asyncio.run(scenario())
    assert replies[1].startswith("Nice to meet you, Jo!")
    assert replies[2] == INVALID_EMAIL_MESSAGE
    assert replies[3] == ASK_PHONE_MESSAGE
    assert "Welcome Jo" in replies[4]
    assert profile == UserProfile(name="Jo", email="jo@x.com", phone="")
    assert record.state == OnboardingState.DONE
    assert record.data == {}


def test_invalid_input_keeps_state(onboarding):
    async def scenario():
        await onboarding.start("u1")
        reply = await onboarding.advance("u1", " J ")
        return reply, await onboarding.current_state("u1")

    reply, record = asyncio.run(scenario())
    assert reply == INVALID_NAME_MESSAGE
    assert record.state == OnboardingState.ASK_NAME


def test_email_step_records_collected_fields(onboarding):
    async def scenario():
        await onboarding.start("u1")
        await onboarding.advance("u1", "  Jo  ")
        await onboarding.advance("u1", "jo@x.com")
        return await onboarding.current_state("u1")

    record = asyncio.run(scenario())
    assert record.state == OnboardingState.ASK_PHONE
    assert record.data == {"name": "Jo", "email": "jo@x.com"}


def test_skip_is_case_insensitive_and_phone_is_kept(onboarding, users):
    async def scenario():
        await onboarding.start("u1")
        await onboarding.advance("u1", "Jo")
        await onboarding.advance("u1", "jo@x.com")
        await onboarding.advance("u1", "SKIP")
        skipped = await users.get_profile("u1")

        await onboarding.start("u2")
        await onboarding.advance("u2", "Ada")
        await onboarding.advance("u2", "ada@example.org")
        await onboarding.advance("u2", "+44 20 7946 0958")
        return skipped, await users.get_profile("u2")

    skipped, with_phone = asyncio.run(scenario())
    assert skipped.phone == ""
    assert with_phone.phone == "+44 20 7946 0958"


def test_start_discards_previous_progress(onboarding):
    async def scenario():
        await onboarding.start("u1")
        await onboarding.advance("u1", "Jo")
        await onboarding.start("u1")
        return await onboarding.current_state("u1")

    record = asyncio.run(scenario())
    assert record.state == OnboardingState.ASK_NAME
    assert record.data == {}


def test_transition_table():
    assert is_valid_transition(OnboardingState.ASK_NAME, OnboardingState.ASK_EMAIL)
    assert is_valid_transition(OnboardingState.ASK_PHONE, OnboardingState.DONE)
    assert not is_valid_transition(OnboardingState.ASK_NAME, OnboardingState.ASK_PHONE)
    assert not is_valid_transition(OnboardingState.ASK_PHONE, OnboardingState.ASK_NAME)


def test_state_metadata_names_collected_field():
    fields = [get_state_metadata(state).field for state in OnboardingState]
    assert fields == ["name", "email", "phone", None]
