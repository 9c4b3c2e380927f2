"""Tests for command classification."""

import pytest

from app.flow.commands import COMMAND_LITERALS, Command, classify, is_command


@pytest.mark.parametrize("text", ["connect", "agenda", "help", "whoami", "hi", "hello", "onboard"])
def test_literals_are_commands(text):
    parsed = classify(text)
    assert parsed is not None
    assert parsed.command.value == text
    assert parsed.argument == ""


def test_literal_set_is_fixed():
    assert COMMAND_LITERALS == {"connect", "agenda", "help", "whoami", "hi", "hello", "onboard"}


def test_case_and_whitespace_are_ignored():
    assert classify("  CONNECT ").command == Command.CONNECT
    assert classify("Hello").command == Command.HELLO


def test_set_tz_keeps_argument_case():
    parsed = classify("Set TZ  America/New_York ")
    assert parsed.command == Command.SET_TZ
    assert parsed.argument == "America/New_York"


def test_set_tz_without_value_is_not_a_command():
    assert classify("set tz") is None
    assert classify("set tz   ") is None


def test_set_calendar():
    parsed = classify("set calendar team@example.com")
    assert parsed.command == Command.SET_CALENDAR
    assert parsed.argument == "team@example.com"


@pytest.mark.parametrize("text", ["", None, "connect please", "hi there", "helpme", "agenda?", "what's up"])
def test_non_commands(text):
    assert classify(text) is None
    assert not is_command(text)
