"""
app/flow/commands.py

Purpose: Command vocabulary

- The one authoritative list of recognised commands
- Pure classification of inbound text (trimmed, case-folded)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Command(str, Enum):
    HI = "hi"
    HELLO = "hello"
    HELP = "help"
    WHOAMI = "whoami"
    CONNECT = "connect"
    ONBOARD = "onboard"
    AGENDA = "agenda"
    SET_TZ = "set tz"
    SET_CALENDAR = "set calendar"


COMMAND_LITERALS = frozenset({
    Command.CONNECT.value,
    Command.AGENDA.value,
    Command.HELP.value,
    Command.WHOAMI.value,
    Command.HI.value,
    Command.HELLO.value,
    Command.ONBOARD.value,
})

SET_TZ_PREFIX = "set tz "
SET_CALENDAR_PREFIX = "set calendar "

PREFIX_COMMANDS = (
    (SET_TZ_PREFIX, Command.SET_TZ),
    (SET_CALENDAR_PREFIX, Command.SET_CALENDAR),
)


@dataclass(frozen=True)
class ParsedCommand:
    command: Command
    argument: str = ""


def normalize(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def classify(text: Optional[str]) -> Optional[ParsedCommand]:
    """
    Classifies a message as a command.

    Exact literal match or a known prefix. The argument of a prefix
    command keeps its original case and is trimmed.

    Returns:
        ParsedCommand, or None when the text is not a command
    """
    raw = (text or "").strip()
    lowered = raw.lower()

    if lowered in COMMAND_LITERALS:
        return ParsedCommand(Command(lowered))

    for prefix, command in PREFIX_COMMANDS:
        if lowered.startswith(prefix):
            return ParsedCommand(command, raw[len(prefix):].strip())

    return None


def is_command(text: Optional[str]) -> bool:
    return classify(text) is not None
