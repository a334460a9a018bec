# services/commands.py

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from translations import (
    START_TOKENS,
    STOP_TOKENS,
    AFFIRMATIVE_TOKENS,
    NEGATIVE_TOKENS,
)


class CommandKind(str, Enum):
    START = "start"
    STOP = "stop"
    AFFIRMATIVE = "affirmative"
    NEGATIVE = "negative"
    FREEFORM = "freeform"


@dataclass(frozen=True)
class Command:
    kind: CommandKind
    text: str = ""


@dataclass(frozen=True)
class InboundMessage:
    sender_id: str
    text: Optional[str] = None
    interactive_reply_id: Optional[str] = None


def parse_command(message: InboundMessage) -> Command:
    """
    Classifies a reply once, so conversation steps never look at raw text.
    A button/list reply id wins over typed text.
    """
    raw = message.interactive_reply_id or message.text or ""
    choice = raw.strip()
    lowered = choice.lower()

    if lowered in START_TOKENS:
        return Command(CommandKind.START, choice)
    if lowered in STOP_TOKENS:
        return Command(CommandKind.STOP, choice)
    if lowered in AFFIRMATIVE_TOKENS:
        return Command(CommandKind.AFFIRMATIVE, choice)
    if lowered in NEGATIVE_TOKENS:
        return Command(CommandKind.NEGATIVE, choice)
    return Command(CommandKind.FREEFORM, choice)
