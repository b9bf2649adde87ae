"""Messages received from the serial device."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class TextLine:
    text: str


@dataclass(frozen=True, slots=True)
class Number:
    value: float


Content = TextLine | Number


@dataclass(frozen=True, slots=True)
class Message:
    """One framed line (or derived number) with its arrival time."""

    timestamp: datetime
    content: Content


def now_message(content: Content) -> Message:
    return Message(timestamp=datetime.now(), content=content)
