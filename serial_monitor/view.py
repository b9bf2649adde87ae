"""User-toggleable display state."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DisplayMode(str, Enum):
    TEXT = "TEXT"
    PLOT = "PLOT"

    @classmethod
    def parse(cls, text: str) -> DisplayMode:
        """Case-insensitive lookup, raising ValueError for unknown names."""
        normalized = text.strip().upper()
        for member in cls:
            if member.value == normalized:
                return member
        choices = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown mode '{text}'. Valid values: {choices}")

    def toggled(self) -> DisplayMode:
        return DisplayMode.PLOT if self is DisplayMode.TEXT else DisplayMode.TEXT


@dataclass(slots=True)
class ViewState:
    """Flags read by every render pass; written only by the session."""

    display_mode: DisplayMode = DisplayMode.TEXT
    follow_mode: bool = True
    print_timestamps: bool = False
    hex_mode: bool = False
    paused: bool = False
    full_screen: bool = False
    input_mode: bool = False
