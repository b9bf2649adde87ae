"""Runtime configuration built from the command line."""

from __future__ import annotations

from dataclasses import dataclass

from .const import DEFAULT_BAUD, DEFAULT_READ_TIMEOUT_MS
from .view import DisplayMode


@dataclass(frozen=True)
class MonitorConfig:
    port: str
    baudrate: int = DEFAULT_BAUD
    read_timeout_ms: int = DEFAULT_READ_TIMEOUT_MS
    mode: DisplayMode = DisplayMode.TEXT
    logs_enabled: bool = False
