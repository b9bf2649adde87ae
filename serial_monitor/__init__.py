"""Terminal serial monitor: stream a serial device as a text log or a live plot."""

from __future__ import annotations

__version__ = "0.1.0"
