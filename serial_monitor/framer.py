"""Reassemble raw serial chunks into newline-terminated lines."""

from __future__ import annotations

from .message import Message, TextLine, now_message


class LineFramer:
    """
    Accumulate bytes until a complete line is available.

    The serial driver hands us arbitrary chunks; a line is only emitted once a
    read times out (returns no data) and the buffer holds a newline. Anything
    after the first newline stays buffered for the next attempt, so partial
    trailing data is preserved across reads.
    """

    def __init__(self) -> None:
        self.buffer = bytearray()
        self.bytes_read = 0

    def feed(self, chunk: bytes) -> None:
        if not chunk:
            return
        self.bytes_read += len(chunk)
        self.buffer.extend(chunk)

    def next_line(self) -> Message | None:
        """Pop the first complete line (newline included), or None."""
        if not self.buffer:
            return None
        end = self.buffer.find(b"\n")
        if end < 0:
            return None
        raw = bytes(self.buffer[: end + 1])
        del self.buffer[: end + 1]
        return now_message(TextLine(raw.decode("utf-8", errors="replace")))
