"""Pure functions turning a store snapshot into what the widgets display."""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Iterable, Sequence

from .const import HEX_BYTES_PER_LINE, HEX_CHARS_PER_LINE, MAX_POINT_CAPACITY, TIME_FORMAT
from .message import Message, Number, TextLine

# Bare decimal or exponent notation, nothing around it.
_FLOAT_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def format_timestamp(ts: datetime) -> str:
    return ts.strftime(TIME_FORMAT)


def _trim(text: str) -> str:
    return text.rstrip("\r\n")


def _unknown_content(msg: Message) -> TypeError:
    return TypeError(f"Unknown message content: {type(msg.content).__name__}")


def _split_hex_line(hex_line: str, line_num: int) -> str:
    start = line_num * HEX_BYTES_PER_LINE
    end = start + HEX_BYTES_PER_LINE - 1
    pairs = " ".join(hex_line[i : i + 2] for i in range(0, len(hex_line), 2))
    return f"{start:04x}-{end:04x}  {pairs}"


def hex_lines(text: str) -> list[str]:
    """
    Hex dump of ``text`` as UTF-8, 8 bytes per row.

    Each row reads ``AAAA-AAAA  XX XX ...`` where the offsets are the first
    and last byte positions covered by a full row.
    """
    encoded = text.encode("utf-8").hex().upper()
    return [
        _split_hex_line(encoded[start : start + HEX_CHARS_PER_LINE], line_num)
        for line_num, start in enumerate(range(0, len(encoded), HEX_CHARS_PER_LINE))
    ]


def text_rows(
    messages: Iterable[Message],
    max_rows: int,
    print_timestamps: bool,
    hex_mode: bool,
) -> list[str]:
    """
    Format up to ``max_rows`` messages, newest first.

    ``messages`` is in store order (newest first). Each row is prefixed with
    its 1-based position or with the arrival time; in hex mode every text row
    is followed by its hex dump rows.
    """
    rows: list[str] = []
    for index, msg in enumerate(messages):
        if index >= max_rows:
            break
        if print_timestamps:
            prefix = f"[{format_timestamp(msg.timestamp)}]:"
        else:
            prefix = f"[{index + 1}]:"

        content = msg.content
        if isinstance(content, TextLine):
            line = _trim(content.text)
            rows.append(f"{prefix} {line}")
            if hex_mode:
                rows.extend(hex_lines(line))
        elif isinstance(content, Number):
            rows.append(f"{prefix} {content.value:f}")
        else:
            raise _unknown_content(msg)
    return rows


def _as_float(msg: Message) -> float | None:
    content = msg.content
    if isinstance(content, Number):
        value = content.value
    elif isinstance(content, TextLine):
        text = _trim(content.text)
        if _FLOAT_RE.fullmatch(text) is None:
            return None
        value = float(text)
    else:
        raise _unknown_content(msg)
    # "1e999" overflows to inf; the plot axis needs finite bounds
    return value if math.isfinite(value) else None


def plot_points(messages: Sequence[Message], max_points: int = MAX_POINT_CAPACITY) -> list[float]:
    """
    Numeric series of up to ``max_points`` values, oldest first.

    Messages are scanned newest first. Lines that do not parse as a finite
    float are skipped without using up a slot, so older messages fill in
    until ``min(len(messages), max_points)`` values are found or the
    messages run out.
    """
    wanted = min(len(messages), max_points)
    points: list[float] = []
    for msg in messages:
        if len(points) >= wanted:
            break
        value = _as_float(msg)
        if value is not None:
            points.append(value)
    points.reverse()
    return points
