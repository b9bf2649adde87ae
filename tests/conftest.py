from __future__ import annotations

import queue
from datetime import datetime, timedelta

import pytest

from serial_monitor.config import MonitorConfig
from serial_monitor.message import Message, TextLine
from serial_monitor.reader import SerialReader
from serial_monitor.session import Session
from serial_monitor.store import Aggregator
from serial_monitor.ui import Renderer
from serial_monitor.view import DisplayMode, ViewState


class FakeLink:
    """Stand-in for SerialLink that replays scripted reads."""

    def __init__(self, chunks: list[bytes] | None = None, open_: bool = True) -> None:
        self.port = "/dev/ttyFAKE0"
        self.chunks = list(chunks or [])
        self.written: list[bytes] = []
        self.opened = 0
        self.closed = 0
        self._open = open_
        self.fail_writes = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._open:
            raise RuntimeError("already open")
        self._open = True
        self.opened += 1

    def close(self) -> None:
        self._open = False
        self.closed += 1

    def read(self, size: int) -> bytes:
        if not self._open or not self.chunks:
            return b""
        chunk = self.chunks.pop(0)
        assert len(chunk) <= size
        return chunk

    def write(self, data: bytes) -> int:
        if self.fail_writes:
            raise OSError("write failed")
        self.written.append(data)
        return len(data)


class FakeRenderer(Renderer):
    def __init__(self, view: ViewState, width: int = 120, height: int = 60) -> None:
        super().__init__(view, width, height)
        self.renders = 0
        self.closed = False

    def render(self) -> None:
        self.renders += 1

    def close(self) -> None:
        self.closed = True


def text_message(text: str, seconds: int = 0) -> Message:
    return Message(timestamp=datetime(2024, 1, 1, 12, 0, 0) + timedelta(seconds=seconds), content=TextLine(text))


@pytest.fixture
def msg_queue() -> queue.Queue[Message]:
    return queue.Queue(maxsize=1000)


@pytest.fixture
def link() -> FakeLink:
    return FakeLink()


@pytest.fixture
def make_session(link, msg_queue):
    def build(mode: DisplayMode = DisplayMode.TEXT, capacity: int = 10_000) -> Session:
        config = MonitorConfig(port=link.port, baudrate=115200, read_timeout_ms=10, mode=mode)
        reader = SerialReader(link, msg_queue)
        session = Session(config, link, reader, Aggregator(msg_queue), FakeRenderer, capacity=capacity)
        session.start()
        return session

    return build
