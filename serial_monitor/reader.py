"""Background thread that frames serial output into the message queue."""

from __future__ import annotations

import logging
import queue
import threading

import serial

from .const import READ_CHUNK_SIZE
from .framer import LineFramer
from .link import SerialLink
from .message import Message

_LOGGER = logging.getLogger(__name__)


class SerialReader:
    """
    Read chunks from the link, frame them and enqueue complete lines.

    The thread parks on an Event while the session is paused, so a closed
    port is never read and no CPU is burnt spinning. The framer and the
    queue survive pauses; bytes buffered before a pause are framed after it.
    """

    def __init__(
        self,
        link: SerialLink,
        out_queue: queue.Queue[Message],
        framer: LineFramer | None = None,
    ) -> None:
        self.link = link
        self.out_queue = out_queue
        self.framer = framer or LineFramer()
        self._running = threading.Event()
        self._stop = threading.Event()
        self._faulted = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def bytes_read(self) -> int:
        return self.framer.bytes_read

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    @property
    def faulted(self) -> bool:
        """True after a read error parked the thread, until the next resume()."""
        return self._faulted.is_set()

    def start(self) -> None:
        self._running.set()
        self._thread = threading.Thread(target=self._loop, name="serial-reader", daemon=True)
        self._thread.start()

    def pause(self) -> None:
        self._running.clear()

    def resume(self) -> None:
        self._faulted.clear()
        self._running.set()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        # wake a parked loop so it can observe the stop flag
        self._running.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _loop(self) -> None:
        _LOGGER.debug("Reader loop started")
        while not self._stop.is_set():
            if not self._running.wait(timeout=0.25):
                continue
            if self._stop.is_set():
                break
            self.step()
        _LOGGER.debug("Reader loop stopped")

    def step(self) -> Message | None:
        """Run one read attempt; return the message enqueued, if any."""
        if not self.link.is_open:
            # the session closes the port only while paused; wait to be resumed
            self._stop.wait(0.05)
            return None
        try:
            chunk = self.link.read(READ_CHUNK_SIZE)
        except serial.SerialException as exc:
            _LOGGER.error("Serial read failed, reader parked: %s", exc)
            self._faulted.set()
            self._running.clear()
            return None

        if chunk:
            self.framer.feed(chunk)
            return None

        msg = self.framer.next_line()
        if msg is not None:
            self._enqueue(msg)
        return msg

    def _enqueue(self, msg: Message) -> None:
        # Device output is never dropped; block until the consumer catches up.
        stalled = False
        while not self._stop.is_set():
            try:
                self.out_queue.put(msg, timeout=0.1)
                return
            except queue.Full:
                if not stalled:
                    _LOGGER.warning("Message queue full, reader stalled")
                    stalled = True
