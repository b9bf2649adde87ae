"""Thread-safe wrapper around the pyserial port handle."""

from __future__ import annotations

import logging
import threading

import serial
from serial.tools import list_ports

_LOGGER = logging.getLogger(__name__)


def list_port_names() -> list[str]:
    """Return the device names of every serial port, sorted."""
    return sorted(port.device for port in list_ports.comports())


class SerialLink:
    """
    Own the single serial handle shared by the event loop and the reader.

    Only the event loop opens and closes the link. The reader thread calls
    read() concurrently; the lock keeps a close from racing an in-flight read,
    and a read on a closed link returns no data instead of touching the handle.
    """

    def __init__(self, port: str, baudrate: int, read_timeout_ms: int) -> None:
        self.port = port
        self.baudrate = baudrate
        self.read_timeout_ms = read_timeout_ms
        self._serial: serial.Serial | None = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._serial is not None

    def _build(self) -> serial.Serial:
        return serial.Serial(
            port=self.port,
            baudrate=self.baudrate,
            timeout=self.read_timeout_ms / 1000,
        )

    def open(self) -> None:
        with self._lock:
            if self._serial is not None:
                raise RuntimeError(f"Serial port {self.port} is already open")
            ser = self._build()
            try:
                ser.flush()
                ser.reset_input_buffer()
                ser.reset_output_buffer()
            except serial.SerialException:
                ser.close()
                raise
            self._serial = ser
        _LOGGER.info("Serial port to %s opened", self.port)

    def close(self) -> None:
        """
        Drain pending output and close the port.

        A handle whose device went away cannot be drained; that failure is
        logged and the handle is closed anyway.
        """
        with self._lock:
            if self._serial is None:
                _LOGGER.info("Serial port already closed")
                return
            ser, self._serial = self._serial, None
            try:
                ser.flush()
            except Exception as exc:  # noqa: BLE001 - termios and pyserial raise unrelated types
                _LOGGER.warning("Could not drain %s before closing: %s", self.port, exc)
            finally:
                ser.close()
        _LOGGER.info("Serial port closed")

    def read(self, size: int) -> bytes:
        with self._lock:
            if self._serial is None:
                return b""
            return self._serial.read(size)

    def write(self, data: bytes) -> int:
        with self._lock:
            if self._serial is None:
                raise serial.PortNotOpenError()
            written = self._serial.write(data)
        return len(data) if written is None else written
