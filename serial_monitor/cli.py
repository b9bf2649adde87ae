"""Interactive terminal serial monitor: text log or live plot of a serial device."""

from __future__ import annotations

import argparse
import curses
import logging
import queue
import sys
from pathlib import Path
from typing import TextIO

import serial

from .config import MonitorConfig
from .const import DEFAULT_BAUD, DEFAULT_READ_TIMEOUT_MS, EVENT_POLL_MS, LOG_FILE_NAME, MSG_BUFF_SIZE
from .link import SerialLink, list_port_names
from .message import Message
from .reader import SerialReader
from .session import Session
from .store import Aggregator
from .ui import CursesRenderer, read_key, setup_terminal
from .view import DisplayMode

_LOGGER = logging.getLogger(__name__)


def _non_negative_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"'{text}' is not an integer") from None
    if value < 0:
        raise argparse.ArgumentTypeError(f"{value} cannot be negative")
    return value


def _parse_mode(text: str) -> DisplayMode:
    try:
        return DisplayMode.parse(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="serial-monitor",
        description="Watch a serial device as a scrolling log or a live plot and type bytes back to it.",
    )
    parser.add_argument("-baud", "--baud", type=_non_negative_int, default=DEFAULT_BAUD, help="Baud value")
    parser.add_argument(
        "-read-timeout-ms",
        "--read-timeout-ms",
        dest="read_timeout_ms",
        type=_non_negative_int,
        default=DEFAULT_READ_TIMEOUT_MS,
        help="Read timeout in milliseconds",
    )
    parser.add_argument(
        "-mode",
        "--mode",
        type=_parse_mode,
        default=DisplayMode.TEXT,
        help="Display mode: TEXT or PLOT (case-insensitive)",
    )
    parser.add_argument(
        "-logs",
        "--logs",
        action="store_true",
        help=f"Append diagnostics to {LOG_FILE_NAME}",
    )
    return parser


def configure_logging(enabled: bool, path: str = LOG_FILE_NAME) -> Path | None:
    """Send diagnostics to the log file, or discard them. Returns the file used."""
    root = logging.getLogger()
    if not enabled:
        root.addHandler(logging.NullHandler())
        return None
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    return Path(handler.baseFilename)


def choose_port(ports: list[str], stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> str:
    """Ask the user to pick one of ``ports`` by its 1-based position."""
    if not ports:
        raise RuntimeError("No serial ports found!")
    print(f"Choose one of given ports (type in number 1-{len(ports)}):", file=stdout)
    for position, port in enumerate(ports, start=1):
        print(f"{position}. {port}", file=stdout)
    stdout.flush()

    answer = stdin.readline().strip()
    try:
        chosen = int(answer)
    except ValueError:
        raise RuntimeError(f"Invalid port selection '{answer}'") from None
    if chosen < 1 or chosen > len(ports):
        raise RuntimeError(f"Invalid port selection {chosen}, expected 1-{len(ports)}")
    _LOGGER.info("Chosen port: %s", ports[chosen - 1])
    return ports[chosen - 1]


def _log_flags(args: argparse.Namespace) -> None:
    _LOGGER.info("Baud rate: %d", args.baud)
    _LOGGER.info("Read timeout [ms]: %d", args.read_timeout_ms)
    _LOGGER.info("Gui mode: %s", args.mode.value)
    _LOGGER.info("Logs enabled: %s", args.logs)


def _run_ui(
    stdscr: curses.window,
    config: MonitorConfig,
    link: SerialLink,
    reader: SerialReader,
    msg_queue: queue.Queue[Message],
) -> None:
    setup_terminal(stdscr, EVENT_POLL_MS)
    session = Session(
        config,
        link,
        reader,
        Aggregator(msg_queue),
        renderer_factory=lambda view: CursesRenderer(stdscr, view),
    )
    session.start()
    session.run(lambda: read_key(stdscr))


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    log_path = configure_logging(args.logs)
    if log_path is not None:
        print(f"Logs will be written to {log_path}")
    _LOGGER.info("Initializing serial monitor")
    _log_flags(args)

    link: SerialLink | None = None
    reader: SerialReader | None = None
    try:
        port = choose_port(list_port_names())
        config = MonitorConfig(
            port=port,
            baudrate=args.baud,
            read_timeout_ms=args.read_timeout_ms,
            mode=args.mode,
            logs_enabled=args.logs,
        )
        link = SerialLink(config.port, config.baudrate, config.read_timeout_ms)
        link.open()

        msg_queue: queue.Queue[Message] = queue.Queue(maxsize=MSG_BUFF_SIZE)
        reader = SerialReader(link, msg_queue)
        reader.start()

        curses.wrapper(_run_ui, config, link, reader, msg_queue)
        return 0
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130
    except Exception as exc:  # noqa: BLE001 - single CLI error path
        _LOGGER.exception("Fatal error")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    finally:
        if reader is not None:
            reader.stop()
        if link is not None:
            try:
                link.close()
            except serial.SerialException as exc:
                _LOGGER.error("Could not close %s cleanly: %s", link.port, exc)
        logging.shutdown()

