"""Session controller: the only writer of view state, store and port lifecycle."""

from __future__ import annotations

import logging
from typing import Callable

import serial

from .config import MonitorConfig
from .const import (
    INPUT_PREFIX,
    MAX_MSG_CAPACITY,
    MAX_POINT_CAPACITY,
    PLOT_NAVIGATION_INSTRUCTIONS,
    TEXT_NAVIGATION_INSTRUCTIONS,
)
from .link import SerialLink
from .reader import SerialReader
from .store import Aggregator, MessageStore
from .transform import plot_points, text_rows
from .ui import MainGui, Renderer
from .view import DisplayMode, ViewState

_LOGGER = logging.getLogger(__name__)

RendererFactory = Callable[[ViewState], Renderer]


def _flag(value: bool) -> str:
    return "true" if value else "false"


class Session:
    """
    Keyboard-driven state machine for one monitoring session.

    Runs entirely on the event-loop thread: key handling, draining the
    message queue into the store, and every renderer call happen here. The
    reader thread only ever sees the pause state through SerialReader.
    """

    def __init__(
        self,
        config: MonitorConfig,
        link: SerialLink,
        reader: SerialReader,
        aggregator: Aggregator,
        renderer_factory: RendererFactory,
        capacity: int = MAX_MSG_CAPACITY,
    ) -> None:
        self.config = config
        self.link = link
        self.reader = reader
        self.aggregator = aggregator
        self.renderer_factory = renderer_factory
        self.capacity = capacity

        self.view = ViewState(display_mode=config.mode)
        self.store = MessageStore(capacity)
        self.input_buffer = ""
        self.bytes_written = 0
        self._shown_bytes_read = -1
        self.renderer: Renderer | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        self.renderer = self._create_renderer()
        self.render()

    def run(self, next_key: Callable[[], str | None]) -> None:
        """Event loop: handle a key (if any), then drain pending messages."""
        while True:
            key = next_key()
            if key is not None and not self.handle_key(key):
                break
            self.pump()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    @property
    def gui(self) -> MainGui:
        if self.renderer is None:
            raise RuntimeError("Renderer has not been started")
        return self.renderer.gui

    def render(self) -> None:
        if self.renderer is not None:
            self.renderer.render()

    def _create_renderer(self) -> Renderer:
        renderer = self.renderer_factory(self.view)
        self.renderer = renderer
        self._seed_status()
        self._refresh_inbox()
        return renderer

    def _set_status(self, name: str, text: str) -> None:
        paragraph = self.gui.status.get(name)
        if paragraph is not None:
            paragraph.text = text

    def _seed_status(self) -> None:
        self._set_status("baud", f"Baud: {self.config.baudrate}")
        self._set_status("device", f"Device: {self.config.port}")
        self._set_status("read_timeout", f"Read timeout [ms]: {self.config.read_timeout_ms}")
        self._set_status("logs_enabled", f"Logs enabled: {_flag(self.config.logs_enabled)}")
        self._update_written()
        self._update_read(force=True)
        self._update_pause()
        self._set_status("hex_mode", f"Hexmode: {_flag(self.view.hex_mode)}")
        self._set_status("timestamps", f"Timestamps: {_flag(self.view.print_timestamps)}")
        self._set_status("follow", f"Follow: {_flag(self.view.follow_mode)}")
        self._update_input_paragraph()

    def _update_written(self) -> None:
        self._set_status("written", f"Written [B]: {self.bytes_written}")

    def _update_read(self, force: bool = False) -> bool:
        bytes_read = self.reader.bytes_read
        if not force and bytes_read == self._shown_bytes_read:
            return False
        self._shown_bytes_read = bytes_read
        self._set_status("read", f"Read [B]: {bytes_read}")
        return True

    def _update_pause(self) -> None:
        self._set_status("pause", f"Pause: {_flag(self.view.paused)}")

    def instructions(self) -> str:
        if self.view.display_mode is DisplayMode.TEXT:
            return TEXT_NAVIGATION_INSTRUCTIONS
        return PLOT_NAVIGATION_INSTRUCTIONS

    def _update_input_paragraph(self) -> None:
        if self.view.input_mode:
            self.gui.input_paragraph.text = INPUT_PREFIX + self.input_buffer
        else:
            self.gui.input_paragraph.text = self.instructions()

    def _refresh_inbox(self) -> None:
        """Re-run the transform for the current mode over the store."""
        gui = self.gui
        snapshot = self.store.snapshot()
        if gui.inbox_list is not None:
            gui.inbox_list.set_rows(
                text_rows(snapshot, len(snapshot), self.view.print_timestamps, self.view.hex_mode)
            )
            if self.view.follow_mode and snapshot:
                # rows are newest first, following keeps the top in view
                gui.inbox_list.scroll_top()
        if gui.inbox_plot is not None:
            gui.inbox_plot.data = plot_points(snapshot, MAX_POINT_CAPACITY)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def pump(self) -> int:
        """Drain the queue into the store and redraw if anything changed."""
        parked = self._pause_on_read_error()
        moved = self.aggregator.drain(self.store)
        if moved:
            self._refresh_inbox()
        read_changed = self._update_read()
        if moved or read_changed or parked:
            self.render()
        return moved

    def _pause_on_read_error(self) -> bool:
        """Turn a reader parked by a read error into a regular pause."""
        if self.view.paused or not self.reader.faulted:
            return False
        _LOGGER.warning("Reading %s failed, pausing the session", self.config.port)
        self.view.paused = True
        self.link.close()
        self._update_pause()
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def handle_key(self, key: str) -> bool:
        """Apply one key event. Returns False when the program should exit."""
        if key == "<Escape>":
            if self.view.input_mode:
                self.exit_input_mode()
                return True
            _LOGGER.info("Exiting program")
            return False

        if key == "<Resize>":
            self.rebuild()
        elif self.view.input_mode:
            self._handle_input_key(key)
        else:
            self._handle_command(key)
        return True

    def _handle_input_key(self, key: str) -> None:
        if key == "<Backspace>":
            if self.input_buffer:
                self.input_buffer = self.input_buffer[:-1]
                self._update_input_paragraph()
                self.render()
        elif key == "<Enter>":
            if self.link.is_open:
                self.submit_input()
        else:
            char = " " if key == "<Space>" else key
            if len(char) != 1:
                return
            self.input_buffer += char
            self._update_input_paragraph()
            self.render()

    def _handle_command(self, key: str) -> None:
        text_mode = self.view.display_mode is DisplayMode.TEXT
        if key == "i":
            self.enter_input_mode()
        elif key == "p":
            self.toggle_pause()
        elif key == "m":
            self.toggle_display_mode()
        elif key == "z":
            self.toggle_full_screen()
        elif key == "c":
            self.clear()
        elif text_mode and key in ("j", "k", "b", "t"):
            self.scroll(key)
        elif text_mode and key == "f":
            self.toggle_follow()
        elif text_mode and key == "s":
            self.toggle_timestamps()
        elif text_mode and key == "h":
            self.toggle_hex()

    def enter_input_mode(self) -> None:
        if self.view.paused:
            return
        self.view.input_mode = True
        self._update_input_paragraph()
        if self.gui.inbox_list is not None and self.view.follow_mode and len(self.store):
            self.gui.inbox_list.scroll_top()
        _LOGGER.info("Entering input mode")
        self.render()

    def exit_input_mode(self) -> None:
        self.view.input_mode = False
        self._update_input_paragraph()
        _LOGGER.info("Exiting input mode")
        self.render()

    def submit_input(self) -> int:
        """Write the input buffer to the port. Write errors are fatal."""
        written = self.link.write(self.input_buffer.encode("utf-8"))
        self.bytes_written += written
        _LOGGER.debug("Wrote %d bytes", written)
        self.input_buffer = ""
        self._update_input_paragraph()
        self._update_written()
        self.render()
        return written

    def toggle_pause(self) -> None:
        if self.view.paused:
            _LOGGER.info("Unpausing")
            if not self.link.is_open:
                try:
                    self.link.open()
                except serial.SerialException as exc:
                    _LOGGER.error("Could not reopen %s, staying paused: %s", self.config.port, exc)
                    return
            self.view.paused = False
            self.reader.resume()
        else:
            _LOGGER.info("Pausing")
            if self.link.is_open:
                self.view.paused = True
                self.reader.pause()
                self.link.close()
        self._update_pause()
        self.render()

    def rebuild(self) -> None:
        """Tear the renderer down and build it again from view state and store."""
        self._pause_on_read_error()
        was_paused = self.view.paused
        self.view.paused = True
        self.reader.pause()
        if self.renderer is not None:
            self.renderer.close()
        self._create_renderer()
        self.view.paused = was_paused
        if not was_paused:
            self.reader.resume()
        self._update_pause()
        self.render()

    def toggle_display_mode(self) -> None:
        self.view.display_mode = self.view.display_mode.toggled()
        _LOGGER.info("Switching to %s mode", self.view.display_mode.value)
        self.rebuild()

    def toggle_full_screen(self) -> None:
        self.view.full_screen = not self.view.full_screen
        _LOGGER.info("Full screen: %s", self.view.full_screen)
        self.rebuild()

    def clear(self) -> None:
        if self.gui.inbox_list is not None and len(self.store):
            self.gui.inbox_list.scroll_top()
        self.store = MessageStore(self.capacity)
        self._refresh_inbox()
        self.render()

    def scroll(self, key: str) -> None:
        inbox = self.gui.inbox_list
        if inbox is None:
            return
        if key == "j":
            inbox.scroll_half_page_down()
        elif key == "k":
            inbox.scroll_half_page_up()
        elif key == "b":
            inbox.scroll_bottom()
        elif key == "t":
            inbox.scroll_top()
        self.render()

    def toggle_follow(self) -> None:
        self.view.follow_mode = not self.view.follow_mode
        self._set_status("follow", f"Follow: {_flag(self.view.follow_mode)}")
        self.render()

    def toggle_timestamps(self) -> None:
        self.view.print_timestamps = not self.view.print_timestamps
        self._refresh_inbox()
        self._set_status("timestamps", f"Timestamps: {_flag(self.view.print_timestamps)}")
        self.render()

    def toggle_hex(self) -> None:
        self.view.hex_mode = not self.view.hex_mode
        self._refresh_inbox()
        self._set_status("hex_mode", f"Hexmode: {_flag(self.view.hex_mode)}")
        self.render()
