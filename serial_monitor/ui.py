"""
Curses widgets, layout and key decoding.

Widgets are plain objects holding a rectangle and their content; the curses
renderer draws them. Keeping the widget tree free of curses calls lets the
session be driven without a terminal.
"""

from __future__ import annotations

import curses
import logging
import math
import textwrap
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator

from .const import MAIN_WIDTH_RATIO, MAX_MSG_DISPLAY_SIZE, PARAGRAPH_HEIGHT
from .view import DisplayMode, ViewState

_LOGGER = logging.getLogger(__name__)

# Status paragraphs in display order; the last three exist only in text mode.
STATUS_FIELDS = ("baud", "device", "read_timeout", "logs_enabled", "written", "read", "pause")
TEXT_STATUS_FIELDS = ("hex_mode", "timestamps", "follow")

PLOT_MARKER = "•"


@dataclass(slots=True)
class Rect:
    x0: int
    y0: int
    x1: int
    y1: int

    @property
    def width(self) -> int:
        return max(0, self.x1 - self.x0)

    @property
    def height(self) -> int:
        return max(0, self.y1 - self.y0)

    @property
    def inner_width(self) -> int:
        return max(0, self.width - 2)

    @property
    def inner_height(self) -> int:
        return max(0, self.height - 2)


@dataclass(slots=True)
class Paragraph:
    rect: Rect
    text: str = ""
    title: str = ""

    def lines(self) -> list[str]:
        if self.rect.inner_width <= 0:
            return []
        return textwrap.wrap(self.text, self.rect.inner_width) or [""]


@dataclass(slots=True)
class ListWidget:
    """Scrollable list; ``top`` is the index of the first visible row."""

    rect: Rect
    title: str = ""
    rows: list[str] = field(default_factory=list)
    top: int = 0

    @property
    def visible(self) -> int:
        return max(1, self.rect.inner_height)

    def _max_top(self) -> int:
        return max(0, len(self.rows) - self.visible)

    def set_rows(self, rows: list[str]) -> None:
        self.rows = rows
        self.top = min(self.top, self._max_top())

    def visible_rows(self) -> list[str]:
        return self.rows[self.top : self.top + self.visible]

    def scroll_top(self) -> None:
        self.top = 0

    def scroll_bottom(self) -> None:
        self.top = self._max_top()

    def scroll_half_page_down(self) -> None:
        self.top = min(self._max_top(), self.top + max(1, self.visible // 2))

    def scroll_half_page_up(self) -> None:
        self.top = max(0, self.top - max(1, self.visible // 2))


@dataclass(slots=True)
class PlotWidget:
    rect: Rect
    title: str = ""
    data: list[float] = field(default_factory=list)


@dataclass(slots=True)
class MainGui:
    status: dict[str, Paragraph]
    input_paragraph: Paragraph
    inbox_list: ListWidget | None = None
    inbox_plot: PlotWidget | None = None

    def widgets(self) -> Iterator[Paragraph | ListWidget | PlotWidget]:
        yield from self.status.values()
        yield self.input_paragraph
        if self.inbox_list is not None:
            yield self.inbox_list
        if self.inbox_plot is not None:
            yield self.inbox_plot


def build_layout(mode: DisplayMode, full_screen: bool, width: int, height: int) -> MainGui:
    """Lay out the widgets for a terminal of ``width`` x ``height`` cells."""
    main_end_x = width if full_screen else int(width * MAIN_WIDTH_RATIO) - 1
    if mode is DisplayMode.TEXT:
        main_end_y = MAX_MSG_DISPLAY_SIZE + 2
        if main_end_y > height:
            main_end_y = max(3, height - 20)
    else:
        main_end_y = int(height * 0.5)
    main = Rect(0, 0, main_end_x, main_end_y)

    status: dict[str, Paragraph] = {}
    if not full_screen:
        start_x = main_end_x + 1
        end_x = start_x + int(width * (1 - MAIN_WIDTH_RATIO)) - 1
        names = STATUS_FIELDS + (TEXT_STATUS_FIELDS if mode is DisplayMode.TEXT else ())
        for row, name in enumerate(names):
            status[name] = Paragraph(Rect(start_x, row * PARAGRAPH_HEIGHT, end_x, (row + 1) * PARAGRAPH_HEIGHT))

    input_paragraph = Paragraph(Rect(0, main_end_y + 1, main_end_x, main_end_y + 2 * PARAGRAPH_HEIGHT + 1))
    gui = MainGui(status=status, input_paragraph=input_paragraph)
    if mode is DisplayMode.TEXT:
        gui.inbox_list = ListWidget(main, title=f"IN messages({MAX_MSG_DISPLAY_SIZE})")
    else:
        gui.inbox_plot = PlotWidget(main, title="IN")
    return gui


class Renderer(ABC):
    """Widget tree for one layout. Subclasses put it on a screen."""

    def __init__(self, view: ViewState, width: int, height: int) -> None:
        self.gui = build_layout(view.display_mode, view.full_screen, width, height)

    @abstractmethod
    def render(self) -> None:
        """Draw the widget tree."""

    def close(self) -> None:
        pass


class CursesRenderer(Renderer):
    def __init__(self, stdscr: curses.window, view: ViewState) -> None:
        self.stdscr = stdscr
        # re-enter curses mode after a previous close() and pick up the new size
        stdscr.refresh()
        height, width = stdscr.getmaxyx()
        _LOGGER.info("Creating gui in %s mode (%dx%d)", view.display_mode.value, width, height)
        super().__init__(view, width, height)

    def close(self) -> None:
        self.stdscr.erase()
        self.stdscr.refresh()
        curses.endwin()

    def render(self) -> None:
        self.stdscr.erase()
        for widget in self.gui.widgets():
            if isinstance(widget, Paragraph):
                self._draw_paragraph(widget)
            elif isinstance(widget, ListWidget):
                self._draw_list(widget)
            else:
                self._draw_plot(widget)
        self.stdscr.refresh()

    def _put(self, y: int, x: int, text: str, attr: int = 0) -> None:
        height, width = self.stdscr.getmaxyx()
        if y < 0 or y >= height or x < 0 or x >= width or not text:
            return
        try:
            self.stdscr.addstr(y, x, text[: width - x], attr)
        except curses.error:
            # curses reports an error after writing the bottom-right cell
            pass

    def _draw_box(self, rect: Rect, title: str) -> None:
        if rect.width < 2 or rect.height < 2:
            return
        inner = rect.width - 2
        self._put(rect.y0, rect.x0, "┌" + "─" * inner + "┐")
        for y in range(rect.y0 + 1, rect.y1 - 1):
            self._put(y, rect.x0, "│")
            self._put(y, rect.x1 - 1, "│")
        self._put(rect.y1 - 1, rect.x0, "└" + "─" * inner + "┘")
        if title:
            self._put(rect.y0, rect.x0 + 1, title[:inner])

    def _draw_paragraph(self, paragraph: Paragraph) -> None:
        rect = paragraph.rect
        self._draw_box(rect, paragraph.title)
        for offset, line in enumerate(paragraph.lines()[: rect.inner_height]):
            self._put(rect.y0 + 1 + offset, rect.x0 + 1, line)

    def _draw_list(self, widget: ListWidget) -> None:
        rect = widget.rect
        self._draw_box(rect, widget.title)
        for offset, row in enumerate(widget.visible_rows()):
            self._put(rect.y0 + 1 + offset, rect.x0 + 1, row[: rect.inner_width])

    def _draw_plot(self, widget: PlotWidget) -> None:
        rect = widget.rect
        self._draw_box(rect, widget.title)
        data = [value for value in widget.data if math.isfinite(value)]
        if not data or rect.inner_height <= 0:
            return
        low, high = min(data), max(data)
        labels = (f"{high:g}", f"{low:g}")
        label_width = max(len(label) for label in labels) + 1
        plot_width = rect.inner_width - label_width
        if plot_width <= 0:
            return
        self._put(rect.y0 + 1, rect.x0 + 1, labels[0])
        self._put(rect.y1 - 2, rect.x0 + 1, labels[1])

        # halved; the difference of two extreme finite bounds overflows to inf
        span = high / 2 - low / 2
        rows = rect.inner_height
        x_start = rect.x0 + 1 + label_width
        for column, value in enumerate(data[-plot_width:]):
            level = 0 if span == 0 else round((value / 2 - low / 2) / span * (rows - 1))
            self._put(rect.y1 - 2 - level, x_start + column, PLOT_MARKER, curses.A_BOLD)


def key_name(key: int | str) -> str | None:
    """Translate a curses key into the name the session understands."""
    if isinstance(key, int):
        if key == curses.KEY_ENTER:
            return "<Enter>"
        if key == curses.KEY_BACKSPACE:
            return "<Backspace>"
        if key == curses.KEY_RESIZE:
            return "<Resize>"
        return None
    if key == "\x1b":
        return "<Escape>"
    if key in ("\n", "\r"):
        return "<Enter>"
    if key in ("\x7f", "\b"):
        return "<Backspace>"
    if key == " ":
        return "<Space>"
    if not key.isprintable():
        return None
    return key


def read_key(stdscr: curses.window) -> str | None:
    """Wait up to the window timeout for a key; None when nothing was typed."""
    try:
        key = stdscr.get_wch()
    except curses.error:
        return None
    return key_name(key)


def setup_terminal(stdscr: curses.window, poll_ms: int) -> None:
    try:
        curses.curs_set(0)
    except curses.error:
        _LOGGER.debug("Terminal cannot hide the cursor")
    curses.set_escdelay(25)
    stdscr.keypad(True)
    stdscr.timeout(poll_ms)
