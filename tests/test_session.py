from __future__ import annotations

import pytest
import serial

from conftest import FakeRenderer, text_message
from serial_monitor import link as link_module
from serial_monitor.config import MonitorConfig
from serial_monitor.const import INPUT_PREFIX, PLOT_NAVIGATION_INSTRUCTIONS, TEXT_NAVIGATION_INSTRUCTIONS
from serial_monitor.link import SerialLink
from serial_monitor.reader import SerialReader
from serial_monitor.session import Session
from serial_monitor.store import Aggregator
from serial_monitor.view import DisplayMode


def _feed(session, msg_queue, *texts: str) -> None:
    for index, text in enumerate(texts):
        msg_queue.put(text_message(text, index))
    session.pump()


def test_start_seeds_status_paragraphs(make_session):
    session = make_session()
    status = session.gui.status
    assert status["baud"].text == "Baud: 115200"
    assert status["device"].text == "Device: /dev/ttyFAKE0"
    assert status["read_timeout"].text == "Read timeout [ms]: 10"
    assert status["logs_enabled"].text == "Logs enabled: false"
    assert status["pause"].text == "Pause: false"
    assert status["follow"].text == "Follow: true"
    assert session.gui.input_paragraph.text == TEXT_NAVIGATION_INSTRUCTIONS
    assert session.renderer.renders == 1


def test_pump_moves_messages_and_renders(make_session, msg_queue):
    session = make_session()
    _feed(session, msg_queue, "a\n", "b\n")
    assert session.gui.inbox_list.rows == ["[1]: b", "[2]: a"]
    assert session.renderer.renders == 2


def test_pump_without_messages_does_not_render(make_session):
    session = make_session()
    assert session.pump() == 0
    assert session.renderer.renders == 1


def test_escape_in_normal_mode_exits(make_session):
    session = make_session()
    assert session.handle_key("<Escape>") is False


def test_input_mode_round_trip(make_session, link):
    session = make_session()
    session.handle_key("i")
    assert session.view.input_mode
    assert session.gui.input_paragraph.text == INPUT_PREFIX

    for key in ("h", "i", "<Space>", "x", "<Backspace>", "y"):
        session.handle_key(key)
    assert session.input_buffer == "hi y"
    assert session.gui.input_paragraph.text == INPUT_PREFIX + "hi y"

    assert session.handle_key("<Enter>") is True
    assert link.written == [b"hi y"]
    assert session.bytes_written == 4
    assert session.input_buffer == ""
    assert session.gui.status["written"].text == "Written [B]: 4"

    assert session.handle_key("<Escape>") is True
    assert not session.view.input_mode
    assert session.gui.input_paragraph.text == TEXT_NAVIGATION_INSTRUCTIONS


def test_commands_are_typed_in_input_mode(make_session):
    session = make_session()
    session.handle_key("i")
    session.handle_key("p")
    session.handle_key("m")
    assert not session.view.paused
    assert session.view.display_mode is DisplayMode.TEXT
    assert session.input_buffer == "pm"


def test_named_keys_are_not_typed(make_session):
    session = make_session()
    session.handle_key("i")
    session.handle_key("<Backspace>")
    session.handle_key("<Tab>")
    assert session.input_buffer == ""


def test_input_mode_blocked_while_paused(make_session):
    session = make_session()
    session.handle_key("p")
    session.handle_key("i")
    assert not session.view.input_mode


def test_write_failure_propagates(make_session, link):
    session = make_session()
    link.fail_writes = True
    session.handle_key("i")
    session.handle_key("x")
    with pytest.raises(OSError):
        session.handle_key("<Enter>")


def test_pause_and_resume_reopens_port_without_losing_messages(make_session, link, msg_queue):
    session = make_session()
    msg_queue.put(text_message("queued\n"))

    session.handle_key("p")
    assert session.view.paused
    assert session.reader.paused
    assert not link.is_open
    assert link.closed == 1
    assert session.gui.status["pause"].text == "Pause: true"

    session.handle_key("p")
    assert not session.view.paused
    assert not session.reader.paused
    assert link.is_open
    assert link.opened == 1

    session.pump()
    assert [msg.content.text for msg in session.store] == ["queued\n"]
    session.pump()
    assert len(session.store) == 1


def test_mode_switch_rebuilds_and_reseeds(make_session, msg_queue):
    session = make_session()
    _feed(session, msg_queue, "1\n", "oops\n", "3\n")
    first = session.renderer

    session.handle_key("m")
    assert first.closed
    assert session.renderer is not first
    assert session.view.display_mode is DisplayMode.PLOT
    assert session.gui.inbox_list is None
    assert session.gui.inbox_plot.data == [1.0, 3.0]
    assert "hex_mode" not in session.gui.status
    assert session.gui.input_paragraph.text == PLOT_NAVIGATION_INSTRUCTIONS
    assert not session.view.paused
    assert not session.reader.paused


def test_rebuild_keeps_user_pause(make_session):
    session = make_session()
    session.handle_key("p")
    session.handle_key("z")
    assert session.view.full_screen
    assert session.view.paused
    assert session.reader.paused
    assert session.gui.status == {}


def test_clear_in_plot_mode_starts_fresh(make_session, msg_queue):
    session = make_session(mode=DisplayMode.PLOT)
    _feed(session, msg_queue, "1\n", "2\n")
    assert session.gui.inbox_plot.data == [1.0, 2.0]
    old_store = session.store

    session.handle_key("c")
    assert session.store is not old_store
    assert session.gui.inbox_plot.data == []

    _feed(session, msg_queue, "7\n")
    assert session.gui.inbox_plot.data == [7.0]


def test_text_only_commands_ignored_in_plot_mode(make_session):
    session = make_session(mode=DisplayMode.PLOT)
    for key in ("f", "s", "h", "j"):
        session.handle_key(key)
    assert session.view.follow_mode
    assert not session.view.print_timestamps
    assert not session.view.hex_mode


def test_timestamp_and_hex_toggles_rerender_rows(make_session, msg_queue):
    session = make_session()
    _feed(session, msg_queue, "AB\n")

    session.handle_key("h")
    assert session.gui.inbox_list.rows == ["[1]: AB", "0000-0007  41 42"]
    assert session.gui.status["hex_mode"].text == "Hexmode: true"

    session.handle_key("s")
    assert session.gui.inbox_list.rows[0] == "[12:00:00.000000]: AB"
    assert session.gui.status["timestamps"].text == "Timestamps: true"


def test_follow_mode_keeps_newest_in_view(make_session, msg_queue):
    session = make_session()
    _feed(session, msg_queue, *(f"{n}\n" for n in range(100)))
    inbox = session.gui.inbox_list

    session.handle_key("b")
    assert inbox.top > 0
    _feed(session, msg_queue, "new\n")
    assert inbox.top == 0

    session.handle_key("f")
    assert session.gui.status["follow"].text == "Follow: false"
    session.handle_key("b")
    bottom = inbox.top
    _feed(session, msg_queue, "newer\n")
    assert inbox.top == bottom


def test_scroll_keys(make_session, msg_queue):
    session = make_session()
    _feed(session, msg_queue, *(f"{n}\n" for n in range(100)))
    inbox = session.gui.inbox_list
    half = inbox.visible // 2

    session.handle_key("j")
    assert inbox.top == half
    session.handle_key("k")
    assert inbox.top == 0
    session.handle_key("b")
    assert inbox.top == len(inbox.rows) - inbox.visible
    session.handle_key("t")
    assert inbox.top == 0


def test_store_capacity_applies_through_session(make_session, msg_queue):
    session = make_session(capacity=3)
    _feed(session, msg_queue, "a\n", "b\n", "c\n", "d\n")
    assert [msg.content.text for msg in session.store] == ["d\n", "c\n", "b\n"]


def test_run_loop_stops_on_escape(make_session, msg_queue):
    session = make_session()
    msg_queue.put(text_message("x\n"))
    keys = iter([None, "s", "<Escape>"])
    session.run(lambda: next(keys))
    assert len(session.store) == 1
    assert session.view.print_timestamps


class _VanishingSerial:
    """Port handle whose device is unplugged on the first read."""

    def __init__(self, **kwargs) -> None:
        self.gone = False
        self.closed = False

    def flush(self) -> None:
        if self.gone:
            raise serial.SerialException("device gone")

    def reset_input_buffer(self) -> None:
        pass

    def reset_output_buffer(self) -> None:
        pass

    def read(self, size: int) -> bytes:
        self.gone = True
        raise serial.SerialException("device reports readiness to read but returned no data")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def unplugged_session(monkeypatch, msg_queue):
    handles: list[_VanishingSerial] = []

    def factory(**kwargs):
        handles.append(_VanishingSerial(**kwargs))
        return handles[-1]

    monkeypatch.setattr(link_module.serial, "Serial", factory)
    link = SerialLink("/dev/ttyUSB0", 115200, 10)
    link.open()
    reader = SerialReader(link, msg_queue)
    reader.resume()
    session = Session(MonitorConfig(port=link.port), link, reader, Aggregator(msg_queue), FakeRenderer)
    session.start()
    assert reader.step() is None
    assert reader.faulted
    return session, handles


def test_read_error_pauses_session_and_resume_reopens(unplugged_session):
    session, handles = unplugged_session
    renders = session.renderer.renders

    session.pump()
    assert session.view.paused
    assert session.gui.status["pause"].text == "Pause: true"
    assert not session.link.is_open
    assert handles[0].closed
    assert session.renderer.renders == renders + 1

    session.handle_key("p")
    assert not session.view.paused
    assert session.link.is_open
    assert len(handles) == 2
    assert not session.reader.paused
    assert not session.reader.faulted
    assert session.gui.status["pause"].text == "Pause: false"


def test_pause_key_after_read_error_closes_dead_port(unplugged_session):
    session, handles = unplugged_session

    session.handle_key("p")
    assert session.view.paused
    assert not session.link.is_open
    assert handles[0].closed

    session.handle_key("p")
    assert not session.view.paused
    assert session.link.is_open
    assert len(handles) == 2


def test_rebuild_after_read_error_does_not_resume_reader(unplugged_session):
    session, _ = unplugged_session

    session.handle_key("m")
    assert session.view.display_mode is DisplayMode.PLOT
    assert session.view.paused
    assert session.reader.paused
    assert not session.link.is_open
    assert session.gui.status["pause"].text == "Pause: true"


def test_failed_reopen_stays_paused(make_session, link):
    session = make_session()
    session.handle_key("p")

    def missing_device() -> None:
        raise serial.SerialException("could not open port /dev/ttyFAKE0")

    link.open = missing_device
    session.handle_key("p")
    assert session.view.paused
    assert session.reader.paused
    assert session.gui.status["pause"].text == "Pause: true"
