"""Constants for the serial monitor."""

from __future__ import annotations

MAX_MSG_CAPACITY = 10_000
MAX_POINT_CAPACITY = 200
MSG_BUFF_SIZE = 1_000

READ_CHUNK_SIZE = 512
DEFAULT_BAUD = 9600
DEFAULT_READ_TIMEOUT_MS = 10

LOG_FILE_NAME = "serial_monitor_logs.log"

INPUT_PREFIX = ">> "
TIME_FORMAT = "%H:%M:%S.%f"

HEX_CHARS_PER_LINE = 16
HEX_BYTES_PER_LINE = HEX_CHARS_PER_LINE // 2

TEXT_NAVIGATION_INSTRUCTIONS = (
    "i - enter input mode; h - hex mode; c - clear messages; s - print timestamps; "
    "j - scroll down; k - scroll up; t - scroll to top; b - scroll to bottom; "
    "f - enter/exit follow mode, p - pause/unpause; m - change mode; z - zoom in/out; ESC - exit"
)
PLOT_NAVIGATION_INSTRUCTIONS = (
    "i - enter input mode; c - clear messages; p - pause/unpause; m - change mode; "
    "z - zoom in/out; ESC - exit"
)

# UI geometry
MAX_MSG_DISPLAY_SIZE = 30
PARAGRAPH_HEIGHT = 3
MAIN_WIDTH_RATIO = 0.75
EVENT_POLL_MS = 50
