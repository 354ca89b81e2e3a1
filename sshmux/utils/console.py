"""Colorful console logging formatter."""

import logging
import re
from datetime import datetime

# ANSI color codes
COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
    "white": "\033[37m",
    "bright_black": "\033[90m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
    "bright_yellow": "\033[93m",
    "bright_blue": "\033[94m",
    "bright_magenta": "\033[95m",
    "bright_cyan": "\033[96m",
    "bg_red": "\033[41m",
}

LEVEL_COLORS = {
    "DEBUG": COLORS["bright_black"],
    "INFO": COLORS["bright_green"],
    "WARNING": COLORS["bright_yellow"],
    "ERROR": COLORS["bright_red"],
    "CRITICAL": COLORS["bg_red"] + COLORS["white"] + COLORS["bold"],
}

# Component colors for logger names (longest prefix wins)
COMPONENT_COLORS = {
    "sshmux.services.lifecycle": COLORS["bright_magenta"],
    "sshmux.services.pool": COLORS["bright_magenta"],
    "sshmux.services.sweeper": COLORS["yellow"],
    "sshmux.services.cache": COLORS["bright_blue"],
    "sshmux.services": COLORS["cyan"],
    "sshmux.server": COLORS["bright_cyan"],
    "sshmux.tools": COLORS["bright_blue"],
    "sshmux.middleware": COLORS["yellow"],
    "sshmux.config": COLORS["green"],
}
DEFAULT_COMPONENT_COLOR = COLORS["white"]

TARGET_PATTERN = re.compile(r"([\w.\-]+@[\w.\-]+(?::\d+)?)")
SECONDS_PATTERN = re.compile(r"(\d+(?:\.\d+)?s)\b")
COUNT_PATTERN = re.compile(r"((?:rows|sockets|connections|entries)=\d+(?:/\d+)?)")

_COMPONENT_PREFIXES = sorted(COMPONENT_COLORS, key=len, reverse=True)


class ColorfulFormatter(logging.Formatter):
    """Single-line formatter: time | level | component | message."""

    def __init__(self, use_colors: bool = True) -> None:
        """Initialize the formatter.

        Args:
            use_colors: Whether to use ANSI colors.
        """
        super().__init__()
        self.use_colors = use_colors

    def _colorize(self, text: str, color: str) -> str:
        if not self.use_colors:
            return text
        return f"{color}{text}{COLORS['reset']}"

    def _component_color(self, name: str) -> str:
        for prefix in _COMPONENT_PREFIXES:
            if name.startswith(prefix):
                return COMPONENT_COLORS[prefix]
        return DEFAULT_COMPONENT_COLOR

    def _format_timestamp(self, record: logging.LogRecord) -> str:
        dt = datetime.fromtimestamp(record.created)
        return f"{dt:%H:%M:%S}.{int(record.msecs):03d} {dt:%m/%d}"

    def _format_component(self, record: logging.LogRecord) -> str:
        name = record.name.removeprefix("sshmux.")
        return self._colorize(f"{name:<20}", self._component_color(record.name))

    def _highlight_message(self, message: str) -> str:
        if not self.use_colors:
            return message
        message = TARGET_PATTERN.sub(
            f"{COLORS['bright_magenta']}\\1{COLORS['reset']}", message
        )
        message = SECONDS_PATTERN.sub(
            f"{COLORS['bright_yellow']}\\1{COLORS['reset']}", message
        )
        message = COUNT_PATTERN.sub(f"{COLORS['cyan']}\\1{COLORS['reset']}", message)
        return message

    def format(self, record: logging.LogRecord) -> str:
        timestamp = self._colorize(self._format_timestamp(record), COLORS["dim"])
        level = self._colorize(
            f"{record.levelname:<8}", LEVEL_COLORS.get(record.levelname, COLORS["white"])
        )
        component = self._format_component(record)
        sep = self._colorize("|", COLORS["dim"])
        message = self._highlight_message(record.getMessage())

        line = f"{timestamp} {sep} {level} {sep} {component} {sep} {message}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class ConnectionEventFormatter(ColorfulFormatter):
    """Adds a short marker for connection lifecycle events."""

    MARKERS = (
        (("error", "failed", "timed out"), "bright_red", "!!"),
        (("forced", "stale", "evict"), "bright_yellow", "! "),
        (("established", "ready", "starting"), "bright_green", "+ "),
        (("closing", "closed", "removing", "removed"), "bright_yellow", "- "),
        (("reusing",), "bright_magenta", "~ "),
    )

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        if not self.use_colors:
            return base

        message = record.getMessage().lower()
        for keywords, color, marker in self.MARKERS:
            if any(keyword in message for keyword in keywords):
                return f"{COLORS[color]}{marker}{COLORS['reset']}  {base}"
        return f"    {base}"
