"""Minimal levelled logger writing coloured lines to a text stream."""

from __future__ import annotations

import enum
import os
import sys
import threading
from datetime import datetime
from typing import Optional, TextIO

_WINDOWS = os.name == "nt"
_COLOR_RESET = "" if _WINDOWS else "\x1b[0;0m"


class FatalError(RuntimeError):
    """Raised after a fatal message has been logged."""


class Level(enum.IntEnum):
    DEBUG = 0
    INFO = 1
    WARN = 2
    ERR = 3
    FATAL = 4

    def tag(self) -> str:
        """Three letter tag printed in front of each line."""
        return _TAGS.get(self, "???")

    def color(self) -> str:
        """Terminal escape sequence used for this level."""
        if _WINDOWS:
            return ""
        return _COLORS.get(self, "\x1b[31;1m")


_TAGS = {
    Level.DEBUG: "DBG",
    Level.INFO: "NFO",
    Level.WARN: "WRN",
    Level.ERR: "ERR",
    Level.FATAL: "FTL",
}

_COLORS = {
    Level.DEBUG: "\x1b[37;0m",
    Level.INFO: "\x1b[37;1m",
    Level.WARN: "\x1b[33;1m",
}

_LEVEL_NAMES = {
    "debug": Level.DEBUG,
    "info": Level.INFO,
    "warn": Level.WARN,
    "err": Level.ERR,
    "fatal": Level.FATAL,
}


class _Logger:
    def __init__(self) -> None:
        self.level = Level.INFO
        self.stream: Optional[TextIO] = None
        self.lock = threading.Lock()

    def emit(self, level: Level, msg: str, args: tuple) -> None:
        if level < self.level:
            return
        text = msg % args if args else msg
        now = datetime.now().astimezone()
        stream = self.stream if self.stream is not None else sys.stdout
        with self.lock:
            stream.write(f"{level.color()}[{level.tag()}] {now}\t{text}{_COLOR_RESET}\n")
            stream.flush()
        if level is Level.FATAL:
            raise FatalError(text)


_logger = _Logger()


def set_level(name: str) -> None:
    """Set the global log level by name (debug, info, warn, err, fatal)."""
    key = name.lower()
    try:
        _logger.level = _LEVEL_NAMES[key]
    except KeyError:
        raise ValueError(f"invalid log level: '{key}'") from None


def set_output(stream: Optional[TextIO]) -> None:
    """Send log lines to ``stream``; ``None`` means standard output."""
    _logger.stream = stream


def debug(msg: str, *args) -> None:
    _logger.emit(Level.DEBUG, msg, args)


def info(msg: str, *args) -> None:
    _logger.emit(Level.INFO, msg, args)


def warn(msg: str, *args) -> None:
    _logger.emit(Level.WARN, msg, args)


def error(msg: str, *args) -> None:
    _logger.emit(Level.ERR, msg, args)


def fatal(msg: str, *args) -> None:
    """Log a fatal message and raise FatalError."""
    _logger.emit(Level.FATAL, msg, args)