"""Log levels and the record shape accepted by the dispatcher."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogLevel(IntEnum):
    """The eight syslog-style levels of a log dispatch framework."""

    DEBUG = 0
    INFO = 1
    NOTICE = 2
    WARNING = 3
    ERROR = 4
    CRITICAL = 5
    ALERT = 6
    EMERGENCY = 7

    @classmethod
    def parse(cls, value: Any) -> LogLevel:
        """Accept a ``LogLevel``, a level name or alias, 0-7, or a stdlib level.

        Raises
        ------
        ValueError
            If *value* does not name a level.
        """
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, str):
            text = value.strip().lower()
            if text.isdigit():
                return cls.parse(int(text))
            try:
                return _ALIASES[text]
            except KeyError:
                raise ValueError(f"unknown log level: {value!r}") from None
        if isinstance(value, int) and not isinstance(value, bool):
            if 0 <= value <= 7:
                return cls(value)
            if value >= logging.DEBUG:
                return cls.from_stdlib(value)
        raise ValueError(f"unknown log level: {value!r}")

    @classmethod
    def from_stdlib(cls, levelno: int) -> LogLevel:
        """Map a ``logging`` level number onto the nearest level at or below it."""
        if levelno >= logging.CRITICAL:
            return cls.CRITICAL
        if levelno >= logging.ERROR:
            return cls.ERROR
        if levelno >= logging.WARNING:
            return cls.WARNING
        if levelno > logging.INFO:
            return cls.NOTICE
        if levelno >= logging.INFO:
            return cls.INFO
        return cls.DEBUG

    def to_stdlib(self) -> int:
        return _STDLIB_LEVELS[self]


_ALIASES: dict[str, LogLevel] = {
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "notice": LogLevel.NOTICE,
    "warning": LogLevel.WARNING,
    "warn": LogLevel.WARNING,
    "error": LogLevel.ERROR,
    "err": LogLevel.ERROR,
    "critical": LogLevel.CRITICAL,
    "crit": LogLevel.CRITICAL,
    "alert": LogLevel.ALERT,
    "emergency": LogLevel.EMERGENCY,
    "emerg": LogLevel.EMERGENCY,
}

_STDLIB_LEVELS: dict[LogLevel, int] = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.NOTICE: 25,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ALERT: logging.CRITICAL + 5,
    LogLevel.EMERGENCY: logging.CRITICAL + 10,
}


class LogEntry(BaseModel):
    """A single record handed to the sink.

    Only ``message`` takes part in buffering; the other fields are carried
    for callers that want them.
    """

    model_config = ConfigDict(frozen=True)

    message: str
    level: LogLevel = LogLevel.DEBUG
    name: str = ""
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
