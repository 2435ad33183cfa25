"""Flush-trigger policy for the pending message buffer."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


class FlushMode(str, Enum):
    """When the dispatcher flushes on its own."""

    IMMEDIATE = "immediate"
    COUNT = "count"
    MANUAL = "manual"


class FlushPolicy(BaseModel):
    """Decides whether a buffer of a given length must be flushed now.

    ``COUNT`` fires only when the length is *exactly* ``threshold``.  A
    buffer that somehow skips past the threshold keeps growing until
    finalization.
    """

    model_config = ConfigDict(frozen=True)

    mode: FlushMode = FlushMode.IMMEDIATE
    threshold: int = 1

    @model_validator(mode="after")
    def _check_threshold(self) -> FlushPolicy:
        if self.mode == FlushMode.COUNT and self.threshold < 1:
            raise ValueError("count threshold must be a positive integer")
        return self

    @classmethod
    def immediate(cls) -> FlushPolicy:
        return cls(mode=FlushMode.IMMEDIATE)

    @classmethod
    def count(cls, threshold: int) -> FlushPolicy:
        return cls(mode=FlushMode.COUNT, threshold=threshold)

    @classmethod
    def manual(cls) -> FlushPolicy:
        return cls(mode=FlushMode.MANUAL, threshold=0)

    @classmethod
    def from_buffer(cls, value: Any) -> FlushPolicy:
        """Parse the classic ``buffer`` option.

        ``None``, ``0`` and ``""`` mean send every message immediately,
        ``"-"`` means hold everything until finalization, and a positive
        integer (or numeric string) is the number of messages to collect
        before sending.

        Raises
        ------
        ValueError
            If *value* is none of the above.
        """
        if isinstance(value, FlushPolicy):
            return value
        if value is None or value == "" or value == 0:
            return cls.immediate()
        if isinstance(value, str):
            text = value.strip()
            if text == "-":
                return cls.manual()
            if not text.isdigit():
                raise ValueError(f"invalid buffer value: {value!r}")
            value = int(text)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"invalid buffer value: {value!r}")
        if value == 0:
            return cls.immediate()
        if value < 0:
            raise ValueError(f"buffer size must not be negative: {value}")
        return cls.count(value)

    def should_flush(self, length: int) -> bool:
        """Return ``True`` when a buffer of *length* entries must be sent."""
        if self.mode == FlushMode.IMMEDIATE:
            return True
        if self.mode == FlushMode.COUNT:
            return length == self.threshold
        return False

    def describe(self) -> str:
        if self.mode == FlushMode.COUNT:
            return f"every {self.threshold} message(s)"
        if self.mode == FlushMode.MANUAL:
            return "on finalize only"
        return "every message"
