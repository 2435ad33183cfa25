"""``logging`` integration — a ``logging.Handler`` that feeds a dispatcher.

Usage
-----
>>> handler = JabberHandler(
...     name="jabber",
...     min_level="error",
...     credentials={"hostname": "jabber.example.org", "port": 5222,
...                  "username": "logger", "password": "secret",
...                  "resource": "logger"},
...     recipients=["ops@jabber.example.org"],
...     flush_policy=5,
... )
>>> logging.getLogger("app").addHandler(handler)

The root logging machinery does the level filtering (the handler level is
set from ``min_level``) and calls :meth:`JabberHandler.close` at shutdown,
which flushes anything still buffered.
"""

from __future__ import annotations

import logging
from typing import Any

from jabbersink.models.records import LogEntry, LogLevel
from jabbersink.routing.dispatcher import BufferedDispatcher


class JabberHandler(logging.Handler):
    """Sends formatted log records as Jabber chat messages.

    Either pass the ``BufferedDispatcher`` arguments directly, or wrap an
    existing dispatcher with ``JabberHandler(dispatcher=...)``.

    Messages are concatenated without a separator when flushed, so each
    formatted record is followed by ``terminator``.
    """

    terminator = "\n"

    def __init__(
        self,
        *args: Any,
        dispatcher: BufferedDispatcher | None = None,
        **kwargs: Any,
    ) -> None:
        if dispatcher is None:
            dispatcher = BufferedDispatcher(*args, **kwargs)
        elif args or kwargs:
            raise TypeError("pass either a dispatcher or dispatcher arguments, not both")
        super().__init__(level=dispatcher.min_level.to_stdlib())
        self._dispatcher = dispatcher
        self.set_name(dispatcher.name)

    @property
    def dispatcher(self) -> BufferedDispatcher:
        return self._dispatcher

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record) + self.terminator
            self._dispatcher.submit(
                LogEntry(
                    message=message,
                    level=LogLevel.from_stdlib(record.levelno),
                    name=record.name,
                )
            )
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def flush(self) -> None:
        """Send the buffer now, if anything is waiting."""
        self.acquire()
        try:
            if self._dispatcher.pending_count:
                self._dispatcher.flush()
        finally:
            self.release()

    def close(self) -> None:
        self.acquire()
        try:
            self._dispatcher.finalize()
        finally:
            self.release()
        super().close()
