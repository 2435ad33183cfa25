"""Fallback reporting path for failures inside the sink itself.

A sink cannot report its own delivery problems through itself, so each
dispatcher owns a ``FallbackReporter`` that writes error records to
stderr.  The reporter is built on first use and is deliberately
independent of the transport and of the application's logging setup: it
uses a private, unregistered ``logging.Logger`` that never propagates.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


class FallbackReporter:
    """Writes severity-error records to stderr via Rich.

    Parameters
    ----------
    name:
        Shown as the logger name on every record, normally the name of the
        owning dispatcher.
    console:
        Console to write to.  Defaults to a fresh stderr console.
    """

    def __init__(self, name: str, console: Console | None = None) -> None:
        self._name = name
        self._console = console or Console(stderr=True)
        self._logger = logging.Logger(f"jabbersink.fallback.{name}", logging.ERROR)
        self._logger.propagate = False
        self._logger.addHandler(
            RichHandler(
                console=self._console,
                level=logging.ERROR,
                show_path=False,
                rich_tracebacks=False,
            )
        )
        self._error_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def error_count(self) -> int:
        """Number of errors reported so far."""
        return self._error_count

    def error(self, message: str) -> None:
        self._error_count += 1
        self._logger.error("%s", message.rstrip("\n"))
