"""BufferedDispatcher — collects log messages and delivers them over XMPP.

Messages are appended to a pending buffer.  Whenever the flush policy
fires (and once more at finalization) the buffer is concatenated into a
single chat message and sent to every recipient over a freshly opened,
freshly authenticated session that is closed again before ``flush``
returns.

Delivery is best effort.  Connection and authentication failures are
reported to the dispatcher's fallback reporter and the buffer is dropped:
nothing is retried, nothing is sent twice, and the caller emitting the log
record never sees an exception.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError

from jabbersink.bridge.transport import (
    AUTH_OK,
    AuthError,
    ConnectError,
    SessionTransport,
    SlixmppTransport,
    TransportInitError,
)
from jabbersink.models.credentials import Credentials, DebugConfig
from jabbersink.models.policy import FlushPolicy
from jabbersink.models.records import LogEntry, LogLevel
from jabbersink.routing.fallback import FallbackReporter

logger = logging.getLogger(__name__)

TransportFactory = Callable[[DebugConfig], SessionTransport]
ReporterFactory = Callable[[str], FallbackReporter]


class ConfigurationError(ValueError):
    """Raised when a dispatcher is constructed with missing or invalid input."""


class DispatchState(str, Enum):
    """Where the dispatcher is within a flush cycle."""

    IDLE = "idle"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    SENDING = "sending"
    DISCONNECTING = "disconnecting"


class FlushReport(BaseModel):
    """Outcome of the most recent flush attempt."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    stage: DispatchState
    body: str = ""
    sent: list[str] = []
    unconfirmed: list[str] = []
    failed: list[str] = []
    error: str = ""

    @property
    def partial(self) -> bool:
        """``True`` if the transport reported at least one failed send."""
        return bool(self.failed)


class BufferedDispatcher:
    """Buffers log messages and flushes them as XMPP chat messages.

    Parameters
    ----------
    name:
        Name of this output, used in fallback error reports.
    min_level:
        Lowest level accepted by :meth:`log`.  Anything ``LogLevel.parse``
        understands.
    credentials:
        A ``Credentials`` instance or a mapping with ``hostname``, ``port``,
        ``username``, ``password`` and ``resource``.
    recipients:
        One JID or an iterable of JIDs.  Order is kept and duplicates are
        each sent to.
    flush_policy:
        A ``FlushPolicy`` or a raw ``buffer`` value
        (see ``FlushPolicy.from_buffer``).  Defaults to immediate.
    debug:
        Protocol tracing for the transport.
    transport_factory:
        Builds the transport from the debug configuration.  Defaults to
        ``SlixmppTransport``.
    reporter_factory:
        Builds the fallback reporter on the first internal error.

    Raises
    ------
    ConfigurationError
        If a required argument is missing or invalid.
    TransportInitError
        If the transport cannot be constructed.
    """

    def __init__(
        self,
        name: str,
        min_level: Any,
        credentials: Credentials | Mapping[str, Any] | None,
        recipients: str | Iterable[str] | None,
        flush_policy: FlushPolicy | int | str | None = None,
        debug: DebugConfig | None = None,
        *,
        transport_factory: TransportFactory | None = None,
        reporter_factory: ReporterFactory | None = None,
    ) -> None:
        if not name:
            raise ConfigurationError("name is required")
        self._name = name

        try:
            self._min_level = LogLevel.parse(min_level)
        except ValueError as exc:
            raise ConfigurationError(f"min_level: {exc}") from exc

        self._credentials = _coerce_credentials(credentials)
        self._recipients = _coerce_recipients(recipients)

        try:
            self._policy = FlushPolicy.from_buffer(flush_policy)
        except ValueError as exc:
            raise ConfigurationError(f"buffer: {exc}") from exc

        self._debug = debug or DebugConfig()
        self._reporter_factory = reporter_factory or FallbackReporter
        self._reporter: FallbackReporter | None = None

        factory = transport_factory or SlixmppTransport
        try:
            self._transport = factory(self._debug)
        except TransportInitError:
            raise
        except Exception as exc:
            raise TransportInitError(f"Cannot create Jabber client: {exc}") from exc

        self._buffer: list[str] = []
        self._lock = threading.RLock()
        self._state = DispatchState.IDLE
        self._last_report: FlushReport | None = None
        self._flush_count = 0
        self._finalized = False

        logger.debug(
            "Dispatcher %s ready: %d recipient(s), flush %s",
            self._name,
            len(self._recipients),
            self._policy.describe(),
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def min_level(self) -> LogLevel:
        return self._min_level

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def recipients(self) -> tuple[str, ...]:
        return self._recipients

    @property
    def flush_policy(self) -> FlushPolicy:
        return self._policy

    @property
    def transport(self) -> SessionTransport:
        return self._transport

    @property
    def state(self) -> DispatchState:
        return self._state

    @property
    def pending(self) -> list[str]:
        """A copy of the buffered, not yet flushed messages."""
        with self._lock:
            return list(self._buffer)

    @property
    def pending_count(self) -> int:
        return len(self._buffer)

    @property
    def flush_count(self) -> int:
        """Number of flush cycles attempted (empty-buffer flushes excluded)."""
        return self._flush_count

    @property
    def last_report(self) -> FlushReport | None:
        return self._last_report

    @property
    def reporter(self) -> FallbackReporter | None:
        """The fallback reporter, or ``None`` if nothing has been reported yet."""
        return self._reporter

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(self, record: LogEntry | str) -> None:
        """Buffer one message and flush if the policy says so.

        Never raises for delivery problems; those go to the fallback
        reporter.
        """
        message = record.message if isinstance(record, LogEntry) else str(record)
        with self._lock:
            self._buffer.append(message)
            length = len(self._buffer)
            if self._policy.should_flush(length):
                logger.debug("Dispatcher %s: %d buffered, flushing", self._name, length)
                self.flush()

    def log(self, level: Any, message: str) -> bool:
        """Submit *message* if *level* is at or above ``min_level``.

        Returns whether the message was accepted.
        """
        entry_level = LogLevel.parse(level)
        if entry_level < self._min_level:
            return False
        self.submit(LogEntry(message=message, level=entry_level, name=self._name))
        return True

    def flush(self) -> bool:
        """Run one connect/authenticate/send/disconnect cycle.

        Returns ``True`` if the session was established and the message
        handed to the transport for every recipient, ``False`` if connecting
        or authenticating failed.  The buffer is empty afterwards either way.
        """
        with self._lock:
            if not self._buffer:
                return True
            self._flush_count += 1
            try:
                report = self._run_cycle()
            finally:
                self._buffer.clear()
                self._state = DispatchState.IDLE
            self._last_report = report
            return report.ok

    def finalize(self) -> None:
        """Flush whatever is still buffered and make sure no session is left open.

        Safe to call more than once.
        """
        with self._lock:
            if self._buffer:
                self.flush()
            if self._transport.is_connected():
                logger.debug("Dispatcher %s: closing leftover session", self._name)
                self._safe_disconnect()
            if not self._finalized:
                self._finalized = True
                close = getattr(self._transport, "close", None)
                if callable(close):
                    close()

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> BufferedDispatcher:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.finalize()

    def __repr__(self) -> str:
        return (
            f"BufferedDispatcher(name={self._name!r}, "
            f"recipients={list(self._recipients)!r}, "
            f"flush={self._policy.describe()!r}, pending={len(self._buffer)})"
        )

    # ------------------------------------------------------------------
    # Internal: protocol cycle
    # ------------------------------------------------------------------

    def _run_cycle(self) -> FlushReport:
        creds = self._credentials
        body = "".join(self._buffer)

        self._state = DispatchState.CONNECTING
        try:
            connected = self._transport.connect(creds.hostname, creds.port)
            reason = ""
        except Exception as exc:  # noqa: BLE001
            connected = False
            reason = str(exc)
        if not connected:
            error = ConnectError(creds.hostname, creds.port, reason)
            self._report(error)
            return FlushReport(ok=False, stage=DispatchState.CONNECTING, body=body, error=str(error))

        self._state = DispatchState.AUTHENTICATING
        try:
            status, detail = self._transport.authenticate(
                creds.username, creds.password, creds.resource
            )
        except Exception as exc:  # noqa: BLE001
            status, detail = "error", str(exc)
        if status != AUTH_OK:
            error = AuthError(status, detail)
            self._report(error)
            self._state = DispatchState.DISCONNECTING
            self._safe_disconnect()
            return FlushReport(
                ok=False, stage=DispatchState.AUTHENTICATING, body=body, error=str(error)
            )

        self._state = DispatchState.SENDING
        sent: list[str] = []
        unconfirmed: list[str] = []
        failed: list[str] = []
        for recipient in self._recipients:
            try:
                delivered = self._transport.send_message(recipient, body)
            except Exception as exc:  # noqa: BLE001
                self._report(f"Failed to send message to {recipient}: {exc}")
                failed.append(recipient)
                continue
            sent.append(recipient)
            if delivered is None:
                unconfirmed.append(recipient)
            elif not delivered:
                failed.append(recipient)

        if failed:
            logger.warning(
                "Dispatcher %s: %d/%d recipient(s) failed: %s",
                self._name,
                len(failed),
                len(self._recipients),
                ", ".join(failed),
            )

        self._state = DispatchState.DISCONNECTING
        self._safe_disconnect()

        logger.info(
            "Dispatcher %s: flushed %d chars to %d recipient(s)",
            self._name,
            len(body),
            len(sent),
        )
        return FlushReport(
            ok=True,
            stage=DispatchState.SENDING,
            body=body,
            sent=sent,
            unconfirmed=unconfirmed,
            failed=failed,
        )

    def _safe_disconnect(self) -> None:
        try:
            self._transport.disconnect()
        except Exception as exc:  # noqa: BLE001
            self._report(f"Failed to disconnect from Jabber server: {exc}")

    def _report(self, error: Exception | str) -> None:
        try:
            if self._reporter is None:
                self._reporter = self._reporter_factory(self._name)
            self._reporter.error(str(error))
        except Exception as exc:  # noqa: BLE001
            logger.error(
                "Dispatcher %s: fallback reporter failed (%s) while reporting: %s",
                self._name,
                exc,
                error,
            )


# ---------------------------------------------------------------------------
# Internal: argument coercion
# ---------------------------------------------------------------------------


def _coerce_credentials(
    credentials: Credentials | Mapping[str, Any] | None,
) -> Credentials:
    if credentials is None:
        raise ConfigurationError("login credentials are required")
    if isinstance(credentials, Credentials):
        return credentials
    try:
        return Credentials.model_validate(dict(credentials))
    except (ValidationError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid login credentials: {exc}") from exc


def _coerce_recipients(recipients: str | Iterable[str] | None) -> tuple[str, ...]:
    if recipients is None:
        raise ConfigurationError("at least one recipient is required")
    if isinstance(recipients, str):
        recipients = [recipients]
    result = tuple(str(r).strip() for r in recipients)
    if not result or not all(result):
        raise ConfigurationError("recipients must be non-empty JIDs")
    return result
