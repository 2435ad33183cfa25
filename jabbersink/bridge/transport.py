"""Session transport — the XMPP capability set used by the dispatcher.

Bridge boundary
---------------
The dispatcher only needs five blocking operations: ``connect``,
``authenticate``, ``send_message``, ``is_connected`` and ``disconnect``.
``SessionTransport`` names that contract; ``SlixmppTransport`` implements
it on top of ``slixmpp``, driving slixmpp's asyncio machinery from a
private event loop so that every call blocks the caller until the protocol
step has finished (or the configured timeout expires).

Each ``connect`` starts a brand new ``ClientXMPP``.  Sessions are never
reused across flushes: re-authenticating on a live stream is rejected by
servers, and a stream that skips authentication silently drops stanzas.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from typing import Any, Callable, Protocol, runtime_checkable

from jabbersink.models.credentials import DebugConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Try-import slixmpp
# ---------------------------------------------------------------------------

_SLIXMPP_AVAILABLE: bool = False

try:
    import slixmpp

    _SLIXMPP_AVAILABLE = True
except ImportError:
    slixmpp = None  # type: ignore[assignment]
    logger.warning(
        "slixmpp not found — SlixmppTransport cannot be constructed.  "
        "Install slixmpp to deliver messages."
    )


def is_slixmpp_available() -> bool:
    """Return ``True`` if the slixmpp backend is importable."""
    return _SLIXMPP_AVAILABLE


# Status codes returned by ``authenticate`` besides ``"ok"``.
AUTH_OK = "ok"
AUTH_REJECTED = "401"
AUTH_TIMEOUT = "408"
AUTH_NOT_CONNECTED = "503"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TransportInitError(RuntimeError):
    """Raised when the transport adapter cannot be built."""


class ConnectError(RuntimeError):
    """A flush could not open a connection to the server."""

    def __init__(self, host: str, port: int, reason: str = "") -> None:
        self.host = host
        self.port = port
        self.reason = reason
        message = f"Failed to connect to Jabber server {host}:{port}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class AuthError(RuntimeError):
    """The server rejected the login during a flush."""

    def __init__(self, status: str, detail: str = "") -> None:
        self.status = status
        self.detail = detail
        super().__init__(
            f"Failed to ident/auth with Jabber server: ({status}) {detail}. "
            "Message not sent."
        )


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class SessionTransport(Protocol):
    """Blocking XMPP operations driven by ``BufferedDispatcher``.

    ``send_message`` returns ``True``/``False`` when the transport can tell
    whether the stanza was delivered, and ``None`` when it cannot.
    """

    def connect(self, host: str, port: int) -> bool:
        ...

    def authenticate(
        self, username: str, password: str, resource: str
    ) -> tuple[str, str]:
        ...

    def send_message(self, recipient: str, body: str) -> bool | None:
        ...

    def is_connected(self) -> bool:
        ...

    def disconnect(self) -> None:
        ...


# ---------------------------------------------------------------------------
# slixmpp implementation
# ---------------------------------------------------------------------------


class SlixmppTransport:
    """``SessionTransport`` backed by ``slixmpp.ClientXMPP``.

    Parameters
    ----------
    debug:
        Protocol tracing configuration.  Tracing goes through the
        ``slixmpp`` logger to stdout, stderr or a file.
    timeout:
        Seconds to wait for each protocol step (connect, login, close).

    Raises
    ------
    TransportInitError
        If slixmpp is missing, no event loop can be created, or the debug
        file cannot be opened.
    """

    def __init__(self, debug: DebugConfig | None = None, *, timeout: float = 30.0) -> None:
        if not _SLIXMPP_AVAILABLE:
            raise TransportInitError("XMPP dependency missing: slixmpp is not installed.")

        self._debug = debug or DebugConfig()
        self._timeout = timeout
        self._client: Any | None = None
        self._host = ""
        self._connected = False
        self._trace_handler: logging.Handler | None = None
        self._trace_level = logging.NOTSET
        self._auth_failure: Any = None
        self._session_handlers: list[tuple[str, Callable[[Any], None]]] = []

        try:
            self._loop = asyncio.new_event_loop()
        except Exception as exc:
            raise TransportInitError(f"Cannot create event loop: {exc}") from exc

        try:
            self._configure_tracing()
        except OSError as exc:
            self._loop.close()
            raise TransportInitError(
                f"Cannot open debug file {self._debug.file!r}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # SessionTransport
    # ------------------------------------------------------------------

    def connect(self, host: str, port: int) -> bool:
        """Open a TCP/XML stream to *host*:*port*.  Returns ``False`` on failure."""
        self._drop_client()
        asyncio.set_event_loop(self._loop)
        client = slixmpp.ClientXMPP(host, "")
        self._bind_session_handlers(client)
        self._client = client
        self._host = host

        logger.info("Connecting to %s:%d", host, port)
        try:
            name, data = self._wait_for(
                ("connected", "connection_failed"),
                lambda: _connect_client(client, host, port),
            )
        except Exception:
            self._abort_connect()
            raise

        if name != "connected":
            logger.info("Connection to %s:%d failed (%s: %s)", host, port, name, data)
            self._abort_connect()
            return False
        return True

    def authenticate(
        self, username: str, password: str, resource: str
    ) -> tuple[str, str]:
        """Log in on the open stream and wait for the session to start."""
        if self._client is None or not self._connected:
            return AUTH_NOT_CONNECTED, "not connected"

        jid = slixmpp.JID(f"{username}@{self._host}/{resource}")
        self._client.requested_jid = jid
        self._client.boundjid = slixmpp.JID(jid)
        self._client.password = password

        name, data = self._wait_for(
            ("session_start", "failed_all_auth", "disconnected")
        )
        if name == "session_start":
            logger.info("Session started as %s", jid)
            return AUTH_OK, "session started"
        if name == "failed_all_auth":
            detail = _failure_detail(data) or _failure_detail(self._auth_failure)
            return AUTH_REJECTED, detail or "authentication failed"
        if name == "disconnected":
            return AUTH_NOT_CONNECTED, "stream closed during authentication"
        return AUTH_TIMEOUT, f"no session after {self._timeout:g}s"

    def send_message(self, recipient: str, body: str) -> bool | None:
        """Queue a ``chat`` stanza.  slixmpp gives no delivery receipt."""
        if self._client is None:
            return False
        self._client.send_message(mto=recipient, mbody=body, mtype="chat")
        logger.debug("Queued message for %s (%d chars)", recipient, len(body))
        return None

    def is_connected(self) -> bool:
        return self._client is not None and self._connected

    def disconnect(self) -> None:
        """Close the stream, letting queued stanzas drain first."""
        client = self._client
        if client is None:
            return
        try:
            name, _ = self._wait_for(("disconnected",), client.disconnect)
            if name == "timeout":
                abort = getattr(client, "abort", None)
                if callable(abort):
                    abort()
        finally:
            self._drop_client()
        logger.info("Disconnected from %s", self._host)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Release the event loop and any tracing handler."""
        self._drop_client()
        if self._trace_handler is not None:
            logging.getLogger("slixmpp").removeHandler(self._trace_handler)
            self._trace_handler.close()
            self._trace_handler = None
            logging.getLogger("slixmpp").setLevel(self._trace_level)
        if not self._loop.is_closed():
            self._loop.close()

    def __repr__(self) -> str:
        state = "connected" if self.is_connected() else "idle"
        return f"SlixmppTransport(host={self._host!r}, state={state})"

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _bind_session_handlers(self, client: Any) -> None:
        """Track *client*'s stream state; events from stale clients are ignored."""

        def _on_connected(_event: Any) -> None:
            if client is self._client:
                self._connected = True

        def _on_disconnected(_event: Any) -> None:
            if client is self._client:
                self._connected = False

        def _on_failed_auth(stanza: Any) -> None:
            if client is self._client:
                self._auth_failure = stanza

        self._session_handlers = [
            ("connected", _on_connected),
            ("disconnected", _on_disconnected),
            ("failed_auth", _on_failed_auth),
        ]
        for name, handler in self._session_handlers:
            client.add_event_handler(name, handler)

    def _wait_for(
        self,
        events: tuple[str, ...],
        action: Callable[[], Any] | None = None,
    ) -> tuple[str, Any]:
        """Run the loop until one of *events* fires; ``("timeout", None)`` otherwise."""
        client = self._client
        future = self._loop.create_future()
        handlers: list[tuple[str, Callable[[Any], None]]] = []

        for name in events:
            def _handler(data: Any, _name: str = name) -> None:
                if not future.done():
                    future.set_result((_name, data))

            client.add_event_handler(name, _handler)
            handlers.append((name, _handler))

        try:
            if action is not None:
                action()
            return self._loop.run_until_complete(
                asyncio.wait_for(future, self._timeout)
            )
        except asyncio.TimeoutError:
            logger.debug("Timed out waiting for %s", ", ".join(events))
            return "timeout", None
        finally:
            for name, handler in handlers:
                client.del_event_handler(name, handler)

    def _abort_connect(self) -> None:
        client = self._client
        if client is not None:
            cancel = getattr(client, "cancel_connection_attempt", None)
            if callable(cancel):
                cancel()
        self._drop_client()

    def _drop_client(self) -> None:
        client = self._client
        if client is not None:
            for name, handler in self._session_handlers:
                client.del_event_handler(name, handler)
        self._session_handlers = []
        self._client = None
        self._connected = False
        self._auth_failure = None

    def _configure_tracing(self) -> None:
        if self._debug.level <= 0:
            return
        target = self._debug.file or "stdout"
        if target == "stdout":
            handler: logging.Handler = logging.StreamHandler(sys.stdout)
        elif target == "stderr":
            handler = logging.StreamHandler(sys.stderr)
        else:
            handler = logging.FileHandler(target, encoding="utf-8")
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        trace_logger = logging.getLogger("slixmpp")
        self._trace_level = trace_logger.level
        trace_logger.setLevel(logging.INFO if self._debug.level == 1 else logging.DEBUG)
        trace_logger.addHandler(handler)
        self._trace_handler = handler


def _connect_client(client: Any, host: str, port: int) -> Any:
    """Connect with an explicit host across slixmpp API variants."""
    connect_method = client.connect
    param_names = set(inspect.signature(connect_method).parameters)

    if "host" in param_names and "port" in param_names:
        return connect_method(host=host, port=port)
    return connect_method((host, port))


def _failure_detail(stanza: Any) -> str:
    """Extract the SASL failure condition/text from a failure stanza."""
    if not stanza:
        return ""
    try:
        condition = stanza["condition"]
        text = stanza["text"]
    except (KeyError, TypeError):
        return str(stanza)
    return f"{condition} {text}".strip()
