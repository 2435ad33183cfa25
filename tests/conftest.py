"""Shared test fixtures for jabbersink."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from jabbersink.models.credentials import Credentials, DebugConfig
from jabbersink.routing.dispatcher import BufferedDispatcher


class RecordingTransport:
    """In-memory ``SessionTransport`` that records every call."""

    def __init__(
        self,
        *,
        connect_ok: bool = True,
        connect_error: Exception | None = None,
        auth_result: tuple[str, str] = ("ok", "session started"),
        auth_error: Exception | None = None,
        send_results: dict[str, bool | None] | None = None,
        send_errors: dict[str, Exception] | None = None,
    ) -> None:
        self.connect_ok = connect_ok
        self.connect_error = connect_error
        self.auth_result = auth_result
        self.auth_error = auth_error
        self.send_results = send_results or {}
        self.send_errors = send_errors or {}
        self.calls: list[tuple[Any, ...]] = []
        self.sent: list[tuple[str, str]] = []
        self.debug: DebugConfig | None = None
        self.closed = False
        self._connected = False

    def connect(self, host: str, port: int) -> bool:
        self.calls.append(("connect", host, port))
        if self.connect_error is not None:
            raise self.connect_error
        self._connected = self.connect_ok
        return self.connect_ok

    def authenticate(self, username: str, password: str, resource: str) -> tuple[str, str]:
        self.calls.append(("authenticate", username, password, resource))
        if self.auth_error is not None:
            raise self.auth_error
        return self.auth_result

    def send_message(self, recipient: str, body: str) -> bool | None:
        self.calls.append(("send_message", recipient, body))
        if recipient in self.send_errors:
            raise self.send_errors[recipient]
        self.sent.append((recipient, body))
        return self.send_results.get(recipient)

    def is_connected(self) -> bool:
        return self._connected

    def disconnect(self) -> None:
        self.calls.append(("disconnect",))
        self._connected = False

    def close(self) -> None:
        self.closed = True

    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)

    @property
    def operations(self) -> list[str]:
        return [call[0] for call in self.calls]


class RecordingReporter:
    """Stand-in for ``FallbackReporter`` that keeps the reported messages."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.messages: list[str] = []

    @property
    def error_count(self) -> int:
        return len(self.messages)

    def error(self, message: str) -> None:
        self.messages.append(message)


@pytest.fixture
def login() -> dict[str, Any]:
    """A complete login mapping."""
    return {
        "hostname": "jabber.example.org",
        "port": 5222,
        "username": "logger",
        "password": "s3cret",
        "resource": "logger",
    }


@pytest.fixture
def credentials(login: dict[str, Any]) -> Credentials:
    return Credentials(**login)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def reporters() -> list[RecordingReporter]:
    """Every reporter built by dispatchers from ``make_dispatcher``."""
    return []


@pytest.fixture
def make_dispatcher(
    login: dict[str, Any],
    transport: RecordingTransport,
    reporters: list[RecordingReporter],
) -> Callable[..., BufferedDispatcher]:
    """Factory fixture: a dispatcher wired to the recording transport."""

    def _reporter(name: str) -> RecordingReporter:
        reporter = RecordingReporter(name)
        reporters.append(reporter)
        return reporter

    def _transport(debug: DebugConfig) -> RecordingTransport:
        transport.debug = debug
        return transport

    def _factory(**overrides: Any) -> BufferedDispatcher:
        kwargs: dict[str, Any] = {
            "name": "jabber",
            "min_level": "debug",
            "credentials": login,
            "recipients": ["ops@example.org"],
            "flush_policy": None,
            "transport_factory": _transport,
            "reporter_factory": _reporter,
        }
        kwargs.update(overrides)
        return BufferedDispatcher(**kwargs)

    return _factory
