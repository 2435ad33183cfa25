"""Environment-driven settings for building a Jabber sink.

Reads ``JABBERSINK_*`` environment variables and an optional ``.env`` file
via pydantic-settings.  Nothing here is validated beyond types: missing
login fields or recipients surface as ``ConfigurationError`` when a
dispatcher is built.

Examples
--------
Configure via environment::

    export JABBERSINK_HOSTNAME=jabber.example.org
    export JABBERSINK_USERNAME=logger
    export JABBERSINK_PASSWORD=secret
    export JABBERSINK_RECIPIENTS=ops@example.org,dev@example.org
    export JABBERSINK_BUFFER=5
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from jabbersink.bridge.transport import SlixmppTransport
from jabbersink.models.credentials import DebugConfig
from jabbersink.models.policy import FlushPolicy
from jabbersink.routing.dispatcher import BufferedDispatcher
from jabbersink.routing.handler import JabberHandler


class SinkSettings(BaseSettings):
    """Everything needed to construct a ``BufferedDispatcher``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="JABBERSINK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Output identity
    name: str = "jabber"
    min_level: str = "debug"

    # Login
    hostname: str = ""
    port: int = 5222
    username: str = ""
    password: str = ""
    resource: str = "logger"

    # Delivery
    recipients: Annotated[list[str], NoDecode] = []
    buffer: int | str | None = None
    timeout: float = 30.0

    # XMPP protocol tracing
    debug_level: int = 0
    debug_file: str | None = None

    # The package's own logging (CLI only)
    log_level: str = "WARNING"

    @field_validator("recipients", mode="before")
    @classmethod
    def _split_recipients(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return value

    def login(self) -> dict[str, Any]:
        """The login mapping, with unset fields left out."""
        fields = {
            "hostname": self.hostname,
            "port": self.port,
            "username": self.username,
            "password": self.password,
            "resource": self.resource,
        }
        return {key: value for key, value in fields.items() if value not in ("", None)}

    def flush_policy(self) -> FlushPolicy:
        return FlushPolicy.from_buffer(self.buffer)

    def debug_config(self) -> DebugConfig:
        return DebugConfig(level=self.debug_level, file=self.debug_file)

    def build_dispatcher(self, **overrides: Any) -> BufferedDispatcher:
        """Build a dispatcher from these settings.

        Keyword arguments override the matching ``BufferedDispatcher``
        arguments (e.g. ``transport_factory`` in tests).
        """
        kwargs: dict[str, Any] = {
            "name": self.name,
            "min_level": self.min_level,
            "credentials": self.login(),
            "recipients": self.recipients,
            "flush_policy": self.buffer,
            "debug": self.debug_config(),
            "transport_factory": self.make_transport,
        }
        kwargs.update(overrides)
        return BufferedDispatcher(**kwargs)

    def build_handler(self, **overrides: Any) -> JabberHandler:
        return JabberHandler(dispatcher=self.build_dispatcher(**overrides))

    def make_transport(self, debug: DebugConfig) -> SlixmppTransport:
        """Default transport factory: slixmpp with the configured timeout."""
        return SlixmppTransport(debug, timeout=self.timeout)
