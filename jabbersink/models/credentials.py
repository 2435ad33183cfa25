"""Connection and protocol-tracing settings handed to the transport."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    """Host, port and login for the Jabber account messages are sent from.

    The dispatcher never inspects these beyond passing them to the
    transport's ``connect`` and ``authenticate`` operations.
    """

    model_config = ConfigDict(frozen=True)

    hostname: str = Field(min_length=1)
    port: int = Field(ge=1, le=65535)
    username: str = Field(min_length=1)
    password: str = Field(min_length=1, repr=False)
    resource: str = Field(min_length=1)

    @property
    def jid(self) -> str:
        """Full JID in ``user@host/resource`` form."""
        return f"{self.username}@{self.hostname}/{self.resource}"


class DebugConfig(BaseModel):
    """XMPP protocol tracing.

    ``level`` 0 disables tracing, 1 traces at INFO, 2 and above at DEBUG.
    ``file`` is a path, or ``"stdout"`` / ``"stderr"``.
    """

    model_config = ConfigDict(frozen=True)

    level: int = Field(default=0, ge=0)
    file: str | None = None
