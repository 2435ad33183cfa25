"""jabbersink: buffered delivery of log messages over Jabber/XMPP.

A ``BufferedDispatcher`` collects log messages and, whenever its flush
policy fires, sends them as one chat message to every configured
recipient over a short-lived, freshly authenticated XMPP session.
``JabberHandler`` plugs the dispatcher into the standard ``logging``
module.
"""

__version__ = "0.3.0"
__description__ = "Log sink that delivers buffered log messages over Jabber/XMPP"

from jabbersink.bridge.transport import (
    AuthError,
    ConnectError,
    SessionTransport,
    SlixmppTransport,
    TransportInitError,
)
from jabbersink.models.credentials import Credentials, DebugConfig
from jabbersink.models.policy import FlushMode, FlushPolicy
from jabbersink.models.records import LogEntry, LogLevel
from jabbersink.routing.dispatcher import (
    BufferedDispatcher,
    ConfigurationError,
    DispatchState,
    FlushReport,
)
from jabbersink.routing.fallback import FallbackReporter
from jabbersink.routing.handler import JabberHandler

__all__ = [
    "AuthError",
    "BufferedDispatcher",
    "ConfigurationError",
    "ConnectError",
    "Credentials",
    "DebugConfig",
    "DispatchState",
    "FallbackReporter",
    "FlushMode",
    "FlushPolicy",
    "FlushReport",
    "JabberHandler",
    "LogEntry",
    "LogLevel",
    "SessionTransport",
    "SlixmppTransport",
    "TransportInitError",
    "__version__",
]
