"""jabbersink data models — all Pydantic v2, all frozen (immutable)."""

from jabbersink.models.credentials import Credentials, DebugConfig
from jabbersink.models.policy import FlushMode, FlushPolicy
from jabbersink.models.records import LogEntry, LogLevel

__all__ = [
    # credentials
    "Credentials",
    "DebugConfig",
    # policy
    "FlushMode",
    "FlushPolicy",
    # records
    "LogEntry",
    "LogLevel",
]
