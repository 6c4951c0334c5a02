"""Core infrastructure: configuration, logging, exceptions and enums."""

from .enums import AgentType, ErrorKind, SessionEventType, StatusUpdateType, StopResult
from .exceptions import (
    AllAccountsLimitedError,
    BackendCrashError,
    CancellationError,
    ConfigurationError,
    InitializationError,
    QueryTimeoutError,
    RateLimitedError,
    RelayError,
    SessionError,
)

__all__ = [
    "AgentType",
    "AllAccountsLimitedError",
    "BackendCrashError",
    "CancellationError",
    "ConfigurationError",
    "ErrorKind",
    "InitializationError",
    "QueryTimeoutError",
    "RateLimitedError",
    "RelayError",
    "SessionError",
    "SessionEventType",
    "StatusUpdateType",
    "StopResult",
]
