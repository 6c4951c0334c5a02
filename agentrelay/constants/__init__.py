"""Unified constants for agentrelay.

All classes can be imported directly from this package:
    from agentrelay.constants import Timeouts, Streaming, AccountPoolConfig
"""

from .logging import LogEmoji
from .resilience import AccountPoolConfig, Retries
from .session import SessionLimits
from .timing import Streaming, Timeouts

__all__ = [
    "AccountPoolConfig",
    "LogEmoji",
    "Retries",
    "SessionLimits",
    "Streaming",
    "Timeouts",
]
