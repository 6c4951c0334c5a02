"""Custom exception classes for agentrelay."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base exception for agentrelay."""

    def __init__(
        self, message: str, recoverable: bool = True, details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize relay error.

        Args:
            message: Error message
            recoverable: Whether the error is recoverable with retry
            details: Additional error details
        """
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class InitializationError(RelayError):
    """Backend connection or session could not be started."""

    def __init__(
        self,
        message: str = "Backend initialization failed",
        agent: Optional[str] = None,
    ):
        details = {"agent": agent} if agent else {}
        super().__init__(message, recoverable=True, details=details)


class SessionError(RelayError):
    """Backend reported a failure during a turn."""

    def __init__(
        self,
        message: str = "Session error occurred",
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class BackendCrashError(SessionError):
    """Backend process exited unexpectedly mid-turn."""

    def __init__(self, message: str = "Agent process crashed", exit_code: Optional[int] = None):
        self.exit_code = exit_code
        super().__init__(message, recoverable=True, details={"exit_code": exit_code})


class RateLimitedError(SessionError):
    """Provider rejected the turn because the current account hit its limit."""

    def __init__(self, message: str = "Rate limit reached"):
        super().__init__(message, recoverable=True)


class QueryTimeoutError(RelayError):
    """No terminal event arrived within the absolute send window."""

    def __init__(self, message: str = "Response timed out", timeout: Optional[float] = None):
        self.timeout = timeout
        details = {"timeout": timeout} if timeout else {}
        super().__init__(message, recoverable=True, details=details)


class CancellationError(RelayError):
    """Query was stopped explicitly or superseded by a new message."""

    def __init__(self, message: str = "Query cancelled", interrupted: bool = False):
        self.interrupted = interrupted
        super().__init__(message, recoverable=False, details={"interrupted": interrupted})


class AllAccountsLimitedError(RelayError):
    """Every account in the pool is cooling down."""

    def __init__(
        self,
        message: str = "All accounts rate limited",
        pool_status: Optional[str] = None,
    ):
        self.pool_status = pool_status
        details = {"pool_status": pool_status} if pool_status else {}
        super().__init__(message, recoverable=False, details=details)


class ConfigurationError(RelayError):
    """Configuration error occurred."""

    def __init__(
        self,
        message: str = "Configuration error",
        recoverable: bool = False,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)
