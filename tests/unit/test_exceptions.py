"""Tests for custom exceptions."""

from agentrelay.core.exceptions import (
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


def test_relay_error_to_dict():
    """Test base error serialization."""
    error = RelayError("something failed", recoverable=False, details={"k": "v"})

    data = error.to_dict()

    assert data["error"] == "RelayError"
    assert data["message"] == "something failed"
    assert data["recoverable"] is False
    assert data["details"] == {"k": "v"}
    assert data["timestamp"]
    assert str(error) == "something failed"


def test_session_error_hierarchy():
    """Test crash and rate limit errors are session errors."""
    assert issubclass(BackendCrashError, SessionError)
    assert issubclass(RateLimitedError, SessionError)
    assert issubclass(SessionError, RelayError)


def test_recoverability():
    """Test which errors are worth retrying."""
    assert InitializationError().recoverable is True
    assert BackendCrashError(exit_code=1).recoverable is True
    assert RateLimitedError().recoverable is True
    assert QueryTimeoutError(timeout=300).recoverable is True
    assert CancellationError().recoverable is False
    assert AllAccountsLimitedError().recoverable is False
    assert ConfigurationError().recoverable is False


def test_error_details():
    """Test error-specific details."""
    assert InitializationError("no binary", agent="claude").details == {"agent": "claude"}
    assert BackendCrashError(exit_code=137).details == {"exit_code": 137}
    assert QueryTimeoutError(timeout=300).details == {"timeout": 300}
    assert RateLimitedError().details == {}
    assert AllAccountsLimitedError(pool_status="> a [limited 5s]").pool_status == (
        "> a [limited 5s]"
    )
