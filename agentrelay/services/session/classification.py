"""Classification of backend-reported failures into typed errors."""

import re
from typing import Optional

from agentrelay.core.enums import ErrorKind
from agentrelay.core.exceptions import (
    BackendCrashError,
    CancellationError,
    RateLimitedError,
    RelayError,
    SessionError,
)

_EXIT_CODE = re.compile(r"exited with code (-?\d+)", re.IGNORECASE)

RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate_limit",
    "rate-limit",
    "usage limit",
    "too many requests",
    "hit your limit",
)
CANCEL_MARKERS = ("abort", "cancel")


def classify_error(message: str, error_type: Optional[str] = None) -> ErrorKind:
    """
    Classify a backend failure.

    A structured error type from the backend wins; message text is only
    consulted when none was given.

    Args:
        message: Backend error message
        error_type: Structured error type, if the backend reported one

    Returns:
        ErrorKind
    """
    if error_type:
        try:
            return ErrorKind(error_type.lower())
        except ValueError:
            return ErrorKind.OTHER

    lowered = message.lower()
    if _EXIT_CODE.search(lowered):
        return ErrorKind.CRASH
    if any(marker in lowered for marker in RATE_LIMIT_MARKERS):
        return ErrorKind.RATE_LIMIT
    if any(marker in lowered for marker in CANCEL_MARKERS):
        return ErrorKind.CANCELLED
    return ErrorKind.OTHER


def build_session_error(
    message: str,
    error_type: Optional[str] = None,
    stop_requested: bool = False,
    interrupted: bool = False,
) -> RelayError:
    """
    Build the typed error for a failed turn.

    A failure after a stop request is always reported as a cancellation.

    Args:
        message: Backend error message
        error_type: Structured error type, if any
        stop_requested: Whether the caller asked to stop the query
        interrupted: Whether the stop came from a superseding message

    Returns:
        Error instance to raise
    """
    kind = classify_error(message, error_type)

    if stop_requested or kind == ErrorKind.CANCELLED:
        return CancellationError(message, interrupted=interrupted)
    if kind == ErrorKind.CRASH:
        match = _EXIT_CODE.search(message)
        return BackendCrashError(message, exit_code=int(match.group(1)) if match else None)
    if kind == ErrorKind.RATE_LIMIT:
        return RateLimitedError(message)
    return SessionError(message)
