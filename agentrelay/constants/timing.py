"""Timing-related constants (timeouts, throttles, intervals)."""

from typing import Final


class Timeouts:
    """Timeout values in SECONDS."""

    QUERY_SECONDS: Final[float] = 300.0  # Absolute window for one send
    STOP_SETTLE_SECONDS: Final[float] = 0.1  # Wait after abort before clearing stop flag
    PROCESS_TERMINATE_SECONDS: Final[float] = 5.0
    STDERR_DRAIN_SECONDS: Final[float] = 1.0


class Streaming:
    """Streaming update throttling."""

    THROTTLE_MS: Final[int] = 500
    MIN_SEGMENT_CHARS: Final[int] = 20
