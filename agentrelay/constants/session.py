"""Session bookkeeping constants."""

from typing import Final


class SessionLimits:
    """Truncation limits for recorded session metadata."""

    ERROR_MESSAGE_CHARS: Final[int] = 100
    TITLE_MAX_CHARS: Final[int] = 50
    SESSION_ID_PREFIX_CHARS: Final[int] = 8
