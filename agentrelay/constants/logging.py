"""Logging-related constants."""

from typing import Final


class LogEmoji:
    """Emoji constants for consistent logging and status lines."""

    SUCCESS: Final[str] = "✅"
    ERROR: Final[str] = "❌"
    WARNING: Final[str] = "⚠️"
    STOP: Final[str] = "🛑"
    PROCESSING: Final[str] = "⚙️"
    WAITING: Final[str] = "⏳"
    RETRY: Final[str] = "🔄"
    BOT: Final[str] = "🤖"
    OCTOPUS: Final[str] = "🐙"
    IDLE: Final[str] = "⚪"
    CHART: Final[str] = "📊"
    USAGE: Final[str] = "📈"
    CLOCK: Final[str] = "⏱️"
    USER: Final[str] = "👤"
    FOLDER: Final[str] = "📁"
