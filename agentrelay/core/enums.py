"""Centralized enum definitions for agentrelay."""

from enum import Enum


class AgentType(str, Enum):
    """Supported agent backends."""

    CLAUDE = "claude"
    COPILOT = "copilot"

    @classmethod
    def values(cls) -> list:
        """Return list of all enum values."""
        return [e.value for e in cls]


class StatusUpdateType(str, Enum):
    """Kinds of streaming updates delivered to the status callback."""

    THINKING = "thinking"
    TOOL = "tool"
    TEXT = "text"
    SEGMENT_END = "segment_end"
    DONE = "done"


class SessionEventType(str, Enum):
    """Backend event types understood by the session engine."""

    SESSION_START = "session.start"
    MESSAGE_DELTA = "assistant.message_delta"
    MESSAGE = "assistant.message"
    REASONING_DELTA = "assistant.reasoning_delta"
    USAGE = "assistant.usage"
    TOOL_START = "tool.execution_start"
    TOOL_COMPLETE = "tool.execution_complete"
    TITLE_CHANGED = "session.title_changed"
    IDLE = "session.idle"
    ERROR = "session.error"


class ErrorKind(str, Enum):
    """Classification of backend-reported failures."""

    CRASH = "crash"
    RATE_LIMIT = "rate_limit"
    CANCELLED = "cancelled"
    OTHER = "other"


class StopResult(str, Enum):
    """Outcome of a stop request that found a running query."""

    STOPPED = "stopped"
    PENDING = "pending"
