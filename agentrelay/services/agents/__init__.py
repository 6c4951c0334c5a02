"""Agent routing and recovery policy."""

from .multiplexer import AGENT_DISPLAY_NAMES, AgentMultiplexer, SessionInfo
from .recovery import (
    make_conversation_title,
    retry_last_message,
    send_with_recovery,
    supersede_running_query,
)

__all__ = [
    "AGENT_DISPLAY_NAMES",
    "AgentMultiplexer",
    "SessionInfo",
    "make_conversation_title",
    "retry_last_message",
    "send_with_recovery",
    "supersede_running_query",
]
