"""Streaming session engine and agent backends."""

from .backend import AgentBackend, BackendSession, EventHandler, Subscription
from .callbacks import CallbackDispatcher, StatusCallback
from .classification import build_session_error, classify_error
from .engine import StreamingSessionEngine, date_context_line, stop_and_settle
from .events import SessionEvent, TokenUsage
from .jsonl_backend import JsonlProcessBackend, JsonlProcessSession
from .latch import SettlementLatch
from .protocol import AgentSession, StopOutcome
from .segments import Segment, SegmentTracker

__all__ = [
    "AgentBackend",
    "AgentSession",
    "BackendSession",
    "CallbackDispatcher",
    "EventHandler",
    "JsonlProcessBackend",
    "JsonlProcessSession",
    "Segment",
    "SegmentTracker",
    "SessionEvent",
    "SettlementLatch",
    "StatusCallback",
    "StopOutcome",
    "StreamingSessionEngine",
    "Subscription",
    "TokenUsage",
    "build_session_error",
    "classify_error",
    "date_context_line",
    "stop_and_settle",
]
