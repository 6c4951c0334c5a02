"""Capability interface shared by every agent session engine."""

from datetime import datetime
from typing import Callable, Literal, Optional, Protocol, Union, runtime_checkable

from agentrelay.core.enums import StopResult

from .callbacks import StatusCallback
from .events import TokenUsage

StopOutcome = Union[StopResult, Literal[False]]


@runtime_checkable
class AgentSession(Protocol):
    """Operations and read-only state the multiplexer and collaborators rely on."""

    name: str
    display_name: str
    current_model: str
    last_activity: Optional[datetime]
    query_started: Optional[datetime]
    current_tool: Optional[str]
    last_tool: Optional[str]
    last_error: Optional[str]
    last_error_time: Optional[datetime]
    last_usage: Optional[TokenUsage]
    last_message: Optional[str]
    conversation_title: Optional[str]

    @property
    def session_id(self) -> Optional[str]: ...

    @property
    def is_active(self) -> bool: ...

    @property
    def is_running(self) -> bool: ...

    @property
    def uses_account_pool(self) -> bool: ...

    async def send_message_streaming(
        self, message: str, identity: str, status_callback: StatusCallback
    ) -> str: ...

    async def stop(self) -> StopOutcome: ...

    async def kill(self) -> None: ...

    async def shutdown(self) -> None: ...

    def start_processing(self) -> Callable[[], None]: ...

    def clear_stop_requested(self) -> None: ...

    def consume_interrupt_flag(self) -> bool: ...

    def mark_interrupt(self) -> None: ...
