"""Streaming session engine.

Owns one backend conversational session and turns its event stream into
ordered, throttled status updates for the caller:

    Uninitialized -> Idle -> Sending -> Streaming -> Idle | Erroring
                                                  ... -> Terminated (kill)

At most one send may be in flight per engine; callers serialize sends with
their own processing guard (see start_processing()).
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional

from loguru import logger

from agentrelay.constants import LogEmoji, SessionLimits, Streaming, Timeouts
from agentrelay.core.enums import SessionEventType, StatusUpdateType, StopResult
from agentrelay.core.exceptions import InitializationError, QueryTimeoutError, RelayError

from .backend import AgentBackend, BackendSession
from .callbacks import CallbackDispatcher, StatusCallback
from .classification import build_session_error
from .events import SessionEvent, TokenUsage
from .latch import SettlementLatch
from .protocol import AgentSession, StopOutcome
from .segments import SegmentTracker

EnvProvider = Callable[[], Mapping[str, str]]


def date_context_line(now: Optional[datetime] = None) -> str:
    """
    Build the date/time context prepended to the first message of a session.

    Args:
        now: Reference time (defaults to local now)

    Returns:
        Context line followed by a blank line
    """
    now = now or datetime.now().astimezone()
    return f"[Current date/time: {now:%A, %B %d, %Y, %I:%M %p %Z}]\n\n"


class StreamingSessionEngine:
    """
    Session engine for one agent backend.

    Example:
        ```python
        engine = StreamingSessionEngine(backend, name="claude", display_name="Claude")

        async def on_status(update_type, content, segment_id=None):
            ...

        text = await engine.send_message_streaming("hello", "alice", on_status)
        ```
    """

    def __init__(
        self,
        backend: AgentBackend,
        *,
        name: str,
        display_name: Optional[str] = None,
        model: str = "default",
        working_dir: str = ".",
        system_prompt: str = "",
        env_provider: Optional[EnvProvider] = None,
        throttle_ms: int = Streaming.THROTTLE_MS,
        min_segment_chars: int = Streaming.MIN_SEGMENT_CHARS,
        timeout_seconds: float = Timeouts.QUERY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize session engine.

        Args:
            backend: Agent backend used to open sessions
            name: Short agent name used in logs
            display_name: Human-facing agent name
            model: Model for new sessions
            working_dir: Directory the agent operates in
            system_prompt: Text appended to the agent system message
            env_provider: Source of environment overrides applied when a session opens
            throttle_ms: Minimum gap between text updates per segment
            min_segment_chars: Segment length that must be exceeded before updating
            timeout_seconds: Absolute timeout for one send
            clock: Monotonic clock used for throttling
        """
        self.backend = backend
        self.name = name
        self.display_name = display_name or name.capitalize()
        self.working_dir = working_dir
        self.system_prompt = system_prompt
        self._env_provider = env_provider
        self.throttle_ms = throttle_ms
        self.min_segment_chars = min_segment_chars
        self.timeout_seconds = timeout_seconds
        self._clock = clock

        self._session: Optional[BackendSession] = None

        self.current_model = model
        self.last_activity: Optional[datetime] = None
        self.query_started: Optional[datetime] = None
        self.current_tool: Optional[str] = None
        self.last_tool: Optional[str] = None
        self.last_error: Optional[str] = None
        self.last_error_time: Optional[datetime] = None
        self.last_usage: Optional[TokenUsage] = None
        self.last_message: Optional[str] = None
        self.conversation_title: Optional[str] = None

        self._processing = False
        self._stop_requested = False
        self._interrupt_flag = False

    @property
    def session_id(self) -> Optional[str]:
        """Backend-assigned id of the live session."""
        return self._session.session_id if self._session else None

    @property
    def is_active(self) -> bool:
        """Whether a backend session is open."""
        return self._session is not None

    @property
    def is_running(self) -> bool:
        """Whether a query is being processed."""
        return self._processing

    @property
    def stop_requested(self) -> bool:
        """Whether a stop was requested for the current query."""
        return self._stop_requested

    @property
    def uses_account_pool(self) -> bool:
        """Whether sessions are opened with account pool credentials."""
        return self._env_provider is not None

    async def _ensure_session(self) -> BackendSession:
        """
        Open the backend connection and session if needed.

        Raises:
            InitializationError: If the backend cannot be started or the session opened
        """
        if self._session is not None:
            return self._session

        try:
            if not self.backend.is_started:
                await self.backend.start()
                logger.info(f"{LogEmoji.SUCCESS} {self.display_name} client initialized")

            env: Dict[str, str] = dict(self._env_provider()) if self._env_provider else {}
            self._session = await self.backend.create_session(
                model=self.current_model,
                working_dir=self.working_dir,
                system_prompt=self.system_prompt,
                env=env,
            )
        except InitializationError:
            raise
        except Exception as e:
            logger.error(f"Failed to initialize {self.display_name} session: {e}")
            raise InitializationError(
                f"{self.display_name} initialization failed: {e}", agent=self.name
            ) from e

        session_prefix = self._session.session_id[: SessionLimits.SESSION_ID_PREFIX_CHARS]
        logger.info(f"{LogEmoji.SUCCESS} {self.display_name} session created: {session_prefix}...")
        return self._session

    async def send_message_streaming(
        self, message: str, identity: str, status_callback: StatusCallback
    ) -> str:
        """
        Send a message and stream the response through status_callback.

        Args:
            message: User message
            identity: Caller identity for logging
            status_callback: Receives thinking/tool/text/segment_end/done updates

        Returns:
            Full response text (or a fallback notice when the agent produced none)

        Raises:
            InitializationError: Backend could not be started
            SessionError: Backend reported a failure (BackendCrashError, RateLimitedError)
            QueryTimeoutError: No terminal event within timeout_seconds
            CancellationError: Query was stopped or interrupted
        """
        session = await self._ensure_session()
        is_new_session = self.last_activity is None
        outbound = date_context_line() + message if is_new_session else message

        logger.info(
            f"{'STARTING' if is_new_session else 'CONTINUING'} {self.display_name} session "
            f"for {identity}"
        )

        self._processing = True
        self._stop_requested = False
        self.query_started = datetime.now(timezone.utc)
        self.current_tool = None

        tracker = SegmentTracker(self.throttle_ms, self.min_segment_chars, clock=self._clock)
        dispatcher = CallbackDispatcher(status_callback, label=self.display_name)
        latch = SettlementLatch()

        def on_event(event: SessionEvent) -> None:
            if latch.settled:
                return
            logger.debug(f"[{self.display_name} event] {event.type}")
            if event.type == SessionEventType.IDLE:
                latch.resolve()
            elif event.type == SessionEventType.ERROR:
                logger.error(f"[{self.display_name}] session.error received: {event.data}")
                latch.reject(
                    self._build_error(
                        event.get_str("message") or f"Unknown {self.display_name} error",
                        event.get_str("errorType") or None,
                    )
                )
            else:
                self._handle_event(event, tracker, dispatcher)

        def on_timeout() -> None:
            if latch.reject(
                QueryTimeoutError(
                    f"{self.display_name} response timed out", timeout=self.timeout_seconds
                )
            ):
                logger.error(
                    f"{self.display_name} session timed out after {self.timeout_seconds}s"
                )

        latch.attach(session.on(on_event))
        latch.arm_timer(self.timeout_seconds, on_timeout)

        settled_ok = False
        try:
            try:
                message_id = await session.send(outbound)
                logger.debug(f"[{self.display_name}] Message sent, id: {message_id}")
            except Exception as e:
                logger.error(f"[{self.display_name}] send() failed: {e}")
                error = e if isinstance(e, RelayError) else self._build_error(str(e) or repr(e))
                latch.reject(error)

            try:
                await latch.wait()
            except RelayError as e:
                self._record_error(e)
                raise
            settled_ok = True
        finally:
            latch.cancel()
            self._processing = False
            self.query_started = None
            self.current_tool = None
            if not settled_ok:
                await dispatcher.close()

        self.last_activity = datetime.now(timezone.utc)
        self.last_error = None
        self.last_error_time = None

        final = tracker.final_segment()
        try:
            if final is not None:
                await dispatcher.deliver_now(StatusUpdateType.SEGMENT_END, *final)
            await dispatcher.deliver_now(StatusUpdateType.DONE, "")
        finally:
            await dispatcher.close()

        return tracker.full_text or f"No response from {self.display_name}."

    def _handle_event(
        self, event: SessionEvent, tracker: SegmentTracker, dispatcher: CallbackDispatcher
    ) -> None:
        """Apply one non-terminal event to session state and emit updates."""
        if event.type == SessionEventType.MESSAGE_DELTA:
            update = tracker.add_delta(event.get_str("deltaContent"))
            if update is not None:
                dispatcher.emit(StatusUpdateType.TEXT, *update)

        elif event.type == SessionEventType.MESSAGE:
            update = tracker.add_message(event.get_str("content"))
            if update is not None:
                dispatcher.emit(StatusUpdateType.TEXT, *update)

        elif event.type == SessionEventType.TOOL_START:
            closed = tracker.close_segment()
            if closed is not None:
                dispatcher.emit(StatusUpdateType.SEGMENT_END, *closed)
            tool_name = event.get_str("toolName", "tool")
            self.current_tool = tool_name
            dispatcher.emit(StatusUpdateType.TOOL, f"{LogEmoji.PROCESSING} {tool_name}")

        elif event.type == SessionEventType.TOOL_COMPLETE:
            self.last_tool = self.current_tool
            self.current_tool = None

        elif event.type == SessionEventType.USAGE:
            self.last_usage = TokenUsage.from_event_data(event.data)

        elif event.type == SessionEventType.TITLE_CHANGED:
            self.conversation_title = event.get_str("title") or self.conversation_title

        elif event.type == SessionEventType.REASONING_DELTA:
            dispatcher.emit(StatusUpdateType.THINKING, event.get_str("deltaContent"))

    def _build_error(self, message: str, error_type: Optional[str] = None) -> RelayError:
        return build_session_error(
            message,
            error_type,
            stop_requested=self._stop_requested,
            interrupted=self._interrupt_flag,
        )

    def _record_error(self, error: RelayError) -> None:
        self.last_error = error.message[: SessionLimits.ERROR_MESSAGE_CHARS]
        self.last_error_time = datetime.now(timezone.utc)

    async def stop(self) -> StopOutcome:
        """
        Stop the running query.

        Returns:
            StopResult.STOPPED if aborted, StopResult.PENDING if the abort call
            failed, False if nothing was running
        """
        if self._processing and self._session is not None:
            self._stop_requested = True
            try:
                await self._session.abort()
            except Exception as e:
                logger.debug(f"{self.display_name} abort failed: {e}")
                return StopResult.PENDING
            logger.info(f"{LogEmoji.STOP} {self.display_name} query aborted")
            return StopResult.STOPPED
        return False

    async def kill(self) -> None:
        """Destroy the backend session and clear session state."""
        if self._session is not None:
            session, self._session = self._session, None
            try:
                await session.destroy()
            except Exception as e:
                logger.debug(f"Error destroying {self.display_name} session: {e}")

        self.last_activity = None
        self.conversation_title = None
        self.last_message = None
        self._processing = False

        logger.info(f"{self.display_name} session cleared")

    async def shutdown(self) -> None:
        """Kill the session and close the backend connection."""
        await self.kill()
        if self.backend.is_started:
            try:
                await self.backend.stop()
            except Exception as e:
                logger.debug(f"Error stopping {self.display_name} client: {e}")

    async def set_model(self, model: str) -> None:
        """
        Switch model; the next send opens a new session with it.

        Args:
            model: Model identifier
        """
        if model == self.current_model:
            return
        self.current_model = model
        await self.kill()
        logger.info(f"{self.display_name} model set to {model}")

    def start_processing(self) -> Callable[[], None]:
        """
        Mark processing as started.

        Returns:
            Callable that clears the processing flag
        """
        self._processing = True

        def release() -> None:
            self._processing = False

        return release

    def clear_stop_requested(self) -> None:
        """Clear the stop flag so the next message can proceed."""
        self._stop_requested = False

    def consume_interrupt_flag(self) -> bool:
        """Read and clear the interrupt flag."""
        was_interrupt = self._interrupt_flag
        self._interrupt_flag = False
        return was_interrupt

    def mark_interrupt(self) -> None:
        """Record that a new message superseded the running query."""
        self._interrupt_flag = True
        self._stop_requested = True


async def stop_and_settle(engine: AgentSession) -> StopOutcome:
    """
    Stop a running query and clear the stop flag once the abort settled.

    Args:
        engine: Engine to stop

    Returns:
        Result of engine.stop()
    """
    result = await engine.stop()
    if result:
        await asyncio.sleep(Timeouts.STOP_SETTLE_SECONDS)
        engine.clear_stop_requested()
    return result
