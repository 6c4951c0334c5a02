"""Agent backend abstractions.

A backend owns the connection to an agent runtime (a process, an SDK client)
and opens conversational sessions on it. Sessions push events to subscribers
in delivery order; the engine consumes them through a Subscription handle.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Mapping, Optional

from loguru import logger

from .events import SessionEvent

EventHandler = Callable[[SessionEvent], None]


class Subscription:
    """Handle for one registered event handler, released at most once."""

    def __init__(self, release: Callable[[], None]):
        self._release: Optional[Callable[[], None]] = release

    @property
    def active(self) -> bool:
        """Whether the handler is still registered."""
        return self._release is not None

    def close(self) -> bool:
        """
        Unregister the handler.

        Returns:
            True on the first call, False if already released
        """
        if self._release is None:
            return False
        release, self._release = self._release, None
        release()
        return True


class BackendSession(ABC):
    """One live conversation on an agent backend."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._handlers: Dict[int, EventHandler] = {}
        self._next_handler_id = 0

    @property
    def has_subscribers(self) -> bool:
        """Whether any handler is listening for events."""
        return bool(self._handlers)

    def on(self, handler: EventHandler) -> Subscription:
        """
        Subscribe to every event of this session.

        Args:
            handler: Called synchronously for each event, in delivery order

        Returns:
            Subscription handle
        """
        handler_id = self._next_handler_id
        self._next_handler_id += 1
        self._handlers[handler_id] = handler
        return Subscription(lambda: self._handlers.pop(handler_id, None))

    def _dispatch(self, event: SessionEvent) -> None:
        """Deliver an event to every current subscriber."""
        for handler in list(self._handlers.values()):
            try:
                handler(event)
            except Exception as e:
                logger.exception(f"Error handling {event.type} event: {e}")

    @abstractmethod
    async def send(self, prompt: str) -> str:
        """
        Submit a user message.

        Returns:
            Backend message id
        """

    @abstractmethod
    async def abort(self) -> None:
        """Abort the turn in progress."""

    @abstractmethod
    async def destroy(self) -> None:
        """Release the session and its resources."""


class AgentBackend(ABC):
    """Connection to an agent runtime that can open sessions."""

    name: str = "agent"

    @property
    @abstractmethod
    def is_started(self) -> bool:
        """Whether start() has completed successfully."""

    @abstractmethod
    async def start(self) -> None:
        """Establish the connection to the runtime."""

    @abstractmethod
    async def create_session(
        self,
        *,
        model: str,
        working_dir: str,
        system_prompt: str = "",
        env: Optional[Mapping[str, str]] = None,
    ) -> BackendSession:
        """
        Open a new conversational session.

        Args:
            model: Model identifier
            working_dir: Directory the agent operates in
            system_prompt: Text appended to the agent's system message
            env: Environment overrides (credential directory etc.)
        """

    @abstractmethod
    async def stop(self) -> None:
        """Close the connection to the runtime."""
