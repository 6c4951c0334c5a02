"""Ordered delivery of streaming status updates."""

import asyncio
from typing import Awaitable, Optional, Protocol, Tuple

from loguru import logger

from agentrelay.core.enums import StatusUpdateType


class StatusCallback(Protocol):
    """Caller hook receiving streaming updates.

    ``segment_id`` is passed for ``text`` and ``segment_end`` updates only.
    """

    def __call__(
        self, update_type: StatusUpdateType, content: str, segment_id: Optional[int] = None
    ) -> Awaitable[None]: ...


_Update = Tuple[StatusUpdateType, str, Optional[int]]


class CallbackDispatcher:
    """
    Delivers status updates one at a time, in emission order.

    emit() never blocks event handling; a single worker task awaits the
    callback for each queued update. Callback failures are logged and
    do not interrupt delivery of later updates.
    """

    def __init__(self, callback: StatusCallback, label: str = "agent"):
        """
        Initialize dispatcher.

        Args:
            callback: Caller status callback
            label: Agent label for log messages
        """
        self._callback = callback
        self._label = label
        self._queue: "asyncio.Queue[_Update]" = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._closed = False

    def emit(
        self, update_type: StatusUpdateType, content: str, segment_id: Optional[int] = None
    ) -> None:
        """Queue an update for delivery."""
        if self._closed:
            return
        self._queue.put_nowait((update_type, content, segment_id))
        if self._worker is None:
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def _run(self) -> None:
        while True:
            update = await self._queue.get()
            try:
                await self._deliver(*update)
            finally:
                self._queue.task_done()

    async def _deliver(
        self, update_type: StatusUpdateType, content: str, segment_id: Optional[int]
    ) -> None:
        try:
            if segment_id is None:
                await self._callback(update_type, content)
            else:
                await self._callback(update_type, content, segment_id)
        except Exception as e:
            logger.warning(f"[{self._label}] status callback failed on {update_type.value}: {e}")

    async def drain(self) -> None:
        """Wait until every queued update has been delivered."""
        await self._queue.join()

    async def deliver_now(
        self, update_type: StatusUpdateType, content: str, segment_id: Optional[int] = None
    ) -> None:
        """Deliver an update after everything already queued."""
        await self.drain()
        await self._deliver(update_type, content, segment_id)

    async def close(self) -> None:
        """Stop the worker, dropping undelivered updates."""
        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
