"""One-shot settlement for a single send."""

import asyncio
from typing import Any, Callable, Optional

from .backend import Subscription


class SettlementLatch:
    """
    Resolves or rejects a send exactly once.

    Whichever terminal signal arrives first (idle, error, timeout, submission
    failure) cancels the timer, releases the event subscription and completes
    the future. Later signals return False and have no effect.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future = self._loop.create_future()
        self._subscription: Optional[Subscription] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._settled = False

    @property
    def settled(self) -> bool:
        """Whether a terminal signal has already been accepted."""
        return self._settled

    def attach(self, subscription: Subscription) -> None:
        """Register the event subscription to release on settlement."""
        if self._settled:
            subscription.close()
            return
        self._subscription = subscription

    def arm_timer(self, delay: float, on_expire: Callable[[], Any]) -> None:
        """
        Start the absolute timeout.

        Args:
            delay: Seconds until expiry
            on_expire: Called on expiry unless already settled
        """
        if self._settled:
            return
        self._timer = self._loop.call_later(delay, on_expire)

    def _settle(self) -> bool:
        if self._settled:
            return False
        self._settled = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        return True

    def resolve(self, value: Any = None) -> bool:
        """
        Settle successfully.

        Returns:
            True if this call settled the latch
        """
        if not self._settle():
            return False
        self._future.set_result(value)
        return True

    def reject(self, error: BaseException) -> bool:
        """
        Settle with an error.

        Returns:
            True if this call settled the latch
        """
        if not self._settle():
            return False
        self._future.set_exception(error)
        return True

    def cancel(self) -> bool:
        """
        Release the timer and subscription without a result (caller gave up).

        Returns:
            True if this call settled the latch
        """
        if not self._settle():
            return False
        self._future.cancel()
        return True

    async def wait(self) -> Any:
        """Wait for settlement; raises the rejection error if any."""
        return await self._future
