"""Tests for one-shot send settlement."""

import asyncio

import pytest

from agentrelay.core.exceptions import QueryTimeoutError, SessionError
from agentrelay.services.session.backend import Subscription
from agentrelay.services.session.latch import SettlementLatch


@pytest.mark.asyncio
async def test_resolve_once():
    """Test only the first terminal signal counts."""
    latch = SettlementLatch()

    assert latch.resolve("first") is True
    assert latch.resolve("second") is False
    assert latch.reject(SessionError("late")) is False
    assert await latch.wait() == "first"


@pytest.mark.asyncio
async def test_reject_raises_from_wait():
    """Test rejection surfaces from wait()."""
    latch = SettlementLatch()
    latch.reject(SessionError("boom"))

    with pytest.raises(SessionError, match="boom"):
        await latch.wait()


@pytest.mark.asyncio
async def test_settlement_releases_subscription():
    """Test settling closes the attached subscription."""
    released = []
    latch = SettlementLatch()
    subscription = Subscription(lambda: released.append(True))
    latch.attach(subscription)

    latch.resolve()

    assert released == [True]
    assert subscription.active is False


@pytest.mark.asyncio
async def test_attach_after_settlement_closes_immediately():
    """Test a subscription attached too late is released right away."""
    released = []
    latch = SettlementLatch()
    latch.resolve()

    latch.attach(Subscription(lambda: released.append(True)))

    assert released == [True]


@pytest.mark.asyncio
async def test_timer_rejects():
    """Test the absolute timeout settles the latch."""
    latch = SettlementLatch()
    latch.arm_timer(0.01, lambda: latch.reject(QueryTimeoutError(timeout=0.01)))

    with pytest.raises(QueryTimeoutError):
        await latch.wait()


@pytest.mark.asyncio
async def test_settlement_cancels_timer():
    """Test a settled latch never fires its timer."""
    fired = []
    latch = SettlementLatch()
    latch.arm_timer(0.01, lambda: fired.append(True))

    latch.resolve()
    await asyncio.sleep(0.03)

    assert fired == []


@pytest.mark.asyncio
async def test_cancel_releases_resources():
    """Test cancel releases the subscription and cancels the future."""
    released = []
    latch = SettlementLatch()
    latch.attach(Subscription(lambda: released.append(True)))

    assert latch.cancel() is True
    assert latch.cancel() is False
    assert released == [True]
    with pytest.raises(asyncio.CancelledError):
        await latch.wait()
