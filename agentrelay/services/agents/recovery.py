"""Caller-side recovery policy around a single user message.

Decision boundaries:
    backend crash    -> kill the corrupted session, retry once
    rate limited     -> rotate the account pool, kill the session, retry
    pool exhausted   -> AllAccountsLimitedError (do not retry)
    cancellation     -> re-raise, flagged when a newer message superseded it
"""

import logging as stdlib_logging
from typing import Callable, Optional

from loguru import logger
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from agentrelay.constants import LogEmoji, Retries, SessionLimits
from agentrelay.core.exceptions import (
    AllAccountsLimitedError,
    BackendCrashError,
    CancellationError,
    RateLimitedError,
    SessionError,
)
from agentrelay.services.accounts.account_pool import AccountPool
from agentrelay.services.session.callbacks import StatusCallback
from agentrelay.services.session.engine import stop_and_settle
from agentrelay.services.session.protocol import AgentSession, StopOutcome

from .multiplexer import AgentMultiplexer

# Stdlib logger needed for tenacity's before_sleep_log
_stdlib_logger = stdlib_logging.getLogger(__name__)

CallbackFactory = Callable[[], StatusCallback]


def make_conversation_title(message: str) -> str:
    """
    Derive a conversation title from the first message.

    Returns:
        The message, truncated to 47 characters plus "..." when longer than 50
    """
    limit = SessionLimits.TITLE_MAX_CHARS
    if len(message) > limit:
        return message[: limit - 3] + "..."
    return message


def _prepare_session(session: AgentSession, message: str) -> None:
    # kill() clears both fields, so every attempt restores them
    session.last_message = message
    if not session.is_active:
        session.conversation_title = make_conversation_title(message)


async def _send_with_crash_retry(
    session: AgentSession,
    message: str,
    identity: str,
    callback_factory: CallbackFactory,
    max_crash_retries: int,
) -> str:
    """Send once, killing the session and retrying when the backend crashes."""

    log_retry = before_sleep_log(_stdlib_logger, stdlib_logging.WARNING)

    async def before_sleep(retry_state: RetryCallState) -> None:
        log_retry(retry_state)
        await session.kill()

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_crash_retries + 1),
        retry=retry_if_exception_type(BackendCrashError),
        before_sleep=before_sleep,
        reraise=True,
    ):
        with attempt:
            _prepare_session(session, message)
            return await session.send_message_streaming(message, identity, callback_factory())

    raise RuntimeError("Unexpected error in retry logic")


async def send_with_recovery(
    multiplexer: AgentMultiplexer,
    pool: Optional[AccountPool],
    message: str,
    identity: str,
    user_id: Optional[int],
    callback_factory: CallbackFactory,
    max_crash_retries: int = Retries.MAX_CRASH_RETRIES,
) -> str:
    """
    Send a user message with crash retry and account rotation.

    Args:
        multiplexer: Agent routing layer
        pool: Account pool used by pool-backed engines (None disables rotation)
        message: User message
        identity: Caller identity for logging
        user_id: User identifier for agent routing
        callback_factory: Returns a fresh status callback for each attempt
        max_crash_retries: Retries after a backend crash

    Returns:
        Response text

    Raises:
        AllAccountsLimitedError: Every pooled account is cooling down
        CancellationError: Query stopped; ``interrupted`` set when superseded
        RelayError: Any other failure from the final attempt
    """
    session = multiplexer.get_session(user_id)
    rotations_left = pool.account_count if pool is not None and session.uses_account_pool else 0
    release = session.start_processing()
    try:
        while True:
            try:
                return await _send_with_crash_retry(
                    session, message, identity, callback_factory, max_crash_retries
                )
            except RateLimitedError as e:
                if pool is None or not session.uses_account_pool or pool.account_count == 0:
                    raise
                if rotations_left <= 0 or not pool.mark_limited_and_rotate():
                    raise AllAccountsLimitedError(pool_status=pool.get_status()) from e
                rotations_left -= 1
                logger.warning(
                    f"{LogEmoji.WAITING} Rate limited, switching to account "
                    f'"{pool.current_name}" and retrying'
                )
                await session.kill()
    except CancellationError as e:
        if session.consume_interrupt_flag():
            e.interrupted = True
            e.details["interrupted"] = True
        raise
    finally:
        release()


async def retry_last_message(
    multiplexer: AgentMultiplexer,
    pool: Optional[AccountPool],
    identity: str,
    user_id: Optional[int],
    callback_factory: CallbackFactory,
) -> str:
    """
    Resend the last message of the user's session.

    Raises:
        SessionError: If there is nothing to retry or a query is still running
    """
    session = multiplexer.get_session(user_id)
    if not session.last_message:
        raise SessionError("No message to retry", recoverable=False)
    if session.is_running:
        raise SessionError("A query is already running", recoverable=False)
    return await send_with_recovery(
        multiplexer, pool, session.last_message, identity, user_id, callback_factory
    )


async def supersede_running_query(
    multiplexer: AgentMultiplexer, user_id: Optional[int] = None
) -> StopOutcome:
    """
    Interrupt the user's running query because a newer message arrived.

    Returns:
        Stop outcome, False if nothing was running
    """
    session = multiplexer.get_session(user_id)
    if not session.is_running:
        return False
    session.mark_interrupt()
    return await stop_and_settle(session)
