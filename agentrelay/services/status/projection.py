"""Plain-text status views composed from engine and pool state."""

from datetime import datetime, timezone
from typing import List, Optional

from agentrelay.constants import LogEmoji, SessionLimits
from agentrelay.services.accounts.account_pool import AccountPool
from agentrelay.services.agents.multiplexer import AgentMultiplexer


def _seconds_since(moment: Optional[datetime], now: datetime) -> Optional[int]:
    if moment is None:
        return None
    return max(0, int((now - moment).total_seconds()))


def build_status_report(
    multiplexer: AgentMultiplexer,
    pool: Optional[AccountPool] = None,
    user_id: Optional[int] = None,
    working_dir: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Build the detailed status report for a user's session.

    Args:
        multiplexer: Agent routing layer
        pool: Account pool (summary shown for pool-backed agents with 2+ accounts)
        user_id: User identifier
        working_dir: Working directory to display
        now: Reference time (defaults to current UTC time)

    Returns:
        Multi-line report
    """
    now = now or datetime.now(timezone.utc)
    agent = multiplexer.get_current_agent(user_id)
    session = multiplexer.get_session(user_id)

    lines: List[str] = [f"{LogEmoji.CHART} Status", ""]
    lines.append(f"Agent: {multiplexer.agent_display(agent)}")
    lines.append(f"Model: {session.current_model}")
    lines.append("")

    if session.is_active:
        session_id = session.session_id
        suffix = (
            f" ({session_id[: SessionLimits.SESSION_ID_PREFIX_CHARS]}...)" if session_id else ""
        )
        lines.append(f"{LogEmoji.SUCCESS} Session: Active{suffix}")
    else:
        lines.append(f"{LogEmoji.IDLE} Session: None")

    if session.is_running:
        elapsed = _seconds_since(session.query_started, now) or 0
        lines.append(f"{LogEmoji.RETRY} Query: Running ({elapsed}s)")
        if session.current_tool:
            lines.append(f"   └─ {session.current_tool}")
    else:
        lines.append(f"{LogEmoji.IDLE} Query: Idle")
        if session.last_tool:
            lines.append(f"   └─ Last: {session.last_tool}")

    activity_ago = _seconds_since(session.last_activity, now)
    if activity_ago is not None:
        lines.append("")
        lines.append(f"{LogEmoji.CLOCK} Last activity: {activity_ago}s ago")

    usage = session.last_usage
    if usage is not None:
        lines.append("")
        lines.append(f"{LogEmoji.USAGE} Last query usage:")
        lines.append(f"   Input: {usage.input_tokens:,} tokens")
        lines.append(f"   Output: {usage.output_tokens:,} tokens")
        if usage.cache_read_input_tokens:
            lines.append(f"   Cache read: {usage.cache_read_input_tokens:,}")

    if session.last_error:
        error_ago = _seconds_since(session.last_error_time, now)
        lines.append("")
        lines.append(
            f"{LogEmoji.WARNING} Last error ({error_ago if error_ago is not None else '?'}s ago):"
        )
        lines.append(f"   {session.last_error}")

    if pool is not None and session.uses_account_pool and pool.account_count > 1:
        lines.append("")
        lines.append(f"{LogEmoji.USER} Account: {pool.current_name}")
        lines.append(f"   Pool: {pool.get_status()}")

    if working_dir:
        lines.append("")
        lines.append(f"{LogEmoji.FOLDER} Working dir: {working_dir}")

    return "\n".join(lines)


def build_account_report(pool: AccountPool, now: Optional[datetime] = None) -> str:
    """
    Build the per-account pool listing.

    Args:
        pool: Account pool
        now: Reference time (defaults to current UTC time)

    Returns:
        Multi-line report
    """
    if pool.account_count == 0:
        return (
            f"{LogEmoji.USER} Account Pool\n\n"
            "No accounts configured.\n"
            "Running with the default credentials."
        )

    lines = [f"{LogEmoji.USER} Account Pool ({pool.account_count} accounts)", ""]
    lines.extend(pool.describe(now))
    lines.append("")
    lines.append(f"Current: {pool.current_name}")
    return "\n".join(lines)
