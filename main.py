#!/usr/bin/env python3
"""
agentrelay - Streaming relay between chat callers and coding agents.

Main entry point: an interactive console relay over the configured agents.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import Dict, Optional

from agentrelay.core.config.settings import RelaySettings, get_settings
from agentrelay.core.enums import AgentType, StatusUpdateType
from agentrelay.core.exceptions import (
    AllAccountsLimitedError,
    CancellationError,
    ConfigurationError,
    RelayError,
)
from agentrelay.core.logger import setup_structured_logging
from agentrelay.services.accounts import AccountPool
from agentrelay.services.agents import (
    AgentMultiplexer,
    retry_last_message,
    send_with_recovery,
    supersede_running_query,
)
from agentrelay.services.session import (
    AgentSession,
    JsonlProcessBackend,
    StatusCallback,
    StreamingSessionEngine,
    stop_and_settle,
)
from agentrelay.services.status import build_account_report, build_status_report

CONSOLE_USER_ID = 0
CONSOLE_IDENTITY = "console"

HELP_TEXT = (
    "Commands:\n"
    "  /status          Show detailed status\n"
    "  /account         Show account pool status\n"
    "  /agent [name]    Show or switch agent\n"
    "  /model <name>    Switch model (starts a new session)\n"
    "  /new             Start a fresh session\n"
    "  /stop            Stop the running query\n"
    "  /retry           Resend the last message\n"
    "  /quit            Exit\n"
    "Prefix a message with ! to interrupt the running query."
)


@dataclass
class Runtime:
    """Wired application components."""

    settings: RelaySettings
    pool: AccountPool
    multiplexer: AgentMultiplexer


def build_runtime(settings: Optional[RelaySettings] = None) -> Runtime:
    """
    Wire the account pool, agent backends and multiplexer from settings.

    Args:
        settings: Application settings (defaults to the settings singleton)

    Returns:
        Runtime with every configured agent registered

    Raises:
        ConfigurationError: If no agent command is configured
    """
    settings = settings or get_settings()
    pool = AccountPool.from_settings(settings)

    engines: Dict[AgentType, AgentSession] = {}
    for agent in AgentType:
        command = settings.command_for(agent)
        if command is None:
            continue

        base_env: Dict[str, str] = {}
        if agent == AgentType.COPILOT and settings.github_token is not None:
            base_env["GITHUB_TOKEN"] = settings.github_token.get_secret_value()

        engines[agent] = StreamingSessionEngine(
            JsonlProcessBackend(command, name=agent.value, base_env=base_env),
            name=agent.value,
            display_name=AgentMultiplexer.agent_display(agent),
            model=settings.model_for(agent),
            working_dir=settings.working_dir,
            system_prompt=settings.safety_prompt,
            env_provider=pool.get_current_env if agent == AgentType.CLAUDE else None,
            throttle_ms=settings.streaming_throttle_ms,
            min_segment_chars=settings.min_segment_chars,
            timeout_seconds=settings.query_timeout_seconds,
        )

    if not engines:
        raise ConfigurationError(
            "No agent configured. Set CLAUDE_COMMAND and/or COPILOT_COMMAND."
        )

    default_agent = settings.default_agent
    if default_agent not in engines:
        default_agent = next(iter(engines))
    return Runtime(settings, pool, AgentMultiplexer(engines, default_agent=default_agent))


class ConsoleRenderer:
    """Prints streamed status updates to stdout."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._printed: Dict[int, int] = {}

    def _write(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def _write_segment(self, content: str, segment_id: int) -> None:
        already = self._printed.get(segment_id, 0)
        if len(content) > already:
            self._write(content[already:])
            self._printed[segment_id] = len(content)

    async def __call__(
        self, update_type: str, content: str, segment_id: Optional[int] = None
    ) -> None:
        if update_type == StatusUpdateType.TEXT and segment_id is not None:
            self._write_segment(content, segment_id)
        elif update_type == StatusUpdateType.SEGMENT_END and segment_id is not None:
            self._write_segment(content, segment_id)
            self._write("\n")
        elif update_type == StatusUpdateType.TOOL:
            self._write(f"{content}\n")
        elif update_type == StatusUpdateType.DONE:
            self._write("\n")


def new_renderer() -> StatusCallback:
    """Create a renderer for one send attempt."""
    return ConsoleRenderer()


async def relay_message(runtime: Runtime, message: str, retry: bool = False) -> None:
    """Send one message (or retry the last) and report the outcome."""
    logger = logging.getLogger(__name__)
    try:
        if retry:
            await retry_last_message(
                runtime.multiplexer, runtime.pool, CONSOLE_IDENTITY, CONSOLE_USER_ID, new_renderer
            )
        else:
            await send_with_recovery(
                runtime.multiplexer,
                runtime.pool,
                message,
                CONSOLE_IDENTITY,
                CONSOLE_USER_ID,
                new_renderer,
            )
    except CancellationError as e:
        if not e.interrupted:
            print("🛑 Query stopped.")
    except AllAccountsLimitedError as e:
        print(f"⏳ All accounts are rate limited.\n{e.pool_status}")
    except RelayError as e:
        logger.error(f"Query failed: {e.message}")
        print(f"❌ Error: {e.message[:200]}")


async def handle_command(runtime: Runtime, line: str) -> bool:
    """
    Handle a slash command.

    Returns:
        False when the relay should exit
    """
    command, _, argument = line.partition(" ")
    argument = argument.strip()
    multiplexer = runtime.multiplexer

    if command in ("/quit", "/exit"):
        return False
    if command == "/help":
        print(HELP_TEXT)
    elif command == "/status":
        print(
            build_status_report(
                multiplexer, runtime.pool, CONSOLE_USER_ID, runtime.settings.working_dir
            )
        )
    elif command == "/account":
        print(build_account_report(runtime.pool))
    elif command == "/agent":
        if not argument:
            current = multiplexer.get_current_agent(CONSOLE_USER_ID)
            available = ", ".join(a.value for a in multiplexer.available_agents())
            print(f"Agent: {multiplexer.agent_display(current)} (available: {available})")
        else:
            if argument.lower() not in AgentType.values():
                print(f"Unknown agent: {argument}")
                return True
            agent = AgentType(argument.lower())
            try:
                multiplexer.set_agent(agent, CONSOLE_USER_ID)
                print(f"Switched to {multiplexer.agent_display(agent)}")
            except ConfigurationError as e:
                print(f"❌ {e.message}")
    elif command == "/model":
        session = multiplexer.get_session(CONSOLE_USER_ID)
        if not argument:
            print(f"Model: {session.current_model}")
        elif isinstance(session, StreamingSessionEngine):
            await session.set_model(argument)
            print(f"Model set to {argument}")
    elif command == "/new":
        await stop_and_settle(multiplexer.get_session(CONSOLE_USER_ID))
        await multiplexer.kill(CONSOLE_USER_ID)
        print("🆕 Session cleared. Next message starts a new session.")
    elif command == "/stop":
        if not await stop_and_settle(multiplexer.get_session(CONSOLE_USER_ID)):
            print("Nothing is running.")
    else:
        print(f"Unknown command: {command} (try /help)")
    return True


async def run_console(runtime: Runtime) -> None:
    """Read lines from stdin and relay them until EOF or /quit."""
    logger = logging.getLogger(__name__)
    loop = asyncio.get_running_loop()
    current: Optional[asyncio.Task] = None

    print(f"Connected to {runtime.multiplexer.agent_display(runtime.multiplexer.default_agent)}")
    print("Type /help for commands.")

    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            line = line.strip()
            if not line:
                continue

            if line.startswith("/"):
                if line.split(" ", 1)[0] == "/retry":
                    if current is not None and not current.done():
                        print("A query is already running.")
                        continue
                    current = asyncio.create_task(relay_message(runtime, "", retry=True))
                elif not await handle_command(runtime, line):
                    break
                continue

            if line.startswith("!"):
                line = line[1:].strip()
                await supersede_running_query(runtime.multiplexer, CONSOLE_USER_ID)
                if current is not None:
                    await asyncio.gather(current, return_exceptions=True)
                if not line:
                    continue

            if current is not None and not current.done():
                print("A query is already running. Prefix with ! to interrupt it.")
                continue
            current = asyncio.create_task(relay_message(runtime, line))
    finally:
        if current is not None and not current.done():
            current.cancel()
            await asyncio.gather(current, return_exceptions=True)
        await runtime.multiplexer.shutdown()
        logger.info("Relay shutdown complete")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="agentrelay - Streaming coding agent relay")
    parser.add_argument("--status", action="store_true", help="Print status and exit")
    parser.add_argument("--accounts", action="store_true", help="Print account pool and exit")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides LOG_LEVEL)",
    )

    args = parser.parse_args()

    settings = get_settings()
    setup_structured_logging(
        args.log_level or settings.log_level,
        json_format=settings.log_json,
        log_dir=settings.log_dir or None,
    )
    logger = logging.getLogger(__name__)

    try:
        if args.accounts:
            print(build_account_report(AccountPool.from_settings(settings)))
            return

        runtime = build_runtime(settings)
        if args.status:
            print(
                build_status_report(
                    runtime.multiplexer, runtime.pool, CONSOLE_USER_ID, settings.working_dir
                )
            )
            return

        asyncio.run(run_console(runtime))

    except KeyboardInterrupt:
        logger.info("Relay stopped by user")
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
