"""Routes users to agent session engines by stored preference."""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from loguru import logger

from agentrelay.constants import LogEmoji
from agentrelay.core.enums import AgentType
from agentrelay.core.exceptions import ConfigurationError
from agentrelay.services.session.callbacks import StatusCallback
from agentrelay.services.session.protocol import AgentSession, StopOutcome

AGENT_DISPLAY_NAMES: Dict[AgentType, str] = {
    AgentType.CLAUDE: f"{LogEmoji.BOT} Claude Code",
    AgentType.COPILOT: f"{LogEmoji.OCTOPUS} GitHub Copilot",
}


@dataclass(frozen=True)
class SessionInfo:
    """Snapshot of the session a user is routed to."""

    agent: AgentType
    is_active: bool
    is_running: bool
    last_activity: Optional[datetime]
    last_error: Optional[str]
    current_model: str


class AgentMultiplexer:
    """
    Dispatch layer over one session engine per agent type.

    Engines are shared by every user of that agent; the multiplexer only
    remembers which agent each user prefers.
    """

    def __init__(
        self,
        engines: Optional[Dict[AgentType, AgentSession]] = None,
        default_agent: AgentType = AgentType.CLAUDE,
    ):
        """
        Initialize multiplexer.

        Args:
            engines: Session engine per agent type
            default_agent: Agent for users without a preference
        """
        self._engines: Dict[AgentType, AgentSession] = dict(engines or {})
        self._default_agent = default_agent
        self._user_preferences: Dict[int, AgentType] = {}

    def register_engine(self, agent: AgentType, engine: AgentSession) -> None:
        """Register (or replace) the engine serving an agent type."""
        self._engines[agent] = engine
        logger.debug(f"Registered {agent.value} engine")

    @property
    def default_agent(self) -> AgentType:
        """Global agent preference."""
        return self._default_agent

    def get_current_agent(self, user_id: Optional[int] = None) -> AgentType:
        """
        Get the agent a user is routed to.

        Args:
            user_id: User identifier; None selects the global preference

        Returns:
            User preference, or the global default
        """
        if user_id is not None and user_id in self._user_preferences:
            return self._user_preferences[user_id]
        return self._default_agent

    def set_agent(self, agent: AgentType, user_id: Optional[int] = None) -> None:
        """
        Set the preferred agent for a user, or globally when user_id is None.

        Raises:
            ConfigurationError: If no engine serves the agent
        """
        if agent not in self._engines:
            raise ConfigurationError(f"Agent '{agent.value}' is not configured")
        if user_id is not None:
            self._user_preferences[user_id] = agent
            logger.info(f"User {user_id} switched to {agent.value}")
        else:
            self._default_agent = agent
            logger.info(f"Global agent switched to {agent.value}")

    def get_engine(self, agent: AgentType) -> AgentSession:
        """
        Get the engine serving an agent type.

        Raises:
            ConfigurationError: If no engine serves the agent
        """
        engine = self._engines.get(agent)
        if engine is None:
            raise ConfigurationError(f"Agent '{agent.value}' is not configured")
        return engine

    def get_session(self, user_id: Optional[int] = None) -> AgentSession:
        """Get the engine a user is routed to."""
        return self.get_engine(self.get_current_agent(user_id))

    def get_session_info(self, user_id: Optional[int] = None) -> SessionInfo:
        """Get a status snapshot of the user's session."""
        agent = self.get_current_agent(user_id)
        session = self.get_engine(agent)
        return SessionInfo(
            agent=agent,
            is_active=session.is_active,
            is_running=session.is_running,
            last_activity=session.last_activity,
            last_error=session.last_error,
            current_model=session.current_model,
        )

    async def send_message(
        self,
        message: str,
        identity: str,
        user_id: Optional[int],
        status_callback: StatusCallback,
    ) -> str:
        """Send a message through the user's engine."""
        return await self.get_session(user_id).send_message_streaming(
            message, identity, status_callback
        )

    async def stop(self, user_id: Optional[int] = None) -> StopOutcome:
        """Stop the user's running query."""
        return await self.get_session(user_id).stop()

    async def kill(self, user_id: Optional[int] = None) -> None:
        """Kill the user's session."""
        await self.get_session(user_id).kill()

    async def shutdown(self) -> None:
        """Shut down every engine."""
        for agent, engine in self._engines.items():
            try:
                await engine.shutdown()
            except Exception as e:
                logger.warning(f"Error shutting down {agent.value} engine: {e}")

    @staticmethod
    def agent_display(agent: AgentType) -> str:
        """Get agent display name with emoji."""
        return AGENT_DISPLAY_NAMES[agent]

    def available_agents(self) -> List[AgentType]:
        """Get configured agents in declaration order."""
        return [agent for agent in AgentType if agent in self._engines]
