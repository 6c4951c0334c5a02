"""Application settings with Pydantic validation."""

import shlex
from pathlib import Path
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentrelay.constants import AccountPoolConfig, Streaming, Timeouts
from agentrelay.core.enums import AgentType


class RelaySettings(BaseSettings):
    """Application settings with validation and environment variable support."""

    # Environment
    env: str = Field(
        default="production", description="Environment (production, development, testing)"
    )

    @model_validator(mode="before")
    @classmethod
    def default_env_for_pytest(cls, data: Any) -> Any:
        """Auto-detect testing environment when running under pytest."""
        import sys

        if not isinstance(data, dict):
            return data

        if ("env" not in data or not data.get("env")) and "pytest" in sys.modules:
            data["env"] = "testing"

        return data

    # Logging
    log_level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_json: bool = Field(default=False, description="Serialize file logs as JSON lines")
    log_dir: Optional[str] = Field(
        default="logs", description="Directory for log files (empty disables file logging)"
    )

    # Account pool
    ccs_dir: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("CCS_DIR", "CCS_HOME", "ccs_dir"),
        description="Root of the credential profile store (defaults to ~/.ccs)",
    )
    claude_accounts: Optional[str] = Field(
        default=None, description="Explicit comma-separated list of account names"
    )
    account_cooldown_ms: int = Field(
        default=AccountPoolConfig.COOLDOWN_MS,
        ge=0,
        description="Cooldown applied to an account after it hits a rate limit",
    )

    # Streaming
    streaming_throttle_ms: int = Field(
        default=Streaming.THROTTLE_MS, ge=0, description="Minimum gap between text updates"
    )
    min_segment_chars: int = Field(
        default=Streaming.MIN_SEGMENT_CHARS,
        ge=0,
        description="Segment length that must be exceeded before text updates are sent",
    )
    query_timeout_seconds: float = Field(
        default=Timeouts.QUERY_SECONDS, gt=0, description="Absolute timeout for one send"
    )

    # Agents
    working_dir: str = Field(
        default_factory=lambda: str(Path.cwd()),
        description="Working directory handed to agent sessions",
    )
    default_agent: AgentType = Field(
        default=AgentType.CLAUDE, description="Agent used for users without a preference"
    )
    claude_model: str = Field(default="sonnet", description="Model for Claude sessions")
    copilot_model: str = Field(default="claude-sonnet-4", description="Model for Copilot sessions")
    claude_command: Optional[str] = Field(
        default=None, description="Command line of the Claude JSON-lines agent process"
    )
    copilot_command: Optional[str] = Field(
        default=None, description="Command line of the Copilot JSON-lines agent process"
    )
    github_token: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "COPILOT_GITHUB_TOKEN", "github_token"),
        description="Token forwarded to the Copilot agent process",
    )
    safety_prompt: str = Field(
        default="", description="System prompt appended to every new agent session"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ["production", "development", "testing", "staging"]
        if v.lower() not in allowed:
            raise ValueError(f'ENV must be one of: {", ".join(allowed)}')
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f'LOG_LEVEL must be one of: {", ".join(allowed)}')
        return v_upper

    @field_validator("default_agent", mode="before")
    @classmethod
    def normalize_default_agent(cls, v: Any) -> Any:
        """Accept agent names in any case."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    def pool_root(self) -> Path:
        """
        Resolve the credential profile store root.

        Returns:
            CCS_DIR / CCS_HOME when set, otherwise ~/.ccs
        """
        if self.ccs_dir:
            return Path(self.ccs_dir).expanduser()
        return Path.home() / AccountPoolConfig.DEFAULT_ROOT_NAME

    def command_for(self, agent: AgentType) -> Optional[List[str]]:
        """
        Get the argv for an agent's backend process.

        Args:
            agent: Agent type

        Returns:
            Parsed command, or None when the agent is not configured
        """
        raw = self.claude_command if agent == AgentType.CLAUDE else self.copilot_command
        if not raw or not raw.strip():
            return None
        return shlex.split(raw)

    def model_for(self, agent: AgentType) -> str:
        """Get the configured model for an agent."""
        return self.claude_model if agent == AgentType.CLAUDE else self.copilot_model


# Singleton instance
_settings: Optional[RelaySettings] = None


def get_settings() -> RelaySettings:
    """
    Get application settings singleton.

    Returns:
        RelaySettings instance

    Raises:
        ValidationError: If settings are invalid
    """
    global _settings
    if _settings is None:
        _settings = RelaySettings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
