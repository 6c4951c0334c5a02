"""Resilience-related constants (retries, account pool)."""

from typing import Final


class Retries:
    """Retry configuration."""

    MAX_CRASH_RETRIES: Final[int] = 1


class AccountPoolConfig:
    """Account pool configuration for credential profile rotation."""

    COOLDOWN_MS: Final[int] = 300_000  # 5 minutes
    CREDENTIAL_DIR_ENV: Final[str] = "CLAUDE_CONFIG_DIR"
    ACCOUNTS_ENV: Final[str] = "CLAUDE_ACCOUNTS"
    CONFIG_FILE: Final[str] = "config.yaml"
    PROFILES_FILE: Final[str] = "profiles.json"
    INSTANCES_DIR: Final[str] = "instances"
    DEFAULT_ROOT_NAME: Final[str] = ".ccs"
    DEFAULT_ACCOUNT_NAME: Final[str] = "default"
