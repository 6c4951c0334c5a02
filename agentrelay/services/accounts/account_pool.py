"""Credential profile pool with rotate-on-rate-limit strategy."""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

from loguru import logger

from agentrelay.constants import AccountPoolConfig

from .sources import discover_account_names, sanitize_account_name

if TYPE_CHECKING:
    from agentrelay.core.config.settings import RelaySettings


@dataclass
class Account:
    """A named credential profile backed by an instance directory."""

    name: str
    credential_directory: Path
    rate_limited_until: Optional[datetime] = None

    def is_available(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the account may be used.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            True if never limited or the cooldown has elapsed
        """
        if self.rate_limited_until is None:
            return True
        now = now or datetime.now(timezone.utc)
        return self.rate_limited_until <= now

    def cooldown_remaining(self, now: Optional[datetime] = None) -> int:
        """
        Get remaining cooldown in whole seconds (rounded up).

        Returns:
            Seconds left, 0 when available
        """
        if self.rate_limited_until is None:
            return 0
        now = now or datetime.now(timezone.utc)
        remaining = (self.rate_limited_until - now).total_seconds()
        return max(0, math.ceil(remaining))


def format_cooldown(seconds: int) -> str:
    """Render a cooldown as "42s", or "Xm Ys" once it reaches a minute."""
    minutes, secs = divmod(max(0, seconds), 60)
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def build_accounts(names: Sequence[str], root: Path) -> List[Account]:
    """
    Build Account objects from names, keeping only those whose instance dir exists.

    Args:
        names: Candidate account names in discovery order
        root: Credential profile store root

    Returns:
        Admitted accounts
    """
    accounts: List[Account] = []
    for name in names:
        credential_dir = root / AccountPoolConfig.INSTANCES_DIR / sanitize_account_name(name)
        if credential_dir.is_dir():
            accounts.append(Account(name=name, credential_directory=credential_dir))
        else:
            logger.warning(
                f'[AccountPool] Instance dir not found for "{name}": {credential_dir} - skipping'
            )
    return accounts


class AccountPool:
    """
    Rotates between credential profiles when the provider rate limits one.

    The current account is exported to agent processes through a single
    credential-directory environment variable. An empty pool exports nothing,
    leaving the process default credentials in effect.
    """

    def __init__(
        self,
        accounts: Optional[List[Account]] = None,
        cooldown_ms: int = AccountPoolConfig.COOLDOWN_MS,
    ):
        """
        Initialize account pool.

        Args:
            accounts: Admitted accounts in discovery order
            cooldown_ms: Default cooldown applied by mark_limited_and_rotate
        """
        self._accounts: List[Account] = list(accounts or [])
        self._current_index = 0
        self.cooldown_ms = cooldown_ms

        if not self._accounts:
            logger.info("[AccountPool] No accounts found - using default env")
        else:
            logger.info(
                f"[AccountPool] Loaded {len(self._accounts)} account(s): "
                f"{', '.join(a.name for a in self._accounts)}"
            )

    @classmethod
    def from_store(
        cls,
        root: Path,
        explicit: Optional[str] = None,
        cooldown_ms: int = AccountPoolConfig.COOLDOWN_MS,
    ) -> "AccountPool":
        """
        Discover accounts under a credential profile store.

        Args:
            root: Store root containing config.yaml / profiles.json / instances/
            explicit: Explicit comma-separated account list (takes priority)
            cooldown_ms: Default rate-limit cooldown

        Returns:
            Configured AccountPool
        """
        names = discover_account_names(root, explicit)
        return cls(build_accounts(names, root), cooldown_ms=cooldown_ms)

    @classmethod
    def from_settings(cls, settings: "RelaySettings") -> "AccountPool":
        """Build the pool described by application settings."""
        return cls.from_store(
            settings.pool_root(),
            explicit=settings.claude_accounts,
            cooldown_ms=settings.account_cooldown_ms,
        )

    @property
    def accounts(self) -> Sequence[Account]:
        """Accounts in rotation order (read-only view)."""
        return tuple(self._accounts)

    @property
    def current_index(self) -> int:
        """Index of the account currently in use."""
        return self._current_index

    @property
    def current_account(self) -> Optional[Account]:
        """Account currently in use, or None for an empty pool."""
        if not self._accounts:
            return None
        return self._accounts[self._current_index]

    @property
    def current_name(self) -> str:
        """Name of the current account, or 'default' without a pool."""
        account = self.current_account
        return account.name if account else AccountPoolConfig.DEFAULT_ACCOUNT_NAME

    @property
    def account_count(self) -> int:
        """Total number of admitted accounts."""
        return len(self._accounts)

    def get_current_env(self) -> Dict[str, str]:
        """
        Get environment overrides for the current account.

        Returns:
            Credential directory override, or an empty dict without a pool
        """
        account = self.current_account
        if account is None:
            return {}
        return {AccountPoolConfig.CREDENTIAL_DIR_ENV: str(account.credential_directory)}

    def mark_limited_and_rotate(self, cooldown_ms: Optional[int] = None) -> bool:
        """
        Mark the current account rate limited and move to the next usable one.

        Scans exactly once around the pool starting after the current index.
        When no account qualifies the current index is left unchanged.

        Args:
            cooldown_ms: Override for the cooldown duration

        Returns:
            True if an available account was selected, False if all are limited
        """
        cooldown = self.cooldown_ms if cooldown_ms is None else cooldown_ms
        account = self.current_account
        if account is None:
            return False

        account.rate_limited_until = datetime.now(timezone.utc) + timedelta(milliseconds=cooldown)
        logger.info(f'[AccountPool] Account "{account.name}" rate limited for {cooldown / 1000}s')

        now = datetime.now(timezone.utc)
        size = len(self._accounts)
        start = self._current_index

        for step in range(1, size + 1):
            index = (start + step) % size
            candidate = self._accounts[index]
            if candidate.is_available(now):
                self._current_index = index
                logger.info(f'[AccountPool] Rotated to account "{candidate.name}" (index {index})')
                return True

        logger.warning("[AccountPool] All accounts are rate limited")
        return False

    def get_status(self) -> str:
        """
        Get a one-line summary of every account.

        Returns:
            e.g. "> work [ok],   personal [limited 42s]"
        """
        if not self._accounts:
            return "No pool configured"

        now = datetime.now(timezone.utc)
        parts = []
        for index, account in enumerate(self._accounts):
            prefix = ">" if index == self._current_index else " "
            if not account.is_available(now):
                parts.append(
                    f"{prefix} {account.name} [limited {account.cooldown_remaining(now)}s]"
                )
            else:
                parts.append(f"{prefix} {account.name} [ok]")
        return ", ".join(parts)

    def describe(self, now: Optional[datetime] = None) -> List[str]:
        """
        Get one detailed line per account for the account report.

        Returns:
            Lines like "▶ work - available" or "  personal - limited (4m 10s left)"
        """
        now = now or datetime.now(timezone.utc)
        lines = []
        for index, account in enumerate(self._accounts):
            marker = "▶" if index == self._current_index else " "
            if account.is_available(now):
                lines.append(f"{marker} {account.name} - available")
            else:
                cooldown = format_cooldown(account.cooldown_remaining(now))
                lines.append(f"{marker} {account.name} - limited ({cooldown} left)")
        return lines
