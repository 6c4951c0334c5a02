"""Credential profile discovery and rotation."""

from .account_pool import Account, AccountPool, build_accounts, format_cooldown
from .sources import discover_account_names, sanitize_account_name

__all__ = [
    "Account",
    "AccountPool",
    "build_accounts",
    "discover_account_names",
    "format_cooldown",
    "sanitize_account_name",
]
