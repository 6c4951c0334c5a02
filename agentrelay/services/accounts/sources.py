"""Account name discovery from the credential profile store.

Sources are consulted in priority order and the first one yielding at least
one name wins:

1. Explicit comma-separated list (``CLAUDE_ACCOUNTS``)
2. ``<root>/config.yaml`` ``accounts`` section, either layout::

       accounts:            accounts:
         work:                - name: work
           created: ...       - personal
         personal: {}

3. ``<root>/profiles.json``: ``[{"name": ...}]`` or ``{"<name>": {...}}``
"""

import json
import re
from pathlib import Path
from typing import Any, List, Optional

import yaml
from loguru import logger

from agentrelay.constants import AccountPoolConfig

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def sanitize_account_name(name: str) -> str:
    """
    Derive the instance directory identifier for an account name.

    Args:
        name: Account name as written in the source

    Returns:
        Lower-cased name with every character outside [A-Za-z0-9_-] replaced by '-'
    """
    return _UNSAFE_CHARS.sub("-", name).lower()


def parse_account_list(raw: Optional[str]) -> Optional[List[str]]:
    """
    Parse an explicit comma-separated account list.

    Args:
        raw: Raw environment value

    Returns:
        Non-empty names, or None if nothing usable was given
    """
    if not raw:
        return None
    names = [part.strip() for part in raw.split(",") if part.strip()]
    return names or None


def _names_from_section(section: Any) -> List[str]:
    """Extract names from a parsed ``accounts`` section (mapping or list layout)."""
    names: List[str] = []
    if isinstance(section, dict):
        names.extend(str(key).strip() for key in section.keys())
    elif isinstance(section, list):
        for entry in section:
            if isinstance(entry, dict):
                value = entry.get("name")
                if isinstance(value, str):
                    names.append(value.strip())
            elif isinstance(entry, str):
                names.append(entry.strip())
    return [name for name in names if name]


def parse_config_accounts(content: str) -> Optional[List[str]]:
    """
    Extract account names from config.yaml content.

    Scalars are loaded as plain strings so names like ``yes`` or ``2024``
    keep their spelling.

    Args:
        content: YAML document

    Returns:
        Account names in document order, or None if the section is absent or empty

    Raises:
        yaml.YAMLError: If the document is not valid YAML
    """
    document = yaml.load(content, Loader=yaml.BaseLoader)
    if not isinstance(document, dict):
        return None
    names = _names_from_section(document.get("accounts"))
    return names or None


def load_from_config_yaml(root: Path) -> Optional[List[str]]:
    """
    Load account names from <root>/config.yaml.

    Args:
        root: Credential profile store root

    Returns:
        Account names, or None if the file is missing, unreadable or has no accounts
    """
    config_path = root / AccountPoolConfig.CONFIG_FILE
    if not config_path.exists():
        return None

    try:
        return parse_config_accounts(config_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning(f"[AccountPool] Could not read {config_path}: {e}")
        return None


def parse_profiles(content: str) -> Optional[List[str]]:
    """
    Extract account names from profiles.json content.

    Args:
        content: JSON document

    Returns:
        Account names, or None if the document has an unsupported shape

    Raises:
        json.JSONDecodeError: If the document is not valid JSON
    """
    profiles = json.loads(content)

    if isinstance(profiles, list):
        names = [
            entry["name"]
            for entry in profiles
            if isinstance(entry, dict) and isinstance(entry.get("name"), str) and entry["name"]
        ]
        return names or None

    if isinstance(profiles, dict):
        return list(profiles.keys()) or None

    return None


def load_from_profiles_json(root: Path) -> Optional[List[str]]:
    """
    Load account names from <root>/profiles.json.

    Args:
        root: Credential profile store root

    Returns:
        Account names, or None if the file is missing, unreadable or malformed
    """
    profiles_path = root / AccountPoolConfig.PROFILES_FILE
    if not profiles_path.exists():
        return None

    try:
        return parse_profiles(profiles_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"[AccountPool] Could not read {profiles_path}: {e}")
        return None


def discover_account_names(root: Path, explicit: Optional[str] = None) -> List[str]:
    """
    Resolve the ordered account names from the first non-empty source.

    Args:
        root: Credential profile store root
        explicit: Explicit comma-separated list, highest priority

    Returns:
        Account names (empty list when no source has any)
    """
    return (
        parse_account_list(explicit)
        or load_from_config_yaml(root)
        or load_from_profiles_json(root)
        or []
    )
