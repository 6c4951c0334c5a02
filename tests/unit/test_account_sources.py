"""Tests for account name discovery."""

import json

import pytest
import yaml

from agentrelay.services.accounts.sources import (
    discover_account_names,
    load_from_config_yaml,
    load_from_profiles_json,
    parse_account_list,
    parse_config_accounts,
    parse_profiles,
    sanitize_account_name,
)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("work", "work"),
        ("Work", "work"),
        ("my account", "my-account"),
        ("a.b@c", "a-b-c"),
        ("keep_under-score", "keep_under-score"),
    ],
)
def test_sanitize_account_name(name, expected):
    """Test filesystem-safe identifier derivation."""
    assert sanitize_account_name(name) == expected


def test_parse_account_list():
    """Test explicit comma-separated list parsing."""
    assert parse_account_list(" a , b,,c ") == ["a", "b", "c"]
    assert parse_account_list("") is None
    assert parse_account_list(None) is None
    assert parse_account_list(" , ") is None


def test_parse_config_mapping_layout():
    """Test accounts section as a mapping keyed by name."""
    content = """
default: work
accounts:
  work:
    created: 2024-01-01
  personal: {}
"""
    assert parse_config_accounts(content) == ["work", "personal"]


def test_parse_config_list_layout():
    """Test accounts section as a list of names and name entries."""
    content = """
accounts:
  - name: work
  - personal
  - name: "side project"
"""
    assert parse_config_accounts(content) == ["work", "personal", "side project"]


def test_parse_config_keeps_scalar_spelling():
    """Test names that look like booleans or numbers stay strings."""
    content = "accounts:\n  - yes\n  - 2024\n"

    assert parse_config_accounts(content) == ["yes", "2024"]


def test_parse_config_without_accounts():
    """Test missing or empty accounts section."""
    assert parse_config_accounts("profiles:\n  a: {}\n") is None
    assert parse_config_accounts("accounts:\n") is None
    assert parse_config_accounts("just a string") is None


def test_parse_config_invalid_yaml():
    """Test malformed YAML raises."""
    with pytest.raises(yaml.YAMLError):
        parse_config_accounts("accounts: [unclosed\n")


def test_parse_profiles_array():
    """Test profiles.json as an array of objects."""
    content = json.dumps([{"name": "a"}, {"name": ""}, {"other": 1}, {"name": "b"}])

    assert parse_profiles(content) == ["a", "b"]


def test_parse_profiles_object():
    """Test profiles.json as an object keyed by name."""
    content = json.dumps({"a": {"created": "x"}, "b": {}})

    assert parse_profiles(content) == ["a", "b"]


def test_parse_profiles_unsupported_shape():
    """Test profiles.json with a scalar document."""
    assert parse_profiles("42") is None
    assert parse_profiles("[]") is None


def test_load_config_yaml_missing(pool_root):
    """Test missing config file counts as empty."""
    assert load_from_config_yaml(pool_root) is None


def test_load_config_yaml_malformed_counts_as_empty(pool_root):
    """Test malformed config file is logged and treated as empty."""
    (pool_root / "config.yaml").write_text("accounts: [unclosed\n", encoding="utf-8")

    assert load_from_config_yaml(pool_root) is None


def test_load_profiles_json_malformed_counts_as_empty(pool_root):
    """Test malformed profiles file is logged and treated as empty."""
    (pool_root / "profiles.json").write_text("{not json", encoding="utf-8")

    assert load_from_profiles_json(pool_root) is None


def test_discover_prefers_explicit(pool_root):
    """Test explicit list wins over every file."""
    (pool_root / "config.yaml").write_text("accounts:\n  - b\n", encoding="utf-8")

    assert discover_account_names(pool_root, "a") == ["a"]


def test_discover_falls_back_to_profiles(pool_root):
    """Test profiles.json is used when config.yaml has no accounts."""
    (pool_root / "config.yaml").write_text("accounts: []\n", encoding="utf-8")
    (pool_root / "profiles.json").write_text(json.dumps([{"name": "p"}]), encoding="utf-8")

    assert discover_account_names(pool_root) == ["p"]


def test_discover_falls_back_past_malformed_config(pool_root):
    """Test malformed config.yaml does not block the fallback file."""
    (pool_root / "config.yaml").write_text("accounts: [unclosed\n", encoding="utf-8")
    (pool_root / "profiles.json").write_text(json.dumps({"p": {}}), encoding="utf-8")

    assert discover_account_names(pool_root) == ["p"]


def test_discover_nothing(pool_root):
    """Test no sources yields an empty list."""
    assert discover_account_names(pool_root) == []


def test_same_name_sanitizes_identically_from_every_source(pool_root):
    """Test a name with spaces resolves to one instance directory from any source."""
    (pool_root / "config.yaml").write_text('accounts:\n  - "Team Acct"\n', encoding="utf-8")
    from_yaml = discover_account_names(pool_root)
    (pool_root / "config.yaml").unlink()
    (pool_root / "profiles.json").write_text(json.dumps([{"name": "Team Acct"}]), encoding="utf-8")
    from_json = discover_account_names(pool_root)
    from_explicit = discover_account_names(pool_root, "Team Acct")

    identifiers = {
        sanitize_account_name(names[0]) for names in (from_yaml, from_json, from_explicit)
    }
    assert identifiers == {"team-acct"}
