"""Business logic services module."""

import importlib as _importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .accounts import AccountPool as AccountPool
    from .agents import AgentMultiplexer as AgentMultiplexer
    from .session import JsonlProcessBackend as JsonlProcessBackend
    from .session import StreamingSessionEngine as StreamingSessionEngine

_LAZY_MODULE_MAP = {
    "AccountPool": ("agentrelay.services.accounts", "AccountPool"),
    "AgentMultiplexer": ("agentrelay.services.agents", "AgentMultiplexer"),
    "JsonlProcessBackend": ("agentrelay.services.session", "JsonlProcessBackend"),
    "StreamingSessionEngine": ("agentrelay.services.session", "StreamingSessionEngine"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str):
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
