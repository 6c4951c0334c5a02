"""agentrelay - Streaming relay between chat callers and coding agents."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

__version__ = "0.3.0"
__license__ = "MIT"

if TYPE_CHECKING:
    from .core.config.settings import RelaySettings as RelaySettings
    from .core.config.settings import get_settings as get_settings
    from .core.logger import setup_structured_logging as setup_structured_logging
    from .services.accounts import AccountPool as AccountPool
    from .services.agents import AgentMultiplexer as AgentMultiplexer
    from .services.agents import send_with_recovery as send_with_recovery
    from .services.session import StreamingSessionEngine as StreamingSessionEngine
    from .services.status import build_status_report as build_status_report

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    # Core
    "RelaySettings": ("agentrelay.core.config.settings", "RelaySettings"),
    "get_settings": ("agentrelay.core.config.settings", "get_settings"),
    "setup_structured_logging": ("agentrelay.core.logger", "setup_structured_logging"),
    # Services
    "AccountPool": ("agentrelay.services.accounts", "AccountPool"),
    "AgentMultiplexer": ("agentrelay.services.agents", "AgentMultiplexer"),
    "send_with_recovery": ("agentrelay.services.agents", "send_with_recovery"),
    "StreamingSessionEngine": ("agentrelay.services.session", "StreamingSessionEngine"),
    "build_status_report": ("agentrelay.services.status", "build_status_report"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        # Cache in module globals to avoid repeated imports
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
