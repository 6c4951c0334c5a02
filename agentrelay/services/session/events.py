"""Backend event and usage models."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SessionEvent:
    """One event delivered by an agent backend session."""

    type: str
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SessionEvent":
        """
        Create SessionEvent from a decoded wire payload.

        Args:
            payload: Mapping with "type" and optional "data"

        Raises:
            ValueError: If the payload has no string "type"
        """
        event_type = payload.get("type")
        if not isinstance(event_type, str) or not event_type:
            raise ValueError(f"SessionEvent.from_dict: missing event type in {payload!r}")
        data = payload.get("data")
        return cls(type=event_type, data=data if isinstance(data, dict) else {})

    def get_str(self, key: str, default: str = "") -> str:
        """Get a string field from the event data."""
        value = self.data.get(key)
        return value if isinstance(value, str) else default


@dataclass
class TokenUsage:
    """Token counts reported for the last turn."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_input_tokens: int = 0
    cache_creation_input_tokens: int = 0

    @classmethod
    def from_event_data(cls, data: Dict[str, Any]) -> "TokenUsage":
        """Create TokenUsage from an assistant.usage event payload."""

        def _count(key: str) -> int:
            value: Optional[Any] = data.get(key)
            return int(value) if isinstance(value, (int, float)) else 0

        return cls(
            input_tokens=_count("inputTokens"),
            output_tokens=_count("outputTokens"),
            cache_read_input_tokens=_count("cacheReadTokens"),
            cache_creation_input_tokens=_count("cacheWriteTokens"),
        )
