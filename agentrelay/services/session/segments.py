"""Response segmentation and text update throttling.

A segment is the prose between two tool invocations. Text updates for a
segment are throttled; closing a segment (tool start, idle) always yields its
final text so the caller can finish that UI message before the next begins.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from agentrelay.constants import Streaming

SegmentUpdate = Tuple[str, int]


@dataclass
class Segment:
    """Text accumulated since the last tool invocation."""

    text: str = ""
    id: int = 0
    last_emit: Optional[float] = None


class SegmentTracker:
    """Accumulates one send's response text and decides when to surface it."""

    def __init__(
        self,
        throttle_ms: int = Streaming.THROTTLE_MS,
        min_chars: int = Streaming.MIN_SEGMENT_CHARS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize segment tracker.

        Args:
            throttle_ms: Minimum gap between text updates of one segment
            min_chars: Segment length that must be exceeded before updating
            clock: Monotonic clock in seconds
        """
        self.throttle_seconds = throttle_ms / 1000
        self.min_chars = min_chars
        self._clock = clock
        self.segment = Segment()
        self.full_text = ""
        self.received_delta = False

    def add_delta(self, delta: str) -> Optional[SegmentUpdate]:
        """
        Record an incremental text delta.

        Returns:
            (segment text, segment id) when a text update is due, else None
        """
        self.received_delta = True
        return self._append(delta)

    def add_message(self, content: str) -> Optional[SegmentUpdate]:
        """
        Record a complete message, used only when no deltas were streamed.

        Returns:
            (segment text, segment id) when a text update is due, else None
        """
        if self.received_delta or not content:
            return None
        return self._append(content)

    def _append(self, text: str) -> Optional[SegmentUpdate]:
        self.full_text += text
        self.segment.text += text

        now = self._clock()
        last = self.segment.last_emit
        throttled = last is not None and (now - last) <= self.throttle_seconds
        if throttled or len(self.segment.text) <= self.min_chars:
            return None

        self.segment.last_emit = now
        return self.segment.text, self.segment.id

    def close_segment(self) -> Optional[SegmentUpdate]:
        """
        Close the current segment ahead of a tool invocation.

        Returns:
            (final text, id) of the closed segment, or None if it was empty
            (an empty segment keeps its id)
        """
        if not self.segment.text:
            return None
        closed = (self.segment.text, self.segment.id)
        self.segment = Segment(id=self.segment.id + 1)
        return closed

    def final_segment(self) -> Optional[SegmentUpdate]:
        """Get the open segment's text for the terminal flush, if any."""
        if not self.segment.text:
            return None
        return self.segment.text, self.segment.id
