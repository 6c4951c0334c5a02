"""Tests for response segmentation and throttling."""

from agentrelay.services.session.segments import SegmentTracker


def make_tracker(clock, throttle_ms=500, min_chars=20):
    return SegmentTracker(throttle_ms=throttle_ms, min_chars=min_chars, clock=clock)


def test_short_text_is_not_emitted(clock):
    """Test segments at or below the minimum length stay buffered."""
    tracker = make_tracker(clock)

    assert tracker.add_delta("x" * 20) is None
    assert tracker.full_text == "x" * 20


def test_first_update_once_threshold_exceeded(clock):
    """Test the first update is emitted once the segment exceeds the minimum."""
    tracker = make_tracker(clock)
    tracker.add_delta("x" * 20)

    assert tracker.add_delta("y") == ("x" * 20 + "y", 0)


def test_updates_are_throttled(clock):
    """Test no two updates of one segment inside the throttle interval."""
    tracker = make_tracker(clock)
    assert tracker.add_delta("a" * 25) is not None

    clock.advance(0.25)
    assert tracker.add_delta("b") is None

    clock.advance(0.25)
    assert tracker.add_delta("c") is None  # exactly 500ms is still throttled

    clock.advance(0.125)
    update = tracker.add_delta("d")
    assert update == ("a" * 25 + "bcd", 0)


def test_close_segment_advances_id(clock):
    """Test tool start closes the segment and starts a new one."""
    tracker = make_tracker(clock)
    tracker.add_delta("hello world")

    assert tracker.close_segment() == ("hello world", 0)
    assert tracker.segment.id == 1
    assert tracker.segment.text == ""
    assert tracker.segment.last_emit is None


def test_close_empty_segment_keeps_id(clock):
    """Test closing an empty segment emits nothing and keeps the id."""
    tracker = make_tracker(clock)

    assert tracker.close_segment() is None
    assert tracker.segment.id == 0


def test_new_segment_resets_throttle(clock):
    """Test a new segment can emit immediately after the previous one emitted."""
    tracker = make_tracker(clock)
    assert tracker.add_delta("a" * 25) is not None
    tracker.close_segment()

    assert tracker.add_delta("b" * 25) == ("b" * 25, 1)


def test_full_text_spans_segments(clock):
    """Test the full response accumulates across segments."""
    tracker = make_tracker(clock)
    tracker.add_delta("one ")
    tracker.close_segment()
    tracker.add_delta("two")

    assert tracker.full_text == "one two"
    assert tracker.final_segment() == ("two", 1)


def test_message_used_only_without_deltas(clock):
    """Test complete messages are ignored once deltas streamed."""
    tracker = make_tracker(clock)
    tracker.add_delta("streamed")

    assert tracker.add_message("streamed text repeated in full") is None
    assert tracker.full_text == "streamed"


def test_message_without_deltas_is_recorded(clock):
    """Test a complete message stands in when no deltas arrived."""
    tracker = make_tracker(clock)

    update = tracker.add_message("a complete answer longer than twenty")

    assert update == ("a complete answer longer than twenty", 0)
    assert tracker.full_text == "a complete answer longer than twenty"
    assert tracker.received_delta is False


def test_final_segment_empty(clock):
    """Test no terminal flush for an empty open segment."""
    tracker = make_tracker(clock)

    assert tracker.final_segment() is None
