"""
PushGate - Domain Type Tests

Tests for push classification and the decision timer.

Run with: pytest tests/test_types.py -v
"""

import time

import pytest

from pushgate.core.exceptions import TimerAlreadyConsumedError
from pushgate.core.types import DecisionTimer, EventType, IncomingEvent


class TestClassification:
    """Tests for IncomingEvent.from_payload."""

    @pytest.mark.parametrize(
        "payload,expected",
        [
            ({"type": "call"}, EventType.CALL),
            ({"type": "checkin"}, EventType.CHECKIN),
            ({"type": "message"}, EventType.MESSAGE),
            ({"type": "CALL"}, EventType.UNKNOWN),
            ({"type": "video"}, EventType.UNKNOWN),
            ({"type": 42}, EventType.UNKNOWN),
            ({"type": None}, EventType.UNKNOWN),
            ({"type": ["call"]}, EventType.UNKNOWN),
            ({}, EventType.UNKNOWN),
        ],
    )
    def test_discriminator(self, payload: dict, expected: EventType):
        assert IncomingEvent.from_payload(payload).event_type == expected

    def test_payload_is_copied(self, call_payload: dict):
        """Later changes to the source dict must not leak into the event."""
        event = IncomingEvent.from_payload(call_payload)
        call_payload["unique_key"] = "changed"

        assert event.unique_key == "9f8e7d6c5b4a39281706"

    def test_payload_is_read_only(self, call_payload: dict):
        event = IncomingEvent.from_payload(call_payload)

        with pytest.raises(TypeError):
            event.payload["available"] = True  # type: ignore[index]

    def test_payload_kept_verbatim(self, call_payload: dict):
        event = IncomingEvent.from_payload(call_payload)
        assert dict(event.payload) == call_payload

    def test_events_with_equal_payloads_are_distinct(self, call_payload: dict):
        first = IncomingEvent.from_payload(call_payload)
        second = IncomingEvent.from_payload(call_payload)
        assert first != second

    def test_unique_key_absent(self):
        assert IncomingEvent.from_payload({"type": "call"}).unique_key is None


class TestDecisionTimer:
    """Tests for DecisionTimer."""

    def test_elapsed_is_non_negative(self):
        timer = DecisionTimer()
        assert timer.elapsed() >= 0

    def test_consume_measures_from_start(self):
        timer = DecisionTimer()
        time.sleep(0.02)
        assert timer.consume() >= 0.02
        assert timer.consumed is True

    def test_consume_twice_raises(self):
        timer = DecisionTimer()
        timer.consume()

        with pytest.raises(TimerAlreadyConsumedError):
            timer.consume()
