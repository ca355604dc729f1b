"""
PushGate - Observability Sink

Receives outcome events (accepted, rejected, registration upsert/delete
results) and per-call latency measurements.

Notes:
    - Every observation is also written to the log
    - In-memory store is bounded to prevent memory issues
    - All data is ephemeral (lost on restart)
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections import defaultdict
from threading import Lock
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pushgate.config import Settings
from pushgate.core.types import (
    LatencyMeasurement,
    ObservabilitySummary,
    ObservationEvent,
    OutcomeKind,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Protocol
# =============================================================================

@runtime_checkable
class ObservabilitySink(Protocol):
    """
    Protocol for outcome and latency observations.

    Implementations must be thread-safe; recording must never raise into
    the caller.
    """

    @abstractmethod
    def record_outcome(self, kind: OutcomeKind, data: Optional[Dict[str, Any]] = None) -> None:
        """Record an outcome event."""
        ...

    @abstractmethod
    def record_latency(self, seconds: float, available: bool, delivered: bool) -> None:
        """Record the decision latency of one call event."""
        ...


# =============================================================================
# In-Memory Implementation
# =============================================================================

class InMemoryObservabilityStore:
    """
    In-memory implementation of ObservabilitySink.

    Keeps bounded buffers of outcome events and latency measurements,
    and can summarize them for the API. Thread-safe.
    """

    def __init__(self, max_events: int = 10000):
        """
        Initialize the in-memory store.

        Args:
            max_events: Maximum number of events (and latencies) to keep
        """
        self._max_events = max_events

        self._lock = Lock()
        self._events: List[ObservationEvent] = []
        self._latencies: List[LatencyMeasurement] = []

        logger.info("InMemoryObservabilityStore initialized: max_events=%d", max_events)

    def record_outcome(self, kind: OutcomeKind, data: Optional[Dict[str, Any]] = None) -> None:
        """Record an outcome event."""
        event = ObservationEvent(kind=kind, data=dict(data or {}))
        logger.info("Observed %s", kind.value, extra={"event_type": kind.value, "data": event.data})

        with self._lock:
            self._events.append(event)
            self._trim(self._events)

    def record_latency(self, seconds: float, available: bool, delivered: bool) -> None:
        """Record the decision latency of one call event."""
        measurement = LatencyMeasurement(
            seconds=max(0.0, seconds),
            available=available,
            delivered=delivered,
        )
        logger.info(
            "Time to respond to push: %.3fs (available=%s, delivered=%s)",
            measurement.seconds, available, delivered,
        )

        with self._lock:
            self._latencies.append(measurement)
            self._trim(self._latencies)

    def get_recent_events(self, limit: int = 100) -> List[ObservationEvent]:
        """Get the most recent outcome events, newest first."""
        with self._lock:
            return list(reversed(self._events[-limit:]))

    def get_latencies(self) -> List[LatencyMeasurement]:
        """Get all latency measurements, oldest first."""
        with self._lock:
            return list(self._latencies)

    def count(self, kind: OutcomeKind) -> int:
        """Number of stored events of one kind."""
        with self._lock:
            return sum(1 for e in self._events if e.kind is kind)

    def get_summary(self) -> ObservabilitySummary:
        """Aggregate the stored events and latencies."""
        with self._lock:
            outcome_counts: Dict[str, int] = defaultdict(int)
            for event in self._events:
                outcome_counts[event.kind.value] += 1

            accepted = outcome_counts.get(OutcomeKind.ACCEPTED.value, 0)
            rejected = outcome_counts.get(OutcomeKind.REJECTED.value, 0)
            decided = accepted + rejected

            seconds = [m.seconds for m in self._latencies]

            return ObservabilitySummary(
                total_events=len(self._events),
                outcome_counts=dict(outcome_counts),
                latency_count=len(seconds),
                latency_avg_seconds=sum(seconds) / len(seconds) if seconds else 0.0,
                latency_min_seconds=min(seconds) if seconds else 0.0,
                latency_max_seconds=max(seconds) if seconds else 0.0,
                acceptance_rate=accepted / decided if decided else 0.0,
                delivery_failure_count=sum(1 for m in self._latencies if not m.delivered),
            )

    def clear(self) -> None:
        """Clear all stored observations."""
        with self._lock:
            self._events.clear()
            self._latencies.clear()
            logger.info("Observability store cleared")

    def _trim(self, buffer: list) -> None:
        if len(buffer) > self._max_events:
            excess = len(buffer) - self._max_events
            del buffer[:excess]
            logger.debug("Trimmed %d old observations", excess)


# =============================================================================
# No-Op Implementation (when observability disabled)
# =============================================================================

class NoOpObservabilitySink:
    """
    Sink used when observability is disabled. Still logs at debug level.
    """

    def record_outcome(self, kind: OutcomeKind, data: Optional[Dict[str, Any]] = None) -> None:
        logger.debug("Observed %s", kind.value)

    def record_latency(self, seconds: float, available: bool, delivered: bool) -> None:
        logger.debug("Time to respond to push: %.3fs", seconds)


# =============================================================================
# Factory Function
# =============================================================================

def create_observability_sink(settings: Settings) -> ObservabilitySink:
    """
    Create an observability sink based on settings.

    Args:
        settings: Application settings

    Returns:
        Configured ObservabilitySink instance
    """
    if not settings.enable_observability:
        logger.info("Observability disabled, using no-op sink")
        return NoOpObservabilitySink()

    return InMemoryObservabilityStore(max_events=settings.observability_max_events)
