"""
PushGate - Core Domain Types

Internal type definitions shared by the decision engine, the reporter and the
registration lifecycle coordinator. These are domain objects, independent of
API serialization.

Design Notes:
- Events, decisions and credential snapshots are frozen dataclasses; nothing
  downstream of receipt may alter them.
- The API layer converts these to/from Pydantic schemas.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from pushgate.core.exceptions import TimerAlreadyConsumedError


# =============================================================================
# Payload Keys
# =============================================================================

PAYLOAD_KEY_TYPE = "type"
PAYLOAD_KEY_UNIQUE_KEY = "unique_key"
PAYLOAD_KEY_MESSAGE_START_TIME = "message_start_time"
PAYLOAD_KEY_RESPONSE_API = "response_api"


# =============================================================================
# Enums
# =============================================================================

class EventType(str, Enum):
    """Kind of push notification received from the middleware."""
    CALL = "call"
    CHECKIN = "checkin"
    MESSAGE = "message"
    UNKNOWN = "unknown"


class ReachabilityStatus(str, Enum):
    """Coarse classification of the current network connection."""
    UNAVAILABLE = "unavailable"
    LOW_SPEED = "low_speed"
    HIGH_SPEED = "high_speed"


class DecisionReason(str, Enum):
    """Why a call was accepted or rejected."""
    ACCEPTED = "accepted"
    INSUFFICIENT_REACHABILITY = "insufficient_reachability"
    RTC_DISABLED = "rtc_disabled"
    REGISTRATION_FAILED = "registration_failed"
    REGISTRATION_TIMEOUT = "registration_timeout"


class CredentialNotification(str, Enum):
    """Notifications emitted by the credential store."""
    CHANGED = "changed"
    DISABLED = "disabled"


class OutcomeKind(str, Enum):
    """Observable outcomes reported to the observability sink."""
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CALL_RESPONSE_FAILED = "call_response_failed"
    REGISTRATION_UPSERT_SUCCEEDED = "registration_upsert_succeeded"
    REGISTRATION_UPSERT_FAILED = "registration_upsert_failed"
    REGISTRATION_DELETE_ATTEMPTED = "registration_delete_attempted"
    REGISTRATION_DELETE_SUCCEEDED = "registration_delete_succeeded"
    REGISTRATION_DELETE_FAILED = "registration_delete_failed"
    REGISTRATION_DELETE_SKIPPED = "registration_delete_skipped"


# =============================================================================
# Decision Timer
# =============================================================================

@dataclass
class DecisionTimer:
    """
    Monotonic timestamp captured when a push payload is first observed.

    Read once when the response to the middleware completes. Uses a
    monotonic clock so the elapsed time can never be negative.
    """
    started_at: float = field(default_factory=time.perf_counter)
    _consumed: bool = field(default=False, repr=False)

    def elapsed(self) -> float:
        """Seconds since the timer was started."""
        return max(0.0, time.perf_counter() - self.started_at)

    def consume(self) -> float:
        """
        Return the elapsed time and retire the timer.

        Raises:
            TimerAlreadyConsumedError: If the timer was already consumed
        """
        if self._consumed:
            raise TimerAlreadyConsumedError("Decision timer already consumed")
        self._consumed = True
        return self.elapsed()

    @property
    def consumed(self) -> bool:
        return self._consumed


# =============================================================================
# Incoming Event
# =============================================================================

@dataclass(frozen=True, eq=False)
class IncomingEvent:
    """
    A classified push notification.

    The payload is kept verbatim (as a read-only mapping) because the
    middleware needs parts of it echoed back to correlate the response.
    Events compare by identity: two pushes with equal payloads are still
    two events.
    """
    event_type: EventType
    payload: Mapping[str, Any]
    timer: DecisionTimer = field(default_factory=DecisionTimer, compare=False)

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        timer: Optional[DecisionTimer] = None,
    ) -> "IncomingEvent":
        """Classify a raw push payload by its `type` key."""
        raw_type = payload.get(PAYLOAD_KEY_TYPE)
        try:
            event_type = EventType(raw_type)
        except (TypeError, ValueError):
            event_type = EventType.UNKNOWN

        return cls(
            event_type=event_type,
            payload=MappingProxyType(dict(payload)),
            timer=timer or DecisionTimer(),
        )

    @property
    def is_call(self) -> bool:
        return self.event_type is EventType.CALL

    @property
    def unique_key(self) -> Optional[str]:
        """Middleware correlation key, when the payload carries one."""
        value = self.payload.get(PAYLOAD_KEY_UNIQUE_KEY)
        return str(value) if value is not None else None


# =============================================================================
# Availability Decision
# =============================================================================

@dataclass(frozen=True)
class AvailabilityDecision:
    """Final accept/reject answer for one call event. Never recomputed."""
    available: bool
    event: IncomingEvent
    reason: DecisionReason
    decided_at: float = field(default_factory=time.perf_counter)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "available": self.available,
            "reason": self.reason.value,
            "unique_key": self.event.unique_key,
        }


# =============================================================================
# Credentials
# =============================================================================

@dataclass(frozen=True)
class CredentialState:
    """
    Point-in-time snapshot of the user's credentials.

    Attributes:
        username: Identity used to authenticate against the middleware
        password: Secret paired with the username
        rtc_enabled: Whether SIP calling is enabled for the user
        sip_account: SIP account identifier
        push_token: Stored push token for this device
    """
    username: Optional[str] = None
    password: Optional[str] = None
    rtc_enabled: bool = False
    sip_account: Optional[str] = None
    push_token: Optional[str] = None

    @property
    def has_identity(self) -> bool:
        return bool(self.username)


@dataclass(frozen=True)
class DeviceRegistration:
    """Middleware-side record routing call pushes to this device."""
    push_token: str
    sip_account: str


# =============================================================================
# Observability Records
# =============================================================================

@dataclass
class ObservationEvent:
    """A single outcome emitted to the observability sink."""
    kind: OutcomeKind
    timestamp: datetime = field(default_factory=datetime.utcnow)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class LatencyMeasurement:
    """Time from push receipt to completion of the middleware response."""
    seconds: float
    available: bool
    delivered: bool
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ObservabilitySummary:
    """Aggregates over the observability buffer."""
    total_events: int = 0
    outcome_counts: Dict[str, int] = field(default_factory=dict)
    latency_count: int = 0
    latency_avg_seconds: float = 0.0
    latency_min_seconds: float = 0.0
    latency_max_seconds: float = 0.0
    acceptance_rate: float = 0.0
    delivery_failure_count: int = 0
