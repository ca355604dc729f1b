"""
PushGate - Core Package

Contains the push-handling logic and domain types:
- decision: Availability decision engine
- reporter: Middleware response reporter
- lifecycle: Device registration lifecycle coordinator
- responder: Push payload entry point
- observability: Outcome and latency sink
- types: Internal domain types
"""

from .types import (
    AvailabilityDecision,
    CredentialNotification,
    CredentialState,
    DecisionReason,
    DecisionTimer,
    DeviceRegistration,
    EventType,
    IncomingEvent,
    OutcomeKind,
    ReachabilityStatus,
)
from .decision import AvailabilityDecisionEngine
from .reporter import ResponseReporter
from .lifecycle import RegistrationLifecycleCoordinator
from .responder import PushResponder
from .observability import (
    ObservabilitySink,
    InMemoryObservabilityStore,
    NoOpObservabilitySink,
    create_observability_sink,
)

__all__ = [
    # Components
    "AvailabilityDecisionEngine",
    "ResponseReporter",
    "RegistrationLifecycleCoordinator",
    "PushResponder",
    # Types
    "AvailabilityDecision",
    "CredentialNotification",
    "CredentialState",
    "DecisionReason",
    "DecisionTimer",
    "DeviceRegistration",
    "EventType",
    "IncomingEvent",
    "OutcomeKind",
    "ReachabilityStatus",
    # Observability
    "ObservabilitySink",
    "InMemoryObservabilityStore",
    "NoOpObservabilitySink",
    "create_observability_sink",
]
