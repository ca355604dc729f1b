"""
PushGate - API Schemas

Pydantic models for request/response validation.
"""

from datetime import datetime
from typing import Dict, List, Optional, Any

from pydantic import BaseModel, Field

from pushgate.core.types import EventType, ReachabilityStatus


# ===========================================
# Push Schemas
# ===========================================

class PushResponse(BaseModel):
    """Result of handling one push payload."""

    event_type: EventType
    handled: bool = Field(description="True if a decision was made and reported")
    available: Optional[bool] = Field(default=None, description="Availability sent to the middleware")
    reason: Optional[str] = Field(default=None, description="Why the call was accepted or rejected")


# ===========================================
# Credential Schemas
# ===========================================

class CredentialUpdateRequest(BaseModel):
    """
    Partial credential update.

    Only fields present in the request body are changed.
    """

    username: Optional[str] = None
    password: Optional[str] = None
    sip_account: Optional[str] = None
    push_token: Optional[str] = None
    rtc_enabled: Optional[bool] = None


class CredentialStateResponse(BaseModel):
    """Credential state with secrets masked."""

    has_identity: bool
    rtc_enabled: bool
    sip_account_set: bool
    push_token: Optional[str] = Field(default=None, description="Masked push token")


# ===========================================
# Reachability Schemas
# ===========================================

class ReachabilityUpdateRequest(BaseModel):
    """Set the reported network quality."""

    status: ReachabilityStatus


class ReachabilityResponse(BaseModel):
    status: ReachabilityStatus


# ===========================================
# Observability Schemas
# ===========================================

class ObservationEventSchema(BaseModel):
    """A single observed outcome."""

    kind: str
    timestamp: datetime
    data: Dict[str, Any] = Field(default_factory=dict)


class ObservabilitySummarySchema(BaseModel):
    """Aggregated outcome counts and latency statistics."""

    total_events: int = 0
    outcome_counts: Dict[str, int] = Field(default_factory=dict)
    latency_count: int = 0
    latency_avg_seconds: float = 0.0
    latency_min_seconds: float = 0.0
    latency_max_seconds: float = 0.0
    acceptance_rate: float = 0.0
    delivery_failure_count: int = 0


class ObservabilityDisabledResponse(BaseModel):
    """Response when observability is disabled."""

    enabled: bool = False
    message: str = "Observability is disabled. Set ENABLE_OBSERVABILITY=true to enable."


class ObservationEventList(BaseModel):
    events: List[ObservationEventSchema]
    count: int
