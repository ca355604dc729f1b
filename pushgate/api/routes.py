"""
PushGate - REST API Routes

Endpoints for push delivery, credential and reachability control, and
observability.

Architecture:
    All push handling flows through the PushResponder held in the service
    container on app.state. Credential and reachability endpoints drive the
    development implementations of those collaborators.
"""

from typing import Any, Dict, Union
import logging

from fastapi import APIRouter, Depends, Query, Request

from pushgate.container import ServiceContainer
from pushgate.core.exceptions import InvalidPayloadError
from pushgate.core.logging import mask_token
from pushgate.core.observability import InMemoryObservabilityStore
from pushgate.core.types import CredentialState

from .schemas import (
    CredentialStateResponse,
    CredentialUpdateRequest,
    ObservabilityDisabledResponse,
    ObservabilitySummarySchema,
    ObservationEventList,
    ObservationEventSchema,
    PushResponse,
    ReachabilityResponse,
    ReachabilityUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api"])


# =============================================================================
# Dependencies
# =============================================================================

def get_container(request: Request) -> ServiceContainer:
    """Dependency to get the service container from app state."""
    return request.app.state.container


def credential_response(state: CredentialState) -> CredentialStateResponse:
    return CredentialStateResponse(
        has_identity=state.has_identity,
        rtc_enabled=state.rtc_enabled,
        sip_account_set=bool(state.sip_account),
        push_token=mask_token(state.push_token),
    )


# =============================================================================
# Push Endpoint
# =============================================================================

@router.post("/push", response_model=PushResponse)
async def receive_push(
    request: Request,
    container: ServiceContainer = Depends(get_container),
) -> PushResponse:
    """
    Receive a push payload from the middleware.

    Call pushes are decided before this returns; the response to the
    middleware is sent in the background. Other push types are accepted
    and ignored.
    """
    try:
        payload: Any = await request.json()
    except ValueError:
        raise InvalidPayloadError("Push payload must be valid JSON")

    if not isinstance(payload, dict):
        raise InvalidPayloadError("Push payload must be a JSON object")

    event, decision = await container.responder.receive(payload)
    if decision is None:
        return PushResponse(
            event_type=event.event_type,
            handled=False,
        )

    return PushResponse(
        event_type=event.event_type,
        handled=True,
        available=decision.available,
        reason=decision.reason.value,
    )


# =============================================================================
# Credential Endpoints
# =============================================================================

@router.get("/credentials", response_model=CredentialStateResponse)
async def get_credentials(
    container: ServiceContainer = Depends(get_container),
) -> CredentialStateResponse:
    """Current credential state with secrets masked."""
    return credential_response(container.credentials.snapshot())


@router.put("/credentials", response_model=CredentialStateResponse)
async def update_credentials(
    body: CredentialUpdateRequest,
    container: ServiceContainer = Depends(get_container),
) -> CredentialStateResponse:
    """
    Update credentials.

    Publishes CHANGED or DISABLED to the registration lifecycle coordinator,
    which updates the middleware device record in the background.
    """
    changes: Dict[str, Any] = body.model_dump(exclude_unset=True)
    if changes.get("rtc_enabled") is None:
        changes.pop("rtc_enabled", None)
    container.credentials.update(**changes)
    return credential_response(container.credentials.snapshot())


# =============================================================================
# Reachability Endpoints
# =============================================================================

@router.get("/reachability", response_model=ReachabilityResponse)
async def get_reachability(
    container: ServiceContainer = Depends(get_container),
) -> ReachabilityResponse:
    return ReachabilityResponse(status=container.reachability.current_status())


@router.put("/reachability", response_model=ReachabilityResponse)
async def set_reachability(
    body: ReachabilityUpdateRequest,
    container: ServiceContainer = Depends(get_container),
) -> ReachabilityResponse:
    """Set the reported network quality."""
    container.reachability.set_status(body.status)
    return ReachabilityResponse(status=container.reachability.current_status())


# =============================================================================
# Observability Endpoints
# =============================================================================

@router.get(
    "/observability/events",
    response_model=Union[ObservationEventList, ObservabilityDisabledResponse],
    tags=["observability"],
)
async def get_observation_events(
    limit: int = Query(default=100, ge=1, le=1000),
    container: ServiceContainer = Depends(get_container),
):
    """Most recent outcome events, newest first."""
    sink = container.sink
    if not isinstance(sink, InMemoryObservabilityStore):
        return ObservabilityDisabledResponse()

    events = sink.get_recent_events(limit=limit)
    return ObservationEventList(
        events=[
            ObservationEventSchema(kind=e.kind.value, timestamp=e.timestamp, data=e.data)
            for e in events
        ],
        count=len(events),
    )


@router.get(
    "/observability/summary",
    response_model=Union[ObservabilitySummarySchema, ObservabilityDisabledResponse],
    tags=["observability"],
)
async def get_observability_summary(
    container: ServiceContainer = Depends(get_container),
):
    """Outcome counts and latency statistics."""
    sink = container.sink
    if not isinstance(sink, InMemoryObservabilityStore):
        return ObservabilityDisabledResponse()

    summary = sink.get_summary()
    return ObservabilitySummarySchema(
        total_events=summary.total_events,
        outcome_counts=summary.outcome_counts,
        latency_count=summary.latency_count,
        latency_avg_seconds=summary.latency_avg_seconds,
        latency_min_seconds=summary.latency_min_seconds,
        latency_max_seconds=summary.latency_max_seconds,
        acceptance_rate=summary.acceptance_rate,
        delivery_failure_count=summary.delivery_failure_count,
    )
