"""
PushGate - Push Responder

Single entry point for push payloads delivered by the middleware.

Flow:
    1. Start the decision timer (before any other work)
    2. Classify the payload by its `type` key
    3. Call events: decide availability, hand the decision to the reporter
    4. Checkin, message and unknown events: no decision, no response
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING, Any, Mapping, Optional, Tuple

from pushgate.core.logging import LogContext, mask_sensitive_data
from pushgate.core.types import AvailabilityDecision, DecisionTimer, EventType, IncomingEvent

if TYPE_CHECKING:
    from pushgate.core.decision import AvailabilityDecisionEngine
    from pushgate.core.reporter import ResponseReporter

logger = logging.getLogger(__name__)


class PushResponder:
    """Classifies pushes and answers call pushes exactly once."""

    def __init__(self, engine: "AvailabilityDecisionEngine", reporter: "ResponseReporter"):
        self._engine = engine
        self._reporter = reporter

    async def handle_payload(self, payload: Mapping[str, Any]) -> Optional[AvailabilityDecision]:
        """
        Handle one push payload.

        The response to the middleware is scheduled, not awaited.

        Returns:
            The decision for call events, None for everything else
        """
        _, decision = await self.receive(payload)
        return decision

    async def receive(
        self, payload: Mapping[str, Any]
    ) -> Tuple[IncomingEvent, Optional[AvailabilityDecision]]:
        """Handle one push payload and return the classified event with its decision."""
        timer = DecisionTimer()
        event = IncomingEvent.from_payload(payload, timer=timer)

        with LogContext(correlation_id=f"push_{uuid.uuid4().hex[:12]}", event_key=event.unique_key):
            logger.debug(
                "Push message received from middleware: %s",
                mask_sensitive_data(dict(payload)),
            )
            return event, await self.handle_event(event)

    async def handle_event(self, event: IncomingEvent) -> Optional[AvailabilityDecision]:
        """Decide and report a classified event."""
        if event.event_type is not EventType.CALL:
            # Checkin and message pushes are not acknowledged
            logger.debug("Ignoring %s push", event.event_type.value)
            return None

        decision = await self._engine.decide(event)
        logger.info(
            "Sending available=%s to middleware (%s)",
            decision.available, decision.reason.value,
        )
        self._reporter.report(decision)
        return decision
