"""
PushGate - Response Reporter

Sends an availability decision to the middleware and records how long the
whole cycle took, measured from the moment the push was received.

Two separate observations per call event:
    - the outcome (accepted/rejected), recorded before sending
    - the latency, recorded once delivery completes or fails

Delivery is fire-and-observe: `report` schedules the request and returns
the task without waiting. A failed delivery is logged and observed; it is
never retried and never changes the decision.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import TYPE_CHECKING, Set

from pushgate.core.exceptions import DeliveryError, DuplicateReportError
from pushgate.core.logging import LogContext, event_key_var
from pushgate.core.types import AvailabilityDecision, IncomingEvent, OutcomeKind

if TYPE_CHECKING:
    from pushgate.core.observability import ObservabilitySink
    from pushgate.services.middleware_client import AcknowledgmentChannel

logger = logging.getLogger(__name__)


class ResponseReporter:
    """Reports each decision exactly once."""

    def __init__(self, channel: "AcknowledgmentChannel", sink: "ObservabilitySink"):
        self._channel = channel
        self._sink = sink
        self._reported: "weakref.WeakSet[IncomingEvent]" = weakref.WeakSet()
        self._in_flight: Set[asyncio.Task] = set()

    def report(self, decision: AvailabilityDecision) -> asyncio.Task:
        """
        Schedule delivery of a decision.

        Must be called from a running event loop.

        Returns:
            The delivery task (callers are not required to await it)

        Raises:
            DuplicateReportError: If this event was already reported
        """
        if decision.event in self._reported:
            raise DuplicateReportError("Decision for this event was already reported")
        self._reported.add(decision.event)

        self._sink.record_outcome(
            OutcomeKind.ACCEPTED if decision.available else OutcomeKind.REJECTED,
            decision.to_dict(),
        )

        task = asyncio.create_task(self._deliver(decision))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for all in-flight deliveries to finish."""
        while self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def _deliver(self, decision: AvailabilityDecision) -> bool:
        event = decision.event
        delivered = False
        with LogContext(event_key=event.unique_key or event_key_var.get()):
            try:
                await self._channel.send_call_response(event.payload, decision.available)
                delivered = True
                logger.debug(
                    "Successfully sent \"available: %s\" to middleware", decision.available
                )
            except Exception as e:
                logger.error(
                    "The middleware responded with an error: %s", e,
                    exc_info=not isinstance(e, DeliveryError),
                )
                self._sink.record_outcome(
                    OutcomeKind.CALL_RESPONSE_FAILED,
                    {**decision.to_dict(), "error": str(e)},
                )
            finally:
                # Whole response cycle completed
                self._sink.record_latency(
                    event.timer.consume(), decision.available, delivered
                )
        return delivered
