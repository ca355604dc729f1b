"""
PushGate - Availability Decision Engine

Decides whether this device can accept an incoming call.

Algorithm:
    1. Reachability must be HIGH_SPEED
    2. SIP must be enabled for the user
    3. If both hold, register the SIP endpoint and answer with its result;
       otherwise answer "not available" without touching the registrar

The registrar blocks, so it runs on a small thread pool owned by the engine
while the engine awaits it. The decision is not made until the registrar
answers, or until the optional timeout expires.

Limit: a timeout abandons the call, not the thread. A registrar that hangs
keeps its worker busy, and once every worker is stuck further registrations
queue behind them and time out too. The default loop executor is never used,
so the rest of the process is unaffected.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Optional

from pushgate.core.exceptions import EventClassificationError, RegistrarTimeoutError
from pushgate.core.types import (
    AvailabilityDecision,
    DecisionReason,
    IncomingEvent,
    ReachabilityStatus,
)

if TYPE_CHECKING:
    from pushgate.services.credentials import CredentialStore
    from pushgate.services.reachability import ReachabilityClassifier
    from pushgate.services.registrar import EndpointRegistrar

logger = logging.getLogger(__name__)


class AvailabilityDecisionEngine:
    """
    Produces exactly one AvailabilityDecision per call event.

    Never raises for registrar problems: a failed, raising or timed-out
    registration becomes "not available".
    """

    def __init__(
        self,
        reachability: "ReachabilityClassifier",
        credentials: "CredentialStore",
        registrar: "EndpointRegistrar",
        registrar_timeout_seconds: Optional[float] = None,
        registrar_max_workers: int = 4,
    ):
        """
        Args:
            reachability: Network quality classifier
            credentials: Credential store (read-only use)
            registrar: SIP endpoint registrar
            registrar_timeout_seconds: Upper bound on registration time,
                None to wait indefinitely
            registrar_max_workers: Size of the registrar thread pool
        """
        self._reachability = reachability
        self._credentials = credentials
        self._registrar = registrar
        self._registrar_timeout = registrar_timeout_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=registrar_max_workers, thread_name_prefix="registrar"
        )

    async def decide(self, event: IncomingEvent) -> AvailabilityDecision:
        """
        Decide availability for a call event.

        Raises:
            EventClassificationError: If the event is not a call
        """
        if not event.is_call:
            raise EventClassificationError(
                f"Cannot decide availability for {event.event_type.value} event"
            )

        status = self._reachability.current_status()
        if status is not ReachabilityStatus.HIGH_SPEED:
            logger.debug("Not accepting call, connection quality insufficient (%s)", status.value)
            return AvailabilityDecision(False, event, DecisionReason.INSUFFICIENT_REACHABILITY)

        if not self._credentials.snapshot().rtc_enabled:
            logger.debug("Not accepting call, SIP disabled")
            return AvailabilityDecision(False, event, DecisionReason.RTC_DISABLED)

        try:
            registered = await self._register()
        except RegistrarTimeoutError:
            logger.warning(
                "SIP endpoint registration timed out after %.1fs", self._registrar_timeout
            )
            return AvailabilityDecision(False, event, DecisionReason.REGISTRATION_TIMEOUT)
        except Exception as e:
            logger.error("SIP endpoint registration raised: %s", e, exc_info=True)
            return AvailabilityDecision(False, event, DecisionReason.REGISTRATION_FAILED)

        if registered:
            logger.debug("SIP endpoint registration success")
            return AvailabilityDecision(True, event, DecisionReason.ACCEPTED)

        logger.debug("SIP endpoint registration failed")
        return AvailabilityDecision(False, event, DecisionReason.REGISTRATION_FAILED)

    def close(self) -> None:
        """Release the registrar pool. Calls still running are not interrupted."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    async def _register(self) -> bool:
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(self._executor, self._registrar.register_endpoint)
        if self._registrar_timeout is None:
            return bool(await call)
        try:
            return bool(await asyncio.wait_for(call, timeout=self._registrar_timeout))
        except asyncio.TimeoutError:
            raise RegistrarTimeoutError("SIP endpoint registration timed out")
