"""
PushGate - Availability Decision Engine Tests

These tests verify:
- Accept only when network is high-speed, SIP is enabled and registration succeeds
- Registrar is never invoked when a predicate fails
- Registrar failures, exceptions and timeouts become "not available"

Run with: pytest tests/test_decision_engine.py -v
"""

import asyncio
import threading

import pytest

from pushgate.core.decision import AvailabilityDecisionEngine
from pushgate.core.exceptions import EventClassificationError
from pushgate.core.types import DecisionReason, IncomingEvent, ReachabilityStatus
from pushgate.services.credentials import InMemoryCredentialStore
from pushgate.services.reachability import StaticReachabilityClassifier
from pushgate.services.registrar import StaticEndpointRegistrar


class RaisingRegistrar:
    def __init__(self):
        self.calls = 0

    def register_endpoint(self) -> bool:
        self.calls += 1
        raise RuntimeError("SIP stack not initialised")


class BlockingRegistrar:
    """Blocks until released, recording the worker thread of each call."""

    def __init__(self):
        self.release = threading.Event()
        self.threads = []

    def register_endpoint(self) -> bool:
        self.threads.append(threading.current_thread().name)
        self.release.wait(timeout=5)
        return True


class TestAcceptance:
    """Tests for the accept path."""

    @pytest.mark.asyncio
    async def test_accepts_when_all_conditions_hold(
        self, engine: AvailabilityDecisionEngine, registrar: StaticEndpointRegistrar, call_payload: dict
    ):
        """High-speed + enabled + registration success => available."""
        event = IncomingEvent.from_payload(call_payload)

        decision = await engine.decide(event)

        assert decision.available is True
        assert decision.reason == DecisionReason.ACCEPTED
        assert decision.event is event
        assert registrar.calls == 1

    @pytest.mark.asyncio
    async def test_registration_failure_rejects(
        self, engine: AvailabilityDecisionEngine, registrar: StaticEndpointRegistrar, call_payload: dict
    ):
        """High-speed + enabled + registration failure => not available."""
        registrar.succeeds = False

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is False
        assert decision.reason == DecisionReason.REGISTRATION_FAILED
        assert registrar.calls == 1


class TestShortCircuit:
    """Tests that the registrar is skipped when registration is pointless."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status", [ReachabilityStatus.LOW_SPEED, ReachabilityStatus.UNAVAILABLE]
    )
    async def test_insufficient_reachability_rejects_without_registering(
        self,
        engine: AvailabilityDecisionEngine,
        reachability: StaticReachabilityClassifier,
        registrar: StaticEndpointRegistrar,
        call_payload: dict,
        status: ReachabilityStatus,
    ):
        reachability.set_status(status)

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is False
        assert decision.reason == DecisionReason.INSUFFICIENT_REACHABILITY
        assert registrar.calls == 0

    @pytest.mark.asyncio
    async def test_sip_disabled_rejects_without_registering(
        self,
        engine: AvailabilityDecisionEngine,
        credentials: InMemoryCredentialStore,
        registrar: StaticEndpointRegistrar,
        call_payload: dict,
    ):
        credentials.set_rtc_enabled(False)

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is False
        assert decision.reason == DecisionReason.RTC_DISABLED
        assert registrar.calls == 0

    @pytest.mark.asyncio
    async def test_both_predicates_false_rejects_without_registering(
        self,
        engine: AvailabilityDecisionEngine,
        credentials: InMemoryCredentialStore,
        reachability: StaticReachabilityClassifier,
        registrar: StaticEndpointRegistrar,
        call_payload: dict,
    ):
        credentials.set_rtc_enabled(False)
        reachability.set_status(ReachabilityStatus.LOW_SPEED)

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is False
        assert registrar.calls == 0


class TestRegistrarProblems:
    """Tests that registrar problems never escape the engine."""

    @pytest.mark.asyncio
    async def test_registrar_exception_rejects(
        self,
        reachability: StaticReachabilityClassifier,
        credentials: InMemoryCredentialStore,
        call_payload: dict,
    ):
        registrar = RaisingRegistrar()
        engine = AvailabilityDecisionEngine(reachability, credentials, registrar)

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is False
        assert decision.reason == DecisionReason.REGISTRATION_FAILED
        assert registrar.calls == 1

    @pytest.mark.asyncio
    async def test_registrar_timeout_rejects(
        self,
        reachability: StaticReachabilityClassifier,
        credentials: InMemoryCredentialStore,
        call_payload: dict,
    ):
        registrar = StaticEndpointRegistrar(succeeds=True, delay_seconds=0.3)
        engine = AvailabilityDecisionEngine(
            reachability, credentials, registrar, registrar_timeout_seconds=0.05
        )

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is False
        assert decision.reason == DecisionReason.REGISTRATION_TIMEOUT

    @pytest.mark.asyncio
    async def test_slow_registrar_within_timeout_accepts(
        self,
        reachability: StaticReachabilityClassifier,
        credentials: InMemoryCredentialStore,
        call_payload: dict,
    ):
        registrar = StaticEndpointRegistrar(succeeds=True, delay_seconds=0.02)
        engine = AvailabilityDecisionEngine(
            reachability, credentials, registrar, registrar_timeout_seconds=2.0
        )

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is True


class TestRegistrarPool:
    """Registrar calls run on the engine's own bounded pool."""

    @pytest.mark.asyncio
    async def test_registrar_runs_on_dedicated_threads(
        self, reachability, credentials: InMemoryCredentialStore, call_payload: dict
    ):
        registrar = BlockingRegistrar()
        registrar.release.set()
        engine = AvailabilityDecisionEngine(reachability, credentials, registrar)

        await engine.decide(IncomingEvent.from_payload(call_payload))
        engine.close()

        assert registrar.threads[0].startswith("registrar")

    @pytest.mark.asyncio
    async def test_hung_registrar_does_not_block_default_executor(
        self, reachability, credentials: InMemoryCredentialStore, call_payload: dict
    ):
        registrar = BlockingRegistrar()
        engine = AvailabilityDecisionEngine(
            reachability, credentials, registrar,
            registrar_timeout_seconds=0.05, registrar_max_workers=1,
        )

        try:
            for _ in range(3):
                decision = await engine.decide(IncomingEvent.from_payload(call_payload))
                assert decision.reason == DecisionReason.REGISTRATION_TIMEOUT

            # Only one worker was ever used, the rest queued behind it
            assert len(registrar.threads) == 1

            loop = asyncio.get_running_loop()
            assert await asyncio.wait_for(loop.run_in_executor(None, lambda: 42), timeout=1) == 42
        finally:
            registrar.release.set()
            engine.close()

    @pytest.mark.asyncio
    async def test_decide_after_close_rejects(
        self, reachability, credentials: InMemoryCredentialStore, call_payload: dict
    ):
        engine = AvailabilityDecisionEngine(reachability, credentials, StaticEndpointRegistrar())
        engine.close()

        decision = await engine.decide(IncomingEvent.from_payload(call_payload))

        assert decision.available is False
        assert decision.reason == DecisionReason.REGISTRATION_FAILED


class TestClassification:
    """Tests for non-call events."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload_type", ["checkin", "message", "bogus"])
    async def test_non_call_event_raises(
        self, engine: AvailabilityDecisionEngine, registrar: StaticEndpointRegistrar, payload_type: str
    ):
        event = IncomingEvent.from_payload({"type": payload_type})

        with pytest.raises(EventClassificationError):
            await engine.decide(event)

        assert registrar.calls == 0
