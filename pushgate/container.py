"""
PushGate - Service Container

Builds every collaborator once at startup and wires them into the core
components. Nothing is constructed lazily on first use.

Usage:
    container = create_container(get_settings())
    await container.startup()
    decision = await container.responder.handle_payload(payload)
    await container.shutdown()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from pushgate.config import Settings
from pushgate.core.decision import AvailabilityDecisionEngine
from pushgate.core.exceptions import ConfigurationError
from pushgate.core.lifecycle import RegistrationLifecycleCoordinator
from pushgate.core.observability import ObservabilitySink, create_observability_sink
from pushgate.core.reporter import ResponseReporter
from pushgate.core.responder import PushResponder
from pushgate.core.types import CredentialState
from pushgate.services.credentials import InMemoryCredentialStore
from pushgate.services.middleware_client import (
    AcknowledgmentChannel,
    HttpMiddlewareClient,
    RecordingAcknowledgmentChannel,
)
from pushgate.services.reachability import StaticReachabilityClassifier, parse_reachability
from pushgate.services.registrar import EndpointRegistrar, StaticEndpointRegistrar

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """All long-lived services of one running application."""
    settings: Settings
    credentials: InMemoryCredentialStore
    reachability: StaticReachabilityClassifier
    registrar: EndpointRegistrar
    channel: AcknowledgmentChannel
    sink: ObservabilitySink
    engine: AvailabilityDecisionEngine
    reporter: ResponseReporter
    coordinator: RegistrationLifecycleCoordinator
    responder: PushResponder

    async def startup(self) -> None:
        await self.coordinator.start()
        logger.info(
            "Services started: channel=%s, reachability=%s, sip_enabled=%s",
            type(self.channel).__name__,
            self.reachability.current_status().value,
            self.credentials.snapshot().rtc_enabled,
        )

    async def shutdown(self) -> None:
        await self.coordinator.wait_idle()
        await self.coordinator.stop()
        await self.reporter.wait_idle()
        self.engine.close()
        if isinstance(self.channel, HttpMiddlewareClient):
            await self.channel.aclose()
        logger.info("Services stopped")


def create_channel(settings: Settings, credentials: InMemoryCredentialStore) -> AcknowledgmentChannel:
    """
    Create the middleware channel selected by `ack_channel_backend`.

    Raises:
        ConfigurationError: If the backend is unknown
    """
    backend = settings.ack_channel_backend.lower()
    if backend == "http":
        return HttpMiddlewareClient.from_settings(settings, credentials)
    if backend == "recording":
        return RecordingAcknowledgmentChannel()
    raise ConfigurationError(f"Unknown ack channel backend: {settings.ack_channel_backend!r}")


def create_container(
    settings: Settings,
    channel: Optional[AcknowledgmentChannel] = None,
    registrar: Optional[EndpointRegistrar] = None,
) -> ServiceContainer:
    """
    Create a fully wired service container.

    Args:
        settings: Application settings
        channel: Override the configured middleware channel
        registrar: Override the configured SIP registrar
    """
    credentials = InMemoryCredentialStore(
        CredentialState(
            username=settings.sip_username,
            password=settings.sip_password,
            rtc_enabled=settings.sip_enabled,
            sip_account=settings.sip_account,
            push_token=settings.push_token,
        )
    )
    reachability = StaticReachabilityClassifier(parse_reachability(settings.initial_reachability))
    registrar = registrar or StaticEndpointRegistrar(
        succeeds=settings.registrar_succeeds,
        delay_seconds=settings.registrar_delay_seconds,
    )
    channel = channel or create_channel(settings, credentials)
    sink = create_observability_sink(settings)

    engine = AvailabilityDecisionEngine(
        reachability=reachability,
        credentials=credentials,
        registrar=registrar,
        registrar_timeout_seconds=settings.registrar_timeout_seconds,
        registrar_max_workers=settings.registrar_max_workers,
    )
    reporter = ResponseReporter(channel, sink)

    return ServiceContainer(
        settings=settings,
        credentials=credentials,
        reachability=reachability,
        registrar=registrar,
        channel=channel,
        sink=sink,
        engine=engine,
        reporter=reporter,
        coordinator=RegistrationLifecycleCoordinator(credentials, channel, sink),
        responder=PushResponder(engine, reporter),
    )
