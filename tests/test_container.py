"""
PushGate - Service Container Tests

Run with: pytest tests/test_container.py -v
"""

import pytest

from pushgate.config import Settings
from pushgate.container import create_channel, create_container
from pushgate.core.exceptions import ConfigurationError
from pushgate.core.observability import InMemoryObservabilityStore, NoOpObservabilitySink
from pushgate.core.types import ReachabilityStatus
from pushgate.services.credentials import InMemoryCredentialStore
from pushgate.services.middleware_client import HttpMiddlewareClient, RecordingAcknowledgmentChannel
from pushgate.services.reachability import parse_reachability
from pushgate.services.registrar import StaticEndpointRegistrar


class TestParseReachability:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("high_speed", ReachabilityStatus.HIGH_SPEED),
            (" LOW_SPEED ", ReachabilityStatus.LOW_SPEED),
            ("unavailable", ReachabilityStatus.UNAVAILABLE),
        ],
    )
    def test_known_values(self, value: str, expected: ReachabilityStatus):
        assert parse_reachability(value) is expected

    def test_unknown_value_raises(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_reachability("wifi")
        assert "high_speed" in exc_info.value.details["allowed"]


class TestCreateChannel:
    def test_recording(self, test_settings: Settings, credentials: InMemoryCredentialStore):
        assert isinstance(create_channel(test_settings, credentials), RecordingAcknowledgmentChannel)

    @pytest.mark.asyncio
    async def test_http(self, test_settings: Settings, credentials: InMemoryCredentialStore):
        settings = test_settings.model_copy(update={"ack_channel_backend": "HTTP"})
        channel = create_channel(settings, credentials)
        assert isinstance(channel, HttpMiddlewareClient)
        await channel.aclose()

    def test_unknown_backend(self, test_settings: Settings, credentials: InMemoryCredentialStore):
        settings = test_settings.model_copy(update={"ack_channel_backend": "carrier-pigeon"})
        with pytest.raises(ConfigurationError):
            create_channel(settings, credentials)


class TestCreateContainer:
    def test_initial_state_from_settings(self, test_settings: Settings):
        container = create_container(test_settings)

        state = container.credentials.snapshot()
        assert state.username == "user@example.com"
        assert state.rtc_enabled is True
        assert container.reachability.current_status() is ReachabilityStatus.HIGH_SPEED
        assert isinstance(container.sink, InMemoryObservabilityStore)

    def test_overrides(self, test_settings_observability_disabled: Settings):
        channel = RecordingAcknowledgmentChannel()
        registrar = StaticEndpointRegistrar(succeeds=False)

        container = create_container(test_settings_observability_disabled, channel=channel, registrar=registrar)

        assert container.channel is channel
        assert container.registrar is registrar
        assert isinstance(container.sink, NoOpObservabilitySink)

    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self, test_settings: Settings):
        container = create_container(test_settings)

        await container.startup()
        assert container.coordinator.running is True

        container.credentials.set_rtc_enabled(False)
        await container.shutdown()

        assert container.coordinator.running is False
        assert len(container.channel.calls_for("delete_device")) == 1
