"""
PushGate - Test Configuration and Fixtures

Shared fixtures for all test modules.
"""

import os
import sys
from typing import Generator

import pytest
from fastapi.testclient import TestClient

# Ensure the project root is importable
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pushgate.config import Settings
from pushgate.container import ServiceContainer, create_container
from pushgate.core.decision import AvailabilityDecisionEngine
from pushgate.core.lifecycle import RegistrationLifecycleCoordinator
from pushgate.core.observability import InMemoryObservabilityStore
from pushgate.core.reporter import ResponseReporter
from pushgate.core.responder import PushResponder
from pushgate.core.types import CredentialState, ReachabilityStatus
from pushgate.services.credentials import InMemoryCredentialStore
from pushgate.services.middleware_client import RecordingAcknowledgmentChannel
from pushgate.services.reachability import StaticReachabilityClassifier
from pushgate.services.registrar import StaticEndpointRegistrar


TEST_TOKEN = "a1b2c3d4e5f6a7b8c9d0"
TEST_ACCOUNT = "12340042"


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")


# =============================================================================
# Settings Fixtures
# =============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """
    Create test settings with safe defaults.

    Recording middleware channel, SIP enabled, high-speed network.
    """
    return Settings(
        app_env="testing",
        app_debug=True,
        app_log_level="WARNING",  # Reduce noise in tests
        ack_channel_backend="recording",
        initial_reachability="high_speed",
        registrar_succeeds=True,
        registrar_delay_seconds=0.0,
        registrar_timeout_seconds=None,
        sip_username="user@example.com",
        sip_password="secret",
        sip_account=TEST_ACCOUNT,
        sip_enabled=True,
        push_token=TEST_TOKEN,
        enable_observability=True,
        observability_max_events=100,
    )


@pytest.fixture
def test_settings_observability_disabled(test_settings: Settings) -> Settings:
    """Settings with observability disabled."""
    return test_settings.model_copy(update={"enable_observability": False})


# =============================================================================
# Collaborator Fixtures
# =============================================================================

@pytest.fixture
def enabled_state() -> CredentialState:
    return CredentialState(
        username="user@example.com",
        password="secret",
        rtc_enabled=True,
        sip_account=TEST_ACCOUNT,
        push_token=TEST_TOKEN,
    )


@pytest.fixture
def credentials(enabled_state: CredentialState) -> InMemoryCredentialStore:
    """Credential store with SIP enabled, account and token set."""
    return InMemoryCredentialStore(enabled_state)


@pytest.fixture
def reachability() -> StaticReachabilityClassifier:
    return StaticReachabilityClassifier(ReachabilityStatus.HIGH_SPEED)


@pytest.fixture
def registrar() -> StaticEndpointRegistrar:
    return StaticEndpointRegistrar(succeeds=True)


@pytest.fixture
def channel() -> RecordingAcknowledgmentChannel:
    return RecordingAcknowledgmentChannel()


@pytest.fixture
def sink() -> InMemoryObservabilityStore:
    return InMemoryObservabilityStore(max_events=100)


# =============================================================================
# Core Component Fixtures
# =============================================================================

@pytest.fixture
def engine(
    reachability: StaticReachabilityClassifier,
    credentials: InMemoryCredentialStore,
    registrar: StaticEndpointRegistrar,
) -> AvailabilityDecisionEngine:
    return AvailabilityDecisionEngine(reachability, credentials, registrar)


@pytest.fixture
def reporter(
    channel: RecordingAcknowledgmentChannel,
    sink: InMemoryObservabilityStore,
) -> ResponseReporter:
    return ResponseReporter(channel, sink)


@pytest.fixture
def responder(engine: AvailabilityDecisionEngine, reporter: ResponseReporter) -> PushResponder:
    return PushResponder(engine, reporter)


@pytest.fixture
def coordinator(
    credentials: InMemoryCredentialStore,
    channel: RecordingAcknowledgmentChannel,
    sink: InMemoryObservabilityStore,
) -> RegistrationLifecycleCoordinator:
    return RegistrationLifecycleCoordinator(credentials, channel, sink)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def call_payload() -> dict:
    """A call push as sent by the middleware."""
    return {
        "type": "call",
        "unique_key": "9f8e7d6c5b4a39281706",
        "message_start_time": "1476885600.123",
        "response_api": "https://vialerpush.voipgrid.nl/api/call-response/",
        "phonenumber": "+31508009000",
        "caller_id": "Reception",
    }


# =============================================================================
# FastAPI App Fixtures
# =============================================================================

@pytest.fixture
def container(test_settings: Settings) -> ServiceContainer:
    """Service container with the recording middleware channel."""
    return create_container(test_settings)


@pytest.fixture
def app(test_settings: Settings, container: ServiceContainer):
    """Create a FastAPI app instance around the test container."""
    # Import here to avoid creating the module-level app before sys.path is set
    from main import create_app

    return create_app(settings=test_settings, container=container)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI app."""
    with TestClient(app) as c:
        yield c
