"""
PushGate - Services Package

Interfaces and implementations for the collaborators the core consumes:
- Reachability classification
- SIP endpoint registration
- Credential storage and change notifications
- Middleware acknowledgment channel

Design Pattern:
    Each service defines a Protocol (interface) and one or more implementations.
    Concrete implementations are built once at startup and injected into the
    core components, enabling easy testing/swapping.
"""

from .reachability import (
    ReachabilityClassifier,
    StaticReachabilityClassifier,
    parse_reachability,
)
from .registrar import (
    EndpointRegistrar,
    StaticEndpointRegistrar,
)
from .credentials import (
    CredentialStore,
    CredentialSubscription,
    InMemoryCredentialStore,
)
from .middleware_client import (
    AcknowledgmentChannel,
    HttpMiddlewareClient,
    RecordingAcknowledgmentChannel,
)

__all__ = [
    # Reachability
    "ReachabilityClassifier",
    "StaticReachabilityClassifier",
    "parse_reachability",
    # Registrar
    "EndpointRegistrar",
    "StaticEndpointRegistrar",
    # Credentials
    "CredentialStore",
    "CredentialSubscription",
    "InMemoryCredentialStore",
    # Middleware
    "AcknowledgmentChannel",
    "HttpMiddlewareClient",
    "RecordingAcknowledgmentChannel",
]
