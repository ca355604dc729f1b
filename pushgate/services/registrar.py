"""
PushGate - SIP Endpoint Registrar

Brings the local SIP account into a state where it can accept a call.

Architecture:
    - Protocol defines the blocking `register_endpoint` contract
    - StaticEndpointRegistrar: configurable result and delay for
      development/testing

Integration Notes:
    A real registrar talks to the SIP provider and may block for as long
    as the network takes. The decision engine calls it from a worker
    thread so the event loop stays free.
"""

from __future__ import annotations

import logging
import time
from abc import abstractmethod
from threading import Lock
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class EndpointRegistrar(Protocol):
    """
    Protocol for SIP endpoint registration.

    Implementations may block on network I/O.
    """

    @abstractmethod
    def register_endpoint(self) -> bool:
        """
        Register the local SIP account with the provider.

        Returns:
            True if the endpoint is ready to accept a call
        """
        ...


class StaticEndpointRegistrar:
    """
    Registrar with a fixed answer.

    Counts invocations so callers can verify whether registration was
    attempted at all.
    """

    def __init__(self, succeeds: bool = True, delay_seconds: float = 0.0):
        """
        Args:
            succeeds: Result returned by every registration
            delay_seconds: Simulated blocking time per registration
        """
        self._lock = Lock()
        self.succeeds = succeeds
        self.delay_seconds = delay_seconds
        self._calls = 0

    @property
    def calls(self) -> int:
        with self._lock:
            return self._calls

    def register_endpoint(self) -> bool:
        with self._lock:
            self._calls += 1
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)
        logger.debug("Static endpoint registration: success=%s", self.succeeds)
        return self.succeeds
