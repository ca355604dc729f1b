"""
PushGate - Reachability Classifier

Reports the current network quality as a coarse ReachabilityStatus.
The real classifier lives with the host platform; this module defines the
interface the decision engine consumes and a settable implementation for
development and tests.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from threading import Lock
from typing import Protocol, runtime_checkable

from pushgate.core.exceptions import ConfigurationError
from pushgate.core.types import ReachabilityStatus

logger = logging.getLogger(__name__)


@runtime_checkable
class ReachabilityClassifier(Protocol):
    """
    Protocol for network reachability classification.

    `current_status` is synchronous, non-blocking and never fails.
    """

    @abstractmethod
    def current_status(self) -> ReachabilityStatus:
        """Return the current reachability status."""
        ...


class StaticReachabilityClassifier:
    """Classifier whose status is set explicitly."""

    def __init__(self, status: ReachabilityStatus = ReachabilityStatus.HIGH_SPEED):
        self._lock = Lock()
        self._status = status

    def current_status(self) -> ReachabilityStatus:
        with self._lock:
            return self._status

    def set_status(self, status: ReachabilityStatus) -> None:
        with self._lock:
            if status is not self._status:
                logger.info("Reachability changed: %s -> %s", self._status.value, status.value)
            self._status = status


def parse_reachability(value: str) -> ReachabilityStatus:
    """
    Parse a configured reachability value.

    Raises:
        ConfigurationError: If the value is not a known status
    """
    try:
        return ReachabilityStatus(value.strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown reachability status: {value!r}",
            details={"allowed": [s.value for s in ReachabilityStatus]},
        )
