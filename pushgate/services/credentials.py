"""
PushGate - Credential Store

Holds the current user's identity, SIP enablement flag, SIP account and the
stored push token, and publishes change notifications over typed channels.

Architecture:
    - CredentialStore Protocol: what the core reads and subscribes to
    - InMemoryCredentialStore: process-local implementation
    - CredentialSubscription: one subscriber's notification channel

Notifications:
    - CHANGED: identity, account or token changed, or SIP was enabled
    - DISABLED: SIP went from enabled to disabled (once per transition)

Store mutations and subscription consumers are expected to run on the
same event loop.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from dataclasses import replace
from threading import Lock
from typing import List, Optional, Protocol, runtime_checkable

from pushgate.core.exceptions import CredentialStoreError
from pushgate.core.logging import mask_token
from pushgate.core.types import CredentialNotification, CredentialState

logger = logging.getLogger(__name__)

_UNSET = object()


# =============================================================================
# Subscription Channel
# =============================================================================

class CredentialSubscription:
    """
    A single subscriber's ordered notification channel.

    Consumers call `get()` for the next notification and `task_done()` once
    it has been fully processed, so `join()` can wait for the backlog.
    """

    def __init__(self, store: "InMemoryCredentialStore"):
        self._store = store
        self._queue: asyncio.Queue[CredentialNotification] = asyncio.Queue()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, notification: CredentialNotification) -> None:
        if self._active:
            self._queue.put_nowait(notification)

    async def get(self) -> CredentialNotification:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        """Wait until every delivered notification has been processed."""
        await self._queue.join()

    def pending(self) -> int:
        return self._queue.qsize()

    def unsubscribe(self) -> None:
        """Stop receiving notifications. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._store._remove_subscription(self)


# =============================================================================
# Protocol
# =============================================================================

@runtime_checkable
class CredentialStore(Protocol):
    """Protocol for the credential store consumed by the core."""

    @abstractmethod
    def snapshot(self) -> CredentialState:
        """Return the current credentials as an immutable snapshot."""
        ...

    @abstractmethod
    def set_rtc_enabled(self, enabled: bool) -> bool:
        """Set the SIP enablement flag. Returns True if it changed."""
        ...

    @abstractmethod
    def subscribe(self) -> CredentialSubscription:
        """Open a notification channel."""
        ...


# =============================================================================
# In-Memory Implementation
# =============================================================================

class InMemoryCredentialStore:
    """
    Process-local credential store.

    Usage:
        store = InMemoryCredentialStore(CredentialState(username="user"))
        subscription = store.subscribe()
        store.update(sip_account="12340042", rtc_enabled=True)
        notification = await subscription.get()   # CHANGED
    """

    def __init__(self, initial: Optional[CredentialState] = None):
        self._lock = Lock()
        self._state = initial or CredentialState()
        self._subscriptions: List[CredentialSubscription] = []

    def snapshot(self) -> CredentialState:
        with self._lock:
            return self._state

    def subscribe(self) -> CredentialSubscription:
        subscription = CredentialSubscription(self)
        with self._lock:
            self._subscriptions.append(subscription)
        logger.debug("Credential subscription opened (%d active)", len(self._subscriptions))
        return subscription

    def _remove_subscription(self, subscription: CredentialSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        logger.debug("Credential subscription closed")

    def set_rtc_enabled(self, enabled: bool) -> bool:
        return self.update(rtc_enabled=enabled)

    def update(
        self,
        username=_UNSET,
        password=_UNSET,
        sip_account=_UNSET,
        push_token=_UNSET,
        rtc_enabled=_UNSET,
    ) -> bool:
        """
        Apply a partial update and publish the resulting notification.

        Only the arguments that are passed are changed; pass None to clear
        a field.

        Returns:
            True if anything changed

        Raises:
            CredentialStoreError: If rtc_enabled is not a bool
        """
        if rtc_enabled is not _UNSET and not isinstance(rtc_enabled, bool):
            raise CredentialStoreError("rtc_enabled must be a bool")

        changes = {
            name: value
            for name, value in (
                ("username", username),
                ("password", password),
                ("sip_account", sip_account),
                ("push_token", push_token),
                ("rtc_enabled", rtc_enabled),
            )
            if value is not _UNSET
        }

        with self._lock:
            previous = self._state
            current = replace(previous, **changes)
            if current == previous:
                return False
            self._state = current
            subscribers = list(self._subscriptions)

        if previous.rtc_enabled and not current.rtc_enabled:
            notification = CredentialNotification.DISABLED
        else:
            notification = CredentialNotification.CHANGED

        logger.info(
            "Credentials updated: enabled=%s, account=%s, token=%s -> %s",
            current.rtc_enabled,
            "set" if current.sip_account else "unset",
            mask_token(current.push_token),
            notification.value,
        )

        for subscription in subscribers:
            subscription.deliver(notification)
        return True
