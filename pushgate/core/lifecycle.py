"""
PushGate - Registration Lifecycle Coordinator

Keeps the middleware's device record in step with the local SIP state.

Triggers (from the credential store's notification channel):
    - CHANGED while SIP is enabled: create or update the device record
      for (push token, SIP account)
    - DISABLED: delete the device record, if both token and account are
      known; otherwise skip

Failure handling:
    - Upsert failure disables SIP locally. A device the middleware cannot
      reach must not look enabled. This is the only place a remote failure
      changes local state.
    - Delete failure is logged and observed only.

Notifications are consumed one at a time, in delivery order, by a single
task that lives between `start()` and `stop()` (or inside `async with`).
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Optional

from pushgate.core.logging import mask_token
from pushgate.core.types import CredentialNotification, DeviceRegistration, OutcomeKind

if TYPE_CHECKING:
    from pushgate.core.observability import ObservabilitySink
    from pushgate.services.credentials import CredentialStore, CredentialSubscription
    from pushgate.services.middleware_client import AcknowledgmentChannel

logger = logging.getLogger(__name__)


class RegistrationLifecycleCoordinator:
    """
    Reacts to credential notifications by updating or deleting the
    middleware device record.

    Usage:
        async with RegistrationLifecycleCoordinator(store, channel, sink) as coordinator:
            store.update(rtc_enabled=True)
            await coordinator.wait_idle()
    """

    def __init__(
        self,
        credentials: "CredentialStore",
        channel: "AcknowledgmentChannel",
        sink: "ObservabilitySink",
    ):
        self._credentials = credentials
        self._channel = channel
        self._sink = sink
        self._subscription: Optional["CredentialSubscription"] = None
        self._consumer: Optional[asyncio.Task] = None

    # -------------------------------------------------------------------------
    # Lifetime
    # -------------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    async def start(self) -> None:
        """Subscribe to credential notifications and start consuming them."""
        if self.running:
            return
        self._subscription = self._credentials.subscribe()
        self._consumer = asyncio.create_task(self._consume(self._subscription))
        logger.info("Registration lifecycle coordinator started")

    async def stop(self) -> None:
        """Unsubscribe and stop the consumer. Pending notifications are dropped."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
            logger.info("Registration lifecycle coordinator stopped")

    async def __aenter__(self) -> "RegistrationLifecycleCoordinator":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.stop()
        return False

    async def wait_idle(self) -> None:
        """Wait until every notification delivered so far has been handled."""
        if self._subscription is not None:
            await self._subscription.join()

    async def _consume(self, subscription: "CredentialSubscription") -> None:
        while True:
            notification = await subscription.get()
            try:
                await self.handle(notification)
            except Exception:
                logger.exception("Unhandled error processing %s notification", notification.value)
            finally:
                subscription.task_done()

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    async def handle(self, notification: CredentialNotification) -> None:
        """Process one credential notification to completion."""
        if notification is CredentialNotification.CHANGED:
            await self.on_credentials_changed()
        elif notification is CredentialNotification.DISABLED:
            await self.on_rtc_disabled()

    async def on_credentials_changed(self) -> None:
        """Re-register the device when credentials change while SIP is enabled."""
        state = self._credentials.snapshot()
        if not state.rtc_enabled:
            logger.debug("Credentials changed while SIP disabled, nothing to update")
            return

        logger.info("SIP credentials have changed, updating middleware")
        await self.update_push_token(state.push_token)

    async def update_push_token(self, token: Optional[str]) -> bool:
        """
        Create or update the device record for `token`.

        Only acts while SIP is enabled. On failure SIP is disabled locally.

        Returns:
            True if the middleware accepted the registration
        """
        state = self._credentials.snapshot()
        if not state.rtc_enabled:
            return False

        if not token or not state.sip_account:
            logger.warning(
                "Not registering device with middleware, SIP account (%s) or push token (%s) missing",
                "set" if state.sip_account else "unset",
                mask_token(token),
            )
            return False

        registration = DeviceRegistration(push_token=token, sip_account=state.sip_account)
        masked = mask_token(registration.push_token)
        try:
            await self._channel.upsert_device_registration(
                registration.push_token, registration.sip_account
            )
        except Exception as e:
            logger.error("Device registration with middleware failed: %s", e)
            # Disable SIP so the failure is visible instead of a dead registration
            self._credentials.set_rtc_enabled(False)
            self._sink.record_outcome(
                OutcomeKind.REGISTRATION_UPSERT_FAILED,
                {"token": masked, "error": str(e)},
            )
            return False

        logger.debug("Middleware registration successful")
        self._sink.record_outcome(
            OutcomeKind.REGISTRATION_UPSERT_SUCCEEDED, {"token": masked}
        )
        return True

    async def on_rtc_disabled(self) -> bool:
        """
        Delete the device record after SIP was disabled.

        Returns:
            True if the middleware confirmed the deletion
        """
        logger.info("User disabled SIP, unregistering from middleware")
        state = self._credentials.snapshot()
        token = state.push_token
        account = state.sip_account

        if not (token and account):
            logger.debug(
                "Not deleting device registration from middleware, SIP account (%s) or push token (%s) not set",
                "set" if account else "unset",
                mask_token(token),
            )
            self._sink.record_outcome(
                OutcomeKind.REGISTRATION_DELETE_SKIPPED,
                {"has_token": bool(token), "has_account": bool(account)},
            )
            return False

        masked = mask_token(token)
        self._sink.record_outcome(OutcomeKind.REGISTRATION_DELETE_ATTEMPTED, {"token": masked})
        try:
            await self._channel.delete_device_registration(token, account)
        except Exception as e:
            logger.error("Error deleting device record from middleware: %s", e)
            self._sink.record_outcome(
                OutcomeKind.REGISTRATION_DELETE_FAILED, {"token": masked, "error": str(e)}
            )
            return False

        logger.debug("Middleware device record deleted successfully")
        self._sink.record_outcome(OutcomeKind.REGISTRATION_DELETE_SUCCEEDED, {"token": masked})
        return True
