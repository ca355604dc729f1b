"""
PushGate - Middleware Acknowledgment Channel

Authenticated request transport to the middleware, the remote coordinator
that sends call pushes and waits for this device's availability answer.

Architecture:
    - AcknowledgmentChannel Protocol: the three operations the core uses
    - HttpMiddlewareClient: httpx-based implementation
    - RecordingAcknowledgmentChannel: records calls, for development/testing

Wire format:
    - Call response: POST to the payload's `response_api` URL (form body)
    - Device registration: POST /api/apns-device/ (create or update)
    - Device removal: DELETE /api/apns-device/ with the parameters in the
      request body, not the URI

Every operation returns None on success and raises DeliveryError on any
transport failure or non-2xx status. Response bodies are not consumed.

Requests only go to the configured middleware origin. A `response_api` on
any other scheme, host or port is refused before credentials are attached.
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Protocol, runtime_checkable

import httpx

from pushgate.config import Settings
from pushgate.core.exceptions import DeliveryError
from pushgate.core.logging import mask_token
from pushgate.core.types import (
    PAYLOAD_KEY_MESSAGE_START_TIME,
    PAYLOAD_KEY_RESPONSE_API,
    PAYLOAD_KEY_UNIQUE_KEY,
)
from pushgate.services.credentials import CredentialStore

logger = logging.getLogger(__name__)

DEVICE_RECORD_PATH = "/api/apns-device/"
DEFAULT_CALL_RESPONSE_PATH = "/api/call-response/"


# =============================================================================
# Protocol
# =============================================================================

@runtime_checkable
class AcknowledgmentChannel(Protocol):
    """
    Protocol for the middleware request channel.

    Raises:
        DeliveryError: From every operation when the request fails
    """

    @abstractmethod
    async def send_call_response(self, payload: Mapping[str, Any], available: bool) -> None:
        """Tell the middleware whether this device can take the call."""
        ...

    @abstractmethod
    async def upsert_device_registration(self, token: str, account: str) -> None:
        """Create or update the device record for (token, account)."""
        ...

    @abstractmethod
    async def delete_device_registration(self, token: str, account: str) -> None:
        """Delete the device record for (token, account)."""
        ...


# =============================================================================
# HTTP Implementation
# =============================================================================

class HttpMiddlewareClient:
    """
    httpx implementation of AcknowledgmentChannel.

    Basic auth credentials are read from the credential store on every
    request, so a credential change takes effect without rebuilding the
    client.
    """

    def __init__(
        self,
        base_url: str,
        credentials: CredentialStore,
        app_id: str,
        device_name: str = "pushgate",
        client_version: str = "0.1.0",
        sandbox: bool = False,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._credentials = credentials
        self._app_id = app_id
        self._device_name = device_name
        self._client_version = client_version
        self._sandbox = sandbox
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

        logger.info(
            "HttpMiddlewareClient initialized: base_url=%s, timeout=%.1fs",
            base_url, timeout_seconds,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credentials: CredentialStore,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "HttpMiddlewareClient":
        return cls(
            base_url=settings.middleware_base_url,
            credentials=credentials,
            app_id=settings.middleware_app_id,
            device_name=settings.device_name,
            client_version=settings.client_version,
            sandbox=settings.middleware_sandbox,
            timeout_seconds=settings.middleware_timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def send_call_response(self, payload: Mapping[str, Any], available: bool) -> None:
        url = payload.get(PAYLOAD_KEY_RESPONSE_API) or DEFAULT_CALL_RESPONSE_PATH
        data = {
            "unique_key": payload.get(PAYLOAD_KEY_UNIQUE_KEY),
            "available": "true" if available else "false",
            "message_start_time": payload.get(PAYLOAD_KEY_MESSAGE_START_TIME),
            "sip_user_id": self._credentials.snapshot().sip_account,
        }
        await self._request("call_response", "POST", str(url), data)

    async def upsert_device_registration(self, token: str, account: str) -> None:
        data = {
            "name": self._device_name,
            "token": token,
            "sip_user_id": account,
            "app": self._app_id,
            "sandbox": "1" if self._sandbox else "0",
            "client_version": self._client_version,
        }
        await self._request("upsert_device", "POST", DEVICE_RECORD_PATH, data)

    async def delete_device_registration(self, token: str, account: str) -> None:
        data = {
            "token": token,
            "sip_user_id": account,
            "app": self._app_id,
        }
        await self._request("delete_device", "DELETE", DEVICE_RECORD_PATH, data)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _auth(self) -> Optional[httpx.BasicAuth]:
        state = self._credentials.snapshot()
        if not state.has_identity:
            return None
        return httpx.BasicAuth(state.username, state.password or "")

    def _check_origin(self, operation: str, url: str) -> None:
        """
        Check that `url`, resolved against the base URL, stays on the
        middleware origin.

        Raises:
            DeliveryError: If the URL is malformed or leaves the middleware origin
        """
        base = self._client.base_url
        try:
            target = base.join(url)
        except httpx.InvalidURL as e:
            raise DeliveryError(
                f"Middleware {operation} URL is invalid", operation=operation
            ) from e

        if (target.scheme, target.host, target.port) != (base.scheme, base.host, base.port):
            raise DeliveryError(
                f"Refusing {operation} request to foreign host {target.host!r}",
                operation=operation,
                details={"host": target.host},
            )

    async def _request(
        self,
        operation: str,
        method: str,
        url: str,
        data: Dict[str, Any],
    ) -> None:
        self._check_origin(operation, url)
        body = {k: str(v) for k, v in data.items() if v is not None}
        kwargs: Dict[str, Any] = {"data": body}
        auth = self._auth()
        if auth is not None:
            kwargs["auth"] = auth

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise DeliveryError(
                f"Middleware {operation} request failed: {type(e).__name__}",
                operation=operation,
            ) from e

        if not response.is_success:
            raise DeliveryError(
                f"Middleware {operation} returned HTTP {response.status_code}",
                operation=operation,
                status=response.status_code,
            )

        logger.debug("Middleware %s %s -> %d", method, operation, response.status_code)


# =============================================================================
# Recording Implementation
# =============================================================================

@dataclass
class RecordedCall:
    """One call made to a RecordingAcknowledgmentChannel."""
    operation: str
    args: Dict[str, Any] = field(default_factory=dict)


class RecordingAcknowledgmentChannel:
    """
    Channel that records every call instead of sending it.

    Failures can be switched on per operation to exercise error paths.
    """

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds
        self.fail_call_response = False
        self.fail_upsert = False
        self.fail_delete = False
        self.calls: List[RecordedCall] = []

    def calls_for(self, operation: str) -> List[RecordedCall]:
        return [c for c in self.calls if c.operation == operation]

    async def _simulate(self, operation: str, fail: bool, **args: Any) -> None:
        self.calls.append(RecordedCall(operation=operation, args=args))
        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)
        if fail:
            raise DeliveryError(f"Simulated {operation} failure", operation=operation, status=503)

    async def send_call_response(self, payload: Mapping[str, Any], available: bool) -> None:
        logger.info("Recorded call response: available=%s", available)
        await self._simulate(
            "call_response", self.fail_call_response,
            payload=dict(payload), available=available,
        )

    async def upsert_device_registration(self, token: str, account: str) -> None:
        logger.info("Recorded device upsert: token=%s", mask_token(token))
        await self._simulate("upsert_device", self.fail_upsert, token=token, account=account)

    async def delete_device_registration(self, token: str, account: str) -> None:
        logger.info("Recorded device delete: token=%s", mask_token(token))
        await self._simulate("delete_device", self.fail_delete, token=token, account=account)
