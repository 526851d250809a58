# services/payment_api.py
# ============================================================================
# PAYMENT RETURN RECONCILER — PAYMENT BACKEND CLIENT
# ============================================================================
# Purpose: Talk to the authoritative payment backend
#
# ENDPOINTS:
# - POST /payment/{paymentId}/sync  (push: re-query the gateway)
# - GET  /payment/{paymentId}       (pull: canonical payment record)
#
# FAILURE HANDLING:
# - Non-2xx responses and transport errors raise PaymentApiError
# - The backend's own error message is surfaced when present
# ============================================================================

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from schemas.payment_definitions import PaymentStatusSnapshot

logger = structlog.get_logger().bind(component="payment_api")

NETWORK_ERROR_MESSAGE = "Unable to reach the payment service. Please check your connection."


class PaymentApiError(Exception):
    """Failed call to the payment backend."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None


# =============================================================================
# INTERFACE
# =============================================================================

class IPaymentBackend(ABC):
    """Remote calls the reconciliation flow depends on."""

    @abstractmethod
    async def sync_payment(self, payment_id: int) -> None:
        pass

    @abstractmethod
    async def get_payment(self, payment_id: int) -> PaymentStatusSnapshot:
        pass


# =============================================================================
# HTTP CLIENT
# =============================================================================

@dataclass
class PaymentApiConfig:
    """Connection settings for the payment backend."""
    base_url: str
    token: str = ""
    timeout_seconds: float = 10.0

    @classmethod
    def from_settings(cls, config) -> "PaymentApiConfig":
        return cls(
            base_url=config.payment_api_url,
            token=config.payment_api_token,
            timeout_seconds=config.payment_api_timeout,
        )


def _error_message(response: httpx.Response) -> str:
    """Pull a human message out of an error response, if it carries one."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()

    return f"Payment service responded with HTTP {response.status_code}"


class PaymentApiClient(IPaymentBackend):
    """
    httpx-based client for the payment backend.

    Example:
        async with PaymentApiClient(PaymentApiConfig("http://localhost:8080")) as api:
            await api.sync_payment(7)
            snapshot = await api.get_payment(7)
    """

    def __init__(
        self,
        config: PaymentApiConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def initialize(self) -> None:
        """Create the HTTP client."""
        if self._client is not None:
            return

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"

        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_seconds,
            headers=headers,
            transport=self._transport,
        )
        logger.info("payment_api_initialized", base_url=self.config.base_url)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "PaymentApiClient":
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(self, method: str, path: str) -> httpx.Response:
        if self._client is None:
            await self.initialize()

        try:
            response = await self._client.request(method, path)
        except httpx.HTTPError as e:
            logger.warning("payment_api_transport_error", method=method, path=path, error=str(e))
            raise PaymentApiError(NETWORK_ERROR_MESSAGE) from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning(
                "payment_api_error_response",
                method=method,
                path=path,
                status_code=response.status_code,
                message=message,
            )
            raise PaymentApiError(message, status_code=response.status_code)

        return response

    async def sync_payment(self, payment_id: int) -> None:
        """Ask the backend to refresh its record from the gateway."""
        await self._request("POST", f"/payment/{payment_id}/sync")

    async def get_payment(self, payment_id: int) -> PaymentStatusSnapshot:
        """Fetch the canonical payment record."""
        response = await self._request("GET", f"/payment/{payment_id}")

        try:
            body: Any = response.json()
            return PaymentStatusSnapshot.model_validate(body)
        except (ValueError, ValidationError) as e:
            logger.warning("payment_api_bad_body", payment_id=payment_id, error=str(e))
            raise PaymentApiError(
                "Payment service returned an unreadable response",
                status_code=response.status_code,
            ) from e
