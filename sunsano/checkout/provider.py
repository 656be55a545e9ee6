"""Remote payment capability used by the checkout orchestrator.

``HttpPaymentProvider`` talks to the shop API of this repository over
httpx. Every failure (transport error, non-2xx response, malformed body)
is surfaced as ``PaymentProviderError``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

import httpx

from sunsano.checkout.draft import OrderDraft
from sunsano.checkout.exceptions import PaymentProviderError

logger = logging.getLogger(__name__)

PaymentStatus = Literal["completed", "failed", "pending"]


@dataclass
class CheckoutSessionResult:
    session_id: str
    redirect_url: str
    order_id: str
    order_number: str
    payment_id: str | None = None


@dataclass
class SessionStatus:
    session_id: str
    payment_status: str  # "paid" | "unpaid" | "no_payment_required"
    order_id: str | None = None
    order_number: str | None = None
    payment_id: str | None = None


@dataclass
class PaymentInitiation:
    payment_id: str
    order_id: str
    order_number: str
    status: str
    redirect_url: str | None = None


class PaymentProvider(ABC):
    """Abstract remote payment capability."""

    @abstractmethod
    async def create_checkout_session(self, draft: OrderDraft) -> CheckoutSessionResult:
        pass

    @abstractmethod
    async def get_session_status(self, session_id: str) -> SessionStatus:
        pass

    @abstractmethod
    async def initiate_payment(self, draft: OrderDraft) -> PaymentInitiation:
        pass

    @abstractmethod
    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        pass

    @abstractmethod
    async def deliver_webhook(self, payment_id: str) -> bool:
        """Attempt one webhook delivery for the payment.

        Returns:
            True if the provider confirmed the payment
        """
        pass


def normalize_payment_status(status: str | None) -> PaymentStatus:
    """Collapse a server payment record status to completed/failed/pending."""
    if status in ("completed", "refunded"):
        return "completed"
    if status in ("failed", "cancelled"):
        return "failed"
    return "pending"


class HttpPaymentProvider(PaymentProvider):
    """Payment provider backed by the SunSano HTTP API."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        api_prefix: str = "/api",
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_prefix = api_prefix.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        url = f"{self.api_prefix}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise PaymentProviderError(f"Request to {url} failed: {e}") from e

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = None
            detail = body.get("detail") if isinstance(body, dict) else response.text
            raise PaymentProviderError(
                f"{method} {url} returned {response.status_code}: {detail}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PaymentProviderError(f"{method} {url} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise PaymentProviderError(f"{method} {url} returned unexpected body")
        return data

    async def create_checkout_session(self, draft: OrderDraft) -> CheckoutSessionResult:
        data = await self._request(
            "POST", "/stripe/create-checkout-session", json=draft.to_payload()
        )
        try:
            return CheckoutSessionResult(
                session_id=data["session_id"],
                redirect_url=data["redirect_url"],
                order_id=str(data["order_id"]),
                order_number=data["order_number"],
                payment_id=data.get("payment_id"),
            )
        except KeyError as e:
            raise PaymentProviderError(f"Checkout session response missing {e}") from e

    async def get_session_status(self, session_id: str) -> SessionStatus:
        data = await self._request("GET", f"/stripe/session/{session_id}")
        try:
            return SessionStatus(
                session_id=data["session_id"],
                payment_status=data["payment_status"],
                order_id=data.get("order_id"),
                order_number=data.get("order_number"),
                payment_id=data.get("payment_id"),
            )
        except KeyError as e:
            raise PaymentProviderError(f"Session status response missing {e}") from e

    async def initiate_payment(self, draft: OrderDraft) -> PaymentInitiation:
        data = await self._request("POST", "/orders/", json=draft.to_payload())
        try:
            order = data["order"]
            payment = data["payment"]
            return PaymentInitiation(
                payment_id=payment["payment_id"],
                order_id=str(order["id"]),
                order_number=order["order_number"],
                status=payment["status"],
                redirect_url=payment.get("redirect_url"),
            )
        except (KeyError, TypeError) as e:
            raise PaymentProviderError(f"Order response missing payment data: {e}") from e

    async def get_payment_status(self, payment_id: str) -> PaymentStatus:
        data = await self._request("GET", f"/payments/{payment_id}/status")
        if "status" not in data:
            raise PaymentProviderError("Payment status response missing status")
        return normalize_payment_status(data["status"])

    async def deliver_webhook(self, payment_id: str) -> bool:
        # The server receives the real webhook; delivery succeeded once the
        # record reflects it.
        return await self.get_payment_status(payment_id) == "completed"
