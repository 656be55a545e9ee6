"""Tests for payment status, provider webhooks, retries and refunds."""

import pytest

from sunsano.config import settings
from sunsano.core.security import sign_payload
from tests.factories import order_payload


def signed(payment_id: str, status: str, amount: str = "10.30", **extra) -> dict:
    payload = {"payment_id": payment_id, "status": status, "amount": amount, **extra}
    payload["signature"] = sign_payload(payload, settings.payment_webhook_secret)
    return payload


async def place(client, **overrides) -> dict:
    response = await client.post("/api/orders/", json=order_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


async def webhook(client, payload: dict):
    return await client.post("/api/payments/webhook", json=payload)


class TestPaymentStatus:

    @pytest.mark.asyncio
    async def test_status_of_new_payment(self, client):
        created = await place(client)
        payment_id = created["payment"]["payment_id"]

        response = await client.get(f"/api/payments/{payment_id}/status")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "pending"
        assert data["amount"] == "10.30"
        assert data["order_id"] == created["order"]["id"]
        assert data["order_number"] == created["order"]["order_number"]

    @pytest.mark.asyncio
    async def test_unknown_payment(self, client):
        response = await client.get("/api/payments/PAY00000000/status")

        assert response.status_code == 404


class TestPaymentWebhook:
    """Signed status notifications from the payment provider."""

    @pytest.mark.asyncio
    async def test_completed_marks_order_paid(self, client):
        created = await place(client)
        payment_id = created["payment"]["payment_id"]

        response = await webhook(client, signed(payment_id, "completed"))

        assert response.status_code == 200
        assert response.json() == {
            "payment_id": payment_id,
            "order_id": created["order"]["id"],
            "status": "completed",
            "processed": True,
        }
        order = (await client.get(f"/api/orders/{created['order']['id']}")).json()
        assert order["status"] == "paid"
        assert order["paid_at"] is not None

    @pytest.mark.asyncio
    async def test_redelivery_is_not_processed_again(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]
        await webhook(client, signed(payment_id, "completed"))

        response = await webhook(client, signed(payment_id, "completed"))

        assert response.status_code == 200
        assert response.json()["processed"] is False

    @pytest.mark.asyncio
    async def test_order_number_reference(self, client):
        created = await place(client)
        payment_id = created["payment"]["payment_id"]

        response = await webhook(
            client, signed(payment_id, "completed", order_id=created["order"]["order_number"])
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_order_mismatch(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]

        response = await webhook(client, signed(payment_id, "completed", order_id="SUN000000"))

        assert response.status_code == 422
        assert response.json()["detail"] == "Order mismatch"

    @pytest.mark.asyncio
    async def test_bad_signature(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]
        payload = signed(payment_id, "completed")
        payload["signature"] = "0" * 64

        response = await webhook(client, payload)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_tampered_amount(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]
        payload = signed(payment_id, "completed")
        payload["amount"] = "0.01"

        response = await webhook(client, payload)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_amount_mismatch(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]

        response = await webhook(client, signed(payment_id, "completed", amount="9.00"))

        assert response.status_code == 422
        assert response.json()["detail"] == "Amount mismatch"

    @pytest.mark.asyncio
    async def test_invalid_payload(self, client):
        response = await webhook(client, {"payment_id": "PAY12345678", "status": "completed"})

        assert response.status_code == 422
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"amount", "signature"} <= fields

    @pytest.mark.asyncio
    async def test_failed_then_completed_is_rejected(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]
        await webhook(client, signed(payment_id, "failed"))

        response = await webhook(client, signed(payment_id, "completed"))

        assert response.status_code == 422


class TestPaymentRetry:

    @pytest.mark.asyncio
    async def test_retry_failed_payment(self, client):
        created = await place(client)
        payment_id = created["payment"]["payment_id"]
        await webhook(client, signed(payment_id, "failed"))
        order = (await client.get(f"/api/orders/{created['order']['id']}")).json()
        assert order["status"] == "failed"

        response = await client.post("/api/payments/retry", json={"payment_id": payment_id})

        assert response.status_code == 200
        data = response.json()
        assert data["retry_of"] == payment_id
        assert data["status"] == "pending"
        assert data["new_payment_id"] != payment_id

        order = (await client.get(f"/api/orders/{created['order']['id']}")).json()
        assert order["status"] == "pending"

        # The new attempt settles the same order
        await webhook(client, signed(data["new_payment_id"], "completed"))
        order = (await client.get(f"/api/orders/{created['order']['id']}")).json()
        assert order["status"] == "paid"

    @pytest.mark.asyncio
    async def test_retry_pending_payment(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]

        response = await client.post("/api/payments/retry", json={"payment_id": payment_id})

        assert response.status_code == 422


class TestRefunds:

    @pytest.mark.asyncio
    async def test_refund_requires_admin(self, client):
        payment_id = (await place(client))["payment"]["payment_id"]

        response = await client.post("/api/payments/refund", json={"payment_id": payment_id, "amount": "1.00"})

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_refund_pending_payment(self, client, admin_headers):
        payment_id = (await place(client))["payment"]["payment_id"]

        response = await client.post(
            "/api/payments/refund",
            json={"payment_id": payment_id, "amount": "1.00"},
            headers=admin_headers,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_partial_refunds_are_capped(self, client, admin_headers):
        payment_id = (await place(client))["payment"]["payment_id"]
        await webhook(client, signed(payment_id, "completed"))

        first = await client.post(
            "/api/payments/refund",
            json={"payment_id": payment_id, "amount": "5.00", "reason": "Flasche beschädigt"},
            headers=admin_headers,
        )
        assert first.status_code == 200
        assert first.json()["status"] == "completed"
        assert first.json()["refund_id"].startswith("RFD-")

        too_much = await client.post(
            "/api/payments/refund",
            json={"payment_id": payment_id, "amount": "6.00"},
            headers=admin_headers,
        )
        assert too_much.status_code == 422

        rest = await client.post(
            "/api/payments/refund",
            json={"payment_id": payment_id, "amount": "5.30"},
            headers=admin_headers,
        )
        assert rest.status_code == 200

        status = (await client.get(f"/api/payments/{payment_id}/status")).json()
        assert status["status"] == "refunded"


class TestPaymentStats:

    @pytest.mark.asyncio
    async def test_stats(self, client, admin_headers):
        paid = (await place(client, order_number="SUN200001"))["payment"]["payment_id"]
        await place(client, order_number="SUN200002")
        await webhook(client, signed(paid, "completed"))

        response = await client.get("/api/payments/stats", headers=admin_headers)

        assert response.json() == {
            "total": 2,
            "successful": 1,
            "failed": 0,
            "pending": 1,
            "refunded": 0,
            "success_rate": 50.0,
        }
