"""Tests for hosted checkout sessions and Stripe events (simulated gateway)."""

import json

import pytest

from tests.factories import order_payload


async def create_session(client, **overrides) -> dict:
    response = await client.post("/api/stripe/create-checkout-session", json=order_payload(**overrides))
    assert response.status_code == 200, response.text
    return response.json()


def session_completed(event_id: str, session: dict, payment_status: str = "paid", intent: str = "pi_test_1") -> dict:
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session["session_id"],
                "payment_status": payment_status,
                "payment_intent": intent,
                "metadata": {"order_id": session["order_id"], "order_number": session["order_number"]},
            }
        },
    }


def intent_event(event_id: str, event_type: str, intent: str = "pi_test_1", **fields) -> dict:
    return {"id": event_id, "type": event_type, "data": {"object": {"id": intent, **fields}}}


async def send_event(client, event: dict):
    return await client.post(
        "/api/stripe/webhook",
        content=json.dumps(event),
        headers={"Content-Type": "application/json", "Stripe-Signature": "t=0,v1=simulated"},
    )


async def order_of(client, session: dict) -> dict:
    return (await client.get(f"/api/orders/{session['order_id']}")).json()


class TestCheckoutSession:

    @pytest.mark.asyncio
    async def test_create_session(self, client):
        session = await create_session(client, order_number="SUN500001")

        assert session["session_id"].startswith("cs_simulated_")
        assert session["order_number"] == "SUN500001"
        assert session["payment_id"].startswith("PAY")
        assert "payment-success" in session["redirect_url"]
        assert session["session_id"] in session["redirect_url"]

        order = await order_of(client, session)
        assert order["status"] == "pending"
        assert order["stripe_session_id"] == session["session_id"]

    @pytest.mark.asyncio
    async def test_invalid_cart(self, client):
        payload = order_payload(items=[
            {"product_id": "mango-magic", "name": "Mango Magic", "price": "4.00", "quantity": 1},
        ])

        response = await client.post("/api/stripe/create-checkout-session", json=payload)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_session_status_marks_order_paid(self, client):
        session = await create_session(client)

        response = await client.get(f"/api/stripe/session/{session['session_id']}")

        assert response.status_code == 200
        data = response.json()
        assert data["payment_status"] == "paid"
        assert data["order_number"] == session["order_number"]
        assert data["payment_id"] == session["payment_id"]

        assert (await order_of(client, session))["status"] == "paid"
        payment = (await client.get(f"/api/payments/{session['payment_id']}/status")).json()
        assert payment["status"] == "completed"

    @pytest.mark.asyncio
    async def test_session_status_is_repeatable(self, client):
        session = await create_session(client)

        await client.get(f"/api/stripe/session/{session['session_id']}")
        response = await client.get(f"/api/stripe/session/{session['session_id']}")

        assert response.status_code == 200
        assert (await order_of(client, session))["status"] == "paid"


class TestStripeWebhook:

    @pytest.mark.asyncio
    async def test_session_completed(self, client):
        session = await create_session(client)

        response = await send_event(client, session_completed("evt_1", session))

        assert response.status_code == 200
        assert response.json()["processed"] is True
        assert response.json()["status"] == "paid"
        assert (await order_of(client, session))["status"] == "paid"

    @pytest.mark.asyncio
    async def test_duplicate_event_returns_stored_result(self, client):
        session = await create_session(client)
        first = await send_event(client, session_completed("evt_2", session))

        second = await send_event(client, session_completed("evt_2", session))

        assert second.status_code == 200
        assert second.json() == first.json()

    @pytest.mark.asyncio
    async def test_delayed_payment_fails(self, client):
        session = await create_session(client)

        response = await send_event(client, session_completed("evt_3", session, payment_status="unpaid"))
        assert response.json()["status"] == "processing"

        response = await send_event(client, intent_event(
            "evt_4",
            "payment_intent.payment_failed",
            last_payment_error={"message": "Lastschrift abgelehnt"},
        ))

        assert response.json()["processed"] is True
        assert response.json()["status"] == "failed"
        payment = (await client.get(f"/api/payments/{session['payment_id']}/status")).json()
        assert payment["status"] == "failed"

    @pytest.mark.asyncio
    async def test_delayed_payment_succeeds(self, client):
        session = await create_session(client)
        await send_event(client, session_completed("evt_5", session, payment_status="unpaid"))

        response = await send_event(client, intent_event("evt_6", "payment_intent.succeeded"))

        assert response.json()["status"] == "paid"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client):
        event = {
            "id": "evt_7",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_test_unknown", "payment_status": "paid", "metadata": {}}},
        }

        response = await send_event(client, event)

        assert response.status_code == 200
        assert response.json()["processed"] is False
        assert response.json()["message"] == "Order not found"

    @pytest.mark.asyncio
    async def test_unhandled_event_type(self, client):
        response = await send_event(client, {"id": "evt_8", "type": "customer.created", "data": {"object": {}}})

        assert response.json() == {
            "processed": False,
            "message": "Event type not handled",
            "order_id": None,
            "order_number": None,
            "status": None,
        }

    @pytest.mark.asyncio
    async def test_unreadable_body(self, client):
        response = await client.post(
            "/api/stripe/webhook",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
