#!/usr/bin/env python3
"""
Complete checkout flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only drives the checkout orchestrator.
All rules live in sunsano.checkout and the backend.

Usage:
    python scripts/flow_checkout.py --item sunny-orange:2
    python scripts/flow_checkout.py --item green-power:1 --in-page --webhook-secret change-me-webhook-secret
    python scripts/flow_checkout.py --fake --item sunny-orange:2

Flow (hosted checkout):
    1. Load products and build the cart
    2. Walk the wizard (cart, customer data, payment method)
    3. Create the checkout session and "redirect"
    4. Resume after the redirect and verify the session

Flow (--in-page):
    3. Create the order and payment attempt
    4. Optionally send the signed provider webhook
    5. Poll until the payment settles
"""

import argparse
import asyncio
import json
import logging
import sys
import uuid
from dataclasses import replace
from decimal import Decimal

import httpx

from sunsano.checkout import (
    CheckoutConfig,
    CheckoutSystem,
    FakePaymentProvider,
    HttpPaymentProvider,
    MemorySessionStorage,
    PaymentLogger,
    RedisSessionStorage,
    WizardStep,
)
from sunsano.config import settings
from sunsano.core.security import sign_payload
from sunsano.services.product_service import SAMPLE_PRODUCTS

BASE_URL = "http://localhost:3000"

# Test customer
CUSTOMER = {
    "firstname": "Erika",
    "lastname": "Mustermann",
    "email": "erika@example.com",
    "phone": "+49 30 1234567",
    "address": "Sonnenallee 12",
    "zipcode": "12045",
    "city": "Berlin",
}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def parse_items(entries: list[str]) -> list[tuple[str, int]]:
    items = []
    for entry in entries:
        product_id, _, quantity = entry.partition(":")
        items.append((product_id, int(quantity or 1)))
    return items


async def load_catalogue(base_url: str | None) -> dict[str, dict]:
    """Products by id, from the API or the built-in sample catalogue."""
    if base_url is None:
        return {p["id"]: {**p, "price": str(p["price"])} for p in SAMPLE_PRODUCTS}

    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        response = await client.get("/api/products/", params={"page_size": 100})
        response.raise_for_status()
        return {p["id"]: p for p in response.json()["products"]}


async def send_signed_webhook(base_url: str, payment_id: str, secret: str) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        status = await client.get(f"/api/payments/{payment_id}/status")
        status.raise_for_status()
        payload = {
            "payment_id": payment_id,
            "status": "completed",
            "amount": status.json()["amount"],
        }
        payload["signature"] = sign_payload(payload, secret)
        response = await client.post("/api/payments/webhook", json=payload)
        print(f"Webhook: {response.status_code} {response.text}")


async def run(args) -> int:
    # Step 1: Build the cart
    print_step(1, "Build cart")
    try:
        catalogue = await load_catalogue(None if args.fake else args.base_url)
    except httpx.HTTPError as e:
        print(f"ERROR: Could not load products: {e}")
        return 1

    cart = []
    for product_id, quantity in parse_items(args.item):
        product = catalogue.get(product_id)
        if product is None:
            print(f"ERROR: Unknown product {product_id}")
            return 1
        cart.append({
            "id": product_id,
            "name": product["name"],
            "price": Decimal(str(product["price"])),
            "quantity": quantity,
        })
        print(f"  {quantity} x {product['name']} @ {product['price']}")

    if args.fake:
        provider = FakePaymentProvider(payment_statuses=("pending", "completed"), webhook_outcomes=(False, True))
    else:
        provider = HttpPaymentProvider(base_url=args.base_url)

    config = replace(
        CheckoutConfig.from_settings(settings),
        poll_interval=args.poll_interval,
        max_polls=args.max_polls,
        webhook_delay_min=1.0,
        webhook_delay_max=3.0,
        webhook_retry_delay=2.0,
    )
    if args.redis_log:
        storage = RedisSessionStorage.from_url(settings.redis_url, session_id=uuid.uuid4().hex)
    else:
        storage = MemorySessionStorage()
    payment_logger = PaymentLogger(storage, capacity=settings.payment_log_capacity)
    checkout = CheckoutSystem(provider, payment_logger=payment_logger, config=config)

    try:
        # Step 2: Walk the wizard
        print_step(2, "Checkout wizard")
        checkout.start_checkout(cart)
        checkout.next_step()
        if not checkout.submit_customer_data(CUSTOMER):
            return 1
        checkout.next_step()
        if not checkout.select_payment_method(args.payment_method):
            return 1
        if checkout.current_step is not WizardStep.PAYMENT_METHOD:
            print("ERROR: Wizard did not reach the payment step")
            return 1
        totals = checkout.totals()
        print(f"Subtotal {totals.subtotal}, delivery {totals.delivery_fee}, total {totals.total}")

        if args.in_page:
            # Step 3: Create order and payment
            print_step(3, "Create order and payment")
            payment_id = await checkout.process_payment()
            if payment_id is None:
                print("ERROR: Payment could not be started")
                return 1
            print(f"Payment {payment_id} for order {checkout.draft.order_number}")

            if args.webhook_secret and not args.fake:
                # Step 4: Provider webhook
                print_step(4, "Send signed webhook")
                await send_signed_webhook(args.base_url, payment_id, args.webhook_secret)

            # Step 5: Wait for the payment to settle
            print_step(5, "Wait for payment")
            await checkout.wait_until_settled()
        else:
            # Step 3: Hosted checkout session
            print_step(3, "Create checkout session")
            session = await checkout.place_order()
            if session is None:
                print("ERROR: Checkout session could not be created")
                return 1
            print(f"Session {session.session_id} -> {session.redirect_url}")

            # Step 4: Customer returns from the payment page
            print_step(4, "Resume after redirect")
            await checkout.resume_after_redirect(session.session_id)
            await checkout.wait_until_settled()

        state = checkout.state_machine.current_state.value if checkout.state_machine else None
        print(f"\nPayment state: {state}")
        print(json.dumps(checkout.order_summary(), indent=2))
        print("\nPayment log:")
        for entry in await checkout.payment_logs():
            print(f"  {entry['timestamp']} {entry['event']}")
        return 0 if state == "paid" else 1
    finally:
        checkout.close_checkout()
        if isinstance(provider, HttpPaymentProvider):
            await provider.close()
        if isinstance(storage, RedisSessionStorage):
            await storage.close()


def main():
    parser = argparse.ArgumentParser(description="Complete checkout flow")
    parser.add_argument("--base-url", default=BASE_URL, help="Shop API base URL")
    parser.add_argument("--item", action="append", default=[], help="product-id:quantity (repeatable)")
    parser.add_argument("--payment-method", default="card", choices=["cash", "card", "paypal"])
    parser.add_argument("--in-page", action="store_true", help="Pay in page and poll instead of hosted checkout")
    parser.add_argument("--webhook-secret", help="Send a signed completion webhook with this secret")
    parser.add_argument("--fake", action="store_true", help="Use the scripted fake provider, no server needed")
    parser.add_argument("--poll-interval", type=float, default=2.0, help="Seconds between status polls")
    parser.add_argument("--max-polls", type=int, default=10, help="Polls before timing out")
    parser.add_argument("--redis-log", action="store_true", help="Keep the payment log in Redis")
    parser.add_argument("--verbose", action="store_true", help="Show orchestrator logs")
    args = parser.parse_args()

    if not args.item:
        args.item = ["sunny-orange:2"]

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
