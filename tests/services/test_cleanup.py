"""Tests for the data retention jobs."""

from datetime import UTC, datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

import sunsano.tasks as tasks
from sunsano.models.order import Order
from sunsano.models.payment import Payment
from sunsano.models.review import Review
from sunsano.services.order_service import order_service
from sunsano.services.payment_service import payment_service
from sunsano.services.review_service import review_service
from sunsano.worker import celery_app

LONG_AGO = datetime(2020, 1, 1, tzinfo=UTC)


def make_order(number: str, status: str, created_at: datetime | None = None) -> Order:
    order = Order(
        order_number=number,
        status=status,
        customer_firstname="Erika",
        customer_lastname="Mustermann",
        customer_email="erika@example.com",
        customer_address="Sonnenallee 12",
        customer_zipcode="12045",
        customer_city="Berlin",
        items=[{"product_id": "sunny-orange", "name": "Sunny Orange", "price": "3.90", "quantity": 2}],
        subtotal=Decimal("7.80"),
        delivery_cost=Decimal("2.50"),
        total=Decimal("10.30"),
        payment_method="card",
        notes=[],
    )
    if created_at is not None:
        order.created_at = created_at
    return order


def make_payment(order: Order, payment_id: str, status: str, created_at: datetime | None = None) -> Payment:
    payment = Payment(
        payment_id=payment_id,
        order=order,
        amount=order.total,
        payment_method="card",
        status=status,
    )
    if created_at is not None:
        payment.created_at = created_at
    return payment


async def count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar()


class TestOrderCleanup:

    @pytest.mark.asyncio
    async def test_deletes_old_finished_orders(self, db_session):
        old_cancelled = make_order("SUN000001", "cancelled", LONG_AGO)
        make_payment(old_cancelled, "PAY00000001", "failed", LONG_AGO)
        db_session.add_all([
            old_cancelled,
            make_order("SUN000002", "delivered", LONG_AGO),
            make_order("SUN000003", "paid", LONG_AGO),
            make_order("SUN000004", "cancelled"),
        ])
        await db_session.flush()

        deleted = await order_service.cleanup_old_orders(db_session, older_than_days=30)

        assert deleted == 2
        remaining = (await db_session.execute(select(Order.order_number))).scalars().all()
        assert sorted(remaining) == ["SUN000003", "SUN000004"]
        # Payments of deleted orders go with them
        assert await count(db_session, Payment) == 0

    @pytest.mark.asyncio
    async def test_nothing_to_delete(self, db_session):
        db_session.add(make_order("SUN000005", "pending", LONG_AGO))
        await db_session.flush()

        assert await order_service.cleanup_old_orders(db_session, older_than_days=30) == 0


class TestPaymentCleanup:

    @pytest.mark.asyncio
    async def test_deletes_old_failed_attempts(self, db_session):
        order = make_order("SUN000010", "paid")
        make_payment(order, "PAY00000010", "failed", LONG_AGO)
        make_payment(order, "PAY00000011", "cancelled", LONG_AGO)
        make_payment(order, "PAY00000012", "completed", LONG_AGO)
        make_payment(order, "PAY00000013", "failed")
        db_session.add(order)
        await db_session.flush()

        deleted = await payment_service.cleanup_old_payments(db_session, older_than_days=30)

        assert deleted == 2
        remaining = (await db_session.execute(select(Payment.payment_id))).scalars().all()
        assert sorted(remaining) == ["PAY00000012", "PAY00000013"]
        assert await count(db_session, Order) == 1


class TestReviewCleanup:

    @pytest.mark.asyncio
    async def test_deletes_old_rejected_reviews(self, db_session):
        text = "Leider war die Flasche bei Ankunft schon warm."
        db_session.add_all([
            Review(author="Alt Abgelehnt", rating=1, text=text, status="rejected", updated_at=LONG_AGO),
            Review(author="Neu Abgelehnt", rating=2, text=text, status="rejected"),
            Review(author="Alt Freigegeben", rating=4, text=text, status="approved", updated_at=LONG_AGO),
        ])
        await db_session.flush()

        deleted = await review_service.cleanup_rejected(db_session, older_than_days=30)

        assert deleted == 1
        authors = (await db_session.execute(select(Review.author))).scalars().all()
        assert sorted(authors) == ["Alt Freigegeben", "Neu Abgelehnt"]


class TestCleanupTasks:

    def test_task_reports_deleted_count(self, monkeypatch):
        def fake_run_async(coro):
            coro.close()
            return 4

        monkeypatch.setattr(tasks, "run_async", fake_run_async)

        result = tasks.cleanup_old_orders.apply(args=(30,)).get()

        assert result == {"status": "success", "deleted": 4}

    def test_beat_schedule(self):
        schedule = celery_app.conf.beat_schedule

        assert {entry["task"] for entry in schedule.values()} == {
            "sunsano.tasks.cleanup_old_orders",
            "sunsano.tasks.cleanup_old_payments",
            "sunsano.tasks.cleanup_rejected_reviews",
        }
