"""Celery background tasks for data retention."""

import asyncio
import logging

from celery import shared_task

from sunsano.database import close_db, get_db_context
from sunsano.services.order_service import order_service
from sunsano.services.payment_service import payment_service
from sunsano.services.review_service import review_service

logger = logging.getLogger(__name__)


def run_async(coro):
    """Run async function in sync context."""
    return asyncio.run(coro)


async def _run_cleanup(cleanup, older_than_days: int | None = None) -> int:
    try:
        async with get_db_context() as db:
            return await cleanup(db, older_than_days)
    finally:
        # Pooled connections are bound to this task's event loop
        await close_db()


@shared_task(bind=True, max_retries=3)
def cleanup_old_orders(self, older_than_days: int | None = None):
    """Delete delivered and cancelled orders past the retention window."""
    try:
        deleted = run_async(_run_cleanup(order_service.cleanup_old_orders, older_than_days))
    except Exception as exc:
        logger.exception("Order cleanup failed")
        raise self.retry(exc=exc, countdown=300)
    return {"status": "success", "deleted": deleted}


@shared_task(bind=True, max_retries=3)
def cleanup_old_payments(self, older_than_days: int | None = None):
    """Delete failed and cancelled payment attempts past the retention window."""
    try:
        deleted = run_async(_run_cleanup(payment_service.cleanup_old_payments, older_than_days))
    except Exception as exc:
        logger.exception("Payment cleanup failed")
        raise self.retry(exc=exc, countdown=300)
    return {"status": "success", "deleted": deleted}


@shared_task(bind=True, max_retries=3)
def cleanup_rejected_reviews(self, older_than_days: int | None = None):
    """Delete rejected reviews past the retention window."""
    try:
        deleted = run_async(_run_cleanup(review_service.cleanup_rejected, older_than_days))
    except Exception as exc:
        logger.exception("Review cleanup failed")
        raise self.retry(exc=exc, countdown=300)
    return {"status": "success", "deleted": deleted}
