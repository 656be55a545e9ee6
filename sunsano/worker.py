"""Celery worker configuration.

Runs the periodic cleanup jobs defined in ``sunsano.tasks``.
"""

from celery import Celery
from celery.schedules import crontab

from sunsano.config import settings

# Create Celery app
celery_app = Celery(
    "sunsano_tasks",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["sunsano.tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Europe/Berlin",
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,
    task_soft_time_limit=240,

    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=2,

    # Results expire after 1 hour
    result_expires=3600,

    # Retry settings
    task_default_retry_delay=60,
    task_max_retries=3,

    beat_schedule={
        # Delivered and cancelled orders, daily at 3 AM
        "cleanup-old-orders": {
            "task": "sunsano.tasks.cleanup_old_orders",
            "schedule": crontab(hour=3, minute=0),
        },
        # Failed and cancelled payment attempts, daily at 3:15 AM
        "cleanup-old-payments": {
            "task": "sunsano.tasks.cleanup_old_payments",
            "schedule": crontab(hour=3, minute=15),
        },
        # Rejected reviews, weekly on Monday
        "cleanup-rejected-reviews": {
            "task": "sunsano.tasks.cleanup_rejected_reviews",
            "schedule": crontab(hour=4, minute=0, day_of_week=1),
        },
    },
)


if __name__ == "__main__":
    celery_app.start()
