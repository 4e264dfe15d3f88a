"""
Celery application configuration.

This module configures Celery to use Redis as both the message broker and result backend.
The worker runs email delivery; Celery Beat triggers the daily deletion sweep.
"""

from celery import Celery
from celery.schedules import crontab
from app.core.config import settings

celery_app = Celery(
    "account_services_worker",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Task behavior
    task_track_started=True,
    task_time_limit=900,  # The sweep processes the whole backlog in one run
    task_soft_time_limit=840,

    # Result backend
    result_expires=3600,

    # Worker behavior
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,

    beat_schedule={
        "process-account-deletions": {
            "task": "process_account_deletions",
            "schedule": crontab(hour=3, minute=0),  # Daily at 03:00 UTC
        },
    },
)

celery_app.autodiscover_tasks(['app'])
