"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab

from dissonant.core.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "dissonant",
    broker=str(settings.redis_url),
    backend=str(settings.redis_url),
    include=[
        "dissonant.workers.tasks.orders",
        "dissonant.workers.tasks.tracking",
        "dissonant.workers.tasks.labels",
    ],
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Task safety limits; label retries sleep between attempts
    task_time_limit=540,
    task_soft_time_limit=480,
    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    # Default queue name (must match worker -Q flag)
    task_default_queue="default",
    task_routes={
        "tasks.labels.*": {"queue": "labels"},
    },
    beat_schedule={
        "poll-in-flight-tracking": {
            "task": "tasks.tracking.poll_in_flight_tracking",
            "schedule": crontab(minute=0),
        },
        "retry-failed-shipping-labels": {
            "task": "tasks.labels.retry_failed_shipping_labels",
            "schedule": crontab(minute=30, hour="*/6"),
        },
        "report-stale-delivered-orders": {
            "task": "tasks.tracking.report_stale_delivered_orders",
            "schedule": crontab(minute=0, hour=9),
        },
    },
)


# Task base class with common error handling
class BaseTask(celery_app.Task):  # type: ignore[misc, name-defined]
    """Base task class with error handling.

    Only storage and broker failures reach here; label and courier errors
    are recorded by the services themselves.
    """

    abstract = True
    autoretry_for = (Exception,)
    retry_backoff = True
    retry_backoff_max = 600  # Max 10 minutes between retries
    retry_jitter = True
    max_retries = 3
