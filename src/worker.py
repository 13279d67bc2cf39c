"""
Celery Worker Configuration
Task queue for background jobs.
"""
from celery import Celery

from src.core.config import settings

celery_app = Celery(
    "habitat",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=[
        "src.tasks.doorbell",
    ],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    worker_prefetch_multiplier=1,
    worker_concurrency=4,
    result_expires=3600,  # 1 hour
    beat_schedule={
        "route-timed-out-doorbell-calls": {
            "task": "src.tasks.doorbell.route_timed_out_calls",
            "schedule": float(settings.doorbell_check_interval_seconds),
            # A stale run is useless once the next one is due
            "options": {"expires": float(settings.doorbell_check_interval_seconds)},
        },
    },
)
