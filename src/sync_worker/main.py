"""Celery application for sync worker."""

from celery import Celery
from celery.schedules import crontab

from confirmation_service.config import get_settings
from confirmation_service.logging_config import configure_logging
from shared.constants import SYNC_QUEUE

settings = get_settings()
configure_logging(settings)

# Create Celery app
app = Celery(
    "sync_worker",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
    include=[
        "sync_worker.tasks.sync_confirmations",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=900,  # 15 minutes
    task_soft_time_limit=840,  # 14 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_queue=SYNC_QUEUE,
    task_routes={
        "sync_worker.tasks.*": {"queue": SYNC_QUEUE},
    },
)

# Beat schedule for periodic tasks
app.conf.beat_schedule = {
    # Poll the lab interface for order confirmations
    "sync-lab-confirmations": {
        "task": "sync_worker.tasks.sync_confirmations.sync_lab_confirmations",
        "schedule": crontab(minute=f"*/{settings.sync_confirmations_interval_minutes}"),
    },
}


def run() -> None:
    """Run the Celery worker."""
    app.worker_main(["worker", "--loglevel=info", "-Q", SYNC_QUEUE])


if __name__ == "__main__":
    run()
