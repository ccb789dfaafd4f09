"""
Celery application configuration.

Defines the Celery app with Redis broker and task autodiscovery.
Rate expiry is checked at read time, so there is no beat schedule.
"""

from celery import Celery

from hawala.config import settings

celery_app = Celery(
    "hawala",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

# Auto-discover tasks in the tasks package
celery_app.autodiscover_tasks(["hawala.tasks"])
