"""
Celery configuration for async engine runs.

Engine tasks are pure: they receive the loaded data and the committed
schedule as JSON and return a candidate. Results expire after a day.
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from studio_scheduler.core.config import REDIS_URL, TASK_TIME_LIMIT
from studio_scheduler.core.logging_config import setup_logging

celery_app = Celery(
    "studio_scheduler",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=["studio_scheduler.tasks.scheduler_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="Asia/Kolkata",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=TASK_TIME_LIMIT,
    task_soft_time_limit=max(TASK_TIME_LIMIT - 30, 1),
    result_expires=86400,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application log format in workers instead of Celery's own."""
    setup_logging()
