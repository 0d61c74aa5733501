from celery import Celery
from celery.schedules import crontab

from .config import get_settings
from .logging import configure_logging

settings = get_settings()
configure_logging()

celery_app = Celery(
    "reputation",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_routes={"app.services.scheduled_refresh.refresh_all_companies": {"queue": "ingestion"}},
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    imports=("app.services.scheduled_refresh",),
    beat_schedule={
        # Daily refresh of every company; no-op unless SCHEDULED_REFRESH_ENABLED
        "refresh-all-companies": {
            "task": "app.services.scheduled_refresh.refresh_all_companies",
            "schedule": crontab(hour=4, minute=0),
        },
    },
)
