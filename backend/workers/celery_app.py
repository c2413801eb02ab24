"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "groupbuy",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "workers.campaign_jobs.*": {"queue": "lifecycle"},
    },
    # ── Celery Beat Schedule ─────────────────────────────────────────
    beat_schedule={
        # ── Campaign Lifecycle ─────────────────────────────────────
        "trigger-grace-periods-hourly": {
            "task": "workers.campaign_jobs.trigger_grace_periods",
            "schedule": crontab(minute=settings.grace_period_trigger_cron_minute),
            "options": {"queue": "lifecycle"},
        },
        "evaluate-campaigns-daily": {
            "task": "workers.campaign_jobs.evaluate_campaigns",
            "schedule": crontab(hour=settings.campaign_evaluation_hour, minute=0),
            "options": {"queue": "lifecycle"},
        },
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["workers"])
