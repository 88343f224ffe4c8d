from __future__ import annotations

from celery import Celery

from repo_recon.config import settings


def make_celery() -> Celery:
    """Create the Celery app.

    Kept in a function so tests can import tasks without eagerly touching
    global state beyond settings.
    """

    celery = Celery(
        "repo_recon",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["repo_recon.worker.tasks"],
    )

    celery.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_track_started=True,
        beat_schedule={
            "sync-trending-repositories": {
                "task": "repo_recon.sync_trending",
                "schedule": float(settings.trending_sync_interval_seconds),
            },
            "process-analysis-queue": {
                "task": "repo_recon.process_analysis_queue",
                "schedule": float(settings.analysis_queue_interval_seconds),
            },
        },
    )

    return celery


celery_app = make_celery()
