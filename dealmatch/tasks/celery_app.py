"""Celery application bootstrap."""

from __future__ import annotations

from celery import Celery

from dealmatch.core.config import get_config

config = get_config()

celery_app = Celery(
    "dealmatch",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["dealmatch.tasks.resolution_tasks"],
)
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
)
