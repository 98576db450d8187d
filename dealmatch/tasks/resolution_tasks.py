"""Celery tasks for incremental and scheduled resolution."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

from dealmatch.services.resolution_service import ResolutionService
from dealmatch.tasks.celery_app import celery_app
from dealmatch.tasks.hooks import after_task, before_task

logger = logging.getLogger(__name__)

RESOLVE_DEAL_TASK = "resolution.resolve_deal"
RUN_BATCH_TASK = "resolution.run_batch"


def resolve_deal_job(deal_id: int, trace_id: str | None = None) -> dict[str, Any]:
    """Resolve one newly created deal inline; returns the result payload."""
    context = {"deal_id": deal_id, "trace_id": trace_id or uuid.uuid4().hex}
    logger.info("task.start", extra=before_task(RESOLVE_DEAL_TASK, context))
    try:
        with ResolutionService() as service:
            result = service.resolve_deal(deal_id)
    except Exception:
        logger.exception("task.failed", extra=after_task(RESOLVE_DEAL_TASK, context, status="failed"))
        raise
    status = "resolved" if result.success else "flagged"
    logger.info("task.finish", extra=after_task(RESOLVE_DEAL_TASK, context, status=status))
    return result.as_dict()


def run_batch_job(
    limit: int | None = None,
    min_created_at: str | None = None,
    dry_run: bool = False,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Run one batch pass; ``min_created_at`` is an ISO-8601 string for JSON transport."""
    context = {"trace_id": trace_id or uuid.uuid4().hex}
    logger.info("task.start", extra=before_task(RUN_BATCH_TASK, context))
    since = datetime.fromisoformat(min_created_at) if min_created_at else None
    try:
        with ResolutionService() as service:
            summary = service.run_batch(limit=limit, min_created_at=since, dry_run=dry_run)
    except Exception:
        logger.exception("task.failed", extra=after_task(RUN_BATCH_TASK, context, status="failed"))
        raise
    context["run_id"] = summary.run_id
    logger.info(
        "task.finish",
        extra=after_task(RUN_BATCH_TASK, context, status="completed", processed=summary.processed),
    )
    return summary.as_dict()


@celery_app.task(name=RESOLVE_DEAL_TASK)
def resolve_deal_task(deal_id: int, trace_id: str | None = None) -> dict[str, Any]:
    return resolve_deal_job(deal_id, trace_id=trace_id)


@celery_app.task(name=RUN_BATCH_TASK)
def run_batch_task(
    limit: int | None = None,
    min_created_at: str | None = None,
    dry_run: bool = False,
    trace_id: str | None = None,
) -> dict[str, Any]:
    return run_batch_job(limit=limit, min_created_at=min_created_at, dry_run=dry_run, trace_id=trace_id)
