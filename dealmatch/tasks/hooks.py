"""Lifecycle hooks for queue task execution."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from dealmatch.core.logging import LogContext, build_log_event


def before_task(task_name: str, context: dict[str, Any]) -> dict[str, Any]:
    """Build pre-task log payload."""
    return build_log_event("task.start", LogContext.from_mapping(context, task_name=task_name))


def after_task(task_name: str, context: dict[str, Any], status: str, **fields: Any) -> dict[str, Any]:
    """Build post-task log payload."""
    return build_log_event(
        "task.finish",
        LogContext.from_mapping(context, task_name=task_name),
        status=status,
        finished_at=datetime.now(timezone.utc).isoformat(),
        **fields,
    )
