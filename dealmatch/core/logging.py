"""Structured log payloads for resolution runs and background tasks."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Mapping


@dataclass(frozen=True)
class LogContext:
    """Identifiers that tie a log line to a run, a deal or a review."""

    run_id: str | None = None
    deal_id: int | None = None
    review_id: int | None = None
    owner_id: int | None = None
    task_name: str | None = None
    trace_id: str | None = None

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any], task_name: str | None = None) -> LogContext:
        """Pick the known identifiers out of a task's keyword context."""
        return cls(
            run_id=values.get("run_id"),
            deal_id=values.get("deal_id"),
            review_id=values.get("review_id"),
            owner_id=values.get("owner_id"),
            task_name=task_name or values.get("task_name"),
            trace_id=values.get("trace_id"),
        )

    def fields(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


def build_log_event(event: str, context: LogContext, **fields: Any) -> dict[str, Any]:
    """Payload for ``logger.<level>(event, extra=...)``; unset identifiers are left out."""
    payload: dict[str, Any] = {"timestamp": datetime.now(timezone.utc).isoformat(), "event": event}
    payload.update(context.fields())
    payload.update(fields)
    return payload
