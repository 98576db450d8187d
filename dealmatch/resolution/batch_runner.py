"""Batch reconciliation of legacy deals into canonical companies and contacts."""

from __future__ import annotations

import logging
import uuid
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dealmatch.core.config import Config, get_config
from dealmatch.core.enums import ReviewReason, ReviewStatus, RunStatus
from dealmatch.database import db
from dealmatch.models import Deal, ResolutionRun, ReviewRecord
from dealmatch.models.base import utcnow
from dealmatch.resolution.maintenance import maintenance_mode
from dealmatch.resolution.name_matcher import NameMatcher
from dealmatch.resolution.pipeline import ResolutionPipeline, ResolutionResult
from dealmatch.resolution.quality import data_quality_report, preflight
from dealmatch.resolution.review_queue import OriginalFields

logger = logging.getLogger(__name__)

_MAX_DETAILS = 1000


@dataclass
class BatchSummary:
    run_id: str
    dry_run: bool = False
    processed: int = 0
    succeeded: int = 0
    flagged: int = 0
    errors: int = 0
    quality_before: dict = field(default_factory=dict)
    quality_after: dict = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "flagged": self.flagged,
            "errors": self.errors,
            "quality_before": self.quality_before,
            "quality_after": self.quality_after,
        }


def _not_blank(column):
    return and_(column.is_not(None), func.trim(column) != "")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _candidates(min_created_at: datetime | None):
    stmt = select(Deal.id).where(
        or_(Deal.company_id.is_(None), Deal.primary_contact_id.is_(None)),
        or_(_not_blank(Deal.company), _not_blank(Deal.contact_name), _not_blank(Deal.contact_email)),
    )
    if min_created_at is not None:
        stmt = stmt.where(Deal.created_at >= _as_utc(min_created_at))
    return stmt


def _awaiting_review():
    return (
        select(ReviewRecord.id)
        .where(ReviewRecord.deal_id == Deal.id, ReviewRecord.status == ReviewStatus.PENDING.value)
        .exists()
    )


def select_candidate_ids(session: Session, limit: int, min_created_at: datetime | None = None) -> list[int]:
    """Unlinked deals that still carry legacy free text.

    Deals already waiting on a review sort after the rest; oldest first within
    each group.
    """
    awaiting_review = case((_awaiting_review(), 1), else_=0)
    stmt = _candidates(min_created_at).order_by(awaiting_review, Deal.created_at, Deal.id).limit(limit)
    return list(session.scalars(stmt).all())


def iter_candidate_pages(
    session: Session, page_size: int, min_created_at: datetime | None = None
) -> Iterator[list[int]]:
    """Every candidate deal, in id-keyset pages of ``page_size``."""
    last_id = 0
    while True:
        stmt = _candidates(min_created_at).where(Deal.id > last_id).order_by(Deal.id).limit(page_size)
        page = list(session.scalars(stmt).all())
        # Release the read before records are written.
        session.rollback()
        if not page:
            return
        yield page
        last_id = page[-1]


class BatchRunner:
    """Single pass over candidate deals, one failure boundary per deal.

    Every record is committed on its own, so a failing record never rolls back
    the ones before it and a killed process loses at most the record in flight.
    """

    def __init__(self, config: Config | None = None, matcher: NameMatcher | None = None) -> None:
        self.config = config or get_config()
        self.matcher = matcher

    def run(
        self,
        limit: int | None = None,
        min_created_at: datetime | None = None,
        dry_run: bool = False,
        maintenance: bool = True,
    ) -> BatchSummary:
        summary = BatchSummary(run_id=uuid.uuid4().hex, dry_run=dry_run)

        with db.get_db_session() as session:
            # Fatal: raises before any record is touched.
            preflight(session)
            summary.quality_before = data_quality_report(session)

            run = ResolutionRun(
                run_key=summary.run_id,
                status=RunStatus.RUNNING.value,
                dry_run=dry_run,
                params={
                    "limit": limit,
                    "page_size": self.config.RESOLUTION_BATCH_LIMIT,
                    "min_created_at": min_created_at.isoformat() if min_created_at else None,
                    "maintenance": maintenance,
                },
                quality_before=summary.quality_before,
            )
            session.add(run)
            session.commit()
            run_pk = run.id

            logger.info(
                "resolution.batch.started",
                extra={
                    "event": "resolution.batch.started",
                    "run_id": summary.run_id,
                    "status": "dry_run" if dry_run else "live",
                },
            )

            try:
                guard = (
                    maintenance_mode(
                        session.get_bind(),
                        listeners=self.config.MAINTENANCE_AUDIT_LISTENERS or None,
                        db_triggers=self.config.MAINTENANCE_DB_TRIGGERS,
                    )
                    if maintenance
                    else nullcontext()
                )
                pipeline = ResolutionPipeline(
                    session,
                    matcher=self.matcher,
                    threshold=self.config.RESOLUTION_FUZZY_THRESHOLD,
                    uncertainty_floor=self.config.RESOLUTION_UNCERTAINTY_FLOOR,
                )
                with guard:
                    for page in self._candidate_pages(session, limit, min_created_at):
                        for deal_id in page:
                            self._process_record(session, pipeline, deal_id, summary, dry_run)
            except Exception as exc:
                session.rollback()
                self._mark_failed(session, run_pk, summary, exc)
                raise

            summary.quality_after = data_quality_report(session)
            run = session.get(ResolutionRun, run_pk)
            self._copy_counts(run, summary)
            run.status = RunStatus.COMPLETED.value
            run.quality_after = summary.quality_after
            run.finished_at = utcnow()
            session.commit()

        logger.info(
            "resolution.batch.completed",
            extra={"event": "resolution.batch.completed", "run_id": summary.run_id, "status": RunStatus.COMPLETED.value},
        )
        return summary

    def _candidate_pages(
        self, session: Session, limit: int | None, min_created_at: datetime | None
    ) -> Iterator[list[int]]:
        # No limit means one full pass over every candidate.
        if limit is None:
            yield from iter_candidate_pages(session, self.config.RESOLUTION_BATCH_LIMIT, min_created_at)
            return
        page = select_candidate_ids(session, limit, min_created_at)
        session.rollback()
        yield page

    def _process_record(
        self,
        session: Session,
        pipeline: ResolutionPipeline,
        deal_id: int,
        summary: BatchSummary,
        dry_run: bool,
    ) -> ResolutionResult | None:
        finish = session.rollback if dry_run else session.commit
        try:
            deal = session.get(Deal, deal_id)
            if deal is None:
                return None
            result = pipeline.process(deal)
            if not result.success:
                pipeline.reviews.flag(
                    deal.id,
                    result.reason,
                    OriginalFields.from_deal(deal),
                    suggested_company_id=result.suggested_company_id,
                    suggested_contact_id=result.suggested_contact_id,
                    details=result.details,
                )
            finish()
        except Exception as exc:
            session.rollback()
            logger.exception(
                "resolution.record.failed",
                extra={"event": "resolution.record.failed", "run_id": summary.run_id, "deal_id": deal_id},
            )
            summary.processed += 1
            summary.errors += 1
            self._flag_failure(session, pipeline, deal_id, exc, summary, finish)
            return ResolutionResult.flagged(ReviewReason.ENTITY_CREATION_FAILED, str(exc)).for_deal(deal_id)

        summary.processed += 1
        if result.success:
            summary.succeeded += 1
        else:
            summary.flagged += 1
            logger.info(
                "resolution.record.flagged",
                extra={
                    "event": "resolution.record.flagged",
                    "run_id": summary.run_id,
                    "deal_id": deal_id,
                    "reason": result.reason.value,
                },
            )
        return result

    def _flag_failure(self, session, pipeline, deal_id, exc, summary, finish) -> None:
        details = f"{type(exc).__name__}: {exc}"[:_MAX_DETAILS]
        try:
            deal = session.get(Deal, deal_id)
            if deal is None:
                return
            pipeline.reviews.flag(
                deal_id,
                ReviewReason.ENTITY_CREATION_FAILED,
                OriginalFields.from_deal(deal),
                details=details,
            )
            finish()
        except Exception:
            session.rollback()
            logger.exception(
                "resolution.record.flag_failed",
                extra={"event": "resolution.record.flag_failed", "run_id": summary.run_id, "deal_id": deal_id},
            )

    @staticmethod
    def _copy_counts(run: ResolutionRun, summary: BatchSummary) -> None:
        run.processed = summary.processed
        run.succeeded = summary.succeeded
        run.flagged = summary.flagged
        run.errors = summary.errors

    def _mark_failed(self, session: Session, run_pk: int, summary: BatchSummary, exc: Exception) -> None:
        logger.error(
            "resolution.batch.failed",
            extra={"event": "resolution.batch.failed", "run_id": summary.run_id, "status": RunStatus.FAILED.value},
        )
        try:
            run = session.get(ResolutionRun, run_pk)
            self._copy_counts(run, summary)
            run.status = RunStatus.FAILED.value
            run.error_message = str(exc)[:_MAX_DETAILS]
            run.finished_at = utcnow()
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            logger.exception(
                "resolution.run_ledger.update_failed",
                extra={"event": "resolution.run_ledger.update_failed", "run_id": summary.run_id},
            )


def run_resolution_batch(
    limit: int | None = None,
    min_created_at: datetime | None = None,
    dry_run: bool = False,
    maintenance: bool = True,
) -> BatchSummary:
    """Module-level entry point used by the CLI, the Celery task and the API."""
    return BatchRunner().run(limit=limit, min_created_at=min_created_at, dry_run=dry_run, maintenance=maintenance)
