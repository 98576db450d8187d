"""Synchronous resolution API used by the HTTP layer, tasks and other collaborators."""

from __future__ import annotations

import logging
from datetime import datetime

from dealmatch.core.enums import ReviewReason, ReviewStatus
from dealmatch.models import ReviewRecord
from dealmatch.resolution.batch_runner import BatchSummary, run_resolution_batch
from dealmatch.resolution.incremental import IncrementalResolver
from dealmatch.resolution.pipeline import ResolutionResult
from dealmatch.resolution.quality import data_quality_report
from dealmatch.resolution.review_queue import OriginalFields, ReviewQueue
from dealmatch.services.base_service import BaseService

logger = logging.getLogger(__name__)


class ResolutionService(BaseService):
    """Each public method is one transaction: committed on success, rolled back on error."""

    def resolve_deal(self, deal_id: int) -> ResolutionResult:
        try:
            result = IncrementalResolver(self.db).resolve_deal(deal_id)
        except Exception:
            self.rollback()
            raise
        self.commit()
        return result

    def link_contact(
        self,
        email: str | None,
        name_hint: str | None = None,
        company_hint: str | None = None,
        owner_id: int | None = None,
    ) -> ResolutionResult:
        try:
            result = IncrementalResolver(self.db).link_contact(email, name_hint, company_hint, owner_id)
        except Exception:
            self.rollback()
            raise
        self.commit()
        return result

    def flag_for_review(
        self,
        deal_id: int,
        reason: ReviewReason | str,
        original: OriginalFields,
        details: str | None = None,
    ) -> int:
        try:
            review = ReviewQueue(self.db).flag(deal_id, reason, original, details=details)
            review_id = review.id
        except Exception:
            self.rollback()
            raise
        self.commit()
        return review_id

    def resolve_review(
        self,
        review_id: int,
        company_id: int,
        contact_id: int,
        resolver_id: str,
        notes: str | None = None,
    ) -> bool:
        """Link the deal and close the review together, or neither."""
        try:
            resolved = ReviewQueue(self.db).resolve(review_id, company_id, contact_id, resolver_id, notes)
        except Exception:
            self.rollback()
            raise
        self.commit()
        return resolved

    def archive_review(self, review_id: int, resolver_id: str, notes: str | None = None) -> bool:
        try:
            archived = ReviewQueue(self.db).archive(review_id, resolver_id, notes)
        except Exception:
            self.rollback()
            raise
        self.commit()
        return archived

    def get_pending_reviews(self) -> list[ReviewRecord]:
        return ReviewQueue(self.db).pending()

    def list_reviews(self, status: ReviewStatus | str | None = None) -> list[ReviewRecord]:
        return ReviewQueue(self.db).list_reviews(status)

    def data_quality(self) -> dict[str, int]:
        return data_quality_report(self.db)

    def run_batch(
        self,
        limit: int | None = None,
        min_created_at: datetime | None = None,
        dry_run: bool = False,
        maintenance: bool = True,
    ) -> BatchSummary:
        # The batch opens its own session and commits per record.
        return run_resolution_batch(
            limit=limit,
            min_created_at=min_created_at,
            dry_run=dry_run,
            maintenance=maintenance,
        )
