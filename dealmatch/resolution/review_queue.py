"""Durable queue of deals the engine could not resolve on its own."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealmatch.core.enums import SYSTEM_ACTOR, ReviewReason, ReviewStatus
from dealmatch.core.exceptions import NotFoundError, ReviewStateError, ValidationError
from dealmatch.models import Company, Contact, Deal, ReviewRecord
from dealmatch.models.base import utcnow
from dealmatch.resolution.persistence import insert_or_fetch_winner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OriginalFields:
    """Free-text values of a deal as they were when it was flagged."""

    company: str | None = None
    contact_name: str | None = None
    contact_email: str | None = None

    @classmethod
    def from_deal(cls, deal: Deal) -> "OriginalFields":
        return cls(company=deal.company, contact_name=deal.contact_name, contact_email=deal.contact_email)


def _coerce_reason(reason: ReviewReason | str) -> ReviewReason:
    try:
        return ReviewReason(reason)
    except ValueError as exc:
        raise ValidationError(f"Unknown review reason: {reason!r}") from exc


class ReviewQueue:
    """Review operations on a caller-owned session.

    Nothing here commits; the caller's transaction decides whether a flag or a
    human resolution becomes visible, which keeps the deal update and the review
    status change atomic.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_pending_for_deal(self, deal_id: int) -> ReviewRecord | None:
        stmt = select(ReviewRecord).where(
            ReviewRecord.deal_id == deal_id,
            ReviewRecord.status == ReviewStatus.PENDING.value,
        )
        return self.session.scalars(stmt).first()

    def flag(
        self,
        deal_id: int,
        reason: ReviewReason | str,
        original: OriginalFields,
        suggested_company_id: int | None = None,
        suggested_contact_id: int | None = None,
        details: str | None = None,
    ) -> ReviewRecord:
        """Open, or refresh, the single pending review for ``deal_id``."""
        reason = _coerce_reason(reason)
        deal = self.session.get(Deal, deal_id)
        if deal is None:
            raise NotFoundError(f"Deal {deal_id} not found")
        if deal.is_resolved:
            raise ReviewStateError(f"Deal {deal_id} is already resolved")

        review = self.get_pending_for_deal(deal_id)
        created = False
        if review is None:
            review, created = insert_or_fetch_winner(
                self.session,
                ReviewRecord(deal_id=deal_id, reason=reason.value, status=ReviewStatus.PENDING.value),
                lambda: self.get_pending_for_deal(deal_id),
            )

        review.reason = reason.value
        review.original_company = original.company
        review.original_contact_name = original.contact_name
        review.original_contact_email = original.contact_email
        review.suggested_company_id = suggested_company_id
        review.suggested_contact_id = suggested_contact_id
        review.details = details
        self.session.flush()

        logger.info(
            "review.flagged",
            extra={
                "event": "review.flagged",
                "review_id": review.id,
                "deal_id": deal_id,
                "reason": reason.value,
                "status": "created" if created else "refreshed",
            },
        )
        return review

    def resolve(
        self,
        review_id: int,
        company_id: int,
        contact_id: int,
        resolver_id: str,
        notes: str | None = None,
    ) -> bool:
        """Write the chosen links onto the deal and close the review.

        Returns ``False`` when the review is no longer pending.
        """
        review = self.session.get(ReviewRecord, review_id)
        if review is None:
            raise NotFoundError(f"Review {review_id} not found")
        if review.status != ReviewStatus.PENDING.value:
            return False
        if self.session.get(Company, company_id) is None:
            raise NotFoundError(f"Company {company_id} not found")
        if self.session.get(Contact, contact_id) is None:
            raise NotFoundError(f"Contact {contact_id} not found")

        deal = self.session.get(Deal, review.deal_id)
        deal.company_id = company_id
        deal.primary_contact_id = contact_id
        self._close(review, ReviewStatus.RESOLVED, resolver_id, notes)

        logger.info(
            "review.resolved",
            extra={
                "event": "review.resolved",
                "review_id": review.id,
                "deal_id": deal.id,
                "company_id": company_id,
                "contact_id": contact_id,
            },
        )
        return True

    def archive(self, review_id: int, resolver_id: str, notes: str | None = None) -> bool:
        """Dismiss a pending review without touching the deal."""
        review = self.session.get(ReviewRecord, review_id)
        if review is None:
            raise NotFoundError(f"Review {review_id} not found")
        if review.status != ReviewStatus.PENDING.value:
            return False
        self._close(review, ReviewStatus.ARCHIVED, resolver_id, notes)
        logger.info(
            "review.archived",
            extra={"event": "review.archived", "review_id": review.id, "deal_id": review.deal_id},
        )
        return True

    def close_pending_for_deal(self, deal_id: int, notes: str) -> ReviewRecord | None:
        """Mark the deal's open review resolved by the engine itself, if there is one."""
        review = self.get_pending_for_deal(deal_id)
        if review is None:
            return None
        self._close(review, ReviewStatus.RESOLVED, SYSTEM_ACTOR, notes)
        logger.info(
            "review.auto_closed",
            extra={"event": "review.auto_closed", "review_id": review.id, "deal_id": deal_id},
        )
        return review

    def pending(self) -> list[ReviewRecord]:
        return self.list_reviews(ReviewStatus.PENDING)

    def list_reviews(self, status: ReviewStatus | str | None = None) -> list[ReviewRecord]:
        stmt = select(ReviewRecord).order_by(ReviewRecord.created_at, ReviewRecord.id)
        if status is not None:
            try:
                status = ReviewStatus(status)
            except ValueError as exc:
                raise ValidationError(f"Unknown review status: {status!r}") from exc
            stmt = stmt.where(ReviewRecord.status == status.value)
        return list(self.session.scalars(stmt).all())

    def _close(self, review: ReviewRecord, status: ReviewStatus, resolver_id: str, notes: str | None) -> None:
        review.status = status.value
        review.resolved_by = resolver_id
        review.resolved_at = utcnow()
        review.resolution_notes = notes
        self.session.flush()
