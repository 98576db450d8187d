"""Inline resolution for single records, run inside the caller's transaction."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from dealmatch.core.config import Config, get_config
from dealmatch.core.enums import ReviewReason
from dealmatch.core.exceptions import NotFoundError
from dealmatch.models import Deal
from dealmatch.resolution.name_matcher import NameMatcher
from dealmatch.resolution.pipeline import ResolutionPipeline, ResolutionResult
from dealmatch.resolution.review_queue import OriginalFields

logger = logging.getLogger(__name__)


class IncrementalResolver:
    """Same pipeline as the batch, without maintenance mode and without committing.

    The whole resolution runs in a SAVEPOINT of the caller's transaction. A
    uniqueness race that cannot be settled by re-reading the winner rolls the
    savepoint back and propagates, so the caller can retry.
    """

    def __init__(self, session: Session, config: Config | None = None, matcher: NameMatcher | None = None) -> None:
        config = config or get_config()
        self.session = session
        self.pipeline = ResolutionPipeline(
            session,
            matcher=matcher,
            threshold=config.RESOLUTION_FUZZY_THRESHOLD,
            uncertainty_floor=config.RESOLUTION_UNCERTAINTY_FLOOR,
        )

    def resolve_deal(self, deal_id: int, flag_on_failure: bool = True) -> ResolutionResult:
        deal = self.session.get(Deal, deal_id)
        if deal is None:
            raise NotFoundError(f"Deal {deal_id} not found")

        with self.session.begin_nested():
            result = self.pipeline.process(deal)

        if not result.success and flag_on_failure:
            self.pipeline.reviews.flag(
                deal.id,
                result.reason,
                OriginalFields.from_deal(deal),
                suggested_company_id=result.suggested_company_id,
                suggested_contact_id=result.suggested_contact_id,
                details=result.details,
            )
        logger.info(
            "resolution.incremental.deal",
            extra={
                "event": "resolution.incremental.deal",
                "deal_id": deal_id,
                "reason": result.reason.value if result.reason else None,
            },
        )
        return result

    def link_contact(
        self,
        email: str | None,
        name_hint: str | None = None,
        company_hint: str | None = None,
        owner_id: int | None = None,
    ) -> ResolutionResult:
        """Resolve a Company/Contact pair for a record that is not a deal, such as a calendar attendee."""
        with self.session.begin_nested():
            result = self.pipeline.resolve_fields(company_hint, name_hint, email, owner_id)
        if result.reason is ReviewReason.ENTITY_CREATION_FAILED:
            logger.warning(
                "resolution.incremental.link_failed",
                extra={"event": "resolution.incremental.link_failed", "reason": result.reason.value},
            )
        return result
