"""Per-record resolution pipeline: classify, resolve company, resolve contact."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from dealmatch.core.enums import ReviewReason
from dealmatch.models import Company, Contact, Deal
from dealmatch.resolution.company_resolver import CompanyResolver
from dealmatch.resolution.contact_resolver import ContactOutcome, ContactResolver
from dealmatch.resolution.domain_classifier import classify_email
from dealmatch.resolution.name_matcher import DEFAULT_THRESHOLD, NameMatcher
from dealmatch.resolution.persistence import clean_text
from dealmatch.resolution.review_queue import ReviewQueue

logger = logging.getLogger(__name__)

AUTO_CLOSE_NOTE = "Resolved automatically on a later resolution run."


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of one record: either resolved ids or a review reason."""

    deal_id: int | None = None
    company_id: int | None = None
    contact_id: int | None = None
    reason: ReviewReason | None = None
    details: str | None = None
    suggested_company_id: int | None = None
    suggested_contact_id: int | None = None

    @property
    def success(self) -> bool:
        return self.reason is None

    @classmethod
    def resolved(cls, company: Company, contact: Contact, deal_id: int | None = None) -> "ResolutionResult":
        return cls(deal_id=deal_id, company_id=company.id, contact_id=contact.id)

    @classmethod
    def flagged(cls, reason: ReviewReason, details: str | None = None, **suggested) -> "ResolutionResult":
        return cls(reason=reason, details=details, **suggested)

    def for_deal(self, deal_id: int) -> "ResolutionResult":
        return ResolutionResult(
            deal_id=deal_id,
            company_id=self.company_id,
            contact_id=self.contact_id,
            reason=self.reason,
            details=self.details,
            suggested_company_id=self.suggested_company_id,
            suggested_contact_id=self.suggested_contact_id,
        )

    def as_dict(self) -> dict:
        return {
            "success": self.success,
            "deal_id": self.deal_id,
            "company_id": self.company_id,
            "contact_id": self.contact_id,
            "reason": self.reason.value if self.reason else None,
            "details": self.details,
        }


class ResolutionPipeline:
    """Runs the resolvers for one record on a caller-owned session.

    Anticipated outcomes come back as a ``ResolutionResult``. Database errors
    are left to propagate so the caller's failure boundary can roll back and
    turn them into an ``entity_creation_failed`` review.
    """

    def __init__(
        self,
        session: Session,
        matcher: NameMatcher | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        uncertainty_floor: float | None = None,
    ) -> None:
        self.session = session
        self.companies = CompanyResolver(session)
        self.contacts = ContactResolver(
            session,
            matcher=matcher,
            threshold=threshold,
            uncertainty_floor=uncertainty_floor,
        )
        self.reviews = ReviewQueue(session)

    def resolve_fields(
        self,
        company_hint: str | None,
        contact_name: str | None,
        contact_email: str | None,
        owner_id: int | None,
    ) -> ResolutionResult:
        email = clean_text(contact_email)
        if email is None:
            return ResolutionResult.flagged(ReviewReason.NO_EMAIL, "Contact email is missing.")

        classification = classify_email(email)
        if not classification.is_valid:
            return ResolutionResult.flagged(ReviewReason.INVALID_EMAIL, f"Invalid contact email: {email}")

        company = self.companies.resolve(
            classification.domain,
            classification.is_personal,
            company_hint,
            owner_id,
        )
        if company is None:
            return ResolutionResult.flagged(
                ReviewReason.ENTITY_CREATION_FAILED,
                "No company domain or company name to resolve a company from.",
            )

        match = self.contacts.resolve(classification.email, contact_name, company, owner_id)
        if match.outcome is ContactOutcome.UNCERTAIN:
            return ResolutionResult.flagged(
                ReviewReason.FUZZY_MATCH_UNCERTAINTY,
                f"Closest contact scored {match.score:.2f}, below the match threshold.",
                suggested_company_id=company.id,
                suggested_contact_id=match.candidate.id,
            )
        return ResolutionResult.resolved(company, match.contact)

    def process(self, deal: Deal) -> ResolutionResult:
        """Resolve ``deal`` and link it on success; an already linked deal is left as is."""
        if deal.is_resolved:
            return ResolutionResult(deal_id=deal.id, company_id=deal.company_id, contact_id=deal.primary_contact_id)

        result = self.resolve_fields(deal.company, deal.contact_name, deal.contact_email, deal.owner_id).for_deal(
            deal.id
        )
        if not result.success:
            return result

        deal.company_id = result.company_id
        deal.primary_contact_id = result.contact_id
        self.session.flush()
        self.reviews.close_pending_for_deal(deal.id, AUTO_CLOSE_NOTE)
        logger.info(
            "deal.resolved",
            extra={
                "event": "deal.resolved",
                "deal_id": deal.id,
                "company_id": result.company_id,
                "contact_id": result.contact_id,
            },
        )
        return result
