"""Find, relocate or create the canonical Contact for an email within a Company."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dealmatch.core.enums import SYSTEM_ACTOR, AuditAction
from dealmatch.models import Company, Contact, EntityAudit
from dealmatch.resolution.domain_classifier import email_local_part, normalize_email
from dealmatch.resolution.name_matcher import DEFAULT_THRESHOLD, NameMatcher, get_default_matcher
from dealmatch.resolution.persistence import clean_text, insert_or_fetch_winner

logger = logging.getLogger(__name__)


class ContactOutcome(str, enum.Enum):
    EMAIL_IN_COMPANY = "email_in_company"
    RELOCATED = "relocated"
    FUZZY_MATCH = "fuzzy_match"
    CREATED = "created"
    UNCERTAIN = "uncertain"


@dataclass(frozen=True)
class ContactMatch:
    outcome: ContactOutcome
    contact: Contact | None = None
    score: float | None = None
    # Best candidate below the threshold; set only for UNCERTAIN.
    candidate: Contact | None = None


def split_name(name_hint: str | None, email: str) -> tuple[str, str | None]:
    """First token is the first name, the rest the last name; falls back to the email local-part."""
    cleaned = clean_text(name_hint)
    if not cleaned:
        return email_local_part(email), None
    first, _, rest = cleaned.partition(" ")
    return first, rest or None


class ContactResolver:
    """Resolves one Contact per email, scoped to the already-resolved Company.

    Order, first match wins:

    1. exact email inside the target company;
    2. exact email anywhere, which relocates that contact to the target company;
    3. fuzzy name match inside the target company only;
    4. a new contact, primary if it is the company's first.

    When ``uncertainty_floor`` is set, a best fuzzy candidate scoring in
    ``[uncertainty_floor, threshold)`` is reported as ``UNCERTAIN`` instead of
    creating a contact, so the caller can route it to review.
    """

    def __init__(
        self,
        session: Session,
        matcher: NameMatcher | None = None,
        threshold: float = DEFAULT_THRESHOLD,
        uncertainty_floor: float | None = None,
    ) -> None:
        self.session = session
        self.matcher = matcher or get_default_matcher()
        self.threshold = threshold
        self.uncertainty_floor = uncertainty_floor

    def find_by_email(self, email: str, company_id: int | None = None) -> Contact | None:
        stmt = select(Contact).where(func.lower(Contact.email) == email)
        if company_id is not None:
            stmt = stmt.where(Contact.company_id == company_id)
        stmt = stmt.order_by(Contact.created_at, Contact.id).limit(1)
        return self.session.scalars(stmt).first()

    def company_has_contacts(self, company_id: int, exclude_id: int | None = None) -> bool:
        stmt = select(Contact.id).where(Contact.company_id == company_id)
        if exclude_id is not None:
            stmt = stmt.where(Contact.id != exclude_id)
        return self.session.scalars(stmt.limit(1)).first() is not None

    def _earliest_contact(self, company_id: int, exclude_id: int) -> Contact | None:
        stmt = (
            select(Contact)
            .where(Contact.company_id == company_id, Contact.id != exclude_id)
            .order_by(Contact.created_at, Contact.id)
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def best_name_candidate(self, name_hint: str, company_id: int) -> tuple[Contact, float] | None:
        """Highest-scoring contact of the company; ties go to the earliest created."""
        contacts = self.session.scalars(
            select(Contact).where(Contact.company_id == company_id).order_by(Contact.created_at, Contact.id)
        ).all()
        best: tuple[Contact, float] | None = None
        for contact in contacts:
            score = self.matcher.similarity(name_hint, contact.full_name)
            # Strict comparison keeps the earliest contact on equal scores.
            if best is None or score > best[1]:
                best = (contact, score)
        return best

    def resolve(self, email: str, name_hint: str | None, company: Company, owner_id: int | None) -> ContactMatch:
        email = normalize_email(email)
        if not email:
            raise ValueError("ContactResolver.resolve requires an email.")

        existing = self.find_by_email(email, company_id=company.id)
        if existing is not None:
            return ContactMatch(ContactOutcome.EMAIL_IN_COMPANY, contact=existing)

        existing = self.find_by_email(email)
        if existing is not None:
            self.relocate(existing, company)
            return ContactMatch(ContactOutcome.RELOCATED, contact=existing)

        hint = clean_text(name_hint)
        if hint:
            best = self.best_name_candidate(hint, company.id)
            if best is not None:
                candidate, score = best
                if score >= self.threshold:
                    candidate.email = email
                    self.session.flush()
                    logger.info(
                        "contact.fuzzy_matched",
                        extra={"event": "contact.fuzzy_matched", "contact_id": candidate.id, "company_id": company.id},
                    )
                    return ContactMatch(ContactOutcome.FUZZY_MATCH, contact=candidate, score=score)
                if self.uncertainty_floor is not None and score >= self.uncertainty_floor:
                    return ContactMatch(ContactOutcome.UNCERTAIN, score=score, candidate=candidate)

        return self._create(email, hint, company, owner_id)

    def relocate(self, contact: Contact, company: Company) -> None:
        """Move ``contact`` to ``company`` in place and record an audit entry.

        When the contact was its old company's primary, the earliest remaining
        contact there takes over the flag.
        """
        previous_company_id = contact.company_id
        was_primary = bool(contact.is_primary)
        contact.company_id = company.id
        contact.is_primary = not self.company_has_contacts(company.id, exclude_id=contact.id)
        changes = {
            "company_id": [previous_company_id, company.id],
            "is_primary": [was_primary, contact.is_primary],
        }
        if was_primary and previous_company_id is not None:
            successor = self._earliest_contact(previous_company_id, exclude_id=contact.id)
            if successor is not None:
                successor.is_primary = True
                changes["primary_handed_to"] = successor.id
        self.session.add(
            EntityAudit(
                entity_type="contact",
                entity_id=contact.id,
                action=AuditAction.RELOCATED.value,
                actor=SYSTEM_ACTOR,
                changes=changes,
            )
        )
        self.session.flush()
        logger.info(
            "contact.relocated",
            extra={"event": "contact.relocated", "contact_id": contact.id, "company_id": company.id},
        )

    def _create(self, email: str, name_hint: str | None, company: Company, owner_id: int | None) -> ContactMatch:
        first_name, last_name = split_name(name_hint, email)
        contact = Contact(
            first_name=first_name,
            last_name=last_name,
            email=email,
            company_id=company.id,
            owner_id=owner_id,
            is_primary=not self.company_has_contacts(company.id),
        )
        contact, created = insert_or_fetch_winner(self.session, contact, lambda: self.find_by_email(email))
        if not created:
            if contact.company_id != company.id:
                self.relocate(contact, company)
                return ContactMatch(ContactOutcome.RELOCATED, contact=contact)
            return ContactMatch(ContactOutcome.EMAIL_IN_COMPANY, contact=contact)

        logger.info(
            "contact.created",
            extra={"event": "contact.created", "contact_id": contact.id, "company_id": company.id},
        )
        return ContactMatch(ContactOutcome.CREATED, contact=contact)
