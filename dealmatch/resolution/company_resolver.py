"""Find-or-create of canonical companies from a domain and a free-text name."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dealmatch.models import Company
from dealmatch.resolution.domain_classifier import company_name_from_domain
from dealmatch.resolution.persistence import clean_text, insert_or_fetch_winner

logger = logging.getLogger(__name__)


class CompanyResolver:
    """Resolves exactly one canonical Company per (domain | owner + name).

    Domain matches always win over name matches. Personal domains are never
    used as a key and never written to ``companies.domain``; such records fall
    back to an owner-scoped, case-insensitive name lookup.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_domain(self, domain: str) -> Company | None:
        stmt = (
            select(Company)
            .where(func.lower(Company.domain) == domain.lower())
            .order_by(Company.created_at, Company.id)
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def find_by_name(self, name: str, owner_id: int | None) -> Company | None:
        owner_clause = Company.owner_id.is_(None) if owner_id is None else Company.owner_id == owner_id
        stmt = (
            select(Company)
            .where(func.lower(Company.name) == name.lower(), owner_clause)
            .order_by(Company.created_at, Company.id)
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def resolve(
        self,
        domain: str | None,
        is_personal: bool,
        company_name_hint: str | None,
        owner_id: int | None,
    ) -> Company | None:
        """Return the matching Company, creating one if needed.

        Returns ``None`` only when there is neither a usable domain nor a
        non-blank name hint.
        """
        blocking_domain = domain.lower() if domain and not is_personal else None
        name_hint = clean_text(company_name_hint)

        if blocking_domain:
            existing = self.find_by_domain(blocking_domain)
            if existing is not None:
                return existing
            company = Company(
                name=name_hint or company_name_from_domain(blocking_domain),
                domain=blocking_domain,
                owner_id=owner_id,
            )
            company, created = insert_or_fetch_winner(
                self.session, company, lambda: self.find_by_domain(blocking_domain)
            )
            if created:
                self._log_created(company)
            return company

        if not name_hint:
            return None

        existing = self.find_by_name(name_hint, owner_id)
        if existing is not None:
            return existing

        company = Company(name=name_hint, domain=None, owner_id=owner_id)
        with self.session.begin_nested():
            self.session.add(company)
            self.session.flush()
        self._log_created(company)
        return company

    def _log_created(self, company: Company) -> None:
        logger.info(
            "company.created",
            extra={"event": "company.created", "company_id": company.id},
        )
