"""Pre-flight checks and data-quality counters for resolution runs."""

from __future__ import annotations

from sqlalchemy import func, inspect, select
from sqlalchemy.orm import Session

from dealmatch.core.enums import ReviewStatus
from dealmatch.core.exceptions import ResolutionSetupError
from dealmatch.models import Company, Contact, Deal, ReviewRecord

REQUIRED_TABLES = (
    "companies",
    "contacts",
    "deals",
    "review_records",
    "entity_audit",
    "resolution_runs",
)

# (table, unique key) pairs the race handling depends on.
REQUIRED_UNIQUE_KEYS = (
    ("companies", ("domain",)),
    ("contacts", ("email",)),
)


def _has_unique_key(inspector, table: str, columns: tuple[str, ...]) -> bool:
    if any(tuple(c["column_names"]) == columns for c in inspector.get_unique_constraints(table)):
        return True
    return any(
        index.get("unique") and tuple(index["column_names"]) == columns for index in inspector.get_indexes(table)
    )


def preflight(session: Session) -> None:
    """Raise ``ResolutionSetupError`` unless the schema a run relies on is in place."""
    inspector = inspect(session.connection())
    existing = set(inspector.get_table_names())
    missing = [table for table in REQUIRED_TABLES if table not in existing]
    if missing:
        raise ResolutionSetupError(f"Missing required tables: {', '.join(missing)}")

    for table, columns in REQUIRED_UNIQUE_KEYS:
        if not _has_unique_key(inspector, table, columns):
            raise ResolutionSetupError(f"Missing unique key on {table}({', '.join(columns)})")


def _count(session: Session, stmt) -> int:
    return int(session.scalar(stmt) or 0)


def data_quality_report(session: Session) -> dict[str, int]:
    """Counts that show how much of the dataset is still unresolved."""
    deals_total = _count(session, select(func.count(Deal.id)))
    return {
        "deals_total": deals_total,
        "deals_without_company": _count(session, select(func.count(Deal.id)).where(Deal.company_id.is_(None))),
        "deals_without_contact": _count(
            session, select(func.count(Deal.id)).where(Deal.primary_contact_id.is_(None))
        ),
        "pending_reviews": _count(
            session,
            select(func.count(ReviewRecord.id)).where(ReviewRecord.status == ReviewStatus.PENDING.value),
        ),
        "companies_total": _count(session, select(func.count(Company.id))),
        "companies_without_domain": _count(
            session, select(func.count(Company.id)).where(Company.domain.is_(None))
        ),
        "contacts_total": _count(session, select(func.count(Contact.id))),
        "contacts_without_company": _count(
            session, select(func.count(Contact.id)).where(Contact.company_id.is_(None))
        ),
    }
