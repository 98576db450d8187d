"""SQLAlchemy model package for the resolution schema."""

from dealmatch.models.audit import EntityAudit, ResolutionRun
from dealmatch.models.base import Base
from dealmatch.models.company import Company
from dealmatch.models.contact import Contact
from dealmatch.models.deal import Deal
from dealmatch.models.review import ReviewRecord

__all__ = [
    "Base",
    "Company",
    "Contact",
    "Deal",
    "EntityAudit",
    "ResolutionRun",
    "ReviewRecord",
]

# Registers the audit listeners on import.
from dealmatch.models import listeners  # noqa: E402,F401
