"""Company model module."""

from __future__ import annotations

from sqlalchemy import Index, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealmatch.models.base import Base, OwnedMixin, TimestampMixin


class Company(Base, TimestampMixin, OwnedMixin):
    __tablename__ = "companies"
    __table_args__ = (
        UniqueConstraint("domain", name="uq_companies_domain"),
        Index("idx_companies_owner_name", "owner_id", "name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    domain: Mapped[str | None] = mapped_column(String(255), nullable=True)

    contacts = relationship("Contact", back_populates="company")

    def __repr__(self) -> str:
        return f"<Company id={self.id} name={self.name!r} domain={self.domain!r}>"


# Case-insensitive guard for writers that skip lower-casing.
Index("uq_companies_domain_lower", func.lower(Company.domain), unique=True)
