"""Deal model module."""

from __future__ import annotations

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealmatch.models.base import Base, OwnedMixin, TimestampMixin


class Deal(Base, TimestampMixin, OwnedMixin):
    __tablename__ = "deals"
    __table_args__ = (
        Index("idx_deals_company_id", "company_id"),
        Index("idx_deals_primary_contact_id", "primary_contact_id"),
        Index("idx_deals_created_at", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str | None] = mapped_column(String(255))
    value: Mapped[float | None] = mapped_column(Numeric(12, 2))

    # Legacy free-text fields.
    company: Mapped[str | None] = mapped_column(String(255))
    contact_name: Mapped[str | None] = mapped_column(String(255))
    contact_email: Mapped[str | None] = mapped_column(String(320))

    company_id: Mapped[int | None] = mapped_column(ForeignKey("companies.id", ondelete="SET NULL"), nullable=True)
    primary_contact_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True)

    company_ref = relationship("Company")
    primary_contact = relationship("Contact")

    @property
    def is_resolved(self) -> bool:
        return self.company_id is not None and self.primary_contact_id is not None
