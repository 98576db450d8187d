"""Review queue model module."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from dealmatch.core.enums import ReviewStatus
from dealmatch.models.base import Base, TimestampMixin

PENDING_ONLY = text("status = 'pending'")


class ReviewRecord(Base, TimestampMixin):
    __tablename__ = "review_records"
    __table_args__ = (
        # One open review per deal; flagging is an upsert against this index.
        Index(
            "uq_review_records_pending_deal",
            "deal_id",
            unique=True,
            sqlite_where=PENDING_ONLY,
            postgresql_where=PENDING_ONLY,
        ),
        Index("idx_review_records_status", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    deal_id: Mapped[int] = mapped_column(ForeignKey("deals.id", ondelete="CASCADE"), nullable=False)
    reason: Mapped[str] = mapped_column(String(40), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ReviewStatus.PENDING.value)

    original_company: Mapped[str | None] = mapped_column(String(255))
    original_contact_name: Mapped[str | None] = mapped_column(String(255))
    original_contact_email: Mapped[str | None] = mapped_column(String(320))
    suggested_company_id: Mapped[int | None] = mapped_column(ForeignKey("companies.id", ondelete="SET NULL"))
    suggested_contact_id: Mapped[int | None] = mapped_column(ForeignKey("contacts.id", ondelete="SET NULL"))
    details: Mapped[str | None] = mapped_column(Text)

    resolved_by: Mapped[str | None] = mapped_column(String(255))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolution_notes: Mapped[str | None] = mapped_column(Text)

    deal = relationship("Deal")
