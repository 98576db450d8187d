"""Shared SQLAlchemy base and common mixins for resolution models."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp helper."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base class for the resolution schema."""


class TimestampMixin:
    """Standard created/updated fields for canonical entities."""

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


class OwnedMixin:
    """Owner (sales rep) of a business row; name-based blocking is scoped to it."""

    owner_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
