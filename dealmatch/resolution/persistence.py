"""Shared write helpers for resolvers."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


def insert_or_fetch_winner(session: Session, entity: T, refetch: Callable[[], T | None]) -> tuple[T, bool]:
    """Insert ``entity`` inside a savepoint; on a uniqueness race return the row that won.

    Returns ``(row, created)``. If the conflicting row cannot be read back the
    ``IntegrityError`` is re-raised for the caller's failure boundary.
    """
    try:
        with session.begin_nested():
            session.add(entity)
            session.flush()
        return entity, True
    except IntegrityError:
        winner = refetch()
        if winner is None:
            raise
        logger.warning(
            "resolution.insert.race_lost",
            extra={"event": "resolution.insert.race_lost", "status": type(entity).__name__},
        )
        return winner, False


def clean_text(value: str | None) -> str | None:
    """Collapse whitespace; blank becomes ``None``."""
    if value is None:
        return None
    cleaned = " ".join(str(value).replace("\x00", "").split())
    return cleaned or None
