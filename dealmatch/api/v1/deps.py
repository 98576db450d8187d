"""Shared FastAPI dependencies for API v1."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from dealmatch.database.db import get_db
from dealmatch.services.resolution_service import ResolutionService


def get_resolution_service(db: Session = Depends(get_db)) -> Generator[ResolutionService, None, None]:
    with ResolutionService(db) as service:
        yield service
