"""Resolution run schema module."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class DealResolutionResponse(BaseModel):
    success: bool
    deal_id: int | None = None
    company_id: int | None = None
    contact_id: int | None = None
    reason: str | None = None
    details: str | None = None


class BatchRunRequest(BaseModel):
    limit: int | None = Field(default=None, ge=1, le=100000)
    min_created_at: datetime | None = None
    dry_run: bool = False
    maintenance: bool = True


class BatchRunResponse(BaseModel):
    run_id: str
    dry_run: bool
    processed: int
    succeeded: int
    flagged: int
    errors: int
    quality_before: dict[str, int] = Field(default_factory=dict)
    quality_after: dict[str, int] = Field(default_factory=dict)
