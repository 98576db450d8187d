"""Review queue schema module."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from dealmatch.core.enums import ReviewReason


class ReviewFlagRequest(BaseModel):
    deal_id: int = Field(ge=1)
    reason: ReviewReason
    company: str | None = Field(default=None, max_length=255)
    contact_name: str | None = Field(default=None, max_length=255)
    contact_email: str | None = Field(default=None, max_length=320)
    details: str | None = Field(default=None, max_length=2000)


class ReviewFlagResponse(BaseModel):
    review_id: int


class ReviewResolveRequest(BaseModel):
    company_id: int = Field(ge=1)
    contact_id: int = Field(ge=1)
    resolver_id: str = Field(min_length=1, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)


class ReviewResolveResponse(BaseModel):
    resolved: bool


class ReviewArchiveRequest(BaseModel):
    resolver_id: str = Field(min_length=1, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)


class ReviewArchiveResponse(BaseModel):
    archived: bool


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    deal_id: int
    reason: str
    status: str
    original_company: str | None = None
    original_contact_name: str | None = None
    original_contact_email: str | None = None
    suggested_company_id: int | None = None
    suggested_contact_id: int | None = None
    details: str | None = None
    resolved_by: str | None = None
    resolved_at: datetime | None = None
    resolution_notes: str | None = None
    created_at: datetime
