"""Review queue endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from dealmatch.api.v1.deps import get_resolution_service
from dealmatch.core.enums import ReviewStatus
from dealmatch.resolution.review_queue import OriginalFields
from dealmatch.schemas.reviews import (
    ReviewArchiveRequest,
    ReviewArchiveResponse,
    ReviewFlagRequest,
    ReviewFlagResponse,
    ReviewResolveRequest,
    ReviewResolveResponse,
    ReviewResponse,
)
from dealmatch.services.resolution_service import ResolutionService

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.post("", response_model=ReviewFlagResponse, status_code=status.HTTP_201_CREATED)
def flag_for_review(
    payload: ReviewFlagRequest,
    service: ResolutionService = Depends(get_resolution_service),
) -> ReviewFlagResponse:
    review_id = service.flag_for_review(
        deal_id=payload.deal_id,
        reason=payload.reason,
        original=OriginalFields(
            company=payload.company,
            contact_name=payload.contact_name,
            contact_email=payload.contact_email,
        ),
        details=payload.details,
    )
    return ReviewFlagResponse(review_id=review_id)


@router.get("/pending", response_model=list[ReviewResponse])
def pending_reviews(service: ResolutionService = Depends(get_resolution_service)) -> list[ReviewResponse]:
    return [ReviewResponse.model_validate(review) for review in service.get_pending_reviews()]


@router.get("", response_model=list[ReviewResponse])
def list_reviews(
    review_status: ReviewStatus | None = Query(default=None, alias="status"),
    service: ResolutionService = Depends(get_resolution_service),
) -> list[ReviewResponse]:
    return [ReviewResponse.model_validate(review) for review in service.list_reviews(review_status)]


@router.post("/{review_id}/resolve", response_model=ReviewResolveResponse)
def resolve_review(
    review_id: int,
    payload: ReviewResolveRequest,
    service: ResolutionService = Depends(get_resolution_service),
) -> ReviewResolveResponse:
    resolved = service.resolve_review(
        review_id=review_id,
        company_id=payload.company_id,
        contact_id=payload.contact_id,
        resolver_id=payload.resolver_id,
        notes=payload.notes,
    )
    return ReviewResolveResponse(resolved=resolved)


@router.post("/{review_id}/archive", response_model=ReviewArchiveResponse)
def archive_review(
    review_id: int,
    payload: ReviewArchiveRequest,
    service: ResolutionService = Depends(get_resolution_service),
) -> ReviewArchiveResponse:
    archived = service.archive_review(review_id=review_id, resolver_id=payload.resolver_id, notes=payload.notes)
    return ReviewArchiveResponse(archived=archived)
