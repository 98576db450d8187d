"""Single-deal resolution endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dealmatch.api.v1.deps import get_resolution_service
from dealmatch.schemas.resolution import DealResolutionResponse
from dealmatch.services.resolution_service import ResolutionService

router = APIRouter(prefix="/deals", tags=["deals"])


@router.post("/{deal_id}/resolve", response_model=DealResolutionResponse)
def resolve_deal(deal_id: int, service: ResolutionService = Depends(get_resolution_service)) -> DealResolutionResponse:
    result = service.resolve_deal(deal_id)
    return DealResolutionResponse(**result.as_dict())
