"""Batch run and data-quality endpoints for API v1."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dealmatch.api.v1.deps import get_resolution_service
from dealmatch.schemas.resolution import BatchRunRequest, BatchRunResponse
from dealmatch.services.resolution_service import ResolutionService

router = APIRouter(prefix="/resolution", tags=["resolution"])


@router.post("/batch", response_model=BatchRunResponse)
def run_batch(
    payload: BatchRunRequest,
    service: ResolutionService = Depends(get_resolution_service),
) -> BatchRunResponse:
    summary = service.run_batch(
        limit=payload.limit,
        min_created_at=payload.min_created_at,
        dry_run=payload.dry_run,
        maintenance=payload.maintenance,
    )
    return BatchRunResponse(**summary.as_dict())


@router.get("/data-quality")
def data_quality(service: ResolutionService = Depends(get_resolution_service)) -> dict[str, int]:
    return service.data_quality()
