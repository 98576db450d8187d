"""Pydantic schema package for API contracts."""

from dealmatch.schemas.common import ErrorEnvelope
from dealmatch.schemas.resolution import BatchRunRequest, BatchRunResponse, DealResolutionResponse
from dealmatch.schemas.reviews import (
    ReviewArchiveRequest,
    ReviewArchiveResponse,
    ReviewFlagRequest,
    ReviewFlagResponse,
    ReviewResolveRequest,
    ReviewResolveResponse,
    ReviewResponse,
)

__all__ = [
    "BatchRunRequest",
    "BatchRunResponse",
    "DealResolutionResponse",
    "ErrorEnvelope",
    "ReviewArchiveRequest",
    "ReviewArchiveResponse",
    "ReviewFlagRequest",
    "ReviewFlagResponse",
    "ReviewResolveRequest",
    "ReviewResolveResponse",
    "ReviewResponse",
]
