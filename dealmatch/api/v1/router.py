"""Root API router for v1 endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from dealmatch.api.v1 import deals, health, resolution, reviews
from dealmatch.core.config import get_config

api_router = APIRouter(prefix=get_config().API_PREFIX)
api_router.include_router(health.router)
api_router.include_router(deals.router)
api_router.include_router(reviews.router)
api_router.include_router(resolution.router)


def get_api_router() -> APIRouter:
    return api_router
