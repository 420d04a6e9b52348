"""
Tubely API v1 Router Aggregator.

Router Structure:
    - /videos: Video records, video uploads and thumbnail uploads
"""

from fastapi import APIRouter

from tubely.api.v1.videos import router as videos_router


api_router = APIRouter()

api_router.include_router(videos_router, prefix="/videos", tags=["videos"])


__all__ = ["api_router"]
