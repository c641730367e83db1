"""
Tubely API v1 router aggregator.

Router Structure:
    - /videos: video records and media uploads
    - /thumbnails: in-memory thumbnail delivery
"""

from fastapi import APIRouter

from tubely.api.v1.videos import router as videos_router


api_router = APIRouter()
api_router.include_router(videos_router)

__all__ = ["api_router"]
