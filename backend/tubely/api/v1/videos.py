"""
Video API Endpoints for Tubely.

Endpoints:
- POST /videos - Create a draft video record owned by the caller
- GET /videos - List the caller's videos, newest first
- GET /videos/{video_id} - Fetch one of the caller's videos
- POST /videos/{video_id}/thumbnail - Upload a thumbnail (multipart field "thumbnail")
- POST /videos/{video_id}/video - Upload an MP4 video (multipart field "video")
- GET /thumbnails/{video_id} - Serve a thumbnail held in memory

Upload handlers take the raw Request instead of File() parameters. FastAPI
reads File() parameters before running dependencies, and ownership has to be
checked before any byte of the body is consumed.

Media URLs in every response are resolved: in signed mode they are presigned
URLs that expire after presigned_url_expiration_seconds.
"""

import logging

from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status

from tubely.api.deps import (
    get_ingestion_service,
    get_thumbnail_cache,
    get_url_resolver,
    get_video_repository,
    parse_video_id,
)
from tubely.core.auth import get_current_user_id
from tubely.core.exceptions import Forbidden, VideoNotFound
from tubely.models.video import Video, VideoCreate
from tubely.services.ingest import read_upload_part
from tubely.services.ingestion import IngestionService
from tubely.services.thumbnail_cache import ThumbnailCache
from tubely.services.urls import AccessURLResolver
from tubely.services.video_repository import VideoRepository


logger = logging.getLogger(__name__)

router = APIRouter(tags=["videos"])

THUMBNAIL_FIELD = "thumbnail"
VIDEO_FIELD = "video"
OPAQUE_MEDIA_TYPE = "application/octet-stream"


@router.post("/videos", response_model=Video, status_code=status.HTTP_201_CREATED)
async def create_video(
    body: VideoCreate,
    user_id: UUID = Depends(get_current_user_id),
    repository: VideoRepository = Depends(get_video_repository),
) -> Video:
    video = Video(user_id=user_id, title=body.title, description=body.description)
    return await repository.create_video(video)


@router.get("/videos", response_model=list[Video])
async def list_videos(
    user_id: UUID = Depends(get_current_user_id),
    repository: VideoRepository = Depends(get_video_repository),
    resolver: AccessURLResolver = Depends(get_url_resolver),
) -> list[Video]:
    videos = await repository.list_videos_for_user(user_id)
    return [await resolver.resolve(video) for video in videos]


@router.get("/videos/{video_id}", response_model=Video)
async def get_video(
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    repository: VideoRepository = Depends(get_video_repository),
    resolver: AccessURLResolver = Depends(get_url_resolver),
) -> Video:
    video = await repository.get_video(video_id)
    if video is None:
        raise VideoNotFound()
    if not video.is_owned_by(user_id):
        raise Forbidden()
    return await resolver.resolve(video)


@router.post("/videos/{video_id}/thumbnail", response_model=Video)
async def upload_thumbnail(
    request: Request,
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    service: IngestionService = Depends(get_ingestion_service),
) -> Video:
    """
    Upload a thumbnail for a video the caller owns.

    Any declared Content-Type is accepted; its subtype becomes the file
    extension. Where the bytes end up depends on the thumbnail_storage setting.
    """
    video = await service.authorize(video_id, user_id)

    part = await read_upload_part(request, THUMBNAIL_FIELD)
    try:
        return await service.ingest_thumbnail(video, part)
    finally:
        await part.close()


@router.post("/videos/{video_id}/video", response_model=Video)
async def upload_video(
    request: Request,
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    service: IngestionService = Depends(get_ingestion_service),
) -> Video:
    """
    Upload an MP4 for a video the caller owns.

    The file is remuxed for fast start, probed for orientation and published
    under "{orientation}/{random token}.mp4".
    """
    video = await service.authorize(video_id, user_id)

    part = await read_upload_part(request, VIDEO_FIELD)
    try:
        return await service.ingest_video(video, part)
    finally:
        await part.close()


@router.get("/thumbnails/{video_id}")
async def get_thumbnail(
    video_id: UUID = Depends(parse_video_id),
    cache: ThumbnailCache = Depends(get_thumbnail_cache),
) -> Response:
    """
    Serve a thumbnail stored in memory mode.

    The stored type was declared by the uploader; anything that is not an
    image is served as an opaque download.
    """
    record = cache.get(video_id)
    if record is None:
        raise VideoNotFound("Thumbnail not found")
    media_type = record.media_type if record.media_type.startswith("image/") else OPAQUE_MEDIA_TYPE
    return Response(
        content=record.data,
        media_type=media_type,
        headers={"X-Content-Type-Options": "nosniff"},
    )
