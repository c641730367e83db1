"""
FastAPI dependencies that assemble pipeline components per request.

Long-lived clients (storage, thumbnail cache, database) are created in the
application lifespan and held on app.state or in tubely.core.database; these
functions only wire them together with the current Settings. Tests replace
them through app.dependency_overrides.
"""

import logging

from uuid import UUID

from fastapi import Depends, Request

from tubely.config import THUMBNAIL_STORAGE_LOCAL, Settings, get_settings
from tubely.core.database import get_db_client
from tubely.core.exceptions import InvalidIdentifier, RecordReadError
from tubely.core.storage import StorageClient
from tubely.services.ingestion import IngestionService
from tubely.services.probe import VideoProbe
from tubely.services.publisher import LocalAssetPublisher, ObjectStorePublisher
from tubely.services.thumbnail_cache import ThumbnailCache
from tubely.services.urls import AccessURLResolver
from tubely.services.video_processing import FastStartProcessor
from tubely.services.video_repository import VideoRepository


logger = logging.getLogger(__name__)


def parse_video_id(video_id: str) -> UUID:
    """Path parameter parser; malformed IDs are a 400, not FastAPI's 422."""
    try:
        return UUID(video_id)
    except ValueError as e:
        raise InvalidIdentifier() from e


def get_video_repository() -> VideoRepository:
    try:
        collection = get_db_client().get_videos_collection()
    except RuntimeError as e:
        logger.error("Metadata store unavailable: %s", e)
        raise RecordReadError("Metadata store unavailable") from e
    return VideoRepository(collection)


def get_storage_client(request: Request) -> StorageClient:
    return request.app.state.storage


def get_thumbnail_cache(request: Request) -> ThumbnailCache:
    return request.app.state.thumbnail_cache


def get_url_resolver(
    storage: StorageClient = Depends(get_storage_client),
    settings: Settings = Depends(get_settings),
) -> AccessURLResolver:
    return AccessURLResolver.from_settings(storage, settings)


def get_ingestion_service(
    repository: VideoRepository = Depends(get_video_repository),
    storage: StorageClient = Depends(get_storage_client),
    resolver: AccessURLResolver = Depends(get_url_resolver),
    thumbnail_cache: ThumbnailCache = Depends(get_thumbnail_cache),
    settings: Settings = Depends(get_settings),
) -> IngestionService:
    processor = None
    if settings.enable_fast_start:
        processor = FastStartProcessor(
            settings.ffmpeg_path,
            timeout=settings.processing_timeout_seconds,
            temp_dir=settings.temp_dir,
        )

    local_publisher = None
    if settings.thumbnail_storage == THUMBNAIL_STORAGE_LOCAL:
        local_publisher = LocalAssetPublisher(settings.assets_root)

    return IngestionService(
        repository,
        probe=VideoProbe(settings.ffprobe_path, timeout=settings.probe_timeout_seconds),
        publisher=ObjectStorePublisher(storage, settings.s3_bucket_name),
        resolver=resolver,
        processor=processor,
        local_publisher=local_publisher,
        thumbnail_cache=thumbnail_cache,
        thumbnail_storage=settings.thumbnail_storage,
        temp_dir=settings.temp_dir,
    )
