"""
Tubely Ingestion Service

Runs an upload through the pipeline once the caller has been authenticated:

    Authorizing -> Ingesting -> Validating -> [Processing] -> Probing
        -> KeyDeriving -> Publishing -> RecordUpdating -> Resolved

Every failure is terminal for the request; nothing is retried. Cleanup only
touches what the request already created:

- staged and remuxed temporary files are deleted on every exit path
- a thumbnail written to local disk or memory is rolled back when the record
  update fails, so no later read can see it

The record is never updated unless publishing succeeded.
"""

import logging

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from uuid import UUID

import aiofiles

from starlette.datastructures import UploadFile

from tubely.config import THUMBNAIL_STORAGE_LOCAL, THUMBNAIL_STORAGE_MEMORY, THUMBNAIL_STORAGE_S3
from tubely.core.exceptions import Forbidden, RecordWriteError, StorageIOError, VideoNotFound
from tubely.models.video import ThumbnailRecord, Video
from tubely.services.ingest import stage_upload
from tubely.services.keys import (
    derive_remote_thumbnail_key,
    derive_thumbnail_key,
    derive_video_key,
)
from tubely.services.media_types import validate_thumbnail_media_type, validate_video_media_type
from tubely.services.probe import VideoProbe
from tubely.services.publisher import LocalAssetPublisher, ObjectStorePublisher
from tubely.services.thumbnail_cache import ThumbnailCache
from tubely.services.urls import AccessURLResolver
from tubely.services.video_processing import FastStartProcessor
from tubely.services.video_repository import VideoRepository
from tubely.utils.logger import ContextLoggerAdapter, add_log_context


logger = logging.getLogger(__name__)


class IngestionState(str, Enum):
    AUTHORIZING = "authorizing"
    INGESTING = "ingesting"
    VALIDATING = "validating"
    PROCESSING = "processing"
    PROBING = "probing"
    KEY_DERIVING = "key_deriving"
    PUBLISHING = "publishing"
    RECORD_UPDATING = "record_updating"
    RESOLVED = "resolved"


def _enter(log: ContextLoggerAdapter, state: IngestionState, **fields: object) -> None:
    log.info("Ingestion state: %s", state.value, extra={"state": state.value, **fields})


class IngestionService:
    """
    Orchestrates video and thumbnail uploads for a single video record.

    Example:
        ```python
        video = await service.authorize(video_id, user_id)
        part = await read_upload_part(request, "video")
        resolved = await service.ingest_video(video, part)
        ```
    """

    def __init__(
        self,
        repository: VideoRepository,
        *,
        probe: VideoProbe,
        publisher: ObjectStorePublisher,
        resolver: AccessURLResolver,
        processor: FastStartProcessor | None = None,
        local_publisher: LocalAssetPublisher | None = None,
        thumbnail_cache: ThumbnailCache | None = None,
        thumbnail_storage: str = THUMBNAIL_STORAGE_S3,
        temp_dir: str | None = None,
    ) -> None:
        if thumbnail_storage == THUMBNAIL_STORAGE_LOCAL and local_publisher is None:
            raise ValueError("local thumbnail storage requires a LocalAssetPublisher")
        if thumbnail_storage == THUMBNAIL_STORAGE_MEMORY and thumbnail_cache is None:
            raise ValueError("memory thumbnail storage requires a ThumbnailCache")

        self.repository = repository
        self.probe = probe
        self.publisher = publisher
        self.resolver = resolver
        self.processor = processor
        self.local_publisher = local_publisher
        self.thumbnail_cache = thumbnail_cache
        self.thumbnail_storage = thumbnail_storage
        self.temp_dir = temp_dir

    async def authorize(self, video_id: UUID, user_id: UUID) -> Video:
        """
        Load the record and check the caller owns it.

        Must run before any byte of the upload body is read.

        Raises:
            RecordReadError: If the lookup fails.
            VideoNotFound: If there is no such record.
            Forbidden: If the caller is not the owner.
        """
        log = add_log_context(logger, video_id=str(video_id), user_id=str(user_id))
        _enter(log, IngestionState.AUTHORIZING)

        video = await self.repository.get_video(video_id)
        if video is None:
            raise VideoNotFound()
        if not video.is_owned_by(user_id):
            log.warning("Upload rejected: caller does not own video")
            raise Forbidden()
        return video

    @asynccontextmanager
    async def _playable(self, path: Path, log: ContextLoggerAdapter) -> AsyncIterator[Path]:
        if self.processor is None:
            yield path
            return

        _enter(log, IngestionState.PROCESSING)
        async with self.processor.process(path) as processed:
            yield processed

    async def ingest_video(self, video: Video, part: UploadFile) -> Video:
        """
        Validate, remux, probe and publish a video, then point the record at it.

        Returns:
            The updated record with its URLs resolved for the response.
        """
        log = add_log_context(logger, video_id=str(video.id), user_id=str(video.user_id))

        _enter(log, IngestionState.VALIDATING)
        media_type = validate_video_media_type(part.content_type)

        _enter(log, IngestionState.INGESTING)
        async with stage_upload(part, self.temp_dir, suffix=".mp4") as upload:
            log.debug("Staged video upload", extra={"size": upload.size})

            async with self._playable(upload.path, log) as source:
                _enter(log, IngestionState.PROBING)
                orientation = await self.probe.get_orientation(source)

                _enter(log, IngestionState.KEY_DERIVING, orientation=orientation.value)
                key = derive_video_key(media_type, orientation)

                _enter(log, IngestionState.PUBLISHING, key=key)
                stored = await self.publisher.publish(key, source, media_type)

        _enter(log, IngestionState.RECORD_UPDATING)
        updated = await self.repository.update_video(
            video.model_copy(update={"video_url": self.resolver.reference_for(stored)})
        )

        resolved = await self.resolver.resolve(updated)
        _enter(log, IngestionState.RESOLVED)
        return resolved

    async def ingest_thumbnail(self, video: Video, part: UploadFile) -> Video:
        """
        Store a thumbnail using the configured strategy and update the record.

        Returns:
            The updated record with its URLs resolved for the response.
        """
        log = add_log_context(
            logger,
            video_id=str(video.id),
            user_id=str(video.user_id),
            thumbnail_storage=self.thumbnail_storage,
        )

        _enter(log, IngestionState.VALIDATING)
        media_type = validate_thumbnail_media_type(part.content_type)

        _enter(log, IngestionState.INGESTING)
        async with stage_upload(part, self.temp_dir) as upload:
            log.debug("Staged thumbnail upload", extra={"size": upload.size})

            if self.thumbnail_storage == THUMBNAIL_STORAGE_MEMORY:
                updated = await self._store_thumbnail_in_memory(video, upload.path, media_type, log)
            elif self.thumbnail_storage == THUMBNAIL_STORAGE_LOCAL:
                updated = await self._store_thumbnail_locally(video, upload.path, media_type, log)
            else:
                updated = await self._publish_thumbnail(video, upload.path, media_type, log)

        resolved = await self.resolver.resolve(updated)
        _enter(log, IngestionState.RESOLVED)
        return resolved

    async def _publish_thumbnail(
        self, video: Video, path: Path, media_type: str, log: ContextLoggerAdapter
    ) -> Video:
        _enter(log, IngestionState.KEY_DERIVING)
        key = derive_remote_thumbnail_key(media_type)

        _enter(log, IngestionState.PUBLISHING, key=key)
        stored = await self.publisher.publish(key, path, media_type)

        _enter(log, IngestionState.RECORD_UPDATING)
        try:
            return await self.repository.update_video(
                video.model_copy(update={"thumbnail_url": self.resolver.reference_for(stored)})
            )
        except RecordWriteError:
            log.error("Record update failed; published thumbnail is unreferenced", extra={"key": key})
            raise

    async def _store_thumbnail_locally(
        self, video: Video, path: Path, media_type: str, log: ContextLoggerAdapter
    ) -> Video:
        _enter(log, IngestionState.KEY_DERIVING)
        key = derive_thumbnail_key(video.id, media_type)

        _enter(log, IngestionState.PUBLISHING, key=key)
        # Re-uploads reuse the key; the live file is kept aside until the record is updated
        backup = self.local_publisher.set_aside(key)
        try:
            await self.local_publisher.publish(key, path)
        except StorageIOError:
            self.local_publisher.restore(key, backup)
            raise

        _enter(log, IngestionState.RECORD_UPDATING)
        try:
            updated = await self.repository.update_video(
                video.model_copy(update={"thumbnail_url": self.resolver.local_asset_url(key)})
            )
        except RecordWriteError:
            log.warning("Record update failed; restoring previous local thumbnail", extra={"key": key})
            self.local_publisher.restore(key, backup)
            raise

        self.local_publisher.discard(backup)
        return updated

    async def _store_thumbnail_in_memory(
        self, video: Video, path: Path, media_type: str, log: ContextLoggerAdapter
    ) -> Video:
        try:
            async with aiofiles.open(path, "rb") as staged:
                data = await staged.read()
        except OSError as e:
            log.exception("Unable to read staged thumbnail")
            raise StorageIOError("Unable to read staged thumbnail") from e

        _enter(log, IngestionState.PUBLISHING)
        previous = self.thumbnail_cache.put(video.id, ThumbnailRecord(data=data, media_type=media_type))

        _enter(log, IngestionState.RECORD_UPDATING)
        try:
            return await self.repository.update_video(
                video.model_copy(
                    update={"thumbnail_url": self.resolver.memory_thumbnail_url(video.id)}
                )
            )
        except RecordWriteError:
            log.warning("Record update failed; rolling back cached thumbnail")
            self.thumbnail_cache.restore(video.id, previous)
            raise
