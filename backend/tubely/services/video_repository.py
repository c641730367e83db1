"""
MongoDB-backed store for video records.

Driver errors are converted to RecordReadError / RecordWriteError so route
handlers only deal with the pipeline error taxonomy.
"""

import logging

from datetime import UTC, datetime
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from tubely.core.exceptions import RecordReadError, RecordWriteError
from tubely.models.video import Video


logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100


class VideoRepository:
    """
    Example:
        ```python
        repo = VideoRepository(get_db_client().get_videos_collection())
        video = await repo.get_video(video_id)
        ```
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get_video(self, video_id: UUID) -> Video | None:
        """
        Fetch a record by ID.

        Returns:
            The Video, or None if there is no such record.

        Raises:
            RecordReadError: If the query fails.
        """
        try:
            document = await self.collection.find_one({"_id": str(video_id)})
        except PyMongoError as e:
            logger.exception("Failed to read video %s", video_id)
            raise RecordReadError() from e

        if document is None:
            return None
        return Video.from_document(document)

    async def create_video(self, video: Video) -> Video:
        try:
            await self.collection.insert_one(video.to_document())
        except PyMongoError as e:
            logger.exception("Failed to create video %s", video.id)
            raise RecordWriteError("Unable to create video") from e

        logger.info("Created video record %s for user %s", video.id, video.user_id)
        return video

    async def update_video(self, video: Video) -> Video:
        """
        Persist the media URLs of an existing record.

        Only thumbnail_url, video_url and updated_at are written; the filter
        includes user_id so a record can never change owner through here.

        Returns:
            The record as stored, with updated_at refreshed.

        Raises:
            RecordWriteError: If the write fails or matches no record.
        """
        updated = video.model_copy(update={"updated_at": datetime.now(UTC)})
        try:
            result = await self.collection.update_one(
                {"_id": str(video.id), "user_id": str(video.user_id)},
                {
                    "$set": {
                        "thumbnail_url": updated.thumbnail_url,
                        "video_url": updated.video_url,
                        "updated_at": updated.updated_at,
                    }
                },
            )
        except PyMongoError as e:
            logger.exception("Failed to update video %s", video.id)
            raise RecordWriteError() from e

        if result.matched_count == 0:
            logger.error("Update matched no record for video %s", video.id)
            raise RecordWriteError()

        return updated

    async def list_videos_for_user(
        self, user_id: UUID, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[Video]:
        """Newest first."""
        try:
            cursor = (
                self.collection.find({"user_id": str(user_id)})
                .sort("created_at", DESCENDING)
                .limit(limit)
            )
            documents = await cursor.to_list(length=limit)
        except PyMongoError as e:
            logger.exception("Failed to list videos for user %s", user_id)
            raise RecordReadError("Unable to list videos") from e

        return [Video.from_document(document) for document in documents]
