"""
Access URL resolution for stored media.

Two modes:

- static: the record stores "{public_base_url}/{key}" and is returned as-is.
- signed: the record stores a "{bucket},{key}" reference. Every read swaps it
  for a presigned GET URL, so the URL in a response expires while the stored
  reference does not. Two reads return different URL strings for the same
  object.
"""

import asyncio
import logging

from uuid import UUID

from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings
from tubely.core.exceptions import SigningFailed
from tubely.core.storage import StorageClient
from tubely.models.video import StoredObject, Video


logger = logging.getLogger(__name__)

REFERENCE_SEPARATOR = ","


def parse_reference(value: str | None) -> StoredObject | None:
    """
    Parse a "bucket,key" reference.

    Returns None for anything else, including full URLs: bucket names cannot
    contain "/" or ":".
    """
    if not value:
        return None
    bucket, sep, key = value.partition(REFERENCE_SEPARATOR)
    if not sep or not bucket or not key or "/" in bucket or ":" in bucket:
        return None
    return StoredObject(bucket=bucket, key=key)


class AccessURLResolver:
    """
    Turns stored object locations into URLs a client can fetch.

    Example:
        ```python
        resolver = AccessURLResolver.from_settings(storage, settings)
        video.video_url = resolver.reference_for(stored)
        response_video = await resolver.resolve(video)
        ```
    """

    def __init__(
        self,
        storage: StorageClient | None,
        *,
        signed: bool,
        public_base_url: str,
        expires_in: int = 300,
        base_url: str = "http://localhost:8091",
    ) -> None:
        self.storage = storage
        self.signed = signed
        self.public_base_url = public_base_url.rstrip("/")
        self.expires_in = expires_in
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, storage: StorageClient | None, settings: Settings) -> "AccessURLResolver":
        return cls(
            storage,
            signed=settings.is_signed_url_mode,
            public_base_url=settings.resolved_public_base_url,
            expires_in=settings.presigned_url_expiration_seconds,
            base_url=settings.base_url,
        )

    def reference_for(self, stored: StoredObject) -> str:
        """Value to persist in the record for an object in the store."""
        if self.signed:
            return f"{stored.bucket}{REFERENCE_SEPARATOR}{stored.key}"
        return f"{self.public_base_url}/{stored.key}"

    def local_asset_url(self, key: str) -> str:
        return f"{self.base_url}/assets/{key}"

    def memory_thumbnail_url(self, video_id: UUID) -> str:
        return f"{self.base_url}/api/thumbnails/{video_id}"

    async def presign(self, stored: StoredObject) -> str:
        """
        Raises:
            SigningFailed: If no storage client is configured or signing fails.
        """
        if self.storage is None:
            raise SigningFailed("Object storage is not configured")
        try:
            return await asyncio.to_thread(
                self.storage.generate_presigned_download_url,
                stored.bucket,
                stored.key,
                self.expires_in,
            )
        except (ClientError, BotoCoreError, ValueError) as e:
            raise SigningFailed() from e

    async def _resolve_value(self, value: str | None) -> str | None:
        stored = parse_reference(value)
        if stored is None:
            return value
        return await self.presign(stored)

    async def resolve(self, video: Video) -> Video:
        """
        Return a copy of video with stored references replaced by presigned URLs.

        Fields that are not references are left unchanged. The input is not
        modified.
        """
        video_url = await self._resolve_value(video.video_url)
        thumbnail_url = await self._resolve_value(video.thumbnail_url)
        return video.model_copy(update={"video_url": video_url, "thumbnail_url": thumbnail_url})
