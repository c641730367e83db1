"""
Publishing staged files to their final location.

- ObjectStorePublisher: S3-compatible object store through StorageClient
- LocalAssetPublisher: the directory served at /assets (local thumbnail mode)

Neither publisher checks for an existing object; writing the same key twice
overwrites it.
"""

import asyncio
import logging
import os

from pathlib import Path

import aiofiles

from botocore.exceptions import BotoCoreError, ClientError

from tubely.core.exceptions import PublishFailed, StorageIOError
from tubely.core.storage import StorageClient
from tubely.models.video import StoredObject
from tubely.services.ingest import CHUNK_SIZE, remove_quietly


logger = logging.getLogger(__name__)

BACKUP_SUFFIX = ".previous"


class ObjectStorePublisher:
    """
    Upload staged files to the media bucket.

    boto3 is blocking, so the upload runs in a worker thread.
    """

    def __init__(self, storage: StorageClient, bucket: str) -> None:
        self.storage = storage
        self.bucket = bucket

    def _put_file(self, key: str, path: Path, content_type: str) -> None:
        with path.open("rb") as body:
            body.seek(0)
            self.storage.put_object(self.bucket, key, body, content_type)

    async def publish(self, key: str, path: Path, content_type: str) -> StoredObject:
        """
        Upload the file at path under key.

        Raises:
            PublishFailed: On any store-side or transport error.
            StorageIOError: If the staged file cannot be opened.
        """
        try:
            await asyncio.to_thread(self._put_file, key, path, content_type)
        except (ClientError, BotoCoreError) as e:
            raise PublishFailed() from e
        except OSError as e:
            logger.exception("Unable to open staged file '%s'", path)
            raise StorageIOError("Unable to read staged upload") from e

        logger.info("Published object", extra={"bucket": self.bucket, "key": key})
        return StoredObject(bucket=self.bucket, key=key)


class LocalAssetPublisher:
    """Copy staged files into the assets directory."""

    def __init__(self, assets_root: str | Path) -> None:
        self.assets_root = Path(assets_root)

    def path_for(self, key: str) -> Path:
        root = self.assets_root.resolve()
        target = (root / key).resolve()
        if target.parent != root:
            raise StorageIOError(f"Refusing to write asset outside {root}: {key!r}")
        return target

    async def publish(self, key: str, path: Path) -> StoredObject:
        """
        Copy the file at path to {assets_root}/{key}.

        Raises:
            StorageIOError: If the copy fails.
        """
        target = self.path_for(key)
        try:
            async with aiofiles.open(path, "rb") as src, aiofiles.open(target, "wb") as dst:
                while chunk := await src.read(CHUNK_SIZE):
                    await dst.write(chunk)
        except OSError as e:
            logger.exception("Unable to write asset '%s'", target)
            remove_quietly(target)
            raise StorageIOError("Unable to write thumbnail to assets directory") from e

        logger.info("Wrote local asset", extra={"path": str(target)})
        return StoredObject(bucket="", key=key)

    def remove(self, key: str) -> None:
        """Delete a previously published asset. Missing files are ignored."""
        remove_quietly(self.path_for(key))

    def set_aside(self, key: str) -> Path | None:
        """
        Move the asset currently stored under key to a backup file.

        Returns:
            The backup path, or None if nothing was stored under key.

        Raises:
            StorageIOError: If the existing asset cannot be moved.
        """
        target = self.path_for(key)
        backup = target.with_name(f".{target.name}{BACKUP_SUFFIX}")
        try:
            os.replace(target, backup)
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.exception("Unable to set aside asset '%s'", target)
            raise StorageIOError("Unable to replace thumbnail in assets directory") from e
        return backup

    def restore(self, key: str, backup: Path | None) -> None:
        """Undo a publish: put backup back under key, or remove key if there was none."""
        if backup is None:
            self.remove(key)
            return
        try:
            os.replace(backup, self.path_for(key))
        except OSError:
            logger.exception("Unable to restore previous asset for '%s'", key)

    def discard(self, backup: Path | None) -> None:
        if backup is not None:
            remove_quietly(backup)
