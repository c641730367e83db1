"""
MongoDB access for the video metadata store.

One Motor client is opened by the application lifespan (init_db) and shared
by every request through get_db_client(). Only that initial connection is
retried; request-time failures surface as RecordReadError / RecordWriteError
from the repository.
"""

import asyncio
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, PyMongoError

from tubely.config import Settings


logger = logging.getLogger(__name__)

VIDEOS_COLLECTION = "videos"

CONNECT_ATTEMPTS = 3
CONNECT_BACKOFF_SECONDS = 1.0
SERVER_SELECTION_TIMEOUT_MS = 5000


class DatabaseClient:
    """
    Owns the Motor client for one database.

    Example:
        ```python
        client = DatabaseClient(settings)
        if await client.connect():
            videos = client.get_videos_collection()
        ```
    """

    def __init__(self, settings: Settings) -> None:
        self.uri = settings.mongodb_uri
        self.db_name = settings.mongodb_db_name
        self.pool_bounds = (settings.mongodb_min_pool_size, settings.mongodb_max_pool_size)
        self._client: AsyncIOMotorClient | None = None

    def _open(self) -> AsyncIOMotorClient:
        min_pool, max_pool = self.pool_bounds
        return AsyncIOMotorClient(
            self.uri,
            minPoolSize=min_pool,
            maxPoolSize=max_pool,
            serverSelectionTimeoutMS=SERVER_SELECTION_TIMEOUT_MS,
            uuidRepresentation="standard",
        )

    async def connect(self) -> bool:
        """
        Open the client and confirm the server answers a ping.

        Tries CONNECT_ATTEMPTS times, doubling the pause between attempts.

        Returns:
            bool: False if every attempt failed.
        """
        delay = CONNECT_BACKOFF_SECONDS
        for attempt in range(1, CONNECT_ATTEMPTS + 1):
            client = self._open()
            try:
                await client.admin.command("ping")
            except ConnectionFailure as e:
                client.close()
                logger.warning(
                    "MongoDB unreachable (attempt %d/%d): %s", attempt, CONNECT_ATTEMPTS, e
                )
                if attempt < CONNECT_ATTEMPTS:
                    await asyncio.sleep(delay)
                    delay *= 2
                continue

            self._client = client
            logger.info("Connected to MongoDB database %s", self.db_name)
            return True

        logger.error("Giving up on MongoDB after %d attempts", CONNECT_ATTEMPTS)
        return False

    async def close(self) -> None:
        if self._client is None:
            return
        self._client.close()
        self._client = None
        logger.info("Closed MongoDB connection to %s", self.db_name)

    async def ping(self) -> bool:
        """Readiness check. Never raises."""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
        except PyMongoError:
            logger.warning("MongoDB ping failed", exc_info=True)
            return False
        return True

    def get_videos_collection(self) -> AsyncIOMotorCollection:
        """
        Raises:
            RuntimeError: If the client is not connected.
        """
        if self._client is None:
            raise RuntimeError(f"Not connected to MongoDB database {self.db_name}")
        return self._client[self.db_name][VIDEOS_COLLECTION]

    async def create_indexes(self) -> None:
        """Index for the per-owner, newest-first listing."""
        await self.get_videos_collection().create_index(
            [("user_id", ASCENDING), ("created_at", DESCENDING)]
        )


class _ClientHolder:
    client: DatabaseClient | None = None


_holder = _ClientHolder()


async def init_db(settings: Settings) -> DatabaseClient:
    """
    Connect the shared client and ensure indexes exist.

    Returns the existing client if already initialized.

    Raises:
        RuntimeError: If MongoDB cannot be reached.
    """
    if _holder.client is not None:
        return _holder.client

    client = DatabaseClient(settings)
    if not await client.connect():
        raise RuntimeError(f"Unable to connect to MongoDB database {settings.mongodb_db_name}")

    try:
        await client.create_indexes()
    except PyMongoError as e:
        await client.close()
        raise RuntimeError("Unable to create MongoDB indexes") from e

    _holder.client = client
    return client


async def close_db() -> None:
    if _holder.client is not None:
        await _holder.client.close()
        _holder.client = None


def get_db_client() -> DatabaseClient:
    """
    Raises:
        RuntimeError: If init_db() has not completed.
    """
    if _holder.client is None:
        raise RuntimeError("Database client not initialized; init_db() must run at startup")
    return _holder.client
