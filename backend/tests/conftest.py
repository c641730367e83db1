"""
Pytest Configuration and Test Fixtures for the Tubely Backend

This module provides:
- Settings isolated to a per-test temporary directory
- An in-memory VideoRepository stand-in with failure injection
- A mocked StorageClient (boto3 is never reached)
- A mocked VideoProbe so no ffprobe binary is needed
- A FastAPI TestClient wired through app.dependency_overrides
- JWT helpers for authenticated requests
"""

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from fastapi import FastAPI
from fastapi.testclient import TestClient

from tubely.api.deps import (
    get_ingestion_service,
    get_storage_client,
    get_thumbnail_cache,
    get_video_repository,
)
from tubely.config import Settings, get_settings
from tubely.core.auth import create_access_token
from tubely.core.exceptions import RecordReadError, RecordWriteError
from tubely.core.storage import StorageClient
from tubely.main import create_app
from tubely.models.video import Orientation, Video
from tubely.services.ingestion import IngestionService
from tubely.services.probe import VideoProbe
from tubely.services.publisher import LocalAssetPublisher, ObjectStorePublisher
from tubely.services.thumbnail_cache import ThumbnailCache
from tubely.services.urls import AccessURLResolver


TEST_JWT_SECRET = "test-jwt-secret-for-signing-minimum-32-characters"
TEST_BUCKET = "test-bucket"


# ==============================================================================
# In-memory repository
# ==============================================================================


class FakeVideoRepository:
    """
    Dict-backed stand-in for VideoRepository.

    Set fail_reads / fail_updates to make the next calls raise the same errors
    the Motor-backed repository raises.
    """

    def __init__(self) -> None:
        self.videos: dict[UUID, Video] = {}
        self.fail_reads = False
        self.fail_updates = False
        self.update_calls: list[Video] = []

    def add(self, video: Video) -> Video:
        self.videos[video.id] = video
        return video

    async def get_video(self, video_id: UUID) -> Video | None:
        if self.fail_reads:
            raise RecordReadError()
        return self.videos.get(video_id)

    async def create_video(self, video: Video) -> Video:
        self.videos[video.id] = video
        return video

    async def update_video(self, video: Video) -> Video:
        self.update_calls.append(video)
        if self.fail_updates:
            raise RecordWriteError()
        updated = video.model_copy(update={"updated_at": datetime.now(UTC)})
        self.videos[video.id] = updated
        return updated

    async def list_videos_for_user(self, user_id: UUID, limit: int = 100) -> list[Video]:
        owned = [v for v in self.videos.values() if v.user_id == user_id]
        return sorted(owned, key=lambda v: v.created_at, reverse=True)[:limit]


# ==============================================================================
# Settings and identities
# ==============================================================================


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def assets_dir(tmp_path: Path) -> Path:
    path = tmp_path / "assets"
    path.mkdir()
    return path


@pytest.fixture
def test_settings(temp_dir: Path, assets_dir: Path) -> Settings:
    """Settings for tests: signed URLs, memory thumbnails, small upload ceilings."""
    return Settings(
        app_env="testing",
        json_logs=False,
        base_url="http://testserver",
        s3_endpoint_url="http://localhost:9000",
        s3_access_key_id="test-access-key",
        s3_secret_access_key="test-secret-key",
        s3_bucket_name=TEST_BUCKET,
        url_mode="signed",
        jwt_secret=TEST_JWT_SECRET,
        max_video_upload_bytes=64 * 1024,
        max_thumbnail_upload_bytes=16 * 1024,
        temp_dir=str(temp_dir),
        assets_root=str(assets_dir),
        thumbnail_storage="memory",
        enable_fast_start=False,
    )


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def other_user_id() -> UUID:
    return uuid4()


def make_auth_headers(settings: Settings, user_id: UUID, expires_in: timedelta = timedelta(hours=1)) -> dict[str, str]:
    token = create_access_token(user_id, settings, expires_in=expires_in)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_settings: Settings):
    """Factory: auth_headers(user_id, expires_in=...) -> headers dict."""

    def _make(user_id: UUID, expires_in: timedelta = timedelta(hours=1)) -> dict[str, str]:
        return make_auth_headers(test_settings, user_id, expires_in)

    return _make


@pytest.fixture
def owner_headers(test_settings: Settings, owner_id: UUID) -> dict[str, str]:
    return make_auth_headers(test_settings, owner_id)


@pytest.fixture
def other_headers(test_settings: Settings, other_user_id: UUID) -> dict[str, str]:
    return make_auth_headers(test_settings, other_user_id)


# ==============================================================================
# Collaborators
# ==============================================================================


@pytest.fixture
def repository() -> FakeVideoRepository:
    return FakeVideoRepository()


@pytest.fixture
def owned_video(repository: FakeVideoRepository, owner_id: UUID) -> Video:
    return repository.add(Video(user_id=owner_id, title="Boots on the ground"))


@pytest.fixture
def mock_storage() -> Mock:
    """StorageClient mock; each presign call returns a distinct URL."""
    storage = Mock(spec=StorageClient)
    storage.bucket_name = TEST_BUCKET
    storage.put_object = Mock(return_value={"ETag": '"etag"'})
    storage.generate_presigned_download_url = Mock(
        side_effect=lambda bucket, key, expires_in: (
            f"https://signed.example.com/{bucket}/{key}?X-Amz-Expires={expires_in}&sig={uuid4().hex}"
        )
    )
    storage.bucket_exists = Mock(return_value=True)
    return storage


@pytest.fixture
def mock_probe() -> Mock:
    probe = Mock(spec=VideoProbe)
    probe.get_orientation = AsyncMock(return_value=Orientation.LANDSCAPE)
    return probe


@pytest.fixture
def thumbnail_cache() -> ThumbnailCache:
    return ThumbnailCache()


@pytest.fixture
def resolver(mock_storage: Mock, test_settings: Settings) -> AccessURLResolver:
    return AccessURLResolver.from_settings(mock_storage, test_settings)


@pytest.fixture
def ingestion_service(
    repository: FakeVideoRepository,
    mock_storage: Mock,
    mock_probe: Mock,
    resolver: AccessURLResolver,
    thumbnail_cache: ThumbnailCache,
    test_settings: Settings,
) -> IngestionService:
    return IngestionService(
        repository,
        probe=mock_probe,
        publisher=ObjectStorePublisher(mock_storage, test_settings.s3_bucket_name),
        resolver=resolver,
        local_publisher=LocalAssetPublisher(test_settings.assets_root),
        thumbnail_cache=thumbnail_cache,
        thumbnail_storage=test_settings.thumbnail_storage,
        temp_dir=test_settings.temp_dir,
    )


# ==============================================================================
# Application
# ==============================================================================


@pytest.fixture
def app(
    test_settings: Settings,
    repository: FakeVideoRepository,
    mock_storage: Mock,
    thumbnail_cache: ThumbnailCache,
    ingestion_service: IngestionService,
) -> Iterator[FastAPI]:
    application = create_app(test_settings)
    application.state.storage = mock_storage
    application.state.thumbnail_cache = thumbnail_cache
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_video_repository] = lambda: repository
    application.dependency_overrides[get_storage_client] = lambda: mock_storage
    application.dependency_overrides[get_thumbnail_cache] = lambda: thumbnail_cache
    application.dependency_overrides[get_ingestion_service] = lambda: ingestion_service
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """TestClient without lifespan, so no MongoDB connection is attempted."""
    return TestClient(app)
