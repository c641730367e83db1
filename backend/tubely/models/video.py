"""
Video Pydantic models for Tubely.

This module defines the Video record kept in the metadata store, the request
body used to create a draft record, and the small value types passed between
the ingestion pipeline stages.

Media URL fields hold whatever the configured URL mode stores:
- static mode: a full public URL
- signed mode: a "bucket,key" reference, resolved to a presigned URL on read
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class Orientation(str, Enum):
    """Aspect ratio class of a video, used as the storage key prefix."""

    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"


# =============================================================================
# VIDEO RECORD
# =============================================================================


class Video(BaseModel):
    """
    Video metadata record.

    The pipeline only ever writes thumbnail_url, video_url and updated_at.
    user_id is fixed at creation.

    Attributes:
        id: Video identifier, stored as the document _id
        user_id: Owner of the video
        title: Display title
        description: Free-form description
        created_at: Creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
        thumbnail_url: Stored thumbnail location, if any
        video_url: Stored video location, if any
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    thumbnail_url: str | None = None
    video_url: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "4f6d8a52-3c1b-4f0e-9a55-2d7e3c1b9a10",
                "user_id": "0b3c2a1d-5e6f-4a7b-8c9d-0e1f2a3b4c5d",
                "title": "Boots on the ground",
                "description": "A short walk through the office",
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:35:00Z",
                "thumbnail_url": "https://tubely-media.s3.us-east-1.amazonaws.com/thumbnails/abc.png",
                "video_url": "tubely-media,landscape/q3Zk0v4b1yJ7m8Xh2w9sLdA6cR5tE0uPnBgYfKiOjH4.mp4",
            }
        },
    )

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.user_id == user_id

    def to_document(self) -> dict[str, Any]:
        """Serialize for MongoDB. UUIDs are stored as strings."""
        return {
            "_id": str(self.id),
            "user_id": str(self.user_id),
            "title": self.title,
            "description": self.description,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "thumbnail_url": self.thumbnail_url,
            "video_url": self.video_url,
        }

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Video":
        """
        Build a Video from a MongoDB document.

        MongoDB returns naive datetimes; they are marked as UTC here.
        """
        data = dict(document)
        data["id"] = data.pop("_id")
        for field in ("created_at", "updated_at"):
            value = data.get(field)
            if isinstance(value, datetime) and value.tzinfo is None:
                data[field] = value.replace(tzinfo=UTC)
        return cls.model_validate(data)


class VideoCreate(BaseModel):
    """Request body for creating a draft video record."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v


# =============================================================================
# PIPELINE VALUE TYPES
# =============================================================================


@dataclass(frozen=True)
class TemporaryUpload:
    """A staged upload on local disk. Only valid inside its staging context."""

    path: Path
    size: int
    content_type: str


@dataclass(frozen=True)
class StoredObject:
    """Location of a published object."""

    bucket: str
    key: str


@dataclass(frozen=True)
class ThumbnailRecord:
    """Thumbnail bytes held in process memory."""

    data: bytes
    media_type: str
