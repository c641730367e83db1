"""
Models Package for Tubely.

Example Usage:
    ```python
    from tubely.models import Video, VideoCreate, Orientation

    video = Video(user_id=user_id, title="Boots on the ground")
    ```
"""

from tubely.models.video import (
    Orientation,
    StoredObject,
    TemporaryUpload,
    ThumbnailRecord,
    Video,
    VideoCreate,
)


__all__ = [
    "Orientation",
    "StoredObject",
    "TemporaryUpload",
    "ThumbnailRecord",
    "Video",
    "VideoCreate",
]
