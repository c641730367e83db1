"""
Process-wide thumbnail store for the memory thumbnail mode.

Entries live until they are replaced, rolled back or the application shuts down; there is no
TTL and no size bound, so this mode is only suitable for development and
single-instance deployments.
"""

import logging
import threading

from uuid import UUID

from tubely.models.video import ThumbnailRecord


logger = logging.getLogger(__name__)


class ThumbnailCache:
    """Lock-guarded mapping of video ID to thumbnail bytes."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[UUID, ThumbnailRecord] = {}

    def put(self, video_id: UUID, record: ThumbnailRecord) -> ThumbnailRecord | None:
        """Store record, returning the entry it replaced, if any."""
        with self._lock:
            previous = self._entries.get(video_id)
            self._entries[video_id] = record
        return previous

    def get(self, video_id: UUID) -> ThumbnailRecord | None:
        with self._lock:
            return self._entries.get(video_id)

    def restore(self, video_id: UUID, previous: ThumbnailRecord | None) -> None:
        """Undo a put: reinstate previous, or drop the entry if there was none."""
        with self._lock:
            if previous is None:
                self._entries.pop(video_id, None)
            else:
                self._entries[video_id] = previous

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Cleared %d cached thumbnails", count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, video_id: object) -> bool:
        with self._lock:
            return video_id in self._entries
