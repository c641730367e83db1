"""
Object key derivation.

Keys embed facts the pipeline has already established (media type and, for
videos, orientation), so they are only derived after validation and probing.
"""

import base64
import secrets

from uuid import UUID

from tubely.models.video import Orientation
from tubely.services.media_types import extension_for


TOKEN_BYTES = 32
THUMBNAIL_PREFIX = "thumbnails"


def random_token(nbytes: int = TOKEN_BYTES) -> str:
    """URL-safe base64 of nbytes random bytes, without padding."""
    return base64.urlsafe_b64encode(secrets.token_bytes(nbytes)).decode("ascii").rstrip("=")


def derive_video_key(media_type: str, orientation: Orientation) -> str:
    """e.g. "landscape/<token>.mp4"."""
    return f"{orientation.value}/{random_token()}{extension_for(media_type)}"


def derive_thumbnail_key(video_id: UUID, media_type: str) -> str:
    """Key for thumbnails kept on local disk or in memory: "<video_id><ext>"."""
    return f"{video_id}{extension_for(media_type)}"


def derive_remote_thumbnail_key(media_type: str) -> str:
    return f"{THUMBNAIL_PREFIX}/{random_token()}{extension_for(media_type)}"
