"""
Content-Type gating for uploaded parts.

Videos are restricted to a single container format so the orientation probe
only ever sees MP4 input. Thumbnails accept any declared type; the subtype is
only used to pick a file extension.
"""

import logging
import re

from tubely.core.exceptions import UnsupportedMediaType


logger = logging.getLogger(__name__)

ALLOWED_VIDEO_MEDIA_TYPE = "video/mp4"

# RFC 7231 token characters for type and subtype
_TOKEN = r"[!#$%&'*+.^_`|~0-9A-Za-z-]+"
_MEDIA_TYPE_RE = re.compile(rf"^\s*({_TOKEN})/({_TOKEN})\s*$")


def parse_media_type(header: str | None) -> str:
    """
    Parse a Content-Type header value into a lower-cased "type/subtype".

    Parameters such as "; charset=utf-8" are accepted and dropped.

    Raises:
        UnsupportedMediaType: If the header is missing or not a media type.
    """
    if not header or not header.strip():
        raise UnsupportedMediaType("Missing Content-Type for uploaded file")

    essence, _, params = header.partition(";")
    match = _MEDIA_TYPE_RE.match(essence)
    if match is None:
        raise UnsupportedMediaType(f"Invalid Content-Type: {header!r}")

    for param in filter(None, (p.strip() for p in params.split(";"))):
        name, sep, _ = param.partition("=")
        if not sep or not name.strip():
            raise UnsupportedMediaType(f"Invalid Content-Type parameter: {param!r}")

    return f"{match.group(1)}/{match.group(2)}".lower()


def validate_video_media_type(header: str | None) -> str:
    """Return "video/mp4" or raise UnsupportedMediaType."""
    media_type = parse_media_type(header)
    if media_type != ALLOWED_VIDEO_MEDIA_TYPE:
        logger.info("Rejected video upload with media type %s", media_type)
        raise UnsupportedMediaType(
            f"Unsupported media type {media_type!r}, expected {ALLOWED_VIDEO_MEDIA_TYPE}"
        )
    return media_type


def validate_thumbnail_media_type(header: str | None) -> str:
    """Any non-empty value is accepted as-is."""
    if not header or not header.strip():
        raise UnsupportedMediaType("Missing Content-Type for thumbnail")
    return header.strip()


def extension_for(media_type: str) -> str:
    """
    File extension for a media type, taken from its subtype.

    "image/png" gives ".png". Values that do not split into exactly two parts
    on "/" get no extension.
    """
    parts = media_type.split("/")
    if len(parts) != 2:
        return ""
    return f".{parts[1]}"
