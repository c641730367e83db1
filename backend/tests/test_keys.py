"""Tests for object key derivation."""

import re

from uuid import uuid4

from tubely.models.video import Orientation
from tubely.services.keys import (
    derive_remote_thumbnail_key,
    derive_thumbnail_key,
    derive_video_key,
    random_token,
)


# 32 bytes -> 43 unpadded URL-safe base64 characters
TOKEN_RE = r"[A-Za-z0-9_-]{43}"


class TestRandomToken:
    def test_url_safe_and_unpadded(self) -> None:
        token = random_token()

        assert re.fullmatch(TOKEN_RE, token)
        assert "=" not in token

    def test_unique(self) -> None:
        assert len({random_token() for _ in range(200)}) == 200


class TestDeriveKeys:
    def test_video_key_embeds_orientation_and_extension(self) -> None:
        key = derive_video_key("video/mp4", Orientation.PORTRAIT)

        assert re.fullmatch(rf"portrait/{TOKEN_RE}\.mp4", key)

    def test_video_keys_differ_per_call(self) -> None:
        assert derive_video_key("video/mp4", Orientation.OTHER) != derive_video_key(
            "video/mp4", Orientation.OTHER
        )

    def test_thumbnail_key_uses_video_id(self) -> None:
        video_id = uuid4()

        assert derive_thumbnail_key(video_id, "image/png") == f"{video_id}.png"

    def test_thumbnail_key_without_splittable_subtype(self) -> None:
        video_id = uuid4()

        assert derive_thumbnail_key(video_id, "png") == str(video_id)

    def test_remote_thumbnail_key(self) -> None:
        key = derive_remote_thumbnail_key("image/jpeg")

        assert re.fullmatch(rf"thumbnails/{TOKEN_RE}\.jpeg", key)
