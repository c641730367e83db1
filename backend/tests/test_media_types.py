"""Tests for Content-Type gating and extension selection."""

import pytest

from tubely.core.exceptions import UnsupportedMediaType
from tubely.services.media_types import (
    extension_for,
    parse_media_type,
    validate_thumbnail_media_type,
    validate_video_media_type,
)


class TestParseMediaType:
    def test_plain(self) -> None:
        assert parse_media_type("video/mp4") == "video/mp4"

    def test_parameters_dropped_and_lowercased(self) -> None:
        assert parse_media_type("Video/MP4; codecs=avc1") == "video/mp4"

    @pytest.mark.parametrize("header", [None, "", "   ", "video", "video/", "/mp4", "video/mp4/x"])
    def test_invalid(self, header: str | None) -> None:
        with pytest.raises(UnsupportedMediaType):
            parse_media_type(header)

    def test_invalid_parameter(self) -> None:
        with pytest.raises(UnsupportedMediaType):
            parse_media_type("video/mp4; nonsense")


class TestValidateVideoMediaType:
    def test_accepts_mp4(self) -> None:
        assert validate_video_media_type("video/mp4") == "video/mp4"

    @pytest.mark.parametrize(
        "header",
        ["video/quicktime", "video/webm", "image/png", "application/octet-stream", "", None],
    )
    def test_rejects_everything_else(self, header: str | None) -> None:
        with pytest.raises(UnsupportedMediaType):
            validate_video_media_type(header)


class TestValidateThumbnailMediaType:
    @pytest.mark.parametrize("header", ["image/png", "image/jpeg", "whatever"])
    def test_any_non_empty_value_accepted_verbatim(self, header: str) -> None:
        assert validate_thumbnail_media_type(header) == header

    @pytest.mark.parametrize("header", [None, "", "  "])
    def test_empty_rejected(self, header: str | None) -> None:
        with pytest.raises(UnsupportedMediaType):
            validate_thumbnail_media_type(header)


class TestExtensionFor:
    @pytest.mark.parametrize(
        "media_type,expected",
        [
            ("image/png", ".png"),
            ("video/mp4", ".mp4"),
            ("image/svg+xml", ".svg+xml"),
            ("png", ""),
            ("a/b/c", ""),
        ],
    )
    def test_subtype_becomes_extension(self, media_type: str, expected: str) -> None:
        assert extension_for(media_type) == expected
