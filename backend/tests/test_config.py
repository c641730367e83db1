"""Tests for tubely.config.Settings validation and derived values."""

import pytest

from pydantic import ValidationError

from tubely.config import Settings


class TestSettingsValidation:
    def test_defaults(self) -> None:
        settings = Settings(_env_file=None)

        assert settings.url_mode == "signed"
        assert settings.is_signed_url_mode
        assert settings.presigned_url_expiration_seconds == 300
        assert settings.max_video_upload_bytes == 1 << 30
        assert settings.max_thumbnail_upload_bytes == 10 << 20
        assert settings.jwt_algorithm == "HS256"

    def test_url_mode_normalized(self) -> None:
        assert Settings(_env_file=None, url_mode="STATIC").url_mode == "static"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("url_mode", "public"),
            ("thumbnail_storage", "redis"),
            ("log_level", "verbose"),
            ("app_env", "qa"),
            ("jwt_algorithm", "RS256"),
        ],
    )
    def test_rejects_unknown_values(self, field: str, value: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_short_jwt_secret_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, jwt_secret="too-short")

    @pytest.mark.parametrize("expiration", [59, 86401])
    def test_presign_expiration_bounds(self, expiration: int) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, presigned_url_expiration_seconds=expiration)

    def test_cors_origins_from_comma_string(self) -> None:
        settings = Settings(_env_file=None, cors_origins="http://a.test, http://b.test")

        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    def test_frozen(self) -> None:
        settings = Settings(_env_file=None)

        with pytest.raises(ValidationError):
            settings.url_mode = "static"


class TestResolvedPublicBaseURL:
    def test_explicit_public_base_url_wins(self) -> None:
        settings = Settings(
            _env_file=None,
            public_base_url="https://cdn.example.com/",
            s3_endpoint_url="http://localhost:9000",
        )

        assert settings.resolved_public_base_url == "https://cdn.example.com"

    def test_custom_endpoint_uses_path_style(self) -> None:
        settings = Settings(
            _env_file=None, s3_endpoint_url="http://localhost:9000/", s3_bucket_name="media"
        )

        assert settings.resolved_public_base_url == "http://localhost:9000/media"

    def test_aws_virtual_hosted_style(self) -> None:
        settings = Settings(_env_file=None, s3_bucket_name="media", s3_region="eu-west-1")

        assert settings.resolved_public_base_url == "https://media.s3.eu-west-1.amazonaws.com"
