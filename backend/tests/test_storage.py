"""Tests for the boto3 StorageClient wrapper. No request leaves the process."""

from io import BytesIO
from unittest.mock import Mock
from urllib.parse import parse_qs, urlparse

import pytest

from botocore.exceptions import ClientError, EndpointConnectionError

from tubely.core.storage import StorageClient


@pytest.fixture
def storage(test_settings) -> StorageClient:
    return StorageClient(test_settings)


class TestPresignedDownloadURL:
    def test_signed_path_style_url(self, storage: StorageClient) -> None:
        url = storage.generate_presigned_download_url("test-bucket", "portrait/abc.mp4", 300)

        parsed = urlparse(url)
        query = parse_qs(parsed.query)
        assert parsed.netloc == "localhost:9000"
        assert parsed.path == "/test-bucket/portrait/abc.mp4"
        assert query["X-Amz-Expires"] == ["300"]
        assert "X-Amz-Signature" in query

    @pytest.mark.parametrize("expires_in", [0, 59, 86401])
    def test_expiry_bounds(self, storage: StorageClient, expires_in: int) -> None:
        with pytest.raises(ValueError):
            storage.generate_presigned_download_url("test-bucket", "k", expires_in)


class TestPutObject:
    def test_passes_content_type(self, storage: StorageClient) -> None:
        storage.s3_client = Mock()
        storage.s3_client.put_object.return_value = {"ETag": '"abc"'}
        body = BytesIO(b"data")

        assert storage.put_object("test-bucket", "k.mp4", body, "video/mp4") == {"ETag": '"abc"'}
        storage.s3_client.put_object.assert_called_once_with(
            Bucket="test-bucket", Key="k.mp4", Body=body, ContentType="video/mp4"
        )

    def test_errors_propagate(self, storage: StorageClient) -> None:
        storage.s3_client = Mock()
        storage.s3_client.put_object.side_effect = EndpointConnectionError(endpoint_url="http://x")

        with pytest.raises(EndpointConnectionError):
            storage.put_object("test-bucket", "k.mp4", BytesIO(b""), "video/mp4")


class TestBucketExists:
    def test_default_bucket(self, storage: StorageClient) -> None:
        storage.s3_client = Mock()

        assert storage.bucket_exists()
        storage.s3_client.head_bucket.assert_called_once_with(Bucket="test-bucket")

    def test_missing_bucket(self, storage: StorageClient) -> None:
        storage.s3_client = Mock()
        storage.s3_client.head_bucket.side_effect = ClientError(
            {"Error": {"Code": "404", "Message": "Not Found"}}, "HeadBucket"
        )

        assert not storage.bucket_exists("other")
