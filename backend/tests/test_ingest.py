"""
Tests for multipart part extraction and temporary staging.

Staged files must be gone after the context exits, whether the body of the
context succeeded or raised.
"""

from io import BytesIO
from pathlib import Path

import pytest

from starlette.datastructures import Headers, UploadFile
from starlette.requests import Request

from tubely.core.exceptions import MalformedUpload, ProbeUnavailable, StorageIOError
from tubely.services.ingest import CHUNK_SIZE, read_upload_part, scratch_file, stage_upload


BOUNDARY = "tubelyboundary"


def _multipart(field: str, data: bytes, content_type: str = "video/mp4", filename: str | None = "clip.mp4") -> bytes:
    disposition = f'form-data; name="{field}"'
    if filename is not None:
        disposition += f'; filename="{filename}"'
    return (
        f"--{BOUNDARY}\r\n"
        f"Content-Disposition: {disposition}\r\n"
        f"Content-Type: {content_type}\r\n\r\n"
    ).encode() + data + f"\r\n--{BOUNDARY}--\r\n".encode()


def _request(body: bytes, content_type: str = f"multipart/form-data; boundary={BOUNDARY}", disconnect: bool = False) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "query_string": b"",
        "headers": [
            (b"content-type", content_type.encode()),
            (b"content-length", str(len(body)).encode()),
        ],
    }
    messages = [{"type": "http.disconnect"}] if disconnect else [
        {"type": "http.request", "body": body, "more_body": False}
    ]

    async def receive() -> dict:
        return messages.pop(0) if messages else {"type": "http.disconnect"}

    return Request(scope, receive)


def _upload_file(data: bytes, content_type: str = "video/mp4") -> UploadFile:
    return UploadFile(
        file=BytesIO(data),
        filename="clip.mp4",
        headers=Headers({"content-type": content_type}),
    )


# =============================================================================
# read_upload_part
# =============================================================================


class TestReadUploadPart:
    async def test_returns_named_file_part(self) -> None:
        request = _request(_multipart("video", b"mp4-bytes"))

        part = await read_upload_part(request, "video")

        assert part.content_type == "video/mp4"
        assert await part.read() == b"mp4-bytes"
        await part.close()

    async def test_missing_field(self) -> None:
        request = _request(_multipart("thumbnail", b"png", "image/png"))

        with pytest.raises(MalformedUpload, match="video"):
            await read_upload_part(request, "video")

    async def test_plain_field_is_not_a_file(self) -> None:
        request = _request(_multipart("video", b"just text", "text/plain", filename=None))

        with pytest.raises(MalformedUpload):
            await read_upload_part(request, "video")

    async def test_missing_boundary(self) -> None:
        request = _request(b"whatever", content_type="multipart/form-data")

        with pytest.raises(MalformedUpload):
            await read_upload_part(request, "video")

    async def test_not_multipart(self) -> None:
        request = _request(b'{"video": 1}', content_type="application/json")

        with pytest.raises(MalformedUpload):
            await read_upload_part(request, "video")

    async def test_client_disconnect(self) -> None:
        request = _request(b"", disconnect=True)

        with pytest.raises(MalformedUpload, match="disconnected"):
            await read_upload_part(request, "video")


# =============================================================================
# stage_upload
# =============================================================================


class TestStageUpload:
    async def test_copies_part_and_removes_file(self, temp_dir: Path) -> None:
        data = b"x" * (CHUNK_SIZE * 2 + 17)

        async with stage_upload(_upload_file(data), str(temp_dir), suffix=".mp4") as upload:
            assert upload.path.parent == temp_dir
            assert upload.path.suffix == ".mp4"
            assert upload.path.read_bytes() == data
            assert upload.size == len(data)
            assert upload.content_type == "video/mp4"
            staged_path = upload.path

        assert not staged_path.exists()
        assert list(temp_dir.iterdir()) == []

    async def test_rewinds_partially_read_part(self, temp_dir: Path) -> None:
        part = _upload_file(b"abcdef")
        await part.read(3)

        async with stage_upload(part, str(temp_dir)) as upload:
            assert upload.path.read_bytes() == b"abcdef"

    async def test_file_removed_when_pipeline_fails(self, temp_dir: Path) -> None:
        with pytest.raises(ProbeUnavailable):
            async with stage_upload(_upload_file(b"data"), str(temp_dir)):
                raise ProbeUnavailable()

        assert list(temp_dir.iterdir()) == []

    async def test_unwritable_temp_dir(self, tmp_path: Path) -> None:
        with pytest.raises(StorageIOError):
            async with stage_upload(_upload_file(b"data"), str(tmp_path / "missing")):
                pass

    async def test_empty_part(self, temp_dir: Path) -> None:
        async with stage_upload(_upload_file(b""), str(temp_dir)) as upload:
            assert upload.size == 0


class TestScratchFile:
    async def test_reserved_and_removed(self, temp_dir: Path) -> None:
        async with scratch_file(str(temp_dir), suffix=".out") as path:
            assert path.exists()
            path.write_bytes(b"remuxed")

        assert not path.exists()
