"""
Upload ingestion: pulling the multipart part out of the request and staging it
on local disk.

Body size ceilings are enforced below this layer by
tubely.core.limits.UploadSizeLimitMiddleware; a body that crosses its ceiling
surfaces here as RequestTooLarge and is left to propagate.
"""

import logging
import os
import tempfile

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiofiles

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect, Request

from tubely.core.exceptions import MalformedUpload, StorageIOError
from tubely.models.video import TemporaryUpload


logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB
TEMP_PREFIX = "tubely-upload-"


async def read_upload_part(request: Request, field_name: str) -> UploadFile:
    """
    Parse the multipart body and return the file part named field_name.

    This is the first point at which body bytes are read, so callers must
    finish authentication and authorization before calling it.

    Raises:
        MalformedUpload: If the body is not valid multipart, the client went
            away mid-body, or the named file part is missing.
    """
    try:
        form = await request.form(max_files=1)
    except (MultiPartException, HTTPException) as e:
        logger.warning("Unable to parse multipart body: %s", getattr(e, "detail", e))
        raise MalformedUpload() from e
    except ClientDisconnect as e:
        logger.warning("Client disconnected while sending upload body")
        raise MalformedUpload("Client disconnected during upload") from e

    part = form.get(field_name)
    if not isinstance(part, UploadFile):
        raise MalformedUpload(f"Missing form file {field_name!r}")

    return part


def _make_temp_path(temp_dir: str | None, suffix: str) -> Path:
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=suffix, dir=temp_dir)
    os.close(fd)
    return Path(name)


def remove_quietly(path: Path) -> None:
    """Unlink path, logging instead of raising on failure."""
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Failed to clean up temporary file '%s': %s", path, e)


@asynccontextmanager
async def scratch_file(temp_dir: str | None, suffix: str = "") -> AsyncIterator[Path]:
    """
    Reserve an empty temporary file and remove it on exit.

    Raises:
        StorageIOError: If the file cannot be created.
    """
    try:
        path = _make_temp_path(temp_dir, suffix)
    except OSError as e:
        logger.exception("Unable to create temporary file")
        raise StorageIOError("Unable to create temporary file") from e

    try:
        yield path
    finally:
        remove_quietly(path)


@asynccontextmanager
async def stage_upload(
    part: UploadFile,
    temp_dir: str | None = None,
    suffix: str = "",
) -> AsyncIterator[TemporaryUpload]:
    """
    Copy an uploaded part to a temporary file in 1 MiB chunks.

    The yielded TemporaryUpload is only valid inside the context. The file is
    deleted on every exit path.

    Raises:
        StorageIOError: If the file cannot be created or written.
    """
    async with scratch_file(temp_dir, suffix) as path:
        size = 0
        try:
            await part.seek(0)
            async with aiofiles.open(path, "wb") as out:
                while chunk := await part.read(CHUNK_SIZE):
                    await out.write(chunk)
                    size += len(chunk)
        except OSError as e:
            logger.exception("Unable to write upload to temporary file '%s'", path)
            raise StorageIOError("Unable to save upload to temporary file") from e

        logger.debug("Staged upload at %s (%d bytes)", path, size)
        yield TemporaryUpload(
            path=path,
            size=size,
            content_type=part.content_type or "",
        )
