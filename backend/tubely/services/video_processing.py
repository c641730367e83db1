"""
Fast-start remuxing.

MP4 files written by most recorders keep the moov atom at the end, so players
have to fetch the whole file before playback starts. The remux copies the
streams unchanged and moves the moov atom to the front.
"""

import logging

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from tubely.core.exceptions import ProcessingFailed
from tubely.services.ingest import scratch_file
from tubely.utils.process import run_process


logger = logging.getLogger(__name__)


class FastStartProcessor:
    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        timeout: float = 300.0,
        temp_dir: str | None = None,
    ) -> None:
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout
        self.temp_dir = temp_dir

    def build_command(self, source: Path, target: Path) -> list[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-v",
            "error",
            "-i",
            str(source),
            "-c",
            "copy",
            "-movflags",
            "faststart",
            "-f",
            "mp4",
            str(target),
        ]

    @asynccontextmanager
    async def process(self, source: Path) -> AsyncIterator[Path]:
        """
        Remux source into a new temporary file and yield its path.

        The output file is removed when the context exits.

        Raises:
            ProcessingFailed: If ffmpeg is missing, fails, or times out.
            StorageIOError: If the output file cannot be reserved.
        """
        async with scratch_file(self.temp_dir, suffix=".processing.mp4") as target:
            try:
                result = await run_process(self.build_command(source, target), self.timeout)
            except TimeoutError as e:
                raise ProcessingFailed(f"ffmpeg timed out after {self.timeout:.0f}s") from e
            except OSError as e:
                logger.exception("Unable to start ffmpeg at %s", self.ffmpeg_path)
                raise ProcessingFailed() from e

            if not result.ok:
                logger.error(
                    "ffmpeg exited with status %d: %s", result.returncode, result.stderr_tail()
                )
                raise ProcessingFailed()

            yield target
