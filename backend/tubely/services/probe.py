"""
Video orientation detection with ffprobe.

The probe reads the dimensions of the primary video stream and buckets its
aspect ratio into landscape, portrait or other. The bucket is embedded in the
storage key and never stored on its own.
"""

import json
import logging

from pathlib import Path
from typing import Any

from tubely.core.exceptions import ProbeOutputInvalid, ProbeUnavailable
from tubely.models.video import Orientation
from tubely.utils.process import run_process


logger = logging.getLogger(__name__)

LANDSCAPE_RATIO = 16 / 9
PORTRAIT_RATIO = 9 / 16
RATIO_TOLERANCE = 0.1


def classify_orientation(width: int, height: int) -> Orientation:
    """
    Bucket a frame size by aspect ratio.

    Landscape is checked before portrait.

    Raises:
        ProbeOutputInvalid: If either dimension is not positive.
    """
    if width <= 0 or height <= 0:
        raise ProbeOutputInvalid(f"Invalid video dimensions {width}x{height}")

    ratio = width / height
    if abs(ratio - LANDSCAPE_RATIO) <= RATIO_TOLERANCE:
        return Orientation.LANDSCAPE
    if abs(ratio - PORTRAIT_RATIO) <= RATIO_TOLERANCE:
        return Orientation.PORTRAIT
    return Orientation.OTHER


def select_video_stream(streams: list[dict[str, Any]]) -> dict[str, Any]:
    """First stream with codec_type "video", falling back to the first stream."""
    for stream in streams:
        if stream.get("codec_type") == "video":
            return stream
    return streams[0]


def parse_dimensions(output: bytes) -> tuple[int, int]:
    """
    Extract (width, height) from ffprobe's -show_streams JSON.

    Raises:
        ProbeOutputInvalid: On non-JSON output, zero streams, or missing or
            non-positive dimensions.
    """
    try:
        data = json.loads(output)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProbeOutputInvalid("ffprobe output is not valid JSON") from e

    streams = data.get("streams") if isinstance(data, dict) else None
    if not isinstance(streams, list) or not streams:
        raise ProbeOutputInvalid("No streams found in video")

    stream = select_video_stream(streams)
    width, height = stream.get("width"), stream.get("height")
    if not isinstance(width, int) or not isinstance(height, int) or width <= 0 or height <= 0:
        raise ProbeOutputInvalid(f"Invalid video dimensions {width!r}x{height!r}")

    return width, height


class VideoProbe:
    """
    Runs ffprobe against local files.

    Example:
        ```python
        probe = VideoProbe("ffprobe", timeout=30.0)
        orientation = await probe.get_orientation(Path("/tmp/upload.mp4"))
        ```
    """

    def __init__(self, ffprobe_path: str = "ffprobe", timeout: float = 30.0) -> None:
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    async def probe(self, path: Path) -> tuple[int, int]:
        """
        Return the (width, height) of the primary video stream.

        Raises:
            ProbeUnavailable: If ffprobe is missing, fails, or times out.
            ProbeOutputInvalid: If its output cannot be used.
        """
        args = [
            self.ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_streams",
            str(path),
        ]
        try:
            result = await run_process(args, self.timeout)
        except TimeoutError as e:
            raise ProbeUnavailable(f"ffprobe timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            logger.exception("Unable to start ffprobe at %s", self.ffprobe_path)
            raise ProbeUnavailable() from e

        if not result.ok:
            logger.error(
                "ffprobe exited with status %d: %s", result.returncode, result.stderr_tail()
            )
            raise ProbeUnavailable()

        return parse_dimensions(result.stdout)

    async def get_orientation(self, path: Path) -> Orientation:
        width, height = await self.probe(path)
        orientation = classify_orientation(width, height)
        logger.debug("Probed %s: %dx%d -> %s", path, width, height, orientation.value)
        return orientation
