"""Bounded async subprocess execution for the media tools."""

import asyncio
import logging

from collections.abc import Sequence
from dataclasses import dataclass


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def stderr_tail(self, limit: int = 500) -> str:
        return self.stderr.decode("utf-8", errors="replace")[-limit:].strip()


async def run_process(args: Sequence[str], timeout: float) -> ProcessResult:
    """
    Run a command and collect its output.

    The process is killed and reaped if it outlives timeout.

    Raises:
        OSError: If the executable cannot be started.
        TimeoutError: If the process did not finish in time.
    """
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except TimeoutError:
        logger.warning("Killing %s after %.1fs timeout", args[0], timeout)
        proc.kill()
        await proc.wait()
        raise

    return ProcessResult(returncode=proc.returncode, stdout=stdout, stderr=stderr)
