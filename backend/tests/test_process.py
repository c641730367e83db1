"""Tests for run_process, using the current interpreter as the child."""

import sys

import pytest

from tubely.utils.process import ProcessResult, run_process


class TestRunProcess:
    async def test_collects_output(self) -> None:
        result = await run_process(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"],
            timeout=30,
        )

        assert result.ok
        assert result.stdout.strip() == b"out"
        assert result.stderr_tail() == "err"

    async def test_nonzero_exit(self) -> None:
        result = await run_process([sys.executable, "-c", "raise SystemExit(3)"], timeout=30)

        assert not result.ok
        assert result.returncode == 3

    async def test_timeout_kills(self) -> None:
        with pytest.raises(TimeoutError):
            await run_process([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.5)

    async def test_missing_executable(self, tmp_path) -> None:
        with pytest.raises(OSError):
            await run_process([str(tmp_path / "no-such-tool")], timeout=5)


def test_stderr_tail_truncates() -> None:
    result = ProcessResult(1, b"", b"a" * 1000 + b"end")

    assert result.stderr_tail(limit=10) == "aaaaaaaend"
