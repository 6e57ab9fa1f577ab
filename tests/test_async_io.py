"""Tests for the async process helpers."""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.utils.async_io import (
    AsyncSemaphore,
    async_get_media_duration,
    async_run_command,
)
from src.video.errors import MediaProbeError


class TestAsyncRunCommand:
    @pytest.mark.asyncio
    async def test_argv_executed_without_shell(self, mock_process: AsyncMock):
        cmd = ["ffmpeg", "-i", "it's; rm -rf ~.mp3", "out.mp4"]

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = mock_process
            success, _, _ = await async_run_command(cmd)

        assert success
        assert mock_exec.call_args.args == tuple(cmd)
        assert mock_exec.call_args.kwargs["env"] is None

    @pytest.mark.asyncio
    async def test_failure_returns_stderr(self):
        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_proc = AsyncMock()
            mock_proc.communicate.return_value = (b"", b"Invalid data found")
            mock_proc.returncode = 1
            mock_exec.return_value = mock_proc

            success, stdout, stderr = await async_run_command(["ffmpeg"])

        assert not success
        assert stdout == ""
        assert stderr == "Invalid data found"

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self):
        mock_proc = MagicMock()
        mock_proc.communicate = AsyncMock(side_effect=asyncio.TimeoutError())
        mock_proc.wait = AsyncMock()

        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=mock_proc)):
            success, _, stderr = await async_run_command(["ffmpeg"], timeout_sec=0.1)

        assert not success
        assert stderr == "Process timed out"
        mock_proc.kill.assert_called_once()

    @pytest.mark.asyncio
    async def test_missing_executable(self):
        with patch(
            "asyncio.create_subprocess_exec",
            AsyncMock(side_effect=FileNotFoundError("no such file: ffmpeg")),
        ):
            success, _, stderr = await async_run_command(["ffmpeg"])

        assert not success
        assert "ffmpeg" in stderr

    @pytest.mark.asyncio
    async def test_command_log_written(self, temp_dir: Path, mock_process: AsyncMock):
        log_path = temp_dir / "cmd.log"

        with patch("asyncio.create_subprocess_exec", return_value=mock_process):
            await async_run_command(["ffmpeg", "-i", "my file.mp3"], log_path=log_path)

        assert log_path.read_text(encoding="utf-8") == "ffmpeg -i 'my file.mp3'"

    @pytest.mark.asyncio
    async def test_env_defaults_do_not_override(
        self, monkeypatch: pytest.MonkeyPatch, mock_process: AsyncMock
    ):
        monkeypatch.setenv("PIE_BASE_URL", "https://custom.example")
        monkeypatch.delenv("OTHER_VAR", raising=False)

        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.return_value = mock_process
            await async_run_command(
                ["gen"],
                env_defaults={
                    "PIE_BASE_URL": "https://default.example",
                    "OTHER_VAR": "fallback",
                },
            )

        env = mock_exec.call_args.kwargs["env"]
        assert env["PIE_BASE_URL"] == "https://custom.example"
        assert env["OTHER_VAR"] == "fallback"


class TestMediaDuration:
    @pytest.mark.asyncio
    async def test_parses_seconds(self, temp_dir: Path):
        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_proc = AsyncMock()
            mock_proc.communicate.return_value = (b"12.3456\n", b"")
            mock_proc.returncode = 0
            mock_exec.return_value = mock_proc

            duration = await async_get_media_duration(temp_dir / "a.mp3", "ffprobe")

        assert duration == pytest.approx(12.3456)
        assert mock_exec.call_args.args[0] == "ffprobe"

    @pytest.mark.asyncio
    async def test_probe_failure(self, temp_dir: Path):
        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_proc = AsyncMock()
            mock_proc.communicate.return_value = (b"", b"moov atom not found")
            mock_proc.returncode = 1
            mock_exec.return_value = mock_proc

            with pytest.raises(MediaProbeError, match="moov atom not found"):
                await async_get_media_duration(temp_dir / "a.mp3")

    @pytest.mark.asyncio
    async def test_non_numeric_output(self, temp_dir: Path):
        with patch("asyncio.create_subprocess_exec") as mock_exec:
            mock_proc = AsyncMock()
            mock_proc.communicate.return_value = (b"N/A\n", b"")
            mock_proc.returncode = 0
            mock_exec.return_value = mock_proc

            with pytest.raises(MediaProbeError, match="no duration"):
                await async_get_media_duration(temp_dir / "a.mp3")


class TestAsyncSemaphore:
    @pytest.mark.asyncio
    async def test_limits_concurrency(self):
        semaphore = AsyncSemaphore(max_concurrent=2)
        active = 0
        peak = 0

        async def job():
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return True

        results = await asyncio.gather(
            *(semaphore.run_with_limit(job()) for _ in range(6))
        )

        assert all(results)
        assert peak == 2
