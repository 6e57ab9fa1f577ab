"""Async process helpers for FFmpeg, ffprobe and other external tools."""

import asyncio
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from src.video.errors import MediaProbeError

logger = logging.getLogger(__name__)


async def async_run_command(
    cmd: list[str],
    timeout_sec: float = 300.0,
    log_path: Path | None = None,
    env_defaults: Mapping[str, str] | None = None,
) -> tuple[bool, str, str]:
    """Run an external command asynchronously with timeout and logging.

    The argument vector is executed directly, never through a shell.

    Args:
    ----
        cmd: Command as list of strings
        timeout_sec: Timeout in seconds
        log_path: Optional path to save the command line
        env_defaults: Variables added to the child environment unless the
            current environment already defines them

    Returns:
    -------
        Tuple of (success, stdout, stderr)

    """
    env = None
    if env_defaults:
        env = dict(os.environ)
        for key, value in env_defaults.items():
            if not env.get(key):
                env[key] = value

    try:
        if log_path:
            log_path.write_text(
                " ".join(f"'{part}'" if " " in part else part for part in cmd),
                encoding="utf-8",
            )

        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )

        stdout, stderr = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout_sec,
        )

        success = process.returncode == 0
        stdout_str = stdout.decode(errors="ignore") if stdout else ""
        stderr_str = stderr.decode(errors="ignore") if stderr else ""

        if not success:
            logger.error(f"{cmd[0]} failed with return code {process.returncode}")
            if stderr_str:
                logger.error(f"{cmd[0]} stderr: {stderr_str}")

        return success, stdout_str, stderr_str

    except TimeoutError:
        logger.error(f"{cmd[0]} process timed out after {timeout_sec} seconds")
        if "process" in locals():
            try:
                process.kill()
                await process.wait()
            except Exception as e:
                logger.debug(f"Error terminating process: {e}")
        return False, "", "Process timed out"

    except Exception as e:
        logger.error(f"Error running {cmd[0]} command: {e}", exc_info=True)
        return False, "", str(e)


async def async_get_media_duration(
    file_path: Path,
    ffprobe_path: str = "ffprobe",
    timeout_sec: float = 30.0,
) -> float:
    """Get media duration in seconds.

    Raises
    ------
        MediaProbeError: If ffprobe fails, times out or prints no number

    """
    cmd = [
        ffprobe_path,
        "-v",
        "error",
        "-show_entries",
        "format=duration",
        "-of",
        "default=noprint_wrappers=1:nokey=1",
        str(file_path),
    ]

    success, stdout, stderr = await async_run_command(cmd, timeout_sec=timeout_sec)
    if not success:
        raise MediaProbeError(
            f"ffprobe failed for {file_path.name}: {stderr.strip()}", stderr=stderr
        )

    try:
        return float(stdout.strip())
    except ValueError as e:
        raise MediaProbeError(
            f"ffprobe returned no duration for {file_path.name}: {stdout.strip()!r}"
        ) from e


class AsyncSemaphore:
    """Manages concurrent async operations with rate limiting."""

    def __init__(self, max_concurrent: int = 4):
        self.semaphore = asyncio.Semaphore(max_concurrent)

    async def run_with_limit(self, coro):
        """Run coroutine with concurrency limit."""
        async with self.semaphore:
            return await coro


# FFmpeg is CPU intensive
ffmpeg_semaphore = AsyncSemaphore(max_concurrent=2)
