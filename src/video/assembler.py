"""Video Assembler Module

This module executes the command plans built by ``src.video.composition``:
the FFmpeg render that combines a looped cover image, narration audio and
burned-in subtitles, and the external cover image generator. It also probes
audio duration for the uniform caption fallback.

A run fails if the process exits non-zero, and separately if the process
claims success but the expected output file does not exist.
"""

import logging
from pathlib import Path

from src.utils import ensure_dirs_exist
from src.utils.async_io import (
    async_get_media_duration,
    async_run_command,
    ffmpeg_semaphore,
)
from src.video.composition import CommandPlan
from src.video.errors import MissingArtifactError, ProcessExecutionError
from src.video.video_config import StudioConfig

# Configure module logger
logger = logging.getLogger(__name__)


class VideoAssembler:
    """Runs FFmpeg, ffprobe and the cover generator for the studio.

    The assembler never builds commands itself; it receives ``CommandPlan``
    objects and is responsible only for executing them and checking that the
    promised artifact appeared.
    """

    def __init__(self, config: StudioConfig, debug_mode: bool = False):
        """Initialize the assembler with configuration.

        Args:
        ----
            config: Studio configuration containing FFmpeg and cover settings
            debug_mode: Enable debug logging for assembly operations

        """
        self.config = config
        self.debug_mode = debug_mode
        self.ffmpeg_path = config.ffmpeg_settings.ffmpeg_binary
        self.ffprobe_path = config.ffmpeg_settings.ffprobe_binary

    async def get_audio_duration_ms(self, audio_path: Path) -> int:
        """Probe an audio file and return its duration in milliseconds."""
        duration_sec = await async_get_media_duration(
            audio_path,
            self.ffprobe_path,
            timeout_sec=self.config.ffmpeg_settings.probe_timeout_sec,
        )
        duration_ms = round(duration_sec * 1000)
        logger.debug(f"Probed duration of {audio_path.name}: {duration_ms}ms")
        return duration_ms

    def _command_log_path(self, output_path: Path) -> Path | None:
        if not self.config.ffmpeg_settings.create_command_logs:
            return None
        return self.config.logs_path / f"{output_path.stem}_ffmpeg_command.log"

    async def render(self, plan: CommandPlan) -> Path:
        """Execute an FFmpeg composition plan.

        Returns
        -------
            Path to the rendered video

        Raises
        ------
            ProcessExecutionError: If FFmpeg exits non-zero or times out
            MissingArtifactError: If FFmpeg succeeded but wrote no output

        """
        logger.info(f"Rendering video '{plan.output_path.name}'")
        if self.debug_mode:
            logger.debug(f"FFmpeg command: {plan.command_line}")

        ensure_dirs_exist(plan.output_path)
        log_path = self._command_log_path(plan.output_path)
        if log_path:
            ensure_dirs_exist(log_path)

        success, _, stderr = await ffmpeg_semaphore.run_with_limit(
            async_run_command(
                plan.argv,
                timeout_sec=self.config.ffmpeg_settings.final_assembly_timeout_sec,
                log_path=log_path,
            )
        )
        if not success:
            raise ProcessExecutionError(f"FFmpeg failed: {stderr}", stderr=stderr)

        if not plan.output_path.is_file():
            raise MissingArtifactError(
                f"FFmpeg reported success but no video was written to "
                f"{plan.output_path}",
                expected_path=plan.output_path,
            )

        logger.info(f"Successfully rendered video: {plan.output_path}")
        return plan.output_path

    async def generate_cover(self, plan: CommandPlan) -> Path:
        """Execute a cover generation plan.

        Raises
        ------
            ProcessExecutionError: If the generator exits non-zero or times out
            MissingArtifactError: If no image exists at the planned path

        """
        logger.info(f"Generating cover image '{plan.output_path.name}'")
        ensure_dirs_exist(plan.output_path)

        success, _, stderr = await async_run_command(
            plan.argv,
            timeout_sec=self.config.cover_settings.generation_timeout_sec,
            env_defaults=plan.env_defaults,
        )
        if not success:
            raise ProcessExecutionError(
                f"Cover generation failed: {stderr}", stderr=stderr
            )

        if not plan.output_path.is_file():
            raise MissingArtifactError(
                f"Cover generation failed: no image at {plan.output_path}",
                expected_path=plan.output_path,
            )

        logger.info(f"Cover image generated: {plan.output_path}")
        return plan.output_path
