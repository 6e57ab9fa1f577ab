# src/video/studio.py
import argparse
import asyncio
import json
import logging
import shutil
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiohttp
from dotenv import load_dotenv
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.asr.credentials import Credentials, load_credentials
from src.asr.recognition_client import RecognitionClient, RecognitionResult
from src.utils import ensure_dirs_exist, sanitize_filename
from src.video.assembler import VideoAssembler
from src.video.composition import (
    CompositionRequest,
    build_cover_prompt,
    derive_title,
    plan_composition,
    plan_cover_generation,
    resolve_aspect_profile,
)
from src.video.cues import Aligner, UniformAligner, split_subtitle_lines
from src.video.errors import (
    InputValidationError,
    MissingCredentialsError,
    RecognitionTransportError,
    StudioError,
)
from src.video.result_types import (
    CoverResult,
    SubtitleResult,
    TranscriptionResult,
    VideoResult,
)
from src.video.srt_writer import write_srt_file
from src.video.video_config import (
    DEFAULT_CONFIG_PATH,
    MANUAL_SUBTITLE_SUFFIX,
    StudioConfig,
    SubtitleStyle,
    load_studio_config,
)

logger = logging.getLogger(__name__)


def setup_logging(config: StudioConfig, debug_mode: bool = False) -> Path:
    """Set up logging to both console and file.

    Args:
    ----
        config: Studio configuration containing the log directory path
        debug_mode: Whether to enable debug logging

    Returns:
    -------
        Path to the log file

    """
    log_level = logging.DEBUG if debug_mode else logging.INFO

    ensure_dirs_exist(config.logs_path)
    # Fixed filename, overwritten on each run
    log_file = config.logs_path / "studio.log"

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Console goes to stderr; stdout carries the JSON result
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    console_handler.setLevel(log_level)

    file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - "
            "%(funcName)s:%(lineno)d - %(message)s"
        )
    )
    file_handler.setLevel(log_level)

    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    if not debug_mode:
        for lib in ["aiohttp", "asyncio", "urllib3"]:
            logging.getLogger(lib).setLevel(logging.WARNING)

    logger.info(
        f"Logging configured - Level: {logging.getLevelName(log_level)}, "
        f"File: {log_file}"
    )
    return log_file


@dataclass
class UploadInfo:
    path: Path
    original_filename: str
    title: str


class SubtitleStudio:
    """Runs the narrated-video workflow end to end.

    Upload -> speech recognition (or manual text + uniform timing) -> SRT ->
    optional cover generation -> FFmpeg render with burned-in captions.

    Args:
    ----
        config: Studio configuration
        credentials: Gateway credentials; required only for ``transcribe``
        session: Optional shared aiohttp session for recognition calls
        assembler: Process runner; defaults to a ``VideoAssembler``
        aligner: Line timing strategy for manual subtitle text
        debug_mode: Enable verbose logging of commands

    """

    def __init__(
        self,
        config: StudioConfig,
        credentials: Credentials | None = None,
        session: aiohttp.ClientSession | None = None,
        assembler: VideoAssembler | None = None,
        aligner: Aligner | None = None,
        debug_mode: bool = False,
    ):
        self.config = config
        self.credentials = credentials
        self.session = session
        self.assembler = assembler or VideoAssembler(config, debug_mode=debug_mode)
        self.aligner = aligner or UniformAligner()
        self.debug_mode = debug_mode

    def register_upload(
        self, source_path: Path, original_filename: str | None = None
    ) -> UploadInfo:
        """Copy an audio file into the uploads directory and derive its title."""
        if not source_path.is_file():
            raise InputValidationError(f"No uploaded file: {source_path}")

        original_filename = original_filename or source_path.name
        stored_name = (
            f"{int(time.time() * 1000)}-{sanitize_filename(original_filename)}"
        )
        stored_path = self.config.uploads_path / stored_name
        ensure_dirs_exist(self.config.uploads_path)
        shutil.copy2(source_path, stored_path)

        info = UploadInfo(
            path=stored_path,
            original_filename=original_filename,
            title=derive_title(original_filename),
        )
        logger.info(f"Registered upload '{original_filename}' as {stored_path.name}")
        return info

    async def _recognize(self, audio_path: Path) -> RecognitionResult:
        if self.credentials is None:
            raise MissingCredentialsError(
                "Speech recognition requires gateway credentials"
            )
        settings = self.config.recognition_settings
        retryer = AsyncRetrying(
            stop=stop_after_attempt(settings.retry_attempts),
            wait=wait_exponential(
                multiplier=1,
                min=settings.retry_min_wait_sec,
                max=settings.retry_max_wait_sec,
            ),
            retry=retry_if_exception_type(RecognitionTransportError),
            reraise=True,
        )

        async def attempt_once(session: aiohttp.ClientSession) -> RecognitionResult:
            client = RecognitionClient(self.credentials, settings, session)
            async for attempt in retryer:
                with attempt:
                    result = await client.transcribe(audio_path)
            return result

        if self.session is not None and not self.session.closed:
            return await attempt_once(self.session)
        async with aiohttp.ClientSession() as session:
            return await attempt_once(session)

    async def transcribe(self, audio_path: Path) -> TranscriptionResult:
        """Recognize speech in ``audio_path`` and write ``<stem>.srt``.

        Raises
        ------
            MissingCredentialsError: If no credentials were configured
            InputValidationError: If the audio file does not exist
            RecognitionError: If the backend rejects the request or no
                response arrives after the configured attempts

        """
        recognition = await self._recognize(audio_path)
        srt_path = self.config.outputs_path / f"{audio_path.stem}.srt"
        subtitle = write_srt_file(
            recognition.to_utterances(), srt_path, timing_source="recognizer"
        )

        return TranscriptionResult(
            text=recognition.text,
            duration=recognition.duration,
            utterances=[u.model_dump() for u in recognition.utterances],
            subtitle=subtitle,
        )

    async def align_manual_text(
        self, audio_path: Path, subtitle_text: str
    ) -> SubtitleResult:
        """Time manually supplied subtitle lines against the audio duration.

        Raises
        ------
            InputValidationError: If the audio is missing or the text is empty
            MediaProbeError: If the audio duration cannot be determined

        """
        if not audio_path.is_file():
            raise InputValidationError(f"Audio file not found: {audio_path}")
        lines = split_subtitle_lines(subtitle_text or "")
        if not lines:
            raise InputValidationError("Subtitle text is empty")

        duration_ms = await self.assembler.get_audio_duration_ms(audio_path)
        utterances = self.aligner.align(lines, duration_ms)

        srt_path = (
            self.config.outputs_path / f"{audio_path.stem}{MANUAL_SUBTITLE_SUFFIX}.srt"
        )
        result = write_srt_file(utterances, srt_path, timing_source=self.aligner.name)
        result.duration_ms = duration_ms
        result.add_metadata("line_count", len(lines))
        return result

    async def generate_cover(
        self,
        title: str,
        custom_prompt: str | None = None,
        aspect_ratio: str | None = None,
    ) -> CoverResult:
        """Generate a cover image from a title or a custom prompt."""
        if not (title and title.strip()) and not custom_prompt:
            raise InputValidationError("A title or custom prompt is required")
        aspect_ratio = aspect_ratio or self.config.video_settings.default_aspect_ratio

        plan = plan_cover_generation(title, custom_prompt, aspect_ratio, self.config)
        image_path = await self.assembler.generate_cover(plan)

        result = CoverResult(
            prompt=build_cover_prompt(
                title, custom_prompt, resolve_aspect_profile(aspect_ratio)
            ),
            aspect_ratio=aspect_ratio,
        )
        result.attach(image_path)
        return result

    def store_cover_upload(self, image_path: Path) -> CoverResult:
        """Move a user-cropped cover into the images directory."""
        if not image_path.is_file():
            raise InputValidationError(f"No uploaded image: {image_path}")

        cover_settings = self.config.cover_settings
        target = self.config.images_path / (
            f"{cover_settings.name_prefix}{int(time.time() * 1000)}"
            f"{cover_settings.uploaded_cover_extension}"
        )
        ensure_dirs_exist(target)
        shutil.move(str(image_path), target)

        result = CoverResult()
        result.attach(target)
        logger.info(f"Stored uploaded cover as {target}")
        return result

    async def generate_video(self, request: CompositionRequest) -> VideoResult:
        """Render the final MP4 for ``request``.

        Raises
        ------
            InputValidationError: If an input file is missing
            ProcessExecutionError: If FFmpeg fails
            MissingArtifactError: If FFmpeg wrote no output file

        """
        for label, path in (
            ("Audio", request.audio_path),
            ("Image", request.image_path),
        ):
            if not path.is_file():
                raise InputValidationError(f"{label} file not found: {path}")
        if request.burns_subtitles and not request.subtitle_path.is_file():
            raise InputValidationError(
                f"Subtitle file not found: {request.subtitle_path}"
            )

        profile = resolve_aspect_profile(request.aspect_ratio)
        plan = plan_composition(request, profile, self.config)
        output_path = await self.assembler.render(plan)

        result = VideoResult(
            resolution=(profile.width, profile.height),
            aspect_ratio=profile.ratio,
            has_subtitles=request.burns_subtitles,
            download_filename=output_path.name,
            command_line=plan.command_line,
        )
        result.attach(output_path)
        return result


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Turn narrated audio and a cover image into a subtitled video."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the studio YAML config.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    upload = subparsers.add_parser("upload", help="Register an audio upload.")
    upload.add_argument("source", type=Path)
    upload.add_argument("--name", help="Original filename (defaults to source name).")

    transcribe = subparsers.add_parser(
        "transcribe", help="Recognize speech and write an SRT file."
    )
    transcribe.add_argument("audio", type=Path)

    align = subparsers.add_parser(
        "align", help="Time manual subtitle text evenly across the audio."
    )
    align.add_argument("audio", type=Path)
    text_source = align.add_mutually_exclusive_group(required=True)
    text_source.add_argument("--text", help="Subtitle text, one line per caption.")
    text_source.add_argument("--text-file", type=Path, help="File with subtitle text.")

    cover = subparsers.add_parser("cover", help="Generate a cover image.")
    cover.add_argument("title")
    cover.add_argument("--prompt", help="Custom prompt overriding the template.")
    cover.add_argument("--aspect-ratio", choices=["9:16", "16:9"])

    render = subparsers.add_parser("render", help="Render the final video.")
    render.add_argument("--audio", type=Path, required=True)
    render.add_argument("--image", type=Path, required=True)
    render.add_argument("--subtitles", type=Path, help="SRT file to burn in.")
    render.add_argument("--aspect-ratio", choices=["9:16", "16:9"])
    render.add_argument("--original-name", help="Upload name used for the output.")
    render.add_argument("--font-size")
    render.add_argument("--font-color")
    render.add_argument("--outline-color")
    render.add_argument("--outline-width")
    return parser


def _load_config(config_path: Path) -> StudioConfig:
    if config_path.is_file():
        return load_studio_config(config_path)
    logger.warning(f"Config not found at {config_path}, using built-in defaults")
    return StudioConfig()


def _render_request(
    args: argparse.Namespace, config: StudioConfig
) -> CompositionRequest:
    overrides = {
        key: value
        for key, value in {
            "font_size": args.font_size,
            "font_color": args.font_color,
            "outline_color": args.outline_color,
            "outline_width": args.outline_width,
        }.items()
        if value is not None
    }
    style = SubtitleStyle.model_validate(
        {**config.subtitle_style.model_dump(), **overrides}
    )
    return CompositionRequest(
        audio_path=args.audio,
        image_path=args.image,
        subtitle_path=args.subtitles,
        with_subtitles=args.subtitles is not None,
        aspect_ratio=args.aspect_ratio or config.video_settings.default_aspect_ratio,
        style=style,
        original_filename=args.original_name,
    )


async def _dispatch(args: argparse.Namespace, config: StudioConfig) -> Any:
    if args.command == "transcribe":
        credentials = load_credentials(config.credential_search_paths())
        studio = SubtitleStudio(config, credentials=credentials, debug_mode=args.debug)
        return await studio.transcribe(args.audio)

    studio = SubtitleStudio(config, debug_mode=args.debug)
    if args.command == "upload":
        return studio.register_upload(args.source, args.name)
    if args.command == "align":
        text = (
            args.text_file.read_text(encoding="utf-8")
            if args.text_file
            else args.text
        )
        return await studio.align_manual_text(args.audio, text)
    if args.command == "cover":
        return await studio.generate_cover(args.title, args.prompt, args.aspect_ratio)
    return await studio.generate_video(_render_request(args, config))


async def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    project_root = Path(__file__).resolve().parent.parent.parent
    load_dotenv(project_root / ".env")

    try:
        config = _load_config(args.config)
    except Exception as e:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
        logger.critical(f"Config loading failed: {e}")
        return 1

    log_file = setup_logging(config, args.debug)

    try:
        result = await _dispatch(args, config)
    except MissingCredentialsError as e:
        logger.critical(f"Missing credentials: {e}")
        return 1
    except StudioError as e:
        logger.error(f"{args.command} failed: {e}")
        logger.error(f"Complete log saved to: {log_file}")
        return 1

    print(json.dumps(_to_jsonable(result), ensure_ascii=False, indent=2, default=str))
    return 0


def _to_jsonable(result: Any) -> Any:
    if hasattr(result, "__dataclass_fields__"):
        return {
            name: _to_jsonable(getattr(result, name))
            for name in result.__dataclass_fields__
        }
    if isinstance(result, list | tuple):
        return [_to_jsonable(item) for item in result]
    if isinstance(result, dict):
        return {key: _to_jsonable(value) for key, value in result.items()}
    return result


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
