"""Composition planning for FFmpeg and the cover image generator.

Everything here is pure construction: functions take paths, settings and a
timestamp and return a ``CommandPlan`` holding an argument vector. Nothing in
this module starts a process or touches the filesystem; execution lives in
``src.video.assembler``.

The filter graph is passed to FFmpeg as a single argument, so values embedded
in it (subtitle path, force_style) are escaped for FFmpeg's two parsing levels:
option values first (backslash escapes for ``\\``, ``'`` and ``:``), then the
filtergraph (single quotes, with embedded quotes written as ``'\\''``).
"""

import logging
import os
import re
import shlex
import time
from dataclasses import dataclass, field
from pathlib import Path

from src.utils import sanitize_filename
from src.video.errors import InputValidationError
from src.video.subtitle_style import build_force_style
from src.video.video_config import (
    ASPECT_PROFILES,
    COVER_LANDSCAPE_ORIENTATION,
    COVER_PORTRAIT_ORIENTATION,
    COVER_PROMPT_TEMPLATE,
    DEFAULT_ASPECT_RATIO,
    AspectProfile,
    StudioConfig,
    SubtitleStyle,
    VideoSettings,
)

logger = logging.getLogger(__name__)

TITLE_NUMERIC_PREFIX_PATTERN = r"^\d+[-_]?"
TITLE_SEPARATOR_PATTERN = r"[-_]"


@dataclass
class CompositionRequest:
    """Inputs for one video render.

    Attributes
    ----------
        audio_path: Narration audio
        image_path: Still cover image, looped for the audio's duration
        subtitle_path: SRT file to burn in, if any
        with_subtitles: Whether captions should be burned in
        aspect_ratio: "9:16" or "16:9"
        style: Caption styling
        original_filename: Upload name used to derive the output name

    """

    audio_path: Path
    image_path: Path
    subtitle_path: Path | None = None
    with_subtitles: bool = False
    aspect_ratio: str = DEFAULT_ASPECT_RATIO
    style: SubtitleStyle = field(default_factory=SubtitleStyle)
    original_filename: str | None = None

    def __post_init__(self) -> None:
        # Fail at construction so planning itself never has to
        resolve_aspect_profile(self.aspect_ratio)

    @property
    def burns_subtitles(self) -> bool:
        return self.with_subtitles and self.subtitle_path is not None


@dataclass
class CommandPlan:
    """A fully built external command.

    Attributes
    ----------
        argv: Argument vector, executed without a shell
        output_path: The single artifact the command is expected to produce
        filter_graph: Video filter graph, empty for non-FFmpeg commands
        env_defaults: Environment values used when the caller's environment
            does not already define them

    """

    argv: list[str]
    output_path: Path
    filter_graph: str = ""
    env_defaults: dict[str, str] = field(default_factory=dict)

    @property
    def command_line(self) -> str:
        """Shell rendering with every argument quoted, for logs only."""
        return shlex.join(self.argv)


def resolve_aspect_profile(aspect_ratio: str) -> AspectProfile:
    """Return the frame geometry and caption margin for an aspect ratio.

    Raises
    ------
        InputValidationError: If the ratio is not one of the supported ones

    """
    profile = ASPECT_PROFILES.get(aspect_ratio)
    if profile is None:
        raise InputValidationError(
            f"Unsupported aspect ratio '{aspect_ratio}'. "
            f"Expected one of: {', '.join(ASPECT_PROFILES)}"
        )
    return profile


def escape_filter_option(value: str) -> str:
    """Escape a value for FFmpeg's filter option parser."""
    return value.replace("\\", "\\\\").replace("'", "\\'").replace(":", "\\:")


def quote_filter_graph_value(value: str) -> str:
    """Single-quote a value for FFmpeg's filtergraph parser."""
    return "'" + value.replace("'", "'\\''") + "'"


def filter_value(value: str) -> str:
    return quote_filter_graph_value(escape_filter_option(value))


def build_filter_graph(
    profile: AspectProfile,
    subtitle_path: Path | None = None,
    force_style: str | None = None,
) -> str:
    """Scale the still to fit the frame, pad it to exact size, then burn subtitles.

    The subtitle stage is appended only when ``subtitle_path`` is given.
    """
    size = profile.frame_size
    stages = [
        f"scale={size}:force_original_aspect_ratio=decrease",
        f"pad={size}:(ow-iw)/2:(oh-ih)/2",
    ]
    if subtitle_path is not None:
        subtitle_stage = f"subtitles={filter_value(str(subtitle_path))}"
        if force_style:
            subtitle_stage += f":force_style={filter_value(force_style)}"
        stages.append(subtitle_stage)
    return ",".join(stages)


def derive_title(original_filename: str) -> str:
    """Turn an upload name like ``03-morning_coffee.mp3`` into ``morning coffee``."""
    stem = Path(re.split(r"[\\/]", original_filename)[-1]).stem
    title = re.sub(TITLE_NUMERIC_PREFIX_PATTERN, "", stem)
    return re.sub(TITLE_SEPARATOR_PATTERN, " ", title).strip()


def build_output_filename(
    original_filename: str | None,
    timestamp_ms: int,
    settings: VideoSettings,
) -> str:
    """Branded output name from the upload name, or a timestamp fallback."""
    fallback = f"{settings.fallback_basename}-{timestamp_ms}"
    if original_filename:
        stem = Path(sanitize_filename(original_filename, fallback=fallback)).stem
        base_name = sanitize_filename(stem, fallback=fallback)
    else:
        base_name = fallback
    return f"{settings.output_name_prefix}{base_name}{settings.output_extension}"


def plan_composition(
    request: CompositionRequest,
    profile: AspectProfile,
    config: StudioConfig,
    timestamp_ms: int | None = None,
) -> CommandPlan:
    """Build the FFmpeg invocation that renders ``request``.

    The image is looped as video input, the audio drives the duration through
    ``-shortest``, and ``-y`` forces overwrite so reruns with the same name are
    deterministic.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    video_settings = config.video_settings
    audio_settings = config.audio_settings

    force_style = None
    subtitle_path = None
    if request.burns_subtitles:
        subtitle_path = request.subtitle_path
        force_style = build_force_style(
            request.style, profile, font_name=video_settings.subtitle_font_name
        )
    elif request.with_subtitles:
        logger.warning("Subtitles requested but no subtitle file was supplied")

    filter_graph = build_filter_graph(profile, subtitle_path, force_style)
    output_name = build_output_filename(
        request.original_filename, timestamp_ms, video_settings
    )
    output_path = config.videos_path / output_name

    argv = [
        config.ffmpeg_settings.ffmpeg_binary,
        "-loop",
        str(video_settings.image_loop),
        "-i",
        str(request.image_path),
        "-i",
        str(request.audio_path),
        "-vf",
        filter_graph,
        "-c:v",
        video_settings.output_codec,
        "-tune",
        video_settings.output_tune,
        "-c:a",
        audio_settings.output_audio_codec,
        "-b:a",
        audio_settings.output_audio_bitrate,
        "-pix_fmt",
        video_settings.output_pixel_format,
        "-shortest",
        "-y",
        str(output_path),
    ]
    return CommandPlan(argv=argv, output_path=output_path, filter_graph=filter_graph)


def build_cover_prompt(
    title: str, custom_prompt: str | None, profile: AspectProfile
) -> str:
    """Use the custom prompt if given, otherwise the orientation template."""
    if custom_prompt:
        return custom_prompt
    if profile.is_portrait:
        orientation = COVER_PORTRAIT_ORIENTATION
    else:
        orientation = COVER_LANDSCAPE_ORIENTATION
    return COVER_PROMPT_TEMPLATE.format(orientation=orientation, title=title)


def plan_cover_generation(
    title: str,
    custom_prompt: str | None,
    aspect_ratio: str,
    config: StudioConfig,
    timestamp_ms: int | None = None,
) -> CommandPlan:
    """Build the cover generator invocation.

    The generator is told the full output path, extension included, and that
    exact path is the artifact the runner checks for afterwards.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)

    cover_settings = config.cover_settings
    profile = resolve_aspect_profile(aspect_ratio)
    prompt = build_cover_prompt(title, custom_prompt, profile)
    output_path = config.images_path / (
        f"{cover_settings.name_prefix}{timestamp_ms}{cover_settings.image_extension}"
    )

    argv = [
        cover_settings.python_executable,
        os.path.expanduser(cover_settings.generator_script),
        cover_settings.generator_command,
        "--prompt",
        prompt,
        "--output",
        str(output_path),
    ]
    return CommandPlan(
        argv=argv,
        output_path=output_path,
        env_defaults={
            cover_settings.gateway_url_env_var: cover_settings.default_gateway_url
        },
    )
