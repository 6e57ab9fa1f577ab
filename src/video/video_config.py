# src/video/video_config.py
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

logger = logging.getLogger(__name__)

SRT_TIME_SEPARATOR = " --> "
SRT_ENCODING = "utf-8"
ASS_COLOR_PREFIX = "&H"
ASS_DEFAULT_ALPHA = "00"
ASS_ALIGNMENT_BOTTOM_CENTER = 2
ASS_SHADOW_NONE = 0
DEFAULT_SUBTITLE_FONT = "PingFang SC"
DEFAULT_FONT_SIZE = "24"
DEFAULT_FONT_COLOR = "#FFFFFF"
DEFAULT_OUTLINE_COLOR = "#000000"
DEFAULT_OUTLINE_WIDTH = "2"
DEFAULT_ASPECT_RATIO = "9:16"
OUTPUT_NAME_PREFIX = "pimsleur 日常英语对话-"
OUTPUT_VIDEO_EXTENSION = ".mp4"
FALLBACK_VIDEO_BASENAME = "video"
COVER_NAME_PREFIX = "cover-"
COVER_IMAGE_EXTENSION = ".png"
UPLOADED_COVER_EXTENSION = ".jpg"
MANUAL_SUBTITLE_SUFFIX = "-manual"
RECOGNITION_API_PATH = "/asr/volcengine_quick"
CREDENTIAL_FILE_LOCATIONS = [".piebox/env", "../.piebox/env"]
COVER_GATEWAY_DEFAULT_URL = "https://pie-gateway.weapp.me"
COVER_PORTRAIT_ORIENTATION = "vertical 9:16 portrait orientation (1080x1920 pixels)"
COVER_LANDSCAPE_ORIENTATION = (
    "horizontal 16:9 landscape orientation (1920x1080 pixels)"
)
COVER_PROMPT_TEMPLATE = (
    "Cute kawaii cartoon illustration, {orientation}. "
    "A cheerful scene depicting: {title}. "
    "Adorable chibi-style characters with big sparkling eyes. "
    "Flat design style with soft pastel colors, clean lines, "
    "and a cozy warm atmosphere. No text in the image."
)


class AspectProfile(BaseModel):
    """Frame geometry and caption margin for one supported aspect ratio.

    Width, height and vertical margin always travel together; the two
    instances below are the only ones the planner hands out.
    """

    model_config = ConfigDict(frozen=True)

    ratio: str
    width: int
    height: int
    margin_v: int

    @property
    def frame_size(self) -> str:
        """Frame size in FFmpeg ``W:H`` notation."""
        return f"{self.width}:{self.height}"

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width


PORTRAIT_PROFILE = AspectProfile(ratio="9:16", width=1080, height=1920, margin_v=60)
LANDSCAPE_PROFILE = AspectProfile(ratio="16:9", width=1920, height=1080, margin_v=40)
ASPECT_PROFILES: dict[str, AspectProfile] = {
    PORTRAIT_PROFILE.ratio: PORTRAIT_PROFILE,
    LANDSCAPE_PROFILE.ratio: LANDSCAPE_PROFILE,
}


class SubtitleStyle(BaseModel):
    """User-selected caption styling.

    Accepts the camelCase keys sent by the front end (``fontSize``,
    ``fontColor``...) as well as snake_case field names.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    font_size: str | int | float = Field(DEFAULT_FONT_SIZE, alias="fontSize")
    font_color: str = Field(DEFAULT_FONT_COLOR, alias="fontColor")
    outline_color: str = Field(DEFAULT_OUTLINE_COLOR, alias="outlineColor")
    outline_width: str | int | float = Field(
        DEFAULT_OUTLINE_WIDTH, alias="outlineWidth"
    )

    @model_validator(mode="before")
    @classmethod
    def drop_blank_values(cls, data: Any) -> Any:
        # Unset form fields arrive as None or "" and fall back to the defaults
        if isinstance(data, dict):
            return {
                key: value
                for key, value in data.items()
                if value is not None
                and not (isinstance(value, str) and not value.strip())
            }
        return data


class VideoSettings(BaseModel):
    output_codec: str = Field("libx264")
    output_tune: str = Field("stillimage")
    output_pixel_format: str = Field("yuv420p")
    image_loop: int = Field(1)
    subtitle_font_name: str = Field(DEFAULT_SUBTITLE_FONT)
    output_name_prefix: str = Field(OUTPUT_NAME_PREFIX)
    output_extension: str = Field(OUTPUT_VIDEO_EXTENSION)
    fallback_basename: str = Field(FALLBACK_VIDEO_BASENAME)
    default_aspect_ratio: str = Field(DEFAULT_ASPECT_RATIO)

    @model_validator(mode="after")
    def validate_aspect_ratio(self) -> "VideoSettings":
        if self.default_aspect_ratio not in ASPECT_PROFILES:
            raise ValueError(
                f"default_aspect_ratio must be one of {sorted(ASPECT_PROFILES)}"
            )
        return self


class AudioSettings(BaseModel):
    output_audio_codec: str = Field("aac")
    output_audio_bitrate: str = Field("192k")


class FFmpegSettings(BaseModel):
    executable_path: str | None = Field(None)
    ffprobe_path: str | None = Field(None)
    final_assembly_timeout_sec: int = Field(600)
    probe_timeout_sec: int = Field(30)
    create_command_logs: bool = Field(True)

    @property
    def ffmpeg_binary(self) -> str:
        return self.executable_path or "ffmpeg"

    @property
    def ffprobe_binary(self) -> str:
        if self.ffprobe_path:
            return self.ffprobe_path
        # Only the file name changes; directories named "ffmpeg" are kept
        ffmpeg = Path(self.ffmpeg_binary)
        return str(ffmpeg.with_name(ffmpeg.name.replace("ffmpeg", "ffprobe")))


class RecognitionSettings(BaseModel):
    api_path: str = Field(RECOGNITION_API_PATH)
    enable_punc: bool = Field(True)
    enable_itn: bool = Field(True)
    request_timeout_sec: int = Field(120)
    retry_attempts: int = Field(
        1, ge=1, description="Caller-side attempts; 1 disables retries."
    )
    retry_min_wait_sec: int = Field(2)
    retry_max_wait_sec: int = Field(10)
    credential_search_paths: list[str] = Field(
        default_factory=lambda: list(CREDENTIAL_FILE_LOCATIONS)
    )


class CoverSettings(BaseModel):
    python_executable: str = Field("python3")
    generator_script: str = Field(
        "~/.config/pie/skills/nano_banana/scripts/image_gen.py"
    )
    generator_command: str = Field("generate")
    name_prefix: str = Field(COVER_NAME_PREFIX)
    image_extension: str = Field(COVER_IMAGE_EXTENSION)
    uploaded_cover_extension: str = Field(UPLOADED_COVER_EXTENSION)
    gateway_url_env_var: str = Field("PIE_BASE_URL")
    default_gateway_url: str = Field(COVER_GATEWAY_DEFAULT_URL)
    generation_timeout_sec: int = Field(300)


class StudioConfig(BaseModel):
    uploads_directory: str = Field("uploads")
    outputs_directory: str = Field("outputs")
    videos_subdir: str = Field("videos")
    images_subdir: str = Field("images")
    logs_subdir: str = Field("logs")
    video_settings: VideoSettings = Field(default_factory=VideoSettings)
    audio_settings: AudioSettings = Field(default_factory=AudioSettings)
    ffmpeg_settings: FFmpegSettings = Field(default_factory=FFmpegSettings)
    recognition_settings: RecognitionSettings = Field(
        default_factory=RecognitionSettings
    )
    cover_settings: CoverSettings = Field(default_factory=CoverSettings)
    subtitle_style: SubtitleStyle = Field(default_factory=SubtitleStyle)

    project_root: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parent.parent.parent
    )
    uploads_path: Path = Field(default_factory=Path)
    outputs_path: Path = Field(default_factory=Path)
    videos_path: Path = Field(default_factory=Path)
    images_path: Path = Field(default_factory=Path)
    logs_path: Path = Field(default_factory=Path)

    @model_validator(mode="after")
    def derive_and_resolve_paths(self) -> "StudioConfig":
        self.uploads_path = self._resolve(self.uploads_directory)
        self.outputs_path = self._resolve(self.outputs_directory)
        self.videos_path = self.outputs_path / self.videos_subdir
        self.images_path = self.outputs_path / self.images_subdir
        self.logs_path = self.outputs_path / self.logs_subdir
        return self

    def _resolve(self, directory: str) -> Path:
        path = Path(directory)
        return path if path.is_absolute() else self.project_root / path

    def credential_search_paths(self) -> list[Path]:
        """Credential file locations, resolved against the project root."""
        return [
            self._resolve(p) for p in self.recognition_settings.credential_search_paths
        ]


def load_studio_config(config_path: Path) -> StudioConfig:
    logger.info(f"Loading studio config from: {config_path}")
    if not config_path.is_file():
        raise FileNotFoundError(f"Studio config file not found: {config_path}")
    try:
        with open(config_path, encoding="utf-8") as f:
            config_data = yaml.safe_load(f)
        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Config file is not a valid dictionary.")
        return StudioConfig(**config_data)
    except ValidationError as e:
        logger.error(f"Config validation error: {e}")
        raise ValueError("Config validation failed.") from e
    except Exception as e:
        logger.error(f"Error parsing config data: {e}", exc_info=True)
        raise ValueError("Unexpected error during config parsing.") from e


DEFAULT_CONFIG_PATH = (
    Path(__file__).resolve().parent.parent.parent / "config" / "studio.yaml"
)
