"""Unit tests for studio configuration module."""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from src.video.video_config import (
    DEFAULT_CONFIG_PATH,
    AspectProfile,
    FFmpegSettings,
    RecognitionSettings,
    StudioConfig,
    SubtitleStyle,
    VideoSettings,
    load_studio_config,
)


class TestSubtitleStyle:
    """Test SubtitleStyle model."""

    def test_defaults(self):
        style = SubtitleStyle()

        assert style.font_size == "24"
        assert style.font_color == "#FFFFFF"
        assert style.outline_color == "#000000"
        assert style.outline_width == "2"

    def test_camel_case_aliases(self):
        style = SubtitleStyle.model_validate(
            {"fontSize": 30, "fontColor": "#FF00CC", "outlineWidth": 1}
        )

        assert style.font_size == 30
        assert style.font_color == "#FF00CC"
        assert style.outline_width == 1

    def test_snake_case_names(self):
        assert SubtitleStyle(font_color="#00FF00").font_color == "#00FF00"

    @pytest.mark.parametrize("blank", ["", "   ", None])
    def test_blank_values_fall_back_to_defaults(self, blank):
        style = SubtitleStyle.model_validate(
            {
                "fontSize": blank,
                "fontColor": blank,
                "outlineColor": blank,
                "outline_width": blank,
            }
        )

        assert style == SubtitleStyle()

    def test_blank_value_keeps_other_overrides(self):
        style = SubtitleStyle(font_size="", font_color="#00FF00")

        assert style.font_size == "24"
        assert style.font_color == "#00FF00"


class TestSettings:
    def test_aspect_profile_frame_size(self):
        profile = AspectProfile(ratio="9:16", width=1080, height=1920, margin_v=60)

        assert profile.frame_size == "1080:1920"
        assert profile.is_portrait

    def test_invalid_default_aspect_ratio(self):
        with pytest.raises(ValidationError):
            VideoSettings(default_aspect_ratio="4:3")

    def test_ffprobe_derived_from_ffmpeg(self):
        settings = FFmpegSettings(executable_path="/opt/ffmpeg/bin/ffmpeg")

        assert settings.ffmpeg_binary == "/opt/ffmpeg/bin/ffmpeg"
        assert settings.ffprobe_binary == "/opt/ffmpeg/bin/ffprobe"

    def test_ffmpeg_defaults_to_path_lookup(self):
        settings = FFmpegSettings()

        assert settings.ffmpeg_binary == "ffmpeg"
        assert settings.ffprobe_binary == "ffprobe"

    @pytest.mark.parametrize(
        ("ffmpeg", "ffprobe"),
        [
            ("/srv/ffmpeg-tools/ffmpeg", "/srv/ffmpeg-tools/ffprobe"),
            ("/usr/local/ffmpeg/ffmpeg-6.1", "/usr/local/ffmpeg/ffprobe-6.1"),
            ("ffmpeg.exe", "ffprobe.exe"),
        ],
    )
    def test_ffprobe_only_renames_the_binary(self, ffmpeg: str, ffprobe: str):
        settings = FFmpegSettings(executable_path=ffmpeg)

        assert settings.ffprobe_binary == ffprobe

    def test_explicit_ffprobe_path_wins(self):
        settings = FFmpegSettings(
            executable_path="/opt/ffmpeg/bin/ffmpeg", ffprobe_path="/usr/bin/ffprobe"
        )

        assert settings.ffprobe_binary == "/usr/bin/ffprobe"

    def test_retry_attempts_must_be_positive(self):
        with pytest.raises(ValidationError):
            RecognitionSettings(retry_attempts=0)


class TestStudioConfig:
    def test_paths_resolve_against_project_root(self, temp_dir: Path):
        config = StudioConfig(project_root=temp_dir)

        assert config.uploads_path == temp_dir / "uploads"
        assert config.outputs_path == temp_dir / "outputs"
        assert config.videos_path == temp_dir / "outputs" / "videos"
        assert config.images_path == temp_dir / "outputs" / "images"
        assert config.logs_path == temp_dir / "outputs" / "logs"

    def test_absolute_directory_kept(self, temp_dir: Path):
        config = StudioConfig(
            project_root=temp_dir, outputs_directory=str(temp_dir / "elsewhere")
        )
        assert config.videos_path == temp_dir / "elsewhere" / "videos"

    def test_credential_search_paths(self, temp_dir: Path):
        config = StudioConfig(project_root=temp_dir / "app")

        assert config.credential_search_paths() == [
            temp_dir / "app" / ".piebox" / "env",
            temp_dir / "app" / ".." / ".piebox" / "env",
        ]


class TestLoadStudioConfig:
    def test_load_fixture(self, studio_config: StudioConfig, temp_dir: Path):
        assert studio_config.project_root == temp_dir
        assert studio_config.ffmpeg_settings.final_assembly_timeout_sec == 60
        assert studio_config.cover_settings.generator_script == "/opt/tools/image_gen.py"

    def test_shipped_config_loads(self):
        config = load_studio_config(DEFAULT_CONFIG_PATH)

        assert config.video_settings.default_aspect_ratio == "9:16"
        assert config.recognition_settings.api_path == "/asr/volcengine_quick"
        assert config.subtitle_style.font_size == "24"

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(FileNotFoundError):
            load_studio_config(temp_dir / "nope.yaml")

    def test_empty_file_uses_defaults(self, temp_dir: Path):
        config_file = temp_dir / "empty.yaml"
        config_file.write_text("", encoding="utf-8")

        config = load_studio_config(config_file)
        assert config.audio_settings.output_audio_bitrate == "192k"

    def test_invalid_values(self, temp_dir: Path):
        config_file = temp_dir / "bad.yaml"
        with open(config_file, "w", encoding="utf-8") as f:
            yaml.dump({"recognition_settings": {"retry_attempts": 0}}, f)

        with pytest.raises(ValueError, match="validation failed"):
            load_studio_config(config_file)

    def test_non_mapping(self, temp_dir: Path):
        config_file = temp_dir / "list.yaml"
        config_file.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError):
            load_studio_config(config_file)
