"""Pytest configuration and shared fixtures for narrated video studio tests."""

import logging
import tempfile
from collections.abc import Generator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
import yaml
from aioresponses import aioresponses

from src.asr.credentials import Credentials
from src.video.video_config import StudioConfig, load_studio_config


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture(autouse=True)
def restore_root_logging() -> Generator[None, None, None]:
    """Undo handler changes made by setup_logging during a test."""
    root_logger = logging.getLogger()
    original_handlers = root_logger.handlers[:]
    original_level = root_logger.level
    yield
    for handler in root_logger.handlers[:]:
        if handler not in original_handlers:
            root_logger.removeHandler(handler)
            handler.close()
    for handler in original_handlers:
        if handler not in root_logger.handlers:
            root_logger.addHandler(handler)
    root_logger.setLevel(original_level)


@pytest.fixture
def studio_config(temp_dir: Path) -> StudioConfig:
    """Create a studio configuration rooted in the temp directory."""
    config_data = {
        "project_root": str(temp_dir),
        "uploads_directory": "uploads",
        "outputs_directory": "outputs",
        "video_settings": {
            "output_codec": "libx264",
            "output_tune": "stillimage",
            "output_pixel_format": "yuv420p",
            "image_loop": 1,
            "subtitle_font_name": "PingFang SC",
            "default_aspect_ratio": "9:16",
        },
        "audio_settings": {
            "output_audio_codec": "aac",
            "output_audio_bitrate": "192k",
        },
        "ffmpeg_settings": {
            "executable_path": "ffmpeg",
            "final_assembly_timeout_sec": 60,
            "probe_timeout_sec": 10,
            "create_command_logs": True,
        },
        "recognition_settings": {
            "request_timeout_sec": 5,
            "retry_attempts": 1,
            "retry_min_wait_sec": 0,
            "retry_max_wait_sec": 0,
        },
        "cover_settings": {
            "python_executable": "python3",
            "generator_script": "/opt/tools/image_gen.py",
            "generation_timeout_sec": 30,
        },
    }

    config_file = temp_dir / "studio.yaml"
    with open(config_file, "w", encoding="utf-8") as f:
        yaml.dump(config_data, f, allow_unicode=True)

    return load_studio_config(config_file)


@pytest.fixture
def credentials() -> Credentials:
    """Gateway credentials for signing tests."""
    return Credentials(
        app_id="app-123",
        app_secret="s3cret",
        gateway_path="https://gateway.example.com",
    )


@pytest.fixture
def sample_audio(temp_dir: Path) -> Path:
    """Create a placeholder narration file."""
    audio_path = temp_dir / "03-morning_coffee.mp3"
    audio_path.write_bytes(b"ID3 mock audio data")
    return audio_path


@pytest.fixture
def sample_image(temp_dir: Path) -> Path:
    """Create a placeholder cover image."""
    image_path = temp_dir / "cover.png"
    image_path.write_bytes(b"\x89PNG mock image data")
    return image_path


@pytest.fixture
def sample_srt(temp_dir: Path) -> Path:
    """Create a small valid SRT file."""
    srt_path = temp_dir / "captions.srt"
    srt_path.write_text(
        "1\n00:00:00,000 --> 00:00:01,200\nHello\n\n"
        "2\n00:00:01,500 --> 00:00:02,800\nWorld\n\n",
        encoding="utf-8",
    )
    return srt_path


@pytest.fixture
def mock_process() -> AsyncMock:
    """A finished subprocess that exited cleanly with no output."""
    proc = AsyncMock()
    proc.communicate.return_value = (b"", b"")
    proc.returncode = 0
    return proc


@pytest.fixture
def mock_aioresponses() -> Generator[aioresponses, None, None]:
    """Mock HTTP responses for testing."""
    with aioresponses() as m:
        yield m
