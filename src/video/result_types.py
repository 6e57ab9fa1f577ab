"""Result types returned by studio operations.

A result only ever describes completed work. Failures are raised as
``StudioError`` subclasses, so none of these types carries an error list or a
success flag. Warnings record conditions the caller should see even though
the operation finished.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class StudioResult:
    warnings: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value


@dataclass
class ArtifactResult(StudioResult):
    """A completed operation that left a file on disk."""

    path: Path | None = None
    size_bytes: int = 0

    def attach(self, path: Path) -> None:
        """Record the produced file. The caller has already verified it exists."""
        self.path = path
        self.size_bytes = path.stat().st_size


@dataclass
class SubtitleResult(ArtifactResult):
    cue_count: int = 0
    timing_source: str = ""  # 'recognizer' or the aligner's name
    duration_ms: int = 0


@dataclass
class TranscriptionResult(StudioResult):
    """Recognizer transcript plus the subtitle file written from it."""

    text: str = ""
    duration: float | None = None
    utterances: list[Any] = field(default_factory=list)
    subtitle: SubtitleResult | None = None


@dataclass
class VideoResult(ArtifactResult):
    resolution: tuple[int, int] = (0, 0)
    aspect_ratio: str = ""
    has_subtitles: bool = False
    download_filename: str = ""
    command_line: str = ""


@dataclass
class CoverResult(ArtifactResult):
    prompt: str = ""
    aspect_ratio: str = ""
