"""Utility Functions Module for Narrated Video Studio

This module provides a collection of utility functions used throughout the
project for common operations such as SRT timestamp conversion, file naming
and directory management.
"""

import logging
import os
import re
from pathlib import Path

import pysrt  # type: ignore[import-untyped]

# Constants for file handling
MAX_FILENAME_LENGTH = 200  # Maximum safe filename length

MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000
MS_PER_SECOND = 1_000

logger = logging.getLogger(__name__)


def ms_to_srt_timestamp(ms: int) -> str:
    """Convert milliseconds to SRT timestamp format (HH:MM:SS,mmm).

    Negative input is clamped to zero. Hours are not capped at 99; longer
    durations simply render a wider hour field.

    Args:
    ----
        ms: Time in milliseconds

    Returns:
    -------
        Formatted timestamp string in SRT format

    """
    ms = max(int(ms), 0)
    hours = ms // MS_PER_HOUR
    minutes = (ms % MS_PER_HOUR) // MS_PER_MINUTE
    seconds = (ms % MS_PER_MINUTE) // MS_PER_SECOND
    millis = ms % MS_PER_SECOND
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def srt_timestamp_to_ms(timestamp: str) -> int:
    """Parse an SRT timestamp (HH:MM:SS,mmm) back into milliseconds.

    Raises
    ------
        ValueError: If the text is not a valid SRT timestamp

    """
    try:
        return int(pysrt.SubRipTime.from_string(timestamp.strip()).ordinal)
    except (pysrt.InvalidTimeString, ValueError) as e:
        raise ValueError(f"Invalid SRT timestamp: {timestamp!r}") from e


def ensure_dirs_exist(path: Path) -> None:
    """Ensure that the parent directories for the given path exist.
    If path is a directory, ensure the path itself exists.
    Logs an error but does not re-raise exceptions during directory creation.
    """
    try:
        if path.suffix:  # If path includes a filename, make parent dirs
            path.parent.mkdir(parents=True, exist_ok=True)
        else:  # If path is a directory path, make the path itself
            path.mkdir(parents=True, exist_ok=True)
    except Exception as e:
        logger.error(f"Failed to create directories for {path}: {e}")


def sanitize_filename(filename: str, fallback: str = "file") -> str:
    """Sanitize a string so it can be used as a single filename component.

    Path components are dropped, characters that are invalid on common
    filesystems are replaced with underscores, and the length is capped.
    Spaces and non-ASCII characters are preserved.

    Args:
    ----
        filename: The input string.
        fallback: Name returned when nothing usable remains.

    Returns:
    -------
        A sanitized string suitable for filesystem use.

    """
    if not filename or not filename.strip():
        return fallback

    # Keep only the last path component, whichever separator was used
    name = re.split(r"[\\/]", filename)[-1]

    name = re.sub(r'[<>:"|?*\x00-\x1f]', "_", name)
    name = re.sub(r"_{3,}", "_", name)
    name = name.strip(". _")

    if not name:
        return fallback

    if len(name) > MAX_FILENAME_LENGTH:
        name_part, ext_part = os.path.splitext(name)
        name_part = name_part[: MAX_FILENAME_LENGTH - len(ext_part)].strip("._ ")
        name = (name_part or fallback) + ext_part

    return name


__all__ = [
    "MAX_FILENAME_LENGTH",
    "ensure_dirs_exist",
    "ms_to_srt_timestamp",
    "sanitize_filename",
    "srt_timestamp_to_ms",
]
