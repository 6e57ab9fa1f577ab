"""Checks for SRT files written by the studio.

``check_srt_file`` parses a file strictly with pysrt and sorts what it finds
into two buckets. Problems make the file unusable for burning in: it cannot
be parsed, it has no cues, or a cue ends before it starts. Notes are
conditions a player tolerates, such as zero-length cues (uniform timing
produces these when the audio is shorter than one millisecond per line) or
cues that overlap the previous one.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pysrt  # type: ignore[import-untyped]

from src.video.video_config import SRT_ENCODING

logger = logging.getLogger(__name__)


@dataclass
class SrtCheck:
    path: Path
    cue_count: int = 0
    first_start_ms: int = 0
    last_end_ms: int = 0
    problems: list[str] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.cue_count > 0 and not self.problems


def check_srt_file(srt_path: Path) -> SrtCheck:
    """Parse ``srt_path`` and report problems and notes for each cue.

    Cue numbers in messages are the file's own sequence numbers.
    """
    check = SrtCheck(path=srt_path)
    if not srt_path.is_file():
        check.problems.append(f"SRT file not found: {srt_path}")
        return check

    try:
        subs = pysrt.open(
            str(srt_path),
            encoding=SRT_ENCODING,
            error_handling=pysrt.SubRipFile.ERROR_RAISE,
        )
    except (pysrt.Error, UnicodeDecodeError) as e:
        check.problems.append(f"SRT file could not be parsed: {e}")
        return check

    check.cue_count = len(subs)
    if not subs:
        check.problems.append(f"SRT file has no cues: {srt_path.name}")
        return check

    check.first_start_ms = int(subs[0].start.ordinal)
    check.last_end_ms = int(subs[-1].end.ordinal)

    previous_end = 0
    for position, sub in enumerate(subs, start=1):
        start, end = int(sub.start.ordinal), int(sub.end.ordinal)
        if sub.index != position:
            check.problems.append(
                f"Cue {sub.index} is numbered out of sequence (expected {position})"
            )
        if not sub.text.strip():
            check.problems.append(f"Cue {sub.index} has no text")
        if end < start:
            check.problems.append(
                f"Cue {sub.index} ends before it starts: {sub.start} --> {sub.end}"
            )
        elif end == start:
            check.notes.append(f"Cue {sub.index} has zero length at {sub.start}")
        if start < previous_end:
            check.notes.append(f"Cue {sub.index} overlaps the previous cue")
        previous_end = max(previous_end, end)

    for problem in check.problems:
        logger.warning(problem)
    logger.debug(
        f"Checked {srt_path.name}: {check.cue_count} cues, "
        f"{len(check.problems)} problems, {len(check.notes)} notes"
    )
    return check
