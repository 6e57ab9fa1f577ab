"""SRT serialization for caption cues.

Renders utterances into SubRip text, numbering only the blocks that are
actually emitted, and writes the result to disk.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from src.utils import ensure_dirs_exist
from src.video.cues import Cue, Utterance, cues_from_utterances
from src.video.result_types import SubtitleResult
from src.video.subtitle_validation import check_srt_file
from src.video.video_config import SRT_ENCODING

logger = logging.getLogger(__name__)


def render_srt(utterances: Iterable[Utterance]) -> str:
    """Render utterances as SRT text.

    Each non-blank utterance becomes ``index``, ``start --> end``, the trimmed
    text and a blank separator line. Blank utterances are skipped without
    consuming a sequence number.
    """
    return render_cues(cues_from_utterances(utterances))


def render_cues(cues: Iterable[Cue]) -> str:
    return "".join(cue.to_srt_block() for cue in cues)


def write_srt_file(
    utterances: Iterable[Utterance],
    output_path: Path,
    timing_source: str = "",
) -> SubtitleResult:
    """Serialize utterances and write them to ``output_path`` as UTF-8.

    Args:
    ----
        utterances: Ordered utterances to serialize
        output_path: Destination SRT file
        timing_source: Label recorded on the result ('recognizer', 'uniform')

    Returns:
    -------
        SubtitleResult describing the written file

    """
    cues = cues_from_utterances(utterances)
    content = render_cues(cues)

    ensure_dirs_exist(output_path)
    output_path.write_text(content, encoding=SRT_ENCODING)

    result = SubtitleResult(
        cue_count=len(cues),
        timing_source=timing_source,
        duration_ms=cues[-1].end_ms if cues else 0,
    )
    result.attach(output_path)

    check = check_srt_file(output_path)
    for message in check.problems + check.notes:
        result.add_warning(message)

    logger.info(f"Wrote {len(cues)} cues to {output_path}")
    return result
