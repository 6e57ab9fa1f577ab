"""Caption cue allocation.

Turns recognizer utterances, or plain subtitle text plus an audio duration,
into ordered, numbered cues ready for SRT serialization.

Two modes are supported:
- Recognizer mode: utterances already carry timing and are only filtered
  and renumbered.
- Uniform fallback: each line of manually supplied text gets an equal slice
  of the audio duration. This is a stand-in for real forced alignment;
  anything implementing ``Aligner`` can replace ``UniformAligner`` without
  changing callers.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from src.utils import ms_to_srt_timestamp
from src.video.errors import InputValidationError
from src.video.video_config import SRT_TIME_SEPARATOR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Utterance:
    """A recognized or user-supplied span of speech.

    Attributes
    ----------
        start_time_ms: Start time in milliseconds
        end_time_ms: End time in milliseconds
        text: Spoken text, untrimmed

    """

    start_time_ms: int
    end_time_ms: int
    text: str


@dataclass(frozen=True)
class Cue:
    """A numbered, trimmed utterance ready for serialization."""

    index: int
    start_ms: int
    end_ms: int
    text: str

    def to_srt_block(self) -> str:
        return (
            f"{self.index}\n"
            f"{ms_to_srt_timestamp(self.start_ms)}{SRT_TIME_SEPARATOR}"
            f"{ms_to_srt_timestamp(self.end_ms)}\n"
            f"{self.text}\n\n"
        )


def cues_from_utterances(utterances: Iterable[Utterance]) -> list[Cue]:
    """Drop blank utterances and number the rest from 1 in original order."""
    cues: list[Cue] = []
    for utterance in utterances:
        text = utterance.text.strip()
        if not text:
            continue
        cues.append(
            Cue(
                index=len(cues) + 1,
                start_ms=utterance.start_time_ms,
                end_ms=utterance.end_time_ms,
                text=text,
            )
        )
    return cues


def split_subtitle_lines(subtitle_text: str) -> list[str]:
    """Split raw subtitle text into trimmed, non-empty lines."""
    return [line.strip() for line in subtitle_text.splitlines() if line.strip()]


def allocate_uniform_utterances(
    lines: Sequence[str], duration_ms: float
) -> list[Utterance]:
    """Give each non-blank line an equal share of the total duration.

    Lines are trimmed and blank ones dropped before slicing, so every slice
    belongs to a cue that will actually be written.

    Line ``i`` of ``n`` spans ``[i*D//n, (i+1)*D//n)`` where ``D`` is the
    duration truncated to whole milliseconds, so the cues tile ``[0, D)``
    exactly and the last cue ends on ``D``.

    Raises
    ------
        InputValidationError: If no line has text or the duration is negative

    """
    texts = [line.strip() for line in lines if line.strip()]
    if not texts:
        raise InputValidationError("Subtitle text is empty")
    if duration_ms < 0:
        raise InputValidationError(f"Invalid audio duration: {duration_ms}ms")

    total_ms = int(duration_ms)
    count = len(texts)
    return [
        Utterance(
            start_time_ms=index * total_ms // count,
            end_time_ms=(index + 1) * total_ms // count,
            text=text,
        )
        for index, text in enumerate(texts)
    ]


class Aligner(Protocol):
    """Derives per-line timing for a known transcript."""

    name: str

    def align(self, lines: Sequence[str], duration_ms: float) -> list[Utterance]: ...


class UniformAligner:
    """Placeholder aligner that spreads lines evenly across the audio."""

    name = "uniform"

    def align(self, lines: Sequence[str], duration_ms: float) -> list[Utterance]:
        utterances = allocate_uniform_utterances(lines, duration_ms)
        logger.debug(
            f"Uniformly allocated {len(utterances)} lines over {int(duration_ms)}ms"
        )
        return utterances
