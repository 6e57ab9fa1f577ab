"""Unit tests for caption cue allocation."""

import pytest

from src.video.cues import (
    Cue,
    UniformAligner,
    Utterance,
    allocate_uniform_utterances,
    cues_from_utterances,
    split_subtitle_lines,
)
from src.video.errors import InputValidationError


class TestUniformAllocation:
    """Test even time slicing of manual subtitle lines."""

    @pytest.mark.unit
    def test_two_lines_split_evenly(self):
        utterances = allocate_uniform_utterances(["Hello", "World"], 3000)

        assert utterances == [
            Utterance(0, 1500, "Hello"),
            Utterance(1500, 3000, "World"),
        ]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("line_count", "duration_ms"),
        [(1, 0), (1, 1234), (3, 1000), (7, 10_001), (4, 2), (12, 3_601_337.8)],
    )
    def test_cues_tile_the_duration(self, line_count: int, duration_ms: float):
        lines = [f"line {i}" for i in range(line_count)]
        utterances = allocate_uniform_utterances(lines, duration_ms)

        assert len(utterances) == line_count
        assert utterances[0].start_time_ms == 0
        assert utterances[-1].end_time_ms == int(duration_ms)
        for previous, current in zip(utterances, utterances[1:], strict=False):
            assert previous.end_time_ms == current.start_time_ms
        for utterance in utterances:
            assert utterance.start_time_ms <= utterance.end_time_ms

    @pytest.mark.unit
    def test_lines_are_trimmed(self):
        utterances = allocate_uniform_utterances(["  Hi there  "], 1000)
        assert utterances[0].text == "Hi there"

    @pytest.mark.unit
    def test_zero_lines_rejected(self):
        with pytest.raises(InputValidationError, match="empty"):
            allocate_uniform_utterances([], 1000)

    @pytest.mark.unit
    @pytest.mark.parametrize("lines", [["  "], ["", "\t", " \n "]])
    def test_blank_lines_only_rejected(self, lines: list[str]):
        with pytest.raises(InputValidationError, match="empty"):
            allocate_uniform_utterances(lines, 1000)

    @pytest.mark.unit
    def test_blank_lines_take_no_time(self):
        utterances = allocate_uniform_utterances(["a", "   ", "b", ""], 1000)

        assert utterances == [Utterance(0, 500, "a"), Utterance(500, 1000, "b")]

    @pytest.mark.unit
    def test_negative_duration_rejected(self):
        with pytest.raises(InputValidationError):
            allocate_uniform_utterances(["a"], -1)

    @pytest.mark.unit
    def test_uniform_aligner_delegates(self):
        aligner = UniformAligner()

        assert aligner.name == "uniform"
        assert aligner.align(["a", "b"], 1000) == allocate_uniform_utterances(
            ["a", "b"], 1000
        )


class TestSplitSubtitleLines:
    @pytest.mark.unit
    def test_blank_lines_dropped(self):
        text = "Hello\n\n   \n World \r\nAgain"
        assert split_subtitle_lines(text) == ["Hello", "World", "Again"]

    @pytest.mark.unit
    def test_only_whitespace(self):
        assert split_subtitle_lines(" \n\t\n") == []


class TestCuesFromUtterances:
    """Test filtering and renumbering of recognizer utterances."""

    @pytest.mark.unit
    def test_blank_utterances_skipped_without_gap(self):
        cues = cues_from_utterances(
            [
                Utterance(0, 1000, "a"),
                Utterance(1000, 2000, "  "),
                Utterance(2000, 3000, "b"),
            ]
        )

        assert cues == [Cue(1, 0, 1000, "a"), Cue(2, 2000, 3000, "b")]

    @pytest.mark.unit
    def test_text_is_trimmed(self):
        cues = cues_from_utterances([Utterance(0, 10, "  Hello \n")])
        assert cues[0].text == "Hello"

    @pytest.mark.unit
    def test_empty_input(self):
        assert cues_from_utterances([]) == []
