"""Tests for the keep-segment preview and stale label detection."""

from __future__ import annotations

from episode_trimmer.session.preview import KeepSegment, compute_keep_segments, stale_labels, total_length
from episode_trimmer.trim_config import SkipRange

CHAPTERS = {
    "Opening": 0.0,
    "Part A": 90.0,
    "Part B": 700.0,
    "Ending": 1320.0,
    "Preview": 1410.0,
    "End": 1440.0,
}


def _spans(segments: list[KeepSegment]) -> list[tuple[float, float]]:
    return [(s.start, s.end) for s in segments]


class TestComputeKeepSegments:
    def test_no_ranges_keeps_everything(self) -> None:
        assert _spans(compute_keep_segments(CHAPTERS, [])) == [(0.0, 1440.0)]

    def test_opening_and_ending_removed(self) -> None:
        ranges = [SkipRange("Opening", "Part A"), SkipRange("Ending", "Preview")]
        segments = compute_keep_segments(CHAPTERS, ranges)
        assert _spans(segments) == [(90.0, 1320.0), (1410.0, 1440.0)]
        assert sum(s.duration for s in segments) == 1260.0

    def test_middle_cut_splits_segment(self) -> None:
        segments = compute_keep_segments(CHAPTERS, [SkipRange("Part B", "Ending")])
        assert _spans(segments) == [(0.0, 700.0), (1320.0, 1440.0)]

    def test_unresolved_and_inverted_ranges_ignored(self) -> None:
        ranges = [
            SkipRange("Opening", ""),
            SkipRange("Nope", "Ending"),
            SkipRange("Ending", "Part A"),
            SkipRange("Part A", "Part A"),
        ]
        assert _spans(compute_keep_segments(CHAPTERS, ranges)) == [(0.0, 1440.0)]

    def test_range_order_does_not_matter(self) -> None:
        a = [SkipRange("Opening", "Part A"), SkipRange("Ending", "End")]
        assert compute_keep_segments(CHAPTERS, a) == compute_keep_segments(CHAPTERS, list(reversed(a)))

    def test_everything_skipped_keeps_whole_file(self) -> None:
        assert _spans(compute_keep_segments(CHAPTERS, [SkipRange("Opening", "End")])) == [(0.0, 1440.0)]

    def test_without_end_chapter_uses_last_offset(self) -> None:
        chapters = {"00:00": 0.0, "01:30": 90.0, "22:00": 1320.0}
        assert total_length(chapters) == 1320.0
        assert _spans(compute_keep_segments(chapters, [SkipRange("00:00", "01:30")])) == [(90.0, 1320.0)]

    def test_empty_chapters(self) -> None:
        assert total_length({}) == 0.0
        assert _spans(compute_keep_segments({}, [SkipRange("a", "b")])) == [(0.0, 0.0)]


class TestStaleLabels:
    def test_reports_unknown_labels_once(self) -> None:
        ranges = [SkipRange("Opening", "Old OP End"), SkipRange("Old OP End", ""), SkipRange("Gone", "End")]
        assert stale_labels(CHAPTERS, ranges) == ["Old OP End", "Gone"]

    def test_empty_labels_are_not_stale(self) -> None:
        assert stale_labels(CHAPTERS, [SkipRange(), SkipRange("Opening", "")]) == []
