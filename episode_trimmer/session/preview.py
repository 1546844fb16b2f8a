"""Preview of what a trim will keep, computed from the scanned chapters.

Mirrors the processing service's cutting rule so the user can check skip
ranges before submitting.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from episode_trimmer.client.models import ChapterSet
from episode_trimmer.trim_config import SkipRange

# Chapter label the service uses for the end of the file.
END_LABEL = "End"


@dataclass(frozen=True)
class KeepSegment:
    """A span of the episode, in seconds, that survives trimming."""

    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


def total_length(chapters: ChapterSet) -> float:
    if END_LABEL in chapters:
        return chapters[END_LABEL]
    return max(chapters.values(), default=0.0)


def compute_keep_segments(
    chapters: ChapterSet,
    skip_ranges: Iterable[SkipRange],
) -> list[KeepSegment]:
    """Subtract every resolvable skip range from the whole episode.

    A range is ignored when either label is missing from ``chapters`` or its
    end does not come after its start. If the ranges cover everything, the
    whole episode is kept.
    """
    length = total_length(chapters)
    segments = [KeepSegment(0.0, length)]

    for skip in skip_ranges:
        if skip.start not in chapters or skip.end not in chapters:
            continue
        s, e = chapters[skip.start], chapters[skip.end]
        if e <= s:
            continue

        remaining: list[KeepSegment] = []
        for seg in segments:
            if seg.end <= s or seg.start >= e:
                remaining.append(seg)
                continue
            if seg.start < s:
                remaining.append(KeepSegment(seg.start, s))
            if seg.end > e:
                remaining.append(KeepSegment(e, seg.end))
        segments = remaining

    if not segments:
        segments = [KeepSegment(0.0, length)]
    return segments


def stale_labels(chapters: ChapterSet, skip_ranges: Iterable[SkipRange]) -> list[str]:
    """Non-empty range labels that are not in ``chapters``, first-seen order."""
    seen: dict[str, None] = {}
    for skip in skip_ranges:
        for label in (skip.start, skip.end):
            if label and label not in chapters:
                seen.setdefault(label, None)
    return list(seen)
