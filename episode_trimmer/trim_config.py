"""Trim configuration: skip ranges, part count and audio track selection.

``TrimConfiguration`` is an immutable value. Every operation below returns a
new configuration so the session controller can swap its state atomically.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import StrEnum

from episode_trimmer.client.models import SkipRangePayload, TrimOptions
from episode_trimmer.errors import IndexOutOfRange, InvalidPartCount


class RangeField(StrEnum):
    """Editable endpoints of a skip range."""

    START = "start"
    END = "end"


@dataclass(frozen=True)
class SkipRange:
    """Content to excise, bounded by two chapter labels.

    Labels are not checked against the scanned chapters; an empty or unknown
    label is ignored by the processing service.
    """

    start: str = ""
    end: str = ""


@dataclass(frozen=True)
class TrimConfiguration:
    """Immutable trim options assembled by the user for one session."""

    skip_ranges: tuple[SkipRange, ...] = ()
    parts: int = 1
    audio_index: int = 0

    def to_options(self) -> TrimOptions:
        return TrimOptions(
            skip_ranges=[SkipRangePayload(start=r.start, end=r.end) for r in self.skip_ranges],
            parts=self.parts,
            audio_index=self.audio_index,
        )


def _check_index(cfg: TrimConfiguration, index: int) -> None:
    if not 0 <= index < len(cfg.skip_ranges):
        raise IndexOutOfRange(
            f"No skip range at position {index} ({len(cfg.skip_ranges)} defined)"
        )


def add_skip_range(cfg: TrimConfiguration) -> TrimConfiguration:
    """Append an empty range at the end."""
    return replace(cfg, skip_ranges=cfg.skip_ranges + (SkipRange(),))


def update_skip_range(
    cfg: TrimConfiguration,
    index: int,
    field: RangeField | str,
    value: str,
) -> TrimConfiguration:
    """Replace one endpoint of the range at ``index``.

    Raises:
        IndexOutOfRange: ``index`` is not a position in ``skip_ranges``.
        ValueError: ``field`` is neither ``"start"`` nor ``"end"``.
    """
    _check_index(cfg, index)
    field = RangeField(field)
    ranges = list(cfg.skip_ranges)
    ranges[index] = replace(ranges[index], **{field.value: value})
    return replace(cfg, skip_ranges=tuple(ranges))


def remove_skip_range(cfg: TrimConfiguration, index: int) -> TrimConfiguration:
    """Delete the range at ``index``; later ranges shift down by one."""
    _check_index(cfg, index)
    return replace(cfg, skip_ranges=cfg.skip_ranges[:index] + cfg.skip_ranges[index + 1 :])


def set_parts(cfg: TrimConfiguration, n: object) -> TrimConfiguration:
    # bool is an int subclass but never a meaningful part count
    if isinstance(n, bool) or not isinstance(n, int) or n < 1:
        raise InvalidPartCount(f"Parts must be an integer >= 1, got {n!r}")
    return replace(cfg, parts=n)


def parse_parts(raw: str) -> int:
    """Parse user-entered text into a part count.

    Raises:
        InvalidPartCount: The text is not a base-10 integer >= 1.
    """
    text = raw.strip()
    try:
        n = int(text, 10)
    except ValueError:
        raise InvalidPartCount(f"Parts must be a whole number, got {raw!r}") from None
    if n < 1:
        raise InvalidPartCount(f"Parts must be at least 1, got {n}")
    return n


def set_audio_index(cfg: TrimConfiguration, index: int) -> TrimConfiguration:
    """Select the audio track; the index is not checked against the scan."""
    return replace(cfg, audio_index=index)
