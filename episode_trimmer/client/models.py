"""Pydantic schemas for the processing service's scan/process/status endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# Chapter label -> offset in seconds, in the order the scan returned them.
ChapterSet = dict[str, float]


class AudioTrack(BaseModel):
    """An audio stream found in the scanned file."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    lang: str = ""
    title: str = ""

    @property
    def label(self) -> str:
        """Display text, e.g. ``#1 — jpn (Commentary)``."""
        text = f"#{self.index} — {self.lang or 'Unknown'}"
        if self.title:
            text += f" ({self.title})"
        return text


class ScanResult(BaseModel):
    """Response body of ``GET /api/scan``."""

    model_config = ConfigDict(populate_by_name=True)

    chapters: ChapterSet
    audio_tracks: list[AudioTrack] = Field(alias="audioTracks")
    first_file: str = Field(alias="firstFile")

    @field_validator("chapters", "audio_tracks", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        # The service encodes empty collections as null.
        if value is None:
            return {} if info.field_name == "chapters" else []
        return value

    @property
    def chapter_labels(self) -> list[str]:
        return list(self.chapters)


class SkipRangePayload(BaseModel):
    start: str = ""
    end: str = ""


class TrimOptions(BaseModel):
    """The ``options`` object of ``POST /api/process``."""

    model_config = ConfigDict(populate_by_name=True)

    skip_ranges: list[SkipRangePayload] = Field(default_factory=list, alias="skipRanges")
    parts: int = 1
    audio_index: int = Field(default=0, alias="audioIndex")


class ProcessRequest(BaseModel):
    """Request body for ``POST /api/process``."""

    input: str
    output: str
    options: TrimOptions


class SubmissionAck(BaseModel):
    """Acknowledgment returned when the service accepts a job.

    The reference service answers ``{"status": "started"}``. The body is
    otherwise free-form: ``status`` may be any JSON value and other fields
    are kept as extras.
    """

    model_config = ConfigDict(extra="allow")

    status: Any = None


class ProgressSnapshot(BaseModel):
    """Response body of ``GET /api/status``."""

    model_config = ConfigDict(frozen=True)

    status: str  # "idle", "processing", "merging", "done", ...
    completed: int
    total: int
    percent: float
    done: bool
