"""Trim-session workflow: scan -> configure -> submit -> poll.

``SessionController`` is the single owner of everything a UI observes. All
of its methods must be called from the event loop that runs it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

import httpx

from episode_trimmer.client.api_client import ScanClient, StatusClient, SubmissionClient
from episode_trimmer.client.models import AudioTrack, ProgressSnapshot, ScanResult, SubmissionAck
from episode_trimmer.config import Settings, build_http_client, get_settings
from episode_trimmer.errors import (
    InvalidTransition,
    PollError,
    ScanError,
    SubmissionError,
)
from episode_trimmer.session.poller import PollOutcome, ProgressPoller
from episode_trimmer.session.preview import KeepSegment, compute_keep_segments
from episode_trimmer.session.preview import stale_labels as find_stale_labels
from episode_trimmer.trim_config import (
    RangeField,
    TrimConfiguration,
    add_skip_range,
    parse_parts,
    remove_skip_range,
    set_audio_index,
    set_parts,
    update_skip_range,
)

logger = logging.getLogger(__name__)


class SessionState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"
    CONFIGURING = "configuring"
    SUBMITTING = "submitting"
    POLLING = "polling"


class ErrorKind(StrEnum):
    """Which operation a user-visible failure came from."""

    SCAN = "scan"
    SUBMISSION = "submission"
    POLL = "poll"


@dataclass(frozen=True)
class Notification:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class SessionView:
    """Immutable copy of the session taken on its event loop, safe to read from any thread."""

    state: SessionState
    config: TrimConfiguration
    progress: ProgressSnapshot | None
    notifications: tuple[Notification, ...]
    chapter_labels: tuple[str, ...]
    audio_tracks: tuple[AudioTrack, ...]
    stale_labels: tuple[str, ...]
    keep_segments: tuple[KeepSegment, ...]

    @property
    def editable(self) -> bool:
        return self.state is SessionState.CONFIGURING

    @property
    def is_polling(self) -> bool:
        return self.state is SessionState.POLLING


Listener = Callable[["SessionController"], None]


class SessionController:
    """State machine for one trim session.

    Errors never leave the machine in a failed state: the failure is
    recorded as a ``Notification`` and the session falls back to the last
    stable state.
    """

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_http = http is None
        self._http = http if http is not None else build_http_client(self.settings)

        self._scan_client = ScanClient(self._http, self.settings)
        self._submission_client = SubmissionClient(self._http, self.settings)
        self._poller = ProgressPoller(
            StatusClient(self._http, self.settings),
            interval=self.settings.poll_interval_seconds,
            max_failures=self.settings.max_poll_failures,
            on_snapshot=self._on_snapshot,
            on_error=self._on_poll_error,
            on_finished=self._on_poll_finished,
        )

        self.state = SessionState.IDLE
        self.scan_result: ScanResult | None = None
        self.config = TrimConfiguration()
        self.progress: ProgressSnapshot | None = None
        self.last_ack: SubmissionAck | None = None
        self.notifications: list[Notification] = []
        self._listeners: list[Listener] = []

    async def __aenter__(self) -> SessionController:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Observable view
    # ------------------------------------------------------------------

    @property
    def chapter_labels(self) -> list[str]:
        return self.scan_result.chapter_labels if self.scan_result else []

    @property
    def audio_tracks(self) -> list[AudioTrack]:
        return list(self.scan_result.audio_tracks) if self.scan_result else []

    @property
    def is_loading(self) -> bool:
        return self.state in (SessionState.SCANNING, SessionState.SUBMITTING)

    @property
    def is_polling(self) -> bool:
        return self.state is SessionState.POLLING

    @property
    def last_error(self) -> Notification | None:
        return self.notifications[-1] if self.notifications else None

    def keep_segments(self) -> list[KeepSegment]:
        if self.scan_result is None:
            return []
        return compute_keep_segments(self.scan_result.chapters, self.config.skip_ranges)

    def stale_labels(self) -> list[str]:
        """Skip range labels that the current scan does not know about."""
        chapters = self.scan_result.chapters if self.scan_result else {}
        return find_stale_labels(chapters, self.config.skip_ranges)

    def view(self) -> SessionView:
        return SessionView(
            state=self.state,
            config=self.config,
            progress=self.progress,
            notifications=tuple(self.notifications),
            chapter_labels=tuple(self.chapter_labels),
            audio_tracks=tuple(self.audio_tracks),
            stale_labels=tuple(self.stale_labels()),
            keep_segments=tuple(self.keep_segments()),
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every change; returns an unsubscribe function."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def clear_notifications(self) -> None:
        self.notifications.clear()
        self._changed()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _require(self, action: str, *allowed: SessionState) -> None:
        if self.state not in allowed:
            raise InvalidTransition(f"Cannot {action} while {self.state.value}")

    def _set_state(self, state: SessionState) -> None:
        if state is not self.state:
            logger.debug("Session %s -> %s", self.state.value, state.value)
            self.state = state
        self._changed()

    def _notify(self, kind: ErrorKind, message: str) -> None:
        self.notifications.append(Notification(kind, message))

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    async def scan(self, folder_path: str) -> ScanResult | None:
        """Inspect the folder's first episode.

        On failure the previous scan result, if any, stays in place.
        """
        self._require("scan", SessionState.IDLE, SessionState.CONFIGURING)
        previous = self.state
        self._set_state(SessionState.SCANNING)
        try:
            result = await self._scan_client.scan(folder_path)
        except ScanError as e:
            logger.error("Scan of %s failed: %s", folder_path, e)
            self._notify(ErrorKind.SCAN, f"Error scanning folder: {e}")
            return None
        else:
            self.scan_result = result
            self._reconcile_audio_index(result)
            self._set_state(SessionState.CONFIGURING)
            return result
        finally:
            if self.state is SessionState.SCANNING:
                self._set_state(previous)

    def _reconcile_audio_index(self, result: ScanResult) -> None:
        indices = [t.index for t in result.audio_tracks]
        if self.config.audio_index in indices:
            return
        fallback = indices[0] if indices else 0
        if fallback != self.config.audio_index:
            logger.info(
                "Audio track %d not in new scan, selecting %d",
                self.config.audio_index,
                fallback,
            )
        self.config = set_audio_index(self.config, fallback)

    def _edit(self, cfg: TrimConfiguration) -> TrimConfiguration:
        self.config = cfg
        self._changed()
        return cfg

    def add_skip_range(self) -> TrimConfiguration:
        self._require("edit skip ranges", SessionState.CONFIGURING)
        return self._edit(add_skip_range(self.config))

    def update_skip_range(self, index: int, field: RangeField | str, value: str) -> TrimConfiguration:
        self._require("edit skip ranges", SessionState.CONFIGURING)
        return self._edit(update_skip_range(self.config, index, field, value))

    def remove_skip_range(self, index: int) -> TrimConfiguration:
        self._require("edit skip ranges", SessionState.CONFIGURING)
        return self._edit(remove_skip_range(self.config, index))

    def set_parts(self, n: int) -> TrimConfiguration:
        self._require("change parts", SessionState.CONFIGURING)
        return self._edit(set_parts(self.config, n))

    def set_parts_text(self, raw: str) -> TrimConfiguration:
        """Set parts from user-typed text; rejects non-numeric input."""
        self._require("change parts", SessionState.CONFIGURING)
        return self._edit(set_parts(self.config, parse_parts(raw)))

    def set_audio_index(self, index: int) -> TrimConfiguration:
        self._require("select audio track", SessionState.CONFIGURING)
        return self._edit(set_audio_index(self.config, index))

    async def submit(self, input_path: str, output_path: str) -> SubmissionAck | None:
        """Start the job and begin polling its progress.

        Only reachable after a successful scan. The configuration is kept on
        failure so the user can retry.
        """
        self._require("submit", SessionState.CONFIGURING)
        self._set_state(SessionState.SUBMITTING)
        try:
            ack = await self._submission_client.submit(input_path, output_path, self.config)
        except SubmissionError as e:
            logger.error("Submission failed: %s", e)
            self._notify(ErrorKind.SUBMISSION, f"Error starting trim process: {e}")
            return None
        else:
            self.last_ack = ack
            self.progress = None
            self._set_state(SessionState.POLLING)
            self._poller.start()
            return ack
        finally:
            if self.state is SessionState.SUBMITTING:
                self._set_state(SessionState.CONFIGURING)

    def stop_polling(self) -> None:
        """Stop watching the job; the job itself keeps running remotely."""
        self._poller.stop()
        if self.state is SessionState.POLLING:
            self._set_state(SessionState.CONFIGURING)

    async def close(self) -> None:
        self._poller.stop()
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Poller callbacks
    # ------------------------------------------------------------------

    def _on_snapshot(self, tick: int, snapshot: ProgressSnapshot) -> None:
        if self.state is not SessionState.POLLING:
            return
        self.progress = snapshot
        logger.debug(
            "Tick %d: %s %d/%d (%.0f%%)",
            tick,
            snapshot.status,
            snapshot.completed,
            snapshot.total,
            snapshot.percent,
        )
        self._changed()

    def _on_poll_error(self, error: PollError) -> None:
        if self.state is not SessionState.POLLING:
            return
        self._notify(ErrorKind.POLL, str(error))
        self._changed()

    def _on_poll_finished(self, outcome: PollOutcome) -> None:
        if self.state is not SessionState.POLLING:
            return
        if outcome is PollOutcome.GAVE_UP:
            self._notify(
                ErrorKind.POLL,
                "Lost contact with the processing service; progress is no longer tracked.",
            )
        self._set_state(SessionState.CONFIGURING)
