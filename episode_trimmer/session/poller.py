"""Periodic job-status polling with cooperative cancellation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum

from episode_trimmer.client.api_client import StatusClient
from episode_trimmer.client.models import ProgressSnapshot
from episode_trimmer.errors import PollError

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[int, ProgressSnapshot], None]
ErrorCallback = Callable[[PollError], None]


class PollOutcome(StrEnum):
    """Why a polling stream ended on its own."""

    COMPLETED = "completed"
    GAVE_UP = "gave_up"


FinishedCallback = Callable[[PollOutcome], None]


class ProgressPoller:
    """Queries job status until the service reports ``done``.

    The first query is issued immediately. Each following query starts
    ``interval`` seconds after the previous one resolved, so at most one
    request is in flight and snapshots arrive in tick order.

    ``stop()`` bumps a generation counter and cancels the task. Anything the
    old stream produces afterwards is discarded, including a response that
    was already on its way back.
    """

    def __init__(
        self,
        status_client: StatusClient,
        interval: float = 2.0,
        max_failures: int = 5,
        on_snapshot: SnapshotCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_finished: FinishedCallback | None = None,
    ) -> None:
        self._status_client = status_client
        self.interval = interval
        self.max_failures = max_failures
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.on_finished = on_finished

        self._task: asyncio.Task[None] | None = None
        self._generation = 0
        self.latest: ProgressSnapshot | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None

    def start(self) -> None:
        """Begin a polling stream. Does nothing if one is already running."""
        if self._task is not None:
            return
        self._generation += 1
        self.latest = None
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._generation))
        logger.debug("Polling started (generation %d, every %.1fs)", self._generation, self.interval)

    def stop(self) -> None:
        """Cancel the current stream. Safe to call at any time."""
        if self._task is None:
            return
        task = self._task
        self._task = None
        self._generation += 1
        if task is not asyncio.current_task():
            task.cancel()
        logger.debug("Polling stopped")

    def _finish(self, generation: int) -> bool:
        """Mark the stream stopped from inside the task."""
        if generation != self._generation:
            return False
        self._task = None
        self._generation += 1
        return True

    async def _run(self, generation: int) -> None:
        tick = 0
        failures = 0
        while generation == self._generation:
            try:
                snapshot = await self._status_client.fetch_status()
            except PollError as exc:
                if generation != self._generation:
                    return
                failures += 1
                logger.warning("Status query failed (%d in a row): %s", failures, exc)
                self._emit(self.on_error, exc)
                if self.max_failures and failures >= self.max_failures:
                    if self._finish(generation):
                        logger.error("Giving up on job status after %d failed queries", failures)
                        self._emit(self.on_finished, PollOutcome.GAVE_UP)
                    return
            else:
                if generation != self._generation:
                    return
                failures = 0
                tick += 1
                self.latest = snapshot
                if snapshot.done:
                    # Stopped before delivery so subscribers see the final state.
                    self._finish(generation)
                    self._emit(self.on_snapshot, tick, snapshot)
                    logger.info("Job finished: %s", snapshot.status)
                    self._emit(self.on_finished, PollOutcome.COMPLETED)
                    return
                self._emit(self.on_snapshot, tick, snapshot)

            if generation != self._generation:
                return
            await asyncio.sleep(self.interval)

    def _emit(self, callback: Callable[..., None] | None, *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("Poll subscriber %r failed", callback)
