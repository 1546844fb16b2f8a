"""Shared fixtures: a scriptable FastAPI stand-in for the processing service."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import pytest
from fastapi import FastAPI, HTTPException, Request

from episode_trimmer.config import Settings

SCAN_PAYLOAD: dict[str, Any] = {
    "chapters": {"00:00": 0, "01:30": 1, "22:00": 2, "23:30": 3},
    "audioTracks": [{"index": 0, "lang": "jpn", "title": ""}],
    "firstFile": "/media/in/Episode 01.mkv",
}


class FakeProcessingService:
    """Records requests and replays scripted responses.

    ``statuses`` is consumed one entry per status query; the last entry
    repeats. An ``int`` entry is answered as that HTTP error status.
    """

    def __init__(self) -> None:
        self.scan_payload: Any = SCAN_PAYLOAD
        self.scan_error: int | None = None
        self.scan_gate: asyncio.Event | None = None  # holds scan responses until set
        self.process_error: int | None = None
        self.process_ack: Any = {"status": "started"}
        self.statuses: list[dict[str, Any] | int] = []

        self.scan_paths: list[str] = []
        self.process_bodies: list[dict[str, Any]] = []
        self.status_calls = 0

        self.app = FastAPI()
        self.app.add_api_route("/api/scan", self._scan, methods=["GET"], response_model=None)
        self.app.add_api_route("/api/process", self._process, methods=["POST"], response_model=None)
        self.app.add_api_route("/api/status", self._status, methods=["GET"], response_model=None)

    async def _scan(self, path: str) -> Any:
        self.scan_paths.append(path)
        if self.scan_gate is not None:
            await self.scan_gate.wait()
        if self.scan_error:
            raise HTTPException(status_code=self.scan_error, detail="ffprobe error")
        return self.scan_payload

    async def _process(self, request: Request) -> Any:
        self.process_bodies.append(await request.json())
        if self.process_error:
            raise HTTPException(status_code=self.process_error, detail="invalid JSON body")
        return self.process_ack

    async def _status(self) -> dict[str, Any]:
        self.status_calls += 1
        if not self.statuses:
            return {"status": "idle", "completed": 0, "total": 0, "percent": 0, "done": False}
        entry = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        if isinstance(entry, int):
            raise HTTPException(status_code=entry, detail="status unavailable")
        return entry

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=self.app),
            base_url="http://testserver",
        )


@pytest.fixture
def service() -> FakeProcessingService:
    return FakeProcessingService()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, poll_interval_seconds=0.01, max_poll_failures=3)  # type: ignore[call-arg]
