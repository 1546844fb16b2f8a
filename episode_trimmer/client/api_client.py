"""Async HTTP clients for the episode processing service."""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from episode_trimmer.client.models import ProcessRequest, ProgressSnapshot, ScanResult, SubmissionAck
from episode_trimmer.config import Settings, get_settings
from episode_trimmer.errors import PollError, ScanError, SubmissionError
from episode_trimmer.trim_config import TrimConfiguration

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Convert backslash separators to forward slashes.

    The service expects POSIX-style paths whatever OS the client runs on.
    """
    return path.replace("\\", "/")


class ScanClient:
    """Inspects the first episode of a folder for chapters and audio tracks."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings | None = None) -> None:
        self._http = http
        self._timeout = (settings or get_settings()).scan_timeout

    async def scan(self, folder_path: str) -> ScanResult:
        """Fetch chapters and audio tracks for ``folder_path``.

        Raises:
            ScanError: Service unreachable, non-2xx status, or a body that
                does not parse as a scan result.
        """
        path = normalize_path(folder_path)
        logger.info("Scanning %s", path)
        try:
            r = await self._http.get("/api/scan", params={"path": path}, timeout=self._timeout)
            r.raise_for_status()
            result = ScanResult.model_validate(r.json())
        except httpx.HTTPStatusError as e:
            raise ScanError(
                f"Scan failed: {e.response.status_code} {e.response.text.strip()}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ScanError(f"Scan failed: {e}") from e
        except (ValueError, ValidationError) as e:
            # ValueError covers json.JSONDecodeError
            raise ScanError(f"Scan returned an unreadable result: {e}") from e

        logger.info(
            "Scan of %s found %d chapters and %d audio tracks",
            result.first_file or path,
            len(result.chapters),
            len(result.audio_tracks),
        )
        return result


class SubmissionClient:
    """Starts a trim job for every episode in a folder."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings | None = None) -> None:
        self._http = http
        self._timeout = (settings or get_settings()).submit_timeout

    async def submit(
        self,
        input_path: str,
        output_path: str,
        config: TrimConfiguration,
    ) -> SubmissionAck:
        """Send the job. A successful return means accepted, not finished.

        Raises:
            SubmissionError: Transport failure, non-2xx status or an
                unparseable acknowledgment.
        """
        body = ProcessRequest(
            input=normalize_path(input_path),
            output=normalize_path(output_path),
            options=config.to_options(),
        )
        try:
            r = await self._http.post(
                "/api/process",
                json=body.model_dump(by_alias=True),
                timeout=self._timeout,
            )
            r.raise_for_status()
            payload = r.json()
        except httpx.HTTPStatusError as e:
            raise SubmissionError(
                f"Submission failed: {e.response.status_code} {e.response.text.strip()}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise SubmissionError(f"Submission failed: {e}") from e
        except ValueError as e:
            raise SubmissionError(f"Submission returned an unreadable acknowledgment: {e}") from e

        if not isinstance(payload, dict):
            payload = {"status": payload}
        ack = SubmissionAck.model_validate(payload)
        logger.info("Job accepted for %s -> %s (status=%s)", body.input, body.output, ack.status)
        return ack


class StatusClient:
    """Reads the service's progress for the running job."""

    def __init__(self, http: httpx.AsyncClient, settings: Settings | None = None) -> None:
        self._http = http
        self._timeout = (settings or get_settings()).status_timeout

    async def fetch_status(self) -> ProgressSnapshot:
        """Raises PollError on any failure."""
        try:
            r = await self._http.get("/api/status", timeout=self._timeout)
            r.raise_for_status()
            return ProgressSnapshot.model_validate(r.json())
        except httpx.HTTPStatusError as e:
            raise PollError(
                f"Status query failed: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise PollError(f"Status query failed: {e}") from e
        except (ValueError, ValidationError) as e:
            raise PollError(f"Status query returned an unreadable snapshot: {e}") from e
