"""Error taxonomy for the trim-session client."""

from __future__ import annotations


class TrimmerError(Exception):
    """Base class for every error raised by this package."""


class RemoteServiceError(TrimmerError):
    """A request to the processing service failed.

    ``status_code`` is set when the service answered with a non-2xx status.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ScanError(RemoteServiceError):
    """Scan request failed or returned data that is not a scan result."""


class SubmissionError(RemoteServiceError):
    """Submitting a trim job failed."""


class PollError(RemoteServiceError):
    """A status query failed mid-poll."""


class InvalidPartCount(TrimmerError, ValueError):
    """Part count is not an integer >= 1."""


class IndexOutOfRange(TrimmerError, IndexError):
    """Skip range position does not exist in the configuration."""


class InvalidTransition(TrimmerError):
    """Session action requested from a state that does not allow it."""
