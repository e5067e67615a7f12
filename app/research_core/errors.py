"""Error taxonomy for the research service.

Each error carries the HTTP status it maps to when it reaches an endpoint
before streaming starts. Errors raised while a stream is open never become a
status code; the orchestrator turns them into the terminal ``error`` event.
"""
from __future__ import annotations


class ResearchError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, str]:
        return {"message": self.message}


class InvalidRequest(ResearchError):
    """Malformed or missing input, detected before any streaming begins."""

    status_code = 422


class UpstreamFailure(ResearchError):
    """A search or generation service failed, timed out, or answered garbage."""

    status_code = 502


class InvalidPayload(ResearchError):
    """A save request is missing ``query`` or ``research``."""

    status_code = 400


class PersistenceFailure(ResearchError):
    """The storage collaborator rejected a write."""

    status_code = 500


class Unauthorized(ResearchError):
    """The caller presented no valid identity."""

    status_code = 401


class ChannelClosedError(RuntimeError):
    """An event was written to a channel that can no longer accept it."""
