"""Exception hierarchy shared by the clients, services and routes."""
from __future__ import annotations

from typing import Optional


class LearningPathError(Exception):
    """Base exception for the backend."""


class ConfigurationError(LearningPathError):
    """A required credential or setting is missing."""

    def __init__(self, setting: str, message_key: str):
        self.setting = setting
        self.message_key = message_key
        super().__init__(f"{setting} is not configured")


class UpstreamError(LearningPathError):
    """Non-OK answer (or no answer) from the search or LLM API."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class RateLimitError(UpstreamError):
    """HTTP 429 from an upstream API."""


class UpstreamServerError(UpstreamError):
    """HTTP 5xx from an upstream API."""


class UpstreamRequestError(UpstreamError):
    """HTTP 4xx (other than 429). Retrying will not help."""


class UpstreamTimeoutError(UpstreamError):
    """A single upstream attempt ran past its timeout."""


def error_for_status(status: int, detail: str = "") -> UpstreamError:
    """Map a non-OK HTTP status onto the matching UpstreamError subclass."""
    message = f"HTTP {status}: {detail[:200]}" if detail else f"HTTP {status}"
    if status == 429:
        return RateLimitError(message, status)
    if status >= 500:
        return UpstreamServerError(message, status)
    return UpstreamRequestError(message, status)


class NoSearchResultsError(LearningPathError):
    """Every query of a batch came back without usable text."""


class NoCoursesExtractedError(LearningPathError):
    """The extraction step produced no course for the major."""


class RecordNotFoundError(LearningPathError):
    """No learning path record with the requested id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Learning record {record_id} not found")
