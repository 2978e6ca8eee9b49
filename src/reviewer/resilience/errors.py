"""Reviewer exception hierarchy and error classification.

Only root validation and pool misconfiguration are fatal to a run.
Everything else is classified here so that per-file failures can be
logged and reported with a category:
- Structured logging (which errors are transient vs permanent)
- Informative report messages (timeout vs auth vs server)
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from reviewer.constants import ERROR_TRUNCATION_CHARS


class ReviewerError(Exception):
    """Base class for all reviewer errors."""


class InvalidRootError(ReviewerError):
    """Scan root is missing or is not a directory."""

    def __init__(self, root: Path, reason: str) -> None:
        super().__init__(f"Invalid scan root {root}: {reason}")
        self.root = root
        self.reason = reason


class ConfigurationError(ReviewerError):
    """A component was constructed with unusable settings."""


class ResponseParseError(ReviewerError):
    """The analysis model returned something that is not a review.

    The raw response is never included in the message.
    """


class ErrorClass(Enum):
    TRANSIENT = "transient"  # 429, network errors
    SERVER = "server"  # 500, 502, 503
    TIMEOUT = "timeout"  # deadline exceeded
    CLIENT = "client"  # 400, 401, 403, malformed response
    UNKNOWN = "unknown"


def classify_error(error: Exception) -> ErrorClass:
    """Classify an error to determine how it is reported.

    Checks structured attributes first (status_code), falls back
    to string matching for untyped exceptions.
    """
    if isinstance(error, ResponseParseError):
        return ErrorClass.CLIENT

    # 1. Structured status_code attribute (httpx, openai, litellm)
    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        if status_code == 429:
            return ErrorClass.TRANSIENT
        if 400 <= status_code < 500:
            return ErrorClass.CLIENT
        if 500 <= status_code < 600:
            return ErrorClass.SERVER

    if isinstance(error, TimeoutError):
        return ErrorClass.TIMEOUT
    if isinstance(error, ConnectionError):
        return ErrorClass.TRANSIENT

    # 2. String matching for untyped exceptions
    msg = str(error).lower()

    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "429" in msg or "rate limit" in msg or "rate_limit" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("500", "502", "503", "504")):
        return ErrorClass.SERVER
    if "econnrefused" in msg or "connection" in msg:
        return ErrorClass.TRANSIENT
    if any(code in msg for code in ("400", "401", "403", "404")):
        return ErrorClass.CLIENT

    return ErrorClass.UNKNOWN


_RETRYABLE = frozenset({
    ErrorClass.TRANSIENT,
    ErrorClass.SERVER,
    ErrorClass.TIMEOUT,
})


def is_retryable(error: Exception) -> bool:
    """Return True if the error category would succeed on a later attempt."""
    return classify_error(error) in _RETRYABLE


def describe_error(
    error: Exception, limit: int = ERROR_TRUNCATION_CHARS
) -> str:
    """One-line ``[class] Type: message`` summary for reports."""
    text = str(error).splitlines()[0] if str(error) else ""
    if len(text) > limit:
        text = text[:limit] + "..."
    label = classify_error(error).value
    name = type(error).__name__
    return f"[{label}] {name}: {text}" if text else f"[{label}] {name}"
