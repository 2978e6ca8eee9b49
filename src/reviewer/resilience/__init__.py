"""Error taxonomy shared by the pipeline, service and CLI."""

from reviewer.resilience.errors import (
    ConfigurationError,
    ErrorClass,
    InvalidRootError,
    ResponseParseError,
    ReviewerError,
    classify_error,
    describe_error,
    is_retryable,
)

__all__ = [
    "ConfigurationError",
    "ErrorClass",
    "InvalidRootError",
    "ResponseParseError",
    "ReviewerError",
    "classify_error",
    "describe_error",
    "is_retryable",
]
