"""Custom exceptions for FeedbackSense."""

from typing import Any


class FeedbackSenseError(Exception):
    """Base exception for FeedbackSense."""

    pass


class ConfigurationError(FeedbackSenseError):
    """Raised when configuration values are missing or invalid."""

    pass


class ValidationError(FeedbackSenseError):
    """Raised when input validation fails."""

    pass


class ClassificationError(FeedbackSenseError):
    """Raised when feedback classification fails."""

    pass


class RetryableClassificationError(ClassificationError):
    """Raised for classification failures that may succeed on a later attempt."""

    pass


class RateLimitedError(RetryableClassificationError):
    """Raised when the classification service reports a rate limit or quota hit."""

    pass


class TransientClassificationError(RetryableClassificationError):
    """Raised for timeouts, connection failures and 5xx responses."""

    pass


class MalformedResponseError(ClassificationError):
    """Raised when the classification service returns an unusable response."""

    pass


class ServiceUnavailableError(ClassificationError):
    """Raised when the classification service cannot be called at all."""

    pass


class BatchCancelledError(FeedbackSenseError):
    """Raised when a batch run is cancelled between windows.

    The results of every window that completed before cancellation are kept
    on ``partial_results`` in input order.
    """

    def __init__(self, message: str, partial_results: list[Any] | None = None) -> None:
        super().__init__(message)
        self.partial_results = partial_results or []


class RecordStoreError(FeedbackSenseError):
    """Raised when the record store cannot find or write a feedback item."""

    pass
