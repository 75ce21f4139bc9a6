"""FeedbackSense - AI-assisted categorization and sentiment analysis of customer feedback."""

from .config import ANALYSIS_VERSION, BATCH_CONFIG, MODEL_CONFIG
from .exceptions import (
    BatchCancelledError,
    ClassificationError,
    ConfigurationError,
    FeedbackSenseError,
    MalformedResponseError,
    RateLimitedError,
    RecordStoreError,
    RetryableClassificationError,
    ServiceUnavailableError,
    TransientClassificationError,
    ValidationError,
)

__version__ = "0.1.0"
__all__ = [
    "ANALYSIS_VERSION",
    "BATCH_CONFIG",
    "MODEL_CONFIG",
    "BatchCancelledError",
    "ClassificationError",
    "ConfigurationError",
    "FeedbackSenseError",
    "MalformedResponseError",
    "RateLimitedError",
    "RecordStoreError",
    "RetryableClassificationError",
    "ServiceUnavailableError",
    "TransientClassificationError",
    "ValidationError",
]
