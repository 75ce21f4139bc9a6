"""Configuration settings for FeedbackSense."""

import os

from .exceptions import ConfigurationError


def _env_number(name: str, default: float, cast: type = float) -> float:
    """Read a numeric override from the environment."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {name}: {raw!r}. Expected {cast.__name__}."
        ) from e


# Model configuration
MODEL_CONFIG: dict[str, str | float | int] = {
    "classification_model": os.getenv("FEEDBACKSENSE_MODEL", "gpt-4o-mini"),
    "temperature": 0.1,
    "max_tokens": 500,
    "request_timeout": _env_number("FEEDBACKSENSE_REQUEST_TIMEOUT", 30.0),
    "max_workers": int(_env_number("FEEDBACKSENSE_MAX_WORKERS", 4, int)),
}

ANALYSIS_VERSION = "2.1.0"

# Built-in feedback categories; general_inquiry is the catch-all
DEFAULT_CATEGORIES: list[dict[str, str]] = [
    {
        "id": "feature_request",
        "name": "Feature Request",
        "description": "Requests for new features or improvements",
        "keywords": "feature,add,request,suggestion,improve,enhancement",
    },
    {
        "id": "bug_report",
        "name": "Bug Report",
        "description": "Reports of technical issues, errors, or malfunctions",
        "keywords": "bug,error,broken,crash,issue,problem,not working,fails,glitch",
    },
    {
        "id": "shipping_complaint",
        "name": "Shipping Complaint",
        "description": "Issues related to delivery, packaging, or shipping",
        "keywords": "delivery,shipping,arrived,package,late,delayed,damaged,lost",
    },
    {
        "id": "product_quality",
        "name": "Product Quality",
        "description": "Concerns about product quality, materials, or build",
        "keywords": "quality,material,build,durability,defective,cheap,flimsy",
    },
    {
        "id": "customer_service",
        "name": "Customer Service",
        "description": "Feedback about customer support or service experience",
        "keywords": "service,support,staff,representative,help,rude,unhelpful,friendly",
    },
    {
        "id": "general_inquiry",
        "name": "General Inquiry",
        "description": "General questions or neutral feedback",
        "keywords": "question,inquiry,information,help,general",
    },
    {
        "id": "refund_request",
        "name": "Refund Request",
        "description": "Requests for refunds, returns, or billing issues",
        "keywords": "refund,return,money back,cancel,charge,billing,payment",
    },
    {
        "id": "compliment",
        "name": "Compliment",
        "description": "Positive feedback, praise, or compliments",
        "keywords": "great,excellent,amazing,love,perfect,awesome,fantastic,thank you",
    },
]

FALLBACK_CATEGORY = "general_inquiry"

# Batch processing limits and named operation profiles
BATCH_CONFIG = {
    "default_batch_size": 15,
    "csv_import_batch_size": 15,
    "reanalysis_batch_size": 15,
    "max_batch_size": 20,
    "min_batch_size": 5,
    "delay_between_batches_ms": 2000,
    "max_tokens_per_request": 30000,
}

# Retry configuration for calls to the classification service
RETRY_CONFIG = {
    "max_retries": 3,
    "retry_delay_ms": 1000,
    "backoff_multiplier": 2.0,
    "jitter_ms": 250,
    "max_delay_ms": 30000,
}

# Advisory quota tracking (free tier allows 15 requests per minute)
RATE_LIMIT = {
    "requests_per_minute": 15,
    "window_seconds": 60,
}

# AI performance ledger
LEDGER_MAX_ENTRIES = 100
LEDGER_SNIPPET_LENGTH = 200

# Logging configuration
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_LEVEL = os.getenv("FEEDBACKSENSE_LOG_LEVEL", "INFO")
