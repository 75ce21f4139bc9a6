"""Named batch profiles and batch-size helpers."""

import logging
import math

from ..config import BATCH_CONFIG, RETRY_CONFIG
from ..models.batch import BatchConfig

logger = logging.getLogger(__name__)

_PROFILES: dict[str, BatchConfig] = {
    "default": BatchConfig(
        name="default",
        batch_size=BATCH_CONFIG["default_batch_size"],
        delay_ms=BATCH_CONFIG["delay_between_batches_ms"],
        max_retries=RETRY_CONFIG["max_retries"],
        retry_delay_ms=RETRY_CONFIG["retry_delay_ms"],
        description="General Batch Processing",
    ),
    "csv_import": BatchConfig(
        name="csv_import",
        batch_size=BATCH_CONFIG["csv_import_batch_size"],
        delay_ms=BATCH_CONFIG["delay_between_batches_ms"],
        max_retries=RETRY_CONFIG["max_retries"],
        retry_delay_ms=RETRY_CONFIG["retry_delay_ms"],
        description="CSV Import Batch Processing",
    ),
    "reanalysis": BatchConfig(
        name="reanalysis",
        batch_size=BATCH_CONFIG["reanalysis_batch_size"],
        delay_ms=BATCH_CONFIG["delay_between_batches_ms"],
        max_retries=RETRY_CONFIG["max_retries"],
        retry_delay_ms=RETRY_CONFIG["retry_delay_ms"],
        description="Feedback Re-analysis Batch Processing",
    ),
}

PROFILE_NAMES = tuple(_PROFILES)


def get_batch_config(name: str | None = "default") -> BatchConfig:
    """Look up a named batch profile; unknown names get the default profile."""
    config = _PROFILES.get(name or "default")
    if config is None:
        logger.warning(f"Unknown batch profile '{name}', using default")
        return _PROFILES["default"]
    return config


def validate_batch_size(batch_size: int | str | None) -> int:
    """Clamp a requested batch size into the allowed range."""
    try:
        size = int(batch_size)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return BATCH_CONFIG["min_batch_size"]

    if size < BATCH_CONFIG["min_batch_size"]:
        return BATCH_CONFIG["min_batch_size"]
    if size > BATCH_CONFIG["max_batch_size"]:
        return BATCH_CONFIG["max_batch_size"]
    return size


def calculate_optimal_batch_size(
    texts: list[str],
    max_batch_size: int = BATCH_CONFIG["max_batch_size"],
) -> int:
    """Estimate how many texts fit in one request's token budget.

    Tokens are approximated as a quarter of the character count, with a floor
    of 50 per item.
    """
    if not texts:
        return BATCH_CONFIG["default_batch_size"]

    average_length = sum(len(t) for t in texts) / len(texts)
    tokens_per_item = max(50, math.ceil(average_length / 4))
    max_items_per_request = BATCH_CONFIG["max_tokens_per_request"] // tokens_per_item

    optimal = min(max_batch_size, max_items_per_request, BATCH_CONFIG["max_batch_size"])
    return max(BATCH_CONFIG["min_batch_size"], optimal)
