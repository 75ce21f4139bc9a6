"""Batch processing data models."""

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class BatchConfig:
    """Named batch profile: window size, pacing and retry budget."""

    name: str
    batch_size: int
    delay_ms: int
    max_retries: int
    retry_delay_ms: int
    description: str = ""

    @property
    def delay_seconds(self) -> float:
        return self.delay_ms / 1000

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000


@dataclass(frozen=True)
class BatchProgress:
    """Progress report emitted after each completed window."""

    processed: int
    total: int
    percentage: int
    batches_completed: int
    total_batches: int

    def to_dict(self) -> dict[str, int]:
        return {
            "processed": self.processed,
            "total": self.total,
            "percentage": self.percentage,
            "batches_completed": self.batches_completed,
            "total_batches": self.total_batches,
        }


@dataclass
class BatchJob:
    """Per-run state of one batch scheduler invocation. Never persisted."""

    items: list[Any]
    batch_size: int
    on_progress: Callable[[BatchProgress], None] | None = None
    offset: int = 0
    batches_completed: int = 0
    results: list[Any] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.items)

    @property
    def total_batches(self) -> int:
        return math.ceil(self.total / self.batch_size) if self.total else 0

    @property
    def is_complete(self) -> bool:
        return self.offset >= self.total

    def next_window(self) -> list[Any]:
        """Return the next window of items without advancing."""
        return self.items[self.offset : self.offset + self.batch_size]

    def complete_window(self, window_results: list[Any]) -> BatchProgress:
        """Accumulate a finished window's results and advance the offset."""
        self.results.extend(window_results)
        self.offset += len(window_results)
        self.batches_completed += 1
        return self.progress()

    def progress(self) -> BatchProgress:
        percentage = round(self.offset / self.total * 100) if self.total else 100
        return BatchProgress(
            processed=self.offset,
            total=self.total,
            percentage=percentage,
            batches_completed=self.batches_completed,
            total_batches=self.total_batches,
        )


@dataclass
class BulkSummary:
    """Outcome of a bulk operation; partial success stays observable."""

    total: int = 0
    processed: int = 0
    failed: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)

    def add_error(self, entry: dict[str, Any]) -> None:
        self.failed += 1
        self.errors.append(entry)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "processed": self.processed,
            "failed": self.failed,
            "errors": list(self.errors),
        }
