"""Tracks user corrections to measure how accurate AI categorization is."""

import logging
import threading
from collections import deque
from typing import Any

from ..config import LEDGER_MAX_ENTRIES
from ..exceptions import ValidationError
from ..models.correction import CorrectionEntry
from ..utils.statistics import calculate_performance_statistics

logger = logging.getLogger(__name__)


class PerformanceTracker:
    """Bounded, thread-safe ledger of AI predictions and user verdicts."""

    def __init__(self, max_entries: int = LEDGER_MAX_ENTRIES) -> None:
        if max_entries < 1:
            raise ValidationError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries
        self._lock = threading.Lock()
        # Oldest entries are evicted first once the ledger is full
        self._entries: deque[CorrectionEntry] = deque(maxlen=max_entries)

    def record(
        self,
        text: str,
        prediction: str,
        correction: str,
        confidence: float,
    ) -> CorrectionEntry:
        """Record a user's verdict on an AI prediction.

        Args:
            text: The feedback text that was classified
            prediction: Category predicted by the AI
            correction: Category the user chose (equal to prediction if confirmed)
            confidence: Confidence the AI reported

        Returns:
            The stored CorrectionEntry

        """
        entry = CorrectionEntry.from_text(text, prediction, correction, confidence)
        with self._lock:
            self._entries.append(entry)

        if entry.was_correct:
            logger.info(f"Recorded confirmed prediction: {prediction}")
        else:
            logger.info(f"📝 Recorded correction: {prediction} -> {correction}")
        return entry

    def metrics(self) -> dict[str, Any]:
        """Calculate accuracy metrics over the current ledger.

        Returns:
            Dictionary with accuracy, totals, per-category accuracy, confidence
            means and improvement suggestions. Defined for an empty ledger.

        """
        with self._lock:
            entries = list(self._entries)
        return calculate_performance_statistics(entries).to_dict()

    def snapshot(self) -> list[dict[str, Any]]:
        """Serialize the ledger, oldest first, for persistence."""
        with self._lock:
            return [e.to_dict() for e in self._entries]

    def restore(self, entries: list[dict[str, Any]]) -> None:
        """Replace the ledger with previously snapshotted entries."""
        restored = [CorrectionEntry.from_dict(e) for e in entries]
        with self._lock:
            self._entries.clear()
            self._entries.extend(restored)
            count = len(self._entries)
        logger.info(f"Restored {count} performance ledger entries")

    def clear(self) -> None:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cleared {count} performance ledger entries")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
