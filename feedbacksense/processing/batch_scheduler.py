"""Windowed batch dispatch of feedback texts to the classification adapter."""

import logging
import threading
import time
from collections.abc import Callable

from ..exceptions import BatchCancelledError, ValidationError
from ..models.batch import BatchConfig, BatchJob, BatchProgress
from ..models.classification import ClassificationResult
from ..services.classification_client import ClassificationClientAdapter

logger = logging.getLogger(__name__)


class BatchScheduler:
    """Splits texts into fixed-size windows and classifies them one window at a time.

    Windows never overlap: the next window starts only after the previous one
    has completed and the inter-batch delay has elapsed. Items inside a window
    may be classified concurrently by the adapter.
    """

    def __init__(
        self,
        adapter: ClassificationClientAdapter,
        delay_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            adapter: Adapter that classifies one window of texts
            delay_seconds: Pause between consecutive windows
            sleep: Function used to wait between windows

        """
        self.adapter = adapter
        self.delay_seconds = max(0.0, delay_seconds)
        self._sleep = sleep
        self._cancel_event = threading.Event()
        self._progress_callback: Callable[[BatchProgress], None] | None = None
        self._start_time: float | None = None
        self._items_processed = 0

    @classmethod
    def from_config(
        cls,
        adapter: ClassificationClientAdapter,
        config: BatchConfig,
        sleep: Callable[[float], None] = time.sleep,
    ) -> "BatchScheduler":
        """Create a scheduler paced by a named batch profile."""
        return cls(adapter, delay_seconds=config.delay_seconds, sleep=sleep)

    def set_progress_callback(self, callback: Callable[[BatchProgress], None]) -> None:
        """Set the default progress callback function."""
        self._progress_callback = callback

    def cancel(self) -> None:
        """Request cancellation; the window in flight is allowed to finish."""
        self._cancel_event.set()

    def run(
        self,
        texts: list[str],
        batch_size: int,
        on_progress: Callable[[BatchProgress], None] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> list[ClassificationResult]:
        """Classify texts window by window.

        Args:
            texts: Feedback texts in the order results should be returned
            batch_size: Window size (the last window may be shorter)
            on_progress: Called after every completed window
            cancel_event: External cancellation signal, checked between windows

        Returns:
            One ClassificationResult per text, in input order

        Raises:
            ValidationError: If batch_size is below 1
            BatchCancelledError: If cancelled before all windows ran

        """
        if batch_size < 1:
            raise ValidationError(f"batch_size must be at least 1, got {batch_size}")

        callback = on_progress or self._progress_callback
        job = BatchJob(items=list(texts), batch_size=batch_size, on_progress=callback)
        if not job.items:
            return []

        self._start_time = time.time()
        self._items_processed = 0
        fallbacks = 0
        logger.info(
            f"Starting batch processing: {job.total} items in {job.total_batches} "
            f"batches of up to {batch_size}"
        )

        while not job.is_complete:
            if self._is_cancelled(cancel_event):
                logger.warning(
                    f"Batch run cancelled after {job.batches_completed}/{job.total_batches} "
                    f"batches ({job.offset}/{job.total} items)"
                )
                raise BatchCancelledError(
                    f"Cancelled after {job.batches_completed} of {job.total_batches} batches",
                    partial_results=list(job.results),
                )

            window = job.next_window()
            logger.info(
                f"Processing batch {job.batches_completed + 1}/{job.total_batches} "
                f"({len(window)} items)..."
            )
            window_results = self.adapter.classify_batch(window)
            fallbacks += sum(1 for r in window_results if r.is_fallback)

            progress = job.complete_window(window_results)
            self._items_processed = progress.processed
            logger.info(
                f"Batch progress: {progress.processed}/{progress.total} "
                f"({progress.percentage}%) - Batch {progress.batches_completed}/{progress.total_batches}"
            )
            if job.on_progress:
                job.on_progress(progress)

            if self.delay_seconds and not job.is_complete:
                logger.debug(f"Waiting {self.delay_seconds:.2f}s before next batch...")
                self._sleep(self.delay_seconds)

        self._log_batch_stats(job, fallbacks)
        return job.results

    def get_processing_rate(self) -> float:
        """Get the current processing rate in items per second."""
        if not self._start_time or self._items_processed == 0:
            return 0.0

        elapsed_time = time.time() - self._start_time
        if elapsed_time == 0:
            return 0.0

        return self._items_processed / elapsed_time

    def _is_cancelled(self, cancel_event: threading.Event | None) -> bool:
        return self._cancel_event.is_set() or bool(cancel_event and cancel_event.is_set())

    def _log_batch_stats(self, job: BatchJob, fallbacks: int) -> None:
        elapsed = time.time() - (self._start_time or time.time())
        average_size = job.total / job.total_batches if job.total_batches else 0.0
        ai_share = 1 - fallbacks / job.total if job.total else 0.0
        logger.info(
            f"🚀 Batch processing complete: {job.total} items, {job.total_batches} batches, "
            f"avg size {average_size:.1f}, {elapsed:.2f}s, "
            f"AI success rate {ai_share:.1%}, {self.get_processing_rate():.2f} items/s"
        )
