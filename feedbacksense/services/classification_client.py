"""Retrying, quota-aware adapter around the external classification service."""

import logging
import random
import threading
import time
from collections import deque
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Protocol

from ..config import MODEL_CONFIG, RATE_LIMIT
from ..constants import LOG_SNIPPET_LENGTH
from ..exceptions import (
    ClassificationError,
    MalformedResponseError,
    RateLimitedError,
    RetryableClassificationError,
    ServiceUnavailableError,
)
from ..models.classification import ClassificationMethod, ClassificationResult
from ..processing.heuristic_analyzer import HeuristicAnalyzer
from ..processing.retry_policy import RetryPolicy
from ..utils.error_handling import describe_error, fallback_reasoning

logger = logging.getLogger(__name__)


class ClassificationClient(Protocol):
    """A single network call that categorizes one feedback text.

    Implementations raise ``RetryableClassificationError`` subclasses for
    rate limits and transient failures, and ``MalformedResponseError`` for
    responses that can never be used.
    """

    def classify(self, text: str, timeout: float | None = None) -> dict[str, Any]:
        ...


class UsageTracker:
    """Thread-safe call counters with a rolling request window.

    The window is advisory: it is reported and logged, never enforced.
    """

    COUNTERS = ("calls", "successes", "retries", "rate_limited", "malformed", "fallbacks")

    def __init__(
        self,
        requests_per_minute: int = RATE_LIMIT["requests_per_minute"],
        window_seconds: float = RATE_LIMIT["window_seconds"],
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.requests_per_minute = requests_per_minute
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._counts = dict.fromkeys(self.COUNTERS, 0)
        self._window: deque[float] = deque()

    def _prune(self, now: float) -> None:
        while self._window and self._window[0] <= now - self.window_seconds:
            self._window.popleft()

    def record_call(self) -> bool:
        """Count an outgoing call. Returns False when the window was already full."""
        with self._lock:
            now = self._clock()
            self._prune(now)
            within_quota = len(self._window) < self.requests_per_minute
            self._window.append(now)
            self._counts["calls"] += 1
            return within_quota

    def increment(self, counter: str) -> None:
        with self._lock:
            self._counts[counter] += 1

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            self._prune(self._clock())
            in_window = len(self._window)
            stats: dict[str, Any] = dict(self._counts)
        stats["calls_in_window"] = in_window
        stats["requests_per_minute"] = self.requests_per_minute
        stats["quota_remaining"] = max(0, self.requests_per_minute - in_window)
        return stats

    def reset(self) -> None:
        with self._lock:
            self._counts = dict.fromkeys(self.COUNTERS, 0)
            self._window.clear()


class ClassificationClientAdapter:
    """Classify feedback through the external service with retry and fallback.

    Failed items degrade to the heuristic analyzer, so neither ``classify``
    nor ``classify_batch`` raises for a per-item failure.
    """

    def __init__(
        self,
        client: ClassificationClient | None,
        analyzer: HeuristicAnalyzer | None = None,
        retry_policy: RetryPolicy | None = None,
        request_timeout: float | None = None,
        max_workers: int | None = None,
        usage: UsageTracker | None = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            client: The service client, or None when the service is disabled
            analyzer: Heuristic analyzer used for fallbacks
            retry_policy: Backoff schedule for retryable failures
            request_timeout: Timeout passed to every attempt, in seconds
            max_workers: Concurrent calls allowed within one batch window
            usage: Shared usage tracker (one is created if omitted)
            sleep: Function used to wait between attempts
            rng: Random source for backoff jitter

        """
        self.client = client
        self.analyzer = analyzer or HeuristicAnalyzer()
        self.retry_policy = retry_policy or RetryPolicy()
        self.request_timeout = float(request_timeout or MODEL_CONFIG["request_timeout"])
        self.max_workers = max(1, int(max_workers or MODEL_CONFIG["max_workers"]))
        self.usage = usage or UsageTracker()
        self._sleep = sleep
        self._rng = rng
        self.valid_categories = {c.id for c in self.analyzer.categories}

        if client is None:
            logger.warning("Classification service not configured, using heuristic analysis only")

    @property
    def is_available(self) -> bool:
        """Whether an external service client is configured."""
        return self.client is not None

    def classify(self, text: str) -> ClassificationResult:
        """Categorize a single text, falling back to the heuristic on failure."""
        if self.client is None:
            return self._fallback(text, reason=None, attempts=0)
        if not text or not text.strip():
            return self._fallback(text, reason="empty feedback text", attempts=0)

        last_error: Exception | None = None
        max_attempts = self.retry_policy.max_attempts
        for attempt in range(1, max_attempts + 1):
            if not self.usage.record_call():
                logger.warning(
                    f"Request window exhausted ({self.usage.requests_per_minute}/min); "
                    "continuing, but the service may start rate limiting"
                )
            try:
                raw = self.client.classify(text, timeout=self.request_timeout)
                result = self._to_result(raw, attempt)
                self.usage.increment("successes")
                return result
            except RetryableClassificationError as e:
                last_error = e
                if isinstance(e, RateLimitedError):
                    self.usage.increment("rate_limited")
                logger.warning(f"Classification attempt {attempt}/{max_attempts} failed: {e}")
            except MalformedResponseError as e:
                self.usage.increment("malformed")
                logger.error(f"Malformed classification response: {e}")
                return self._fallback(text, reason=e, attempts=attempt)
            except ClassificationError as e:
                logger.error(f"Classification failed permanently: {e}")
                return self._fallback(text, reason=e, attempts=attempt)
            except Exception as e:
                logger.error(f"Unexpected classification error: {describe_error(e)}")
                return self._fallback(text, reason=e, attempts=attempt)

            if attempt < max_attempts:
                delay = self.retry_policy.delay_for(attempt, self._rng)
                self.usage.increment("retries")
                logger.info(f"Retrying classification in {delay:.2f}s")
                self._sleep(delay)

        logger.warning(
            f"Classification retries exhausted after {max_attempts} attempts for "
            f"'{text[:LOG_SNIPPET_LENGTH]}...', using heuristic fallback"
        )
        return self._fallback(text, reason=last_error, attempts=max_attempts)

    def classify_batch(self, texts: list[str], strict: bool = False) -> list[ClassificationResult]:
        """Categorize a window of texts concurrently, preserving input order.

        Args:
            texts: Feedback texts
            strict: Raise instead of degrading when no service client exists

        Returns:
            One result per input text, in input order

        Raises:
            ServiceUnavailableError: If ``strict`` and the service is not configured

        """
        if strict and self.client is None:
            raise ServiceUnavailableError("Classification service is not configured")
        if not texts:
            return []
        if self.max_workers == 1 or len(texts) == 1:
            return [self.classify(text) for text in texts]

        results: list[ClassificationResult | None] = [None] * len(texts)
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(texts))) as executor:
            future_to_index = {
                executor.submit(self.classify, text): idx for idx, text in enumerate(texts)
            }
            for future in as_completed(future_to_index):
                idx = future_to_index[future]
                try:
                    results[idx] = future.result()
                except Exception as e:
                    logger.error(f"Worker failed for item {idx}: {describe_error(e)}")
                    results[idx] = self._fallback(texts[idx], reason=e, attempts=0)

        return [r for r in results if r is not None]

    def stats(self) -> dict[str, Any]:
        """Snapshot of usage counters and the advisory request window."""
        stats = self.usage.snapshot()
        stats["service_available"] = self.is_available
        return stats

    def _to_result(self, raw: Any, attempt: int) -> ClassificationResult:
        if not isinstance(raw, dict):
            raise MalformedResponseError(f"Expected a dict, got {type(raw).__name__}")

        category = raw.get("category")
        if not isinstance(category, str) or category not in self.valid_categories:
            raise MalformedResponseError(f"Invalid category returned: {category!r}")

        confidence = raw.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise MalformedResponseError(f"Invalid confidence score: {confidence!r}")
        if not 0.0 <= confidence <= 1.0:
            raise MalformedResponseError(f"Confidence out of range: {confidence}")

        return ClassificationResult(
            category=category,
            confidence=round(float(confidence), 2),
            reasoning=raw.get("reasoning") or "AI-based categorization",
            method=ClassificationMethod.AI_CLASSIFICATION,
            key_indicators=list(raw.get("key_indicators") or []),
            attempts=attempt,
        )

    def _fallback(
        self,
        text: str,
        reason: Exception | str | None,
        attempts: int,
    ) -> ClassificationResult:
        self.usage.increment("fallbacks")
        result = self.analyzer.categorize(text)
        result.reasoning = f"{fallback_reasoning(reason)}. {result.reasoning}"
        result.attempts = attempts
        return result
