"""Feedback analysis pipeline: the entry point used by the CLI and callers.

The pipeline wires the collaborators together: batch scheduling over the
classification adapter, category resolution, classification history and the
AI performance ledger, all backed by a record store.
"""

import logging
import os
import threading
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from ..exceptions import (
    BatchCancelledError,
    ConfigurationError,
    RecordStoreError,
    ValidationError,
)
from ..models.audit import ClassificationEvent
from ..models.batch import BatchConfig, BatchProgress, BulkSummary
from ..models.classification import (
    AnalysisResult,
    CategoryDefinition,
    ClassificationMethod,
    ClassificationResult,
    SentimentLabel,
)
from ..models.feedback import FeedbackItem
from ..services.classification_client import ClassificationClientAdapter
from ..services.openai_classifier import OpenAIClassificationService, is_usable_api_key
from ..utils.error_handling import create_error_entry, describe_error
from ..workflow import build_analysis_workflow, run_analysis
from .batch_config import get_batch_config
from .batch_scheduler import BatchScheduler
from .heuristic_analyzer import HeuristicAnalyzer
from .history_tracker import ClassificationHistoryTracker
from .performance_tracker import PerformanceTracker
from .record_store import InMemoryRecordStore, RecordStore
from .resolution import CategoryResolutionPolicy, Resolution
from .retry_policy import RetryPolicy

logger = logging.getLogger(__name__)

CANCELLED_ERROR = "Batch cancelled before this item was analyzed"


class FeedbackPipeline:
    """Analyzes, re-analyzes and corrects customer feedback."""

    def __init__(
        self,
        adapter: ClassificationClientAdapter | None = None,
        record_store: RecordStore | None = None,
        performance_tracker: PerformanceTracker | None = None,
        history_tracker: ClassificationHistoryTracker | None = None,
        resolution_policy: CategoryResolutionPolicy | None = None,
        categories: list[CategoryDefinition] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            adapter: Classification adapter (heuristic-only when omitted)
            record_store: Store holding feedback records
            performance_tracker: Ledger of user corrections
            history_tracker: Classification history writer
            resolution_policy: Category precedence rules
            categories: Custom categories, used only when no adapter is given
            sleep: Function used for the pause between batch windows

        """
        self.adapter = adapter or ClassificationClientAdapter(
            None, analyzer=HeuristicAnalyzer(categories)
        )
        self.analyzer = self.adapter.analyzer
        self.record_store = record_store if record_store is not None else InMemoryRecordStore()
        self.performance_tracker = (
            performance_tracker if performance_tracker is not None else PerformanceTracker()
        )
        self.history_tracker = history_tracker or ClassificationHistoryTracker()
        self.resolution_policy = resolution_policy or CategoryResolutionPolicy()
        self._sleep = sleep
        self._workflow = build_analysis_workflow(self.adapter, self.analyzer)
        self._active_schedulers: set[BatchScheduler] = set()
        self._scheduler_lock = threading.Lock()

    @classmethod
    def from_environment(
        cls,
        record_store: RecordStore | None = None,
        categories: list[CategoryDefinition] | None = None,
        **kwargs: Any,
    ) -> "FeedbackPipeline":
        """Build a pipeline using ``OPENAI_API_KEY`` when it is usable.

        Without a usable key every item is analyzed heuristically.
        """
        analyzer = HeuristicAnalyzer(categories)
        client = None
        if is_usable_api_key(os.getenv("OPENAI_API_KEY")):
            try:
                client = OpenAIClassificationService(categories=categories)
            except ConfigurationError as e:
                logger.warning(f"Classification service disabled: {e}")

        adapter = ClassificationClientAdapter(
            client,
            analyzer=analyzer,
            retry_policy=RetryPolicy.from_batch_config(get_batch_config("default")),
        )
        return cls(adapter=adapter, record_store=record_store, **kwargs)

    @property
    def valid_categories(self) -> set[str]:
        return {c.id for c in self.analyzer.categories}

    # Single item

    def analyze_and_categorize(self, text: str) -> AnalysisResult:
        """Analyze one feedback text: sentiment, topics and category.

        Args:
            text: Raw feedback text

        Returns:
            AnalysisResult; falls back to keyword analysis if the service fails

        Raises:
            ValidationError: If ``text`` is not a string

        """
        state = run_analysis(self._workflow, text)
        if state.get("error"):
            raise ValidationError(state["error"])

        return AnalysisResult(
            category=state["category"],
            confidence=state["confidence"],
            reasoning=state["reasoning"] or "",
            method=ClassificationMethod(state["method"]),
            sentiment_label=SentimentLabel(state["sentiment_label"]),
            sentiment_score=state["sentiment_score"],
            sentiment_confidence=state["sentiment_confidence"],
            topics=list(state["topics"] or []),
            key_indicators=list(state["key_indicators"] or []),
        )

    # Bulk analysis

    def cancel(self) -> None:
        """Cancel every running batch between windows."""
        with self._scheduler_lock:
            for scheduler in self._active_schedulers:
                scheduler.cancel()

    def batch_reanalyze(
        self,
        items: list[FeedbackItem | str],
        batch_size: int | None = None,
        on_progress: Callable[[BatchProgress], None] | None = None,
        cancel_event: threading.Event | None = None,
        profile: str = "default",
    ) -> list[AnalysisResult]:
        """Analyze many feedback texts in paced windows.

        Args:
            items: FeedbackItems or plain strings
            batch_size: Window size (defaults to the profile's size)
            on_progress: Called after every completed window
            cancel_event: External cancellation signal, checked between windows
            profile: Batch profile supplying the window size and pacing

        Returns:
            One AnalysisResult per item, in input order

        Raises:
            ValidationError: If batch_size is below 1
            BatchCancelledError: If cancelled; ``partial_results`` holds
                AnalysisResults for the completed windows

        """
        config = get_batch_config(profile)
        size = config.batch_size if batch_size is None else batch_size
        texts = [item.content if isinstance(item, FeedbackItem) else item for item in items]
        ids = [item.id if isinstance(item, FeedbackItem) else None for item in items]

        scheduler = BatchScheduler.from_config(self.adapter, config, sleep=self._sleep)
        with self._scheduler_lock:
            self._active_schedulers.add(scheduler)
        try:
            classifications = scheduler.run(
                texts, size, on_progress=on_progress, cancel_event=cancel_event
            )
        except BatchCancelledError as e:
            e.partial_results = [
                self._merge(texts[i], result, ids[i])
                for i, result in enumerate(e.partial_results)
            ]
            raise
        finally:
            with self._scheduler_lock:
                self._active_schedulers.discard(scheduler)

        return [
            self._merge(texts[i], result, ids[i])
            for i, result in enumerate(classifications)
        ]

    def reanalyze_records(
        self,
        filter: dict[str, Any] | None = None,
        profile: str = "reanalysis",
        on_progress: Callable[[BatchProgress], None] | None = None,
        cancel_event: threading.Event | None = None,
        batch_size: int | None = None,
    ) -> BulkSummary:
        """Re-analyze stored feedback and write the results back.

        Re-analysis is an explicit request, so pending manual overrides are
        cleared. Each write is independent; failures are listed in the summary.

        Args:
            filter: Record-store filter selecting the items
            profile: Batch profile supplying the window size and pacing
            on_progress: Called after every completed window
            cancel_event: External cancellation signal
            batch_size: Window size overriding the profile's

        Returns:
            BulkSummary with per-item errors

        """
        items = self.record_store.find_many(filter)
        summary = BulkSummary(total=len(items))
        logger.info(f"Re-analyzing {len(items)} feedback records (profile: {profile})")
        if not items:
            return summary

        try:
            results = self.batch_reanalyze(
                items,
                batch_size=batch_size,
                on_progress=on_progress,
                cancel_event=cancel_event,
                profile=profile,
            )
        except BatchCancelledError as e:
            results = e.partial_results
            for item in items[len(results):]:
                summary.add_error(create_error_entry(item.id, CANCELLED_ERROR))

        for item, analysis in zip(items, results):
            try:
                resolution = self.resolution_policy.resolve(
                    item, ai_result=self._classification_of(analysis), reanalyze=True
                )
                self._write_analysis(item, analysis, self._collapse_unchanged(item, resolution))
                summary.processed += 1
            except Exception as e:
                logger.error(f"Failed to update feedback {item.id}: {describe_error(e)}")
                summary.add_error(create_error_entry(item.id, e))

        logger.info(
            f"Re-analysis complete: {summary.processed}/{summary.total} updated, "
            f"{summary.failed} failed"
        )
        return summary

    def import_feedback(
        self,
        rows: list[dict[str, Any] | str],
        profile: str = "csv_import",
        on_progress: Callable[[BatchProgress], None] | None = None,
        batch_size: int | None = None,
    ) -> BulkSummary:
        """Analyze and create feedback records in bulk.

        Args:
            rows: Field mappings with at least ``content``, or plain strings
            profile: Batch profile supplying the window size and pacing
            on_progress: Called after every completed window
            batch_size: Window size overriding the profile's

        Returns:
            BulkSummary; rows without content are reported as errors

        """
        summary = BulkSummary(total=len(rows))
        valid: list[dict[str, Any]] = []
        for index, row in enumerate(rows):
            fields = {"content": row} if isinstance(row, str) else dict(row)
            content = fields.get("content")
            if not isinstance(content, str) or not content.strip():
                summary.add_error(
                    create_error_entry(fields.get("id"), f"Row {index + 1}: feedback content is required")
                )
                continue
            valid.append(fields)

        if valid:
            results = self.batch_reanalyze(
                [fields["content"] for fields in valid],
                batch_size=batch_size,
                on_progress=on_progress,
                profile=profile,
            )
            for fields, analysis in zip(valid, results):
                try:
                    self.record_store.create(self._record_fields(fields, analysis))
                    summary.processed += 1
                except Exception as e:
                    logger.error(f"Failed to create feedback: {describe_error(e)}")
                    summary.add_error(create_error_entry(fields.get("id"), e))

        logger.info(
            f"Import complete: {summary.processed}/{summary.total} created, {summary.failed} failed"
        )
        return summary

    # Edits and corrections

    def update_feedback(
        self,
        item_id: str,
        content: str | None = None,
        category: str | None = None,
        reanalyze: bool = False,
    ) -> FeedbackItem:
        """Apply a user edit to a stored feedback item.

        A category that differs from the current one becomes a manual
        override, and wins even when re-analysis is also requested. Changed
        content or ``reanalyze`` re-runs analysis; a pending override only
        yields to an explicit ``reanalyze``.

        Args:
            item_id: Identifier of the item
            content: New feedback text, if edited
            category: Category chosen by the user, if any
            reanalyze: Request fresh analysis

        Returns:
            The updated item

        Raises:
            RecordStoreError: If the item does not exist
            ValidationError: If the category is unknown or the content is empty

        """
        item = self.record_store.get(item_id)
        if item is None:
            raise RecordStoreError(f"Feedback {item_id} not found")
        if category is not None and category not in self.valid_categories:
            raise ValidationError(f"Unknown category: {category}")
        if content is not None and not content.strip():
            raise ValidationError("Feedback content cannot be empty")

        classified_content = item.content
        content_changed = content is not None and content != item.content
        if content_changed:
            item.content = content

        manual_wins = category is not None and category != item.category
        analysis = None
        if not manual_wins and (reanalyze or (content_changed and not item.manual_override)):
            analysis = self.analyze_and_categorize(item.content)

        resolution = self.resolution_policy.resolve(
            item,
            ai_result=self._classification_of(analysis) if analysis else None,
            user_category=category,
            is_manual_edit=category is not None,
            reanalyze=reanalyze,
            content_changed=content_changed,
        )

        if resolution.method == ClassificationMethod.MANUAL_OVERRIDE and resolution.changed:
            if item.category is not None and not item.manual_override:
                self.record_correction(
                    classified_content, item.category, category, item.ai_confidence or 0.0
                )

        if content_changed and analysis is None:
            # Sentiment follows the text even when the category is pinned
            analysis = self._merge(item.content, self.analyzer.categorize(item.content), item.id)

        updated = self._write_analysis(item, analysis, resolution, content_changed=content_changed)
        logger.info(
            f"Updated feedback {item_id}: category={updated.category}, "
            f"override={updated.manual_override}"
        )
        return updated

    def record_correction(
        self,
        text: str,
        prediction: str,
        correction: str,
        confidence: float,
    ) -> None:
        """Record a user's verdict on an AI prediction in the performance ledger."""
        self.performance_tracker.record(text, prediction, correction, confidence)

    def get_ai_performance_metrics(self) -> dict[str, Any]:
        return self.performance_tracker.metrics()

    def get_batch_config(self, name: str = "default") -> BatchConfig:
        return get_batch_config(name)

    def get_usage_stats(self) -> dict[str, Any]:
        """Call counters and request-window status of the classification adapter."""
        return self.adapter.stats()

    # Helpers

    def _merge(
        self,
        text: str,
        classification: ClassificationResult,
        feedback_id: str | None = None,
    ) -> AnalysisResult:
        sentiment = self.analyzer.analyze_sentiment(text)
        return AnalysisResult(
            category=classification.category,
            confidence=classification.confidence,
            reasoning=classification.reasoning,
            method=classification.method,
            sentiment_label=sentiment.label,
            sentiment_score=sentiment.score,
            sentiment_confidence=sentiment.confidence,
            topics=list(sentiment.topics),
            key_indicators=list(classification.key_indicators),
            feedback_id=feedback_id,
        )

    @staticmethod
    def _classification_of(analysis: AnalysisResult) -> ClassificationResult:
        return ClassificationResult(
            category=analysis.category,
            confidence=analysis.confidence,
            reasoning=analysis.reasoning,
            method=analysis.method,
            key_indicators=list(analysis.key_indicators),
        )

    @staticmethod
    def _collapse_unchanged(item: FeedbackItem, resolution: Resolution) -> Resolution:
        """Drop the history event when re-analysis confirms the current result."""
        last = item.last_event
        if (
            resolution.event is not None
            and last is not None
            and resolution.category == item.category
            and resolution.method == last.method
        ):
            return replace(resolution, event=None)
        return resolution

    def _write_analysis(
        self,
        item: FeedbackItem,
        analysis: AnalysisResult | None,
        resolution: Resolution,
        content_changed: bool = False,
    ) -> FeedbackItem:
        fields: dict[str, Any] = {}
        if content_changed:
            fields["content"] = item.content
        if analysis is not None:
            fields.update(
                sentiment_label=analysis.sentiment_label,
                sentiment_score=analysis.sentiment_score,
                topics=list(analysis.topics),
            )

        if resolution.changed:
            self.history_tracker.apply(item, resolution)
            fields.update(
                category=item.category,
                ai_confidence=item.ai_confidence,
                manual_override=item.manual_override,
                classification_history=item.classification_history,
            )
        elif analysis is not None:
            # No new event, but a confirming re-analysis still refreshes these
            fields.update(ai_confidence=resolution.confidence, manual_override=resolution.override)

        if not fields:
            return item
        return self.record_store.update(item.id, **fields)

    def _record_fields(self, fields: dict[str, Any], analysis: AnalysisResult) -> dict[str, Any]:
        event = ClassificationEvent(
            category=analysis.category,
            confidence=analysis.confidence,
            method=analysis.method,
            reasoning=analysis.reasoning,
        )
        record = dict(fields)
        record.update(
            category=analysis.category,
            sentiment_label=analysis.sentiment_label,
            sentiment_score=analysis.sentiment_score,
            topics=list(analysis.topics),
            ai_confidence=analysis.confidence,
            manual_override=False,
            classification_history=[event],
        )
        return record
