"""Tests for the FeedbackPipeline facade."""

import threading

import pytest

from conftest import FailingClient, FakeClient, category_for
from feedbacksense.exceptions import (
    BatchCancelledError,
    RecordStoreError,
    ValidationError,
)
from feedbacksense.models.audit import ClassificationEvent
from feedbacksense.models.classification import ClassificationMethod, SentimentLabel
from feedbacksense.models.feedback import FeedbackItem
from feedbacksense.processing.pipeline import FeedbackPipeline
from feedbacksense.processing.record_store import InMemoryRecordStore


class FlakyStore(InMemoryRecordStore):
    """Record store whose writes fail for selected ids."""

    def __init__(self, items=None, failing_ids=()):
        super().__init__(items)
        self.failing_ids = set(failing_ids)

    def update(self, item_id, **fields):
        if item_id in self.failing_ids:
            raise RecordStoreError(f"Write failed for {item_id}")
        return super().update(item_id, **fields)


def _ai_item(item_id, category, content="The app crashes on login"):
    return FeedbackItem(
        id=item_id,
        content=content,
        category=category,
        ai_confidence=0.82,
        classification_history=[
            ClassificationEvent(category, 0.82, ClassificationMethod.AI_CLASSIFICATION)
        ],
    )


def _stored_item(item_id, timestamp):
    return FeedbackItem.from_dict({
        "id": item_id,
        "content": "The app crashes on login",
        "category": "bug_report",
        "ai_confidence": 0.82,
        "classification_history": [{
            "category": "bug_report",
            "confidence": 0.82,
            "method": "ai_classification",
            "timestamp": timestamp,
        }],
    })


@pytest.fixture
def client():
    return FakeClient(categorize=lambda text: "feature_request", confidence=0.77)


@pytest.fixture
def store():
    return InMemoryRecordStore([_ai_item("fb-1", "bug_report")])


@pytest.fixture
def make_pipeline(make_adapter, sleeps):
    def _make(client, store=None, **kwargs):
        return FeedbackPipeline(
            adapter=make_adapter(client),
            record_store=store,
            sleep=sleeps.append,
            **kwargs,
        )

    return _make


@pytest.fixture
def pipeline(make_pipeline, client, store):
    return make_pipeline(client, store)


class TestAnalyzeAndCategorize:
    """Test the single-item path."""

    def test_ai_result(self, pipeline):
        result = pipeline.analyze_and_categorize("Please add an export button, love the app")

        assert result.category == "feature_request"
        assert result.confidence == 0.77
        assert result.method == ClassificationMethod.AI_CLASSIFICATION
        assert result.sentiment_label == SentimentLabel.POSITIVE
        assert result.analysis_version == "2.1.0"

    def test_service_failure_falls_back(self, make_pipeline):
        pipeline = make_pipeline(FailingClient())

        result = pipeline.analyze_and_categorize("The app keeps crashing with an error")

        assert result.method == ClassificationMethod.HEURISTIC_FALLBACK
        assert result.category == "bug_report"

    def test_invalid_input(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.analyze_and_categorize(42)

    def test_result_serializes(self, pipeline):
        data = pipeline.analyze_and_categorize("Love it").to_dict()

        assert data["method"] == "ai_classification"
        assert data["sentiment_label"] == "positive"


class TestBatchReanalyze:
    """Test bulk analysis without persistence."""

    def test_order_and_ids(self, make_pipeline):
        pipeline = make_pipeline(FakeClient(categorize=category_for))
        items = [FeedbackItem(id=f"fb-{i}", content=f"feedback {i}") for i in range(4)]
        items.append("feedback 4")

        results = pipeline.batch_reanalyze(items, batch_size=2)

        assert [r.category for r in results] == [category_for(f"feedback {i}") for i in range(5)]
        assert [r.feedback_id for r in results] == ["fb-0", "fb-1", "fb-2", "fb-3", None]

    def test_all_failing_client(self, make_pipeline):
        pipeline = make_pipeline(FailingClient())
        texts = [f"feedback {i}" for i in range(7)]

        results = pipeline.batch_reanalyze(texts, batch_size=3)

        assert len(results) == 7
        assert all(r.method == ClassificationMethod.HEURISTIC_FALLBACK for r in results)

    def test_progress_and_delay(self, pipeline, sleeps):
        progress = []

        pipeline.batch_reanalyze(["a", "b", "c", "d", "e", "f", "g"], batch_size=3, on_progress=progress.append)

        assert [p.processed for p in progress] == [3, 6, 7]
        assert sleeps == [2.0, 2.0]

    def test_invalid_batch_size(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.batch_reanalyze(["a"], batch_size=0)

    def test_empty(self, pipeline, client):
        assert pipeline.batch_reanalyze([]) == []
        assert client.calls == []

    def test_cancellation_returns_analysis_results(self, pipeline):
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(BatchCancelledError) as exc_info:
            pipeline.batch_reanalyze(["a", "b"], batch_size=1, cancel_event=cancel)

        assert exc_info.value.partial_results == []

    def test_cancel_reaches_run_still_in_progress(self, pipeline):
        def on_progress(progress):
            if progress.batches_completed == 1:
                # A second run starts and finishes while the first is mid-way
                pipeline.batch_reanalyze(["Love the new update"], batch_size=1)
                pipeline.cancel()

        with pytest.raises(BatchCancelledError) as exc_info:
            pipeline.batch_reanalyze(["a", "b", "c"], batch_size=1, on_progress=on_progress)

        assert len(exc_info.value.partial_results) == 1
        assert pipeline._active_schedulers == set()


class TestUpdateFeedback:
    """Test the edit path combining resolution, history and the ledger."""

    def test_manual_category(self, pipeline, client):
        updated = pipeline.update_feedback("fb-1", category="customer_service")

        assert updated.category == "customer_service"
        assert updated.manual_override is True
        assert updated.ai_confidence == 1.0
        assert len(updated.classification_history) == 2
        last = updated.last_event
        assert last.method == ClassificationMethod.MANUAL_OVERRIDE
        assert last.previous_category == "bug_report"
        assert client.calls == []

    def test_manual_category_records_correction(self, pipeline):
        pipeline.update_feedback("fb-1", category="customer_service")

        metrics = pipeline.get_ai_performance_metrics()
        assert metrics["total_recorded"] == 1
        assert metrics["accuracy"] == 0.0
        assert metrics["mean_confidence_when_wrong"] == 0.82

    def test_override_survives_content_edit(self, pipeline, client):
        pipeline.update_feedback("fb-1", category="customer_service")

        updated = pipeline.update_feedback("fb-1", content="The support agent was rude")

        assert updated.content == "The support agent was rude"
        assert updated.category == "customer_service"
        assert updated.manual_override is True
        assert len(updated.classification_history) == 2
        assert updated.sentiment_label == SentimentLabel.NEGATIVE
        assert client.calls == []

    def test_explicit_reanalyze_clears_override(self, pipeline):
        pipeline.update_feedback("fb-1", category="customer_service")

        updated = pipeline.update_feedback("fb-1", reanalyze=True)

        assert updated.category == "feature_request"
        assert updated.manual_override is False
        assert updated.ai_confidence == 0.77
        assert len(updated.classification_history) == 3
        assert updated.last_event.method == ClassificationMethod.AI_CLASSIFICATION
        assert updated.last_event.previous_category == "customer_service"

    def test_content_edit_reanalyzes(self, pipeline, client):
        updated = pipeline.update_feedback("fb-1", content="Please add a dark theme")

        assert updated.category == "feature_request"
        assert len(updated.classification_history) == 2
        assert len(client.calls) == 1

    def test_category_and_reanalyze_together(self, pipeline, client):
        updated = pipeline.update_feedback("fb-1", category="refund_request", reanalyze=True)

        assert updated.category == "refund_request"
        assert updated.manual_override is True
        assert len(updated.classification_history) == 2
        assert updated.last_event.method == ClassificationMethod.MANUAL_OVERRIDE
        assert client.calls == []

    def test_noop_update(self, pipeline, store):
        before = store.get("fb-1")

        updated = pipeline.update_feedback("fb-1")

        assert updated.category == before.category
        assert updated.classification_history == before.classification_history

    def test_same_category_is_not_an_override(self, pipeline):
        updated = pipeline.update_feedback("fb-1", category="bug_report")

        assert updated.manual_override is False
        assert len(updated.classification_history) == 1
        assert pipeline.get_ai_performance_metrics()["total_recorded"] == 0

    def test_history_grows_once_per_category_change(self, pipeline, store):
        initial = len(store.get("fb-1").classification_history)

        updated = pipeline.update_feedback("fb-1", category="compliment")
        assert len(updated.classification_history) == initial + 1

        updated = pipeline.update_feedback("fb-1", reanalyze=True)
        assert len(updated.classification_history) == initial + 2

        updated = pipeline.update_feedback("fb-1", category="refund_request")
        assert len(updated.classification_history) == initial + 3

        updated = pipeline.update_feedback("fb-1", category="refund_request")
        assert len(updated.classification_history) == initial + 3

        assert updated.last_event.category == updated.category
        timestamps = [e.timestamp for e in updated.classification_history]
        assert timestamps == sorted(timestamps)

    def test_correction_uses_classified_text(self, pipeline):
        pipeline.update_feedback("fb-1", content="Refund me please", category="refund_request")

        entry = pipeline.performance_tracker.snapshot()[0]
        assert entry["text_snippet"] == "The app crashes on login"
        assert entry["ai_prediction"] == "bug_report"
        assert entry["user_correction"] == "refund_request"

    def test_edit_item_with_stored_utc_history(self, make_pipeline, client):
        store = InMemoryRecordStore([_stored_item("fb-1", "2024-05-01T10:00:00.000Z")])
        pipeline = make_pipeline(client, store)

        updated = pipeline.update_feedback("fb-1", category="compliment")

        assert updated.category == "compliment"
        assert len(updated.classification_history) == 2
        assert updated.classification_history[-1].timestamp > updated.classification_history[0].timestamp

    def test_unknown_item(self, pipeline):
        with pytest.raises(RecordStoreError):
            pipeline.update_feedback("missing", category="compliment")

    def test_unknown_category(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.update_feedback("fb-1", category="not_a_category")

    def test_empty_content(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.update_feedback("fb-1", content="   ")


class TestReanalyzeRecords:
    """Test bulk re-analysis over the record store."""

    def test_summary_with_failing_write(self, make_pipeline, client):
        store = FlakyStore(
            [_ai_item(f"fb-{i}", "bug_report") for i in range(3)],
            failing_ids={"fb-1"},
        )
        pipeline = make_pipeline(client, store)

        summary = pipeline.reanalyze_records()

        assert summary.total == 3
        assert summary.processed == 2
        assert summary.failed == 1
        assert summary.errors == [{"feedback_id": "fb-1", "error": "Write failed for fb-1"}]
        assert store.get("fb-0").category == "feature_request"
        assert store.get("fb-1").category == "bug_report"
        assert store.get("fb-2").category == "feature_request"

    def test_clears_manual_overrides(self, pipeline, store):
        pipeline.update_feedback("fb-1", category="compliment")

        pipeline.reanalyze_records()

        item = store.get("fb-1")
        assert item.manual_override is False
        assert item.category == "feature_request"
        assert item.last_event.method == ClassificationMethod.AI_CLASSIFICATION

    def test_confirming_result_adds_no_event(self, make_pipeline):
        store = InMemoryRecordStore([_ai_item("fb-1", "bug_report")])
        pipeline = make_pipeline(FakeClient(categorize=lambda text: "bug_report", confidence=0.95), store)

        summary = pipeline.reanalyze_records()

        item = store.get("fb-1")
        assert summary.processed == 1
        assert len(item.classification_history) == 1
        assert item.ai_confidence == 0.95

    def test_filter(self, make_pipeline, client):
        store = InMemoryRecordStore([
            _ai_item("fb-1", "bug_report"),
            _ai_item("fb-2", "compliment", content="Love it"),
        ])
        pipeline = make_pipeline(client, store)

        summary = pipeline.reanalyze_records({"categories": ["compliment"]})

        assert summary.total == 1
        assert store.get("fb-1").category == "bug_report"
        assert store.get("fb-2").category == "feature_request"

    def test_empty_store(self, make_pipeline, client):
        summary = make_pipeline(client, InMemoryRecordStore()).reanalyze_records()

        assert summary.to_dict() == {"total": 0, "processed": 0, "failed": 0, "errors": []}

    def test_cancellation_reports_remaining_items(self, make_pipeline, client):
        store = InMemoryRecordStore([_ai_item(f"fb-{i}", "bug_report") for i in range(4)])
        pipeline = make_pipeline(client, store)
        cancel = threading.Event()

        summary = pipeline.reanalyze_records(
            batch_size=2,
            on_progress=lambda progress: cancel.set(),
            cancel_event=cancel,
        )

        assert summary.processed == 2
        assert summary.failed == 2
        assert [e["feedback_id"] for e in summary.errors] == ["fb-2", "fb-3"]
        assert store.get("fb-3").category == "bug_report"

    def test_stored_history_with_offsets(self, make_pipeline, client):
        store = InMemoryRecordStore([
            _stored_item("fb-1", "2024-05-01T10:00:00+00:00"),
            _stored_item("fb-2", "2024-05-01T12:00:00"),
        ])
        pipeline = make_pipeline(client, store)

        summary = pipeline.reanalyze_records()

        assert summary.failed == 0
        assert summary.processed == 2
        assert store.get("fb-1").category == "feature_request"
        assert len(store.get("fb-2").classification_history) == 2


class TestImportFeedback:
    """Test bulk creation."""

    def test_import(self, make_pipeline, client):
        store = InMemoryRecordStore()
        pipeline = make_pipeline(client, store)

        summary = pipeline.import_feedback([
            {"content": "Please add CSV export", "source": "survey"},
            "Love the new dashboard",
            {"content": "   "},
        ])

        assert summary.total == 3
        assert summary.processed == 2
        assert summary.failed == 1
        assert "content is required" in summary.errors[0]["error"]

        items = store.find_many()
        assert len(items) == 2
        assert items[0].source == "survey"
        for item in items:
            assert item.category == "feature_request"
            assert item.manual_override is False
            assert len(item.classification_history) == 1
            assert item.last_event.category == item.category

    def test_import_uses_csv_profile_pacing(self, make_pipeline, client, sleeps):
        pipeline = make_pipeline(client, InMemoryRecordStore())

        pipeline.import_feedback([f"feedback {i}" for i in range(16)])

        assert sleeps == [2.0]


class TestConfigAndMetrics:
    """Test the remaining facade operations."""

    def test_get_batch_config(self, pipeline):
        assert pipeline.get_batch_config("csv_import").name == "csv_import"
        assert pipeline.get_batch_config("unknown").name == "default"

    def test_record_correction(self, pipeline):
        for _ in range(4):
            pipeline.record_correction("text", "bug_report", "bug_report", 0.9)
        pipeline.record_correction("text", "bug_report", "compliment", 0.9)

        assert pipeline.get_ai_performance_metrics()["accuracy"] == pytest.approx(0.8)

    def test_usage_stats(self, pipeline):
        pipeline.analyze_and_categorize("Love it")

        stats = pipeline.get_usage_stats()
        assert stats["calls"] == 1
        assert stats["service_available"] is True

    def test_from_environment_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        pipeline = FeedbackPipeline.from_environment()

        assert pipeline.adapter.is_available is False
        result = pipeline.analyze_and_categorize("Package arrived late and damaged")
        assert result.method == ClassificationMethod.HEURISTIC_FALLBACK

    def test_from_environment_with_key(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test-0123456789abcdef")

        pipeline = FeedbackPipeline.from_environment()

        assert pipeline.adapter.is_available is True
