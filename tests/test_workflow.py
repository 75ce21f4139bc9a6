"""Tests for the LangGraph analysis workflow."""

from conftest import FakeClient
from feedbacksense.workflow import build_analysis_workflow, run_analysis
from feedbacksense.workflow.workflow import create_initial_state


class TestAnalysisWorkflow:
    """Test suite for the analysis workflow."""

    def test_initial_state(self):
        state = create_initial_state("Hello", feedback_id="fb-1")

        assert state["content"] == "Hello"
        assert state["feedback_id"] == "fb-1"
        assert state["category"] is None
        assert state["error"] is None

    def test_ai_classification(self, make_adapter):
        client = FakeClient(categorize=lambda text: "compliment")
        app = build_analysis_workflow(make_adapter(client))

        state = run_analysis(app, "  Great service, thank you!  ")

        assert state["category"] == "compliment"
        assert state["method"] == "ai_classification"
        assert state["sentiment_label"] == "positive"
        assert "service" in state["topics"]
        assert client.calls[0][0] == "Great service, thank you!"

    def test_without_service_uses_keywords(self, make_adapter):
        app = build_analysis_workflow(make_adapter(None))

        state = run_analysis(app, "Package arrived late and damaged")

        assert state["category"] == "shipping_complaint"
        assert state["method"] == "heuristic_fallback"

    def test_empty_text_skips_service(self, make_adapter):
        client = FakeClient()
        app = build_analysis_workflow(make_adapter(client))

        state = run_analysis(app, "")

        assert client.calls == []
        assert state["category"] == "general_inquiry"
        assert state["sentiment_label"] == "neutral"

    def test_none_text_is_treated_as_empty(self, make_adapter):
        app = build_analysis_workflow(make_adapter(None))

        state = run_analysis(app, None)

        assert state["error"] is None
        assert state["category"] == "general_inquiry"

    def test_invalid_content_sets_error(self, make_adapter):
        client = FakeClient()
        app = build_analysis_workflow(make_adapter(client))

        state = run_analysis(app, 42)

        assert "Invalid feedback content type" in state["error"]
        assert state["category"] is None
        assert client.calls == []
