"""Tests for the keyword-based HeuristicAnalyzer."""

import pytest

from feedbacksense.constants import HEURISTIC_MAX_CONFIDENCE
from feedbacksense.models.classification import (
    CategoryDefinition,
    ClassificationMethod,
    SentimentLabel,
)
from feedbacksense.processing.heuristic_analyzer import HeuristicAnalyzer, tokenize


@pytest.fixture
def analyzer():
    """Create an analyzer with the built-in categories."""
    return HeuristicAnalyzer()


class TestSentiment:
    """Test lexical sentiment scoring."""

    def test_positive_feedback(self, analyzer):
        result = analyzer.analyze_sentiment("Great product, fast delivery, love it!")

        assert result.label == SentimentLabel.POSITIVE
        assert result.score == 1.0
        assert result.confidence == 0.6
        assert result.topics == ["product", "delivery"]

    def test_negative_feedback(self, analyzer):
        result = analyzer.analyze_sentiment("Terrible support, very slow and rude")

        assert result.label == SentimentLabel.NEGATIVE
        assert result.score == 0.0
        assert result.topics == ["service", "delivery"]

    def test_mixed_feedback_is_neutral(self, analyzer):
        result = analyzer.analyze_sentiment("good but slow")

        assert result.label == SentimentLabel.NEUTRAL
        assert result.score == 0.5
        assert result.confidence == 0.4

    def test_no_sentiment_words(self, analyzer):
        result = analyzer.analyze_sentiment("I received the parcel on Tuesday")

        assert result.label == SentimentLabel.NEUTRAL
        assert result.score == 0.5
        assert result.confidence == 0.1
        assert result.topics == ["general"]

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_input_never_raises(self, analyzer, text):
        result = analyzer.analyze_sentiment(text)

        assert result.label == SentimentLabel.NEUTRAL
        assert result.topics == ["general"]


class TestCategorize:
    """Test keyword category matching."""

    def test_bug_report(self, analyzer):
        result = analyzer.categorize("The app keeps crashing with an error")

        assert result.category == "bug_report"
        assert result.method == ClassificationMethod.HEURISTIC_FALLBACK
        assert set(result.key_indicators) == {"error", "crash"}
        assert result.confidence == 0.6

    def test_single_short_keyword(self, analyzer):
        result = analyzer.categorize("Please add dark mode")

        assert result.category == "feature_request"
        assert result.confidence == 0.15
        assert result.key_indicators == ["add"]

    def test_no_match_defaults_to_general_inquiry(self, analyzer):
        result = analyzer.categorize("Hello there")

        assert result.category == "general_inquiry"
        assert result.confidence == 0.3
        assert result.key_indicators == []

    def test_confidence_never_exceeds_cap(self, analyzer):
        text = "bug error broken crash issue problem not working fails glitch"
        result = analyzer.categorize(text)

        assert result.category == "bug_report"
        assert result.confidence <= HEURISTIC_MAX_CONFIDENCE

    def test_custom_category(self):
        pricing = CategoryDefinition(
            id="pricing", name="Pricing", keywords=("price", "expensive")
        )
        analyzer = HeuristicAnalyzer([pricing])

        result = analyzer.categorize("The price is too expensive")

        assert result.category == "pricing"
        assert result.confidence == HEURISTIC_MAX_CONFIDENCE

    def test_inactive_category_is_ignored(self):
        disabled = CategoryDefinition(
            id="compliment", name="Compliment", keywords=("great",), is_active=False
        )
        analyzer = HeuristicAnalyzer([disabled])

        assert "compliment" not in {c.id for c in analyzer.categories}
        assert analyzer.categorize("great").category == "general_inquiry"

    def test_deterministic(self, analyzer):
        text = "My package arrived late and damaged"
        assert analyzer.categorize(text) == analyzer.categorize(text)


class TestAnalyze:
    """Test the combined analysis."""

    def test_analyze_combines_sentiment_and_category(self, analyzer):
        result = analyzer.analyze("Delivery was late, terrible experience")

        assert result.category == "shipping_complaint"
        assert result.method == ClassificationMethod.HEURISTIC_FALLBACK
        assert result.sentiment_label == SentimentLabel.NEGATIVE
        assert "delivery" in result.topics

    def test_analyze_none(self, analyzer):
        result = analyzer.analyze(None)

        assert result.category == "general_inquiry"
        assert result.sentiment_label == SentimentLabel.NEUTRAL


def test_tokenize_strips_punctuation():
    assert tokenize("Great!! Love it, don't stop.") == ["great", "love", "it", "don't", "stop"]
