"""Lexical sentiment and topic extraction node."""

from collections.abc import Callable

from ...processing.heuristic_analyzer import HeuristicAnalyzer
from ..state import AnalysisState


def make_sentiment_node(analyzer: HeuristicAnalyzer) -> Callable[[AnalysisState], dict]:
    """Build the node that scores sentiment and extracts topics.

    Args:
        analyzer: Analyzer providing the word lists

    Returns:
        Node function for the analysis graph

    """

    def analyze_sentiment(state: AnalysisState) -> dict:
        if state.get("error"):
            return {}

        content = state.get("content", "")
        sentiment = analyzer.analyze_sentiment(content)
        return {
            "sentiment_label": sentiment.label.value,
            "sentiment_score": sentiment.score,
            "sentiment_confidence": sentiment.confidence,
            "topics": list(sentiment.topics),
        }

    return analyze_sentiment
