import logging
from collections.abc import Callable

from ...models.classification import ClassificationResult
from ...processing.heuristic_analyzer import HeuristicAnalyzer
from ...services.classification_client import ClassificationClientAdapter
from ..state import AnalysisState

logger = logging.getLogger(__name__)


def _to_state(result: ClassificationResult) -> dict:
    return {
        "category": result.category,
        "confidence": result.confidence,
        "reasoning": result.reasoning,
        "method": result.method.value,
        "key_indicators": list(result.key_indicators),
        "attempts": result.attempts,
    }


def make_classify_node(adapter: ClassificationClientAdapter) -> Callable[[AnalysisState], dict]:
    """Build the node that categorizes feedback through the client adapter."""

    def classify_feedback(state: AnalysisState) -> dict:
        if state.get("error"):
            return {}

        result = adapter.classify(state["content"])
        logger.debug(
            f"Classified {state.get('feedback_id') or 'feedback'} as {result.category} "
            f"({result.confidence:.2f}, {result.method.value})"
        )
        return _to_state(result)

    return classify_feedback


def make_heuristic_node(analyzer: HeuristicAnalyzer) -> Callable[[AnalysisState], dict]:
    """Build the node that categorizes feedback with keyword matching only."""

    def heuristic_classify(state: AnalysisState) -> dict:
        if state.get("error"):
            return {}
        return _to_state(analyzer.categorize(state.get("content", "")))

    return heuristic_classify
