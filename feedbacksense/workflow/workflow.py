import logging
from typing import Any, cast

from langgraph.graph import StateGraph
from langgraph.graph.state import CompiledStateGraph

from ..processing.heuristic_analyzer import HeuristicAnalyzer
from ..services.classification_client import ClassificationClientAdapter
from .nodes.classifier import make_classify_node, make_heuristic_node
from .nodes.loader import load_feedback
from .nodes.sentiment import make_sentiment_node
from .state import AnalysisState

logger = logging.getLogger(__name__)


def build_analysis_workflow(
    adapter: ClassificationClientAdapter,
    analyzer: HeuristicAnalyzer | None = None,
) -> CompiledStateGraph[AnalysisState, Any]:
    """Build the compiled single-item analysis workflow.

    Args:
        adapter: Adapter used to categorize feedback
        analyzer: Analyzer for sentiment and keyword fallback (defaults to the adapter's)

    Returns:
        Compiled LangGraph workflow

    """
    analyzer = analyzer or adapter.analyzer
    workflow = StateGraph(AnalysisState)

    # Add nodes
    workflow.add_node("load_feedback", load_feedback)
    workflow.add_node("analyze_sentiment", make_sentiment_node(analyzer))
    workflow.add_node("classify", make_classify_node(adapter))
    workflow.add_node("heuristic_classify", make_heuristic_node(analyzer))

    # Define the flow with conditional routing
    workflow.add_edge("load_feedback", "analyze_sentiment")

    def route_after_sentiment(state: AnalysisState) -> str:
        """Skip the service call when there is nothing worth sending."""
        if state.get("error"):
            return "end"
        if not state.get("content") or not adapter.is_available:
            logger.debug(f"Using keyword classification for {state.get('feedback_id') or 'feedback'}")
            return "heuristic"
        return "classify"

    workflow.add_conditional_edges(
        "analyze_sentiment",
        route_after_sentiment,
        {
            "classify": "classify",
            "heuristic": "heuristic_classify",
            "end": "__end__",
        },
    )

    workflow.set_entry_point("load_feedback")
    workflow.set_finish_point("classify")
    workflow.set_finish_point("heuristic_classify")

    return workflow.compile()


def create_initial_state(content: str, feedback_id: str | None = None) -> AnalysisState:
    """Create initial state for feedback analysis.

    Args:
        content: Raw feedback text
        feedback_id: Identifier of the record being analyzed, if any

    Returns:
        Initial analysis state

    """
    return {
        "feedback_id": feedback_id,
        "content": content,
        "sentiment_label": None,
        "sentiment_score": None,
        "sentiment_confidence": None,
        "topics": None,
        "category": None,
        "confidence": None,
        "reasoning": None,
        "method": None,
        "key_indicators": None,
        "attempts": None,
        "error": None,
    }


def run_analysis(
    app: CompiledStateGraph[AnalysisState, Any],
    content: str,
    feedback_id: str | None = None,
) -> AnalysisState:
    """Run one feedback text through a compiled workflow.

    Args:
        app: Workflow from ``build_analysis_workflow``
        content: Raw feedback text
        feedback_id: Identifier of the record being analyzed, if any

    Returns:
        Analysis state after processing

    """
    result = app.invoke(create_initial_state(content, feedback_id))
    return cast(AnalysisState, result)
