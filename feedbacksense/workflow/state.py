from typing import TypedDict


class AnalysisState(TypedDict):
    """State that flows through the analysis workflow."""

    # Input fields
    feedback_id: str | None
    content: str

    # Sentiment results
    sentiment_label: str | None  # "positive", "neutral", "negative"
    sentiment_score: float | None
    sentiment_confidence: float | None
    topics: list[str] | None

    # Classification results
    category: str | None
    confidence: float | None
    reasoning: str | None
    method: str | None  # "ai_classification" or "heuristic_fallback"
    key_indicators: list[str] | None
    attempts: int | None

    # Workflow control
    error: str | None
