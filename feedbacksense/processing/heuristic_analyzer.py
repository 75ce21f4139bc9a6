"""Deterministic keyword-based analysis used when the AI service is unavailable.

This mirrors what the classification service produces (category, confidence,
sentiment and topics) using only word lists, so it never fails and its cost
grows linearly with the length of the text.
"""

import re
from dataclasses import dataclass, field

from ..config import FALLBACK_CATEGORY
from ..constants import (
    HEURISTIC_KEYWORD_CAP,
    HEURISTIC_KEYWORD_WEIGHT,
    HEURISTIC_MAX_CONFIDENCE,
    HEURISTIC_NO_MATCH_CONFIDENCE,
    NEGATIVE_THRESHOLD,
    NEUTRAL_SCORE,
    NO_KEYWORDS_REASONING,
    POSITIVE_THRESHOLD,
)
from ..models.classification import (
    AnalysisResult,
    CategoryDefinition,
    ClassificationMethod,
    ClassificationResult,
    SentimentLabel,
    active_categories,
)

POSITIVE_WORDS = frozenset({
    "amazing", "awesome", "excellent", "fantastic", "great", "good", "love", "perfect",
    "wonderful", "best", "outstanding", "brilliant", "satisfied", "happy", "pleased",
    "impressed", "recommend", "helpful", "fast", "quick", "easy", "smooth", "efficient",
})

NEGATIVE_WORDS = frozenset({
    "terrible", "awful", "bad", "worst", "hate", "horrible", "disgusting", "disappointing",
    "frustrated", "angry", "annoyed", "slow", "difficult", "hard", "confusing", "broken",
    "useless", "poor", "expensive", "overpriced", "delayed", "late", "rude", "unhelpful",
})

TOPIC_KEYWORDS: dict[str, frozenset[str]] = {
    "product": frozenset({"product", "item", "quality", "design", "feature"}),
    "service": frozenset({"service", "support", "help", "staff", "team"}),
    "delivery": frozenset({"delivery", "shipping", "arrived", "package", "fast", "slow"}),
    "price": frozenset({"price", "cost", "expensive", "cheap", "value", "money"}),
    "website": frozenset({"website", "app", "online", "interface", "login"}),
    "payment": frozenset({"payment", "checkout", "card", "billing", "transaction"}),
}

DEFAULT_TOPIC = "general"

_WORD_PATTERN = re.compile(r"[a-z0-9']+")


@dataclass(frozen=True)
class SentimentResult:
    """Lexical sentiment of a text."""

    label: SentimentLabel
    score: float
    confidence: float
    topics: list[str] = field(default_factory=list)


def _normalize(text: object) -> str:
    if text is None:
        return ""
    return text if isinstance(text, str) else str(text)


def tokenize(text: str | None) -> list[str]:
    """Lowercase word tokens with surrounding punctuation removed."""
    return _WORD_PATTERN.findall(_normalize(text).lower())


class HeuristicAnalyzer:
    """Keyword-based sentiment, topic and category analysis."""

    def __init__(self, categories: list[CategoryDefinition] | None = None) -> None:
        """Initialize the analyzer.

        Args:
            categories: Custom category definitions merged over the built-in set

        """
        self.categories = active_categories(categories)

    def analyze(self, text: str | None) -> AnalysisResult:
        """Run the full heuristic analysis on a feedback text.

        Args:
            text: Raw feedback text (None or empty is treated as neutral)

        Returns:
            AnalysisResult with method ``heuristic_fallback``

        """
        sentiment = self.analyze_sentiment(text)
        category = self.categorize(text)
        return AnalysisResult(
            category=category.category,
            confidence=category.confidence,
            reasoning=category.reasoning,
            method=ClassificationMethod.HEURISTIC_FALLBACK,
            sentiment_label=sentiment.label,
            sentiment_score=sentiment.score,
            sentiment_confidence=sentiment.confidence,
            topics=sentiment.topics,
            key_indicators=category.key_indicators,
        )

    def analyze_sentiment(self, text: str | None) -> SentimentResult:
        """Score sentiment as the share of positive words among sentiment words."""
        words = tokenize(text)
        positive = sum(1 for w in words if w in POSITIVE_WORDS)
        negative = sum(1 for w in words if w in NEGATIVE_WORDS)
        total = positive + negative

        if total == 0:
            score = NEUTRAL_SCORE
            label = SentimentLabel.NEUTRAL
        else:
            score = positive / total
            if score >= POSITIVE_THRESHOLD:
                label = SentimentLabel.POSITIVE
            elif score <= NEGATIVE_THRESHOLD:
                label = SentimentLabel.NEGATIVE
            else:
                label = SentimentLabel.NEUTRAL

        confidence = min(total * 0.2, 1.0) if total else 0.1
        return SentimentResult(
            label=label,
            score=round(score, 4),
            confidence=round(confidence, 2),
            topics=self.extract_topics(words),
        )

    def extract_topics(self, words: list[str]) -> list[str]:
        """Return matching topic names in a stable order."""
        vocabulary = set(words)
        topics = [
            topic for topic, keywords in TOPIC_KEYWORDS.items()
            if keywords & vocabulary
        ]
        return topics or [DEFAULT_TOPIC]

    def categorize(self, text: str | None) -> ClassificationResult:
        """Pick the category whose keywords best match the text.

        Longer keywords (more than 3 characters) weigh double. Ties keep the
        category listed first.
        """
        lowered = _normalize(text).lower()
        best_category = FALLBACK_CATEGORY
        best_score = 0
        best_matches: list[str] = []

        for definition in self.categories:
            matches = [k for k in definition.keywords if k in lowered]
            score = sum(2 if len(k) > 3 else 1 for k in matches)
            if score > best_score:
                best_category, best_score, best_matches = definition.id, score, matches

        if best_score == 0:
            return ClassificationResult(
                category=FALLBACK_CATEGORY,
                confidence=HEURISTIC_NO_MATCH_CONFIDENCE,
                reasoning=NO_KEYWORDS_REASONING,
                method=ClassificationMethod.HEURISTIC_FALLBACK,
            )

        confidence = min(best_score * HEURISTIC_KEYWORD_WEIGHT, HEURISTIC_KEYWORD_CAP)
        if len(best_matches) > 1:
            confidence += 0.1
        if sum(len(k) for k in best_matches) / len(best_matches) > 5:
            confidence += 0.05
        confidence = min(confidence, HEURISTIC_MAX_CONFIDENCE)

        return ClassificationResult(
            category=best_category,
            confidence=round(confidence, 2),
            reasoning=(
                "Keyword-based classification (fallback). "
                f"Matched: {', '.join(best_matches)}"
            ),
            method=ClassificationMethod.HEURISTIC_FALLBACK,
            key_indicators=best_matches,
        )
