"""Classification types, enums and result records."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..config import ANALYSIS_VERSION, DEFAULT_CATEGORIES
from ..utils.timestamps import utc_now


class Category(str, Enum):
    """Built-in feedback categories."""

    FEATURE_REQUEST = "feature_request"
    BUG_REPORT = "bug_report"
    SHIPPING_COMPLAINT = "shipping_complaint"
    PRODUCT_QUALITY = "product_quality"
    CUSTOMER_SERVICE = "customer_service"
    GENERAL_INQUIRY = "general_inquiry"
    REFUND_REQUEST = "refund_request"
    COMPLIMENT = "compliment"

    @property
    def display_name(self) -> str:
        """Get human-readable display name."""
        return self.value.replace("_", " ").title()

    @classmethod
    def from_string(cls, value: str | None) -> "Category | None":
        """Create Category from string value."""
        if not value:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


class ClassificationMethod(str, Enum):
    """How a category was assigned."""

    AI_CLASSIFICATION = "ai_classification"
    HEURISTIC_FALLBACK = "heuristic_fallback"
    MANUAL_OVERRIDE = "manual_override"


class SentimentLabel(str, Enum):
    """Sentiment labels."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class CategoryDefinition:
    """A category the classifier may assign, built-in or custom."""

    id: str
    name: str
    description: str = ""
    keywords: tuple[str, ...] = ()
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CategoryDefinition":
        """Build a definition from a dict with comma-separated keywords."""
        keywords = data.get("keywords", "")
        if isinstance(keywords, str):
            keywords = keywords.split(",")
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            description=data.get("description", ""),
            keywords=tuple(k.strip().lower() for k in keywords if k and k.strip()),
            is_active=data.get("is_active", data.get("isActive", True)),
        )

    def prompt_line(self) -> str:
        """Format the definition for inclusion in a classification prompt."""
        line = f"- {self.id}: {self.description}"
        if self.keywords:
            line += f" (Keywords: {', '.join(self.keywords)})"
        return line


def default_categories() -> list[CategoryDefinition]:
    """Return the built-in category definitions."""
    return [CategoryDefinition.from_dict(c) for c in DEFAULT_CATEGORIES]


def active_categories(
    custom: list[CategoryDefinition] | None = None,
) -> list[CategoryDefinition]:
    """Merge built-in and custom categories, dropping inactive ones.

    A custom definition with the id of a built-in one replaces it.
    """
    merged: dict[str, CategoryDefinition] = {c.id: c for c in default_categories()}
    for definition in custom or []:
        merged[definition.id] = definition
    return [c for c in merged.values() if c.is_active]


@dataclass
class ClassificationResult:
    """Category assignment for one text, as returned by the client adapter."""

    category: str
    confidence: float
    reasoning: str
    method: ClassificationMethod
    key_indicators: list[str] = field(default_factory=list)
    attempts: int = 0

    @property
    def is_fallback(self) -> bool:
        """True when the result came from the heuristic analyzer."""
        return self.method == ClassificationMethod.HEURISTIC_FALLBACK


@dataclass
class AnalysisResult:
    """Combined category and sentiment analysis for one feedback text."""

    category: str
    confidence: float
    reasoning: str
    method: ClassificationMethod
    sentiment_label: SentimentLabel
    sentiment_score: float
    sentiment_confidence: float
    topics: list[str] = field(default_factory=list)
    key_indicators: list[str] = field(default_factory=list)
    feedback_id: str | None = None
    analyzed_at: datetime = field(default_factory=utc_now)
    analysis_version: str = ANALYSIS_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            "feedback_id": self.feedback_id,
            "category": self.category,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "method": self.method.value,
            "sentiment_label": self.sentiment_label.value,
            "sentiment_score": self.sentiment_score,
            "sentiment_confidence": self.sentiment_confidence,
            "topics": list(self.topics),
            "key_indicators": list(self.key_indicators),
            "analyzed_at": self.analyzed_at.isoformat(),
            "analysis_version": self.analysis_version,
        }
