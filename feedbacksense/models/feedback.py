from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from ..utils.timestamps import as_utc, utc_now
from .audit import ClassificationEvent
from .classification import SentimentLabel


@dataclass
class FeedbackItem:
    """Represents a customer feedback record as held by the record store."""

    content: str
    id: str = field(default_factory=lambda: str(uuid4()))
    category: str | None = None
    sentiment_label: SentimentLabel = SentimentLabel.NEUTRAL
    sentiment_score: float = 0.5
    topics: list[str] = field(default_factory=list)
    ai_confidence: float | None = None  # None until AI-classified
    manual_override: bool = False
    classification_history: list[ClassificationEvent] = field(default_factory=list)

    # Optional record-store fields
    source: str | None = None
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        self.created_at = as_utc(self.created_at)
        if isinstance(self.sentiment_label, str):
            self.sentiment_label = SentimentLabel(self.sentiment_label)
        self.classification_history = [
            e if isinstance(e, ClassificationEvent) else ClassificationEvent.from_dict(e)
            for e in self.classification_history
        ]

    @property
    def last_event(self) -> ClassificationEvent | None:
        """Most recent classification event, if any."""
        return self.classification_history[-1] if self.classification_history else None

    def to_dict(self) -> dict[str, Any]:
        """Convert feedback item to dictionary for serialization."""
        return {
            "id": self.id,
            "content": self.content,
            "category": self.category,
            "sentiment_label": self.sentiment_label.value,
            "sentiment_score": self.sentiment_score,
            "topics": list(self.topics),
            "ai_confidence": self.ai_confidence,
            "manual_override": self.manual_override,
            "classification_history": [e.to_dict() for e in self.classification_history],
            "source": self.source,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FeedbackItem":
        """Create a feedback item from a serialized dictionary."""
        kwargs = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        if kwargs.get("id") is None:
            kwargs.pop("id", None)
        return cls(**kwargs)
