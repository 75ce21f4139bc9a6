"""Classification audit trail data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..utils.timestamps import as_utc, utc_now
from .classification import ClassificationMethod


@dataclass(frozen=True)
class ClassificationEvent:
    """Represents a single, immutable entry in a feedback item's history."""

    category: str
    confidence: float
    method: ClassificationMethod
    reasoning: str = ""
    previous_category: str | None = None
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage.

        Returns:
            Dictionary with all fields formatted for the record store

        """
        data = {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category,
            "confidence": self.confidence,
            "method": self.method.value,
            "reasoning": self.reasoning,
        }
        if self.previous_category is not None:
            data["previous_category"] = self.previous_category
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ClassificationEvent":
        """Rebuild an event from its stored dictionary form."""
        return cls(
            category=data["category"],
            confidence=float(data.get("confidence", 0.0)),
            method=ClassificationMethod(data["method"]),
            reasoning=data.get("reasoning", ""),
            previous_category=data.get("previous_category"),
            timestamp=as_utc(data.get("timestamp")),
        )
