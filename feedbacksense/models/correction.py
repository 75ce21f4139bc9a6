"""Correction data models for measuring AI accuracy from user feedback."""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..config import LEDGER_SNIPPET_LENGTH
from ..utils.timestamps import as_utc, utc_now


@dataclass(frozen=True)
class CorrectionEntry:
    """Represents a single user verdict on an AI category prediction."""

    text_hash: str
    ai_prediction: str
    user_correction: str
    ai_confidence: float
    timestamp: datetime = field(default_factory=utc_now)

    # Leading text only, for privacy
    text_snippet: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    @property
    def was_correct(self) -> bool:
        return self.ai_prediction == self.user_correction

    @classmethod
    def from_text(
        cls,
        text: str,
        ai_prediction: str,
        user_correction: str,
        ai_confidence: float,
    ) -> "CorrectionEntry":
        """Create an entry, hashing the full text and keeping a short snippet."""
        text = text or ""
        return cls(
            text_hash=hashlib.sha256(text.encode("utf-8")).hexdigest(),
            ai_prediction=ai_prediction,
            user_correction=user_correction,
            ai_confidence=float(ai_confidence or 0.0),
            text_snippet=text[:LEDGER_SNIPPET_LENGTH],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "text_hash": self.text_hash,
            "text_snippet": self.text_snippet,
            "ai_prediction": self.ai_prediction,
            "user_correction": self.user_correction,
            "ai_confidence": self.ai_confidence,
            "was_correct": self.was_correct,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CorrectionEntry":
        return cls(
            text_hash=data["text_hash"],
            ai_prediction=data["ai_prediction"],
            user_correction=data["user_correction"],
            ai_confidence=float(data.get("ai_confidence", 0.0)),
            timestamp=as_utc(data.get("timestamp")),
            text_snippet=data.get("text_snippet", ""),
        )
