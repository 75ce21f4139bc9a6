"""Utility functions for calculating AI performance statistics."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

from ..constants import (
    HIGH_CONFIDENCE,
    HIGH_CONFIDENCE_WRONG_SHARE,
    LOW_CONFIDENCE,
    LOW_CONFIDENCE_WRONG_SHARE,
    TARGET_AVERAGE_CONFIDENCE,
)
from ..models.correction import CorrectionEntry


@dataclass
class PerformanceStatistics:
    """Container for AI accuracy statistics derived from user corrections."""

    total_recorded: int
    correct_predictions: int
    accuracy: float
    per_category_accuracy: dict[str, float] = field(default_factory=dict)
    mean_confidence_when_correct: float | None = None
    mean_confidence_when_wrong: float | None = None
    average_confidence: float | None = None
    improvement_suggestions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "accuracy": self.accuracy,
            "total_recorded": self.total_recorded,
            "correct_predictions": self.correct_predictions,
            "per_category_accuracy": dict(self.per_category_accuracy),
            "mean_confidence_when_correct": self.mean_confidence_when_correct,
            "mean_confidence_when_wrong": self.mean_confidence_when_wrong,
            "average_confidence": self.average_confidence,
            "improvement_suggestions": list(self.improvement_suggestions),
        }

    def to_display_string(self) -> str:
        """Format statistics for display on the command line."""
        return (
            f"Recorded: {self.total_recorded} | Correct: {self.correct_predictions} | "
            f"Accuracy: {self.accuracy * 100:.0f}%"
        )


def _mean(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


def generate_improvement_suggestions(entries: list[CorrectionEntry]) -> list[str]:
    """Suggest prompt or category changes based on how the AI was wrong.

    Args:
        entries: Recorded corrections

    Returns:
        Human-readable suggestions, possibly empty

    """
    total = len(entries)
    if total == 0:
        return []

    suggestions = []
    wrong = [e for e in entries if not e.was_correct]

    low_confidence_wrong = sum(1 for e in wrong if e.ai_confidence < LOW_CONFIDENCE)
    if low_confidence_wrong > total * LOW_CONFIDENCE_WRONG_SHARE:
        suggestions.append("Consider adding more specific keywords to category definitions")

    high_confidence_wrong = sum(1 for e in wrong if e.ai_confidence > HIGH_CONFIDENCE)
    if high_confidence_wrong > total * HIGH_CONFIDENCE_WRONG_SHARE:
        suggestions.append("Review category descriptions for potential overlaps")

    average_confidence = sum(e.ai_confidence for e in entries) / total
    if average_confidence < TARGET_AVERAGE_CONFIDENCE:
        suggestions.append("Consider refining category keywords and descriptions")

    return suggestions


def calculate_performance_statistics(
    entries: list[CorrectionEntry],
) -> PerformanceStatistics:
    """Calculate accuracy statistics for a list of corrections.

    Args:
        entries: Recorded corrections to analyze

    Returns:
        PerformanceStatistics object containing calculated statistics

    """
    total = len(entries)

    if total == 0:
        return PerformanceStatistics(
            total_recorded=0,
            correct_predictions=0,
            accuracy=0.0,
        )

    correct = [e for e in entries if e.was_correct]
    wrong = [e for e in entries if not e.was_correct]

    by_prediction: dict[str, list[bool]] = defaultdict(list)
    for entry in entries:
        by_prediction[entry.ai_prediction].append(entry.was_correct)

    per_category_accuracy = {
        category: sum(outcomes) / len(outcomes)
        for category, outcomes in by_prediction.items()
    }

    return PerformanceStatistics(
        total_recorded=total,
        correct_predictions=len(correct),
        accuracy=len(correct) / total,
        per_category_accuracy=per_category_accuracy,
        mean_confidence_when_correct=_mean([e.ai_confidence for e in correct]),
        mean_confidence_when_wrong=_mean([e.ai_confidence for e in wrong]),
        average_confidence=_mean([e.ai_confidence for e in entries]),
        improvement_suggestions=generate_improvement_suggestions(entries),
    )
