"""Standardized error handling utilities for the FeedbackSense pipeline."""

from typing import Any


def describe_error(error: Exception | str) -> str:
    """Render an error as ``Type: message`` (or the string itself)."""
    if isinstance(error, Exception):
        message = str(error) or "no details"
        return f"{type(error).__name__}: {message}"
    return error


def fallback_reasoning(error: Exception | str | None = None) -> str:
    """Build the reasoning text recorded when the heuristic stands in for the AI.

    Args:
        error: The failure that caused the fallback, if any

    Returns:
        Reasoning string suitable for a classification event

    """
    if error is None:
        return "Fallback classification due to AI service unavailability"
    return f"Fallback classification due to analysis failure ({describe_error(error)})"


def create_error_entry(
    feedback_id: str | None,
    error: Exception | str,
) -> dict[str, Any]:
    """Create a standardized per-item error entry for bulk summaries.

    Args:
        feedback_id: Identifier of the item that failed (None for batch-level errors)
        error: The error that occurred

    Returns:
        Dictionary with the item id and a readable error message

    """
    error_message = str(error) if isinstance(error, Exception) else error
    return {
        "feedback_id": feedback_id,
        "error": error_message,
    }
