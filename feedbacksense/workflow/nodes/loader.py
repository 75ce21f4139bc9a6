import logging

from ..state import AnalysisState

logger = logging.getLogger(__name__)


def load_feedback(state: AnalysisState) -> dict:
    """Normalize the feedback text before analysis."""
    content = state.get("content")
    if content is None:
        content = ""
    if not isinstance(content, str):
        logger.error(f"Feedback content must be text, got {type(content).__name__}")
        return {"content": "", "error": f"Invalid feedback content type: {type(content).__name__}"}

    return {"content": content.strip()}
