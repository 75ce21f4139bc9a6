"""Append-only classification history for feedback items."""

import logging

from ..exceptions import ValidationError
from ..models.audit import ClassificationEvent
from ..models.feedback import FeedbackItem
from .resolution import Resolution

logger = logging.getLogger(__name__)


class ClassificationHistoryTracker:
    """Records how each feedback item's category was set over time."""

    def __init__(self, max_entries: int | None = None) -> None:
        """Initialize the tracker.

        Args:
            max_entries: Keep only the newest entries per item (None keeps all)

        """
        if max_entries is not None and max_entries < 1:
            raise ValidationError(f"max_entries must be at least 1, got {max_entries}")
        self.max_entries = max_entries

    def append(self, item: FeedbackItem, event: ClassificationEvent) -> FeedbackItem:
        """Append an event to the item's history.

        The item receives a new list, so any reference to the previous history
        is left untouched.

        Args:
            item: The feedback item
            event: The event to record

        Returns:
            The same item, for chaining

        Raises:
            ValidationError: If the event is older than the last recorded one

        """
        last = item.last_event
        if last is not None and event.timestamp < last.timestamp:
            raise ValidationError(
                f"History for {item.id} must stay chronological: "
                f"{event.timestamp.isoformat()} precedes {last.timestamp.isoformat()}"
            )

        history = [*item.classification_history, event]
        if self.max_entries is not None and len(history) > self.max_entries:
            history = history[-self.max_entries:]
        item.classification_history = history

        logger.debug(
            f"History {item.id}: {event.previous_category or '-'} -> {event.category} "
            f"({event.method.value})"
        )
        return item

    def history(self, item: FeedbackItem) -> tuple[ClassificationEvent, ...]:
        """Get a read-only copy of the item's history, oldest first."""
        return tuple(item.classification_history)

    def apply(self, item: FeedbackItem, resolution: Resolution) -> FeedbackItem:
        """Apply a resolution to an item.

        The event and the category fields are written together so the last
        event's category always equals the item's current category. A
        resolution without an event leaves the item unchanged.
        """
        if resolution.event is None:
            return item

        self.append(item, resolution.event)
        item.category = resolution.category
        item.ai_confidence = resolution.confidence
        item.manual_override = resolution.override
        return item
