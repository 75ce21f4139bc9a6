"""
Feedback record storage: the store protocol and an in-memory implementation.
"""

import copy
import json
import logging
import threading
from pathlib import Path
from typing import Any, Protocol

from ..exceptions import RecordStoreError
from ..models.feedback import FeedbackItem

logger = logging.getLogger(__name__)

FILTER_KEYS = {"categories", "sources", "ids", "manual_override"}

UPDATABLE_FIELDS = {
    "content", "category", "sentiment_label", "sentiment_score", "topics",
    "ai_confidence", "manual_override", "classification_history", "source",
}


class RecordStore(Protocol):
    """Persistence used by the pipeline for feedback records."""

    def get(self, item_id: str) -> FeedbackItem | None:
        ...

    def find_many(self, filter: dict[str, Any] | None = None) -> list[FeedbackItem]:
        ...

    def update(self, item_id: str, **fields: Any) -> FeedbackItem:
        ...

    def create(self, fields: dict[str, Any]) -> FeedbackItem:
        ...


def matches_filter(item: FeedbackItem, filter: dict[str, Any] | None) -> bool:
    """Check an item against a record-store filter.

    Supported keys: ``categories``, ``sources``, ``ids`` (collections) and
    ``manual_override`` (bool). Empty or missing keys match everything.
    """
    if not filter:
        return True

    unknown = set(filter) - FILTER_KEYS
    if unknown:
        raise RecordStoreError(f"Unsupported filter keys: {', '.join(sorted(unknown))}")

    if filter.get("categories") and item.category not in filter["categories"]:
        return False
    if filter.get("sources") and item.source not in filter["sources"]:
        return False
    if filter.get("ids") and item.id not in filter["ids"]:
        return False
    if filter.get("manual_override") is not None and item.manual_override != filter["manual_override"]:
        return False
    return True


class InMemoryRecordStore:
    """In-memory feedback storage with per-item isolation.

    Items are copied in and out, so changes only reach the store through
    ``update`` or ``create``.
    """

    def __init__(self, items: list[FeedbackItem] | None = None) -> None:
        self._items: dict[str, FeedbackItem] = {}
        self._lock = threading.Lock()
        for item in items or []:
            self._items[item.id] = copy.deepcopy(item)

    def get(self, item_id: str) -> FeedbackItem | None:
        """Get a specific item by id"""
        with self._lock:
            item = self._items.get(item_id)
            return copy.deepcopy(item) if item else None

    def find_many(self, filter: dict[str, Any] | None = None) -> list[FeedbackItem]:
        """Get all items matching a filter, in insertion order"""
        with self._lock:
            return [
                copy.deepcopy(item) for item in self._items.values()
                if matches_filter(item, filter)
            ]

    def update(self, item_id: str, **fields: Any) -> FeedbackItem:
        """Update allowed fields of an existing item.

        Raises:
            RecordStoreError: If the item does not exist or a field is not updatable

        """
        invalid = set(fields) - UPDATABLE_FIELDS
        if invalid:
            raise RecordStoreError(f"Fields cannot be updated: {', '.join(sorted(invalid))}")

        with self._lock:
            item = self._items.get(item_id)
            if item is None:
                raise RecordStoreError(f"Feedback {item_id} not found")

            updated = copy.deepcopy(item)
            for name, value in fields.items():
                setattr(updated, name, copy.deepcopy(value))
            # Re-run coercion for label strings and serialized history
            updated.__post_init__()
            self._items[item_id] = updated
            return copy.deepcopy(updated)

    def create(self, fields: dict[str, Any]) -> FeedbackItem:
        """Create a new item from a field mapping.

        Raises:
            RecordStoreError: If the content is missing or the id already exists

        """
        if not fields.get("content"):
            raise RecordStoreError("Feedback content is required")

        try:
            item = FeedbackItem.from_dict(fields)
        except (TypeError, ValueError) as e:
            raise RecordStoreError(f"Invalid feedback fields: {e}") from e

        with self._lock:
            if item.id in self._items:
                raise RecordStoreError(f"Feedback {item.id} already exists")
            self._items[item.id] = copy.deepcopy(item)
        return item

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @classmethod
    def load(cls, path: str | Path) -> "InMemoryRecordStore":
        """Load a store from a JSON file holding a list of feedback records."""
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise RecordStoreError(f"Could not read feedback file {path}: {e}") from e

        if not isinstance(data, list):
            raise RecordStoreError(f"Expected a list of feedback records in {path}")

        items = [FeedbackItem.from_dict(record) for record in data]
        logger.info(f"Loaded {len(items)} feedback records from {path}")
        return cls(items)

    def save(self, path: str | Path) -> None:
        """Write every record to a JSON file."""
        path = Path(path)
        with self._lock:
            records = [item.to_dict() for item in self._items.values()]
        path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        logger.info(f"Saved {len(records)} feedback records to {path}")
