"""Timezone-aware timestamp helpers shared by the data models."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | str | None) -> datetime:
    """Normalize a stored timestamp to an aware UTC datetime.

    Accepts ISO 8601 strings, including the trailing ``Z`` written by
    JavaScript's ``toISOString``. Naive values are taken to be UTC and a
    missing value becomes the current time.
    """
    if value is None or value == "":
        return utc_now()
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
