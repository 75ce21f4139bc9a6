"""Shared fixtures and fake collaborators for the test suite."""

import threading

import pytest

from feedbacksense.exceptions import TransientClassificationError
from feedbacksense.models.classification import Category
from feedbacksense.processing.retry_policy import RetryPolicy
from feedbacksense.services.classification_client import ClassificationClientAdapter

CATEGORY_IDS = [c.value for c in Category]


def category_for(text):
    """Deterministic category for texts of the form 'feedback <n>'."""
    return CATEGORY_IDS[int(text.rsplit(" ", 1)[-1]) % len(CATEGORY_IDS)]


class FakeClient:
    """Classification client returning scripted outcomes.

    Outcomes are consumed one per call; an Exception outcome is raised. Once
    the script runs out, ``categorize(text)`` decides the category.
    """

    def __init__(self, outcomes=None, categorize=None, confidence=0.9):
        self.outcomes = list(outcomes or [])
        self.categorize = categorize or (lambda text: "general_inquiry")
        self.confidence = confidence
        self.calls = []
        self._lock = threading.Lock()

    def classify(self, text, timeout=None):
        with self._lock:
            self.calls.append((text, timeout))
            outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return outcome
        return {
            "category": self.categorize(text),
            "confidence": self.confidence,
            "reasoning": "fake classification",
        }


class FailingClient:
    """Classification client that never succeeds."""

    def __init__(self, error_factory=lambda: TransientClassificationError("timed out")):
        self.error_factory = error_factory
        self.calls = 0
        self._lock = threading.Lock()

    def classify(self, text, timeout=None):
        with self._lock:
            self.calls += 1
        raise self.error_factory()


@pytest.fixture
def sleeps():
    """Recorded sleep durations; pass ``sleeps.append`` as the sleep function."""
    return []


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def make_adapter(sleeps):
    """Build an adapter with zero-delay retries and recorded sleeps."""

    def _make(client, max_attempts=3, max_workers=1, **kwargs):
        return ClassificationClientAdapter(
            client,
            retry_policy=kwargs.pop("retry_policy", RetryPolicy.immediate(max_attempts)),
            max_workers=max_workers,
            sleep=sleeps.append,
            **kwargs,
        )

    return _make
