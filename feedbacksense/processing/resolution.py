"""Decides which category a feedback item ends up with after an edit or re-analysis."""

from dataclasses import dataclass

from ..constants import MANUAL_OVERRIDE_CONFIDENCE, MANUAL_OVERRIDE_REASONING
from ..models.audit import ClassificationEvent
from ..models.classification import ClassificationMethod, ClassificationResult
from ..models.feedback import FeedbackItem


@dataclass(frozen=True)
class Resolution:
    """Outcome of a category decision.

    ``event`` is None when nothing changed; otherwise it is the history entry
    to append alongside the new category.
    """

    category: str | None
    confidence: float | None
    override: bool
    method: ClassificationMethod | None
    event: ClassificationEvent | None = None

    @property
    def changed(self) -> bool:
        return self.event is not None


class CategoryResolutionPolicy:
    """Applies the precedence rules between manual edits and AI results.

    1. A manual edit naming a different category always wins and pins the item
       with full confidence.
    2. Otherwise, re-analysis or a content change applies the AI (or heuristic)
       result, unless a manual override is pending and re-analysis was not
       explicitly requested.
    3. Anything else leaves the item untouched.
    """

    def resolve(
        self,
        current: FeedbackItem,
        ai_result: ClassificationResult | None = None,
        user_category: str | None = None,
        is_manual_edit: bool = False,
        reanalyze: bool = False,
        content_changed: bool = False,
    ) -> Resolution:
        """Resolve the category for an item.

        Args:
            current: The item as currently stored
            ai_result: Fresh classification of the item's content, if any
            user_category: Category chosen by the user, if any
            is_manual_edit: Whether the change comes from a user edit
            reanalyze: Whether re-analysis was explicitly requested
            content_changed: Whether the item's text was edited

        Returns:
            The Resolution to apply; it carries no event when nothing changes

        """
        if is_manual_edit and user_category and user_category != current.category:
            event = ClassificationEvent(
                category=user_category,
                confidence=MANUAL_OVERRIDE_CONFIDENCE,
                method=ClassificationMethod.MANUAL_OVERRIDE,
                reasoning=MANUAL_OVERRIDE_REASONING,
                previous_category=current.category,
            )
            return Resolution(
                category=user_category,
                confidence=MANUAL_OVERRIDE_CONFIDENCE,
                override=True,
                method=ClassificationMethod.MANUAL_OVERRIDE,
                event=event,
            )

        override_blocks = current.manual_override and not reanalyze
        if (reanalyze or content_changed) and ai_result is not None and not override_blocks:
            event = ClassificationEvent(
                category=ai_result.category,
                confidence=ai_result.confidence,
                method=ai_result.method,
                reasoning=ai_result.reasoning,
                previous_category=(
                    current.category if current.category != ai_result.category else None
                ),
            )
            return Resolution(
                category=ai_result.category,
                confidence=ai_result.confidence,
                override=False,
                method=ai_result.method,
                event=event,
            )

        return self.unchanged(current)

    @staticmethod
    def unchanged(current: FeedbackItem) -> Resolution:
        """Resolution that keeps the item exactly as it is."""
        last = current.last_event
        return Resolution(
            category=current.category,
            confidence=current.ai_confidence,
            override=current.manual_override,
            method=last.method if last else None,
        )
