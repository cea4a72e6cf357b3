"""Approval queue — auto-approval, manual review, selection and filtering of drafts."""

import logging
from collections.abc import Iterable

from pipeline.types import ContentDraft

logger = logging.getLogger(__name__)

FILTER_ALL = "All"

# Dashboard filter label -> marker searched in the upper-cased classification
CLASSIFICATION_FILTERS = {
    "Tech Deep Dive": "TECH DEEP DIVE",
    "Job Post": "JOB",
    "Research Summary": "RESEARCH",
}

REVIEW_AUTO_APPROVED = "Auto-Approved"
REVIEW_NEEDS_REVIEW = "Needs Review"
REVIEW_FILTERS = (FILTER_ALL, REVIEW_AUTO_APPROVED, REVIEW_NEEDS_REVIEW)


def is_auto_approved(draft: ContentDraft, threshold: float) -> bool:
    return not draft.requires_review and draft.relevance_score >= threshold


def matches_classification(draft: ContentDraft, classification: str) -> bool:
    if classification == FILTER_ALL:
        return True
    marker = CLASSIFICATION_FILTERS.get(classification)
    if marker is None:
        raise ValueError(f"Unknown classification filter: {classification}")
    return marker in draft.classification.upper()


def matches_review(draft: ContentDraft, review: str) -> bool:
    if review == REVIEW_AUTO_APPROVED:
        return not draft.requires_review
    if review == REVIEW_NEEDS_REVIEW:
        return draft.requires_review
    if review == FILTER_ALL:
        return True
    raise ValueError(f"Unknown review filter: {review}")


def filter_drafts(
    drafts: Iterable[ContentDraft],
    classification: str = FILTER_ALL,
    review: str = FILTER_ALL,
) -> list[ContentDraft]:
    return [
        d for d in drafts
        if matches_classification(d, classification) and matches_review(d, review)
    ]


class ApprovalQueue:
    """Per-session approval, selection and expansion state, keyed by draft id.

    Drafts themselves are never mutated; everything here lives beside them.
    """

    def __init__(self):
        self.approved: set[str] = set()
        self.selected: set[str] = set()
        self.expanded: set[str] = set()

    def auto_approve(self, drafts: Iterable[ContentDraft], threshold: float) -> set[str]:
        """Replace the approval set with the drafts that clear the threshold."""
        self.approved = {d.id for d in drafts if is_auto_approved(d, threshold)}
        self.selected = set()
        logger.info("Auto-approved %d drafts (threshold=%s)", len(self.approved), threshold)
        return set(self.approved)

    def approve(self, draft_id: str) -> None:
        self.approved.add(draft_id)

    def revoke(self, draft_id: str) -> None:
        self.approved.discard(draft_id)

    def is_approved(self, draft_id: str) -> bool:
        return draft_id in self.approved

    def toggle_selected(self, draft_id: str) -> bool:
        if draft_id in self.selected:
            self.selected.discard(draft_id)
            return False
        self.selected.add(draft_id)
        return True

    def clear_selection(self) -> None:
        self.selected = set()

    def approve_selected(self) -> int:
        """Approve every selected draft and clear the selection."""
        count = len(self.selected)
        self.approved |= self.selected
        self.selected = set()
        return count

    def toggle_expanded(self, draft_id: str) -> bool:
        if draft_id in self.expanded:
            self.expanded.discard(draft_id)
            return False
        self.expanded.add(draft_id)
        return True

    def approved_drafts(self, drafts: Iterable[ContentDraft]) -> list[ContentDraft]:
        """Approved drafts in scan order."""
        return [d for d in drafts if d.id in self.approved]
