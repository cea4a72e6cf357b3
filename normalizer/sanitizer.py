"""Turn a partial, loosely typed agent payload into fully typed records.

Every function here is total: missing or mistyped fields fall back to their
defaults, non-list collections become empty, and one corrupt element never
discards its siblings. Numeric fields are type-checked, not parsed, so a
string score like ``"85"`` is replaced by the default.
"""

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from pipeline.types import (
    ContentDraft,
    NewsItem,
    PaperItem,
    PublishOutcome,
    ScanResult,
    SourceResults,
)

DEFAULT_RELEVANCE_SCORE = 50


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _mapping(value: Any) -> Mapping:
    return value if isinstance(value, Mapping) else {}


def _list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _str(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _number(value: Any, default: float = 0) -> float:
    # bool is an int subclass; a true/false score is as malformed as a string
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return value


def sanitize_news_item(raw: Any) -> NewsItem:
    data = _mapping(raw)
    return NewsItem(
        title=_str(data.get("title"), "Untitled"),
        url=_str(data.get("url")),
        hn_score=_number(data.get("hn_score")),
        comments_count=_number(data.get("comments_count")),
        category=_str(data.get("category")),
        relevance_score=_number(data.get("relevance_score")),
        summary=_str(data.get("summary")),
        source_type=_str(data.get("source_type")),
    )


def sanitize_paper_item(raw: Any) -> PaperItem:
    data = _mapping(raw)
    return PaperItem(
        title=_str(data.get("title"), "Untitled"),
        authors=_str(data.get("authors")),
        abstract_summary=_str(data.get("abstract_summary")),
        arxiv_link=_str(data.get("arxiv_link")),
        category=_str(data.get("category")),
        relevance_score=_number(data.get("relevance_score")),
        novelty_score=_number(data.get("novelty_score")),
        applicability_score=_number(data.get("applicability_score")),
    )


def _sanitize_source(raw: Any, items_key: str, item_sanitizer) -> SourceResults:
    data = _mapping(raw)
    return SourceResults(
        items=tuple(item_sanitizer(item) for item in _list(data.get(items_key))),
        total_fetched=_number(data.get("total_fetched")),
        total_filtered=_number(data.get("total_filtered")),
    )


def sanitize_draft(raw: Any, index: int) -> ContentDraft:
    """Default one draft; ``index`` is its zero-based position in the list."""
    data = _mapping(raw)
    draft_id = data.get("id")
    if not isinstance(draft_id, str) or not draft_id:
        draft_id = f"draft-{index + 1}"

    return ContentDraft(
        id=draft_id,
        title=_str(data.get("title"), "Untitled"),
        classification=_str(data.get("classification"), "TECH DEEP DIVE"),
        body=_str(data.get("thread_content")),
        tags=_str(data.get("hashtags")),
        hook=_str(data.get("hook")),
        requires_review=data.get("requires_review") is True,
        review_reason=_str(data.get("review_reason")),
        source_url=_str(data.get("source_url")),
        relevance_score=_number(data.get("relevance_score"), DEFAULT_RELEVANCE_SCORE),
    )


def sanitize_drafts(raw: Any) -> tuple[ContentDraft, ...]:
    drafts: list[ContentDraft] = []
    seen: set[str] = set()
    for index, item in enumerate(_list(raw)):
        draft = sanitize_draft(item, index)
        if draft.id in seen:
            draft = replace(draft, id=f"{draft.id}-{index + 1}")
        seen.add(draft.id)
        drafts.append(draft)
    return tuple(drafts)


def sanitize_scan_result(candidate: Any) -> ScanResult:
    """Build a complete ScanResult from whatever the manager agent returned."""
    data = _mapping(candidate)
    drafts = sanitize_drafts(data.get("thread_drafts"))

    return ScanResult(
        pipeline_status=_str(data.get("pipeline_status"), "completed"),
        hn_results=_sanitize_source(data.get("hn_results"), "stories", sanitize_news_item),
        arxiv_results=_sanitize_source(data.get("arxiv_results"), "papers", sanitize_paper_item),
        drafts=drafts,
        total_drafts=_number(data.get("total_drafts"), len(drafts)),
        auto_approved=_number(data.get("auto_approved")),
        flagged_for_review=_number(data.get("flagged_for_review")),
        scan_timestamp=_str(data.get("scan_timestamp")) or _utcnow_iso(),
    )


def sanitize_publish_result(candidate: Any) -> PublishOutcome:
    """Build a PublishOutcome from the publisher agent's payload."""
    data = _mapping(candidate)
    return PublishOutcome(
        post_status=_str(data.get("post_status")),
        tweet_url=_str(data.get("tweet_url")),
        posted_content=_str(data.get("posted_content")),
        timestamp=_str(data.get("timestamp")) or _utcnow_iso(),
        error_message=_str(data.get("error_message")),
    )
