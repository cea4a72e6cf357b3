"""Typed records produced by the sanitizer and tracked by the session."""

from dataclasses import dataclass, field

THREAD_SEPARATOR = "---"

PUBLISH_PENDING = "pending"
PUBLISH_POSTING = "posting"
PUBLISH_SUCCESS = "success"
PUBLISH_FAILED = "failed"


@dataclass(frozen=True)
class NewsItem:
    title: str = "Untitled"
    url: str = ""
    hn_score: float = 0
    comments_count: float = 0
    category: str = ""
    relevance_score: float = 0
    summary: str = ""
    source_type: str = ""


@dataclass(frozen=True)
class PaperItem:
    title: str = "Untitled"
    authors: str = ""
    abstract_summary: str = ""
    arxiv_link: str = ""
    category: str = ""
    relevance_score: float = 0
    novelty_score: float = 0
    applicability_score: float = 0


@dataclass(frozen=True)
class SourceResults:
    """Items from one source plus its fetch/filter counts."""

    items: tuple = ()
    total_fetched: float = 0
    total_filtered: float = 0


@dataclass(frozen=True)
class ContentDraft:
    id: str
    title: str = "Untitled"
    classification: str = "TECH DEEP DIVE"
    body: str = ""
    tags: str = ""
    hook: str = ""
    requires_review: bool = False
    review_reason: str = ""
    source_url: str = ""
    relevance_score: float = 50

    def segments(self) -> list[str]:
        """Split the thread body into its individual posts."""
        parts = (part.strip() for part in self.body.split(THREAD_SEPARATOR))
        return [part for part in parts if part]


@dataclass(frozen=True)
class ScanResult:
    pipeline_status: str = "completed"
    hn_results: SourceResults = field(default_factory=SourceResults)
    arxiv_results: SourceResults = field(default_factory=SourceResults)
    drafts: tuple[ContentDraft, ...] = ()
    total_drafts: float = 0
    auto_approved: float = 0
    flagged_for_review: float = 0
    scan_timestamp: str = ""

    @property
    def stories(self) -> tuple:
        return self.hn_results.items

    @property
    def papers(self) -> tuple:
        return self.arxiv_results.items

    def get_draft(self, draft_id: str) -> ContentDraft | None:
        for draft in self.drafts:
            if draft.id == draft_id:
                return draft
        return None


@dataclass(frozen=True)
class PublishOutcome:
    """Structured reply of the publisher agent."""

    post_status: str = ""
    tweet_url: str = ""
    posted_content: str = ""
    timestamp: str = ""
    error_message: str = ""

    @property
    def is_success(self) -> bool:
        return self.post_status.lower() == PUBLISH_SUCCESS


@dataclass
class PublishRecord:
    draft_id: str
    title: str
    status: str = PUBLISH_PENDING
    external_url: str = ""
    timestamp: str = ""
    error_message: str = ""
    attempt: int = 0
