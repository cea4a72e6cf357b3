"""State owned by one dashboard session: scan, approvals and publish history."""

from collections import OrderedDict
from dataclasses import dataclass, field

from approval.queue import ApprovalQueue, filter_drafts, FILTER_ALL
from pipeline.types import ContentDraft, PublishRecord, ScanResult

SCAN_IDLE = "idle"
SCAN_SCANNING = "scanning"
SCAN_COMPLETED = "completed"
SCAN_FAILED = "failed"

STEP_COMPLETE = 5


@dataclass
class StatusMessage:
    type: str  # success / error / info
    text: str


@dataclass
class PipelineSession:
    scan_status: str = SCAN_IDLE
    scan_step: int = 0
    scan_error: str | None = None
    scan_result: ScanResult | None = None
    scan_epoch: int = 0
    active_agent_id: str | None = None
    status_message: StatusMessage | None = None
    last_raw_response: str | None = None
    show_sample: bool = False
    sample_result: ScanResult | None = None
    scan_approvals: ApprovalQueue = field(default_factory=ApprovalQueue)
    sample_approvals: ApprovalQueue = field(default_factory=ApprovalQueue)
    publish_history: "OrderedDict[str, PublishRecord]" = field(default_factory=OrderedDict)
    publishing_ids: set[str] = field(default_factory=set)

    def notify(self, type_: str, text: str) -> None:
        self.status_message = StatusMessage(type=type_, text=text)

    # ── Derived views ────────────────────────────────────

    @property
    def approvals(self) -> ApprovalQueue:
        """Approval state of whichever result is on screen; the sample keeps its own."""
        if self.show_sample and self.sample_result is not None:
            return self.sample_approvals
        return self.scan_approvals

    @property
    def current_result(self) -> ScanResult | None:
        if self.show_sample and self.sample_result is not None:
            return self.sample_result
        return self.scan_result

    @property
    def drafts(self) -> tuple[ContentDraft, ...]:
        result = self.current_result
        return result.drafts if result else ()

    def get_draft(self, draft_id: str) -> ContentDraft | None:
        result = self.current_result
        return result.get_draft(draft_id) if result else None

    def filtered_drafts(self, classification: str = FILTER_ALL, review: str = FILTER_ALL) -> list[ContentDraft]:
        return filter_drafts(self.drafts, classification, review)

    def approved_drafts(self) -> list[ContentDraft]:
        return self.approvals.approved_drafts(self.drafts)

    def stats(self) -> dict:
        result = self.current_result
        if result is None:
            return {"items_scanned": 0, "high_signal": 0, "total_drafts": 0, "flagged_for_review": 0}
        return {
            "items_scanned": result.hn_results.total_fetched + result.arxiv_results.total_fetched,
            "high_signal": result.hn_results.total_filtered + result.arxiv_results.total_filtered,
            "total_drafts": result.total_drafts,
            "flagged_for_review": result.flagged_for_review,
        }

    # ── Publish history ──────────────────────────────────

    def record_for(self, draft_id: str) -> PublishRecord | None:
        return self.publish_history.get(draft_id)

    def put_record(self, record: PublishRecord) -> None:
        """Replace any existing record for the draft and move it to the end."""
        self.publish_history.pop(record.draft_id, None)
        self.publish_history[record.draft_id] = record
