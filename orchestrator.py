"""Main orchestrator — owns the session, the agent caller and both controllers."""

import asyncio
import logging

from agents.base import AgentCaller, HttpAgentCaller
from agents.demo import DemoAgentCaller, SAMPLE_SCAN_PAYLOAD
from config import settings
from dashboard_settings import AppSettings, SettingsStore
from errors import DraftNotFoundError, ScanInProgressError
from normalizer.sanitizer import sanitize_scan_result
from pipeline.publish import PublishController
from pipeline.scan import ScanController
from pipeline.session import PipelineSession, SCAN_SCANNING
from pipeline.types import ContentDraft, PublishRecord, ScanResult

logger = logging.getLogger(__name__)


class Orchestrator:
    """One dashboard session: scan, review, publish."""

    def __init__(
        self,
        caller: AgentCaller | None = None,
        store: SettingsStore | None = None,
        demo_mode: bool | None = None,
    ):
        self.demo_mode = settings.demo_mode if demo_mode is None else demo_mode
        if caller is None:
            caller = DemoAgentCaller() if self.demo_mode else HttpAgentCaller()
        self.caller = caller
        self.store = store
        self.session = PipelineSession()
        self.app_settings = AppSettings()
        self.scanner = ScanController(self.session, caller)
        self.publisher = PublishController(self.session, caller)
        self._scan_task: asyncio.Task | None = None

    async def start(self):
        """Load persisted settings over the defaults."""
        if self.store is not None:
            try:
                self.app_settings = await self.store.load()
            except Exception:
                logger.exception("Failed to load settings, using defaults")
        logger.info(
            "Orchestrator ready (%s mode, auto-approve threshold %d)",
            "demo" if self.demo_mode else "live",
            self.app_settings.auto_approve_threshold,
        )

    async def stop(self):
        if self._scan_task and not self._scan_task.done():
            self._scan_task.cancel()
            await asyncio.gather(self._scan_task, return_exceptions=True)
        self._scan_task = None
        logger.info("Orchestrator stopped")

    # ── Scan ─────────────────────────────────────────────

    @property
    def scan_running(self) -> bool:
        pending = self._scan_task is not None and not self._scan_task.done()
        return pending or self.session.scan_status == SCAN_SCANNING

    def start_scan(self) -> asyncio.Task:
        """Kick off a scan in the background. Raises if one is already running."""
        if self.scan_running:
            raise ScanInProgressError()
        self._scan_task = asyncio.create_task(self.scanner.run(self.app_settings))
        return self._scan_task

    async def run_scan(self) -> ScanResult | None:
        return await self.start_scan()

    # ── Review ───────────────────────────────────────────

    def require_draft(self, draft_id: str) -> ContentDraft:
        draft = self.session.get_draft(draft_id)
        if draft is None:
            raise DraftNotFoundError(draft_id)
        return draft

    def approve(self, draft_id: str) -> None:
        self.require_draft(draft_id)
        self.session.approvals.approve(draft_id)

    def revoke(self, draft_id: str) -> None:
        self.require_draft(draft_id)
        self.session.approvals.revoke(draft_id)

    def approve_selected(self) -> int:
        count = self.session.approvals.approve_selected()
        self.session.notify("success", f"{count} drafts approved.")
        return count

    def set_show_sample(self, show: bool) -> None:
        if show and self.session.sample_result is None:
            self.session.sample_result = sanitize_scan_result(SAMPLE_SCAN_PAYLOAD)
        self.session.show_sample = show

    # ── Publish ──────────────────────────────────────────

    async def publish(self, draft_id: str) -> PublishRecord | None:
        return await self.publisher.publish(self.require_draft(draft_id))

    async def publish_all_approved(self) -> dict:
        return await self.publisher.publish_all_approved()

    # ── Settings ─────────────────────────────────────────

    async def update_settings(self, new_settings: AppSettings) -> AppSettings:
        self.app_settings = new_settings
        if self.store is not None:
            try:
                await self.store.save(new_settings)
            except Exception:
                logger.exception("Failed to save settings")
                self.session.notify("error", "Failed to save settings.")
                return self.app_settings
        self.session.notify("success", "Settings saved successfully.")
        return self.app_settings

    def agent_roster(self) -> list[dict]:
        """Every upstream agent with a flag for the one currently in flight."""
        active = self.session.active_agent_id
        return [
            {"role": role, "agent_id": agent_id, "active": agent_id == active}
            for role, agent_id in (
                ("manager", settings.manager_agent_id),
                ("hacker_news", settings.hn_agent_id),
                ("arxiv", settings.arxiv_agent_id),
                ("classifier", settings.classifier_agent_id),
                ("twitter", settings.twitter_agent_id),
            )
        ]

    def get_status(self) -> dict:
        session = self.session
        return {
            "demo_mode": self.demo_mode,
            "agents": self.agent_roster(),
            "scan_status": session.scan_status,
            "scan_step": session.scan_step,
            "scan_error": session.scan_error,
            "active_agent_id": session.active_agent_id,
            "publishing_ids": sorted(session.publishing_ids),
            "bulk_publishing": self.publisher.bulk_running,
            "show_sample": session.show_sample,
            "status_message": (
                {"type": session.status_message.type, "text": session.status_message.text}
                if session.status_message else None
            ),
        }
