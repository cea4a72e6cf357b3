"""Scan controller — one intelligence scan from request to approval set."""

import asyncio
import json
import logging

from agents.base import AgentCaller
from approval.queue import ApprovalQueue
from config import settings
from dashboard_settings import AppSettings
from errors import ScanInProgressError
from normalizer.extractor import resolve_agent_payload, text_excerpt
from normalizer.sanitizer import sanitize_scan_result
from pipeline.session import (
    PipelineSession,
    SCAN_COMPLETED,
    SCAN_FAILED,
    SCAN_SCANNING,
    STEP_COMPLETE,
)
from pipeline.types import ScanResult

logger = logging.getLogger(__name__)

SCAN_MARKER_KEY = "pipeline_status"
SCAN_COLLECTION_KEYS = ("thread_drafts", "hn_results", "arxiv_results")

SCAN_PROMPT = (
    "Run a comprehensive intelligence scan of Hacker News and arXiv for trending AI, "
    "cybersecurity, startups, and breakthrough innovation content. Fetch, filter, score, "
    "classify, and generate Twitter thread drafts for all high-signal items. "
    "Relevance threshold: {threshold}. Max threads: {max_threads}. Style: {style}."
)


def build_scan_message(app_settings: AppSettings) -> str:
    message = SCAN_PROMPT.format(
        threshold=app_settings.relevance_threshold,
        max_threads=app_settings.max_threads_per_scan,
        style=app_settings.thread_style,
    )
    if app_settings.categories:
        message += f" Categories: {', '.join(app_settings.categories)}."
    if app_settings.sources:
        message += f" Sources: {', '.join(app_settings.sources)}."
    if app_settings.blocked_domains.strip():
        message += f" Blocked domains: {app_settings.blocked_domains.strip()}."
    return message


def _is_plausible(payload: dict) -> bool:
    return SCAN_MARKER_KEY in payload or any(
        payload.get(key) is not None for key in SCAN_COLLECTION_KEYS
    )


def serialize_envelope(envelope: dict, limit: int) -> str:
    try:
        return json.dumps(envelope, indent=2, default=str)[:limit]
    except (TypeError, ValueError):
        return "Could not serialize response"


class ScanController:
    """Drives ``idle -> scanning -> completed/failed`` on a PipelineSession.

    Steps 2-4 are cosmetic: they tick on fixed delays regardless of the real
    call and are cancelled as soon as it lands. Each ticker carries the epoch
    of the scan that started it and does nothing once that epoch is stale.
    """

    def __init__(
        self,
        session: PipelineSession,
        caller: AgentCaller,
        agent_id: str | None = None,
        step_delays: list[float] | None = None,
    ):
        self.session = session
        self.caller = caller
        self.agent_id = agent_id or settings.manager_agent_id
        self.step_delays = list(step_delays if step_delays is not None else settings.scan_step_delays)
        self._timers: list[asyncio.Task] = []

    @property
    def approvals(self) -> ApprovalQueue:
        return self.session.scan_approvals

    async def run(self, app_settings: AppSettings) -> ScanResult | None:
        """Run one scan. Returns the stored result, or None if the scan failed."""
        session = self.session
        if session.scan_status == SCAN_SCANNING:
            raise ScanInProgressError()

        session.scan_epoch += 1
        epoch = session.scan_epoch
        session.scan_status = SCAN_SCANNING
        session.scan_step = 1
        session.scan_error = None
        session.active_agent_id = self.agent_id
        session.notify("info", "Intelligence scan in progress...")
        self._start_step_timers(epoch)
        logger.info("Scan %d started", epoch)

        try:
            result = await self.caller.call(build_scan_message(app_settings), self.agent_id, task="scan")
        except asyncio.CancelledError:
            logger.info("Scan %d cancelled", epoch)
            if self._is_current(epoch):
                self._fail("Scan cancelled")
            raise
        except Exception as e:
            logger.exception("Scan %d failed", epoch)
            if self._is_current(epoch):
                self._fail(str(e) or "Network error")
            return None
        finally:
            self._cancel_step_timers()
            if self._is_current(epoch):
                session.active_agent_id = None

        if not self._is_current(epoch):
            logger.info("Discarding result of superseded scan %d", epoch)
            return None

        envelope = result.as_envelope()
        session.last_raw_response = serialize_envelope(envelope, settings.raw_response_chars)

        if not result.success:
            self._fail(result.failure_message("Unknown error occurred"))
            return None

        payload = resolve_agent_payload(envelope, SCAN_MARKER_KEY)
        if payload is None or not _is_plausible(payload):
            excerpt = text_excerpt(envelope)[: settings.scan_excerpt_chars]
            session.scan_status = SCAN_FAILED
            session.scan_error = (
                "Agent returned data but no structured pipeline results were found. "
                f"Raw: {excerpt}"
            )
            session.notify("error", "Scan returned unstructured data. Try running the scan again.")
            logger.warning("Scan %d: no structured payload in agent reply", epoch)
            return None

        scan = sanitize_scan_result(payload)
        session.scan_result = scan
        session.scan_status = SCAN_COMPLETED
        session.scan_step = STEP_COMPLETE
        self.approvals.auto_approve(scan.drafts, app_settings.auto_approve_threshold)
        session.notify(
            "success",
            f"Scan complete! Found {scan.total_drafts} thread drafts from "
            f"{len(scan.stories)} HN stories and {len(scan.papers)} arXiv papers.",
        )
        logger.info(
            "Scan %d completed: %d drafts, %d stories, %d papers",
            epoch, len(scan.drafts), len(scan.stories), len(scan.papers),
        )
        return scan

    def _is_current(self, epoch: int) -> bool:
        return self.session.scan_epoch == epoch

    def _fail(self, message: str) -> None:
        self.session.scan_status = SCAN_FAILED
        self.session.scan_error = message
        self.session.notify("error", f"Scan failed: {message}")

    def _start_step_timers(self, epoch: int) -> None:
        self._cancel_step_timers()
        self._timers = [
            asyncio.create_task(self._advance_step(epoch, step, delay))
            for step, delay in zip((2, 3, 4), self.step_delays)
        ]

    async def _advance_step(self, epoch: int, step: int, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._is_current(epoch) and self.session.scan_status == SCAN_SCANNING:
            self.session.scan_step = step

    def _cancel_step_timers(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []
