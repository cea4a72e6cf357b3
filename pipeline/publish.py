"""Publish controller — posts approved drafts through the publisher agent."""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from agents.base import AgentCaller
from config import settings
from errors import PublishInProgressError
from normalizer.extractor import confirmation_text, resolve_agent_payload
from normalizer.sanitizer import sanitize_publish_result
from pipeline.session import PipelineSession
from pipeline.types import (
    ContentDraft,
    PublishRecord,
    PUBLISH_FAILED,
    PUBLISH_PENDING,
    PUBLISH_POSTING,
    PUBLISH_SUCCESS,
)

logger = logging.getLogger(__name__)

PUBLISH_MARKER_KEY = "post_status"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_publish_message(draft: ContentDraft) -> str:
    return f"Post this Twitter thread:\n\n{draft.body}\n\nHashtags: {draft.tags}"


def looks_posted(text: str, keywords: Iterable[str]) -> bool:
    """Best-effort guess that a free-text reply confirms the post went out.

    This trades false negatives for false positives: a reply such as
    "could not post the tweet" still contains "tweet".
    """
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords if keyword)


class PublishController:
    """Per-draft ``(none) -> pending -> posting -> success/failed`` transitions.

    Each attempt bumps the record's ``attempt`` counter; a reply belonging to
    an older attempt is dropped instead of overwriting the newer record.
    A draft already in flight is never posted again until its call lands,
    and only one bulk publish runs at a time.
    """

    def __init__(
        self,
        session: PipelineSession,
        caller: AgentCaller,
        agent_id: str | None = None,
        keyword_fallback: bool | None = None,
        confirmation_keywords: list[str] | None = None,
    ):
        self.session = session
        self.caller = caller
        self.agent_id = agent_id or settings.twitter_agent_id
        self.keyword_fallback = (
            settings.publish_keyword_fallback if keyword_fallback is None else keyword_fallback
        )
        self.confirmation_keywords = list(
            confirmation_keywords if confirmation_keywords is not None
            else settings.publish_confirmation_keywords
        )
        self.bulk_running = False

    def is_in_flight(self, draft_id: str) -> bool:
        return draft_id in self.session.publishing_ids

    def _next_attempt(self, draft_id: str) -> int:
        previous = self.session.record_for(draft_id)
        return previous.attempt + 1 if previous else 1

    def mark_pending(self, draft: ContentDraft) -> PublishRecord:
        record = PublishRecord(
            draft_id=draft.id,
            title=draft.title,
            status=PUBLISH_PENDING,
            attempt=self._next_attempt(draft.id),
        )
        self.session.put_record(record)
        return record

    async def publish(self, draft: ContentDraft) -> PublishRecord | None:
        """Post one draft. Returns its final record, or None for a draft without id.

        If the draft is already being posted, its in-flight record is returned
        and the agent is not called.
        """
        if not draft.id:
            return None

        session = self.session
        if self.is_in_flight(draft.id):
            logger.info("Publish of %s already in flight, not posting again", draft.id)
            return session.record_for(draft.id)

        record = PublishRecord(
            draft_id=draft.id,
            title=draft.title,
            status=PUBLISH_POSTING,
            attempt=self._next_attempt(draft.id),
        )
        session.put_record(record)
        session.publishing_ids.add(draft.id)
        session.active_agent_id = self.agent_id
        logger.info("Publishing %s (attempt %d)", draft.id, record.attempt)

        try:
            result = await self.caller.call(build_publish_message(draft), self.agent_id, task="publish")
        except asyncio.CancelledError:
            self._finish(record, PUBLISH_FAILED, error_message="Publish cancelled")
            raise
        except Exception as e:
            logger.exception("Publishing %s failed", draft.id)
            message = str(e) or "Network error"
            if self._finish(record, PUBLISH_FAILED, error_message=message):
                session.notify("error", f"Failed to post: {message}")
            return record
        finally:
            if self._is_current(record):
                session.publishing_ids.discard(draft.id)
                session.active_agent_id = None

        if not self._is_current(record):
            logger.info("Discarding stale publish reply for %s (attempt %d)", draft.id, record.attempt)
            return record

        if not result.success:
            message = result.failure_message("Unknown error")
            self._finish(record, PUBLISH_FAILED, error_message=message)
            session.notify("error", f"Failed to post: {message}")
            return record

        envelope = result.as_envelope()
        payload = resolve_agent_payload(envelope, PUBLISH_MARKER_KEY)
        if payload is not None:
            outcome = sanitize_publish_result(payload)
            if outcome.is_success:
                self._finish(
                    record, PUBLISH_SUCCESS, external_url=outcome.tweet_url, timestamp=outcome.timestamp
                )
                session.notify("success", f'Thread "{draft.title}" posted successfully!')
            else:
                error = outcome.error_message or "Agent reported failure"
                self._finish(record, PUBLISH_FAILED, timestamp=outcome.timestamp, error_message=error)
                session.notify("error", f'Failed to post "{draft.title}": {error}')
            return record

        text = confirmation_text(envelope)
        if self.keyword_fallback and looks_posted(text, self.confirmation_keywords):
            self._finish(record, PUBLISH_SUCCESS)
            session.notify(
                "success",
                f'Thread "{draft.title}" appears to have been posted. Check your Twitter account.',
            )
            logger.warning("Publish of %s confirmed by keyword match only", draft.id)
        else:
            excerpt = text[: settings.publish_excerpt_chars]
            self._finish(record, PUBLISH_FAILED, error_message=f"Unstructured response: {excerpt}")
            session.notify("error", f'Post response unclear for "{draft.title}". Check your Twitter account.')
        return record

    def _already_handled(self, draft_id: str) -> bool:
        existing = self.session.record_for(draft_id)
        return self.is_in_flight(draft_id) or (existing is not None and existing.status == PUBLISH_SUCCESS)

    async def publish_all_approved(self) -> dict:
        """Publish every approved draft one at a time.

        Drafts already posted or currently in flight are skipped, both when
        the queue is built and again right before each post. Raises
        PublishInProgressError if another bulk publish is running.
        """
        if self.bulk_running:
            raise PublishInProgressError()
        self.bulk_running = True
        try:
            return await self._publish_queue()
        finally:
            self.bulk_running = False

    async def _publish_queue(self) -> dict:
        queue: list[ContentDraft] = []
        skipped = 0
        for draft in self.session.approved_drafts():
            if self._already_handled(draft.id):
                skipped += 1
                continue
            queue.append(draft)

        for draft in queue:
            self.mark_pending(draft)

        published = failed = 0
        for draft in queue:
            # A single publish may have taken this draft while we were busy
            if self._already_handled(draft.id):
                skipped += 1
                continue
            record = await self.publish(draft)
            if record and record.status == PUBLISH_SUCCESS:
                published += 1
            else:
                failed += 1

        logger.info("Bulk publish: %d published, %d failed, %d skipped", published, failed, skipped)
        return {"published": published, "failed": failed, "skipped": skipped}

    def _is_current(self, record: PublishRecord) -> bool:
        current = self.session.record_for(record.draft_id)
        return current is not None and current.attempt == record.attempt

    def _finish(
        self,
        record: PublishRecord,
        status: str,
        external_url: str = "",
        timestamp: str = "",
        error_message: str = "",
    ) -> bool:
        if not self._is_current(record):
            return False
        record.status = status
        record.external_url = external_url
        record.timestamp = timestamp or _utcnow_iso()
        record.error_message = error_message
        return True
