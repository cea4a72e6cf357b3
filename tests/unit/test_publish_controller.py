"""Unit tests for per-draft publishing and the serialized bulk publish."""

from __future__ import annotations

import asyncio
import json

import pytest

from agents.base import AgentCaller, AgentResult
from errors import PublishInProgressError
from pipeline.publish import PublishController, build_publish_message, looks_posted
from pipeline.session import PipelineSession
from pipeline.types import (
    PUBLISH_FAILED,
    PUBLISH_PENDING,
    PUBLISH_POSTING,
    PUBLISH_SUCCESS,
    ContentDraft,
    PublishRecord,
    ScanResult,
)

DRAFT = ContentDraft(id="draft-1", title="GPT-5 Deep Dive", body="one\n---\ntwo", tags="#AI")


class _FakeCaller(AgentCaller):
    def __init__(self, *results: AgentResult | Exception) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, str]] = []

    async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult:
        self.calls.append((message, agent_id))
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


def _structured(**payload) -> AgentResult:
    return AgentResult(success=True, response={"result": {"text": json.dumps(payload)}})


def _controller(caller: AgentCaller, session: PipelineSession | None = None, **kwargs) -> PublishController:
    return PublishController(session or PipelineSession(), caller, agent_id="twitter", **kwargs)


@pytest.mark.asyncio
async def test_structured_success_records_url_and_timestamp() -> None:
    caller = _FakeCaller(
        _structured(post_status="success", tweet_url="https://x.com/a/status/1", timestamp="2025-02-21T15:00:00Z")
    )
    controller = _controller(caller)

    record = await controller.publish(DRAFT)

    assert record.status == PUBLISH_SUCCESS
    assert record.external_url == "https://x.com/a/status/1"
    assert record.timestamp == "2025-02-21T15:00:00Z"
    assert record.attempt == 1
    assert controller.session.publishing_ids == set()
    assert controller.session.active_agent_id is None
    assert controller.session.status_message.text == 'Thread "GPT-5 Deep Dive" posted successfully!'
    assert caller.calls == [("Post this Twitter thread:\n\none\n---\ntwo\n\nHashtags: #AI", "twitter")]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"post_status": "failed", "error_message": "rate limited"}, "rate limited"),
        ({"post_status": "failed"}, "Agent reported failure"),
    ],
)
async def test_structured_failure(payload: dict, expected: str) -> None:
    controller = _controller(_FakeCaller(_structured(**payload)))

    record = await controller.publish(DRAFT)

    assert record.status == PUBLISH_FAILED
    assert record.error_message == expected
    assert record.timestamp
    assert controller.session.status_message.type == "error"


@pytest.mark.asyncio
async def test_keyword_fallback_marks_success_without_url() -> None:
    caller = _FakeCaller(AgentResult(success=True, response={"message": "Tweet posted successfully!"}))
    controller = _controller(caller)

    record = await controller.publish(DRAFT)

    assert record.status == PUBLISH_SUCCESS
    assert record.external_url == ""
    assert record.timestamp
    assert "appears to have been posted" in controller.session.status_message.text


@pytest.mark.asyncio
async def test_keyword_fallback_can_be_disabled() -> None:
    caller = _FakeCaller(AgentResult(success=True, response={"message": "Tweet posted successfully!"}))
    controller = _controller(caller, keyword_fallback=False)

    record = await controller.publish(DRAFT)

    assert record.status == PUBLISH_FAILED
    assert record.error_message == "Unstructured response: Tweet posted successfully!"


@pytest.mark.asyncio
async def test_unclear_reply_fails_with_truncated_excerpt() -> None:
    caller = _FakeCaller(AgentResult(success=True, response={"message": "z" * 300}))
    controller = _controller(caller)

    record = await controller.publish(DRAFT)

    assert record.status == PUBLISH_FAILED
    assert record.error_message == "Unstructured response: " + "z" * 200


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("reply", "expected"),
    [
        (AgentResult(success=False, error="Unauthorized"), "Unauthorized"),
        (AgentResult(success=False), "Unknown error"),
    ],
)
async def test_transport_failure(reply: AgentResult, expected: str) -> None:
    controller = _controller(_FakeCaller(reply))

    record = await controller.publish(DRAFT)

    assert record.status == PUBLISH_FAILED
    assert record.error_message == expected
    assert controller.session.status_message.text == f"Failed to post: {expected}"


@pytest.mark.asyncio
async def test_caller_exception_marks_record_failed() -> None:
    controller = _controller(_FakeCaller(RuntimeError("timed out")))

    record = await controller.publish(DRAFT)

    assert record.status == PUBLISH_FAILED
    assert record.error_message == "timed out"
    assert controller.session.publishing_ids == set()


@pytest.mark.asyncio
async def test_draft_without_id_is_ignored() -> None:
    caller = _FakeCaller(_structured(post_status="success"))
    controller = _controller(caller)

    assert await controller.publish(ContentDraft(id="")) is None
    assert caller.calls == []
    assert controller.session.publish_history == {}


@pytest.mark.asyncio
async def test_retry_overwrites_record_and_moves_it_last() -> None:
    caller = _FakeCaller(
        _structured(post_status="failed", error_message="rate limited"),
        _structured(post_status="success"),
    )
    controller = _controller(caller)
    other = ContentDraft(id="draft-2")

    await controller.publish(DRAFT)
    controller.mark_pending(other)
    record = await controller.publish(DRAFT)

    history = controller.session.publish_history
    assert list(history) == ["draft-2", "draft-1"]
    assert history["draft-1"] is record
    assert record.status == PUBLISH_SUCCESS
    assert record.error_message == ""
    assert record.attempt == 2


@pytest.mark.asyncio
async def test_stale_reply_does_not_overwrite_newer_attempt() -> None:
    class _RetryingCaller(AgentCaller):
        async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult:
            controller.session.put_record(
                PublishRecord(draft_id=DRAFT.id, title=DRAFT.title, status=PUBLISH_POSTING, attempt=2)
            )
            return _structured(post_status="success", tweet_url="https://x.com/old")

    controller = _controller(_RetryingCaller())

    stale = await controller.publish(DRAFT)

    current = controller.session.record_for(DRAFT.id)
    assert stale.attempt == 1
    assert stale.status == PUBLISH_POSTING
    assert current.attempt == 2
    assert current.status == PUBLISH_POSTING
    assert current.external_url == ""
    assert DRAFT.id in controller.session.publishing_ids


def _approved_session(*ids: str) -> PipelineSession:
    session = PipelineSession(scan_result=ScanResult(drafts=tuple(ContentDraft(id=i, title=i) for i in ids)))
    for draft_id in ids:
        session.approvals.approve(draft_id)
    return session


@pytest.mark.asyncio
async def test_bulk_publish_skips_already_posted_drafts() -> None:
    session = _approved_session("A", "B", "C")
    session.put_record(PublishRecord(draft_id="A", title="A", status=PUBLISH_SUCCESS, attempt=1))
    caller = _FakeCaller(_structured(post_status="success"))
    controller = _controller(caller, session)

    summary = await controller.publish_all_approved()

    assert summary == {"published": 2, "failed": 0, "skipped": 1}
    assert len(caller.calls) == 2
    assert session.record_for("A").attempt == 1
    assert session.record_for("B").status == PUBLISH_SUCCESS
    assert session.record_for("C").status == PUBLISH_SUCCESS


@pytest.mark.asyncio
async def test_bulk_publish_is_serialized_and_marks_queue_pending() -> None:
    session = _approved_session("A", "B", "C")
    seen: list[tuple[str, dict[str, str]]] = []

    class _ObservingCaller(AgentCaller):
        async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult:
            posting = [i for i in session.publishing_ids]
            assert len(posting) == 1
            seen.append((posting[0], {i: r.status for i, r in session.publish_history.items()}))
            return _structured(post_status="failed") if posting[0] == "B" else _structured(post_status="success")

    controller = _controller(_ObservingCaller(), session)

    summary = await controller.publish_all_approved()

    assert [draft_id for draft_id, _ in seen] == ["A", "B", "C"]
    assert seen[0][1] == {"B": PUBLISH_PENDING, "C": PUBLISH_PENDING, "A": PUBLISH_POSTING}
    assert summary == {"published": 2, "failed": 1, "skipped": 0}


@pytest.mark.asyncio
async def test_bulk_publish_retries_failed_drafts() -> None:
    session = _approved_session("A")
    session.put_record(PublishRecord(draft_id="A", title="A", status=PUBLISH_FAILED, attempt=1))
    controller = _controller(_FakeCaller(_structured(post_status="success")), session)

    summary = await controller.publish_all_approved()

    assert summary["published"] == 1
    assert session.record_for("A").attempt == 3


def test_looks_posted_is_case_insensitive() -> None:
    keywords = ["posted", "tweet", "success"]

    assert looks_posted("Your TWEET is live", keywords)
    assert not looks_posted("Something went wrong", keywords)
    assert not looks_posted("", keywords)
    assert not looks_posted("posted", [])


def test_build_publish_message() -> None:
    assert build_publish_message(ContentDraft(id="x", body="b", tags="#t")) == (
        "Post this Twitter thread:\n\nb\n\nHashtags: #t"
    )


class _SlowCaller(AgentCaller):
    """Succeeds after yielding to the loop a few times, so other calls can interleave."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult:
        self.calls.append(message)
        for _ in range(3):
            await asyncio.sleep(0)
        return _structured(post_status="success")


@pytest.mark.asyncio
async def test_overlapping_bulk_publish_is_rejected() -> None:
    session = _approved_session("A")
    caller = _SlowCaller()
    controller = _controller(caller, session)

    first, second = await asyncio.gather(
        controller.publish_all_approved(), controller.publish_all_approved(), return_exceptions=True
    )

    assert first == {"published": 1, "failed": 0, "skipped": 0}
    assert isinstance(second, PublishInProgressError)
    assert len(caller.calls) == 1
    assert controller.bulk_running is False


@pytest.mark.asyncio
async def test_bulk_publish_skips_draft_posted_individually() -> None:
    session = _approved_session("A")
    caller = _SlowCaller()
    controller = _controller(caller, session)
    draft = session.get_draft("A")

    record, summary = await asyncio.gather(controller.publish(draft), controller.publish_all_approved())

    assert len(caller.calls) == 1
    assert record.status == PUBLISH_SUCCESS
    assert summary == {"published": 0, "failed": 0, "skipped": 1}


@pytest.mark.asyncio
async def test_single_publish_during_bulk_does_not_post_again() -> None:
    session = _approved_session("A")
    caller = _SlowCaller()
    controller = _controller(caller, session)
    draft = session.get_draft("A")

    summary, record = await asyncio.gather(controller.publish_all_approved(), controller.publish(draft))

    assert len(caller.calls) == 1
    assert summary == {"published": 1, "failed": 0, "skipped": 0}
    assert record is session.record_for("A")
    assert record.attempt == 2


@pytest.mark.asyncio
async def test_cancelled_publish_is_marked_failed() -> None:
    never = asyncio.Event()

    class _HangingCaller(AgentCaller):
        async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult:
            await never.wait()
            return _structured(post_status="success")

    controller = _controller(_HangingCaller())
    task = asyncio.create_task(controller.publish(DRAFT))
    await asyncio.sleep(0)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)

    record = controller.session.record_for(DRAFT.id)
    assert record.status == PUBLISH_FAILED
    assert record.error_message == "Publish cancelled"
    assert controller.session.publishing_ids == set()
