"""Unit tests for the HTTP agent caller and its reply normalization."""

from __future__ import annotations

import json

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from agents.base import AgentResult, HttpAgentCaller
from db import create_tables
from errors import AgentCallError
from models import AgentRun


def _caller(handler, **kwargs) -> HttpAgentCaller:
    return HttpAgentCaller(
        base_url="https://agents.test/chat",
        api_key="secret",
        timeout=5,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


@pytest.mark.asyncio
async def test_call_posts_message_with_api_key() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "response": {"message": "hi"}})

    result = await _caller(handler).call("Run a scan", "manager-1", task="scan")

    assert result == AgentResult(success=True, response={"message": "hi"})
    request = seen[0]
    assert request.headers["x-api-key"] == "secret"
    body = json.loads(request.content)
    assert body["message"] == "Run a scan"
    assert body["agent_id"] == "manager-1"
    assert body["session_id"].startswith("manager-1-")
    assert "user_id" in body


@pytest.mark.asyncio
async def test_body_without_response_key_is_kept_whole() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"pipeline_status": "completed", "raw_response": "raw"})

    result = await _caller(handler).call("m", "a")

    assert result.success is True
    assert result.response == {"pipeline_status": "completed", "raw_response": "raw"}
    assert result.raw_response == "raw"
    assert result.as_envelope()["raw_response"] == "raw"


@pytest.mark.asyncio
async def test_platform_reported_failure_is_kept() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "error": "Agent crashed"})

    result = await _caller(handler).call("m", "a")

    assert result.success is False
    assert result.failure_message("Unknown error") == "Agent crashed"


@pytest.mark.asyncio
async def test_plain_text_reply_becomes_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="Tweet posted!")

    result = await _caller(handler).call("m", "a")

    assert result.success is True
    assert result.response == {"message": "Tweet posted!"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "reply", "expected"),
    [
        (401, {"json": {"detail": "Invalid API key"}}, "Invalid API key"),
        (502, {"text": "Bad gateway"}, "HTTP 502: Bad gateway"),
    ],
)
async def test_http_error_status_is_unsuccessful(status_code: int, reply: dict, expected: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, **reply)

    result = await _caller(handler).call("m", "a")

    assert result.success is False
    assert result.error == expected


@pytest.mark.asyncio
async def test_connection_error_raises_agent_call_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(AgentCallError) as exc_info:
        await _caller(handler).call("m", "manager-1")

    assert exc_info.value.message == "Connection refused"
    assert exc_info.value.details == {"agent_id": "manager-1"}


@pytest.mark.asyncio
async def test_calls_are_logged_to_agent_runs() -> None:
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await create_tables(bind=engine)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    await _caller(handler, session_factory=session_factory).call("m", "manager-1", task="scan")

    async with session_factory() as session:
        runs = (await session.execute(select(AgentRun))).scalars().all()
    await engine.dispose()

    assert len(runs) == 1
    assert runs[0].agent_id == "manager-1"
    assert runs[0].task == "scan"
    assert runs[0].success is False
    assert runs[0].status_code == 500
    assert runs[0].error == "boom"


def test_failure_message_prefers_error_then_response_message() -> None:
    assert AgentResult(success=False, error="e", response={"message": "m"}).failure_message("d") == "e"
    assert AgentResult(success=False, response={"message": "m"}).failure_message("d") == "m"
    assert AgentResult(success=False, response="text").failure_message("d") == "d"
