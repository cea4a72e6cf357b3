import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from config import settings
from errors import AgentCallError
from models import AgentRun


@dataclass
class AgentResult:
    """Envelope returned by every agent call."""

    success: bool
    response: Any = None
    error: str | None = None
    raw_response: Any = None

    def as_envelope(self) -> dict:
        envelope = {"success": self.success, "response": self.response}
        if self.error is not None:
            envelope["error"] = self.error
        if self.raw_response is not None:
            envelope["raw_response"] = self.raw_response
        return envelope

    def failure_message(self, default: str) -> str:
        """Error text for a call the platform reported as failed."""
        if self.error:
            return self.error
        if isinstance(self.response, dict) and self.response.get("message"):
            return str(self.response["message"])
        return default


class AgentCaller(ABC):
    """Sends one message to one agent. ``agent_id`` is opaque routing."""

    @abstractmethod
    async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult: ...


class HttpAgentCaller(AgentCaller):
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        session_factory=None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url or settings.agent_api_url
        self.api_key = api_key if api_key is not None else settings.agent_api_key
        self.timeout = timeout or settings.agent_timeout
        self.session_factory = session_factory
        self.transport = transport
        self.session_id = str(uuid.uuid4())
        self.logger = logging.getLogger("agent.http")

    def _headers(self) -> dict:
        return {
            "x-api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def call(self, message: str, agent_id: str, task: str | None = None) -> AgentResult:
        """POST the message to the agent endpoint and wrap the reply.

        HTTP error statuses come back as ``success=False`` results. Connection
        failures raise AgentCallError.
        """
        payload = {
            "message": message,
            "agent_id": agent_id,
            "user_id": settings.agent_user_id,
            "session_id": f"{agent_id}-{self.session_id}",
        }
        started = datetime.now(timezone.utc)
        start = time.time()
        status_code = None
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(self.base_url, headers=self._headers(), json=payload)
            status_code = resp.status_code
            result = self._parse_response(resp)
        except httpx.RequestError as e:
            self.logger.error("Agent %s unreachable: %s", agent_id, e)
            await self._log_run(agent_id, task, False, status_code, time.time() - start, str(e), started)
            raise AgentCallError(agent_id, str(e) or "Network error") from e

        if result.success:
            self.logger.info("Agent %s replied in %.1fs", agent_id, time.time() - start)
        else:
            self.logger.warning("Agent %s call failed: %s", agent_id, result.error)
        await self._log_run(
            agent_id, task, result.success, status_code, time.time() - start, result.error, started
        )
        return result

    @staticmethod
    def _parse_response(resp: httpx.Response) -> AgentResult:
        """Normalize the agent platform reply to an AgentResult."""
        try:
            body = resp.json()
        except (json.JSONDecodeError, ValueError):
            body = None

        if resp.is_error:
            message = None
            if isinstance(body, dict):
                message = body.get("error") or body.get("detail") or body.get("message")
            return AgentResult(
                success=False,
                response=body,
                error=str(message) if message else f"HTTP {resp.status_code}: {resp.text[:200]}",
            )

        if not isinstance(body, dict):
            # Plain-text reply: keep it where the extractor looks for messages
            return AgentResult(success=True, response={"message": resp.text}, raw_response=resp.text)

        success = body.get("success")
        return AgentResult(
            success=success if isinstance(success, bool) else True,
            response=body.get("response", body),
            error=body.get("error") if isinstance(body.get("error"), str) else None,
            raw_response=body.get("raw_response"),
        )

    async def _log_run(self, agent_id, task, success, status_code, duration, error, started):
        if self.session_factory is None:
            return
        try:
            async with self.session_factory() as session:
                session.add(
                    AgentRun(
                        agent_id=agent_id,
                        task=task,
                        success=success,
                        status_code=status_code,
                        duration_seconds=round(duration, 2),
                        error=error,
                        started_at=started,
                        completed_at=datetime.now(timezone.utc),
                    )
                )
                await session.commit()
        except Exception:
            self.logger.warning("Failed to log agent run to database", exc_info=True)
