"""Exception classes for the pipeline service."""

from typing import Any


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ScanInProgressError(PipelineError):
    """A scan is already running; the control is disabled until it lands."""

    def __init__(self) -> None:
        super().__init__("A scan is already in progress")


class DraftNotFoundError(PipelineError):
    """No draft with this id in the current scan result."""

    def __init__(self, draft_id: str) -> None:
        super().__init__(f"Draft not found: {draft_id}", {"draft_id": draft_id})


class AgentCallError(PipelineError):
    """The agent endpoint could not be reached."""

    def __init__(self, agent_id: str, message: str) -> None:
        super().__init__(message, {"agent_id": agent_id})


class PublishInProgressError(PipelineError):
    """A bulk publish is already running."""

    def __init__(self) -> None:
        super().__init__("A bulk publish is already in progress")
