"""FastAPI routes for the trend intelligence pipeline."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from approval.queue import CLASSIFICATION_FILTERS, FILTER_ALL, REVIEW_FILTERS
from dashboard_settings import AppSettings
from errors import DraftNotFoundError, PipelineError, PublishInProgressError, ScanInProgressError
from pipeline.types import ContentDraft, PublishRecord, ScanResult

logger = logging.getLogger(__name__)
router = APIRouter()

# Set by main.py after the orchestrator is created
_orchestrator = None


def set_orchestrator(orch):
    global _orchestrator
    _orchestrator = orch


def _orch():
    if _orchestrator is None:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return _orchestrator


# ── Pydantic models ─────────────────────────────────────

class SampleToggle(BaseModel):
    show: bool


class SettingToggle(BaseModel):
    value: str


# ── Serializers ─────────────────────────────────────────

def _draft_dict(draft: ContentDraft) -> dict:
    approvals = _orch().session.approvals
    return {
        **asdict(draft),
        "segments": draft.segments(),
        "approved": draft.id in approvals.approved,
        "selected": draft.id in approvals.selected,
        "expanded": draft.id in approvals.expanded,
    }


def _record_dict(record: PublishRecord | None) -> dict | None:
    return asdict(record) if record else None


def _scan_dict(result: ScanResult) -> dict:
    return {
        "pipeline_status": result.pipeline_status,
        "hn_results": {
            "stories": [asdict(s) for s in result.stories],
            "total_fetched": result.hn_results.total_fetched,
            "total_filtered": result.hn_results.total_filtered,
        },
        "arxiv_results": {
            "papers": [asdict(p) for p in result.papers],
            "total_fetched": result.arxiv_results.total_fetched,
            "total_filtered": result.arxiv_results.total_filtered,
        },
        "drafts": [_draft_dict(d) for d in result.drafts],
        "total_drafts": result.total_drafts,
        "auto_approved": result.auto_approved,
        "flagged_for_review": result.flagged_for_review,
        "scan_timestamp": result.scan_timestamp,
    }


def _not_found(e: PipelineError) -> HTTPException:
    return HTTPException(status_code=404, detail=e.message)


# ── Pipeline / scan ─────────────────────────────────────

@router.get("/pipeline")
async def get_pipeline_status():
    status = _orch().get_status()
    status["filters"] = {
        "classification": [FILTER_ALL, *CLASSIFICATION_FILTERS],
        "review": list(REVIEW_FILTERS),
    }
    return status


@router.post("/scan", status_code=202)
async def trigger_scan(wait: bool = False):
    orch = _orch()
    try:
        task = orch.start_scan()
    except ScanInProgressError as e:
        raise HTTPException(status_code=409, detail=e.message)

    if wait:
        await task
    return orch.get_status()


@router.get("/scan")
async def get_scan():
    orch = _orch()
    result = orch.session.current_result
    return {
        "status": orch.session.scan_status,
        "step": orch.session.scan_step,
        "error": orch.session.scan_error,
        "result": _scan_dict(result) if result else None,
    }


@router.get("/scan/raw")
async def get_raw_response():
    return {"raw_response": _orch().session.last_raw_response}


@router.post("/sample")
async def toggle_sample(data: SampleToggle):
    _orch().set_show_sample(data.show)
    return {"show_sample": data.show}


@router.get("/stats")
async def get_stats():
    return _orch().session.stats()


# ── Drafts / approval ───────────────────────────────────

@router.get("/drafts")
async def get_drafts(classification: str = FILTER_ALL, review: str = FILTER_ALL):
    try:
        drafts = _orch().session.filtered_drafts(classification, review)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [_draft_dict(d) for d in drafts]


@router.get("/approved")
async def get_approved():
    session = _orch().session
    return [
        {**_draft_dict(d), "publish": _record_dict(session.record_for(d.id))}
        for d in session.approved_drafts()
    ]


@router.post("/drafts/approve-selected")
async def approve_selected():
    return {"approved": _orch().approve_selected()}


@router.post("/drafts/clear-selection")
async def clear_selection():
    _orch().session.approvals.clear_selection()
    return {"selected": 0}


@router.post("/drafts/{draft_id}/approve")
async def approve_draft(draft_id: str):
    try:
        _orch().approve(draft_id)
    except DraftNotFoundError as e:
        raise _not_found(e)
    return {"id": draft_id, "approved": True}


@router.post("/drafts/{draft_id}/revoke")
async def revoke_draft(draft_id: str):
    try:
        _orch().revoke(draft_id)
    except DraftNotFoundError as e:
        raise _not_found(e)
    return {"id": draft_id, "approved": False}


@router.post("/drafts/{draft_id}/select")
async def select_draft(draft_id: str):
    orch = _orch()
    try:
        orch.require_draft(draft_id)
    except DraftNotFoundError as e:
        raise _not_found(e)
    return {"id": draft_id, "selected": orch.session.approvals.toggle_selected(draft_id)}


@router.post("/drafts/{draft_id}/expand")
async def expand_draft(draft_id: str):
    orch = _orch()
    try:
        orch.require_draft(draft_id)
    except DraftNotFoundError as e:
        raise _not_found(e)
    return {"id": draft_id, "expanded": orch.session.approvals.toggle_expanded(draft_id)}


# ── Publishing ──────────────────────────────────────────

@router.post("/publish/approved")
async def publish_approved():
    try:
        return await _orch().publish_all_approved()
    except PublishInProgressError as e:
        raise HTTPException(status_code=409, detail=e.message)


@router.post("/publish/{draft_id}")
async def publish_draft(draft_id: str):
    try:
        record = await _orch().publish(draft_id)
    except DraftNotFoundError as e:
        raise _not_found(e)
    return _record_dict(record)


@router.get("/publish/history")
async def get_publish_history():
    return [asdict(r) for r in _orch().session.publish_history.values()]


# ── Settings ────────────────────────────────────────────

@router.get("/settings")
async def get_settings():
    return _orch().app_settings.model_dump()


@router.put("/settings")
async def update_settings(data: AppSettings):
    updated = await _orch().update_settings(data)
    return updated.model_dump()


@router.post("/settings/categories/toggle")
async def toggle_category(data: SettingToggle):
    orch = _orch()
    updated = await orch.update_settings(orch.app_settings.toggle_category(data.value))
    return {"categories": updated.categories}


@router.post("/settings/sources/toggle")
async def toggle_source(data: SettingToggle):
    orch = _orch()
    updated = await orch.update_settings(orch.app_settings.toggle_source(data.value))
    return {"sources": updated.sources}
