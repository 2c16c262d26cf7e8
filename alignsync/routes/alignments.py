"""Alignment task routes."""
import asyncio
import logging
from typing import Optional, Set

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from alignsync.services import AlignmentSession, ApiError, MissingApiKeyError

from .deps import get_session, to_http_error
from .schemas import AlignmentRequest, projection_payload, task_summary

router = APIRouter()
_logger = logging.getLogger("alignsync")

# Strong references so queued polls are not garbage collected mid-flight.
_background: Set[asyncio.Task] = set()

_REMOTE_ERRORS = (ApiError, MissingApiKeyError, ValueError, httpx.HTTPError)


@router.post("/alignments", response_class=JSONResponse)
async def api_submit_alignment(request: AlignmentRequest, session: AlignmentSession = Depends(get_session)):
    """
    Submit an audio URL for alignment and poll it in the background.
    """
    try:
        job = await session.submit(request.url)
    except _REMOTE_ERRORS as exc:
        raise to_http_error(exc)

    _logger.info("Queue poll task_id=%s", job.task_id)
    poll = asyncio.create_task(session.run_poll(job.task_id))
    _background.add(poll)
    poll.add_done_callback(_background.discard)
    return {"status": "success", "task_id": job.task_id, "data": job.model_dump()}


@router.get("/alignments", response_class=JSONResponse)
async def api_list_alignments(
    selected: Optional[str] = Query(None, description="Previously selected task id"),
    session: AlignmentSession = Depends(get_session),
):
    projection = session.cache.ranked_alignments(selected)
    return {"status": "success", "data": projection_payload(projection, task_summary)}


@router.post("/alignments/sync", response_class=JSONResponse)
async def api_sync_alignments(
    limit: Optional[int] = Query(None, ge=1),
    session: AlignmentSession = Depends(get_session),
):
    try:
        tasks = await session.sync_from_api(limit)
    except _REMOTE_ERRORS as exc:
        raise to_http_error(exc)
    return {"status": "success", "data": {"count": len(tasks)}}


@router.get("/alignments/{task_id}/progress", response_class=JSONResponse)
async def api_alignment_progress(task_id: str, session: AlignmentSession = Depends(get_session)):
    job = session.jobs.get(task_id)
    if not job:
        raise HTTPException(status_code=404, detail=f"No poll in progress for task {task_id}")
    return {"status": "success", "data": job.model_dump()}


@router.post("/alignments/{task_id}/check", response_class=JSONResponse)
async def api_check_alignment(task_id: str, session: AlignmentSession = Depends(get_session)):
    """
    Fetch the task once, cache it and report its status.
    """
    try:
        result = await session.check_task(task_id)
    except _REMOTE_ERRORS as exc:
        raise to_http_error(exc)

    task = result["task"]
    return {
        "status": "success",
        "message": result["message"],
        "data": task.to_payload() if task is not None else None,
    }


@router.get("/alignments/{task_id}", response_class=JSONResponse)
async def api_load_alignment(task_id: str, session: AlignmentSession = Depends(get_session)):
    """
    Lyrics, playable audio and metadata for one alignment.
    """
    try:
        task = await session.get_or_fetch_task(task_id)
    except _REMOTE_ERRORS as exc:
        _logger.error("Failed to fetch alignment task_id=%s error=%s", task_id, exc)
        raise HTTPException(status_code=502, detail="Failed to fetch alignment from API.")
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} does not include an alignment target yet.")

    loaded = await session.load_alignment(task)
    data = loaded.model_dump()
    data["task"] = task.to_payload()
    data["associatedAssets"] = projection_payload(
        session.cache.assets_for_task(task),
        lambda asset: asset.model_dump(exclude_none=True),
    )
    return {"status": "success", "message": loaded.message, "data": data}


@router.get("/alignments/{task_id}/assets", response_class=JSONResponse)
async def api_alignment_assets(
    task_id: str,
    selected: Optional[str] = Query(None, description="Previously selected asset src"),
    session: AlignmentSession = Depends(get_session),
):
    task = session.cache.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task with ID {task_id} not found")
    projection = session.cache.assets_for_task(task, selected)
    return {
        "status": "success",
        "data": projection_payload(projection, lambda asset: asset.model_dump(exclude_none=True)),
    }


@router.get("/records", response_class=JSONResponse)
async def api_list_records(session: AlignmentSession = Depends(get_session)):
    records = session.records.get_all()
    return {"status": "success", "data": [record.model_dump(by_alias=True) for record in records]}
