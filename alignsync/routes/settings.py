"""Credential and selection settings routes."""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from alignsync.services import AlignmentSession

from .deps import get_session
from .schemas import ApiKeyRequest

router = APIRouter()


@router.put("/settings/api-key", response_class=JSONResponse)
async def api_save_api_key(request: ApiKeyRequest, session: AlignmentSession = Depends(get_session)):
    try:
        session.save_api_key(request.api_key)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"status": "success", "message": "API key saved."}


@router.get("/settings/api-key", response_class=JSONResponse)
async def api_api_key_status(session: AlignmentSession = Depends(get_session)):
    """Only reports whether a key is configured; the key itself is never returned."""
    return {"status": "success", "data": {"configured": session.authorized}}


@router.get("/settings/selections", response_class=JSONResponse)
async def api_last_selections(session: AlignmentSession = Depends(get_session)):
    return {"status": "success", "data": session.last_selections()}
