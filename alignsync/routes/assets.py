"""Demo asset routes."""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from alignsync.services import AlignmentSession

from .deps import get_session
from .schemas import projection_payload, task_summary

router = APIRouter()


def _asset_payload(asset) -> dict:
    return asset.model_dump(exclude_none=True)


@router.get("/assets", response_class=JSONResponse)
async def api_list_assets(
    selected: Optional[str] = Query(None, description="Previously selected asset src"),
    session: AlignmentSession = Depends(get_session),
):
    projection = session.cache.asset_list(selected)
    return {"status": "success", "data": projection_payload(projection, _asset_payload)}


@router.post("/assets", response_class=JSONResponse)
async def api_apply_assets(payload: Any = Body(...), session: AlignmentSession = Depends(get_session)):
    """
    Replace the demo assets with an uploaded manifest (a list, or {"assets": [...]}).
    """
    assets = session.apply_assets(payload, source="upload")
    if not assets:
        return {"status": "success", "message": "No assets found in JSON file.", "data": []}
    return {"status": "success", "data": [_asset_payload(asset) for asset in assets]}


@router.post("/assets/reload", response_class=JSONResponse)
async def api_reload_assets(session: AlignmentSession = Depends(get_session)):
    assets = await session.reload_assets()
    return {"status": "success", "data": [_asset_payload(asset) for asset in assets]}


@router.get("/assets/alignments", response_class=JSONResponse)
async def api_asset_alignments(
    src: str = Query(..., description="Asset src"),
    selected: Optional[str] = Query(None, description="Previously selected task id"),
    session: AlignmentSession = Depends(get_session),
):
    """
    Select an asset and list the alignments whose audio shares its base name.
    """
    result = session.select_asset(src, selected)
    if result["asset"] is None:
        raise HTTPException(status_code=404, detail=result["message"])
    return {
        "status": "success",
        "message": result["message"],
        "data": {
            "asset": _asset_payload(result["asset"]),
            "alignments": projection_payload(result["alignments"], task_summary),
        },
    }
