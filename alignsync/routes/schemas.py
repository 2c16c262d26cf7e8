"""Request models and response shaping."""
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from alignsync.state import Projection, Task, get_task_audio_url, get_task_status_info, task_timestamp
from alignsync.utils import short_filename


class ApiKeyRequest(BaseModel):
    api_key: str


class AlignmentRequest(BaseModel):
    """Submit an audio URL for alignment."""
    url: str


def task_summary(task: Task) -> Dict[str, Any]:
    """One list row: filename, id, status and last update."""
    status = get_task_status_info(task)
    return {
        "id": task.id,
        "filename": short_filename(get_task_audio_url(task) or task.valid_src or ""),
        "status": status.raw or status.normalized or "unknown",
        "timestamp": task_timestamp(task),
        "validSrc": task.valid_src,
        "assetTitle": task.asset_title,
    }


def projection_payload(projection: Projection, render: Callable[[Any], Any]) -> Dict[str, Optional[Any]]:
    return {
        "state": projection.state,
        "selected": projection.selected,
        "items": [render(item) for item in projection.items],
    }
