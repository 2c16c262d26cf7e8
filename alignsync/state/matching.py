"""Admission filters and the task/asset matcher."""
import datetime
import logging
from typing import Any, List, Optional, Sequence

from alignsync.utils import extract_filename

from .models import Asset, Task
from .resolvers import collect_all_audio_urls, parse_iso

_logger = logging.getLogger("alignsync")


def has_model_target(task: Task, model: str) -> bool:
    return any(target.model == model for target in task.targets)


def _asset_candidates(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("assets"), list):
        return payload["assets"]
    return []


def _is_expired(expiry: Any, now: datetime.datetime) -> bool:
    if not expiry:
        return False
    parsed = parse_iso(expiry)
    if parsed is None:
        return False
    return parsed <= now


def normalize_assets(
    payload: Any,
    allowed_formats: Sequence[str],
    now: Optional[datetime.datetime] = None,
) -> List[Asset]:
    """
    Turn a manifest (a list, or a mapping with an ``assets`` list) into assets.

    Entries without a non-blank string ``src`` are dropped, as are expired
    entries and entries whose format is set but not allowed. Unparseable
    expiry dates never expire.
    """
    now = now or datetime.datetime.now(datetime.timezone.utc)
    assets: List[Asset] = []
    for item in _asset_candidates(payload):
        if not isinstance(item, dict):
            continue
        src = item.get("src")
        if not isinstance(src, str) or not src.strip():
            continue
        if _is_expired(item.get("expiry"), now):
            _logger.debug("Dropping expired asset src=%s expiry=%s", src, item.get("expiry"))
            continue
        fmt = item.get("format")
        if fmt and fmt not in allowed_formats:
            continue
        title = item.get("title")
        expiry = item.get("expiry")
        assets.append(
            Asset.model_validate(
                {
                    **item,
                    "src": src,
                    "title": title if isinstance(title, str) else None,
                    "format": fmt if isinstance(fmt, str) and fmt else None,
                    "expiry": expiry if isinstance(expiry, str) else None,
                }
            )
        )
    return assets


def match_tasks_to_assets(tasks: List[Task], assets: Sequence[Asset]) -> List[Task]:
    """
    Link each task to the first asset sharing one of its audio filenames.

    Filenames compare exactly after dropping the query string and
    lowercasing. Asset order decides ties. Tasks are updated in place and
    the same list is returned.
    """
    for task in tasks:
        task_filenames = {name for name in map(extract_filename, collect_all_audio_urls(task)) if name}
        if not task_filenames:
            continue

        for asset in assets:
            asset_filename = extract_filename(asset.src)
            if not asset_filename:
                continue
            if asset_filename in task_filenames:
                task.valid_src = asset.src
                task.asset_title = asset.title or asset_filename
                _logger.debug("Matched asset filename=%s task_id=%s", asset_filename, task.id)
                break

    return tasks
