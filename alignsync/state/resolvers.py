"""Total accessors over loosely shaped task records.

Each function tolerates absent or malformed fields and answers with an empty
sentinel (``""``, ``None`` or an empty list) instead of raising.
"""
import datetime
import logging
import re
from typing import Any, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError

from .models import Output, StatusInfo, Task

_logger = logging.getLogger("alignsync")

STATUS_PRIORITY = ("completed", "complete", "failed", "processing", "running", "pending")
COMPLETED_STATUSES = ("completed", "complete")
FAILED_STATUS = "failed"

_JSON_FORMATS = ("json", "JSON")
_ALIGNMENT_NAMES = ("alignment", "Alignment")

_FRACTION_RE = re.compile(r"\.(\d+)")
_COMPACT_OFFSET_RE = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_task(payload: Any) -> Optional[Task]:
    """Build a Task from a remote payload; non-mapping payloads give None."""
    if isinstance(payload, Task):
        return payload
    if not isinstance(payload, dict):
        return None
    try:
        return Task.model_validate(payload)
    except ValidationError:
        _logger.warning("Discarding unparseable task payload keys=%s", sorted(payload))
        return None


def extract_task_array(payload: Any) -> List[Any]:
    """Locate the task list inside a list-tasks response."""
    if not payload:
        return []
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("tasks", "data", "results"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


def get_task_status_info(task: Any) -> StatusInfo:
    """Collapse task and target statuses into one, terminal states first."""
    task = parse_task(task)
    if task is None:
        return StatusInfo()

    entries: List[StatusInfo] = []
    for value in [task.status] + [target.status for target in task.targets]:
        raw = value.strip() if value else ""
        if raw:
            entries.append(StatusInfo(raw=raw, normalized=raw.lower()))

    for desired in STATUS_PRIORITY:
        for entry in entries:
            if entry.normalized == desired:
                return entry
    return entries[0] if entries else StatusInfo()


def is_completed(info: StatusInfo) -> bool:
    return info.normalized in COMPLETED_STATUSES


def get_task_audio_url(task: Any) -> str:
    """Primary audio URL: the task's own, else the first target URL."""
    task = parse_task(task)
    if task is None:
        return ""
    if task.audio_url and task.audio_url.strip():
        return task.audio_url.strip()
    for target in task.targets:
        if target.url and target.url.strip():
            return target.url.strip()
        if target.audio_url and target.audio_url.strip():
            return target.audio_url.strip()
    return ""


def collect_all_audio_urls(task: Any) -> List[str]:
    """Every candidate audio URL of a task, deduplicated in first-seen order."""
    task = parse_task(task)
    if task is None:
        return []

    candidates: List[Optional[str]] = [task.audio_url]
    for target in task.targets:
        candidates.extend((target.url, target.audio_url))
    if task.raw_task is not None:
        for target in task.raw_task.targets:
            candidates.extend((target.url, target.audio_url))
    candidates.extend(source.url for source in task.audio_sources)
    candidates.append(task.preferred_audio_url)

    urls: List[str] = []
    for url in candidates:
        if url and url not in urls:
            urls.append(url)
    return urls


def resolved_audio_urls(task: Any) -> List[str]:
    """URLs used for cross referencing: matched asset, primary audio, audio sources."""
    task = parse_task(task)
    if task is None:
        return []
    urls = [task.valid_src, get_task_audio_url(task)]
    urls.extend(source.url for source in task.audio_sources)
    return [url for url in urls if url]


def collect_task_outputs(task: Any) -> List[Output]:
    task = parse_task(task)
    if task is None:
        return []
    outputs = list(task.outputs)
    for target in task.targets:
        outputs.extend(target.output)
    return outputs


def _named_alignment_json(output: Output) -> bool:
    return output.name in _ALIGNMENT_NAMES and output.format in _JSON_FORMATS


def _any_json_format(output: Output) -> bool:
    return output.format in _JSON_FORMATS


def _json_type(output: Output) -> bool:
    return bool(output.type) and "json" in output.type.lower()


_OUTPUT_CHECKS = (_named_alignment_json, _any_json_format, _json_type)


def find_alignment_output(task: Any, outputs: Optional[Sequence[Output]] = None) -> Optional[Output]:
    """First output under the first check that matches anything, else None."""
    if outputs is None:
        outputs = collect_task_outputs(task)
    for check in _OUTPUT_CHECKS:
        for output in outputs:
            if check(output):
                return output
    return None


def alignment_json_url(output: Optional[Output]) -> Optional[str]:
    if output is None:
        return None
    return output.link or output.url or None


def choose_playable_audio(primary: Any, fallback: Union[Any, Iterable[Any], None] = None) -> Optional[str]:
    """Pick the first usable URL from ``primary`` followed by ``fallback``."""
    if isinstance(fallback, (list, tuple)):
        fallback_list = list(fallback)
    else:
        fallback_list = [fallback] if fallback else []

    candidates: List[Any] = []
    for value in [primary] + fallback_list:
        if isinstance(value, str):
            value = value.strip()
        if value and value not in candidates:
            candidates.append(value)

    if not candidates:
        _logger.warning("No candidate audio URLs provided")
        return None
    _logger.debug("Using first available audio url=%s candidates=%d", candidates[0], len(candidates))
    return candidates[0]


def parse_iso(value: Any) -> Optional[datetime.datetime]:
    """Parse an ISO 8601 string into an aware datetime (naive means UTC)."""
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    if len(text) > 10:
        # fromisoformat before 3.11 wants exactly 6 fraction digits and HH:MM offsets
        text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        text = _COMPACT_OFFSET_RE.sub(r"\1:\2", text)
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def parse_timestamp(value: Any) -> float:
    """ISO timestamp to epoch seconds; missing or unparseable gives 0."""
    parsed = parse_iso(value)
    return parsed.timestamp() if parsed else 0.0


def task_timestamp(task: Any) -> float:
    task = parse_task(task)
    if task is None:
        return 0.0
    return parse_timestamp(task.updated_at or task.completed_at or task.created_at)


def describe_task(task: Any) -> dict:
    """Summary of the first target for display: model, language, duration, updated."""
    task = parse_task(task)
    if task is None:
        return {}
    target = task.targets[0] if task.targets else None
    stamp = task_timestamp(task)
    return {
        "model": (target.model if target else None) or "unknown",
        "language": target.language if target else None,
        "duration": round(target.duration, 1) if target and target.duration is not None else None,
        "updated": datetime.datetime.fromtimestamp(stamp, tz=datetime.timezone.utc).isoformat() if stamp else None,
    }
