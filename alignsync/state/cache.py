"""In-memory task and asset caches with their derived projections."""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from alignsync.config import FuzzyThresholds, get_allowed_media_types, get_task_model
from alignsync.utils import base_name_from_url, fuzzy_equals

from .matching import has_model_target, match_tasks_to_assets, normalize_assets
from .models import Asset, Task
from .resolvers import extract_task_array, parse_task, resolved_audio_urls, task_timestamp

_logger = logging.getLogger("alignsync")

T = TypeVar("T")


@dataclass
class Projection(Generic[T]):
    """A derived list plus the key of its active item.

    ``selected`` is None only when ``items`` is empty.
    """

    items: List[T] = field(default_factory=list)
    selected: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def state(self) -> str:
        return "empty" if self.is_empty else "selected"


def _select(keys: Sequence[str], previous: Optional[str]) -> Optional[str]:
    if not keys:
        return None
    if previous and previous in keys:
        return previous
    return keys[0]


class AlignmentCache:
    """
    Owns the task cache (by id) and the asset cache (manifest order).

    Every mutation re-runs the task/asset matcher so ``valid_src`` and
    ``asset_title`` always reflect the current contents of both caches.
    Readers should go through the projection methods.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        allowed_formats: Optional[Sequence[str]] = None,
        thresholds: Optional[FuzzyThresholds] = None,
    ):
        self.model = model or get_task_model()
        self.allowed_formats = list(allowed_formats) if allowed_formats is not None else get_allowed_media_types()
        self.thresholds = thresholds or FuzzyThresholds()
        self.tasks: Dict[str, Task] = {}
        self.assets: List[Asset] = []

    # ----------------------------
    # Mutations
    # ----------------------------

    def normalize_task(self, payload: Any) -> Optional[Task]:
        """Parse a remote task and admit it only if it has a target for our model."""
        task = parse_task(payload)
        if task is None or not task.id:
            return None
        if not has_model_target(task, self.model):
            return None
        # Keep the caller's object untouched; the matcher writes derived fields.
        return task.model_copy(deep=True)

    def upsert_task(self, payload: Any) -> Optional[Task]:
        """Replace-or-append a task by id. Returns the cached task, or None if not admitted."""
        task = self.normalize_task(payload)
        if task is None:
            parsed = parse_task(payload)
            if parsed is not None and parsed.id and self.tasks.pop(parsed.id, None) is not None:
                _logger.info("Dropped task without %s target task_id=%s", self.model, parsed.id)
            return None

        self.tasks[task.id] = task
        self._rematch()
        _logger.debug("Upserted task task_id=%s cached=%d", task.id, len(self.tasks))
        return self.tasks[task.id]

    def replace_tasks(self, payload: Any) -> List[Task]:
        """Replace the whole task cache from a list-tasks payload."""
        tasks: Dict[str, Task] = {}
        for item in extract_task_array(payload):
            task = self.normalize_task(item)
            if task is not None:
                tasks[task.id] = task
        self.tasks = tasks
        self._rematch()
        _logger.info("Replaced task cache count=%d", len(self.tasks))
        return list(self.tasks.values())

    def apply_assets(self, payload: Any, source: str = "unknown") -> List[Asset]:
        """Replace the asset cache from a manifest payload."""
        self.assets = normalize_assets(payload, self.allowed_formats)
        if not self.assets:
            _logger.warning("No valid assets provided source=%s", source)
        if self.tasks:
            self._rematch()
        _logger.info("Applied assets count=%d source=%s", len(self.assets), source)
        return list(self.assets)

    def _rematch(self) -> None:
        tasks = list(self.tasks.values())
        for task in tasks:
            task.valid_src = None
            task.asset_title = None
        match_tasks_to_assets(tasks, self.assets)

    # ----------------------------
    # Lookups
    # ----------------------------

    def get_task(self, task_id: Optional[str]) -> Optional[Task]:
        if not task_id:
            return None
        return self.tasks.get(task_id)

    def get_asset(self, src: Optional[str]) -> Optional[Asset]:
        if not src:
            return None
        return next((asset for asset in self.assets if asset.src == src), None)

    # ----------------------------
    # Projections
    # ----------------------------

    def ranked_alignments(self, previous: Optional[str] = None) -> Projection[Task]:
        """All cached tasks, most recently touched first."""
        items = sorted(self.tasks.values(), key=task_timestamp, reverse=True)
        return Projection(items=items, selected=_select([task.id for task in items], previous))

    def asset_list(self, previous: Optional[str] = None) -> Projection[Asset]:
        items = list(self.assets)
        return Projection(items=items, selected=_select([asset.src for asset in items], previous))

    def alignments_for_asset(self, asset_src: Optional[str], previous: Optional[str] = None) -> Projection[Task]:
        """Tasks whose resolved audio URLs share the asset's base name exactly."""
        asset_base = base_name_from_url(asset_src)
        if not asset_base:
            return Projection()
        items = [
            task
            for task in self.tasks.values()
            if any(base_name_from_url(url) == asset_base for url in resolved_audio_urls(task))
        ]
        return Projection(items=items, selected=_select([task.id for task in items], previous))

    def assets_for_task(self, task: Any, previous: Optional[str] = None) -> Projection[Asset]:
        """Assets whose base name fuzzily equals one of the task's audio base names."""
        if isinstance(task, str):
            task = self.get_task(task)
        task = parse_task(task)
        if task is None or not self.assets:
            return Projection()

        task_bases = []
        for url in resolved_audio_urls(task):
            base = base_name_from_url(url)
            if base and base not in task_bases:
                task_bases.append(base)

        items = []
        for asset in self.assets:
            asset_base = base_name_from_url(asset.src)
            if not asset_base:
                continue
            if any(fuzzy_equals(asset_base, base, self.thresholds) for base in task_bases):
                items.append(asset)
        return Projection(items=items, selected=_select([asset.src for asset in items], previous))

    # ----------------------------
    # Snapshot
    # ----------------------------

    def snapshot(self) -> Dict[str, Any]:
        return {
            "tasks": {task_id: task.to_payload() for task_id, task in self.tasks.items()},
            "assets": [asset.model_dump(exclude_none=True) for asset in self.assets],
        }

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any], **kwargs: Any) -> "AlignmentCache":
        cache = cls(**kwargs)
        cache.assets = [Asset.model_validate(item) for item in snapshot.get("assets") or []]
        for payload in (snapshot.get("tasks") or {}).values():
            task = cache.normalize_task(payload)
            if task is not None:
                cache.tasks[task.id] = task
        cache._rematch()
        return cache
