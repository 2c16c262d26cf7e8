"""Alignment workflows: submit, poll, check, sync and load for playback."""
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field

from alignsync.config import PollConfig, get_seed_api_key
from alignsync.state import (
    AlignmentCache,
    AlignmentRecord,
    Asset,
    Projection,
    Task,
    alignment_json_url,
    choose_playable_audio,
    describe_task,
    find_alignment_output,
    get_task_audio_url,
    get_task_status_info,
    is_completed,
)
from alignsync.storage import RecordStore, SettingsStore
from alignsync.utils import short_filename

from .client import AlignmentApiClient, ApiError
from .lyrics import LyricsDocument
from .poller import PollState, TaskFailedError, TaskPoller

_logger = logging.getLogger("alignsync")

API_KEY_SETTING = "api_key"
LAST_ASSET_SETTING = "last_selected_asset"
LAST_ALIGNMENT_SETTING = "last_selected_alignment"

# Finished jobs kept for progress lookups; the oldest are evicted first.
MAX_FINISHED_JOBS = 100


class PollJob(BaseModel):
    """Progress of one submitted task as seen by the UI."""

    task_id: str
    state: PollState = PollState.submitted
    progress: int = 0
    message: str = ""


class LoadedAlignment(BaseModel):
    """Lyrics and audio resolved for one alignment, with a status message."""

    task_id: str
    lyrics: LyricsDocument = Field(default_factory=LyricsDocument)
    audio_url: Optional[str] = None
    json_url: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    message: str = ""


def build_record(task: Task) -> AlignmentRecord:
    """Whole-record snapshot of a task for the record store."""
    info = get_task_status_info(task)
    source_url = get_task_audio_url(task) or None
    return AlignmentRecord(
        task_id=task.id,
        audio_url=choose_playable_audio(task.valid_src, [source_url] if source_url else []),
        json_url=alignment_json_url(find_alignment_output(task)),
        source_url=source_url,
        status=info.raw or info.normalized,
        updated_at=task.updated_at or task.completed_at or task.created_at,
    )


class AlignmentSession:
    """
    Everything the UI needs for one session: the API client, the caches, the
    persisted stores and the state of in-flight polls.
    """

    def __init__(
        self,
        client: AlignmentApiClient,
        cache: AlignmentCache,
        settings: SettingsStore,
        records: RecordStore,
        poll_config: Optional[PollConfig] = None,
    ):
        self.client = client
        self.cache = cache
        self.settings = settings
        self.records = records
        self.poll_config = poll_config or PollConfig()
        self.jobs: Dict[str, PollJob] = {}
        self.max_finished_jobs = MAX_FINISHED_JOBS
        self.source_url: Optional[str] = None

    # ----------------------------
    # Credentials
    # ----------------------------

    def load_api_key(self) -> Optional[str]:
        key = self.settings.get(API_KEY_SETTING) or get_seed_api_key()
        self.client.api_key = key
        _logger.info("API key loaded present=%s", bool(key))
        return key

    def save_api_key(self, key: str) -> None:
        key = (key or "").strip()
        if not key:
            raise ValueError("Enter API key.")
        self.settings.set(API_KEY_SETTING, key)
        self.client.api_key = key
        _logger.info("API key saved")

    @property
    def authorized(self) -> bool:
        return bool(self.client.api_key)

    # ----------------------------
    # Tasks
    # ----------------------------

    def _save_record(self, task: Optional[Task]) -> None:
        if task is not None:
            self.records.put(build_record(task))

    async def submit(self, source_url: str) -> PollJob:
        """Create the remote task; the caller schedules ``run_poll`` for it."""
        source_url = (source_url or "").strip()
        if not source_url:
            raise ValueError("Enter an audio URL.")
        self.source_url = source_url
        created = await self.client.create_task(source_url)
        task_id = created.get("id") if isinstance(created, dict) else None
        if not task_id:
            raise ApiError("Task response did not include an id.")
        job = PollJob(task_id=str(task_id), message="Creating task...")
        self.jobs[job.task_id] = job
        self._prune_jobs()
        return job

    def _prune_jobs(self) -> None:
        finished = [
            task_id
            for task_id, job in self.jobs.items()
            if job.state in (PollState.completed, PollState.failed)
        ]
        for task_id in finished[: max(0, len(finished) - self.max_finished_jobs)]:
            del self.jobs[task_id]

    async def run_poll(self, task_id: str) -> Optional[Task]:
        """Poll a submitted task to the end, updating its job, cache and record."""
        job = self.jobs.setdefault(task_id, PollJob(task_id=task_id))
        job.state = PollState.polling

        def on_progress(value: int) -> None:
            job.progress = value

        poller = TaskPoller(self.client.get_task, config=self.poll_config, on_progress=on_progress)
        start = time.monotonic()
        try:
            result = await poller.run(task_id)
        except TaskFailedError as exc:
            job.state = PollState.failed
            job.message = "Error: Task failed"
            self._save_record(self.cache.upsert_task(exc.task))
            _logger.warning("Poll ended with failed task task_id=%s", task_id)
            return None
        except Exception as exc:
            job.state = PollState.failed
            job.message = f"Error: {exc}"
            _logger.exception("Poll failed task_id=%s error=%s", task_id, exc)
            return None

        job.state = PollState.completed
        task = self.cache.upsert_task(result)
        if task is None:
            job.message = "Error: Task response did not include an alignment output."
            return None
        self._save_record(task)
        job.message = f"Completed alignment {task_id}"
        _logger.info("Poll completed task_id=%s elapsed_ms=%d", task_id, int((time.monotonic() - start) * 1000))
        return task

    async def check_task(self, task_id: str) -> Dict[str, Any]:
        """One-shot status fetch. Returns the cached task (if admitted) and a message."""
        task_id = (task_id or "").strip()
        if not task_id:
            raise ValueError("Enter a Task ID.")
        raw = await self.client.get_task(task_id)
        task = self.cache.upsert_task(raw)
        if task is None:
            return {"task": None, "message": f"Task {task_id} does not include an alignment target yet."}

        self._save_record(task)
        info = get_task_status_info(task)
        if not is_completed(info):
            return {"task": task, "message": f"Task {task_id} is {info.raw or info.normalized or 'pending'}..."}
        return {"task": task, "message": f"Task {task_id} is complete."}

    async def sync_from_api(self, limit: Optional[int] = None) -> List[Task]:
        payload = await self.client.list_tasks(limit)
        tasks = self.cache.replace_tasks(payload)
        self.records.replace_all([build_record(task) for task in tasks])
        _logger.info("Synced alignment tasks count=%d", len(tasks))
        return tasks

    # ----------------------------
    # Assets
    # ----------------------------

    def apply_assets(self, payload: Any, source: str = "unknown") -> List[Asset]:
        return self.cache.apply_assets(payload, source=source)

    async def reload_assets(self) -> List[Asset]:
        """Load the configured manifest; a broken manifest leaves no assets."""
        try:
            payload = await self.client.fetch_demo_asset_manifest()
        except (ApiError, httpx.HTTPError, OSError, ValueError):
            _logger.exception("Error loading demo asset manifest location=%s", self.client.manifest_location)
            return self.cache.apply_assets([], source="manifest")
        return self.cache.apply_assets(payload, source="manifest")

    def select_asset(self, src: str, previous_alignment: Optional[str] = None) -> Dict[str, Any]:
        asset = self.cache.get_asset(src)
        if asset is None:
            return {"asset": None, "alignments": Projection(), "message": "Selected asset not found."}
        self.source_url = asset.src
        self.settings.set(LAST_ASSET_SETTING, asset.src)
        return {
            "asset": asset,
            "alignments": self.cache.alignments_for_asset(asset.src, previous_alignment),
            "message": (
                f"Loaded demo asset: {asset.title or short_filename(asset.src)}. "
                "Pick an associated alignment to view lyrics."
            ),
        }

    # ----------------------------
    # Playback
    # ----------------------------

    async def get_or_fetch_task(self, task_id: str) -> Optional[Task]:
        task = self.cache.get_task(task_id)
        if task is None:
            task = self.cache.upsert_task(await self.client.get_task(task_id))
        return task

    async def load_alignment(self, task: Task) -> LoadedAlignment:
        """Resolve lyrics and a playable audio URL for a cached task."""
        loaded = LoadedAlignment(task_id=task.id, meta=describe_task(task))
        loaded.json_url = alignment_json_url(find_alignment_output(task))
        if not loaded.json_url:
            loaded.message = "Selected alignment has no JSON output."
            return loaded

        try:
            loaded.lyrics = LyricsDocument.from_payload(await self.client.fetch_json(loaded.json_url))
        except (ApiError, httpx.HTTPError, ValueError) as exc:
            _logger.error("Failed to fetch alignment json task_id=%s url=%s error=%s", task.id, loaded.json_url, exc)
            loaded.message = "Alignment data expired or unavailable. Please recreate task or refresh demo assets."
            return loaded

        candidates = [url for url in (task.valid_src, get_task_audio_url(task), self.source_url) if url]
        primary, fallback = (candidates[0], candidates[1:]) if candidates else (None, [])
        loaded.audio_url = choose_playable_audio(primary, fallback)
        if loaded.audio_url:
            loaded.message = f"Loaded alignment {task.id}"
        else:
            loaded.message = (
                f"Lyrics loaded for {task.id}, but no playable audio found. "
                "Use Associated Demo Assets to pick audio."
            )
        self.settings.set(LAST_ALIGNMENT_SETTING, task.id)
        return loaded

    def last_selections(self) -> Dict[str, Optional[str]]:
        return {
            "asset": self.settings.get(LAST_ASSET_SETTING),
            "alignment": self.settings.get(LAST_ALIGNMENT_SETTING),
        }
