"""
Shared fixtures and test utilities.
"""

import json
import os
import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing the app
os.environ.update({
    "ALIGNSYNC_DB_FILE": str(Path(tempfile.mkdtemp()) / "alignsync-test.db"),
    "ALIGNSYNC_API_BASE": "https://api.test",
    "LOG_LEVEL": "DEBUG",
})

from alignsync.app import create_app
from alignsync.config import PollConfig
from alignsync.services import AlignmentApiClient, AlignmentSession
from alignsync.state import AlignmentCache
from alignsync.storage import RecordStore, SettingsStore

API_BASE = "https://api.test"
TEST_API_KEY = "test-key"
MEDIA_TYPES = ["audio/mpeg", "video/mp4", "audio/wav"]


def make_task(
    task_id: str,
    status: Optional[str] = "completed",
    model: str = "alignment",
    audio_url: Optional[str] = None,
    updated_at: Optional[str] = None,
    json_link: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a remote task payload the way the job API returns it."""
    target: Dict[str, Any] = {"model": model, "status": status, "output": []}
    if json_link:
        target["output"].append({"name": "alignment", "format": "json", "link": json_link})
    task: Dict[str, Any] = {"id": task_id, "status": status, "targets": [target]}
    if audio_url:
        task["audioUrl"] = audio_url
    if updated_at:
        task["updatedAt"] = updated_at
    task.update(extra)
    return task


class FakeRemoteApi:
    """In-memory stand-in for the remote job API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        # task id -> payloads returned by successive GETs; the last one repeats
        self.task_responses: Dict[str, List[Dict[str, Any]]] = {}
        # task id -> non-JSON body served with a 200, as a misbehaving gateway would
        self.raw_task_bodies: Dict[str, str] = {}
        self.documents: Dict[str, Any] = {}
        self.list_payload: Any = {"tasks": []}
        self.manifest: Any = {"assets": []}
        self.created: List[Dict[str, Any]] = []
        self.next_task_id = "task-new"
        self.requests: List[httpx.Request] = []

    def queue(self, task_id: str, *payloads: Dict[str, Any]) -> None:
        self.task_responses[task_id] = list(payloads)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)

        if request.url.host == "api.test":
            if request.headers.get("x-api-key") != TEST_API_KEY:
                return httpx.Response(401, json={"message": "Unauthorized"})
            path = request.url.path
            if request.method == "POST" and path == "/tasks":
                body = json.loads(request.content)
                self.created.append(body)
                return httpx.Response(200, json={"id": self.next_task_id, "status": "pending", "targets": body["targets"]})
            if request.method == "GET" and path == "/tasks":
                return httpx.Response(200, json=self.list_payload)
            if request.method == "GET" and path.startswith("/tasks/"):
                task_id = path.rsplit("/", 1)[-1]
                if task_id in self.raw_task_bodies:
                    return httpx.Response(200, text=self.raw_task_bodies[task_id])
                responses = self.task_responses.get(task_id)
                if not responses:
                    return httpx.Response(404, json={"message": "Task not found"})
                payload = responses.pop(0) if len(responses) > 1 else responses[0]
                return httpx.Response(200, json=payload)
            return httpx.Response(404, json={})

        if url == "https://cdn.test/demo-assets.json":
            return httpx.Response(200, json=self.manifest)
        if url in self.documents:
            return httpx.Response(200, json=self.documents[url])
        return httpx.Response(404, text="not found")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_db(temp_dir: Path) -> str:
    """Provide a temporary database file."""
    return str(temp_dir / "test_alignsync.db")


@pytest.fixture
def settings_store(temp_db: str) -> SettingsStore:
    return SettingsStore(temp_db)


@pytest.fixture
def record_store(temp_db: str) -> RecordStore:
    return RecordStore(temp_db)


@pytest.fixture
def cache() -> AlignmentCache:
    """Provide an empty cache with the default model and media types."""
    return AlignmentCache(model="alignment", allowed_formats=MEDIA_TYPES)


@pytest.fixture
def fake_api() -> FakeRemoteApi:
    return FakeRemoteApi()


@pytest.fixture
def api_client(fake_api: FakeRemoteApi) -> AlignmentApiClient:
    """Provide an API client wired to the fake remote API."""
    return AlignmentApiClient(
        api_key=TEST_API_KEY,
        base_url=API_BASE,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(fake_api.handler)),
        manifest_location="https://cdn.test/demo-assets.json",
        model="alignment",
    )


@pytest.fixture
def poll_config() -> PollConfig:
    """Provide a PollConfig with no wait between attempts."""
    return PollConfig(interval=0)


@pytest.fixture
def session(
    api_client: AlignmentApiClient,
    cache: AlignmentCache,
    settings_store: SettingsStore,
    record_store: RecordStore,
    poll_config: PollConfig,
) -> AlignmentSession:
    return AlignmentSession(
        client=api_client,
        cache=cache,
        settings=settings_store,
        records=record_store,
        poll_config=poll_config,
    )


@pytest.fixture
async def async_client(session: AlignmentSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing the FastAPI app."""
    transport = ASGITransport(app=create_app(session))
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_assets() -> List[Dict[str, Any]]:
    """Provide a sample demo asset manifest."""
    return [
        {"src": "https://cdn/Song-Final.mp3", "title": "Song Final", "format": "audio/mpeg"},
        {"src": "https://cdn/foo_master.wav", "title": "Foo Master", "format": "audio/wav"},
        {"src": "https://cdn/clip.mp4", "format": "video/mp4"},
    ]
