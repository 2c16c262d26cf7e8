import asyncio

from httpx import AsyncClient

from .conftest import make_task

LYRICS = {"lines": [{"words": [{"text": "la", "start": 0, "end": 1}]}]}


async def wait_for_poll(async_client: AsyncClient, task_id: str, attempts: int = 50) -> dict:
    """Let the background poll run until it leaves the polling state."""
    data = {}
    for _ in range(attempts):
        response = await async_client.get(f"/alignments/{task_id}/progress")
        data = response.json()["data"]
        if data["state"] in ("completed", "failed"):
            return data
        await asyncio.sleep(0.01)
    return data


async def test_settings_api_key(async_client: AsyncClient, session):
    session.client.api_key = None
    response = await async_client.get("/settings/api-key")
    assert response.json()["data"] == {"configured": False}

    response = await async_client.put("/settings/api-key", json={"api_key": "  "})
    assert response.status_code == 400

    response = await async_client.put("/settings/api-key", json={"api_key": "test-key"})
    assert response.status_code == 200
    assert response.json()["message"] == "API key saved."
    assert (await async_client.get("/settings/api-key")).json()["data"] == {"configured": True}


async def test_submit_and_track_progress(async_client: AsyncClient, fake_api):
    fake_api.queue(
        "task-new",
        make_task("task-new", status="pending"),
        make_task("task-new", audio_url="https://api/song.mp3", json_link="https://files.test/a.json"),
    )

    response = await async_client.post("/alignments", json={"url": "https://x/song.mp3"})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["task_id"] == "task-new"

    job = await wait_for_poll(async_client, "task-new")
    assert job["state"] == "completed"
    assert job["progress"] == 100

    listing = (await async_client.get("/alignments")).json()["data"]
    assert listing["state"] == "selected"
    assert [item["id"] for item in listing["items"]] == ["task-new"]
    assert listing["items"][0]["filename"] == "song.mp3"

    records = (await async_client.get("/records")).json()["data"]
    assert records[0]["taskId"] == "task-new"


async def test_submit_without_key_is_unauthorized(async_client: AsyncClient, session):
    session.client.api_key = None
    response = await async_client.post("/alignments", json={"url": "https://x/song.mp3"})
    assert response.status_code == 401


async def test_submit_blank_url(async_client: AsyncClient):
    response = await async_client.post("/alignments", json={"url": ""})
    assert response.status_code == 400
    assert response.json()["detail"] == "Enter an audio URL."


async def test_progress_for_unknown_task(async_client: AsyncClient):
    response = await async_client.get("/alignments/nope/progress")
    assert response.status_code == 404


async def test_check_alignment(async_client: AsyncClient, fake_api):
    fake_api.queue("t1", make_task("t1", status="pending"))
    response = await async_client.post("/alignments/t1/check")
    assert response.status_code == 200
    assert response.json()["message"] == "Task t1 is pending..."
    assert response.json()["data"]["id"] == "t1"

    response = await async_client.post("/alignments/missing/check")
    assert response.status_code == 502


async def test_sync_alignments(async_client: AsyncClient, fake_api):
    fake_api.list_payload = [make_task("a"), make_task("b")]
    response = await async_client.post("/alignments/sync", params={"limit": 2})
    assert response.json()["data"] == {"count": 2}


async def test_empty_alignment_list(async_client: AsyncClient):
    data = (await async_client.get("/alignments")).json()["data"]
    assert data == {"state": "empty", "selected": None, "items": []}


async def test_upload_assets_and_select(async_client: AsyncClient, session, sample_assets):
    session.cache.upsert_task(make_task("t1", audio_url="https://api/song-final.wav"))

    response = await async_client.post("/assets", json={"assets": sample_assets})
    assert len(response.json()["data"]) == 3

    listing = (await async_client.get("/assets", params={"selected": "https://cdn/clip.mp4"})).json()["data"]
    assert listing["selected"] == "https://cdn/clip.mp4"

    response = await async_client.get("/assets/alignments", params={"src": "https://cdn/Song-Final.mp3"})
    data = response.json()["data"]
    assert data["asset"]["title"] == "Song Final"
    assert [item["id"] for item in data["alignments"]["items"]] == ["t1"]

    selections = (await async_client.get("/settings/selections")).json()["data"]
    assert selections["asset"] == "https://cdn/Song-Final.mp3"


async def test_upload_empty_assets(async_client: AsyncClient):
    response = await async_client.post("/assets", json=[{"title": "no src"}])
    assert response.json()["message"] == "No assets found in JSON file."


async def test_select_unknown_asset(async_client: AsyncClient):
    response = await async_client.get("/assets/alignments", params={"src": "https://cdn/none.mp3"})
    assert response.status_code == 404


async def test_reload_assets(async_client: AsyncClient, fake_api, sample_assets):
    fake_api.manifest = sample_assets
    response = await async_client.post("/assets/reload")
    assert [a["src"] for a in response.json()["data"]] == [a["src"] for a in sample_assets]


async def test_load_alignment_with_associated_assets(async_client: AsyncClient, session, fake_api, sample_assets):
    session.apply_assets(sample_assets)
    fake_api.documents["https://files.test/a.json"] = LYRICS
    fake_api.queue("t1", make_task("t1", audio_url="https://api/foo-master.wav", json_link="https://files.test/a.json"))

    response = await async_client.get("/alignments/t1")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Loaded alignment t1"
    assert body["data"]["audio_url"] == "https://api/foo-master.wav"
    assert body["data"]["lyrics"]["lines"][0]["words"][0]["text"] == "la"
    assets = body["data"]["associatedAssets"]
    assert [a["src"] for a in assets["items"]] == ["https://cdn/foo_master.wav"]

    response = await async_client.get("/alignments/t1/assets")
    assert response.json()["data"]["selected"] == "https://cdn/foo_master.wav"


async def test_load_alignment_errors(async_client: AsyncClient, fake_api):
    response = await async_client.get("/alignments/missing")
    assert response.status_code == 502

    fake_api.queue("sep", make_task("sep", model="separation"))
    response = await async_client.get("/alignments/sep")
    assert response.status_code == 404

    response = await async_client.get("/alignments/sep/assets")
    assert response.status_code == 404


async def test_background_poll_failure_is_reported(async_client: AsyncClient, fake_api):
    fake_api.raw_task_bodies["task-new"] = "<html>gateway</html>"

    response = await async_client.post("/alignments", json={"url": "https://x/song.mp3"})
    assert response.status_code == 200

    job = await wait_for_poll(async_client, "task-new")
    assert job["state"] == "failed"
    assert job["message"].startswith("Error: ")
