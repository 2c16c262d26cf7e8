import pytest

from alignsync.services import PollState

from .conftest import make_task

LYRICS = {
    "lines": [
        {"words": [{"text": "hello", "start": 0.0, "end": 0.5}, {"text": "world", "start": "0.5", "end": 1.2}]},
        {"words": [{"text": "again", "start": 2.0, "end": 2.4}]},
    ]
}


class TestApiKey:
    def test_saved_key_wins_over_seed(self, session, monkeypatch):
        monkeypatch.setenv("ALIGNSYNC_API_KEY", "seed-key")
        assert session.load_api_key() == "seed-key"

        session.save_api_key("  stored-key ")
        session.client.api_key = None
        assert session.load_api_key() == "stored-key"
        assert session.authorized

    def test_blank_key_rejected(self, session):
        with pytest.raises(ValueError, match="Enter API key."):
            session.save_api_key("   ")


class TestPolling:
    async def test_submit_then_poll_to_completion(self, session, fake_api):
        fake_api.queue(
            "task-new",
            make_task("task-new", status="pending"),
            make_task("task-new", status="processing"),
            make_task("task-new", audio_url="https://api/out/song.mp3", json_link="https://files.test/a.json"),
        )

        job = await session.submit(" https://x/song.mp3 ")
        assert job.task_id == "task-new"
        assert session.source_url == "https://x/song.mp3"

        task = await session.run_poll(job.task_id)

        assert task.id == "task-new"
        assert job.state is PollState.completed
        assert job.progress == 100
        assert job.message == "Completed alignment task-new"
        assert session.cache.get_task("task-new") is not None
        records = session.records.get_all()
        assert [r.task_id for r in records] == ["task-new"]
        assert records[0].json_url == "https://files.test/a.json"
        assert records[0].status == "completed"

    async def test_submit_requires_url(self, session):
        with pytest.raises(ValueError):
            await session.submit("")

    async def test_failed_task_is_cached_and_reported(self, session, fake_api):
        fake_api.queue("t1", make_task("t1", status="pending"), make_task("t1", status="failed"))

        assert await session.run_poll("t1") is None

        job = session.jobs["t1"]
        assert job.state is PollState.failed
        assert job.message == "Error: Task failed"
        assert session.cache.get_task("t1").status == "failed"
        assert session.records.get_all()[0].status == "failed"

    async def test_remote_error_ends_poll(self, session):
        assert await session.run_poll("missing") is None
        job = session.jobs["missing"]
        assert job.state is PollState.failed
        assert "Task not found" in job.message

    async def test_non_json_response_ends_poll(self, session, fake_api):
        fake_api.raw_task_bodies["t1"] = "<html>gateway</html>"

        assert await session.run_poll("t1") is None

        job = session.jobs["t1"]
        assert job.state is PollState.failed
        assert job.message.startswith("Error: ")
        assert session.cache.get_task("t1") is None

    async def test_finished_jobs_are_capped(self, session, fake_api):
        session.max_finished_jobs = 2
        for task_id in ("a", "b", "c"):
            fake_api.next_task_id = task_id
            fake_api.queue(task_id, make_task(task_id))
            await session.submit("https://x/song.mp3")
            await session.run_poll(task_id)

        fake_api.next_task_id = "d"
        job = await session.submit("https://x/song.mp3")

        assert list(session.jobs) == ["b", "c", "d"]
        assert session.jobs["d"] is job
        assert job.state is PollState.submitted


class TestCheckAndSync:
    async def test_check_pending_and_complete(self, session, fake_api):
        fake_api.queue("t1", make_task("t1", status="running"))
        result = await session.check_task("t1")
        assert result["message"] == "Task t1 is running..."

        fake_api.queue("t1", make_task("t1", status="Complete"))
        result = await session.check_task("t1")
        assert result["message"] == "Task t1 is complete."
        assert result["task"].status == "Complete"

    async def test_check_without_alignment_target(self, session, fake_api):
        fake_api.queue("t1", make_task("t1", model="separation"))
        result = await session.check_task("t1")
        assert result["task"] is None
        assert session.cache.get_task("t1") is None

    async def test_check_requires_id(self, session):
        with pytest.raises(ValueError, match="Enter a Task ID."):
            await session.check_task(" ")

    async def test_sync_replaces_cache_and_records(self, session, fake_api):
        session.cache.upsert_task(make_task("stale"))
        fake_api.list_payload = {"tasks": [make_task("a"), make_task("b", model="separation")]}

        tasks = await session.sync_from_api(5)

        assert [t.id for t in tasks] == ["a"]
        assert list(session.cache.tasks) == ["a"]
        assert [r.task_id for r in session.records.get_all()] == ["a"]


class TestAssets:
    async def test_reload_assets_from_manifest(self, session, fake_api, sample_assets):
        fake_api.manifest = {"assets": sample_assets}
        assets = await session.reload_assets()
        assert len(assets) == 3

    async def test_broken_manifest_leaves_no_assets(self, session, sample_assets):
        session.apply_assets(sample_assets)
        session.client.manifest_location = "https://cdn.test/missing.json"
        assert await session.reload_assets() == []
        assert session.cache.assets == []

    def test_select_asset_lists_exact_matches(self, session, sample_assets):
        session.apply_assets(sample_assets)
        session.cache.upsert_task(make_task("t1", audio_url="https://api/song-final.wav"))
        session.cache.upsert_task(make_task("t2", audio_url="https://api/foo-master.wav"))

        result = session.select_asset("https://cdn/Song-Final.mp3")

        assert [t.id for t in result["alignments"].items] == ["t1"]
        assert result["message"].startswith("Loaded demo asset: Song Final.")
        assert session.last_selections()["asset"] == "https://cdn/Song-Final.mp3"

    def test_select_unknown_asset(self, session):
        result = session.select_asset("https://cdn/none.mp3")
        assert result["asset"] is None
        assert result["alignments"].is_empty


class TestLoadAlignment:
    async def test_loads_lyrics_and_matched_audio(self, session, fake_api, sample_assets):
        session.apply_assets(sample_assets)
        fake_api.documents["https://files.test/a.json"] = LYRICS
        task = session.cache.upsert_task(
            make_task("t1", audio_url="https://api/song-final.mp3", json_link="https://files.test/a.json")
        )

        loaded = await session.load_alignment(task)

        assert loaded.audio_url == "https://cdn/Song-Final.mp3"
        assert loaded.message == "Loaded alignment t1"
        assert [w.text for w in loaded.lyrics.words()] == ["hello", "world", "again"]
        assert loaded.lyrics.active_word_at(0.5).text == "world"
        assert loaded.lyrics.active_word_at(1.5) is None
        assert session.last_selections()["alignment"] == "t1"

    async def test_falls_back_to_task_audio(self, session, fake_api):
        fake_api.documents["https://files.test/a.json"] = LYRICS
        task = session.cache.upsert_task(
            make_task("t1", audio_url="https://api/unmatched.mp3", json_link="https://files.test/a.json")
        )
        loaded = await session.load_alignment(task)
        assert loaded.audio_url == "https://api/unmatched.mp3"

    async def test_lyrics_without_audio(self, session, fake_api):
        fake_api.documents["https://files.test/a.json"] = LYRICS
        task = session.cache.upsert_task(make_task("t1", json_link="https://files.test/a.json"))
        loaded = await session.load_alignment(task)
        assert loaded.audio_url is None
        assert loaded.message.startswith("Lyrics loaded for t1, but no playable audio found.")

    async def test_no_json_output(self, session):
        task = session.cache.upsert_task(make_task("t1"))
        loaded = await session.load_alignment(task)
        assert loaded.message == "Selected alignment has no JSON output."
        assert loaded.lyrics.lines == []

    async def test_expired_json(self, session):
        task = session.cache.upsert_task(make_task("t1", json_link="https://files.test/gone.json"))
        loaded = await session.load_alignment(task)
        assert loaded.message.startswith("Alignment data expired or unavailable.")
        assert session.last_selections()["alignment"] is None

    async def test_get_or_fetch_task_uses_api_on_miss(self, session, fake_api):
        fake_api.queue("t9", make_task("t9"))
        task = await session.get_or_fetch_task("t9")
        assert task.id == "t9"
        assert session.cache.get_task("t9") is task
