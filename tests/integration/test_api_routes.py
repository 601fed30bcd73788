"""Integration tests for the HTTP API, backed by a studio built from in-memory fakes."""

import asyncio
import io
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from api.dependencies import error_status, set_studio
from api.routers import render as render_router
from api.routers import scenes as scenes_router
from api.server import app
from models.scene import MediaKind, Scene
from reel.errors import EmptyInputError, EngineNotReadyError, RateLimitedError
from services.provider_errors import ProviderError

pytestmark = pytest.mark.integration

WAV_BYTES = b"RIFF\x24\x00\x00\x00WAVEfmt "


@pytest.fixture
def client(studio):
    set_studio(studio)
    scenes_router.scene_jobs.clear()
    render_router.render_jobs.clear()
    with TestClient(app) as test_client:
        yield test_client
    set_studio(None)


def wait_for_job(client, url, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        job = client.get(url).json()
        if job["status"] != "processing":
            return job
        time.sleep(0.01)
    raise AssertionError(f"{url} still processing after {timeout}s")


def generate_scenes(client, script="Narrator: The fog rolled in."):
    response = client.post("/api/scenes", json={"script": script, "source": "ai"})
    assert response.status_code == 202
    return wait_for_job(client, f"/api/scenes/{response.json()['job_id']}")


class TestCore:
    def test_root(self, client):
        assert client.get("/").json() == {"message": "Reelsmith API", "version": "1.0.0"}

    def test_health_reports_engine(self, client):
        # The lifespan loads the engine
        assert client.get("/health").json() == {"status": "healthy", "engine_loaded": True}


class TestScript:
    def test_put_and_get_script(self, client):
        response = client.put("/api/script", json={"script": "Host: hi\nGuest: hello"})
        assert [s["name"] for s in response.json()["speakers"]] == ["Host", "Guest"]
        assert client.get("/api/script").json()["script"] == "Host: hi\nGuest: hello"

    def test_generate_script(self, client):
        response = client.post("/api/script/generate", json={"topic": "harbor"})
        assert response.status_code == 200
        assert response.json()["script"] == "Host: Hello there.\nGuest: Hi!"

    def test_generate_script_blank_topic(self, client):
        assert client.post("/api/script/generate", json={"topic": "  "}).status_code == 400

    def test_enhance_rate_limited(self, client, mock_ai_service):
        mock_ai_service.enhance_script.side_effect = ProviderError("quota", status_code=429)
        response = client.post("/api/script/enhance", json={"script": "Host: hi"})
        assert response.status_code == 429

    def test_speakers(self, client):
        added = client.post("/api/speakers").json()
        assert [s["voice"] for s in added["speakers"]] == ["Aoede", "Orus"]

        updated = client.patch("/api/speakers/2", json={"name": "Guest", "voice": "Puck"}).json()
        assert updated["speakers"][1] == {"id": 2, "name": "Guest", "voice": "Puck"}

        assert client.patch("/api/speakers/2", json={"voice": "Robot"}).status_code == 400
        assert client.patch("/api/speakers/9", json={"name": "Ghost"}).status_code == 404

        remaining = client.delete("/api/speakers/1").json()
        assert [s["name"] for s in remaining["speakers"]] == ["Guest"]

    def test_samples(self, client):
        samples = client.get("/api/samples").json()
        assert len(samples) == 6
        loaded = client.post("/api/samples/Two-Host Podcast").json()
        assert loaded["script"].startswith("Host:")
        assert client.post("/api/samples/42").status_code == 404

    def test_voices(self, client):
        assert "Aoede" in client.get("/api/voices").json()

    def test_upload_narration(self, client):
        response = client.post("/api/narration", files={"file": ("voice.wav", WAV_BYTES, "audio/wav")})
        assert response.status_code == 200
        assert response.json()["script"] == "Narrator: The fog rolled in. [warmly]"


class TestScenes:
    def test_scene_job_completes(self, client):
        job = generate_scenes(client)

        assert job["status"] == "completed"
        assert [s["prompt"] for s in job["scenes"]] == ["prompt one", "prompt two", "prompt three"]
        assert job["progress"]["done"] is True
        assert len(client.get("/api/scenes").json()) == 3

    def test_blank_script(self, client):
        assert client.post("/api/scenes", json={"script": "   "}).status_code == 400

    def test_unknown_job(self, client):
        assert client.get("/api/scenes/nope").status_code == 404

    def test_rate_limit_keeps_partial_scenes(self, client, mock_acquirer):
        def acquire(prompt, source):
            if prompt == "prompt three":
                raise RateLimitedError(retry_after=60)
            return Scene(kind=MediaKind.IMAGE, source_url=f"https://i.example.com/{prompt}.png", prompt=prompt)

        mock_acquirer.acquire.side_effect = acquire

        job = generate_scenes(client)

        assert job["status"] == "failed"
        assert job["retry_after"] == 60
        assert len(job["scenes"]) == 2

    def test_regenerate(self, client):
        generate_scenes(client)
        response = client.post("/api/scenes/regenerate", json={"index": 1})
        assert response.status_code == 200
        assert response.json()["prompt"] == "prompt two"
        assert client.post("/api/scenes/regenerate", json={"index": 7}).status_code == 404

    def test_websocket_sends_snapshot_then_result(self, client):
        job = generate_scenes(client)
        with client.websocket_connect(f"/ws/scenes/{job['id']}") as websocket:
            status = websocket.receive_json()
            assert status["type"] == "status"
            assert websocket.receive_json()["type"] == "complete"


class TestAudio:
    def test_tracks_and_library(self, client):
        tracks = client.get("/api/audio").json()
        assert [t["track"] for t in tracks] == ["narration", "bgm", "sfx"]

        library = client.get("/api/audio/library/bgm").json()
        assert [a["name"] for a in library] == ["None", "calm piano.wav"]
        assert client.get("/api/audio/library/narration").status_code == 400

    def test_generate_music(self, client):
        response = client.post("/api/audio/bgm/generate", json={"prompt": "calm lo-fi piano"})
        assert response.status_code == 200
        assert response.json()["name"] == "calm lofi piano.wav"

    def test_generate_music_without_prompt(self, client):
        assert client.post("/api/audio/sfx/generate", json={"prompt": ""}).status_code == 400

    def test_upload_select_and_volume(self, client):
        uploaded = client.post("/api/audio/sfx/upload", files={"file": ("rain.wav", WAV_BYTES, "audio/wav")}).json()
        assert uploaded["name"] == "rain.wav"

        selected = client.post("/api/audio/sfx/select", json={"path": None}).json()
        assert selected["source_url"] is None

        volume = client.put("/api/audio/bgm/volume", json={"value": 0.3}).json()
        assert volume["volume"] == 0.3
        assert client.put("/api/audio/bgm/volume", json={"value": 2}).status_code == 422


class TestPreview:
    def test_preview_needs_scenes(self, client):
        assert client.post("/api/preview/toggle").status_code == 409

    def test_preview_toggle(self, client):
        generate_scenes(client)
        client.post("/api/audio/narration/select", json={"path": "https://cdn.example.com/n.wav"})

        playing = client.post("/api/preview/toggle").json()
        assert playing["state"] == "playing"
        assert playing["scene"]["prompt"] == "prompt one"

        assert client.post("/api/preview/toggle").json()["state"] == "stopped"

    def test_track_preview(self, client):
        assert client.post("/api/audio/bgm/preview").status_code == 409
        client.post("/api/audio/bgm/select", json={"path": "https://cdn.example.com/bgm.wav"})
        assert client.post("/api/audio/bgm/preview").json() == {"track": "bgm", "is_playing": True}


class TestRender:
    def test_render_requires_scenes_and_narration(self, client):
        assert client.post("/api/render").status_code == 400
        generate_scenes(client)
        assert client.post("/api/render").status_code == 400

    def test_render_job(self, client, fake_engine):
        generate_scenes(client)
        response = client.post(
            "/api/render",
            json={"narration_url": "https://cdn.example.com/n.wav", "volumes": {"narration": 0.9, "bgm": 0.4, "sfx": 0.1}},
        )
        assert response.status_code == 202

        job = wait_for_job(client, f"/api/render/{response.json()['job_id']}")

        assert job["status"] == "completed"
        assert job["result"]["public_url"].startswith("https://cdn.example.com/video/")
        mix = fake_engine.commands[1]
        assert "[0:a]volume=0.9[a]" in mix[mix.index("-filter_complex") + 1]

        video = client.get(f"/api/render/{job['id']}/video")
        assert video.status_code == 200
        assert video.content == fake_engine.output

    def test_render_failure_is_reported(self, client, fake_engine):
        fake_engine.fail_on = 0
        generate_scenes(client)
        response = client.post("/api/render", json={"narration_url": "https://cdn.example.com/n.wav"})

        job = wait_for_job(client, f"/api/render/{response.json()['job_id']}")

        assert job["status"] == "failed"
        assert job["error"].startswith("Video rendering failed during concatenate visuals:")
        assert client.get(f"/api/render/{job['id']}/video").status_code == 400

    def test_engine_not_loaded(self, client, fake_engine):
        fake_engine.loaded = False
        assert client.post("/api/render").status_code == 503

    @pytest.mark.asyncio
    async def test_progress_broadcasts_are_held_until_sent(self):
        pending_during_render = []

        async def render(on_progress):
            on_progress(MagicMock(to_dict=lambda: {"stage": "concat", "percent": 40.0}))
            pending_during_render.append(len(render_router._background_tasks))
            return MagicMock(to_dict=lambda: {"local_path": "reel.mp4"})

        render_router.render_jobs["job1"] = {"id": "job1", "status": "processing", "progress": None}
        try:
            with patch.object(render_router, "get_studio", return_value=MagicMock(render=render)), patch.object(
                render_router.ws_manager, "broadcast", new=AsyncMock()
            ) as broadcast:
                await render_router._run_render("job1")
                for _ in range(3):
                    await asyncio.sleep(0)
        finally:
            render_router.render_jobs.clear()

        assert pending_during_render == [1]
        assert render_router._background_tasks == set()
        sent = [call.args[1]["type"] for call in broadcast.await_args_list]
        assert sorted(sent) == ["complete", "progress"]


class TestThumbnail:
    def test_generate_thumbnail(self, client):
        generate_scenes(client)
        response = client.post("/api/thumbnail")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.headers["x-thumbnail-title"] == "Harbor Secrets"

    def test_thumbnail_without_scenes(self, client):
        assert client.post("/api/thumbnail").status_code == 400

    def test_upload_thumbnail(self, client):
        output = io.BytesIO()
        Image.new("RGB", (32, 18)).save(output, format="JPEG")

        ok = client.post("/api/thumbnail/upload", files={"file": ("t.jpg", output.getvalue(), "image/jpeg")})
        assert ok.json()["custom"] is True

        bad = client.post("/api/thumbnail/upload", files={"file": ("t.jpg", b"text", "image/jpeg")})
        assert bad.status_code == 400


@pytest.mark.parametrize(
    "error,status",
    [
        (EmptyInputError("x"), 400),
        (RateLimitedError(), 429),
        (EngineNotReadyError("x"), 503),
        (ProviderError("x", status_code=500), 502),
        (ProviderError("x", status_code=429), 429),
        (KeyError("x"), 404),
        (RuntimeError("x"), 500),
    ],
)
def test_error_status(error, status):
    assert error_status(error) == status
