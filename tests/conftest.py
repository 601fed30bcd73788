"""Shared pytest fixtures for reelsmith tests."""

import sys
import tempfile
from pathlib import Path
from typing import Callable, Dict, Generator, Optional
from unittest.mock import Mock

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from models.audio import AudioAsset  # noqa: E402
from models.scene import MediaKind, Scene  # noqa: E402
from services.media_engine import MediaEngineError  # noqa: E402


class FakeEngine:
    """In-memory stand-in for MediaEngine that records commands instead of running FFmpeg."""

    def __init__(self, loaded: bool = True, output: object = b"\x00\x00\x00\x18ftypmp42"):
        self.loaded = loaded
        self.output = output
        self.files: dict[str, object] = {}
        self.commands: list[list[str]] = []
        self.expected_durations: list[Optional[float]] = []
        self.fail_on: Optional[int] = None  # 0-based command index that fails
        self.fail_message = "Invalid data found when processing input"
        self.reset_count = 0
        self._progress_callbacks: list = []

    def on_progress(self, callback):
        self._progress_callbacks.append(callback)
        return lambda: self._progress_callbacks.remove(callback)

    def write_file(self, name, data):
        self.files[name] = data

    def read_file(self, name, encoding=None):
        if name == "output.mp4":
            return self.output
        return self.files[name]

    async def load(self):
        self.loaded = True

    def reset(self):
        self.reset_count += 1
        self.files.clear()

    async def exec(self, args, expected_duration=None):
        index = len(self.commands)
        self.commands.append(list(args))
        self.expected_durations.append(expected_duration)
        if self.fail_on == index:
            raise MediaEngineError(self.fail_message)
        for callback in list(self._progress_callbacks):
            callback(0.5)
            callback(1.0)


class FakeStore:
    """AssetStore double keeping uploads in memory."""

    def __init__(self, listings: Optional[Dict[str, list]] = None):
        self.uploads: list[dict] = []
        self.listings = listings or {}

    async def upload(self, data, kind, filename, make_public=True, metadata=None):
        url = f"https://cdn.example.com/{kind}/{len(self.uploads)}_{filename}"
        self.uploads.append({
            "data": data,
            "kind": kind,
            "filename": filename,
            "make_public": make_public,
            "metadata": metadata,
            "url": url,
        })
        return url

    async def list(self, kind):
        return list(self.listings.get(kind, []))


class _ManualTimer:
    def __init__(self, period: float, callback: Callable[[], None], due: float):
        self.period = period
        self.callback = callback
        self.due = due
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ManualClock:
    """Clock that only advances when ``advance`` is called."""

    def __init__(self, start: float = 0.0):
        self._now = start
        self._timers: list[_ManualTimer] = []

    def now(self) -> float:
        return self._now

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def schedule_interval(self, period: float, callback: Callable[[], None]) -> _ManualTimer:
        if period <= 0:
            raise ValueError("Interval period must be positive")
        timer = _ManualTimer(period, callback, self._now + period)
        self._timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in time order."""
        target = self._now + seconds
        while True:
            self._timers = [t for t in self._timers if not t.cancelled]
            due = [t for t in self._timers if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._now = timer.due
            timer.due += timer.period
            timer.callback()
        self._now = target


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config(temp_dir) -> Dict:
    """Configuration as returned by load_config(), rooted in a temp directory."""
    return {
        "gemini_api_key": "test_gemini_key",
        "gemini_model": "gemini-2.5-flash",
        "gemini_image_model": "gemini-2.5-flash-image",
        "gemini_tts_model": "gemini-2.5-flash-preview-tts",
        "pexels_api_key": "test_pexels_key",
        "replicate_api_key": "test_replicate_key",
        "r2_account_id": None,
        "r2_access_key_id": None,
        "r2_secret_access_key": None,
        "r2_bucket_name": "reelsmith-assets",
        "r2_public_url": None,
        "local_asset_dir": str(temp_dir / "assets"),
        "engine_work_dir": str(temp_dir / ".reelsmith" / "engine"),
        "local_output_folder": str(temp_dir / "output"),
        "ai_pacing_seconds": 12.0,
        "stock_pacing_seconds": 3.5,
        "preview_interval_seconds": 5.0,
        "default_scene_seconds": 5.0,
        "log_level": "INFO",
    }


@pytest.fixture
def image_scene() -> Scene:
    return Scene(
        kind=MediaKind.IMAGE,
        source_url="https://images.example.com/harbor.png",
        prompt="A foggy harbor at dawn",
    )


@pytest.fixture
def video_scene() -> Scene:
    return Scene(
        kind=MediaKind.VIDEO,
        source_url="https://videos.example.com/waves.mp4",
        thumbnail_url="https://videos.example.com/waves.jpg",
        duration_seconds=8,
        prompt="Waves breaking on rocks",
    )


@pytest.fixture
def sample_scenes(image_scene, video_scene) -> tuple:
    second_image = Scene(
        kind=MediaKind.IMAGE,
        source_url="https://images.example.com/lighthouse.png",
        prompt="A lighthouse beam through fog",
    )
    return (image_scene, video_scene, second_image)


@pytest.fixture
def manual_clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore(listings={
        "bgm": [AudioAsset("calm piano.wav", "https://cdn.example.com/bgm/calm piano.wav")],
        "sfx": [],
    })


@pytest.fixture
def mock_ai_service():
    """Mock AIService for testing."""
    mock = Mock()
    mock.generate_prompts_from_script = Mock(return_value=["prompt one", "prompt two", "prompt three"])
    mock.generate_full_script = Mock(return_value="Host: Hello there.\nGuest: Hi!")
    mock.enhance_script = Mock(side_effect=lambda script, *args: f"{script} [warmly]")
    mock.generate_video_title = Mock(return_value="Harbor Secrets")
    mock.transcribe_audio = Mock(return_value="Narrator: The fog rolled in.")
    return mock


@pytest.fixture
def mock_acquirer():
    """MediaAcquirer double returning one image scene per prompt."""
    from unittest.mock import AsyncMock

    mock = Mock()
    mock.acquire = AsyncMock(
        side_effect=lambda prompt, source: Scene(
            kind=MediaKind.IMAGE,
            source_url=f"https://images.example.com/{prompt.replace(' ', '_')}.png",
            prompt=prompt,
        )
    )
    return mock


@pytest.fixture
def studio(mock_ai_service, mock_acquirer, fake_engine, fake_store, manual_clock, temp_dir):
    """Studio wired to in-memory fakes: no network, no FFmpeg, no pacing delays."""
    from unittest.mock import AsyncMock

    from reel.audio_tracks import AudioTrackManager
    from reel.narration import NarrationWorkflow
    from reel.orchestrator import SceneOrchestrator
    from reel.preview import PreviewSynchronizer
    from reel.render_pipeline import RenderPipeline
    from reel.studio import Studio
    from reel.thumbnail import ThumbnailMaker

    async def no_sleep(seconds):
        return None

    async def fetch(url):
        return url.encode()

    tts = Mock()
    tts.synthesize = AsyncMock(return_value=b"RIFF\x24\x00\x00\x00WAVEfmt ")
    music = Mock()
    music.synthesize = AsyncMock(return_value=b"RIFF\x24\x00\x00\x00WAVEbgm ")

    audio = AudioTrackManager(
        manual_clock,
        fake_store,
        tts_service=tts,
        music_service=music,
        scratch_dir=temp_dir / "narration",
    )
    return Studio(
        orchestrator=SceneOrchestrator(mock_ai_service, mock_acquirer, sleep=no_sleep),
        audio=audio,
        preview=PreviewSynchronizer(audio, manual_clock),
        pipeline=RenderPipeline(fake_engine, fake_store, output_dir=temp_dir / "output", fetch=fetch),
        narration=NarrationWorkflow(mock_ai_service, audio),
        thumbnails=ThumbnailMaker(mock_ai_service, fetch=fetch),
    )
