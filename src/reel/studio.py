"""Studio session: one script, its speakers, scenes, audio tracks and renders.

A ``Studio`` wires the core components together and holds the session state
explicitly. The CLI and the HTTP API each own one instance.
"""

import logging
from pathlib import Path
from typing import AsyncIterator, Callable, Optional, Union

from models.audio import AudioAsset, TrackId
from models.render import RenderJob, RenderResult
from models.scene import MediaSource, Scene
from models.speaker import Speaker
from reel import speakers as speaker_ops
from reel.acquisition import MediaAcquirer
from reel.audio_tracks import AudioPlayer, AudioTrackManager, NullAudioPlayer
from reel.clock import AsyncioClock, Clock
from reel.narration import NarrationWorkflow, ScriptUpdate
from reel.orchestrator import SceneOrchestrator, SceneProgress
from reel.preview import PreviewSynchronizer
from reel.render_pipeline import RenderPipeline, RenderProgress
from reel.sample_prompts import get_sample
from reel.thumbnail import Thumbnail, ThumbnailMaker, validate_custom_thumbnail
from services.ai_service import AIService
from services.asset_store import AssetStore, get_asset_store
from services.image_generation_service import ImageGenerationService
from services.image_sources.pexels import PexelsImageSource
from services.media_engine import MediaEngine
from services.music_service import MusicService
from services.tts_service import TTSService
from services.video_sources.pexels import PexelsVideoSource
from utils.config import validate_config

logger = logging.getLogger(__name__)


class Studio:
    """Session facade over the orchestrator, audio tracks, preview and render pipeline."""

    def __init__(
        self,
        orchestrator: SceneOrchestrator,
        audio: AudioTrackManager,
        preview: PreviewSynchronizer,
        pipeline: RenderPipeline,
        narration: NarrationWorkflow,
        thumbnails: ThumbnailMaker,
        closeables: tuple = (),
    ):
        self.orchestrator = orchestrator
        self.audio = audio
        self.preview = preview
        self.pipeline = pipeline
        self.narration = narration
        self.thumbnails = thumbnails
        self._closeables = closeables

        self.script = ""
        self.speakers: list[Speaker] = speaker_ops.default_speakers()
        self.source = MediaSource.AI
        self.thumbnail: Optional[Thumbnail] = None
        self.last_render: Optional[RenderResult] = None

    @classmethod
    def from_config(
        cls,
        config: dict,
        clock: Optional[Clock] = None,
        store: Optional[AssetStore] = None,
        player_factory: Callable[[TrackId], AudioPlayer] = lambda _track: NullAudioPlayer(),
    ) -> "Studio":
        """Build a studio from ``load_config()`` output.

        Raises:
            ValueError: The configuration is unusable
        """
        errors = validate_config(config, require=("gemini",))
        if errors:
            raise ValueError("Invalid configuration: " + "; ".join(errors))

        clock = clock or AsyncioClock()
        store = store or get_asset_store(config)

        ai_service = AIService(config["gemini_api_key"], model_name=config["gemini_model"])
        image_service = ImageGenerationService(config["gemini_api_key"], model_name=config["gemini_image_model"])
        tts_service = TTSService(config["gemini_api_key"], model_name=config["gemini_tts_model"])
        music_service = MusicService(api_key=config.get("replicate_api_key"))

        acquirer = MediaAcquirer(
            image_service=image_service,
            photo_source=PexelsImageSource(api_key=config.get("pexels_api_key")),
            video_source=PexelsVideoSource(api_key=config.get("pexels_api_key")),
        )
        orchestrator = SceneOrchestrator(
            ai_service,
            acquirer,
            ai_delay=config["ai_pacing_seconds"],
            stock_delay=config["stock_pacing_seconds"],
        )
        audio = AudioTrackManager(
            clock,
            store,
            tts_service=tts_service,
            music_service=music_service,
            scratch_dir=Path(config["engine_work_dir"]).parent / "narration",
            player_factory=player_factory,
        )
        preview = PreviewSynchronizer(audio, clock, interval=config["preview_interval_seconds"])
        pipeline = RenderPipeline(
            MediaEngine(config["engine_work_dir"]),
            store,
            output_dir=config["local_output_folder"],
            default_scene_seconds=config["default_scene_seconds"],
        )
        return cls(
            orchestrator=orchestrator,
            audio=audio,
            preview=preview,
            pipeline=pipeline,
            narration=NarrationWorkflow(ai_service, audio),
            thumbnails=ThumbnailMaker(ai_service),
            closeables=(image_service, tts_service, music_service),
        )

    async def load(self, engine: bool = True) -> None:
        """Populate audio libraries and, optionally, load the media engine."""
        await self.audio.load_libraries()
        if engine:
            await self.pipeline.engine.load()

    async def close(self) -> None:
        self.preview.stop()
        for service in self._closeables:
            await service.close()

    @property
    def scenes(self) -> tuple[Scene, ...]:
        return self.orchestrator.scenes

    @property
    def engine_loaded(self) -> bool:
        return self.pipeline.engine.loaded

    # ------------------------------------------------------------------
    # Script and speakers
    # ------------------------------------------------------------------

    def set_script(self, script: str) -> list[Speaker]:
        """Replace the script and re-derive speakers from its labels."""
        self.script = script
        self.speakers = speaker_ops.extract_speakers(script, self.speakers)
        return self.speakers

    def _apply(self, update: ScriptUpdate) -> ScriptUpdate:
        self.script = update.script
        self.speakers = list(update.speakers)
        return update

    def load_sample(self, key: str) -> str:
        sample = get_sample(key)
        if sample is None:
            raise KeyError(f"No sample named {key!r}")
        self.set_script(sample.script)
        return sample.script

    async def generate_script(self, topic: str) -> ScriptUpdate:
        return self._apply(await self.narration.generate_script(topic, self.speakers))

    async def enhance_script(self) -> ScriptUpdate:
        return self._apply(await self.narration.enhance_script(self.script, self.speakers))

    def add_speaker(self) -> list[Speaker]:
        self.speakers = speaker_ops.add_speaker(self.speakers)
        return self.speakers

    def remove_speaker(self, speaker_id: int) -> list[Speaker]:
        self.speakers = speaker_ops.remove_speaker(self.speakers, speaker_id)
        return self.speakers

    def update_speaker(self, speaker_id: int, name: Optional[str] = None, voice: Optional[str] = None) -> list[Speaker]:
        self.speakers = speaker_ops.update_speaker(self.speakers, speaker_id, name=name, voice=voice)
        return self.speakers

    # ------------------------------------------------------------------
    # Scenes
    # ------------------------------------------------------------------

    def stream_scenes(self, source: Optional[MediaSource] = None) -> AsyncIterator[SceneProgress]:
        """Generate scenes for the current script, yielding progress."""
        self.preview.stop(reset=True)
        self.thumbnail = None
        if source is not None:
            self.source = source
        return self.orchestrator.stream(self.script, self.source)

    async def generate_scenes(
        self,
        source: Optional[MediaSource] = None,
        on_progress: Optional[Callable[[SceneProgress], None]] = None,
    ) -> tuple[Scene, ...]:
        async for progress in self.stream_scenes(source):
            if on_progress:
                on_progress(progress)
        return self.scenes

    async def regenerate_scene(self, index: int) -> Scene:
        return await self.orchestrator.regenerate_scene(index, self.source)

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    async def generate_narration(self) -> AudioAsset:
        return await self.narration.synthesize(self.script, self.speakers)

    async def upload_narration(self, data: bytes, filename: str) -> ScriptUpdate:
        """Use uploaded narration and replace the script with its enhanced transcript."""
        return self._apply(await self.narration.transcribe_upload(data, filename, self.speakers))

    async def generate_audio(self, track_id: TrackId, prompt: str) -> AudioAsset:
        if track_id is TrackId.NARRATION:
            return await self.generate_narration()
        return await self.audio.generate(track_id, prompt)

    async def upload_audio(self, track_id: TrackId, data: bytes, filename: str) -> AudioAsset:
        return await self.audio.upload(track_id, data, filename)

    def select_audio(self, track_id: TrackId, ref: Union[AudioAsset, str, None]) -> None:
        self.audio.select_from_library(track_id, ref)

    def set_volume(self, track_id: TrackId, value: float) -> None:
        self.preview.set_volume(track_id, value)

    def toggle_track_preview(self, track_id: TrackId) -> bool:
        return self.audio.toggle_preview(track_id)

    # ------------------------------------------------------------------
    # Preview
    # ------------------------------------------------------------------

    def toggle_preview(self) -> bool:
        return self.preview.toggle(self.scenes)

    # ------------------------------------------------------------------
    # Render and thumbnail
    # ------------------------------------------------------------------

    def build_render_job(self) -> RenderJob:
        """Snapshot the current scenes, track sources and volumes into a job."""
        return RenderJob(
            scenes=self.scenes,
            narration_url=self.audio.source_url(TrackId.NARRATION),
            bgm_url=self.audio.source_url(TrackId.BACKGROUND_MUSIC),
            sfx_url=self.audio.source_url(TrackId.SOUND_EFFECTS),
            volumes=self.audio.volumes,
            script_text=self.script,
        )

    async def render(self, on_progress: Optional[Callable[[RenderProgress], None]] = None) -> RenderResult:
        self.preview.stop()
        self.last_render = await self.pipeline.render(self.build_render_job(), on_progress=on_progress)
        return self.last_render

    async def generate_thumbnail(self) -> Thumbnail:
        self.thumbnail = await self.thumbnails.generate(self.scenes, self.script)
        return self.thumbnail

    def upload_thumbnail(self, data: bytes, title: str = "") -> Thumbnail:
        self.thumbnail = Thumbnail(title=title, image=validate_custom_thumbnail(data), custom=True)
        return self.thumbnail
