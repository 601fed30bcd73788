"""Render pipeline: scenes + audio tracks -> one muxed MP4.

Stages, each reported with its own progress label:
1. materialize - download narration and every scene into the engine's working directory
2. concat      - join the visuals into one video stream (concat demuxer)
3. mix         - gain-adjust and mix narration, music and sound effects
4. mux         - encode video + mixed audio into output.mp4
5. finalize    - read the output back, save it locally, persist it to the asset store

Any stage failure aborts the job. The working directory is shared and reset
at the start of every render, so only one render may run at a time.
"""

import asyncio
import base64
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence, Union
from urllib.parse import unquote, urlparse

import httpx

from models.render import RenderJob, RenderResult, TrackVolumes
from models.scene import DEFAULT_SCENE_SECONDS, MediaKind, Scene
from reel.errors import (
    EmptyInputError,
    EngineNotReadyError,
    ReelError,
    StageFailureError,
    UnsupportedOutputTypeError,
)
from services.asset_store import AssetStore
from services.media_engine import MediaEngine
from utils.progress import ProcessingStatus

logger = logging.getLogger(__name__)

# Working file names (flat engine namespace)
NARRATION_FILE = "narration.mp3"
BGM_FILE = "bgm.mp3"
SFX_FILE = "sfx.mp3"
CONCAT_LIST_FILE = "concat.txt"
TEMP_VIDEO_FILE = "temp_video.mp4"
MIXED_AUDIO_FILE = "mixed_audio.wav"
OUTPUT_FILE = "output.mp4"

# Output geometry and encoding
OUTPUT_WIDTH = 1920
OUTPUT_HEIGHT = 1080
FINAL_PRESET = "fast"
FINAL_CRF = 23
AUDIO_CODEC = "aac"
AUDIO_BITRATE = "192k"

# Intermediate concat encode: fast and near lossless, re-encoded by the mux
INTERMEDIATE_PRESET = "ultrafast"
INTERMEDIATE_CRF = 18

NORMALIZE_FILTER = (
    f"scale={OUTPUT_WIDTH}:{OUTPUT_HEIGHT}:force_original_aspect_ratio=decrease,"
    f"pad={OUTPUT_WIDTH}:{OUTPUT_HEIGHT}:(ow-iw)/2:(oh-ih)/2:black,setsar=1"
)

STAGES = (
    ("materialize", "materialize inputs"),
    ("concat", "concatenate visuals"),
    ("mix", "mix audio"),
    ("mux", "mux"),
    ("finalize", "finalize"),
)
STAGE_NAMES = dict(STAGES)

Fetcher = Callable[[str], Awaitable[bytes]]


@dataclass(frozen=True)
class RenderProgress:
    stage: str
    label: str
    percent: float

    def to_dict(self) -> dict:
        return {"stage": self.stage, "label": self.label, "percent": round(self.percent, 1)}


# ----------------------------------------------------------------------
# Pure command builders
# ----------------------------------------------------------------------


def scene_filename(index: int, scene: Scene) -> str:
    extension = "png" if scene.kind == MediaKind.IMAGE else "mp4"
    return f"input_{index}.{extension}"


def build_concat_manifest(entries: Sequence[tuple[str, float]]) -> str:
    """Concat demuxer list with a duration per file.

    The last file is listed twice; the demuxer ignores the final duration otherwise.
    """
    lines = []
    for filename, duration in entries:
        lines.append(f"file '{filename}'")
        lines.append(f"duration {duration:g}")
    if entries:
        lines.append(f"file '{entries[-1][0]}'")
    return "\n".join(lines) + "\n"


def build_concat_args() -> list[str]:
    return [
        "-f", "concat",
        "-safe", "0",
        "-i", CONCAT_LIST_FILE,
        "-vf", NORMALIZE_FILTER,
        "-fps_mode", "vfr",
        "-pix_fmt", "yuv420p",
        "-an",
        "-c:v", "libx264",
        "-preset", INTERMEDIATE_PRESET,
        "-crf", str(INTERMEDIATE_CRF),
        TEMP_VIDEO_FILE,
    ]


def _gain(value: float) -> str:
    return f"{float(value)}"


def build_audio_mix_graph(has_bgm: bool, has_sfx: bool, volumes: TrackVolumes) -> str:
    """Filter graph producing the ``[a]`` bus.

    Narration is always input 0; music and sound effects take the next input
    indexes in that order when present. With narration alone the graph is a
    single gain filter. Otherwise every track gets its own gain filter and
    they are mixed into a bus as long as the longest input. ``normalize=0``
    keeps amix from rescaling, so the gains match preview volumes.
    """
    if not has_bgm and not has_sfx:
        return f"[0:a]volume={_gain(volumes.narration)}[a]"

    filters = [f"[0:a]volume={_gain(volumes.narration)}[nar]"]
    labels = ["[nar]"]
    index = 1
    if has_bgm:
        filters.append(f"[{index}:a]volume={_gain(volumes.bgm)}[bgm]")
        labels.append("[bgm]")
        index += 1
    if has_sfx:
        filters.append(f"[{index}:a]volume={_gain(volumes.sfx)}[sfx]")
        labels.append("[sfx]")

    mix = f"{''.join(labels)}amix=inputs={len(labels)}:duration=longest:normalize=0[a]"
    return ";".join(filters + [mix])


def build_mix_args(has_bgm: bool, has_sfx: bool, volumes: TrackVolumes) -> list[str]:
    inputs = ["-i", NARRATION_FILE]
    if has_bgm:
        inputs += ["-i", BGM_FILE]
    if has_sfx:
        inputs += ["-i", SFX_FILE]
    return [
        *inputs,
        "-filter_complex", build_audio_mix_graph(has_bgm, has_sfx, volumes),
        "-map", "[a]",
        MIXED_AUDIO_FILE,
    ]


def build_mux_args() -> list[str]:
    return [
        "-i", TEMP_VIDEO_FILE,
        "-i", MIXED_AUDIO_FILE,
        "-map", "0:v:0",
        "-map", "1:a:0",
        "-c:v", "libx264",
        "-preset", FINAL_PRESET,
        "-crf", str(FINAL_CRF),
        "-pix_fmt", "yuv420p",
        "-c:a", AUDIO_CODEC,
        "-b:a", AUDIO_BITRATE,
        "-movflags", "+faststart",
        OUTPUT_FILE,
    ]


def output_bytes(data: object) -> bytes:
    """Normalize what the engine returned for the output file.

    Raises:
        UnsupportedOutputTypeError: Neither bytes-like nor text
    """
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    raise UnsupportedOutputTypeError("Media engine returned unexpected data type for video.")


# ----------------------------------------------------------------------
# Fetching
# ----------------------------------------------------------------------


async def fetch_bytes(url: str) -> bytes:
    """Read an asset from an http(s), data: or file: URL, or a local path."""
    if url.startswith("data:"):
        header, _, payload = url.partition(",")
        if ";base64" in header:
            return base64.b64decode(payload)
        return unquote(payload).encode("utf-8")

    parsed = urlparse(url)
    if parsed.scheme in ("http", "https"):
        async with httpx.AsyncClient(timeout=120.0, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.content

    path = Path(unquote(parsed.path)) if parsed.scheme == "file" else Path(url)
    return await asyncio.to_thread(path.read_bytes)


# ----------------------------------------------------------------------
# Pipeline
# ----------------------------------------------------------------------


class RenderPipeline:
    """Runs one render job at a time through the media engine."""

    def __init__(
        self,
        engine: MediaEngine,
        store: AssetStore,
        output_dir: Union[str, Path] = "output",
        fetch: Fetcher = fetch_bytes,
        default_scene_seconds: float = DEFAULT_SCENE_SECONDS,
    ):
        self.engine = engine
        self.store = store
        self.output_dir = Path(output_dir)
        self._fetch = fetch
        self.default_scene_seconds = default_scene_seconds

    async def render(
        self,
        job: RenderJob,
        on_progress: Optional[Callable[[RenderProgress], None]] = None,
    ) -> RenderResult:
        """Render ``job`` to an MP4.

        Raises:
            EngineNotReadyError: The engine has not been loaded
            EmptyInputError: No scenes or no narration
            StageFailureError: A stage failed; message carries the stage and engine message
            UnsupportedOutputTypeError: The engine returned an unexpected payload
        """
        if not self.engine.loaded:
            raise EngineNotReadyError("Media engine is not ready yet. Please wait for it to load.")
        if not job.scenes:
            raise EmptyInputError("At least one scene is required to render a video.")
        if not job.narration_url:
            raise EmptyInputError("Narration audio is required to render a video.")

        label = {"value": "Preparing render..."}

        def report(status: ProcessingStatus) -> None:
            if on_progress and status.current_stage:
                on_progress(RenderProgress(status.current_stage, label["value"], status.overall_progress))

        status = ProcessingStatus(label="render", update_callback=report)
        for stage, _ in STAGES:
            status.register_stage(stage, total_items=len(job.scenes) + 1 if stage == "materialize" else 1)

        def set_label(text: str) -> None:
            label["value"] = text
            logger.info(text)

        stage = "materialize"
        try:
            status.start_stage(stage)
            self.engine.reset()
            durations = await self._materialize(job, status, set_label)
            status.complete_stage(stage)

            stage = "concat"
            set_label("Compositing scenes...")
            status.start_stage(stage)
            await self._exec(stage, build_concat_args(), sum(durations), status)
            status.complete_stage(stage)

            stage = "mix"
            set_label("Mixing audio tracks...")
            status.start_stage(stage)
            has_bgm = await self._materialize_optional(job.bgm_url, BGM_FILE)
            has_sfx = await self._materialize_optional(job.sfx_url, SFX_FILE)
            await self._exec(stage, build_mix_args(has_bgm, has_sfx, job.volumes), None, status)
            status.complete_stage(stage)

            stage = "mux"
            set_label("Encoding video...")
            status.start_stage(stage)
            await self._exec(stage, build_mux_args(), sum(durations), status)
            status.complete_stage(stage)

            stage = "finalize"
            set_label("Finalizing video...")
            status.start_stage(stage)
            result = await self._finalize(job)
            status.complete_stage(stage)

        except ReelError as e:
            status.fail_stage(stage, str(e))
            raise
        except Exception as e:
            status.fail_stage(stage, str(e))
            raise StageFailureError(STAGE_NAMES[stage], str(e)) from e

        set_label("Video render complete!")
        status.complete_processing()
        return result

    async def _materialize(
        self,
        job: RenderJob,
        status: ProcessingStatus,
        set_label: Callable[[str], None],
    ) -> list[float]:
        set_label("Downloading narration...")
        self.engine.write_file(NARRATION_FILE, await self._fetch(job.narration_url))
        status.update_stage("materialize", increment=1)

        durations = []
        entries = []
        total = len(job.scenes)
        for index, scene in enumerate(job.scenes):
            set_label(f"Downloading scene {index + 1}/{total}...")
            filename = scene_filename(index, scene)
            self.engine.write_file(filename, await self._fetch(scene.source_url))
            duration = scene.timeline_duration(self.default_scene_seconds)
            entries.append((filename, duration))
            durations.append(duration)
            status.update_stage("materialize", increment=1)

        self.engine.write_file(CONCAT_LIST_FILE, build_concat_manifest(entries))
        return durations

    async def _materialize_optional(self, url: Optional[str], filename: str) -> bool:
        if not url:
            return False
        self.engine.write_file(filename, await self._fetch(url))
        return True

    async def _exec(
        self,
        stage: str,
        args: list[str],
        expected_duration: Optional[float],
        status: ProcessingStatus,
    ) -> None:
        unsubscribe = self.engine.on_progress(
            lambda ratio: status.update_stage(stage, completed=ratio)
        )
        try:
            await self.engine.exec(args, expected_duration=expected_duration)
        finally:
            unsubscribe()

    async def _finalize(self, job: RenderJob) -> RenderResult:
        data = output_bytes(self.engine.read_file(OUTPUT_FILE))

        self.output_dir.mkdir(parents=True, exist_ok=True)
        local_path = self.output_dir / f"reel_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}.mp4"
        local_path.write_bytes(data)
        logger.info(f"Saved render to {local_path} ({len(data) / (1024 * 1024):.1f} MB)")

        metadata = {"script": job.script_text} if job.script_text else None
        public_url = await self.store.upload(
            data, "video", OUTPUT_FILE, make_public=True, metadata=metadata
        )
        return RenderResult(local_path=local_path, public_url=public_url, size_bytes=len(data))
