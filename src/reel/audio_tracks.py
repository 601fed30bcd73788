"""Audio tracks: narration, background music and sound effects.

Each track is an ``AudioTrack`` handle around a playback backend; play,
pause, seek and volume are its only mutators. The ``AudioTrackManager`` owns
the three handles, their sample libraries and the generate/upload workflows.
"""

import logging
import re
import time
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence, Union

from models.audio import NO_SELECTION, AudioAsset, TrackId
from models.render import TrackVolumes
from models.speaker import Speaker
from reel.clock import Clock
from reel.errors import AudioPlaybackError, EmptyInputError, PreviewNotReadyError
from services.asset_store import AssetStore
from services.music_service import MusicService
from services.tts_service import TTSService

logger = logging.getLogger(__name__)

# Requested lengths for generated library audio
BGM_SECONDS = 60
SFX_SECONDS = 10

DEFAULT_VOLUMES = TrackVolumes()

TrackEvent = Callable[[str, TrackId], None]


class AudioPlayer(Protocol):
    """Playback backend for one track. Failures raise AudioPlaybackError."""

    def load(self, url: Optional[str]) -> None: ...

    def play(self, loop: bool = False) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def set_volume(self, volume: float) -> None: ...


class NullAudioPlayer:
    """Backend that only records what it was told. Used when running headless."""

    def __init__(self):
        self.url: Optional[str] = None
        self.playing = False
        self.loop = False
        self.position = 0.0
        self.volume = 1.0

    def load(self, url: Optional[str]) -> None:
        self.url = url
        self.playing = False
        self.position = 0.0

    def play(self, loop: bool = False) -> None:
        if not self.url:
            raise AudioPlaybackError("No source loaded")
        self.loop = loop
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def seek(self, seconds: float) -> None:
        self.position = seconds

    def set_volume(self, volume: float) -> None:
        self.volume = volume


class AudioTrack:
    """Handle for one audio track.

    Position is tracked against the clock so play resumes where it paused.
    Backend failures are logged and leave the track stopped.
    """

    def __init__(self, track_id: TrackId, player: AudioPlayer, clock: Clock, volume: float):
        self.track_id = track_id
        self._player = player
        self._clock = clock
        self.source_url: Optional[str] = None
        self.volume = volume
        self.is_playing = False
        self._offset = 0.0
        self._started_at: Optional[float] = None
        self._player.set_volume(volume)

    @property
    def position(self) -> float:
        if self.is_playing and self._started_at is not None:
            return self._offset + (self._clock.now() - self._started_at)
        return self._offset

    def set_source(self, url: Optional[str]) -> None:
        """Replace the source and reset playback to stopped at 0."""
        self.pause()
        self.source_url = url or None
        self._offset = 0.0
        try:
            self._player.load(self.source_url)
        except AudioPlaybackError as e:
            logger.warning(f"Could not load {self.track_id.label} source: {e}")

    def play(self, loop: bool = False) -> bool:
        """Start playback from the current position. Returns False if the backend refused."""
        if self.is_playing:
            return True
        if not self.source_url:
            return False
        try:
            self._player.seek(self._offset)
            self._player.play(loop=loop)
        except AudioPlaybackError as e:
            logger.warning(f"{self.track_id.label.capitalize()} playback failed: {e}")
            return False
        self.is_playing = True
        self._started_at = self._clock.now()
        return True

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._offset = self.position
        self.is_playing = False
        self._started_at = None
        try:
            self._player.pause()
        except AudioPlaybackError as e:
            logger.warning(f"{self.track_id.label.capitalize()} pause failed: {e}")

    def seek(self, seconds: float) -> None:
        self._offset = max(0.0, seconds)
        if self.is_playing:
            self._started_at = self._clock.now()
        try:
            self._player.seek(self._offset)
        except AudioPlaybackError as e:
            logger.warning(f"{self.track_id.label.capitalize()} seek failed: {e}")

    def set_volume(self, volume: float) -> None:
        if not 0.0 <= volume <= 1.0:
            raise ValueError(f"Volume must be within [0, 1], got {volume}")
        self.volume = volume
        try:
            self._player.set_volume(volume)
        except AudioPlaybackError as e:
            logger.warning(f"{self.track_id.label.capitalize()} volume change failed: {e}")


def library_filename(prompt: str) -> str:
    """Stored filename for generated audio: the prompt's alphanumerics and spaces, 30 chars."""
    cleaned = re.sub(r"[^a-zA-Z0-9 ]", "", prompt)[:30]
    return f"{cleaned or 'audio'}.wav"


class AudioTrackManager:
    """Owns the narration, background-music and sound-effect tracks."""

    def __init__(
        self,
        clock: Clock,
        store: AssetStore,
        tts_service: Optional[TTSService] = None,
        music_service: Optional[MusicService] = None,
        scratch_dir: Union[str, Path] = ".reelsmith/narration",
        player_factory: Callable[[TrackId], AudioPlayer] = lambda _track: NullAudioPlayer(),
    ):
        self.store = store
        self.tts_service = tts_service
        self.music_service = music_service
        self.scratch_dir = Path(scratch_dir)
        self.tracks = {
            track: AudioTrack(track, player_factory(track), clock, DEFAULT_VOLUMES.for_track(track))
            for track in TrackId
        }
        self.libraries: dict[TrackId, list[AudioAsset]] = {
            TrackId.BACKGROUND_MUSIC: [NO_SELECTION],
            TrackId.SOUND_EFFECTS: [NO_SELECTION],
        }
        self._listeners: list[TrackEvent] = []
        self._previewing: Optional[TrackId] = None

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def subscribe(self, listener: TrackEvent) -> Callable[[], None]:
        """Receive ("preview_started" | "source_changed", track) events."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _emit(self, event: str, track_id: TrackId) -> None:
        for listener in list(self._listeners):
            listener(event, track_id)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def track(self, track_id: TrackId) -> AudioTrack:
        return self.tracks[track_id]

    def source_url(self, track_id: TrackId) -> Optional[str]:
        return self.tracks[track_id].source_url

    @property
    def volumes(self) -> TrackVolumes:
        return TrackVolumes(
            narration=self.tracks[TrackId.NARRATION].volume,
            bgm=self.tracks[TrackId.BACKGROUND_MUSIC].volume,
            sfx=self.tracks[TrackId.SOUND_EFFECTS].volume,
        )

    def library(self, track_id: TrackId) -> list[AudioAsset]:
        if track_id not in self.libraries:
            raise ValueError(f"{track_id.label.capitalize()} has no sample library")
        return list(self.libraries[track_id])

    async def load_libraries(self) -> None:
        """Populate the music and sound-effect libraries from the asset store."""
        for track_id in self.libraries:
            assets = await self.store.list(track_id.value)
            self.libraries[track_id] = [NO_SELECTION, *assets]
            logger.info(f"Loaded {len(assets)} {track_id.label} samples")

    # ------------------------------------------------------------------
    # Source changes
    # ------------------------------------------------------------------

    def _set_source(self, track_id: TrackId, url: Optional[str]) -> None:
        self.tracks[track_id].set_source(url)
        self._emit("source_changed", track_id)

    def _prepend(self, track_id: TrackId, asset: AudioAsset) -> None:
        existing = [a for a in self.libraries[track_id] if not a.is_placeholder]
        self.libraries[track_id] = [asset, *existing]

    def select_from_library(self, track_id: TrackId, ref: Union[AudioAsset, str, None]) -> None:
        """Select a library entry (or a URL) as the track source. The placeholder clears it."""
        if isinstance(ref, AudioAsset):
            url = None if ref.is_placeholder else ref.path
        else:
            url = ref or None
        self._set_source(track_id, url)

    def set_narration_url(self, url: Optional[str]) -> None:
        self._set_source(TrackId.NARRATION, url)

    def _write_scratch(self, data: bytes, filename: str) -> str:
        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        path = self.scratch_dir / f"{int(time.time() * 1000)}_{Path(filename).name}"
        path.write_bytes(data)
        return path.resolve().as_uri()

    async def generate(
        self,
        track_id: TrackId,
        prompt: str,
        speakers: Sequence[Speaker] = (),
    ) -> AudioAsset:
        """Generate audio for a track and make it the track's source.

        Narration is synthesized from ``prompt`` (the script) with the given
        speakers. Music and sound effects are generated from ``prompt``,
        stored, and prepended to the track's library.
        """
        if not prompt or not prompt.strip():
            raise EmptyInputError(f"A prompt is required to generate {track_id.label}.")

        if track_id is TrackId.NARRATION:
            if self.tts_service is None:
                raise EmptyInputError("Speech synthesis is not configured")
            logger.info("Generating AI narration")
            audio = await self.tts_service.synthesize(prompt, speakers)
            asset = AudioAsset("narration.wav", self._write_scratch(audio, "narration.wav"))
            self._set_source(track_id, asset.path)
            return asset

        if self.music_service is None:
            raise EmptyInputError("Music generation is not configured")

        logger.info(f"AI is generating {track_id.label}: {prompt!r}")
        seconds = BGM_SECONDS if track_id is TrackId.BACKGROUND_MUSIC else SFX_SECONDS
        audio = await self.music_service.synthesize(prompt, output_seconds=seconds)

        filename = library_filename(prompt)
        url = await self.store.upload(
            audio, track_id.value, filename, make_public=True, metadata={"prompt": prompt}
        )
        asset = AudioAsset(filename, url)
        self._prepend(track_id, asset)
        self._set_source(track_id, url)
        return asset

    async def upload(self, track_id: TrackId, data: bytes, filename: str) -> AudioAsset:
        """Use uploaded audio bytes as a track's source."""
        if not data:
            raise EmptyInputError(f"Uploaded {track_id.label} file is empty")

        if track_id is TrackId.NARRATION:
            asset = AudioAsset(Path(filename).name, self._write_scratch(data, filename))
            self._set_source(track_id, asset.path)
            return asset

        logger.info(f"Uploading {filename}")
        url = await self.store.upload(data, track_id.value, filename, make_public=True)
        asset = AudioAsset(Path(filename).name, url)
        self._prepend(track_id, asset)
        self._set_source(track_id, url)
        return asset

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def set_volume(self, track_id: TrackId, value: float) -> None:
        """Change a track's volume; applies immediately, also while playing."""
        self.tracks[track_id].set_volume(value)

    def toggle_preview(self, track_id: TrackId) -> bool:
        """Start or stop previewing one track. Returns True if it is now playing.

        Starting a track preview stops every other track and the slideshow.

        Raises:
            PreviewNotReadyError: The track has no source
        """
        current = self.tracks[track_id]
        if self._previewing is track_id and current.is_playing:
            current.pause()
            self._previewing = None
            return False

        if not current.source_url:
            raise PreviewNotReadyError(f"No {track_id.label} selected to preview.")

        self._emit("preview_started", track_id)
        for other_id, other in self.tracks.items():
            if other_id is not track_id:
                other.pause()

        current.seek(0)
        playing = current.play(loop=track_id.loops_in_preview)
        self._previewing = track_id if playing else None
        return playing

    def pause_all(self) -> None:
        self._previewing = None
        for track in self.tracks.values():
            track.pause()
