"""Preview synchronizer: a fixed-interval slideshow clock plus the three audio tracks.

This approximates the final render. Every scene is shown for one clock
period regardless of narration pacing, and the audio tracks play from their
own positions without drift correction.
"""

import logging
from enum import Enum
from typing import Callable, Optional, Sequence

from models.audio import TrackId
from models.scene import Scene
from reel.audio_tracks import AudioTrackManager
from reel.clock import Clock, TimerHandle
from reel.errors import PreviewNotReadyError

logger = logging.getLogger(__name__)

PREVIEW_INTERVAL_SECONDS = 5.0


class PreviewState(str, Enum):
    STOPPED = "stopped"
    PLAYING = "playing"


PreviewObserver = Callable[[PreviewState, int], None]


class PreviewSynchronizer:
    """Two-state (stopped/playing) slideshow driver."""

    def __init__(
        self,
        audio: AudioTrackManager,
        clock: Clock,
        interval: float = PREVIEW_INTERVAL_SECONDS,
    ):
        self.audio = audio
        self.clock = clock
        self.interval = interval
        self.state = PreviewState.STOPPED
        self.cursor = 0
        self._scenes: tuple[Scene, ...] = ()
        self._timer: Optional[TimerHandle] = None
        self._observers: list[PreviewObserver] = []
        audio.subscribe(self._on_track_event)

    @property
    def is_playing(self) -> bool:
        return self.state is PreviewState.PLAYING

    @property
    def current_scene(self) -> Optional[Scene]:
        if 0 <= self.cursor < len(self._scenes):
            return self._scenes[self.cursor]
        return None

    def subscribe(self, observer: PreviewObserver) -> Callable[[], None]:
        """Call ``observer(state, cursor)`` on every state or cursor change."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def _notify(self) -> None:
        for observer in list(self._observers):
            try:
                observer(self.state, self.cursor)
            except Exception as e:
                logger.warning(f"Preview observer failed: {e}")

    def play(self, scenes: Sequence[Scene]) -> None:
        """Start the slideshow.

        Raises:
            PreviewNotReadyError: No scenes, or no narration source
        """
        if self.is_playing:
            return
        if not scenes:
            raise PreviewNotReadyError("Generate scenes before previewing.")
        if not self.audio.source_url(TrackId.NARRATION):
            raise PreviewNotReadyError("Add narration before previewing.")

        self._scenes = tuple(scenes)
        if self.cursor >= len(self._scenes):
            self.cursor = 0

        # Track previews and the slideshow are mutually exclusive
        self.audio.pause_all()

        for track_id, track in self.audio.tracks.items():
            if track.source_url:
                track.play(loop=track_id.loops_in_preview)

        self.state = PreviewState.PLAYING
        self._timer = self.clock.schedule_interval(self.interval, self._tick)
        logger.debug(f"Preview playing from scene {self.cursor + 1}/{len(self._scenes)}")
        self._notify()

    def stop(self, reset: bool = False) -> None:
        """Leave Playing: pause all tracks and cancel the clock."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.audio.pause_all()

        was_playing = self.is_playing
        self.state = PreviewState.STOPPED
        if reset:
            self.cursor = 0
            for track in self.audio.tracks.values():
                track.seek(0)
        if was_playing or reset:
            self._notify()

    def toggle(self, scenes: Sequence[Scene]) -> bool:
        """Play if stopped, stop if playing. Returns True if now playing."""
        if self.is_playing:
            self.stop()
            return False
        self.play(scenes)
        return True

    def seek_scene(self, index: int) -> None:
        """Show scene ``index`` without changing play state."""
        if not 0 <= index < max(len(self._scenes), 1):
            raise IndexError(index)
        self.cursor = index
        self._notify()

    def set_volume(self, track_id: TrackId, value: float) -> None:
        """Applies immediately; playback is not interrupted."""
        self.audio.set_volume(track_id, value)

    def _tick(self) -> None:
        if not self.is_playing:
            return
        next_index = self.cursor + 1
        if next_index >= len(self._scenes):
            logger.debug("Preview reached the last scene")
            self.stop(reset=True)
            return
        self.cursor = next_index
        self._notify()

    def _on_track_event(self, event: str, track_id: TrackId) -> None:
        if self.is_playing and event in ("source_changed", "preview_started"):
            logger.debug(f"Stopping preview: {track_id.label} {event.replace('_', ' ')}")
            self.stop()
