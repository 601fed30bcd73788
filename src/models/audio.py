"""Audio track and audio library models."""

from dataclasses import dataclass
from enum import Enum


class TrackId(str, Enum):
    """The three independent audio tracks of a slideshow."""

    NARRATION = "narration"
    BACKGROUND_MUSIC = "bgm"
    SOUND_EFFECTS = "sfx"

    @property
    def loops_in_preview(self) -> bool:
        """Background music and sound effects loop while previewing."""
        return self is not TrackId.NARRATION

    @property
    def label(self) -> str:
        return {
            TrackId.NARRATION: "narration",
            TrackId.BACKGROUND_MUSIC: "music",
            TrackId.SOUND_EFFECTS: "sound effect",
        }[self]


@dataclass(frozen=True)
class AudioAsset:
    """A named, reselectable audio source (library entry)."""

    name: str
    path: str  # URL of the audio; empty for the "no selection" entry

    @property
    def is_placeholder(self) -> bool:
        return not self.path

    def to_dict(self) -> dict:
        return {"name": self.name, "path": self.path}


NO_SELECTION = AudioAsset(name="None", path="")
