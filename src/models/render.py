"""Render job models."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from models.audio import TrackId
from models.scene import Scene


@dataclass(frozen=True)
class TrackVolumes:
    """Per-track gain in [0, 1], shared by preview playback and the render mix."""

    narration: float = 1.0
    bgm: float = 0.5
    sfx: float = 0.8

    def __post_init__(self):
        for name in ("narration", "bgm", "sfx"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} volume must be within [0, 1], got {value}")

    def for_track(self, track: TrackId) -> float:
        return {
            TrackId.NARRATION: self.narration,
            TrackId.BACKGROUND_MUSIC: self.bgm,
            TrackId.SOUND_EFFECTS: self.sfx,
        }[track]


@dataclass(frozen=True)
class RenderJob:
    """Everything one render needs. Built from finalized state, consumed once."""

    scenes: tuple[Scene, ...]
    narration_url: Optional[str]
    bgm_url: Optional[str] = None
    sfx_url: Optional[str] = None
    volumes: TrackVolumes = field(default_factory=TrackVolumes)
    script_text: str = ""


@dataclass(frozen=True)
class RenderResult:
    """Outcome of a successful render."""

    local_path: Path
    public_url: str
    size_bytes: int

    @property
    def local_url(self) -> str:
        """Ephemeral handle for immediate download."""
        return self.local_path.resolve().as_uri()

    def to_dict(self) -> dict:
        return {
            "local_path": str(self.local_path),
            "local_url": self.local_url,
            "public_url": self.public_url,
            "size_bytes": self.size_bytes,
        }
