"""Scene data models for the slideshow pipeline."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

# Timeline dwell time for images and for videos that report no duration
DEFAULT_SCENE_SECONDS = 5.0


class MediaKind(str, Enum):
    """Kind of visual asset backing a scene."""

    IMAGE = "image"
    VIDEO = "video"


class MediaSource(str, Enum):
    """Where scene visuals come from. Exactly one source is used per run."""

    AI = "ai"
    PEXELS_PHOTO = "pexels_photo"
    PEXELS_VIDEO = "pexels_video"

    @property
    def is_generative(self) -> bool:
        """True for AI image generation, False for stock search."""
        return self is MediaSource.AI


@dataclass(frozen=True)
class Scene:
    """One visual scene in the slideshow.

    Scenes are immutable once appended to a sequence; regenerating a scene
    replaces it rather than mutating it.
    """

    kind: MediaKind
    source_url: str
    thumbnail_url: Optional[str] = None
    duration_seconds: Optional[float] = None  # Source-reported, videos only
    prompt: Optional[str] = None

    @property
    def preview_url(self) -> str:
        """Best URL for a still preview of this scene."""
        return self.thumbnail_url or self.source_url

    def timeline_duration(self, default: float = DEFAULT_SCENE_SECONDS) -> float:
        """Seconds this scene occupies in the rendered video."""
        if self.kind == MediaKind.VIDEO and self.duration_seconds:
            return float(self.duration_seconds)
        return default

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "kind": self.kind.value,
            "source_url": self.source_url,
            "thumbnail_url": self.thumbnail_url,
            "duration_seconds": self.duration_seconds,
            "prompt": self.prompt,
        }
