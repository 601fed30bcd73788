# Data models for reelsmith
from .scene import DEFAULT_SCENE_SECONDS, MediaKind, MediaSource, Scene
from .audio import NO_SELECTION, AudioAsset, TrackId
from .speaker import Speaker
from .render import RenderJob, RenderResult, TrackVolumes
from .image import ImageResult
from .video import VideoResult
from .image_generation import (
    GeneratedImage,
    ImageGenerationRequest,
    ImageGenerationResult,
)

__all__ = [
    # Scenes
    "DEFAULT_SCENE_SECONDS",
    "MediaKind",
    "MediaSource",
    "Scene",
    # Audio
    "NO_SELECTION",
    "AudioAsset",
    "TrackId",
    "Speaker",
    # Render
    "RenderJob",
    "RenderResult",
    "TrackVolumes",
    # Provider results
    "ImageResult",
    "VideoResult",
    "GeneratedImage",
    "ImageGenerationRequest",
    "ImageGenerationResult",
]
