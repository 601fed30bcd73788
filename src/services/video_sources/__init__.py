"""Video sources package for stock footage acquisition."""

from services.video_sources.base import VideoSource
from services.video_sources.pexels import PexelsVideoSource

__all__ = ["VideoSource", "PexelsVideoSource"]
