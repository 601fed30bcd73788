"""Image sources package for stock photo acquisition."""

from services.image_sources.base import ImageSource
from services.image_sources.pexels import PexelsImageSource

__all__ = [
    "ImageSource",
    "PexelsImageSource",
]
