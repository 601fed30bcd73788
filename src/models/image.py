"""Data models for stock image search."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ImageResult:
    """Represents an image search result from a stock photo source."""

    image_id: str
    title: str
    url: str  # Page URL where image is hosted
    download_url: str  # Direct download URL for the image
    width: int
    height: int
    source: str  # pexels, ...
    description: Optional[str] = None
    license: Optional[str] = None
    photographer: Optional[str] = None  # Credit for the image
    thumbnail_url: Optional[str] = None

    @property
    def aspect_ratio(self) -> float:
        """Calculate aspect ratio (width/height)."""
        if self.height == 0:
            return 0.0
        return self.width / self.height

    @property
    def is_landscape(self) -> bool:
        """Check if image is landscape orientation."""
        return self.aspect_ratio > 1.0
