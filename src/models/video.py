"""Video-related data models."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class VideoResult:
    """Represents a video search result from a stock footage source."""

    video_id: str
    title: str
    url: str
    duration: int  # in seconds
    description: Optional[str] = None
    source: str = "pexels"
    license: Optional[str] = None
    # Direct download URL for the selected rendition
    download_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    quality: Optional[str] = None  # hd, sd, ...
