"""Base abstraction for video sources."""

from abc import ABC, abstractmethod

from models.video import VideoResult


class VideoSource(ABC):
    """Abstract base class for stock video sources."""

    @abstractmethod
    async def search_videos(self, phrase: str, per_page: int = 1) -> list[VideoResult]:
        """Search for videos matching the search phrase.

        Args:
            phrase: Search query string
            per_page: Maximum number of results to return

        Returns:
            List of VideoResult objects matching the search criteria
        """

    @abstractmethod
    def get_source_name(self) -> str:
        """Get the name of this video source (e.g. "pexels")."""

    def is_configured(self) -> bool:
        """Check if this source has required configuration (API keys, etc.).

        Default implementation returns True (no config required).
        Override in subclasses that require API keys.
        """
        return True
