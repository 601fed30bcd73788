"""Base abstraction for image sources."""

from abc import ABC, abstractmethod

from models.image import ImageResult


class ImageSource(ABC):
    """Abstract base class for stock image sources."""

    @abstractmethod
    async def search_images(self, phrase: str, per_page: int = 1) -> list[ImageResult]:
        """Search for images matching the search phrase.

        Args:
            phrase: Search query string
            per_page: Maximum number of results to return (default 1 for efficiency)

        Returns:
            List of ImageResult objects matching the search criteria
        """

    @abstractmethod
    def get_source_name(self) -> str:
        """Get the name of this image source (e.g. "pexels")."""

    def is_configured(self) -> bool:
        """Check if this source has required configuration (API keys, etc.).

        Default implementation returns True (no config required).
        Override in subclasses that require API keys.
        """
        return True
