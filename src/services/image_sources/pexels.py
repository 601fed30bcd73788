"""Pexels image source for professional CC0-licensed stock photos."""

import logging
import os
from typing import Optional

import aiohttp

from models.image import ImageResult
from services.image_sources.base import ImageSource
from services.provider_errors import (
    ProviderError,
    ProviderNetworkError,
    ProviderRateLimitError,
    parse_retry_after,
)

logger = logging.getLogger(__name__)


class PexelsImageSource(ImageSource):
    """Pexels image source for CC0-licensed stock photos.

    API Documentation: https://www.pexels.com/api/documentation/

    Rate limits: 200 requests per hour, 20,000 requests per month
    """

    BASE_URL = "https://api.pexels.com/v1/search"

    def __init__(self, api_key: Optional[str] = None, max_results: int = 10):
        """Initialize Pexels image source.

        Args:
            api_key: Pexels API key (defaults to PEXELS_API_KEY env var)
            max_results: Maximum number of search results to return (max 80 per page)
        """
        self.max_results = min(max_results, 80)  # Pexels API limit
        self.api_key = api_key or os.getenv("PEXELS_API_KEY", "")

        if not self.api_key:
            logger.warning(
                "[Pexels Images] No API key configured. Set PEXELS_API_KEY to enable Pexels search."
            )

    def get_source_name(self) -> str:
        """Get the name of this image source."""
        return "pexels"

    def is_configured(self) -> bool:
        """Check if this source has required configuration."""
        return bool(self.api_key)

    async def search_images(self, phrase: str, per_page: int = 1) -> list[ImageResult]:
        """Search Pexels for landscape photos matching the search phrase.

        Args:
            phrase: Search query string
            per_page: Maximum number of results (default 1 for efficiency)

        Returns:
            List of ImageResult objects, empty when nothing matched

        Raises:
            ProviderRateLimitError: On HTTP 429
            ProviderError: On any other non-200 response or a missing API key
        """
        if not phrase.strip():
            return []

        if not self.api_key:
            raise ProviderError("Pexels API key is not configured.")

        logger.debug(f"[Pexels Images] Searching for: '{phrase}'")

        headers = {"Authorization": self.api_key}
        params = {
            "query": phrase,
            "per_page": min(per_page, self.max_results),
            "orientation": "landscape",
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    self.BASE_URL,
                    headers=headers,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=30),
                ) as response:
                    if response.status == 429:
                        logger.warning("[Pexels Images] Rate limit exceeded")
                        raise ProviderRateLimitError(
                            "Pexels rate limit exceeded (429)",
                            status_code=429,
                            retry_after=parse_retry_after(response.headers.get("Retry-After")),
                        )

                    if response.status != 200:
                        body = await response.text()
                        logger.error(f"[Pexels Images] API error {response.status}: {body[:200]}")
                        raise ProviderError(
                            f"Pexels API error: {response.status} {response.reason}",
                            status_code=response.status,
                        )

                    data = await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"[Pexels Images] Network error: {e}")
            raise ProviderNetworkError(f"Pexels network error: {e}") from e

        results = []
        for photo in data.get("photos", []):
            result = self._parse_photo(photo)
            if result:
                results.append(result)

        logger.debug(f"[Pexels Images] Found {len(results)} images")
        return results

    def _parse_photo(self, photo: dict) -> Optional[ImageResult]:
        """Parse Pexels API photo response into ImageResult (None if unusable)."""
        photo_id = str(photo.get("id", ""))
        src = photo.get("src") or {}
        if not photo_id or not src:
            return None

        download_url = src.get("large2x") or src.get("large") or src.get("original", "")
        if not download_url:
            return None

        alt_text = photo.get("alt", "")

        return ImageResult(
            image_id=f"pexels_{photo_id}",
            title=alt_text[:100] if alt_text else f"Pexels Photo {photo_id}",
            url=photo.get("url", f"https://www.pexels.com/photo/{photo_id}/"),
            download_url=download_url,
            width=photo.get("width", 0),
            height=photo.get("height", 0),
            source="pexels",
            description=alt_text or None,
            license="Pexels License (CC0-like)",
            photographer=photo.get("photographer", "Unknown"),
            thumbnail_url=src.get("medium") or src.get("small"),
        )
