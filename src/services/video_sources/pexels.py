"""Pexels video source for professional CC0-licensed stock footage."""

import logging
import os
from typing import Optional

import aiohttp

from models.video import VideoResult
from services.provider_errors import (
    ProviderError,
    ProviderNetworkError,
    ProviderRateLimitError,
    parse_retry_after,
)
from services.video_sources.base import VideoSource

logger = logging.getLogger(__name__)


class PexelsVideoSource(VideoSource):
    """Pexels video source for CC0-licensed stock footage.

    API Documentation: https://www.pexels.com/api/documentation/
    """

    BASE_URL = "https://api.pexels.com/videos/search"

    def __init__(self, api_key: Optional[str] = None, max_results: int = 10):
        """Initialize Pexels video source.

        Args:
            api_key: Pexels API key (defaults to PEXELS_API_KEY env var)
            max_results: Maximum number of search results to return (max 80 per page)
        """
        self.max_results = min(max_results, 80)  # Pexels API limit
        self.api_key = api_key or os.getenv("PEXELS_API_KEY", "")

        if not self.api_key:
            logger.warning(
                "[Pexels] No API key configured. Set PEXELS_API_KEY to enable Pexels search."
            )

    def get_source_name(self) -> str:
        """Get the name of this video source."""
        return "pexels"

    def is_configured(self) -> bool:
        """Check if this source has required configuration."""
        return bool(self.api_key)

    async def search_videos(self, phrase: str, per_page: int = 1) -> list[VideoResult]:
        """Search Pexels for landscape videos matching the search phrase.

        Args:
            phrase: Search query string
            per_page: Maximum number of results

        Returns:
            List of VideoResult objects, empty when nothing matched

        Raises:
            ProviderRateLimitError: On HTTP 429
            ProviderError: On any other non-200 response or a missing API key
        """
        if not phrase.strip():
            return []

        if not self.api_key:
            raise ProviderError("Pexels API key is not configured.")

        logger.info(f"[Pexels] Searching for: '{phrase}'")

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
                        logger.warning("[Pexels] Rate limit exceeded")
                        raise ProviderRateLimitError(
                            "Pexels rate limit exceeded (429)",
                            status_code=429,
                            retry_after=parse_retry_after(response.headers.get("Retry-After")),
                        )

                    if response.status != 200:
                        body = await response.text()
                        logger.error(f"[Pexels] API error {response.status}: {body[:200]}")
                        raise ProviderError(
                            f"Pexels API error: {response.status} {response.reason}",
                            status_code=response.status,
                        )

                    data = await response.json()

        except aiohttp.ClientError as e:
            logger.error(f"[Pexels] Network error: {e}")
            raise ProviderNetworkError(f"Pexels network error: {e}") from e

        results = []
        for video in data.get("videos", []):
            result = self._parse_video(video)
            if result:
                results.append(result)

        logger.info(f"[Pexels] Found {len(results)} videos")
        return results

    def _parse_video(self, video: dict) -> Optional[VideoResult]:
        """Parse Pexels API video response into VideoResult.

        Prefers the "hd" rendition, then the tallest file. Returns None if
        the video has no downloadable files.
        """
        video_id = str(video.get("id", ""))
        video_files = video.get("video_files") or []
        if not video_id or not video_files:
            return None

        best_file = sorted(
            video_files,
            key=lambda f: (f.get("quality") == "hd", f.get("height") or 0),
            reverse=True,
        )[0]
        download_url = best_file.get("link", "")
        if not download_url:
            return None

        pictures = video.get("video_pictures") or []
        thumbnail_url = pictures[0].get("picture") if pictures else video.get("image")

        # Pexels URLs look like https://www.pexels.com/video/title-here-12345/
        video_url = video.get("url", f"https://www.pexels.com/video/{video_id}/")
        title = video_url.rstrip("/").split("/")[-1]
        if title.endswith(f"-{video_id}"):
            title = title[: -len(f"-{video_id}")]
        title = title.replace("-", " ").title()

        return VideoResult(
            video_id=f"pexels_{video_id}",
            title=title,
            url=video_url,
            duration=video.get("duration", 0),
            description=f"Pexels video by {(video.get('user') or {}).get('name', 'Unknown')}",
            source="pexels",
            license="Pexels License (CC0-like)",
            download_url=download_url,
            thumbnail_url=thumbnail_url,
            quality=best_file.get("quality"),
        )
