"""Media acquisition: fetch exactly one visual asset for one scene prompt."""

import logging
from typing import Optional

from models.image_generation import ImageGenerationRequest
from models.scene import MediaKind, MediaSource, Scene
from reel.errors import RateLimitedError
from services.image_generation_service import ImageGenerationService
from services.image_sources.base import ImageSource
from services.prompts import apply_style
from services.provider_errors import ProviderError, ProviderRateLimitError, looks_rate_limited
from services.video_sources.base import VideoSource

logger = logging.getLogger(__name__)


def as_rate_limit(error: Exception) -> Optional[RateLimitedError]:
    """Return a RateLimitedError if ``error`` signals provider throttling, else None."""
    if isinstance(error, RateLimitedError):
        return error
    if isinstance(error, ProviderRateLimitError):
        return RateLimitedError(retry_after=error.retry_after)
    if isinstance(error, ProviderError) and error.status_code == 429:
        return RateLimitedError(retry_after=error.retry_after)
    if looks_rate_limited(str(error)):
        return RateLimitedError()
    return None


class MediaAcquirer:
    """Turns one prompt into one Scene using the selected media source."""

    def __init__(
        self,
        image_service: Optional[ImageGenerationService] = None,
        photo_source: Optional[ImageSource] = None,
        video_source: Optional[VideoSource] = None,
    ):
        self.image_service = image_service
        self.photo_source = photo_source
        self.video_source = video_source

    async def acquire(self, prompt: str, source: MediaSource) -> Optional[Scene]:
        """Fetch one asset for ``prompt``.

        Returns:
            The Scene, or None when the provider returned nothing usable

        Raises:
            RateLimitedError: When the provider throttled the request
            ProviderError: Any other provider failure
        """
        try:
            if source is MediaSource.AI:
                return await self._generate_image(prompt)
            if source is MediaSource.PEXELS_PHOTO:
                return await self._search_photo(prompt)
            if source is MediaSource.PEXELS_VIDEO:
                return await self._search_video(prompt)
        except Exception as e:
            rate_limited = as_rate_limit(e)
            if rate_limited is not None:
                raise rate_limited from e
            raise
        raise ValueError(f"Unknown media source: {source}")

    async def _generate_image(self, prompt: str) -> Optional[Scene]:
        if self.image_service is None:
            raise ProviderError("Image generation is not configured")

        result = await self.image_service.generate_image(
            ImageGenerationRequest(prompt=apply_style(prompt))
        )
        if not result.images:
            return None
        return Scene(kind=MediaKind.IMAGE, source_url=result.images[0].url, prompt=prompt)

    async def _search_photo(self, prompt: str) -> Optional[Scene]:
        if self.photo_source is None:
            raise ProviderError("Stock photo search is not configured")

        photos = await self.photo_source.search_images(prompt, per_page=1)
        if not photos:
            return None
        photo = photos[0]
        return Scene(
            kind=MediaKind.IMAGE,
            source_url=photo.download_url,
            thumbnail_url=photo.thumbnail_url,
            prompt=prompt,
        )

    async def _search_video(self, prompt: str) -> Optional[Scene]:
        if self.video_source is None:
            raise ProviderError("Stock video search is not configured")

        videos = await self.video_source.search_videos(prompt, per_page=1)
        if not videos or not videos[0].download_url:
            return None
        video = videos[0]
        return Scene(
            kind=MediaKind.VIDEO,
            source_url=video.download_url,
            thumbnail_url=video.thumbnail_url,
            duration_seconds=float(video.duration) if video.duration else None,
            prompt=prompt,
        )
