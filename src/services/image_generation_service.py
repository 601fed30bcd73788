"""Image Generation Service - Gemini image model over the REST API."""

import logging
import os
import time
from math import gcd
from typing import Optional

import httpx

from models.image_generation import (
    GeneratedImage,
    ImageGenerationRequest,
    ImageGenerationResult,
)
from services.provider_errors import (
    ProviderError,
    ProviderNetworkError,
    ProviderRateLimitError,
    looks_rate_limited,
    parse_retry_after,
)

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"

# Aspect ratio mapping for Gemini (uses ratios, not pixels)
ASPECT_RATIO_MAP = {
    (1, 1): "1:1",
    (16, 9): "16:9",
    (9, 16): "9:16",
    (4, 3): "4:3",
    (3, 4): "3:4",
    (3, 2): "3:2",
    (2, 3): "2:3",
    (21, 9): "21:9",
}


def get_aspect_ratio(width: int, height: int) -> str:
    """Convert pixel dimensions to aspect ratio string for Gemini."""
    divisor = gcd(width, height)
    ratio = (width // divisor, height // divisor)

    if ratio in ASPECT_RATIO_MAP:
        return ASPECT_RATIO_MAP[ratio]

    # Closest supported ratio within 5%
    actual_ratio = width / height
    best_match = None
    best_diff = float("inf")

    for (w, h), ar in ASPECT_RATIO_MAP.items():
        diff = abs(actual_ratio - w / h)
        if diff < best_diff:
            best_diff = diff
            best_match = ar

    if best_diff < 0.05 and best_match:
        return best_match

    logger.warning(f"No matching aspect ratio for {width}x{height}. Defaulting to 16:9")
    return "16:9"


class ImageGenerationServiceError(ProviderError):
    """Error from image generation service."""


class ImageGenerationService:
    """Text-to-image generation using Gemini's image model."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: str = DEFAULT_IMAGE_MODEL,
    ):
        """Initialize the image generation service.

        Args:
            api_key: Gemini API key (defaults to GEMINI_API_KEY env var)
            model_name: Gemini image model id
        """
        self.api_key = api_key or os.getenv("GEMINI_API_KEY", "")
        self.model_name = model_name
        # Long timeout for image generation (can take a while)
        self.client = httpx.AsyncClient(timeout=120.0)

    def is_configured(self) -> bool:
        """Check if Gemini API key is configured."""
        return bool(self.api_key)

    async def generate_image(self, request: ImageGenerationRequest) -> ImageGenerationResult:
        """Generate images using Gemini.

        Args:
            request: The generation request

        Returns:
            ImageGenerationResult with data: URL images (may be empty)

        Raises:
            ProviderRateLimitError: On HTTP 429 or RESOURCE_EXHAUSTED
            ImageGenerationServiceError: On any other API failure
        """
        if not self.is_configured():
            raise ImageGenerationServiceError(
                "GEMINI_API_KEY not configured. Set it in your .env file."
            )

        url = f"{GEMINI_API_BASE}/models/{self.model_name}:generateContent"

        headers = {
            "x-goog-api-key": self.api_key,
            "Content-Type": "application/json",
        }

        aspect_ratio = get_aspect_ratio(request.width, request.height)

        payload = {
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": {
                "responseModalities": ["IMAGE"],
                "imageConfig": {"aspectRatio": aspect_ratio},
            },
        }

        logger.info(f"Generating image with {self.model_name} (aspect={aspect_ratio})")

        start_time = time.time()

        try:
            response = await self.client.post(url, headers=headers, json=payload)
        except httpx.TransportError as e:
            raise ProviderNetworkError(f"Gemini image API unreachable: {e}") from e

        if not response.is_success:
            raise self._error_from_response(response)

        result_data = response.json()
        generation_time_ms = int((time.time() - start_time) * 1000)

        images = []
        candidates = result_data.get("candidates", [])
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts", [])
            for part in parts:
                inline_data = part.get("inlineData", {})
                if inline_data.get("data"):
                    mime_type = inline_data.get("mimeType", "image/png")
                    data_url = f"data:{mime_type};base64,{inline_data['data']}"
                    images.append(
                        GeneratedImage(
                            url=data_url,
                            width=request.width,
                            height=request.height,
                            content_type=mime_type,
                        )
                    )

        logger.info(f"Gemini generated {len(images)} image(s) in {generation_time_ms}ms")

        return ImageGenerationResult(
            images=images,
            model=self.model_name,
            prompt=request.prompt,
            generation_time_ms=generation_time_ms,
        )

    def _error_from_response(self, response: httpx.Response) -> ProviderError:
        try:
            error_data = response.json().get("error", {})
            error_detail = error_data.get("message", response.text)
            error_status = error_data.get("status", "")
        except ValueError:
            error_detail = response.text
            error_status = ""

        if response.status_code == 429 or error_status == "RESOURCE_EXHAUSTED" or looks_rate_limited(error_status):
            return ProviderRateLimitError(
                f"Gemini image quota exhausted: {error_detail}",
                status_code=429,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        return ImageGenerationServiceError(
            f"Gemini API error: {error_detail}", status_code=response.status_code
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
