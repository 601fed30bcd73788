"""Music Service - instrumental and sound-effect synthesis via Stable Audio 2.5."""

import asyncio
import logging
import os
from typing import Optional

import httpx

from services.provider_errors import (
    ProviderError,
    ProviderNetworkError,
    ProviderRateLimitError,
    parse_retry_after,
)

logger = logging.getLogger(__name__)

REPLICATE_API_URL = "https://api.replicate.com/v1/predictions"
STABLE_AUDIO_MODEL_VERSION = "a61ac8edbb27cd2eda1b2eff2bbc03dcff1131f5560836ff77a052df05b77491"

# Stable Audio's hard limit
MAX_OUTPUT_SECONDS = 190


class MusicServiceError(ProviderError):
    """Error from Music service."""


class MusicService:
    """HTTP client for audio generation via Stable Audio 2.5 on Replicate."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        poll_interval: float = 3.0,
        max_wait: float = 300.0,
    ):
        """Initialize Music service.

        Args:
            api_key: Replicate API token (defaults to REPLICATE_API_KEY env var)
            poll_interval: Seconds between prediction status polls
            max_wait: Give up after this many seconds of polling
        """
        self.replicate_api_key = api_key or os.getenv("REPLICATE_API_KEY", "")
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        # Long timeout - audio generation can take a while
        self.client = httpx.AsyncClient(timeout=300.0)

    def is_configured(self) -> bool:
        """Check if the service is configured."""
        return bool(self.replicate_api_key)

    async def synthesize(
        self,
        prompt: str,
        output_seconds: int = 60,
        seed: int | None = None,
        steps: int = 8,
        cfg: float = 1.0,
    ) -> bytes:
        """Generate instrumental audio or a sound effect from a text prompt.

        Stable Audio 2.5 is instrumental only.

        Args:
            prompt: Description of the music or soundscape
            output_seconds: Duration in seconds (1-190)
            seed: Seed for reproducibility
            steps: Inference steps (4-8, default 8)
            cfg: CFG scale (1-25, default 1)

        Returns:
            Audio bytes

        Raises:
            MusicServiceError: If generation fails
            ProviderRateLimitError: If Replicate throttles the request
        """
        if not self.replicate_api_key:
            raise MusicServiceError("REPLICATE_API_KEY not configured")
        if not prompt or not prompt.strip():
            raise MusicServiceError("Audio prompt cannot be empty")

        output_seconds = max(1, min(output_seconds, MAX_OUTPUT_SECONDS))

        headers = {
            "Authorization": f"Bearer {self.replicate_api_key}",
            "Content-Type": "application/json",
        }

        payload = {
            "version": STABLE_AUDIO_MODEL_VERSION,
            "input": {
                "prompt": prompt,
                "duration": output_seconds,
                "steps": steps,
                "cfg_scale": cfg,
            },
        }

        if seed is not None:
            payload["input"]["seed"] = seed

        logger.info(
            f"Generating audio via Stable Audio 2.5: prompt={prompt!r}, "
            f"duration={output_seconds}s, steps={steps}, cfg_scale={cfg}, seed={seed}"
        )

        try:
            response = await self.client.post(REPLICATE_API_URL, headers=headers, json=payload)
            self._check(response)
            prediction = response.json()

            prediction_url = (
                prediction.get("urls", {}).get("get") or f"{REPLICATE_API_URL}/{prediction['id']}"
            )

            elapsed = 0.0
            while elapsed < self.max_wait:
                await asyncio.sleep(self.poll_interval)
                elapsed += self.poll_interval

                status_response = await self.client.get(prediction_url, headers=headers)
                self._check(status_response)
                result = status_response.json()

                status = result.get("status")
                if status == "succeeded":
                    # Stable Audio returns a single URL string (not an array)
                    output_url = result.get("output")
                    if not output_url:
                        raise MusicServiceError("Stable Audio returned no output URL")

                    audio_response = await self.client.get(output_url)
                    self._check(audio_response)
                    audio_bytes = audio_response.content

                    if not audio_bytes or len(audio_bytes) < 100:
                        raise MusicServiceError("Stable Audio returned empty audio")

                    logger.info(f"Stable Audio generation complete: {len(audio_bytes)} bytes")
                    return audio_bytes

                if status in ("failed", "canceled"):
                    error = result.get("error", "Unknown error")
                    raise MusicServiceError(f"Stable Audio generation failed: {error}")

            raise MusicServiceError(f"Stable Audio generation timed out after {self.max_wait:.0f}s")

        except httpx.TimeoutException as e:
            raise ProviderNetworkError("Stable Audio request timed out") from e
        except httpx.TransportError as e:
            raise ProviderNetworkError(f"Replicate unreachable: {e}") from e

    @staticmethod
    def _check(response: httpx.Response) -> None:
        if response.is_success:
            return
        if response.status_code == 429:
            raise ProviderRateLimitError(
                "Replicate rate limit exceeded (429)",
                status_code=429,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        try:
            error_detail = response.json().get("detail", response.text)
        except ValueError:
            error_detail = response.text
        raise MusicServiceError(
            f"Stable Audio API error: {error_detail}", status_code=response.status_code
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()
