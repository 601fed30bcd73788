"""Models for AI image generation."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ImageGenerationRequest:
    """Request for text-to-image generation."""

    prompt: str
    width: int = 1920
    height: int = 1080
    seed: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API requests."""
        return {
            "prompt": self.prompt,
            "width": self.width,
            "height": self.height,
            "seed": self.seed,
        }


@dataclass
class GeneratedImage:
    """A single generated image result."""

    url: str  # data:image/...;base64,... URL
    width: int
    height: int
    content_type: str = "image/png"

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "url": self.url,
            "width": self.width,
            "height": self.height,
            "content_type": self.content_type,
        }


@dataclass
class ImageGenerationResult:
    """Result of an image generation request."""

    images: list[GeneratedImage]
    model: str
    prompt: str
    generation_time_ms: int

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "images": [img.to_dict() for img in self.images],
            "model": self.model,
            "prompt": self.prompt,
            "generation_time_ms": self.generation_time_ms,
        }
