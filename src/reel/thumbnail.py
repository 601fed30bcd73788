"""Title thumbnail: a generated title drawn over the first scene's image."""

import asyncio
import io
import logging
import textwrap
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from models.scene import Scene
from reel.errors import EmptyInputError
from reel.render_pipeline import fetch_bytes
from services.ai_service import AIService

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = (1280, 720)
TITLE_FONT_SIZE = 96
MAX_CHARS_PER_LINE = 22
BACKGROUND_COLOR = (26, 26, 46)

FONT_PATHS = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "/System/Library/Fonts/Helvetica.ttc",
    "C:/Windows/Fonts/arialbd.ttf",
)


@dataclass(frozen=True)
class Thumbnail:
    title: str
    image: bytes  # PNG
    custom: bool = False


def _load_font(size: int):
    for path in FONT_PATHS:
        try:
            return ImageFont.truetype(path, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)


def _open_background(data: Optional[bytes]) -> Image.Image:
    if data:
        try:
            image = Image.open(io.BytesIO(data)).convert("RGBA")
            return image.resize(THUMBNAIL_SIZE, Image.LANCZOS)
        except (UnidentifiedImageError, OSError) as e:
            logger.warning(f"Scene image unusable for thumbnail, using plain background: {e}")
    return Image.new("RGBA", THUMBNAIL_SIZE, BACKGROUND_COLOR + (255,))


def render_title_card(background: Optional[bytes], title: str) -> bytes:
    """Draw ``title`` centered over ``background`` (any Pillow-readable image) as PNG."""
    width, height = THUMBNAIL_SIZE
    card = _open_background(background)

    # Darken the bottom half so the text stays readable
    shade = Image.new("RGBA", THUMBNAIL_SIZE, (0, 0, 0, 0))
    shade_draw = ImageDraw.Draw(shade)
    for y in range(height // 2, height):
        alpha = int((y - height // 2) / (height // 2) * 190)
        shade_draw.rectangle([(0, y), (width, y + 1)], fill=(0, 0, 0, alpha))
    card = Image.alpha_composite(card, shade)

    draw = ImageDraw.Draw(card)
    font = _load_font(TITLE_FONT_SIZE)
    lines = textwrap.wrap(title.upper(), MAX_CHARS_PER_LINE) or [""]

    line_height = TITLE_FONT_SIZE + 12
    y = height - len(lines) * line_height - 60
    for line in lines:
        bbox = draw.textbbox((0, 0), line, font=font)
        x = (width - (bbox[2] - bbox[0])) // 2
        draw.text((x, y), line, font=font, fill=(255, 255, 255), stroke_width=4, stroke_fill=(0, 0, 0))
        y += line_height

    output = io.BytesIO()
    card.convert("RGB").save(output, format="PNG")
    return output.getvalue()


def validate_custom_thumbnail(data: bytes) -> bytes:
    """Accept uploaded image bytes as the thumbnail, re-encoded as PNG."""
    if not data:
        raise EmptyInputError("Uploaded thumbnail is empty.")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Uploaded thumbnail is not a readable image: {e}") from e

    output = io.BytesIO()
    image.convert("RGB").save(output, format="PNG")
    return output.getvalue()


class ThumbnailMaker:
    def __init__(
        self,
        ai_service: AIService,
        fetch: Callable[[str], Awaitable[bytes]] = fetch_bytes,
    ):
        self.ai_service = ai_service
        self._fetch = fetch

    async def generate(self, scenes: Sequence[Scene], script: str) -> Thumbnail:
        """Generate a title from ``script`` and draw it over the first scene.

        Raises:
            EmptyInputError: No scenes or a blank script
        """
        if not scenes:
            raise EmptyInputError("Generate scenes before creating a thumbnail.")
        if not script or not script.strip():
            raise EmptyInputError("A script is required to create a thumbnail title.")

        title = await asyncio.to_thread(self.ai_service.generate_video_title, script)
        logger.info(f"Thumbnail title: {title!r}")

        background = None
        try:
            background = await self._fetch(scenes[0].preview_url)
        except Exception as e:
            logger.warning(f"Could not fetch first scene for thumbnail: {e}")

        image = await asyncio.to_thread(render_title_card, background, title)
        return Thumbnail(title=title, image=image)
