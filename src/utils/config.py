"""Configuration loading and validation for reelsmith."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from rich.logging import RichHandler

# Get the project root directory (parent of src)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Load environment variables from .env file in project root
load_dotenv(PROJECT_ROOT / ".env")


def load_config() -> dict:
    """Load configuration from environment variables."""

    # Helper function to resolve paths relative to project root
    def resolve_path(path: str | None, default_relative: str) -> str:
        if not path:
            return str(PROJECT_ROOT / default_relative)
        if Path(path).is_absolute():
            return path
        return str(PROJECT_ROOT / path)

    config = {
        # Gemini (script decomposition, image generation, speech, transcription)
        "gemini_api_key": os.getenv("GEMINI_API_KEY"),
        "gemini_model": os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        "gemini_image_model": os.getenv("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image"),
        "gemini_tts_model": os.getenv("GEMINI_TTS_MODEL", "gemini-2.5-flash-preview-tts"),
        # Stock media search
        "pexels_api_key": os.getenv("PEXELS_API_KEY"),
        # Instrumental / sound effect generation
        "replicate_api_key": os.getenv("REPLICATE_API_KEY"),
        # Durable asset store (Cloudflare R2); falls back to a local directory
        "r2_account_id": os.getenv("R2_ACCOUNT_ID"),
        "r2_access_key_id": os.getenv("R2_ACCESS_KEY_ID"),
        "r2_secret_access_key": os.getenv("R2_SECRET_ACCESS_KEY"),
        "r2_bucket_name": os.getenv("R2_BUCKET_NAME", "reelsmith-assets"),
        "r2_public_url": os.getenv("R2_PUBLIC_URL"),
        "local_asset_dir": resolve_path(os.getenv("LOCAL_ASSET_DIR"), "assets"),
        # Render engine
        "engine_work_dir": resolve_path(os.getenv("ENGINE_WORK_DIR"), ".reelsmith/engine"),
        "local_output_folder": resolve_path(os.getenv("OUTPUT_DIR"), "output"),
        # Pacing between scene acquisitions (provider rate limits)
        "ai_pacing_seconds": float(os.getenv("AI_PACING_SECONDS", "12")),
        "stock_pacing_seconds": float(os.getenv("STOCK_PACING_SECONDS", "3.5")),
        # Timing
        "preview_interval_seconds": float(os.getenv("PREVIEW_INTERVAL_SECONDS", "5")),
        "default_scene_seconds": float(os.getenv("DEFAULT_SCENE_SECONDS", "5")),
        "log_level": os.getenv("LOG_LEVEL", "INFO"),
    }

    return config


def r2_configured(config: dict) -> bool:
    """True when all R2 credentials are present."""
    return all(
        config.get(key)
        for key in ("r2_account_id", "r2_access_key_id", "r2_secret_access_key")
    )


def validate_config(config: dict, require: tuple[str, ...] = ("gemini",)) -> list[str]:
    """Validate configuration and return list of errors.

    Args:
        config: Configuration dict from load_config()
        require: Which integrations must be usable: "gemini", "pexels", "replicate"
    """
    errors = []

    if "gemini" in require and not config.get("gemini_api_key"):
        errors.append("GEMINI_API_KEY is required")

    if "pexels" in require and not config.get("pexels_api_key"):
        errors.append("PEXELS_API_KEY is required for stock photo/video scenes")

    if "replicate" in require and not config.get("replicate_api_key"):
        errors.append("REPLICATE_API_KEY is required for music and sound effect generation")

    if config.get("ai_pacing_seconds", 0) < 0 or config.get("stock_pacing_seconds", 0) < 0:
        errors.append("Pacing delays cannot be negative")

    if config.get("preview_interval_seconds", 1) <= 0:
        errors.append("PREVIEW_INTERVAL_SECONDS must be positive")

    # Partial R2 configuration is almost always a mistake
    r2_keys = ("r2_account_id", "r2_access_key_id", "r2_secret_access_key")
    present = [key for key in r2_keys if config.get(key)]
    if present and len(present) != len(r2_keys):
        errors.append(
            "R2_ACCOUNT_ID, R2_ACCESS_KEY_ID and R2_SECRET_ACCESS_KEY must all be set to use R2"
        )

    for key in ("local_output_folder", "engine_work_dir"):
        folder = config.get(key)
        if not folder:
            continue
        try:
            Path(folder).mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Cannot create folder {folder}: {e}")

    return errors


def setup_logging(log_level: str = "INFO") -> None:
    """Set up logging configuration with Rich for terminal output."""
    # Clear any existing handlers
    logging.root.handlers.clear()

    rich_handler = RichHandler(
        show_time=True,
        show_level=True,
        show_path=False,
        rich_tracebacks=True,
        markup=False,  # Prompts and scripts contain square brackets
    )

    # File handler for plain text logging
    log_dir = PROJECT_ROOT / ".reelsmith"
    log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_dir / "reelsmith.log")
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        handlers=[rich_handler, file_handler],
        format="%(message)s",
    )

    # Suppress noisy third-party loggers
    noisy_loggers = [
        "httpx",
        "google_genai",
        "google_genai.models",
        "botocore",
        "boto3",
        "urllib3.connectionpool",
        "aiohttp.access",
    ]

    for logger_name in noisy_loggers:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def get_supported_image_formats() -> list[str]:
    """Return list of supported image file extensions."""
    return [".png", ".jpg", ".jpeg", ".webp"]


def get_supported_audio_formats() -> list[str]:
    """Return list of supported audio file extensions."""
    return [".mp3", ".wav", ".flac", ".aac", ".ogg", ".m4a"]
