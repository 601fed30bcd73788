"""Studio singleton and error mapping for the Reelsmith API."""

from fastapi import HTTPException

from reel.errors import (
    EmptyInputError,
    EngineNotReadyError,
    NoResultsError,
    PreviewNotReadyError,
    RateLimitedError,
)
from reel.studio import Studio
from services.provider_errors import ProviderError
from utils.config import load_config

# Session singleton
_studio: Studio | None = None


def get_studio() -> Studio:
    """Get or create the studio session."""
    global _studio
    if _studio is None:
        _studio = Studio.from_config(load_config())
    return _studio


def set_studio(studio: Studio | None) -> None:
    """Replace the studio session (tests inject one built from fakes)."""
    global _studio
    _studio = studio


def error_status(error: Exception) -> int:
    """HTTP status for a failure raised by the core or a provider."""
    if isinstance(error, EmptyInputError):
        return 400
    if isinstance(error, NoResultsError):
        return 422
    if isinstance(error, RateLimitedError):
        return 429
    if isinstance(error, PreviewNotReadyError):
        return 409
    if isinstance(error, EngineNotReadyError):
        return 503
    if isinstance(error, ProviderError):
        return error.status_code if error.status_code == 429 else 502
    if isinstance(error, KeyError):
        return 404
    if isinstance(error, (ValueError, IndexError)):
        return 400
    return 500


def http_error(error: Exception) -> HTTPException:
    """Convert a failure into an HTTPException carrying its message."""
    detail = error.args[0] if isinstance(error, KeyError) and error.args else str(error)
    headers = None
    if isinstance(error, (RateLimitedError, ProviderError)) and error.retry_after:
        headers = {"Retry-After": str(int(error.retry_after))}
    return HTTPException(status_code=error_status(error), detail=str(detail), headers=headers)
