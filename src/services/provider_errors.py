"""Error types shared by every external provider client (Gemini, Pexels, Replicate, R2)."""

from typing import Optional

import httpx
from google.genai import errors as genai_errors

RATE_LIMIT_MARKERS = ("429", "RESOURCE_EXHAUSTED")


class ProviderError(Exception):
    """Failure reported by, or while talking to, an external provider."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.retry_after = retry_after


class ProviderRateLimitError(ProviderError):
    """Provider refused the request because a quota or rate limit was hit."""


class ProviderNetworkError(ProviderError):
    """Provider could not be reached."""


def looks_rate_limited(message: str) -> bool:
    """Some SDKs only surface the quota condition in the message text."""
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def raise_for_status(response: httpx.Response, provider: str, error_cls=ProviderError) -> None:
    """Raise the matching provider error for a non-2xx httpx response."""
    if response.is_success:
        return

    status = response.status_code
    body = response.text[:300]
    if status == 429:
        raise ProviderRateLimitError(
            f"{provider} rate limit exceeded (429): {body}",
            status_code=status,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )
    raise error_cls(f"{provider} API error {status}: {body}", status_code=status)


def translate_genai_error(e: Exception, provider: str = "Gemini", error_cls=ProviderError) -> ProviderError:
    """Map a google-genai / httpx exception onto the provider error hierarchy."""
    if isinstance(e, ProviderError):
        return e

    if isinstance(e, genai_errors.APIError):
        code = getattr(e, "code", None)
        status = str(getattr(e, "status", "") or "")
        if code == 429 or status == "RESOURCE_EXHAUSTED":
            return ProviderRateLimitError(f"{provider} quota exhausted: {e}", status_code=429)
        return error_cls(f"{provider} API error: {e}", status_code=code)

    if isinstance(e, httpx.TransportError):
        return ProviderNetworkError(f"{provider} unreachable: {e}")

    if looks_rate_limited(str(e)):
        return ProviderRateLimitError(f"{provider} quota exhausted: {e}", status_code=429)

    return error_cls(f"{provider} request failed: {e}")
