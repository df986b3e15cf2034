"""Provider error types and sanitization utilities.

Goal: ensure upstream failures (weather provider, generation API) never leak
internal details (tokens, HTTP errors, stack traces) to user-facing responses,
and that every such failure can be absorbed by a deterministic fallback.

Raise the specific subclasses from API clients, catch `UpstreamUnavailable`
at service boundaries and substitute the fallback result.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ProviderServiceError(Exception):
    """Error raised when an upstream provider fails.

    Attributes:
        provider: Short provider key (e.g., "openweather", "gemini").
        public_message: Safe, user-facing message.
        internal_message: Extra diagnostic detail for logs only.
        http_status: Optional HTTP status code observed.
    """

    provider: str
    public_message: str
    internal_message: str | None = None
    http_status: int | None = None

    def __str__(self) -> str:  # pragma: no cover
        # Never leak `internal_message` via implicit string conversions.
        return self.public_message


class UpstreamUnavailable(ProviderServiceError):
    """Credential missing, network failure or timeout on an upstream provider."""


class AuthError(UpstreamUnavailable):
    """Missing or rejected provider credential."""


class TransportError(UpstreamUnavailable):
    """Network failure, timeout or non-success response."""


class RateLimitError(UpstreamUnavailable):
    """Provider refused the request because of rate limiting."""


class MalformedUpstreamResponse(ProviderServiceError):
    """Provider answered, but the payload does not have the required shape."""


def provider_unavailable_message(provider_display_name: str) -> str:
    """Standard, professional, non-leaky message for provider failures."""

    return (
        f"CarePulse is currently experiencing issues retrieving data from {provider_display_name}. "
        "Showing the latest reference values instead."
    )


def malformed_response_message(provider_display_name: str) -> str:
    return (
        f"{provider_display_name} returned an unexpected response. "
        "Rule-based analysis is shown instead."
    )
