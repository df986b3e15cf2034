"""
Base provider abstraction for hosted text-generation APIs.

Defines the interface every provider implementation follows and converts
any SDK failure into the provider error taxonomy, so callers only ever see
`UpstreamUnavailable` or `MalformedUpstreamResponse`.
"""

import asyncio
import logging
from abc import ABC, abstractmethod

from shared.utils.provider_errors import (
    AuthError,
    MalformedUpstreamResponse,
    ProviderServiceError,
    TransportError,
    malformed_response_message,
    provider_unavailable_message,
)

logger = logging.getLogger(__name__)


class BaseAIProvider(ABC):
    """Abstract base class for AI providers."""

    name = "ai"
    display_name = "the AI service"

    def __init__(self, settings):
        """
        Initialize the provider.

        Args:
            settings: Application settings
        """
        self.settings = settings
        self.client = None

    @property
    def configured(self) -> bool:
        """Whether a credential is available. Checked before any call."""
        return bool(self.settings.AI_API_KEY)

    @abstractmethod
    def setup(self) -> None:
        """
        Set up the provider client and configuration.

        Raises:
            ValueError: If configuration is invalid or API key is missing
            ConnectionError: If unable to initialize the client
        """
        pass

    @abstractmethod
    async def _complete(
        self,
        prompt: str,
        system_instruction: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Send a single prompt and return the raw reply text."""
        pass

    def _unavailable(self, error_cls, internal: str, status: int | None = None):
        return error_cls(
            provider=self.name,
            public_message=provider_unavailable_message(self.display_name),
            internal_message=internal,
            http_status=status,
        )

    async def generate(
        self,
        prompt: str,
        system_instruction: str = "",
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """
        Generate text for a prompt with a single attempt.

        Raises:
            AuthError: No credential, or the client could not be initialized
            TransportError: Network failure, timeout, or provider error
            MalformedUpstreamResponse: Empty reply
        """
        if not self.configured:
            raise self._unavailable(AuthError, "AI_API_KEY not configured")

        if self.client is None:
            try:
                self.setup()
            except (ValueError, ConnectionError) as e:
                raise self._unavailable(AuthError, f"setup failed: {e}") from e

        timeout = self.settings.AI_REQUEST_TIMEOUT_SECONDS
        try:
            text = await asyncio.wait_for(
                self._complete(
                    prompt,
                    system_instruction,
                    self.settings.AI_RESPONSE_TEMPERATURE if temperature is None else temperature,
                    max_tokens or self.settings.AI_MAX_TOKENS,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.warning(f"{self.name} generation timed out after {timeout}s")
            raise self._unavailable(TransportError, f"timeout after {timeout}s") from e
        except ProviderServiceError:
            raise
        except Exception as e:
            logger.error(f"{self.name} generation failed: {type(e).__name__}")
            raise self._unavailable(TransportError, f"{type(e).__name__}: {e}") from e

        if not text or not text.strip():
            raise MalformedUpstreamResponse(
                provider=self.name,
                public_message=malformed_response_message(self.display_name),
                internal_message="empty reply",
            )
        return text

    def cleanup(self) -> None:
        """
        Clean up resources (optional).

        Override this if your provider needs to perform cleanup.
        """
        pass
