"""
OpenAI-compatible Provider Implementation.

Works with OpenAI, OpenRouter, DeepSeek and other OpenAI-compatible APIs by
pointing OPENAI_BASE_URL at the vendor endpoint.
"""

import asyncio
import logging

import openai

from shared.utils.provider_errors import AuthError, RateLimitError

from .base_provider import BaseAIProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseAIProvider):
    """OpenAI-compatible AI provider implementation."""

    name = "openai"
    display_name = "OpenAI"

    def setup(self) -> None:
        """
        Set up OpenAI client.

        Raises:
            ValueError: If API key is missing
            ConnectionError: If unable to initialize client
        """
        api_key = self.settings.AI_API_KEY
        base_url = self.settings.OPENAI_BASE_URL

        if not api_key:
            raise ValueError("AI_API_KEY is required for OpenAI provider")

        try:
            self.client = openai.OpenAI(api_key=api_key, base_url=base_url)
            logger.info(
                f"Initialized OpenAI provider with model: {self.settings.AI_MODEL}, base_url: {base_url}"
            )
        except Exception as e:
            logger.error(f"Failed to setup OpenAI: {e}")
            raise ConnectionError(f"Failed to initialize OpenAI client: {e}") from e

    async def _complete(
        self,
        prompt: str,
        system_instruction: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        messages = []
        if system_instruction:
            messages.append({"role": "system", "content": system_instruction})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await asyncio.to_thread(
                self.client.chat.completions.create,
                model=self.settings.AI_MODEL,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.AuthenticationError as e:
            raise self._unavailable(AuthError, f"authentication rejected: {e}", 401) from e
        except openai.RateLimitError as e:
            raise self._unavailable(RateLimitError, f"rate limited: {e}", 429) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
