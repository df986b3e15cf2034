"""
Gemini AI Provider Implementation.

Handles Gemini-specific setup and single-shot text generation.
"""

import asyncio
import logging

from google import genai
from google.genai import types

from .base_provider import BaseAIProvider

logger = logging.getLogger(__name__)


class GeminiProvider(BaseAIProvider):
    """Google Gemini AI provider implementation."""

    name = "gemini"
    display_name = "Gemini"

    def setup(self) -> None:
        """
        Set up Gemini client.

        Raises:
            ValueError: If API key is missing
            ConnectionError: If unable to initialize Gemini client
        """
        api_key = self.settings.AI_API_KEY
        if not api_key:
            raise ValueError("AI_API_KEY is required for Gemini provider")

        try:
            self.client = genai.Client(api_key=api_key)
            logger.info(f"Initialized Gemini provider with model: {self.settings.AI_MODEL}")
        except Exception as e:
            logger.error(f"Failed to setup Gemini: {e}")
            raise ConnectionError(f"Failed to initialize Gemini client: {e}") from e

    @staticmethod
    def _sanitize_text(text: str) -> str:
        """Replace unpaired surrogates that break UTF-8 encoding."""
        if not text:
            return text
        return text.encode("utf-8", errors="surrogatepass").decode("utf-8", errors="replace")

    async def _complete(
        self,
        prompt: str,
        system_instruction: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        config_params = {
            "temperature": temperature,
            "max_output_tokens": max_tokens,
        }
        if system_instruction:
            config_params["system_instruction"] = self._sanitize_text(system_instruction)

        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=self.settings.AI_MODEL,
            contents=self._sanitize_text(prompt),
            config=types.GenerateContentConfig(**config_params),
        )
        return response.text or ""
