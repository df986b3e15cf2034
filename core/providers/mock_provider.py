"""Mock AI provider for development and automated testing.

This provider avoids external network calls and returns deterministic responses.
It is only activated when `AI_PROVIDER=mock`.
"""

from __future__ import annotations

import json
import logging
from collections import deque

from .base_provider import BaseAIProvider

logger = logging.getLogger(__name__)

DEFAULT_INSIGHTS_REPLY = json.dumps(
    [
        {
            "type": "recommendation",
            "title": "(Mock AI) Review respiratory readiness",
            "description": (
                "Running in offline test mode. Confirm respiratory ward staffing and "
                "medication stock against today's air quality."
            ),
            "priority": "medium",
            "category": "environmental",
            "confidence": 0.5,
        }
    ]
)


class MockProvider(BaseAIProvider):
    """Deterministic provider that never calls external services.

    Replies queued with `queue_reply` are returned first, in order; after that
    every call returns `DEFAULT_INSIGHTS_REPLY`.
    """

    name = "mock"
    display_name = "Mock AI"

    def __init__(self, settings, replies: list[str] | None = None):
        super().__init__(settings)
        self._replies: deque[str] = deque(replies or [])
        self.prompts: list[str] = []

    @property
    def configured(self) -> bool:
        return True

    def setup(self) -> None:
        # No external setup required.
        self.client = object()
        logger.warning(
            "MockProvider enabled (AI_PROVIDER=mock). Responses are synthetic and not model-generated."
        )

    def queue_reply(self, text: str) -> None:
        self._replies.append(text)

    async def _complete(
        self,
        prompt: str,
        system_instruction: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        self.prompts.append(prompt)
        if self._replies:
            return self._replies.popleft()
        return DEFAULT_INSIGHTS_REPLY
