"""
Strict parsing of generation-API replies.

The reply text is never trusted: optional Markdown code fences are stripped,
the remainder must be valid JSON of the expected shape, and every element
must carry the required fields. Any violation rejects the whole reply with
`MalformedUpstreamResponse`, which callers resolve with the rule-based
fallback.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from domain.models.schemas import (
    Insight,
    InsightCategory,
    InsightPriority,
    InsightType,
    utcnow,
)
from shared.utils.provider_errors import MalformedUpstreamResponse, malformed_response_message

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^\s*```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


class _ReplyItem(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str = Field(min_length=1, strict=True)
    description: str = Field(min_length=1, strict=True)
    type: InsightType = "recommendation"
    priority: InsightPriority = "medium"
    category: InsightCategory = "capacity"
    confidence: float = Field(0.75, ge=0.0, le=1.0, strict=True)


class _StaffingReply(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    recommended_staff: int = Field(ge=0, strict=True)
    title: str = Field(min_length=1, strict=True)
    description: str = Field(min_length=1, strict=True)
    priority: InsightPriority | None = None
    confidence: float = Field(0.75, ge=0.0, le=1.0, strict=True)


def strip_code_fences(text: str) -> str:
    """Remove a single wrapping ```/```json fence, if present."""
    match = _FENCE_RE.match(text)
    return match.group(1).strip() if match else text.strip()


def _malformed(provider: str, internal: str) -> MalformedUpstreamResponse:
    return MalformedUpstreamResponse(
        provider=provider,
        public_message=malformed_response_message("The AI service"),
        internal_message=internal,
    )


def _load_json(text: str, provider: str) -> Any:
    try:
        return json.loads(strip_code_fences(text))
    except (json.JSONDecodeError, TypeError) as e:
        raise _malformed(provider, f"reply is not valid JSON: {e}") from e


def _drop_nulls(item: dict[str, Any]) -> dict[str, Any]:
    # An explicit null for an optional field counts as "not supplied".
    return {key: value for key, value in item.items() if value is not None}


def parse_insights_reply(
    text: str,
    provider: str = "ai",
    generated_at: datetime | None = None,
) -> list[Insight]:
    """Parse a JSON-array reply into AI-sourced insights."""
    payload = _load_json(text, provider)
    if not isinstance(payload, list):
        raise _malformed(provider, f"expected a JSON array, got {type(payload).__name__}")
    if not payload:
        raise _malformed(provider, "reply array is empty")

    generated_at = generated_at or utcnow()
    stamp = generated_at.strftime("%Y%m%dT%H%M%S%f")
    insights: list[Insight] = []
    for index, raw in enumerate(payload):
        if not isinstance(raw, dict):
            raise _malformed(provider, f"element {index} is not an object")
        try:
            item = _ReplyItem.model_validate(_drop_nulls(raw))
        except PydanticValidationError as e:
            raise _malformed(provider, f"element {index} rejected: {e.errors()}") from e

        insights.append(
            Insight(
                id=f"ai-{stamp}-{index}",
                type=item.type,
                title=item.title,
                description=item.description,
                confidence=item.confidence,
                priority=item.priority,
                category=item.category,
                generated_at=generated_at,
                source="ai",
            )
        )

    logger.debug(f"Parsed {len(insights)} insights from {provider} reply")
    return insights


def parse_staffing_reply(text: str, provider: str = "ai") -> _StaffingReply:
    """Parse a JSON-object staffing reply."""
    payload = _load_json(text, provider)
    if not isinstance(payload, dict):
        raise _malformed(provider, f"expected a JSON object, got {type(payload).__name__}")
    try:
        return _StaffingReply.model_validate(_drop_nulls(payload))
    except PydanticValidationError as e:
        raise _malformed(provider, f"staffing reply rejected: {e.errors()}") from e
