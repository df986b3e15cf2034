"""Prompts and system instructions for insight generation."""

from .insight_prompts import (
    ANALYST_SYSTEM_INSTRUCTION,
    build_insights_prompt,
    build_staffing_prompt,
)

__all__ = [
    "ANALYST_SYSTEM_INSTRUCTION",
    "build_insights_prompt",
    "build_staffing_prompt",
]
