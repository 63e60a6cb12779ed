"""Collaborator systems that sit beside the navigation engine."""

from .enhancement import (
    ENHANCE_THRESHOLD,
    REGENERATE_MARKER,
    EnhancementRequest,
    NarrativeEnhancer,
    build_prompt_context,
    needs_enhancement,
    strip_markers,
)

__all__ = [
    "ENHANCE_THRESHOLD",
    "REGENERATE_MARKER",
    "EnhancementRequest",
    "NarrativeEnhancer",
    "build_prompt_context",
    "needs_enhancement",
    "strip_markers",
]
