from .importance import classify_importance
from .length import LengthAnalysis, adjust_for_context, analyze_response_length
from .moderation import check_ng_words, check_restricted_topics
from .prompt import (
    PromptParts,
    build_persona,
    category_directive,
    compose,
    compose_parts,
    custom_directive,
    mode_directive,
)

__all__ = [
    "classify_importance",
    "LengthAnalysis",
    "adjust_for_context",
    "analyze_response_length",
    "check_ng_words",
    "check_restricted_topics",
    "PromptParts",
    "build_persona",
    "category_directive",
    "compose",
    "compose_parts",
    "custom_directive",
    "mode_directive",
]
