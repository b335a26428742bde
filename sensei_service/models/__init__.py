from .agents import (
    AgentProfile,
    CustomPrompt,
    NGWordSettings,
    PersonalityAnswer,
    PersonalityProfile,
    ResponseCustomization,
)
from .cache import CachedMessage, CacheStats, ConversationCache
from .chat import ChatRequest, ChatResponse

__all__ = [
    "AgentProfile",
    "CustomPrompt",
    "NGWordSettings",
    "PersonalityAnswer",
    "PersonalityProfile",
    "ResponseCustomization",
    "CachedMessage",
    "CacheStats",
    "ConversationCache",
    "ChatRequest",
    "ChatResponse",
]
