from .agent_service import AgentService
from .cache_service import ConversationCacheService
from .chat_service import ChatService
from .completion_service import CompletionService
from .janitor import CacheJanitor

__all__ = [
    "AgentService",
    "ConversationCacheService",
    "ChatService",
    "CompletionService",
    "CacheJanitor",
]
