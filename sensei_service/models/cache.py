from datetime import datetime, timezone

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Iterable, Literal

from ..clock import parse_iso

Importance = Literal["low", "medium", "high"]
Sender = Literal["user", "agent"]

IMPORTANCE_RANK = {"low": 1, "medium": 2, "high": 3}

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class CachedMessage(BaseModel):
    id: str
    text: str
    sender: Sender
    timestamp: str
    importance: Importance = "medium"
    token_estimate: int = Field(default=0, ge=0)

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    @property
    def sent_at(self) -> datetime:
        try:
            return parse_iso(self.timestamp)
        except ValueError:
            return _EPOCH


def chronological(messages: Iterable[CachedMessage]) -> list[CachedMessage]:
    """Oldest first. Ties keep their stored order."""
    return sorted(messages, key=lambda m: m.sent_at)


class ConversationCache(BaseModel):
    agent_id: str
    session_id: str
    messages: list[CachedMessage] = Field(default_factory=list)
    total_tokens: int = 0
    last_updated: str
    expires_at: str

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def to_document(self) -> dict:
        """Persisted shape: camelCase keys."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, doc: dict) -> "ConversationCache":
        return cls.model_validate(doc)


class CacheStats(BaseModel):
    total_caches: int = 0
    active_caches: int = 0
    expired_caches: int = 0
