import asyncio
import logging
import math
import uuid
import weakref
from datetime import datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from ..clock import to_iso, utcnow
from ..errors import CacheError, StoreUnavailableError
from ..models.cache import (
    IMPORTANCE_RANK,
    CachedMessage,
    CacheStats,
    ConversationCache,
    chronological,
)

logger = logging.getLogger(__name__)

IMPORTANCE_MARKERS = {"high": "★", "medium": "◆", "low": "●"}
ROLE_LABELS = {"user": "Student", "agent": "Teacher"}
EMPTY_HISTORY = "(no conversation history)"


def _escape_key_part(part: str) -> str:
    return part.replace("%", "%25").replace("_", "%5F")


def cache_key(agent_id: str, session_id: str) -> str:
    """Document key for the pair. Each id is escaped so ``_`` only ever separates them."""
    return f"{_escape_key_part(agent_id)}_{_escape_key_part(session_id)}"


def new_message_id(sender: str) -> str:
    return f"{sender}_{int(utcnow().timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


class ConversationCacheService:
    """Bounded recent history per (agent, session).

    Every mutation of one key runs under that key's lock, so concurrent
    turns on the same session cannot lose appends. Locks are held in a
    weak map and disappear once no coroutine is using them.
    """

    def __init__(self, store, settings, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.collection = settings.cache_collection
        self.ttl = timedelta(minutes=settings.cache_ttl_minutes)
        self.max_messages = settings.cache_max_messages
        self.prune_to = settings.cache_prune_to
        self.token_ratio = settings.token_ratio
        self.history_limit = settings.history_limit
        self.display_tz = ZoneInfo(settings.display_timezone)
        self._clock = clock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._background: set[asyncio.Task] = set()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def estimate_tokens(self, text: str) -> int:
        """Rough cost units: ``ceil(len(text) * token_ratio)``. Not a tokenizer."""
        return math.ceil(len(text) * self.token_ratio)

    def make_message(self, text: str, sender: str, importance: str = "medium",
                     timestamp: Optional[datetime] = None) -> CachedMessage:
        return CachedMessage(
            id=new_message_id(sender),
            text=text,
            sender=sender,
            timestamp=to_iso(timestamp or self._clock()),
            importance=importance,
            token_estimate=self.estimate_tokens(text),
        )

    def is_expired(self, cache: ConversationCache, now: Optional[datetime] = None) -> bool:
        return to_iso(now or self._clock()) > cache.expires_at

    async def get(self, agent_id: str, session_id: str) -> ConversationCache | None:
        """Live cache for the key, or None.

        Expired entries are never returned; their deletion is scheduled in
        the background. Backend failures count as a miss.
        """
        key = cache_key(agent_id, session_id)
        try:
            cache = await self._load(key, agent_id, session_id)
        except (StoreUnavailableError, ValidationError) as e:
            logger.warning("Cache read failed for %s, treating as miss: %s", key, e)
            return None
        if cache is None:
            return None
        if self.is_expired(cache):
            logger.debug("Cache %s expired at %s", key, cache.expires_at)
            self._spawn(self._delete_stale(agent_id, session_id))
            return None
        return cache

    async def create(self, agent_id: str, session_id: str,
                     first_message: CachedMessage) -> ConversationCache:
        """Start a fresh cache for the key, replacing any existing one."""
        key = cache_key(agent_id, session_id)
        async with self._lock_for(key):
            cache = self._build(agent_id, session_id, [self._estimated(first_message)])
            await self._save(key, cache)
        logger.debug("Created conversation cache %s", key)
        return cache

    async def append(self, agent_id: str, session_id: str,
                     message: CachedMessage) -> ConversationCache:
        """Add ``message`` to the key's cache, creating it when absent or expired."""
        key = cache_key(agent_id, session_id)
        async with self._lock_for(key):
            try:
                existing = await self._load(key, agent_id, session_id)
            except StoreUnavailableError as e:
                raise CacheError(f"Could not read cache {key}: {e}") from e
            except ValidationError as e:
                logger.warning("Replacing unreadable cache %s: %s", key, e)
                existing = None

            message = self._estimated(message)
            if existing is None or self.is_expired(existing):
                messages = [message]
            else:
                messages = [*existing.messages, message]
                if len(messages) > self.max_messages:
                    before = len(messages)
                    messages = self.prune(messages)
                    logger.info("Pruned cache %s from %d to %d messages", key, before, len(messages))

            cache = self._build(agent_id, session_id, messages)
            await self._save(key, cache)
        return cache

    async def delete(self, agent_id: str, session_id: str) -> bool:
        key = cache_key(agent_id, session_id)
        async with self._lock_for(key):
            try:
                return await self.store.delete(self.collection, key)
            except StoreUnavailableError as e:
                raise CacheError(f"Could not delete cache {key}: {e}") from e

    def prune(self, messages: list[CachedMessage]) -> list[CachedMessage]:
        """Keep the ``prune_to`` most important messages, newest first within a level."""
        ranked = sorted(
            messages,
            key=lambda m: (IMPORTANCE_RANK[m.importance], m.sent_at),
            reverse=True,
        )
        return ranked[:self.prune_to]

    def format_history(self, messages: Optional[list[CachedMessage]]) -> str:
        if not messages:
            return EMPTY_HISTORY

        lines = []
        for message in chronological(messages)[-self.history_limit:]:
            when = message.sent_at.astimezone(self.display_tz).strftime("%m/%d %H:%M")
            marker = IMPORTANCE_MARKERS.get(message.importance, IMPORTANCE_MARKERS["medium"])
            role = ROLE_LABELS.get(message.sender, message.sender)
            lines.append(f"{marker} [{when}] {role}: {message.text}")
        return "\n".join(lines)

    async def find_expired(self, now: Optional[datetime] = None) -> list[tuple[str, str]]:
        """(agent_id, session_id) of every entry past its expiry."""
        cutoff = to_iso(now or self._clock())
        rows = await self.store.query_by_field(self.collection, "expiresAt", cutoff, op="<")
        return [(doc.get("agentId", ""), doc.get("sessionId", "")) for _, doc in rows]

    async def delete_if_expired(self, agent_id: str, session_id: str) -> bool:
        """Delete the entry only if it is still expired when the delete runs.

        An append that refreshed the entry after the sweep read it keeps
        the entry alive.
        """
        key = cache_key(agent_id, session_id)
        async with self._lock_for(key):
            return await self.store.delete_if(
                self.collection, key, "expiresAt", "<", to_iso(self._clock())
            )

    async def stats(self) -> CacheStats:
        now = to_iso(self._clock())
        expired = await self.store.query_by_field(self.collection, "expiresAt", now, op="<")
        active = await self.store.query_by_field(self.collection, "expiresAt", now, op=">=")
        return CacheStats(
            total_caches=len(expired) + len(active),
            active_caches=len(active),
            expired_caches=len(expired),
        )

    async def drain(self):
        """Wait for scheduled background deletes."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def _load(self, key: str, agent_id: str, session_id: str) -> ConversationCache | None:
        doc = await self.store.get(self.collection, key)
        if not doc:
            return None
        cache = ConversationCache.from_document(doc)
        if (cache.agent_id, cache.session_id) != (agent_id, session_id):
            logger.warning("Cache %s belongs to %s/%s, treating as miss",
                           key, cache.agent_id, cache.session_id)
            return None
        return cache

    async def _save(self, key: str, cache: ConversationCache):
        try:
            await self.store.put(self.collection, key, cache.to_document())
        except StoreUnavailableError as e:
            raise CacheError(f"Could not write cache {key}: {e}") from e

    async def _delete_stale(self, agent_id: str, session_id: str):
        try:
            await self.delete_if_expired(agent_id, session_id)
        except StoreUnavailableError as e:
            logger.warning("Stale cache delete failed for %s: %s",
                           cache_key(agent_id, session_id), e)

    def _estimated(self, message: CachedMessage) -> CachedMessage:
        return message.model_copy(update={"token_estimate": self.estimate_tokens(message.text)})

    def _build(self, agent_id: str, session_id: str,
               messages: list[CachedMessage]) -> ConversationCache:
        now = self._clock()
        return ConversationCache(
            agent_id=agent_id,
            session_id=session_id,
            messages=messages,
            total_tokens=sum(m.token_estimate for m in messages),
            last_updated=to_iso(now),
            expires_at=to_iso(now + self.ttl),
        )

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task
