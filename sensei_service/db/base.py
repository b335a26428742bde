import asyncio
import logging
import operator
import re
import uuid
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

COMPARISON_OPS = {
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_field(field: str) -> str:
    """Field names end up inside JSON path expressions, keep them plain."""
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return field


def validate_op(op: str) -> str:
    if op not in COMPARISON_OPS:
        raise ValueError(f"Unsupported operator: {op!r} (use one of {sorted(COMPARISON_OPS)})")
    return op


class DocumentStore:
    """Keyed JSON document store.

    Backends implement the ``_``-prefixed primitives; this base class
    validates arguments and fans out change notifications to subscribers
    registered in this process after every successful ``put``/``delete``.
    """

    def __init__(self):
        self._subscribers: dict[str, tuple[str, Optional[dict], Callable]] = {}
        self._notify_tasks: set[asyncio.Task] = set()

    async def get(self, collection: str, key: str) -> dict | None:
        return await self._get(collection, key)

    async def put(self, collection: str, key: str, value: dict) -> None:
        await self._put(collection, key, value)
        self._notify(collection, key, value)

    async def scan(self, collection: str) -> list[tuple[str, dict]]:
        """Every ``(key, document)`` pair in ``collection``."""
        return await self._scan(collection)

    async def query_by_field(self, collection: str, field: str, value: Any,
                             op: str = "==") -> list[tuple[str, dict]]:
        """Return ``(key, document)`` pairs whose ``field`` satisfies ``op value``."""
        return await self._query(collection, validate_field(field), validate_op(op), value)

    async def delete(self, collection: str, key: str) -> bool:
        deleted = await self._delete(collection, key)
        if deleted:
            self._notify(collection, key, None)
        return deleted

    async def delete_if(self, collection: str, key: str, field: str, op: str,
                        value: Any) -> bool:
        """Delete ``key`` only if its ``field`` still satisfies ``op value``.

        The check and the delete happen in one backend operation.
        """
        deleted = await self._delete_if(collection, key, validate_field(field),
                                        validate_op(op), value)
        if deleted:
            self._notify(collection, key, None)
        return deleted

    def subscribe(self, collection: str, callback: Callable,
                  filter: Optional[dict] = None) -> Callable[[], None]:
        """Register ``callback(key, document_or_None)`` for changes in ``collection``.

        ``filter`` restricts notifications to documents whose fields equal
        the given values (deletes are always delivered). Coroutine
        callbacks are scheduled on the running loop. Returns an
        unsubscribe function.
        """
        sub_id = uuid.uuid4().hex
        self._subscribers[sub_id] = (collection, filter, callback)

        def unsubscribe():
            self._subscribers.pop(sub_id, None)

        return unsubscribe

    async def close(self):
        pass

    def _notify(self, collection: str, key: str, value: dict | None):
        for sub_collection, filt, callback in list(self._subscribers.values()):
            if sub_collection != collection:
                continue
            if value is not None and filt and any(value.get(f) != v for f, v in filt.items()):
                continue
            try:
                result = callback(key, value)
                if asyncio.iscoroutine(result):
                    task = asyncio.get_running_loop().create_task(result)
                    self._notify_tasks.add(task)
                    task.add_done_callback(self._notify_tasks.discard)
            except Exception as e:
                logger.error("Subscriber callback failed for %s/%s: %s", collection, key, e)

    async def _get(self, collection: str, key: str) -> dict | None:
        raise NotImplementedError

    async def _put(self, collection: str, key: str, value: dict) -> None:
        raise NotImplementedError

    async def _scan(self, collection: str) -> list[tuple[str, dict]]:
        raise NotImplementedError

    async def _query(self, collection: str, field: str, op: str, value: Any) -> list[tuple[str, dict]]:
        raise NotImplementedError

    async def _delete(self, collection: str, key: str) -> bool:
        raise NotImplementedError

    async def _delete_if(self, collection: str, key: str, field: str, op: str, value: Any) -> bool:
        raise NotImplementedError
