import copy
from typing import Any

from .base import COMPARISON_OPS, DocumentStore


class MemoryDocumentStore(DocumentStore):
    """In-process store. Single event loop, so each primitive is atomic."""

    backend = "memory"

    def __init__(self):
        super().__init__()
        self._data: dict[str, dict[str, dict]] = {}

    async def _get(self, collection: str, key: str) -> dict | None:
        doc = self._data.get(collection, {}).get(key)
        return copy.deepcopy(doc) if doc is not None else None

    async def _put(self, collection: str, key: str, value: dict) -> None:
        self._data.setdefault(collection, {})[key] = copy.deepcopy(value)

    async def _scan(self, collection: str) -> list[tuple[str, dict]]:
        return [(key, copy.deepcopy(doc)) for key, doc in self._data.get(collection, {}).items()]

    async def _query(self, collection: str, field: str, op: str, value: Any) -> list[tuple[str, dict]]:
        compare = COMPARISON_OPS[op]
        results = []
        for key, doc in self._data.get(collection, {}).items():
            if field in doc and _matches(compare, doc[field], value):
                results.append((key, copy.deepcopy(doc)))
        return results

    async def _delete(self, collection: str, key: str) -> bool:
        return self._data.get(collection, {}).pop(key, None) is not None

    async def _delete_if(self, collection: str, key: str, field: str, op: str, value: Any) -> bool:
        docs = self._data.get(collection, {})
        doc = docs.get(key)
        if doc is None or field not in doc:
            return False
        if not _matches(COMPARISON_OPS[op], doc[field], value):
            return False
        del docs[key]
        return True

    def count(self, collection: str) -> int:
        return len(self._data.get(collection, {}))


def _matches(compare, left, right) -> bool:
    try:
        return bool(compare(left, right))
    except TypeError:
        return False
