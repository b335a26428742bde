import json
import logging
from typing import Any

import oracledb

from ..errors import StoreUnavailableError
from .base import DocumentStore

logger = logging.getLogger(__name__)

SQL_OPS = {"==": "=", "<": "<", "<=": "<=", ">": ">", ">=": ">="}


async def _read_lob(val):
    """Read a LOB value to string, or return as-is if already a string."""
    if val is None:
        return None
    if isinstance(val, (oracledb.AsyncLOB,)):
        return await val.read()
    if hasattr(val, 'read') and not isinstance(val, str):
        result = val.read()
        if hasattr(result, '__await__'):
            return await result
        return result
    return val


async def _load_document(raw) -> dict:
    data = await _read_lob(raw)
    if isinstance(data, str):
        try:
            return json.loads(data)
        except (json.JSONDecodeError, TypeError):
            logger.warning("Discarding undecodable document payload")
            return {}
    if data is None:
        return {}
    return data


class OracleDocumentStore(DocumentStore):
    """Documents live as JSON in SENSEI_DOCUMENTS, keyed by (collection, doc_key)."""

    backend = "oracle"

    def __init__(self, pool):
        super().__init__()
        self.pool = pool

    async def _get(self, collection: str, key: str) -> dict | None:
        try:
            async with self.pool.acquire() as conn:
                cursor = conn.cursor()
                await cursor.execute(
                    """
                    SELECT doc_data FROM SENSEI_DOCUMENTS
                    WHERE collection = :collection AND doc_key = :doc_key
                    """,
                    {"collection": collection, "doc_key": key},
                )
                row = await cursor.fetchone()
                return (await _load_document(row[0])) if row else None
        except oracledb.Error as e:
            raise StoreUnavailableError(f"get {collection}/{key} failed: {e}") from e

    async def _put(self, collection: str, key: str, value: dict) -> None:
        try:
            async with self.pool.acquire() as conn:
                cursor = conn.cursor()
                await cursor.execute(
                    """
                    MERGE INTO SENSEI_DOCUMENTS d
                    USING (SELECT :collection AS collection, :doc_key AS doc_key FROM DUAL) src
                    ON (d.collection = src.collection AND d.doc_key = src.doc_key)
                    WHEN MATCHED THEN
                        UPDATE SET doc_data = :doc_data, updated_at = CURRENT_TIMESTAMP
                    WHEN NOT MATCHED THEN
                        INSERT (collection, doc_key, doc_data)
                        VALUES (:collection, :doc_key, :doc_data)
                    """,
                    {
                        "collection": collection,
                        "doc_key": key,
                        "doc_data": json.dumps(value, ensure_ascii=False),
                    },
                )
                await conn.commit()
        except oracledb.Error as e:
            raise StoreUnavailableError(f"put {collection}/{key} failed: {e}") from e

    async def _scan(self, collection: str) -> list[tuple[str, dict]]:
        try:
            async with self.pool.acquire() as conn:
                cursor = conn.cursor()
                await cursor.execute(
                    """
                    SELECT doc_key, doc_data FROM SENSEI_DOCUMENTS
                    WHERE collection = :collection
                    ORDER BY doc_key
                    """,
                    {"collection": collection},
                )
                rows = await cursor.fetchall()
                return [(row[0], await _load_document(row[1])) for row in rows]
        except oracledb.Error as e:
            raise StoreUnavailableError(f"scan {collection} failed: {e}") from e

    async def _query(self, collection: str, field: str, op: str, value: Any) -> list[tuple[str, dict]]:
        # field is validated by DocumentStore, JSON paths cannot be bound
        sql = f"""
            SELECT doc_key, doc_data FROM SENSEI_DOCUMENTS
            WHERE collection = :collection
              AND JSON_VALUE(doc_data, '$.{field}') {SQL_OPS[op]} :value
        """
        try:
            async with self.pool.acquire() as conn:
                cursor = conn.cursor()
                await cursor.execute(sql, {"collection": collection, "value": value})
                rows = await cursor.fetchall()
                return [(row[0], await _load_document(row[1])) for row in rows]
        except oracledb.Error as e:
            raise StoreUnavailableError(f"query {collection}.{field} failed: {e}") from e

    async def _delete(self, collection: str, key: str) -> bool:
        try:
            async with self.pool.acquire() as conn:
                cursor = conn.cursor()
                await cursor.execute(
                    "DELETE FROM SENSEI_DOCUMENTS WHERE collection = :collection AND doc_key = :doc_key",
                    {"collection": collection, "doc_key": key},
                )
                deleted = cursor.rowcount
                await conn.commit()
            return deleted > 0
        except oracledb.Error as e:
            raise StoreUnavailableError(f"delete {collection}/{key} failed: {e}") from e

    async def _delete_if(self, collection: str, key: str, field: str, op: str, value: Any) -> bool:
        sql = f"""
            DELETE FROM SENSEI_DOCUMENTS
            WHERE collection = :collection AND doc_key = :doc_key
              AND JSON_VALUE(doc_data, '$.{field}') {SQL_OPS[op]} :value
        """
        try:
            async with self.pool.acquire() as conn:
                cursor = conn.cursor()
                await cursor.execute(sql, {"collection": collection, "doc_key": key, "value": value})
                deleted = cursor.rowcount
                await conn.commit()
            return deleted > 0
        except oracledb.Error as e:
            raise StoreUnavailableError(f"conditional delete {collection}/{key} failed: {e}") from e
