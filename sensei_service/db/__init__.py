from .base import DocumentStore
from .memory_store import MemoryDocumentStore
from .document_store import OracleDocumentStore

__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "OracleDocumentStore",
]
