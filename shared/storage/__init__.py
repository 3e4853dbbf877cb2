"""
Storage Module
==============

Content-addressed object store for agent metadata and proof records.

Usage:
    from shared.storage import get_object_store

    store = get_object_store()
    ref = await store.put(metadata.model_dump(mode="json"))
    assert await store.verify_integrity(ref)
"""

from shared.logging import get_logger
from shared.storage.store import (
    AgentMetadata,
    AgentSearchQuery,
    AgentSummary,
    ContentNotFoundError,
    InMemoryObjectStore,
    ObjectStore,
    content_hash,
)


logger = get_logger(__name__)

# Global store instance
_store: ObjectStore | None = None


def get_object_store() -> ObjectStore:
    """Get the process-wide object store."""
    global _store
    if _store is None:
        _store = InMemoryObjectStore()
        logger.info("object_store_initialized", backend="memory")
    return _store


def set_object_store(store: ObjectStore) -> None:
    """Set a custom object store."""
    global _store
    _store = store


__all__ = [
    "ObjectStore",
    "InMemoryObjectStore",
    "AgentMetadata",
    "AgentSummary",
    "AgentSearchQuery",
    "ContentNotFoundError",
    "content_hash",
    "get_object_store",
    "set_object_store",
]
