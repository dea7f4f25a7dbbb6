"""Object store adapters for user items."""
from useritems.object_store.adapter import (
    ListPage,
    ObjectNotFoundError,
    ObjectStoreAdapter,
    ObjectStoreError,
    ObjectSummary,
    ObjectTooLargeError,
    StoredObject,
    iter_list_objects,
    iter_list_pages,
)
from useritems.object_store.memory_adapter import InMemoryObjectStore

__all__ = [
    "InMemoryObjectStore",
    "ListPage",
    "ObjectNotFoundError",
    "ObjectStoreAdapter",
    "ObjectStoreError",
    "ObjectSummary",
    "ObjectTooLargeError",
    "StoredObject",
    "iter_list_objects",
    "iter_list_pages",
]
