"""Object store abstraction consumed by the user item services.

Keys are opaque strings; listings are paginated with continuation tokens and
callers must never assume one call returns the whole prefix.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Protocol

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ObjectStoreError(RuntimeError):
    pass


class ObjectNotFoundError(ObjectStoreError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Object not found: {key}")
        self.key = key


class ObjectTooLargeError(ObjectStoreError):
    def __init__(self, key: str, size: int, limit: int) -> None:
        super().__init__(f"Object is too large: {size} bytes (limit {limit})")
        self.key = key
        self.size = size
        self.limit = limit


@dataclass(frozen=True)
class ObjectSummary:
    key: str
    size: int = 0


@dataclass
class ListPage:
    objects: List[ObjectSummary] = field(default_factory=list)
    next_token: Optional[str] = None

    @property
    def is_truncated(self) -> bool:
        return self.next_token is not None


@dataclass
class StoredObject:
    data: bytes
    content_length: int
    content_type: str = DEFAULT_CONTENT_TYPE
    metadata: Dict[str, str] = field(default_factory=dict)


class ObjectStoreAdapter(Protocol):
    """Abstraction for object storage (PUT/GET/DELETE/LIST blobs)."""

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        """Store a blob, replacing any existing object at key."""
        ...

    def get_object(self, key: str, max_bytes: Optional[int] = None) -> StoredObject:
        """Retrieve a blob.

        Raises ObjectNotFoundError when absent and ObjectTooLargeError when the
        stored size exceeds max_bytes (checked before the body is read).
        """
        ...

    def object_exists(self, key: str) -> bool:
        ...

    def delete_object(self, key: str) -> bool:
        """Delete a blob; True if something was deleted."""
        ...

    def list_page(
        self,
        prefix: str,
        continuation_token: Optional[str] = None,
        max_keys: Optional[int] = None,
    ) -> ListPage:
        """Return one page of keys starting with prefix, in key order."""
        ...


def iter_list_pages(
    store: ObjectStoreAdapter,
    prefix: str,
    page_size: Optional[int] = None,
) -> Iterator[ListPage]:
    """Yield listing pages for prefix, following continuation tokens lazily."""
    token: Optional[str] = None
    while True:
        page = store.list_page(prefix, continuation_token=token, max_keys=page_size)
        yield page
        if not page.is_truncated:
            return
        token = page.next_token


def iter_list_objects(
    store: ObjectStoreAdapter,
    prefix: str,
    page_size: Optional[int] = None,
) -> Iterator[ObjectSummary]:
    for page in iter_list_pages(store, prefix, page_size=page_size):
        yield from page.objects
