"""In-memory object store (tests, local dev)."""
from __future__ import annotations

import threading
from typing import Dict, Optional

from useritems.object_store.adapter import (
    DEFAULT_CONTENT_TYPE,
    ListPage,
    ObjectNotFoundError,
    ObjectSummary,
    ObjectTooLargeError,
    StoredObject,
)


class InMemoryObjectStore:
    """Dict-backed store that paginates like S3.

    ``max_page_size`` plays the role of the server-side cap: a caller asking for
    more keys per page still gets at most that many. ``list_calls`` counts every
    page served so tests can assert how much listing a check performed.
    """

    def __init__(self, max_page_size: int = 1000) -> None:
        if max_page_size <= 0:
            raise ValueError("max_page_size must be positive")
        self.max_page_size = max_page_size
        self.objects: Dict[str, StoredObject] = {}
        self.list_calls = 0
        self._lock = threading.Lock()

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        stored = StoredObject(
            data=bytes(data),
            content_length=len(data),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            metadata={str(k): str(v) for k, v in (metadata or {}).items() if v is not None},
        )
        with self._lock:
            self.objects[key] = stored

    def get_object(self, key: str, max_bytes: Optional[int] = None) -> StoredObject:
        with self._lock:
            stored = self.objects.get(key)
        if stored is None:
            raise ObjectNotFoundError(key)
        if max_bytes is not None and stored.content_length > max_bytes:
            raise ObjectTooLargeError(key, stored.content_length, max_bytes)
        return stored

    def object_exists(self, key: str) -> bool:
        with self._lock:
            return key in self.objects

    def delete_object(self, key: str) -> bool:
        with self._lock:
            return self.objects.pop(key, None) is not None

    def list_page(
        self,
        prefix: str,
        continuation_token: Optional[str] = None,
        max_keys: Optional[int] = None,
    ) -> ListPage:
        limit = min(max_keys or self.max_page_size, self.max_page_size)
        with self._lock:
            self.list_calls += 1
            keys = sorted(k for k in self.objects if k.startswith(prefix))
            if continuation_token is not None:
                keys = [k for k in keys if k > continuation_token]
            page_keys = keys[:limit]
            objects = [ObjectSummary(key=k, size=self.objects[k].content_length) for k in page_keys]
        next_token = page_keys[-1] if len(keys) > limit else None
        return ListPage(objects=objects, next_token=next_token)
