"""Filesystem-backed object store for local development.

Keys map onto a directory tree under the base directory:
  {base_dir}/root/<user>/<user_id>/<category>/<variant>/<name>

Object metadata and content types are not persisted.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from useritems.object_store.adapter import (
    DEFAULT_CONTENT_TYPE,
    ListPage,
    ObjectNotFoundError,
    ObjectStoreError,
    ObjectSummary,
    ObjectTooLargeError,
    StoredObject,
)

logger = logging.getLogger(__name__)


class FileSystemObjectStore:
    def __init__(self, base_dir: Optional[str | Path] = None, max_page_size: int = 1000) -> None:
        self._base_dir = Path(base_dir or Path.cwd() / "var" / "user_items")
        self._base_dir.mkdir(parents=True, exist_ok=True)
        self.max_page_size = max_page_size

    def _path(self, key: str) -> Path:
        """Full path for a key; rejects traversal segments."""
        segments = [s for s in key.split("/") if s]
        if not segments or any(s in {".", ".."} or "\\" in s for s in segments):
            raise ObjectStoreError(f"Invalid object key: {key!r}")
        return self._base_dir.joinpath(*segments)

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = DEFAULT_CONTENT_TYPE,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            logger.error("Failed to store object %s: %s", key, exc)
            raise ObjectStoreError(f"Object store PUT failed: {exc}") from exc

    def get_object(self, key: str, max_bytes: Optional[int] = None) -> StoredObject:
        path = self._path(key)
        if not path.is_file():
            raise ObjectNotFoundError(key)
        size = path.stat().st_size
        if max_bytes is not None and size > max_bytes:
            raise ObjectTooLargeError(key, size, max_bytes)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ObjectStoreError(f"Object store GET failed: {exc}") from exc
        return StoredObject(data=data, content_length=len(data))

    def object_exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete_object(self, key: str) -> bool:
        path = self._path(key)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise ObjectStoreError(f"Object store DELETE failed: {exc}") from exc
        return True

    def _all_keys(self) -> List[str]:
        return sorted(
            p.relative_to(self._base_dir).as_posix() for p in self._base_dir.rglob("*") if p.is_file()
        )

    def list_page(
        self,
        prefix: str,
        continuation_token: Optional[str] = None,
        max_keys: Optional[int] = None,
    ) -> ListPage:
        limit = min(max_keys or self.max_page_size, self.max_page_size)
        keys = [k for k in self._all_keys() if k.startswith(prefix)]
        if continuation_token is not None:
            keys = [k for k in keys if k > continuation_token]
        page_keys = keys[:limit]
        objects = [ObjectSummary(key=k, size=(self._base_dir / k).stat().st_size) for k in page_keys]
        next_token = page_keys[-1] if len(keys) > limit else None
        return ListPage(objects=objects, next_token=next_token)
