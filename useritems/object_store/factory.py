"""Object store backend selection."""
from __future__ import annotations

from typing import Optional

from useritems.config import runtime_config
from useritems.object_store.adapter import ObjectStoreAdapter, ObjectStoreError
from useritems.object_store.filesystem_adapter import FileSystemObjectStore
from useritems.object_store.memory_adapter import InMemoryObjectStore
from useritems.object_store.s3_adapter import S3ObjectStore

VALID_BACKENDS = frozenset({"s3", "memory", "filesystem"})


def build_object_store(backend: Optional[str] = None) -> ObjectStoreAdapter:
    """Build the adapter named by ``backend`` (or USER_ITEMS_STORE_BACKEND)."""
    backend = (backend or runtime_config.get_object_store_backend()).lower()
    if backend not in VALID_BACKENDS:
        raise ObjectStoreError(f"Unknown object store backend: {backend} (expected one of {sorted(VALID_BACKENDS)})")
    if backend == "memory":
        return InMemoryObjectStore()
    if backend == "filesystem":
        return FileSystemObjectStore(runtime_config.get_items_fs_dir())
    return S3ObjectStore(
        bucket_name=runtime_config.get_items_bucket(),
        region=runtime_config.get_aws_region(),
    )
