"""Runtime configuration helpers for user items."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

DEFAULT_MAX_FILES_PER_USER = 100
DEFAULT_MAX_TOTAL_FILES = 1000
DEFAULT_ITEM_QUOTA = 100
# 0.5 GB; uploads are expected to be small, retrieves are buffered in memory.
DEFAULT_MAX_RETRIEVE_BYTES = (1024 * 1024 * 1024) // 2
DEFAULT_MAX_UPLOAD_BYTES = 2 * 1024 * 1024
DEFAULT_PREVIEW_WIDTH_PX = 200
DEFAULT_PREFERRED_MAX_WIDTH_PX = 1024
# Derived renditions never exceed this height; JPEG stops at 65500 px.
DEFAULT_MAX_DERIVED_HEIGHT_PX = 4096
MAX_ENCODER_DIMENSION_PX = 65500
DEFAULT_IMAGE_ENCODE_QUALITY = 0.7
DEFAULT_LIST_PAGE_SIZE = 1000


def _get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name, default)


def _get_int(name: str, default: int) -> int:
    raw = (_get_env(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got: {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got: {value}")
    return value


def _get_float(name: str, default: float) -> float:
    raw = (_get_env(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got: {raw!r}") from exc


def _get_bool(name: str, default: bool = False) -> bool:
    raw = (_get_env(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def get_env() -> Optional[str]:
    return _get_env("ENV") or _get_env("APP_ENV")


def get_object_store_backend() -> str:
    return (_get_env("USER_ITEMS_STORE_BACKEND") or "s3").strip().lower()


def get_items_bucket() -> Optional[str]:
    return _get_env("USER_ITEMS_BUCKET")


def get_items_fs_dir() -> Optional[str]:
    return _get_env("USER_ITEMS_FS_DIR")


def get_aws_region() -> Optional[str]:
    return _get_env("AWS_REGION") or _get_env("AWS_DEFAULT_REGION")


def _default_category_quotas() -> Dict[str, int]:
    return {"image": DEFAULT_ITEM_QUOTA, "unknown": DEFAULT_ITEM_QUOTA // 2}


@dataclass(frozen=True)
class ItemStoreSettings:
    """Limits and rendering options for the user item store.

    Built once at startup (see ``load_item_store_settings``) and injected into the
    object store adapter and the services; never read from module globals.
    """

    max_files_per_user: int = DEFAULT_MAX_FILES_PER_USER
    max_total_files: int = DEFAULT_MAX_TOTAL_FILES
    max_retrieve_bytes: int = DEFAULT_MAX_RETRIEVE_BYTES
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    preview_width_px: int = DEFAULT_PREVIEW_WIDTH_PX
    preferred_max_width_px: int = DEFAULT_PREFERRED_MAX_WIDTH_PX
    max_derived_height_px: int = DEFAULT_MAX_DERIVED_HEIGHT_PX
    image_encode_quality: float = DEFAULT_IMAGE_ENCODE_QUALITY
    image_encode_format: str = "JPEG"
    list_page_size: int = DEFAULT_LIST_PAGE_SIZE
    root_marker: str = "root"
    category_quotas: Mapping[str, int] = field(default_factory=_default_category_quotas)
    legacy_extensionless_grouping: bool = False

    def __post_init__(self) -> None:
        for name in (
            "max_files_per_user",
            "max_total_files",
            "max_retrieve_bytes",
            "max_upload_bytes",
            "preview_width_px",
            "preferred_max_width_px",
            "max_derived_height_px",
            "list_page_size",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        if self.max_derived_height_px > MAX_ENCODER_DIMENSION_PX:
            raise ValueError(f"max_derived_height_px must be at most {MAX_ENCODER_DIMENSION_PX}")
        if not (0.0 < self.image_encode_quality <= 1.0):
            raise ValueError("image_encode_quality must be in (0, 1]")
        if not self.root_marker or "/" in self.root_marker:
            raise ValueError("root_marker must be a single non-empty path segment")

    def category_quota(self, category: str) -> Optional[int]:
        return self.category_quotas.get(category)


def load_item_store_settings() -> ItemStoreSettings:
    """Read ``USER_ITEMS_*`` environment variables into an immutable settings object."""
    quotas = _default_category_quotas()
    quotas["image"] = _get_int("USER_ITEMS_IMAGE_QUOTA", quotas["image"])
    quotas["unknown"] = _get_int("USER_ITEMS_UNKNOWN_QUOTA", quotas["unknown"])
    return ItemStoreSettings(
        max_files_per_user=_get_int("USER_ITEMS_MAX_FILES_PER_USER", DEFAULT_MAX_FILES_PER_USER),
        max_total_files=_get_int("USER_ITEMS_MAX_TOTAL_FILES", DEFAULT_MAX_TOTAL_FILES),
        max_retrieve_bytes=_get_int("USER_ITEMS_MAX_RETRIEVE_BYTES", DEFAULT_MAX_RETRIEVE_BYTES),
        max_upload_bytes=_get_int("USER_ITEMS_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
        preview_width_px=_get_int("USER_ITEMS_PREVIEW_WIDTH_PX", DEFAULT_PREVIEW_WIDTH_PX),
        preferred_max_width_px=_get_int(
            "USER_ITEMS_PREFERRED_MAX_WIDTH_PX", DEFAULT_PREFERRED_MAX_WIDTH_PX
        ),
        max_derived_height_px=_get_int("USER_ITEMS_MAX_DERIVED_HEIGHT_PX", DEFAULT_MAX_DERIVED_HEIGHT_PX),
        image_encode_quality=_get_float("USER_ITEMS_IMAGE_ENCODE_QUALITY", DEFAULT_IMAGE_ENCODE_QUALITY),
        image_encode_format=(_get_env("USER_ITEMS_IMAGE_ENCODE_FORMAT") or "JPEG").strip().upper(),
        list_page_size=_get_int("USER_ITEMS_LIST_PAGE_SIZE", DEFAULT_LIST_PAGE_SIZE),
        root_marker=(_get_env("USER_ITEMS_ROOT_MARKER") or "root").strip(),
        category_quotas=quotas,
        legacy_extensionless_grouping=_get_bool("USER_ITEMS_LEGACY_EXTENSIONLESS_GROUPING"),
    )
