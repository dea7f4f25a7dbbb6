"""User item service: upload, fetch, delete and list a user's items.

Data about a user's items lives only in the object store keys (see key_codec);
nothing here holds state between requests.
"""
from __future__ import annotations

import base64
import logging
from pathlib import PurePosixPath
from typing import Callable, List, Optional, Sequence, Type, TypeVar

from useritems.common.identity import UserContext
from useritems.config.runtime_config import ItemStoreSettings, load_item_store_settings
from useritems.logging.event_log import EventLogEntry, EventLogger, default_event_logger
from useritems.object_store.adapter import DEFAULT_CONTENT_TYPE, ObjectStoreAdapter, ObjectStoreError
from useritems.object_store.factory import build_object_store
from useritems.user_items.catalog import ItemCatalog
from useritems.user_items.errors import (
    InternalError,
    InvalidItemRequestError,
    QuotaExceededError,
    UnsupportedEncodingError,
    UploadTooLargeError,
)
from useritems.user_items.key_codec import KeyCodec
from useritems.user_items.models import (
    ContentCategory,
    LogicalItem,
    PresentationVariant,
    UploadResult,
)
from useritems.user_items.pipeline import ArtifactPipeline
from useritems.user_items.plugins import ArtifactPlugin, default_plugins
from useritems.user_items.quota import QuotaGuard

logger = logging.getLogger(__name__)

PluginFactory = Callable[[], Sequence[ArtifactPlugin]]
_EnumT = TypeVar("_EnumT", ContentCategory, PresentationVariant)

# original first: an interrupted upload still lists as an item
WRITE_ORDER = (PresentationVariant.ORIGINAL, PresentationVariant.PREVIEW, PresentationVariant.PREFERRED)


class AvailableEncodings:
    BASE64 = "BASE64"
    IDENTITY = "IDENTITY"

    @classmethod
    def is_available(cls, encoding: str) -> bool:
        return encoding in (cls.BASE64, cls.IDENTITY)


class UploadMetadataFields:
    PUBLIC = "public"
    DISPLAY_NAME = "display_name"
    CONTENT_TYPE = "type"
    FALSE_VALUE = "false"


def sanitize_item_name(name: Optional[str]) -> str:
    """Reduce an uploaded file name to a single safe key segment."""
    candidate = PurePosixPath((name or "").replace("\\", "/")).name.strip()
    if not candidate or candidate in {".", ".."}:
        raise InvalidItemRequestError(f"Invalid item name: {name!r}")
    return candidate


def preferred_item_name(name: str, extension: str) -> str:
    """Name for the preferred rendition when it was re-encoded to another format.

    Browsers pick the download name from the last path segment, so the
    preferred copy of photo.png encoded as JPEG is stored as photo.jpg.
    """
    if not extension:
        return name
    if not extension.startswith("."):
        extension = "." + extension
    if name.endswith(extension):
        return name
    ext_index = name.rfind(".")
    if ext_index > 0:
        return name[:ext_index] + extension
    return name + extension


def _coerce(enum_cls: Type[_EnumT], value, label: str) -> _EnumT:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidItemRequestError(f"Invalid {label}: {value!r}") from exc


class UserItemService:
    def __init__(
        self,
        store: Optional[ObjectStoreAdapter] = None,
        settings: Optional[ItemStoreSettings] = None,
        plugin_factory: Optional[PluginFactory] = None,
        event_logger: Optional[EventLogger] = None,
    ) -> None:
        self.settings = settings or load_item_store_settings()
        self.store = store or build_object_store()
        self.codec = KeyCodec(self.settings.root_marker)
        self.quota = QuotaGuard(self.store, self.settings, self.codec)
        self.catalog = ItemCatalog(self.store, self.settings, self.codec)
        self.plugin_factory = plugin_factory or (lambda: default_plugins(self.settings))
        self.event_logger = event_logger or default_event_logger

    def _emit(self, ctx: UserContext, event_type: str, asset_id: str, metadata: dict) -> None:
        self.event_logger(
            EventLogEntry(
                event_type=event_type,
                asset_type="user_item",
                asset_id=asset_id,
                user_name=ctx.user_name,
                user_id=ctx.user_id,
                request_id=ctx.request_id,
                metadata=metadata,
            )
        )

    def _admit(self, ctx: UserContext, name: str, check: Callable[[], None]) -> None:
        try:
            check()
        except QuotaExceededError as exc:
            self._emit(
                ctx,
                "user_item_quota_rejected",
                name,
                {"scope": exc.scope, "limit": exc.limit},
            )
            raise

    def add_item(self, ctx: UserContext, name: str, data: bytes) -> UploadResult:
        """Store an upload and its derived variants.

        Quotas are checked before anything is written. Variants are written one
        by one, so a failure part way leaves the variants already stored.
        """
        safe_name = sanitize_item_name(name)
        if len(data) > self.settings.max_upload_bytes:
            raise UploadTooLargeError(
                f"Upload of {len(data)} bytes exceeds the {self.settings.max_upload_bytes} byte limit",
                size=len(data),
                limit=self.settings.max_upload_bytes,
            )
        self._admit(ctx, safe_name, lambda: self.quota.check(ctx.user_name, ctx.user_id))

        result = ArtifactPipeline(self.plugin_factory()).process(data)
        category = result.category
        self._admit(
            ctx,
            safe_name,
            lambda: self.quota.check_category(ctx.user_name, ctx.user_id, category),
        )

        uploads = {}
        for variant, payload in result.variants.items():
            try:
                uploads[PresentationVariant(variant)] = payload
            except ValueError:
                logger.error(
                    "Upload plugin had an entry with a presentation type of: %r that is not a known variant",
                    variant,
                )

        keys = {}
        for variant in WRITE_ORDER:
            if variant not in uploads:
                continue
            stored_name = safe_name
            if variant is PresentationVariant.PREFERRED:
                stored_name = preferred_item_name(safe_name, result.preferred_extension)
            key = self.codec.encode(ctx.user_name, ctx.user_id, category, variant, stored_name)
            try:
                self.store.put_object(
                    key,
                    uploads[variant],
                    content_type=DEFAULT_CONTENT_TYPE,
                    metadata={
                        UploadMetadataFields.PUBLIC: UploadMetadataFields.FALSE_VALUE,
                        UploadMetadataFields.DISPLAY_NAME: stored_name,
                        UploadMetadataFields.CONTENT_TYPE: category.value,
                    },
                )
            except ObjectStoreError as exc:
                logger.exception("Failed to store %s variant of %r at %s", variant.value, safe_name, key)
                raise InternalError("Failed to store item") from exc
            keys[variant] = key

        self._emit(
            ctx,
            "user_item_uploaded",
            safe_name,
            {
                "category": category.value,
                "size_bytes": len(data),
                "keys": {v.value: k for v, k in keys.items()},
            },
        )
        return UploadResult(category=category, display_name=safe_name, keys=keys)

    def normalize_encoding(self, encoding: Optional[str]) -> str:
        """Canonical encoding name; raises UnsupportedEncodingError for anything else."""
        if not encoding:
            return AvailableEncodings.IDENTITY
        normalized = encoding.strip().upper()
        if not AvailableEncodings.is_available(normalized):
            raise UnsupportedEncodingError(f"Requested encoding type: {encoding} not available")
        return normalized

    def _item_key(self, ctx: UserContext, category, variant, name: str) -> str:
        category = _coerce(ContentCategory, category, "category")
        variant = _coerce(PresentationVariant, variant, "presentation variant")
        if sanitize_item_name(name) != name:
            raise InvalidItemRequestError(f"Invalid item name: {name!r}")
        return self.codec.encode(ctx.user_name, ctx.user_id, category, variant, name)

    def get_item(
        self,
        ctx: UserContext,
        category,
        variant,
        name: str,
        encoding: Optional[str] = None,
    ) -> bytes:
        """Bytes of one stored variant, optionally base64 encoded (as UTF-8 bytes).

        Raises UnsupportedEncodingError before touching the store; propagates
        ObjectNotFoundError and ObjectTooLargeError from the store.
        """
        encoding = self.normalize_encoding(encoding)
        key = self._item_key(ctx, category, variant, name)
        stored = self.store.get_object(key, max_bytes=self.settings.max_retrieve_bytes)
        logger.debug("GET %s read %d bytes", key, len(stored.data))
        if encoding == AvailableEncodings.BASE64:
            return base64.b64encode(stored.data)
        return stored.data

    def delete_variant(self, ctx: UserContext, category, variant, name: str) -> bool:
        """Delete one stored variant; False when nothing was there."""
        key = self._item_key(ctx, category, variant, name)
        deleted = self.store.delete_object(key)
        if not deleted:
            logger.debug("Did not find item at: %s", key)
            return False
        logger.debug("Deleted item at: %s", key)
        self._emit(ctx, "user_item_variant_deleted", name, {"key": key})
        return True

    def list_items(self, ctx: UserContext) -> List[LogicalItem]:
        return self.catalog.list_items(ctx.user_name, ctx.user_id)


# Module-level default service for the HTTP surface.
_default_service: Optional[UserItemService] = None


def get_user_item_service() -> UserItemService:
    global _default_service
    if _default_service is None:
        _default_service = UserItemService()
    return _default_service


def set_user_item_service(service: Optional[UserItemService]) -> None:
    """Override the default service (useful for tests)."""
    global _default_service
    _default_service = service
