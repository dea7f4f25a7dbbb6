import base64
import io
from unittest.mock import MagicMock

import pytest
from PIL import Image

from useritems.common.identity import UserContext
from useritems.config.runtime_config import ItemStoreSettings
from useritems.logging.event_log import InMemoryEventLogger
from useritems.object_store.adapter import ObjectStoreError, ObjectTooLargeError
from useritems.object_store.memory_adapter import InMemoryObjectStore
from useritems.user_items.errors import (
    InternalError,
    InvalidItemRequestError,
    QuotaExceededError,
    UnsupportedEncodingError,
    UploadTooLargeError,
)
from useritems.user_items.models import ContentCategory, PresentationVariant
from useritems.user_items.service import UserItemService, preferred_item_name, sanitize_item_name

CTX = UserContext(user_name="alice", user_id="42", request_id="req-1")


def _image_bytes(width, height, fmt="JPEG"):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color="blue").save(buf, format=fmt)
    return buf.getvalue()


def _service(store=None, events=None, **settings):
    return UserItemService(
        store=store if store is not None else InMemoryObjectStore(),
        settings=ItemStoreSettings(**settings),
        event_logger=events if events is not None else InMemoryEventLogger(),
    )


def test_upload_wide_image_end_to_end():
    store = InMemoryObjectStore()
    events = InMemoryEventLogger()
    service = _service(store, events)
    data = _image_bytes(2000, 1000)

    result = service.add_item(CTX, "a.jpg", data)

    assert result.category is ContentCategory.IMAGE
    assert result.keys == {
        PresentationVariant.ORIGINAL: "root/alice/42/image/original/a.jpg",
        PresentationVariant.PREVIEW: "root/alice/42/image/preview/a.jpg",
        PresentationVariant.PREFERRED: "root/alice/42/image/preferred/a.jpg",
    }
    original = store.get_object("root/alice/42/image/original/a.jpg")
    assert original.data == data
    assert original.metadata == {"public": "false", "display_name": "a.jpg", "type": "image"}

    [item] = service.list_items(CTX)
    assert item.display_name == "a"
    assert item.attributes["altText"] == "Preview of a"
    assert item.preferred_location.key == "root/alice/42/image/preferred/a.jpg"

    preferred = service.get_item(CTX, "image", "preferred", "a.jpg")
    with Image.open(io.BytesIO(preferred)) as img:
        assert img.size == (1024, 512)

    [uploaded] = events.of_type("user_item_uploaded")
    assert uploaded.metadata["category"] == "image"
    assert uploaded.request_id == "req-1"


def test_upload_wide_png_preferred_gets_jpg_name():
    service = _service()
    result = service.add_item(CTX, "photo.png", _image_bytes(1500, 500, fmt="PNG"))
    assert result.keys[PresentationVariant.PREFERRED] == "root/alice/42/image/preferred/photo.jpg"
    assert result.keys[PresentationVariant.ORIGINAL] == "root/alice/42/image/original/photo.png"
    [item] = service.list_items(CTX)
    assert item.display_name == "photo"
    assert item.preferred_location.item_name == "photo.jpg"


def test_upload_unknown_content():
    store = InMemoryObjectStore()
    service = _service(store)
    result = service.add_item(CTX, "notes.txt", b"hello world")
    assert result.category is ContentCategory.UNKNOWN
    assert list(result.keys) == [PresentationVariant.ORIGINAL]
    assert list(store.objects) == ["root/alice/42/unknown/original/notes.txt"]
    [item] = service.list_items(CTX)
    assert item.preferred_location == item.original_location
    assert item.preview_location is None


def test_user_quota_rejection_writes_nothing():
    store = InMemoryObjectStore()
    events = InMemoryEventLogger()
    service = _service(store, events, max_files_per_user=2)
    store.put_object("root/alice/42/unknown/original/x1", b"x")
    store.put_object("root/alice/42/unknown/original/x2", b"x")
    before = dict(store.objects)

    with pytest.raises(QuotaExceededError) as excinfo:
        service.add_item(CTX, "a.jpg", _image_bytes(300, 200))

    assert excinfo.value.scope == "user"
    assert store.objects == before
    [rejected] = events.of_type("user_item_quota_rejected")
    assert rejected.metadata == {"scope": "user", "limit": 2}
    assert events.of_type("user_item_uploaded") == []


def test_category_quota_rejection_writes_nothing():
    store = InMemoryObjectStore()
    service = _service(store, category_quotas={"image": 1})
    service.add_item(CTX, "a.jpg", _image_bytes(300, 200))
    before = dict(store.objects)
    with pytest.raises(QuotaExceededError) as excinfo:
        service.add_item(CTX, "b.jpg", _image_bytes(300, 200))
    assert excinfo.value.scope == "category:image"
    assert store.objects == before
    # other categories are still admitted
    service.add_item(CTX, "c.bin", b"\x00\x01")


def test_get_item_base64_and_case_insensitive_encoding():
    service = _service()
    service.add_item(CTX, "blob.bin", b"\x00payload")
    assert service.get_item(CTX, "unknown", "original", "blob.bin", encoding="base64") == base64.b64encode(
        b"\x00payload"
    )
    assert service.get_item(CTX, "unknown", "original", "blob.bin", encoding="") == b"\x00payload"
    assert service.get_item(CTX, "unknown", "original", "blob.bin", encoding="Identity") == b"\x00payload"


def test_unsupported_encoding_rejected_before_store_access():
    store = MagicMock()
    service = _service(store)
    with pytest.raises(UnsupportedEncodingError):
        service.get_item(CTX, "unknown", "original", "blob.bin", encoding="gzip")
    store.get_object.assert_not_called()


def test_get_item_too_large():
    service = _service(max_retrieve_bytes=10)
    service.add_item(CTX, "blob.bin", b"x" * 11)
    with pytest.raises(ObjectTooLargeError):
        service.get_item(CTX, "unknown", "original", "blob.bin")


def test_delete_variant():
    events = InMemoryEventLogger()
    service = _service(events=events)
    service.add_item(CTX, "a.jpg", _image_bytes(300, 200))
    assert service.delete_variant(CTX, "image", "preview", "a.jpg") is True
    assert service.delete_variant(CTX, "image", "preview", "a.jpg") is False
    [item] = service.list_items(CTX)
    assert item.preview_location is None
    assert len(events.of_type("user_item_variant_deleted")) == 1


@pytest.mark.parametrize(
    "category, variant, name",
    [
        ("video", "original", "a.jpg"),
        ("image", "thumbnail", "a.jpg"),
        ("image", "original", "../a.jpg"),
        ("image", "original", ""),
    ],
)
def test_invalid_item_coordinates(category, variant, name):
    with pytest.raises(InvalidItemRequestError):
        _service().get_item(CTX, category, variant, name)


def test_store_failure_becomes_internal_error():
    store = MagicMock()
    store.list_page.return_value.objects = []
    store.list_page.return_value.is_truncated = False
    store.put_object.side_effect = ObjectStoreError("boom")
    with pytest.raises(InternalError):
        _service(store).add_item(CTX, "blob.bin", b"data")


def test_sanitize_item_name():
    assert sanitize_item_name("dir/sub/a.jpg") == "a.jpg"
    assert sanitize_item_name("C:\\Users\\me\\a.jpg") == "a.jpg"
    for bad in ("", None, "..", "a/.."):
        with pytest.raises(InvalidItemRequestError):
            sanitize_item_name(bad)


def test_preferred_item_name():
    assert preferred_item_name("photo.png", "jpg") == "photo.jpg"
    assert preferred_item_name("photo.jpg", "jpg") == "photo.jpg"
    assert preferred_item_name("photo", ".jpg") == "photo.jpg"
    assert preferred_item_name("photo.png", "") == "photo.png"
    assert preferred_item_name("archive.jpg.png", "jpg") == "archive.jpg.jpg"


class _PreviewOnlyPlugin:
    def can_handle(self, data):
        return True

    def content_category(self):
        return ContentCategory.IMAGE

    def process(self, data):
        return {PresentationVariant.PREVIEW: b"p"}

    def preferred_extension(self):
        return ""


def test_original_is_stored_even_when_plugin_omits_it():
    store = InMemoryObjectStore()
    service = UserItemService(
        store=store,
        settings=ItemStoreSettings(),
        plugin_factory=lambda: [_PreviewOnlyPlugin()],
        event_logger=InMemoryEventLogger(),
    )
    service.add_item(CTX, "a.jpg", b"raw")
    assert store.get_object("root/alice/42/image/original/a.jpg").data == b"raw"
    [item] = service.list_items(CTX)
    assert item.original_location.key == "root/alice/42/image/original/a.jpg"
    assert item.preview_location.key == "root/alice/42/image/preview/a.jpg"


def test_upload_over_size_limit_rejected_before_processing():
    store = InMemoryObjectStore()
    plugin_factory = MagicMock()
    service = UserItemService(
        store=store,
        settings=ItemStoreSettings(max_upload_bytes=4),
        plugin_factory=plugin_factory,
        event_logger=InMemoryEventLogger(),
    )
    with pytest.raises(UploadTooLargeError) as excinfo:
        service.add_item(CTX, "blob.bin", b"12345")
    assert excinfo.value.limit == 4
    plugin_factory.assert_not_called()
    assert store.objects == {}
    assert store.list_calls == 0
    service.add_item(CTX, "blob.bin", b"1234")


@pytest.mark.parametrize(
    "raw, expected",
    [(None, "IDENTITY"), ("", "IDENTITY"), (" base64 ", "BASE64"), ("identity", "IDENTITY")],
)
def test_normalize_encoding(raw, expected):
    assert _service().normalize_encoding(raw) == expected
