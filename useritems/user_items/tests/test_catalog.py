import pytest

from useritems.config.runtime_config import ItemStoreSettings
from useritems.object_store.memory_adapter import InMemoryObjectStore
from useritems.user_items.catalog import ItemCatalog
from useritems.user_items.key_codec import KeyCodec
from useritems.user_items.models import ContentCategory, PresentationVariant

codec = KeyCodec()


def _put(store, category, variant, name, user="alice", user_id="1"):
    key = codec.encode(user, user_id, category, variant, name)
    store.put_object(key, b"x")
    return key


@pytest.fixture
def store():
    return InMemoryObjectStore(max_page_size=2)


def test_item_without_preferred_uses_original(store):
    _put(store, "image", "original", "a.jpg")
    _put(store, "image", "preview", "a.jpg")
    [item] = ItemCatalog(store).list_items("alice", "1")
    assert item.category is ContentCategory.IMAGE
    assert item.display_name == "a"
    assert item.preferred_location == item.original_location
    assert item.preview_location.full_path == "/alice/1/image/preview/a.jpg"
    assert item.attributes == {"altText": "Preview of a", "display_name": "a"}


def test_reencoded_preferred_groups_with_original(store):
    _put(store, "image", "original", "photo.png")
    _put(store, "image", "preview", "photo.png")
    preferred_key = _put(store, "image", "preferred", "photo.jpg")
    [item] = ItemCatalog(store).list_items("alice", "1")
    assert item.display_name == "photo"
    assert item.preferred_location.key == preferred_key
    assert item.original_location.item_name == "photo.png"


def test_categories_are_kept_apart(store):
    _put(store, "image", "original", "a.jpg")
    _put(store, "unknown", "original", "a.txt")
    items = ItemCatalog(store).list_items("alice", "1")
    assert [(i.category, i.display_name) for i in items] == [
        (ContentCategory.IMAGE, "a"),
        (ContentCategory.UNKNOWN, "a"),
    ]


def test_markers_and_malformed_keys_are_skipped(store):
    _put(store, "image", "original", "a.jpg")
    store.put_object("root/alice/1/image/original/", b"")
    store.put_object("root/alice/1/image/original/nested/b.jpg", b"x")
    store.put_object("root/alice/1/image/thumbnail/c.jpg", b"x")
    items = ItemCatalog(store).list_items("alice", "1")
    assert [i.display_name for i in items] == ["a"]


def test_other_users_are_invisible(store):
    _put(store, "image", "original", "a.jpg")
    _put(store, "image", "original", "b.jpg", user="alice", user_id="2")
    assert [i.display_name for i in ItemCatalog(store).list_items("alice", "1")] == ["a"]


def test_listing_is_idempotent_across_pages(store):
    for i in range(5):
        _put(store, "image", "original", f"img{i}.jpg")
        _put(store, "image", "preview", f"img{i}.jpg")
    catalog = ItemCatalog(store)
    first = [i.model_dump() for i in catalog.list_items("alice", "1")]
    second = [i.model_dump() for i in catalog.list_items("alice", "1")]
    assert first == second
    assert len(first) == 5


def test_extensionless_names_group_by_full_name(store):
    _put(store, "unknown", "original", "README")
    _put(store, "unknown", "original", "LICENSE")
    items = ItemCatalog(store).list_items("alice", "1")
    assert sorted(i.display_name for i in items) == ["LICENSE", "README"]


def test_legacy_extensionless_grouping_collapses(store):
    _put(store, "unknown", "original", "README")
    _put(store, "unknown", "original", "LICENSE")
    catalog = ItemCatalog(store, ItemStoreSettings(legacy_extensionless_grouping=True))
    [item] = catalog.list_items("alice", "1")
    assert item.display_name == ""


def test_group_key():
    catalog = ItemCatalog(InMemoryObjectStore())
    assert catalog.group_key("a.tar.gz") == "a.tar"
    assert catalog.group_key(".bashrc") == ".bashrc"
    assert catalog.group_key("photo.jpg") == "photo"


def test_to_listing_shape(store):
    _put(store, "image", "original", "a.jpg")
    [item] = ItemCatalog(store).list_items("alice", "1")
    listing = item.to_listing()
    assert listing["type"] == "image"
    assert listing["display_name"] == "a"
    assert "preview_location" not in listing
    assert listing["original_location"] == listing["preferred_location"]
    assert listing["original_location"]["full_path"] == "/alice/1/image/original/a.jpg"
    assert listing["attr"] == {"display_name": "a"}


def test_item_locations_only_reports_present_variants(store):
    _put(store, "image", "original", "a.jpg")
    locations = ItemCatalog(store).item_locations("alice", "1")
    assert list(locations) == [ContentCategory.IMAGE]
    assert list(locations[ContentCategory.IMAGE]) == [PresentationVariant.ORIGINAL]
