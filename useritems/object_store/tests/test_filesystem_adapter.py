import pytest

from useritems.object_store.adapter import ObjectNotFoundError, ObjectStoreError, iter_list_objects
from useritems.object_store.filesystem_adapter import FileSystemObjectStore


def test_roundtrip_and_listing(tmp_path):
    store = FileSystemObjectStore(tmp_path, max_page_size=2)
    for name in ("a.jpg", "b.jpg", "c.jpg"):
        store.put_object(f"root/u/1/image/original/{name}", name.encode())
    store.put_object("root/u/2/image/original/z.jpg", b"z")

    assert store.get_object("root/u/1/image/original/b.jpg").data == b"b.jpg"
    keys = [o.key for o in iter_list_objects(store, "root/u/1/")]
    assert keys == [
        "root/u/1/image/original/a.jpg",
        "root/u/1/image/original/b.jpg",
        "root/u/1/image/original/c.jpg",
    ]
    assert store.delete_object("root/u/1/image/original/a.jpg") is True
    assert store.delete_object("root/u/1/image/original/a.jpg") is False
    with pytest.raises(ObjectNotFoundError):
        store.get_object("root/u/1/image/original/a.jpg")


def test_rejects_traversal(tmp_path):
    store = FileSystemObjectStore(tmp_path)
    with pytest.raises(ObjectStoreError):
        store.put_object("root/../../etc/passwd", b"x")
