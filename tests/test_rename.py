import pytest

from cos_fs.client.exceptions import RenameError
from cos_fs.fs.paths import ObjectPath
from cos_fs.fs.rename import RenameEngine


def test_normalize_target_key():
    assert RenameEngine.normalize_target_key("dir/", "new") == "new/"
    assert RenameEngine.normalize_target_key("dir/", "new/") == "new/"
    assert RenameEngine.normalize_target_key("file", "new/") == "new"
    assert RenameEngine.normalize_target_key("file", "new") == "new"


def test_rename_single_object(store, bucket):
    store.put(bucket, "a.txt", b"test")
    result = RenameEngine(store).rename(ObjectPath(bucket, "a.txt"), ObjectPath(bucket, "b.txt"))
    assert result.ok
    assert result.completed == [("a.txt", "b.txt")]
    assert store.keys(bucket) == ["b.txt"]
    assert store.content(bucket, "b.txt") == b"test"


def test_rename_directory_tree(store, bucket):
    for key in ("src/", "src/one", "src/sub/two"):
        store.put(bucket, key, key.encode())
    engine = RenameEngine(store, max_keys=1)
    result = engine.rename(ObjectPath(bucket, "src/"), ObjectPath(bucket, "dst"))
    assert result.target == f"cos://{bucket}/dst/"
    assert store.keys(bucket) == ["dst/", "dst/one", "dst/sub/two"]
    assert store.content(bucket, "dst/sub/two") == b"src/sub/two"


def test_rename_copies_before_deleting(store, bucket):
    store.put(bucket, "a", b"x")
    RenameEngine(store).rename(ObjectPath(bucket, "a"), ObjectPath(bucket, "b"))
    operations = [call[0] for call in store.calls if call[0] in ("copy_object", "delete_object")]
    assert operations == ["copy_object", "delete_object"]


def test_rename_nothing_matched(store, bucket):
    result = RenameEngine(store).rename(ObjectPath(bucket, "missing"), ObjectPath(bucket, "b"))
    assert result.ok
    assert result.completed == []
    assert store.calls_to("copy_object") == []


def test_rename_uses_raw_prefix(store, bucket):
    store.put(bucket, "a/b", b"1")
    store.put(bucket, "a/bc", b"2")
    RenameEngine(store).rename(ObjectPath(bucket, "a/b"), ObjectPath(bucket, "z"))
    assert store.keys(bucket) == ["z", "zc"]


def test_partial_failure_reports_moved_objects(store, bucket):
    for key in ("src/1", "src/2", "src/3"):
        store.put(bucket, key, b"x")
    store.fail_on("copy_object", key="dst/2", store_code="AccessDenied")

    with pytest.raises(RenameError, match="AccessDenied") as exc_info:
        RenameEngine(store).rename(ObjectPath(bucket, "src/"), ObjectPath(bucket, "dst/"))

    result = exc_info.value.result
    assert not result.ok
    assert result.completed == [("src/1", "dst/1")]
    assert result.failed.step == "copy"
    assert result.failed.source_key == "src/2"
    assert store.keys(bucket) == ["dst/1", "src/2", "src/3"]


def test_delete_failure_leaves_both_copies(store, bucket):
    store.put(bucket, "a", b"x")
    store.fail_on("delete_object", key="a")
    with pytest.raises(RenameError) as exc_info:
        RenameEngine(store).rename(ObjectPath(bucket, "a"), ObjectPath(bucket, "b"))
    assert exc_info.value.result.failed.step == "delete"
    assert store.keys(bucket) == ["a", "b"]


def test_listing_failure(store, bucket):
    store.put(bucket, "a", b"x")
    store.fail_on("list_objects", store_code="SlowDown")
    with pytest.raises(RenameError, match="SlowDown") as exc_info:
        RenameEngine(store).rename(ObjectPath(bucket, "a"), ObjectPath(bucket, "b"))
    assert exc_info.value.result.failed.step == "list"
    assert store.keys(bucket) == ["a"]
