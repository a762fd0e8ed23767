import errno
import os

import pytest

try:
    import fuse  # noqa: F401
except (ImportError, OSError):
    pytest.skip("fusepy or libfuse is not available", allow_module_level=True)

from fuse import FuseOSError

from cos_fs.fs.filesystem import CosFileSystem
from cos_fs.fuse.fuse_mount import CosFuse
from cos_fs.fuse.mount_utils import get_mount_options


@pytest.fixture
def ops(store, bucket):
    return CosFuse(bucket, fs=CosFileSystem(client=store))


def test_missing_bucket_rejected(store):
    with pytest.raises(ValueError, match="does not exist"):
        CosFuse("missing-bucket", fs=CosFileSystem(client=store))


def test_getattr_root_and_missing(ops):
    assert ops.getattr("/")["st_mode"] & 0o170000 == 0o040000
    with pytest.raises(FuseOSError) as exc_info:
        ops.getattr("/missing")
    assert exc_info.value.errno == errno.ENOENT


def test_getattr_file_and_directory(ops, store, bucket):
    store.put(bucket, "dir/file.txt", b"hello")
    file_attrs = ops.getattr("/dir/file.txt")
    assert file_attrs["st_size"] == 5
    assert file_attrs["st_mode"] & 0o170000 == 0o100000
    assert ops.getattr("/dir")["st_mode"] & 0o170000 == 0o040000


def test_create_write_release(ops, store, bucket):
    fh = ops.create("/new.txt", 0o644)
    assert store.content(bucket, "new.txt") == b""
    assert ops.write("/new.txt", b"abc", 0, fh) == 3
    assert ops.write("/new.txt", b"def", 3, fh) == 3
    assert ops.getattr("/new.txt")["st_size"] == 6
    ops.release("/new.txt", fh)
    assert store.content(bucket, "new.txt") == b"abcdef"
    assert "/new.txt" not in ops.writers


def test_non_sequential_write_rejected(ops):
    ops.create("/f", 0o644)
    with pytest.raises(FuseOSError) as exc_info:
        ops.write("/f", b"x", 10, 0)
    assert exc_info.value.errno == errno.EINVAL


def test_write_without_open_writer(ops):
    with pytest.raises(FuseOSError) as exc_info:
        ops.write("/f", b"x", 0, 0)
    assert exc_info.value.errno == errno.EBADF


def test_open_for_append_keeps_content(ops, store, bucket):
    store.put(bucket, "log", b"one")
    fh = ops.open("/log", os.O_WRONLY | os.O_APPEND)
    ops.write("/log", b"two", 3, fh)
    ops.fsync("/log", 0, fh)
    assert store.content(bucket, "log") == b"onetwo"
    ops.release("/log", fh)


def test_open_with_truncate(ops, store, bucket):
    store.put(bucket, "log", b"old")
    fh = ops.open("/log", os.O_WRONLY | os.O_TRUNC)
    ops.write("/log", b"new", 0, fh)
    ops.release("/log", fh)
    assert store.content(bucket, "log") == b"new"


def test_release_keeps_writer_for_other_handle(ops, store, bucket):
    first = ops.open("/shared", os.O_WRONLY | os.O_TRUNC)
    second = ops.open("/shared", os.O_WRONLY | os.O_TRUNC)
    assert first != second

    ops.write("/shared", b"ab", 0, first)
    ops.release("/shared", first)
    assert store.content(bucket, "shared") == b"ab"
    assert "/shared" in ops.writers

    assert ops.write("/shared", b"cd", 2, second) == 2
    ops.release("/shared", second)
    assert store.content(bucket, "shared") == b"abcd"
    assert "/shared" not in ops.writers
    assert ops.handles == {}


def test_release_read_only_handle_keeps_writer(ops, store, bucket):
    fh = ops.create("/f", 0o644)
    reader_fh = ops.open("/f", os.O_RDONLY)
    assert reader_fh == 0
    ops.write("/f", b"x", 0, fh)
    ops.release("/f", reader_fh)
    assert ops.write("/f", b"y", 1, fh) == 1
    ops.release("/f", fh)
    assert store.content(bucket, "f") == b"xy"


def test_open_read_only_missing(ops):
    with pytest.raises(FuseOSError) as exc_info:
        ops.open("/missing", os.O_RDONLY)
    assert exc_info.value.errno == errno.ENOENT


def test_read(ops, store, bucket):
    store.put(bucket, "data", b"abcdefghijklmn")
    assert ops.read("/data", 4, 2, 0) == b"cdef"
    assert ops.read("/data", 4, 100, 0) == b""


def test_readdir(ops, store, bucket):
    store.put(bucket, "dir/a", b"")
    store.put(bucket, "dir/sub/b", b"")
    assert sorted(ops.readdir("/dir", 0)) == [".", "..", "a", "sub"]


def test_truncate(ops, store, bucket):
    store.put(bucket, "file", b"abcdef")
    ops.truncate("/file", 3)
    assert store.content(bucket, "file") == b"abc"
    ops.truncate("/file", 5)
    assert store.content(bucket, "file") == b"abc\0\0"
    ops.truncate("/file", 0)
    assert store.content(bucket, "file") == b""


def test_mkdir_rmdir(ops, store, bucket):
    ops.mkdir("/d", 0o755)
    assert store.keys(bucket) == ["d/"]
    with pytest.raises(FuseOSError) as exc_info:
        ops.mkdir("/d", 0o755)
    assert exc_info.value.errno == errno.EEXIST

    store.put(bucket, "d/child", b"x")
    with pytest.raises(FuseOSError) as exc_info:
        ops.rmdir("/d")
    assert exc_info.value.errno == errno.ENOTEMPTY

    ops.unlink("/d/child")
    ops.rmdir("/d")
    assert store.keys(bucket) == []


def test_rename_file_and_directory(ops, store, bucket):
    store.put(bucket, "a.txt", b"a")
    ops.rename("/a.txt", "/b.txt")
    assert store.keys(bucket) == ["b.txt"]

    store.put(bucket, "src/", b"")
    store.put(bucket, "src/x", b"x")
    ops.rename("/src", "/dst")
    assert store.keys(bucket) == ["b.txt", "dst/", "dst/x"]


def test_rename_missing(ops):
    with pytest.raises(FuseOSError) as exc_info:
        ops.rename("/missing", "/other")
    assert exc_info.value.errno == errno.ENOENT


def test_store_failure_is_eio(ops, store):
    store.fail_on("list_objects", store_code="ServiceUnavailable")
    with pytest.raises(FuseOSError) as exc_info:
        ops.readdir("/", 0)
    assert exc_info.value.errno == errno.EIO


def test_destroy_uploads_open_writers(ops, store, bucket):
    ops.create("/pending", 0o644)
    ops.write("/pending", b"late", 0, 0)
    ops.destroy("/")
    assert store.content(bucket, "pending") == b"late"
    assert store.closed is False


def test_mount_options():
    options = get_mount_options(foreground=False, allow_other=True)
    assert options["foreground"] is False
    assert options["allow_other"] is True
    assert "allow_other" not in get_mount_options()
