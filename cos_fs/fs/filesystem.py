# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Filesystem façade over COS.

This module composes path parsing, readers, writers, listing, stat resolution
and rename into the operations a caller uses to treat a COS bucket as a
hierarchical filesystem addressed by ``cos://bucket/key`` paths.

Usage:
    fs = CosFileSystem()
    with fs.new_writable_file("cos://my-bucket/data/hello.txt") as writer:
        writer.append(b"Hello, World!")
    fs.get_children("cos://my-bucket/data")   # ['hello.txt']
"""
import time
from threading import Lock

from ..client.client import COSClient, Session
from ..client.exceptions import (
    DataLossError,
    FailedPreconditionError,
    InternalError,
    NotFoundError,
    OutOfRangeError,
    StoreError,
)
from ..client.types import ListObjectsOptions
from . import glob
from .lister import DirectoryLister
from .paths import parse_cos_path
from .reader import RandomAccessReader
from .rename import RenameEngine
from .stat import StatResolver
from .utils import logger, time_function, trace_op
from .writer import SequentialWriter

# Chunk size used to read an existing object back when opening it for append
APPENDABLE_FILE_READ_CHUNK_SIZE = 1024 * 1024  # 1MB
DELETE_DIR_LIST_MAX_KEYS = 2


class CosFileSystem:
    """
    Hierarchical filesystem operations on COS.

    The store client is either injected or built lazily on first use from a
    ``Session``; construction happens once, under a lock. Readers and writers
    share that client and must not be used after ``close()``.

    Args:
        client (ObjectStoreClient, optional): Client to use. Not closed by ``close()``.
        session (Session, optional): Session for the lazily built ``COSClient``.
    """

    def __init__(self, client=None, session=None):
        self._client = client
        self._owns_client = client is None
        self._session = session
        self._client_lock = Lock()

    @property
    def client(self):
        """Return the shared client, building it on first use."""
        with self._client_lock:
            if self._client is None:
                logger.info("Creating COS client")
                self._client = COSClient(self._session or Session())
            return self._client

    def close(self):
        """Close the client if this filesystem created it."""
        with self._client_lock:
            if self._client is not None and self._owns_client:
                self._client.close()
                self._client = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # Files

    def new_random_access_file(self, fname):
        """
        Open ``fname`` for random-access reads.

        No request is made; a missing object shows up as ``OutOfRangeError`` on read.

        Raises:
            InvalidArgumentError: If the path is malformed or names no object
        """
        trace_op("new_random_access_file", fname)
        path = parse_cos_path(fname)
        return RandomAccessReader(path.bucket, path.key, self.client)

    def new_writable_file(self, fname):
        """
        Open ``fname`` for writing, starting empty.

        Existing content is replaced when the writer is synced or closed.

        Returns:
            SequentialWriter: Writer staging data until sync/close
        """
        trace_op("new_writable_file", fname)
        path = parse_cos_path(fname)
        return SequentialWriter(path.bucket, path.key, self.client)

    def new_appendable_file(self, fname):
        """
        Open ``fname`` for appending.

        COS cannot append to an object, so the current content is read back in
        1MB chunks into a new writer; later appends follow it and the next sync
        uploads everything. A missing object starts empty.

        Returns:
            SequentialWriter: Writer holding the existing content

        Raises:
            CosError: Any failure other than end-of-object; the partial writer
                is discarded without uploading
        """
        trace_op("new_appendable_file", fname)
        start_time = time.time()
        reader = self.new_random_access_file(fname)
        writer = SequentialWriter(reader.bucket, reader.key, self.client)

        offset = 0
        try:
            while True:
                try:
                    chunk = reader.read(offset, APPENDABLE_FILE_READ_CHUNK_SIZE)
                except OutOfRangeError as e:
                    writer.append(e.data)
                    break
                writer.append(chunk)
                offset += APPENDABLE_FILE_READ_CHUNK_SIZE
        except Exception:
            writer.discard()
            raise

        logger.debug(f"new_appendable_file: Loaded {writer.tell()} existing bytes for {fname}")
        time_function("new_appendable_file", start_time)
        return writer

    def new_read_only_memory_region_from_file(self, fname):
        """
        Read the whole of ``fname`` into memory.

        Returns:
            bytes: The object's content

        Raises:
            NotFoundError: If the object does not exist
            DataLossError: If fewer bytes arrive than its reported size
        """
        trace_op("new_read_only_memory_region_from_file", fname)
        size = self.get_file_size(fname)
        if size == 0:
            return b""
        reader = self.new_random_access_file(fname)
        try:
            data = reader.read(0, size)
        except OutOfRangeError as e:
            data = e.data
        if len(data) != size:
            raise DataLossError(f"expected {size} got {len(data)} bytes")
        return data

    def read_file(self, fname):
        """Read the whole of ``fname``; same checks as ``new_read_only_memory_region_from_file``."""
        return self.new_read_only_memory_region_from_file(fname)

    def write_file(self, fname, data):
        """Replace ``fname`` with ``data``."""
        with self.new_writable_file(fname) as writer:
            writer.append(data)

    def delete_file(self, fname):
        """
        Delete the object at ``fname``.

        Raises:
            InternalError: If the store rejects the delete
        """
        trace_op("delete_file", fname)
        path = parse_cos_path(fname)
        try:
            self.client.delete_object(path.bucket, path.key)
        except StoreError as e:
            raise InternalError.from_store_error(e) from e

    # Metadata

    def stat(self, fname):
        """
        Return ``FileStatistics`` for a file, emulated directory or bucket root.

        Raises:
            NotFoundError: If nothing exists at ``fname``
        """
        trace_op("stat", fname)
        path = parse_cos_path(fname, allow_empty_key=True)
        return StatResolver(self.client).stat(path.bucket, path.key)

    def resolve(self, fname):
        """Return the ``StatLookup`` (object, directory or absent) for ``fname``."""
        path = parse_cos_path(fname, allow_empty_key=True)
        return StatResolver(self.client).resolve(path.bucket, path.key)

    def get_file_size(self, fname):
        return self.stat(fname).length

    def file_exists(self, fname):
        """Return True if ``fname`` is a file, directory or bucket root, False if absent."""
        try:
            self.stat(fname)
        except NotFoundError:
            return False
        return True

    def is_directory(self, fname):
        try:
            return self.stat(fname).is_directory
        except NotFoundError:
            return False

    # Directories

    def get_children(self, dirname):
        """
        List the names directly under ``dirname``.

        Returns:
            list: Child names in store order

        Raises:
            InternalError: If a listing request fails
        """
        trace_op("get_children", dirname)
        path = parse_cos_path(dirname, allow_empty_key=True)
        return DirectoryLister(self.client).list_children(path.bucket, path.key)

    def get_matching_paths(self, pattern):
        """Return the sorted paths matching a wildcard ``pattern``."""
        trace_op("get_matching_paths", pattern)
        return glob.get_matching_paths(self, pattern)

    def create_dir(self, dirname):
        """
        Create an emulated directory by uploading an empty ``key/`` marker object.

        For a bucket root only the bucket's existence is checked.

        Raises:
            NotFoundError: If ``dirname`` is a bucket root that does not exist
        """
        trace_op("create_dir", dirname)
        path = parse_cos_path(dirname, allow_empty_key=True)
        if path.is_root:
            try:
                exists = self.client.bucket_exists(path.bucket)
            except StoreError as e:
                raise InternalError.from_store_error(e) from e
            if not exists:
                raise NotFoundError(f"The bucket {path.bucket} was not found.")
            return

        marker = path.as_directory()
        SequentialWriter(marker.bucket, marker.key, self.client).close()
        logger.debug(f"create_dir: Created marker {marker.uri}")

    def delete_dir(self, dirname):
        """
        Delete an empty emulated directory.

        Only the ``key/`` marker object may be present. An absent directory is
        not an error.

        Raises:
            FailedPreconditionError: If any other object exists under the directory
            InternalError: If the listing or delete fails
        """
        trace_op("delete_dir", dirname)
        path = parse_cos_path(dirname)
        prefix = path.as_directory().key

        options = ListObjectsOptions(prefix=prefix, max_keys=DELETE_DIR_LIST_MAX_KEYS)
        try:
            page = self.client.list_objects(path.bucket, options)
        except StoreError as e:
            raise InternalError.from_store_error(e) from e

        contents = page.object_keys
        if len(contents) > 1 or (len(contents) == 1 and contents[0] != prefix):
            raise FailedPreconditionError(f"Cannot delete a non-empty directory: cos://{path.bucket}/{prefix}")
        if len(contents) == 1:
            self.delete_file(f"cos://{path.bucket}/{prefix}")

    def rename_file(self, src, target):
        """
        Rename ``src`` to ``target`` by copying then deleting each object under ``src``.

        A ``src`` ending in ``/`` renames a directory tree. The operation is
        not atomic; see ``RenameEngine``.

        Returns:
            RenameResult: The moved ``(source_key, target_key)`` pairs

        Raises:
            RenameError: If the rename stops part way; ``.result`` lists what moved
        """
        trace_op("rename_file", src, target=target)
        source_path = parse_cos_path(src)
        target_path = parse_cos_path(target)
        return RenameEngine(self.client).rename(source_path, target_path)
