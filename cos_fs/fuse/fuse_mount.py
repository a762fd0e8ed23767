# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
FUSE implementation for COS.

This module mounts a COS bucket as a local filesystem. Every FUSE callback is
translated into a ``CosFileSystem`` operation, so the mounted view has the same
directory emulation as the library: directories are key prefixes, writes are
staged locally and uploaded whole on flush/fsync/release, and rename is
copy + delete per object.

Writes must be sequential. A file opened for writing without ``O_TRUNC`` is
loaded through ``new_appendable_file`` so writes continue at its end.

Usage:
    # Create a mount point
    mkdir -p /mnt/cos-bucket

    # Mount the bucket
    python -m cos_fs.fuse my-bucket-1250000000 /mnt/cos-bucket

    # Now you can work with the files as if they were local
    ls /mnt/cos-bucket
    cat /mnt/cos-bucket/example.txt
"""

import errno
import os
import stat as stat_mode
import time
from threading import Lock

from fuse import FUSE, FuseOSError, Operations

from ..client.exceptions import (
    CosError,
    FailedPreconditionError,
    InvalidArgumentError,
    NotFoundError,
    OutOfRangeError,
)
from ..fs.filesystem import CosFileSystem
from ..fs.stat import LookupKind
from ..fs.utils import configure_logging, logger, time_function, trace_op
from .mount_utils import get_mount_options, setup_signal_handlers, unmount

BLOCK_SIZE = 4096


def to_fuse_error(e, default=errno.EIO):
    """
    Map a filesystem error to a ``FuseOSError``.

    Args:
        e (Exception): Error raised by ``CosFileSystem``
        default (int): errno for errors without a specific mapping

    Returns:
        FuseOSError: Error to raise back to the kernel
    """
    if isinstance(e, FuseOSError):
        return e
    if isinstance(e, NotFoundError):
        return FuseOSError(errno.ENOENT)
    if isinstance(e, InvalidArgumentError):
        return FuseOSError(errno.EINVAL)
    return FuseOSError(default)


class CosFuse(Operations):
    """
    FUSE operations for a single COS bucket.

    Attributes:
        fs (CosFileSystem): Filesystem the operations are served from
        bucket (str): Name of the mounted bucket
        writers (dict): Open ``SequentialWriter`` per mounted path
        handles (dict): Mounted path per open write handle; a path's writer
            is closed when its last handle is released
    """

    def __init__(self, bucket_name, fs=None):
        """
        Args:
            bucket_name (str): Bucket to mount
            fs (CosFileSystem, optional): Filesystem to use; one is created from
                the environment configuration when omitted

        Raises:
            ValueError: If the bucket does not exist or cannot be reached
        """
        logger.info(f"Initializing CosFuse with bucket: {bucket_name}")
        start_time = time.time()

        self.fs = fs or CosFileSystem()
        self.bucket = bucket_name
        self.writers = {}
        self.handles = {}
        self.next_fh = 1
        self.lock = Lock()

        try:
            exists = self.fs.client.bucket_exists(bucket_name)
        except CosError as e:
            logger.error(f"Failed to access bucket {bucket_name}: {e}")
            raise ValueError(f"Failed to access bucket {bucket_name}: {e}") from e
        if not exists:
            raise ValueError(f"Bucket {bucket_name} does not exist")

        time_function("__init__", start_time)

    def _uri(self, path):
        """Convert a mounted path to a ``cos://`` path."""
        return f"cos://{self.bucket}/{path.lstrip('/')}"

    def _base_stat(self, mtime=None):
        now = time.time()
        return {
            'st_uid': os.getuid(),
            'st_gid': os.getgid(),
            'st_atime': now,
            'st_mtime': mtime or now,
            'st_ctime': mtime or now,
            'st_blksize': BLOCK_SIZE,
            'st_rdev': 0,
        }

    def _dir_stat(self, mtime=None):
        return {**self._base_stat(mtime),
                'st_mode': stat_mode.S_IFDIR | 0o755,
                'st_nlink': 2,
                'st_size': BLOCK_SIZE,
                'st_blocks': 8}

    def _file_stat(self, size, mtime=None):
        return {**self._base_stat(mtime),
                'st_mode': stat_mode.S_IFREG | 0o644,
                'st_nlink': 1,
                'st_size': size,
                'st_blocks': (size + BLOCK_SIZE - 1) // BLOCK_SIZE}

    def _writer(self, path):
        with self.lock:
            return self.writers.get(path)

    def _sync_writer(self, path):
        writer = self._writer(path)
        if writer is not None:
            writer.sync()

    def _add_handle(self, path):
        # Caller holds self.lock
        fh = self.next_fh
        self.next_fh += 1
        self.handles[fh] = path
        return fh

    def _pop_writer(self, path):
        with self.lock:
            for fh in [fh for fh, open_path in self.handles.items() if open_path == path]:
                del self.handles[fh]
            return self.writers.pop(path, None)

    def _close_writer(self, path):
        writer = self._pop_writer(path)
        if writer is not None:
            writer.close()

    def getattr(self, path, fh=None):
        """
        Get file attributes.

        A file with an open writer reports the staged size.

        Raises:
            FuseOSError: ENOENT if nothing exists at ``path``
        """
        trace_op("getattr", path, fh=fh)
        start_time = time.time()

        if path == '/':
            return self._dir_stat()

        writer = self._writer(path)
        if writer is not None and not writer.closed:
            time_function("getattr (open writer)", start_time)
            return self._file_stat(writer.tell())

        try:
            lookup = self.fs.resolve(self._uri(path))
        except CosError as e:
            logger.error(f"getattr error for {path}: {e}", exc_info=True)
            raise to_fuse_error(e)

        if lookup.kind is LookupKind.ABSENT:
            logger.debug(f"getattr: Path {path} does not exist")
            time_function("getattr (not found)", start_time)
            raise FuseOSError(errno.ENOENT)

        mtime = lookup.stats.mtime_nsec / 1e9 if lookup.stats.mtime_nsec else None
        time_function("getattr", start_time)
        if lookup.kind is LookupKind.DIRECTORY:
            return self._dir_stat(mtime)
        return self._file_stat(lookup.stats.length, mtime)

    def readdir(self, path, fh):
        """List ``.``, ``..`` and the children of a directory."""
        trace_op("readdir", path, fh=fh)
        start_time = time.time()
        try:
            children = self.fs.get_children(self._uri(path))
        except CosError as e:
            logger.error(f"readdir error for {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        time_function("readdir", start_time)
        return ['.', '..'] + children

    def open(self, path, flags):
        """
        Open a file.

        Read-only opens check that the object exists and get handle 0. Write
        opens share one writer per path, created on the first open: empty with
        ``O_TRUNC``, otherwise preloaded with the current content.

        Returns:
            int: File handle; a distinct non-zero handle for every write open
        """
        trace_op("open", path, flags=flags)
        start_time = time.time()
        uri = self._uri(path)

        try:
            if (flags & os.O_ACCMODE) == os.O_RDONLY:
                if self._writer(path) is None and not self.fs.file_exists(uri):
                    raise FuseOSError(errno.ENOENT)
                time_function("open", start_time)
                return 0

            writer = None
            if self._writer(path) is None:
                if flags & os.O_TRUNC:
                    writer = self.fs.new_writable_file(uri)
                else:
                    writer = self.fs.new_appendable_file(uri)
        except (CosError, FuseOSError) as e:
            logger.error(f"open: Error opening {path}: {e}")
            raise to_fuse_error(e)

        with self.lock:
            if writer is not None and path in self.writers:
                # Another open created the writer first
                writer.discard()
            elif writer is not None:
                self.writers[path] = writer
            fh = self._add_handle(path)

        time_function("open", start_time)
        return fh

    def create(self, path, mode, fi=None):
        """Create an empty file and keep its writer open."""
        trace_op("create", path, mode=oct(mode))
        logger.info(f"create: Creating new file at {path} with mode {oct(mode)}")
        start_time = time.time()
        try:
            writer = self.fs.new_writable_file(self._uri(path))
            writer.sync()
        except CosError as e:
            logger.error(f"create: Error creating {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        with self.lock:
            previous = self.writers.pop(path, None)
            self.writers[path] = writer
            fh = self._add_handle(path)
        if previous is not None:
            previous.discard()
        time_function("create", start_time)
        return fh

    def read(self, path, size, offset, fh):
        """
        Read ``size`` bytes at ``offset``.

        Staged writes for ``path`` are uploaded first. Reading at or past the
        end of the object returns ``b""``.
        """
        trace_op("read", path, size=size, offset=offset)
        start_time = time.time()
        try:
            self._sync_writer(path)
            data = self.fs.new_random_access_file(self._uri(path)).read(offset, size)
        except OutOfRangeError:
            data = b""
        except CosError as e:
            logger.error(f"read: Error reading {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        time_function("read", start_time)
        return data

    def write(self, path, data, offset, fh):
        """
        Append ``data`` to the open writer for ``path``.

        Raises:
            FuseOSError: EBADF without an open writer, EINVAL if ``offset`` is
                not the end of the staged data
        """
        trace_op("write", path, offset=offset, size=len(data))
        start_time = time.time()
        writer = self._writer(path)
        if writer is None:
            logger.error(f"write: No open writer for {path}")
            raise FuseOSError(errno.EBADF)
        try:
            if offset != writer.tell():
                logger.error(f"write: Non-sequential write to {path} at {offset}, staged {writer.tell()}")
                raise FuseOSError(errno.EINVAL)
            writer.append(data)
        except CosError as e:
            logger.error(f"write: Error writing to {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        time_function("write", start_time)
        return len(data)

    def truncate(self, path, length, fh=None):
        """
        Truncate or zero-extend a file to ``length`` bytes.

        The new content is uploaded immediately; an open writer is replaced by
        one holding the truncated content.
        """
        trace_op("truncate", path, length=length)
        start_time = time.time()
        uri = self._uri(path)
        try:
            self._sync_writer(path)
            content = self.fs.read_file(uri)[:length] if length else b""
            writer = self.fs.new_writable_file(uri)
            writer.append(content.ljust(length, b"\0"))
            writer.sync()
        except CosError as e:
            logger.error(f"truncate: Error truncating {path}: {e}", exc_info=True)
            raise to_fuse_error(e)

        with self.lock:
            previous = self.writers.pop(path, None)
            if previous is not None:
                self.writers[path] = writer
        if previous is not None:
            previous.discard()
        else:
            writer.close()
        time_function("truncate", start_time)
        return 0

    def flush(self, path, fh):
        trace_op("flush", path, fh=fh)
        try:
            self._sync_writer(path)
        except CosError as e:
            logger.error(f"flush: Error flushing {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        return 0

    def fsync(self, path, datasync, fh):
        """Upload the staged content of ``path``."""
        trace_op("fsync", path, datasync=datasync, fh=fh)
        return self.flush(path, fh)

    def release(self, path, fh):
        """
        Release a file handle.

        Releasing the last write handle of ``path`` uploads and drops its
        writer; releasing any other write handle only uploads. Read-only
        handles leave the writer alone.
        """
        trace_op("release", path, fh=fh)
        start_time = time.time()
        with self.lock:
            released = self.handles.pop(fh, None)
            last = released is not None and released not in self.handles.values()
        try:
            if last:
                self._close_writer(released)
            elif released is not None:
                self._sync_writer(released)
        except CosError as e:
            logger.error(f"release: Error closing writer for {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        time_function("release", start_time)
        return 0

    def unlink(self, path):
        trace_op("unlink", path)
        writer = self._pop_writer(path)
        if writer is not None:
            writer.discard()
        try:
            self.fs.delete_file(self._uri(path))
        except CosError as e:
            logger.error(f"unlink: Error deleting {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        return 0

    def mkdir(self, path, mode):
        """Create a directory marker object."""
        trace_op("mkdir", path, mode=oct(mode))
        uri = self._uri(path)
        try:
            if self.fs.file_exists(uri):
                raise FuseOSError(errno.EEXIST)
            self.fs.create_dir(uri)
        except CosError as e:
            logger.error(f"mkdir: Error creating {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        return 0

    def rmdir(self, path):
        """
        Remove an empty directory.

        Raises:
            FuseOSError: ENOTEMPTY if anything but the marker lives under it
        """
        trace_op("rmdir", path)
        uri = self._uri(path)
        try:
            if not self.fs.is_directory(uri):
                raise FuseOSError(errno.ENOENT)
            self.fs.delete_dir(uri)
        except FailedPreconditionError as e:
            logger.warning(f"rmdir: {e}")
            raise FuseOSError(errno.ENOTEMPTY)
        except CosError as e:
            logger.error(f"rmdir: Error removing {path}: {e}", exc_info=True)
            raise to_fuse_error(e)
        return 0

    def rename(self, old, new):
        """
        Rename a file or a directory tree.

        Staged writes for ``old`` are uploaded before the objects are copied.
        """
        trace_op("rename", old, new=new)
        start_time = time.time()
        source = self._uri(old)
        target = self._uri(new)
        try:
            self._close_writer(old)
            if self.fs.is_directory(source):
                source = source.rstrip('/') + '/'
                target = target.rstrip('/') + '/'
            elif not self.fs.file_exists(source):
                raise FuseOSError(errno.ENOENT)
            self.fs.rename_file(source, target)
        except CosError as e:
            logger.error(f"rename: Error renaming {old} to {new}: {e}", exc_info=True)
            raise to_fuse_error(e)
        time_function("rename", start_time)
        return 0

    def chmod(self, path, mode):
        # COS objects carry no POSIX mode
        return 0

    def chown(self, path, uid, gid):
        return 0

    def utimens(self, path, times=None):
        return 0

    def statfs(self, path):
        """Report a large, empty filesystem; COS has no fixed capacity."""
        trace_op("statfs", path)
        total_blocks = 1250000000  # 5TB
        return {
            'f_bsize': BLOCK_SIZE,
            'f_frsize': BLOCK_SIZE,
            'f_blocks': total_blocks,
            'f_bfree': total_blocks,
            'f_bavail': total_blocks,
            'f_files': 1000000000,
            'f_ffree': 999999999,
            'f_favail': 999999999,
            'f_flag': 0,
            'f_namemax': 255,
        }

    def destroy(self, path):
        """Upload any writers still open and close the filesystem."""
        logger.info("Cleaning up CosFuse resources...")
        with self.lock:
            paths = list(self.writers)
        for open_path in paths:
            try:
                self._close_writer(open_path)
            except CosError as e:
                logger.error(f"destroy: Error closing writer for {open_path}: {e}", exc_info=True)
        self.fs.close()


def mount(bucket: str, mountpoint: str, foreground: bool = True, allow_other: bool = False):
    """
    Mount a COS bucket at the specified mountpoint.

    Args:
        bucket (str): Name of the bucket to mount
        mountpoint (str): Local directory to mount on; created if missing
        foreground (bool, optional): Run in foreground. Defaults to True.
        allow_other (bool, optional): Allow other users to access the mount.
            Requires 'user_allow_other' in /etc/fuse.conf. Defaults to False.
    """
    logger.info(f"Mounting bucket {bucket} at {mountpoint}")
    start_time = time.time()

    if os.path.exists(mountpoint):
        if not os.path.isdir(mountpoint):
            logger.error(f"Mountpoint path exists but is not a directory: {mountpoint}")
            print(f"Error: {mountpoint} exists but is not a directory. Please specify a directory path.")
            return
    else:
        logger.info(f"Mountpoint {mountpoint} does not exist, creating it...")
        try:
            os.makedirs(mountpoint, mode=0o755)
        except OSError as e:
            logger.error(f"Failed to create mountpoint {mountpoint}: {e}")
            print(f"Error: Failed to create mountpoint directory {mountpoint}: {e}")
            return

    options = get_mount_options(foreground, allow_other)
    setup_signal_handlers(mountpoint, unmount)

    try:
        operations = CosFuse(bucket)
    except ValueError as e:
        print(f"Error: {e}")
        return

    try:
        logger.info(f"Starting FUSE mount with options: {options}")
        FUSE(operations, mountpoint, nothreads=False, **options)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, unmounting...")
        unmount(mountpoint)
    except RuntimeError as e:
        logger.error(f"Error during mount: {e}")
        print(f"Error: {e}")
        unmount(mountpoint)
    finally:
        time_function("mount", start_time)


def main(argv=None):
    """
    CLI entry point for mounting COS buckets.

    Usage:
        python -m cos_fs.fuse <bucket> <mountpoint>

    Options:
        --allow-other: Allow other users to access the mount
            (requires user_allow_other in /etc/fuse.conf)
        --trace: Enable detailed tracing of file operations for debugging
        --debug: Log at DEBUG level
    """
    import argparse
    parser = argparse.ArgumentParser(description='Mount a COS bucket as a local filesystem')
    parser.add_argument('bucket', help='The name of the bucket to mount')
    parser.add_argument('mountpoint', help='The directory to mount the bucket on')
    parser.add_argument('--allow-other', action='store_true',
                        help='Allow other users to access the mount (requires user_allow_other in /etc/fuse.conf)')
    parser.add_argument('--trace', action='store_true',
                        help='Enable detailed tracing of file operations for debugging')
    parser.add_argument('--debug', action='store_true', help='Log at DEBUG level')

    args = parser.parse_args(argv)

    if args.trace:
        from ..fs import utils
        utils.TRACE_OPERATIONS = True
    configure_logging(debug=args.debug or args.trace)

    logger.info(f"Mounting bucket {args.bucket} at {args.mountpoint}")
    mount(args.bucket, args.mountpoint, allow_other=args.allow_other)


if __name__ == '__main__':
    main()
