# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Buffered writers for COS objects.

COS only accepts whole-object PUTs, so a writer stages everything appended to it
in a ``SpooledTemporaryFile`` and uploads the complete staged content on every
``sync``/``flush``/``close``. Each upload therefore costs O(total size): a file
that is appended to and synced N times is uploaded N times in full.
"""

import enum
import os
import tempfile
import time
from threading import RLock

from ..client.exceptions import FailedPreconditionError, InternalError, StoreError
from .utils import logger, trace_op

# Staged data stays in memory up to this size, then spills to disk
DEFAULT_SPOOL_MAX_SIZE = 64 * 1024 * 1024  # 64MB


class WriterState(enum.Enum):
    OPEN = "open"
    DIRTY = "dirty"
    SYNCED = "synced"
    CLOSED = "closed"


class SequentialWriter:
    """
    Append-only writer that uploads the whole object on sync.

    A new writer starts dirty, so closing it without appending still uploads an
    empty object: opening for write truncates, and directory markers rely on it.

    Attributes:
        bucket (str): Target bucket
        key (str): Target object key
        state (WriterState): Current lifecycle state
        lock (threading.RLock): Serialises access to the staging file
    """

    def __init__(self, bucket, key, client, spool_max_size=DEFAULT_SPOOL_MAX_SIZE):
        self.bucket = bucket
        self.key = key
        self._client = client
        self.lock = RLock()
        self.state = WriterState.OPEN
        self._dirty = True
        try:
            self._staging = tempfile.SpooledTemporaryFile(max_size=spool_max_size, mode='w+b')
        except OSError as e:
            logger.error(f"Could not create staging file for {bucket}/{key}: {e}", exc_info=True)
            self._staging = None

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def closed(self) -> bool:
        return self.state is WriterState.CLOSED

    def _require_staging(self):
        if self._staging is None or self._staging.closed:
            raise FailedPreconditionError("The internal temporary file is not writable.")
        return self._staging

    def append(self, data: bytes) -> None:
        """
        Append ``data`` to the staged content.

        Args:
            data (bytes): Bytes to append

        Raises:
            FailedPreconditionError: If the staging file is unusable or the writer is closed
            InternalError: If writing to the staging file fails
        """
        trace_op("append", f"{self.bucket}/{self.key}", size=len(data))
        with self.lock:
            staging = self._require_staging()
            self._dirty = True
            self.state = WriterState.DIRTY
            try:
                written = staging.write(data)
            except (OSError, ValueError) as e:
                raise InternalError(f"Could not append to the internal temporary file: {e}") from e
            if written is not None and written != len(data):
                raise InternalError(
                    f"Could not append to the internal temporary file: wrote {written} of {len(data)} bytes"
                )

    def sync(self) -> None:
        """
        Upload the entire staged content as the object, if anything changed.

        The staging file's write position is saved before the upload rewinds it
        and restored afterwards, so later appends continue at the end.

        Raises:
            FailedPreconditionError: If the staging file is unusable or the writer is closed
            InternalError: If the upload fails; the writer stays dirty
        """
        trace_op("sync", f"{self.bucket}/{self.key}")
        with self.lock:
            staging = self._require_staging()
            if not self._dirty:
                return

            start_time = time.time()
            position = staging.tell()
            staging.seek(0)
            try:
                self._client.put_object(self.bucket, self.key, staging)
            except StoreError as e:
                logger.error(f"sync: Upload of {self.bucket}/{self.key} failed: {e}")
                raise InternalError.from_store_error(e) from e
            finally:
                staging.seek(position)

            upload_time = time.time() - start_time
            if position > 0:
                throughput_mbps = (position / (1024 * 1024)) / upload_time if upload_time > 0 else float('inf')
                logger.info(
                    f"Uploaded {position / (1024 * 1024):.2f}MB to {self.bucket}/{self.key} "
                    f"in {upload_time:.2f}s ({throughput_mbps:.2f} MB/s)"
                )
            else:
                logger.info(f"Uploaded empty object {self.bucket}/{self.key} in {upload_time:.2f}s")

            self._dirty = False
            self.state = WriterState.SYNCED

    def flush(self) -> None:
        """Same as ``sync``."""
        self.sync()

    def close(self) -> None:
        """
        Sync pending data and release the staging file.

        The staging file is released even when the final upload fails; the
        upload error still propagates. Closing a closed writer does nothing.
        """
        trace_op("close", f"{self.bucket}/{self.key}")
        with self.lock:
            if self._staging is None:
                self.state = WriterState.CLOSED
                return
            try:
                self.sync()
            finally:
                self._release()

    def discard(self) -> None:
        """Release the staging file without uploading."""
        trace_op("discard", f"{self.bucket}/{self.key}")
        with self.lock:
            if self._staging is not None:
                self._release()
            self.state = WriterState.CLOSED

    def tell(self) -> int:
        """Number of bytes staged so far."""
        with self.lock:
            staging = self._require_staging()
            position = staging.tell()
            staging.seek(0, os.SEEK_END)
            size = staging.tell()
            staging.seek(position)
            return size

    def _release(self):
        staging, self._staging = self._staging, None
        self.state = WriterState.CLOSED
        try:
            staging.close()
            logger.debug(f"Released staging file for {self.bucket}/{self.key}")
        except OSError as e:
            logger.error(f"Error closing staging file for {self.bucket}/{self.key}: {e}", exc_info=True)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
