# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Stat resolution: object, emulated directory, bucket root, or nothing.

COS has no directory type. A path is a directory when it is a bucket root, or
when HEAD finds no object at its key but at least one object key starts with it.
"""
import calendar
import enum
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..client.exceptions import InternalError, NotFoundError, StoreError
from ..client.types import ListObjectsOptions
from .utils import logger, time_function, trace_op

LAST_MODIFIED_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"
PREFIX_PROBE_MAX_KEYS = 2


@dataclass(frozen=True)
class FileStatistics:
    length: int = 0
    is_directory: bool = False
    mtime_nsec: int = 0


class LookupKind(enum.Enum):
    OBJECT = "object"
    DIRECTORY = "directory"
    ABSENT = "absent"


@dataclass(frozen=True)
class StatLookup:
    """Result of resolving a path; ``stats`` is None when the path is absent."""
    kind: LookupKind
    stats: Optional[FileStatistics] = None

    @property
    def exists(self) -> bool:
        return self.kind is not LookupKind.ABSENT


DIRECTORY_STATS = FileStatistics(length=0, is_directory=True)


def parse_last_modified(value):
    """
    Convert an HTTP-date ``Last-Modified`` header to nanoseconds since the epoch.

    Args:
        value (str): Header value, e.g. ``"Wed, 21 Oct 2015 07:28:00 GMT"``

    Returns:
        int: Nanoseconds since the epoch, or 0 if the value cannot be parsed
    """
    if not value:
        return 0
    try:
        parsed = datetime.strptime(value, LAST_MODIFIED_FORMAT)
    except (TypeError, ValueError):
        logger.debug(f"Unparsable Last-Modified header: {value!r}")
        return 0
    return calendar.timegm(parsed.timetuple()) * 1_000_000_000


class StatResolver:
    """Resolves paths against the store with HEAD, falling back to a prefix listing."""

    def __init__(self, client):
        self._client = client

    def resolve(self, bucket, key) -> StatLookup:
        """
        Classify ``(bucket, key)``.

        Args:
            bucket (str): Bucket name
            key (str): Object key; empty means the bucket root

        Returns:
            StatLookup: OBJECT with its size and mtime, DIRECTORY, or ABSENT

        Raises:
            InternalError: If the bucket existence check itself fails
        """
        trace_op("resolve", f"{bucket}/{key}")
        start_time = time.time()

        if not key:
            try:
                exists = self._client.bucket_exists(bucket)
            except StoreError as e:
                raise InternalError.from_store_error(e) from e
            time_function("resolve (bucket)", start_time)
            if not exists:
                return StatLookup(LookupKind.ABSENT)
            return StatLookup(LookupKind.DIRECTORY, DIRECTORY_STATS)

        try:
            metadata = self._client.head_object(bucket, key)
        except StoreError as e:
            logger.debug(f"resolve: HEAD {bucket}/{key} failed ({e.store_code}), probing as prefix")
        else:
            stats = FileStatistics(
                length=metadata.content_length,
                is_directory=False,
                mtime_nsec=parse_last_modified(metadata.last_modified),
            )
            time_function("resolve (object)", start_time)
            return StatLookup(LookupKind.OBJECT, stats)

        # The raw key is the prefix, without an added '/'.
        options = ListObjectsOptions(prefix=key, max_keys=PREFIX_PROBE_MAX_KEYS)
        try:
            page = self._client.list_objects(bucket, options)
        except StoreError as e:
            logger.warning(f"resolve: prefix listing for {bucket}/{key} failed: {e}")
            page = None

        time_function("resolve (prefix)", start_time)
        if page is not None and page.object_keys:
            return StatLookup(LookupKind.DIRECTORY, DIRECTORY_STATS)
        return StatLookup(LookupKind.ABSENT)

    def stat(self, bucket, key) -> FileStatistics:
        """
        Return statistics for ``(bucket, key)``.

        Raises:
            NotFoundError: If the path is neither an object, a prefix, nor an existing bucket
        """
        lookup = self.resolve(bucket, key)
        if lookup.exists:
            return lookup.stats
        if not key:
            raise NotFoundError(f"The bucket {bucket} was not found.")
        raise NotFoundError(f"Object cos://{bucket}/{key} does not exist")
