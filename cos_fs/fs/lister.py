# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Prefix listings and directory children.
"""
import time

from ..client.exceptions import InternalError, StoreError
from ..client.types import ListObjectsOptions
from .utils import logger, time_function, trace_op

DELIMITER = "/"
MAX_KEYS_PER_PAGE = 1000


def iter_pages(client, bucket, prefix, delimiter=None, max_keys=MAX_KEYS_PER_PAGE):
    """
    Yield listing pages under ``prefix``, following continuation markers.

    Args:
        client (ObjectStoreClient): Store client
        bucket (str): Bucket to list
        prefix (str): Key prefix
        delimiter (str, optional): Collapse keys into common prefixes at this character
        max_keys (int): Page size

    Yields:
        ListPage: One page per request, in request order

    Raises:
        InternalError: If a listing request fails
    """
    marker = ""
    while True:
        options = ListObjectsOptions(prefix=prefix, delimiter=delimiter, marker=marker, max_keys=max_keys)
        try:
            page = client.list_objects(bucket, options)
        except StoreError as e:
            logger.error(f"list_objects failed for {bucket}/{prefix} (marker='{marker}'): {e}")
            raise InternalError.from_store_error(e) from e
        yield page
        if not page.is_truncated:
            return
        marker = page.next_marker


class DirectoryLister:
    """Lists the immediate children of an emulated directory."""

    def __init__(self, client, max_keys=MAX_KEYS_PER_PAGE):
        self._client = client
        self.max_keys = max_keys

    def list_children(self, bucket, key):
        """
        Return the names directly under ``key``.

        Sub-directories come from common prefixes (trailing ``/`` removed), files
        from object keys. The directory's own marker object is skipped. Order is
        the store's; nothing is sorted here.

        Args:
            bucket (str): Bucket name
            key (str): Directory key; empty for the bucket root

        Returns:
            list: Child names relative to the directory

        Raises:
            InternalError: If any listing page fails; earlier pages are discarded
        """
        trace_op("list_children", f"{bucket}/{key}")
        start_time = time.time()

        prefix = key
        if prefix and not prefix.endswith(DELIMITER):
            prefix += DELIMITER

        children = []
        for page in iter_pages(self._client, bucket, prefix, delimiter=DELIMITER, max_keys=self.max_keys):
            for common_prefix in page.common_prefixes:
                entry = common_prefix[len(prefix):]
                if entry.endswith(DELIMITER):
                    entry = entry[:-1]
                if entry:
                    children.append(entry)
            for object_key in page.object_keys:
                entry = object_key[len(prefix):]
                if entry:
                    children.append(entry)

        logger.debug(f"list_children returning {len(children)} entries for {bucket}/{prefix}")
        time_function("list_children", start_time)
        return children
