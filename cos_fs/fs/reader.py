# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Random-access reads over COS objects.
"""
from ..client.exceptions import OutOfRangeError, StoreError
from .utils import logger, trace_op


class RandomAccessReader:
    """
    Serves arbitrary ``(offset, size)`` reads with one ranged GET per call.

    The reader keeps no position or buffer, so concurrent reads at different
    offsets are independent.

    Attributes:
        bucket (str): Bucket of the object
        key (str): Object key
    """

    def __init__(self, bucket, key, client):
        self.bucket = bucket
        self.key = key
        self._client = client

    def read(self, offset: int, size: int) -> bytes:
        """
        Read up to ``size`` bytes starting at ``offset``.

        Args:
            offset (int): First byte to read
            size (int): Number of bytes requested

        Returns:
            bytes: The bytes the store returned; shorter than ``size`` when the
                object ends inside the range

        Raises:
            OutOfRangeError: If the store rejects the request, including a range
                starting past the end of the object. ``exc.data`` is empty.
        """
        trace_op("read", f"{self.bucket}/{self.key}", offset=offset, size=size)
        if size <= 0:
            return b""
        try:
            data = self._client.get_object_range(self.bucket, self.key, offset, size)
        except StoreError as e:
            logger.debug(f"read: {self.bucket}/{self.key} offset={offset} size={size} failed: {e}")
            raise OutOfRangeError("Read less bytes than requested", data=b"") from e
        return data
