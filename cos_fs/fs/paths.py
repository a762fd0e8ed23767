# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Path parsing for ``cos://bucket/key`` URIs.
"""
from dataclasses import dataclass

from ..client.exceptions import InvalidArgumentError

SCHEME = "cos"


@dataclass(frozen=True)
class ObjectPath:
    """
    A parsed COS path.

    Attributes:
        bucket (str): Bucket name, never empty or ``"."``
        key (str): Object key; empty for the bucket root, trailing ``/`` for a
            directory marker
    """
    bucket: str
    key: str

    @property
    def uri(self) -> str:
        return f"{SCHEME}://{self.bucket}/{self.key}"

    @property
    def is_root(self) -> bool:
        return not self.key

    def as_directory(self) -> "ObjectPath":
        """Same path with the key ending in ``/`` (root stays root)."""
        if not self.key or self.key.endswith("/"):
            return self
        return ObjectPath(self.bucket, self.key + "/")


def parse_cos_path(uri: str, allow_empty_key: bool = False) -> ObjectPath:
    """
    Split ``cos://bucket/key`` into bucket and key.

    Args:
        uri (str): Path to parse
        allow_empty_key (bool): Accept a path naming only the bucket

    Returns:
        ObjectPath: The parsed path

    Raises:
        InvalidArgumentError: If the scheme is not ``cos``, the bucket is missing,
            or the key is missing and ``allow_empty_key`` is False
    """
    scheme, sep, rest = (uri or "").partition("://")
    if not sep or scheme != SCHEME:
        raise InvalidArgumentError(f"cos path doesn't start with 'cos://': {uri}")

    bucket, slash, key = rest.partition("/")
    if not bucket or bucket == ".":
        raise InvalidArgumentError(f"cos path doesn't contain a bucket name: {uri}")

    # partition already consumed the single leading '/' of the key
    if not allow_empty_key and not key:
        raise InvalidArgumentError(f"cos path doesn't contain an object name: {uri}")
    return ObjectPath(bucket, key)


def join_path(base: str, *parts: str) -> str:
    """Join path components with exactly one ``/`` between them."""
    path = base
    for part in parts:
        if not part:
            continue
        if not path:
            path = part
        elif path.endswith("/"):
            path = path + part.lstrip("/")
        else:
            path = path + "/" + part.lstrip("/")
    return path
