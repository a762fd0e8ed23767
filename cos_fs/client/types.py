# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class HeadObjectOutput:
    """Metadata for an object."""
    content_length: int
    last_modified: Optional[str]
    etag: Optional[str] = None
    content_type: Optional[str] = None


@dataclass
class ListObjectsOptions:
    """Options for listing objects."""
    prefix: str = ""
    delimiter: Optional[str] = None
    marker: str = ""
    max_keys: Optional[int] = None


@dataclass
class ListPage:
    """One page of a listing; ``next_marker`` is echoed verbatim on the next request."""
    common_prefixes: List[str] = field(default_factory=list)
    object_keys: List[str] = field(default_factory=list)
    next_marker: str = ""
    is_truncated: bool = False


@dataclass(frozen=True)
class CopySource:
    """Source object of a server-side copy."""
    bucket: str
    key: str
