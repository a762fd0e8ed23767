# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""Object-store client, configuration and error types."""
from .client import COSClient, ObjectStoreClient, Session
from .config import CosConfig, load_config
from .exceptions import (
    BucketError,
    ConfigurationError,
    CosError,
    DataLossError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    ObjectError,
    OutOfRangeError,
    RenameError,
    StoreError,
)
from .types import CopySource, HeadObjectOutput, ListObjectsOptions, ListPage

__all__ = [
    "BucketError",
    "COSClient",
    "ConfigurationError",
    "CopySource",
    "CosConfig",
    "CosError",
    "DataLossError",
    "FailedPreconditionError",
    "HeadObjectOutput",
    "InternalError",
    "InvalidArgumentError",
    "ListObjectsOptions",
    "ListPage",
    "NotFoundError",
    "ObjectError",
    "ObjectStoreClient",
    "OutOfRangeError",
    "RenameError",
    "Session",
    "StoreError",
    "load_config",
]
