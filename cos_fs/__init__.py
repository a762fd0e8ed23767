# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
cos-fs: a hierarchical filesystem over Tencent Cloud Object Storage (COS).

The FUSE adapter lives in ``cos_fs.fuse`` and is not imported here, so the
library works without libfuse installed.
"""
from .client import (
    COSClient,
    CosConfig,
    CosError,
    DataLossError,
    FailedPreconditionError,
    InternalError,
    InvalidArgumentError,
    NotFoundError,
    OutOfRangeError,
    RenameError,
    Session,
    load_config,
)
from .fs import CosFileSystem, FileStatistics, RenameResult

__version__ = "0.1.0"

__all__ = [
    "COSClient",
    "CosConfig",
    "CosError",
    "CosFileSystem",
    "DataLossError",
    "FailedPreconditionError",
    "FileStatistics",
    "InternalError",
    "InvalidArgumentError",
    "NotFoundError",
    "OutOfRangeError",
    "RenameError",
    "RenameResult",
    "Session",
    "load_config",
]
