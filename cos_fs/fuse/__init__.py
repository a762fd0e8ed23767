# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""FUSE mount for COS buckets. Importing this package requires libfuse."""
from .fuse_mount import CosFuse, main, mount

__all__ = ["CosFuse", "main", "mount"]
