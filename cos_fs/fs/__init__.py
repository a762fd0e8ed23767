# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""Directory emulation over a flat COS bucket."""
from .filesystem import CosFileSystem
from .paths import ObjectPath, join_path, parse_cos_path
from .reader import RandomAccessReader
from .rename import RenameEngine, RenameFailure, RenameResult
from .stat import FileStatistics, LookupKind, StatLookup, StatResolver
from .writer import SequentialWriter

__all__ = [
    "CosFileSystem",
    "FileStatistics",
    "LookupKind",
    "ObjectPath",
    "RandomAccessReader",
    "RenameEngine",
    "RenameFailure",
    "RenameResult",
    "SequentialWriter",
    "StatLookup",
    "StatResolver",
    "join_path",
    "parse_cos_path",
]
