# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Wildcard matching over a filesystem's ``get_children``/``file_exists``.
"""
from fnmatch import fnmatchcase

from ..client.exceptions import InvalidArgumentError
from .paths import join_path

WILDCARD_CHARS = "*?["


def fixed_prefix(pattern):
    """Portion of ``pattern`` before its first wildcard character."""
    for index, char in enumerate(pattern):
        if char in WILDCARD_CHARS:
            return pattern[:index]
    return pattern


def get_matching_paths(fs, pattern):
    """
    Return the paths matching ``pattern``, sorted.

    Matching is per path component: ``*`` never crosses a ``/``. The search
    starts at the directory holding the first wildcard and expands one
    directory level per pattern component.

    Args:
        fs: Object with ``get_children(path)`` and ``file_exists(path)``
        pattern (str): e.g. ``cos://bucket/logs/*/part-*.csv``

    Returns:
        list: Matching paths

    Raises:
        InvalidArgumentError: If a wildcard appears before the key, as in
            ``cos://logs-*/a``
    """
    prefix = fixed_prefix(pattern)
    if prefix == pattern:
        return [pattern] if fs.file_exists(pattern) else []

    scheme_end = prefix.find("://")
    if scheme_end < 0 or prefix.find("/", scheme_end + 3) < 0:
        raise InvalidArgumentError(f"Wildcards are only supported in the object key: {pattern}")

    base = prefix[:prefix.rfind("/")]
    parts = pattern[len(base) + 1:].split("/")

    candidates = [base]
    for part in parts:
        matched = []
        for directory in candidates:
            for child in fs.get_children(directory):
                if fnmatchcase(child, part):
                    matched.append(join_path(directory, child))
        candidates = matched
        if not candidates:
            break
    return sorted(set(candidates))
