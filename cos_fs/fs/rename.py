# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Rename as per-object copy + delete.

COS has no rename. Every object under the source key is copied server-side to
its re-prefixed target key and then deleted, one object at a time. There is no
isolation between objects and no rollback: when an object fails, the objects
before it have already moved. ``RenameError.result`` records which ones.
"""
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..client.exceptions import InternalError, RenameError, StoreError
from ..client.types import CopySource
from .lister import MAX_KEYS_PER_PAGE, iter_pages
from .utils import logger, time_function, trace_op


@dataclass
class RenameFailure:
    source_key: str
    target_key: str
    step: str
    error: Exception


@dataclass
class RenameResult:
    """
    Outcome of a rename.

    Attributes:
        source (str): Source path as given
        target (str): Target path after directory/file normalisation
        completed (list): ``(source_key, target_key)`` pairs copied and deleted
        failed (RenameFailure, optional): The pair the rename stopped at
    """
    source: str
    target: str
    completed: List[Tuple[str, str]] = field(default_factory=list)
    failed: Optional[RenameFailure] = None

    @property
    def ok(self) -> bool:
        return self.failed is None


class RenameEngine:
    """Moves every object under a source prefix to a target prefix."""

    def __init__(self, client, max_keys=MAX_KEYS_PER_PAGE):
        self._client = client
        self.max_keys = max_keys

    @staticmethod
    def normalize_target_key(source_key, target_key):
        """A directory source forces a directory target; a file source strips the target's ``/``."""
        if source_key.endswith("/"):
            if not target_key.endswith("/"):
                target_key += "/"
        elif target_key.endswith("/"):
            target_key = target_key[:-1]
        return target_key

    def rename(self, source, target) -> RenameResult:
        """
        Move all objects under ``source.key`` to ``target.key``.

        The source key is used as a raw prefix: every listed key has its leading
        ``len(source.key)`` characters replaced by the target key.

        Args:
            source (ObjectPath): Source path
            target (ObjectPath): Target path

        Returns:
            RenameResult: Every moved pair; empty when nothing matched the source

        Raises:
            RenameError: If a listing, copy or delete fails; ``.result`` holds the
                pairs already moved and the failing pair
        """
        target_key = self.normalize_target_key(source.key, target.key)
        trace_op("rename", source.uri, target=f"{target.bucket}/{target_key}")
        logger.info(f"rename: Starting rename from {source.uri} to cos://{target.bucket}/{target_key}")
        start_time = time.time()

        result = RenameResult(source=source.uri, target=f"cos://{target.bucket}/{target_key}")
        try:
            pages = iter_pages(self._client, source.bucket, source.key, max_keys=self.max_keys)
            for page in pages:
                for object_key in page.object_keys:
                    new_key = target_key + object_key[len(source.key):]
                    self._move(source.bucket, object_key, target.bucket, new_key, result)
        except RenameError:
            time_function("rename (failed)", start_time)
            raise
        except InternalError as e:
            # listing page failed
            time_function("rename (failed)", start_time)
            raise self._abort(result, "", "", "list", e) from e

        if not result.completed:
            logger.warning(f"rename: No objects found under {source.uri}; nothing renamed")
        else:
            logger.info(f"rename: Moved {len(result.completed)} objects from {source.uri} to {result.target}")
        time_function("rename", start_time)
        return result

    def _move(self, source_bucket, source_key, target_bucket, target_key, result):
        try:
            self._client.copy_object(target_bucket, target_key, CopySource(source_bucket, source_key))
        except StoreError as e:
            raise self._abort(result, source_key, target_key, "copy", e) from e
        try:
            self._client.delete_object(source_bucket, source_key)
        except StoreError as e:
            raise self._abort(result, source_key, target_key, "delete", e) from e
        result.completed.append((source_key, target_key))
        logger.debug(f"rename: Moved {source_key} to {target_key}")

    @staticmethod
    def _abort(result, source_key, target_key, step, error):
        result.failed = RenameFailure(source_key, target_key, step, error)
        code = getattr(error, "store_code", None) or getattr(error, "code", "Unknown")
        message = getattr(error, "message", str(error))
        logger.error(
            f"rename: {step} failed for '{source_key}' -> '{target_key}' after "
            f"{len(result.completed)} completed objects: {code}: {message}"
        )
        return RenameError(
            f"{code}: {message} (rename stopped at {step} of '{source_key}'; "
            f"{len(result.completed)} objects already moved)",
            result,
        )
