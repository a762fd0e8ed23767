# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Exceptions raised by the COS client and the filesystem layer built on it.

Store-level failures are reported as ``BucketError``/``ObjectError`` carrying the
code the store returned. The filesystem layer reports its own outcomes with the
status-style subclasses below and wraps store failures in ``InternalError``.
"""


class CosError(Exception):
    """Base exception for COS client and filesystem errors."""
    def __init__(self, message: str, code: str = "ERR_UNKNOWN"):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class ConfigurationError(CosError):
    """Configuration or credential error."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_CONFIG")


class StoreError(CosError):
    """
    A request to the object store failed.

    Attributes:
        operation (str): Store operation that failed (HEAD, GET, PUT, ...).
        store_code (str): Error code reported by the store, e.g. ``NoSuchKey``.
    """
    prefix = "ERR_STORE"

    def __init__(self, message: str, operation: str = None, store_code: str = None):
        code = self.prefix
        if operation:
            code = f"{self.prefix}_{operation.upper()}"
        self.operation = operation
        self.store_code = store_code or "Unknown"
        super().__init__(message, code=code)

    @property
    def not_found(self) -> bool:
        return self.store_code in ("404", "NoSuchKey", "NoSuchBucket", "NotFound")


class BucketError(StoreError):
    """Bucket operation failed."""
    prefix = "ERR_BUCKET"


class ObjectError(StoreError):
    """Object operation failed."""
    prefix = "ERR_OBJECT"


class InvalidArgumentError(CosError):
    """Malformed path, scheme, or a missing bucket or object name."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_INVALID_ARGUMENT")


class NotFoundError(CosError):
    """Object, bucket or prefix does not exist."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_NOT_FOUND")


class FailedPreconditionError(CosError):
    """Writer unusable, or delete attempted on a non-empty directory."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_FAILED_PRECONDITION")


class OutOfRangeError(CosError):
    """
    A read could not be satisfied; used as the end-of-stream signal.

    Attributes:
        data (bytes): Bytes delivered alongside the failure (always empty for
            a failed ranged GET).
    """
    def __init__(self, message: str, data: bytes = b""):
        self.data = data
        super().__init__(message, code="ERR_OUT_OF_RANGE")


class InternalError(CosError):
    """A store operation failed; the message carries the store's code and message."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_INTERNAL")

    @classmethod
    def from_store_error(cls, error: StoreError):
        return cls(f"{error.store_code}: {error.message}")


class DataLossError(CosError):
    """Fewer bytes were read than the object's reported size."""
    def __init__(self, message: str):
        super().__init__(message, code="ERR_DATA_LOSS")


class RenameError(InternalError):
    """
    A multi-object rename stopped part way through.

    Objects copied and deleted before the failure are not rolled back.

    Attributes:
        result (RenameResult): Completed pairs and the pair that failed.
    """
    def __init__(self, message: str, result):
        self.result = result
        super().__init__(message)
