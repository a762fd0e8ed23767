# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Retry Module.

This module provides a retry decorator with exponential backoff for COS client operations.
It handles throttling, transient server errors and network issues by automatically
retrying failed operations with increasing delays between attempts, and converts
whatever is left into COS-specific exceptions.

Functions:
    retry: Decorator for retrying functions with exponential backoff.
    _convert_client_error: Helper function to convert botocore errors to COS exceptions.
"""
import logging
import time
from functools import wraps
from typing import Any, Callable, Tuple, Type, Union

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionClosedError,
    ConnectTimeoutError,
    EndpointConnectionError,
    ReadTimeoutError,
)

from .exceptions import BucketError, CosError, ObjectError

logger = logging.getLogger("CosFS.client")

RETRYABLE_ERROR_CODES = {
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "InternalError",
    "ServiceUnavailable",
}

RETRYABLE_CONNECTION_ERRORS = (
    EndpointConnectionError,
    ConnectionClosedError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

OPERATIONS = {
    "head_object": "HEAD",
    "get_object_range": "GET",
    "put_object": "PUT",
    "_put_object": "PUT",
    "list_objects": "LIST",
    "delete_object": "DELETE",
    "copy_object": "COPY",
    "bucket_exists": "HEAD",
}


def _error_details(e: ClientError) -> Tuple[str, str, int]:
    response = getattr(e, "response", None) or {}
    error = response.get("Error") or {}
    status = (response.get("ResponseMetadata") or {}).get("HTTPStatusCode") or 0
    code = str(error.get("Code") or status or "Unknown")
    message = str(error.get("Message") or e)
    return code, message, int(status)


def _is_retryable(e: Exception) -> bool:
    if isinstance(e, RETRYABLE_CONNECTION_ERRORS):
        return True
    if isinstance(e, ClientError):
        code, _, status = _error_details(e)
        return code in RETRYABLE_ERROR_CODES or status >= 500
    return False


def _convert_client_error(e: Exception, operation: str = None) -> Union[BucketError, ObjectError]:
    """
    Convert botocore errors to appropriate COS errors.

    Bucket-level codes (``NoSuchBucket``, ``BucketAlreadyExists``...) become
    ``BucketError``; everything else becomes ``ObjectError``. The store's own
    error code is preserved on the result.

    Args:
        e (Exception): The botocore error to convert.
        operation (str, optional): The operation being performed. Defaults to None.

    Returns:
        Union[BucketError, ObjectError]: The converted error.
    """
    if isinstance(e, ClientError):
        code, message, _ = _error_details(e)
        if "bucket" in code.lower():
            return BucketError(message, operation=operation, store_code=code)
        return ObjectError(message, operation=operation, store_code=code)
    return ObjectError(str(e), operation=operation, store_code=type(e).__name__)


def retry(
    max_attempts: int = 5,
    initial_backoff: float = 0.1,
    max_backoff: float = 5.0,
    backoff_multiplier: float = 2.0,
    retryable_exceptions: Tuple[Type[Exception], ...] = (ClientError, BotoCoreError),
) -> Callable:
    """
    Decorator for retrying a function with exponential backoff.

    This decorator wraps a function to automatically retry it when specified
    exceptions occur, with an exponential backoff delay between attempts.
    Errors that are not transient are converted and raised immediately.

    Args:
        max_attempts (int): Maximum number of attempts. Defaults to 5.
        initial_backoff (float): Initial backoff time in seconds. Defaults to 0.1.
        max_backoff (float): Maximum backoff time in seconds. Defaults to 5.0.
        backoff_multiplier (float): Multiplier for exponential backoff. Defaults to 2.0.
        retryable_exceptions (Tuple[Type[Exception], ...]): Exceptions that are
            inspected for a retry. Defaults to (ClientError, BotoCoreError).

    Returns:
        Callable: A decorator that wraps the function.
    """
    def decorator(func: Callable) -> Callable:
        operation = OPERATIONS.get(func.__name__)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            """
            Executes the function with retry logic and exponential backoff.

            Returns:
                Any: Result of the function call.

            Raises:
                CosError: If the error is not transient or all attempts fail.
            """
            last_exception = None
            backoff = initial_backoff

            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    last_exception = e
                    if not _is_retryable(e):
                        logger.debug(f"Non-retryable error during {func.__name__}: {e}")
                        raise _convert_client_error(e, operation) from e

                    logger.warning(
                        f"Retryable error during {func.__name__}. "
                        f"Attempt {attempt + 1}/{max_attempts}. Retrying after {backoff:.2f}s: {e}"
                    )
                    if attempt < max_attempts - 1:
                        time.sleep(backoff)
                        backoff = min(backoff * backoff_multiplier, max_backoff)

            if last_exception is not None:
                raise _convert_client_error(last_exception, operation) from last_exception
            raise CosError(f"Operation {func.__name__} failed after {max_attempts} attempts")

        return wrapper
    return decorator
