# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
"""
Client Module.

This module defines the object-store capability the filesystem layer consumes
(``ObjectStoreClient``) and ``COSClient``, its implementation on top of the COS
S3-compatible API via boto3.

Classes:
    Session: Holds the configuration a client is built from.
    ObjectStoreClient: Protocol of the seven store primitives.
    COSClient: boto3-backed implementation with retry and error conversion.
"""
import logging
import os
from typing import Any, BinaryIO, Optional, Protocol

from botocore.exceptions import ClientError

from .config import CosConfig, load_config
from .retry import _error_details, retry
from .types import CopySource, HeadObjectOutput, ListObjectsOptions, ListPage

logger = logging.getLogger("CosFS.client")

HTTP_DATE_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"


class ObjectStoreClient(Protocol):
    """
    The object-store primitives the filesystem layer is built from.

    Implementations raise ``BucketError``/``ObjectError`` on failure.
    """

    def head_object(self, bucket: str, key: str) -> HeadObjectOutput:
        """Fetch object metadata."""
        ...

    def get_object_range(self, bucket: str, key: str, offset: int, length: int) -> bytes:
        """Fetch ``length`` bytes starting at ``offset``; may return fewer at the end."""
        ...

    def put_object(self, bucket: str, key: str, stream: BinaryIO) -> None:
        """Upload the stream's remaining content as the whole object."""
        ...

    def list_objects(self, bucket: str, options: ListObjectsOptions) -> ListPage:
        """Return one page of a prefix listing."""
        ...

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete one object."""
        ...

    def copy_object(self, bucket: str, key: str, source: CopySource) -> None:
        """Server-side copy of ``source`` to ``(bucket, key)``."""
        ...

    def bucket_exists(self, bucket: str) -> bool:
        """Return True when the bucket exists."""
        ...


class Session:
    """
    Configuration holder a client is constructed from.

    Args:
        config (CosConfig, optional): Explicit configuration. When omitted it is
            resolved once from ``os.environ``.
    """

    def __init__(self, config: Optional[CosConfig] = None):
        self.config = config if config is not None else load_config(os.environ)

    @property
    def region(self) -> str:
        return self.config.region


class COSClient:
    """
    COS object-store client.

    Wraps a boto3 S3 client pointed at the COS S3-compatible endpoint. boto3's
    own retries are switched off; transient failures are retried by the
    ``retry`` decorator on each method instead.

    Attributes:
        session (Session): Session the client was built from.
    """

    def __init__(self, session: Optional[Session] = None):
        self.session = session or Session()
        config = self.session.config
        logging.getLogger("botocore").setLevel(logging.DEBUG if config.debug else logging.ERROR)
        self._client = self._build_client(config)
        logger.info(f"COSClient created for region {config.region} at {config.endpoint}")

    @staticmethod
    def _build_client(config: CosConfig) -> Any:
        """Create a boto3 S3 client from the configuration."""
        import boto3
        from botocore.config import Config

        client_config = Config(
            retries={"total_max_attempts": 1, "mode": "standard"},
            s3={"addressing_style": "virtual"},
        )
        return boto3.client(
            "s3",
            endpoint_url=config.endpoint,
            region_name=config.region,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            config=client_config,
        )

    @retry()
    def head_object(self, bucket: str, key: str) -> HeadObjectOutput:
        """
        Fetch object metadata.

        The ``Last-Modified`` header is returned as the raw HTTP-date string.

        Args:
            bucket (str): Bucket name
            key (str): Object key

        Returns:
            HeadObjectOutput: Object metadata
        """
        response = self._client.head_object(Bucket=bucket, Key=key)
        headers = (response.get("ResponseMetadata") or {}).get("HTTPHeaders") or {}
        last_modified = headers.get("last-modified")
        if last_modified is None and response.get("LastModified") is not None:
            last_modified = response["LastModified"].strftime(HTTP_DATE_FORMAT)
        return HeadObjectOutput(
            content_length=int(response.get("ContentLength") or 0),
            last_modified=last_modified,
            etag=response.get("ETag"),
            content_type=response.get("ContentType"),
        )

    @retry()
    def get_object_range(self, bucket: str, key: str, offset: int, length: int) -> bytes:
        """
        Issue a ranged GET for ``[offset, offset + length - 1]``.

        Args:
            bucket (str): Bucket name
            key (str): Object key
            offset (int): First byte
            length (int): Number of bytes requested

        Returns:
            bytes: The bytes the store returned, as many as its content length says
        """
        response = self._client.get_object(
            Bucket=bucket,
            Key=key,
            Range=f"bytes={offset}-{offset + length - 1}",
        )
        body = response["Body"]
        try:
            data = body.read()
        finally:
            body.close()
        content_length = response.get("ContentLength")
        if content_length is not None:
            data = data[:int(content_length)]
        return data

    def put_object(self, bucket: str, key: str, stream: BinaryIO) -> None:
        """
        Upload ``stream`` from its current position as the whole object.

        Every attempt rewinds to that position, since a failed attempt may
        already have consumed the stream.
        """
        self._put_object(bucket, key, stream, stream.tell())

    @retry()
    def _put_object(self, bucket: str, key: str, stream: BinaryIO, start: int) -> None:
        stream.seek(start)
        self._client.put_object(Bucket=bucket, Key=key, Body=stream)

    @retry()
    def list_objects(self, bucket: str, options: ListObjectsOptions) -> ListPage:
        """
        Return one page of a prefix listing.

        When the store omits ``NextMarker`` on a truncated page (it only sends it
        for delimited listings), the last key or prefix of the page is used.

        Args:
            bucket (str): Bucket name
            options (ListObjectsOptions): Prefix, delimiter, marker and page size

        Returns:
            ListPage: Common prefixes, object keys and continuation state
        """
        params = {"Bucket": bucket, "Prefix": options.prefix or ""}
        if options.delimiter:
            params["Delimiter"] = options.delimiter
        if options.marker:
            params["Marker"] = options.marker
        if options.max_keys:
            params["MaxKeys"] = int(options.max_keys)

        response = self._client.list_objects(**params)
        object_keys = [obj["Key"] for obj in response.get("Contents", []) or [] if obj.get("Key")]
        common_prefixes = [
            entry["Prefix"] for entry in response.get("CommonPrefixes", []) or [] if entry.get("Prefix")
        ]
        is_truncated = bool(response.get("IsTruncated"))
        next_marker = response.get("NextMarker") or ""
        if is_truncated and not next_marker:
            last_seen = [names[-1] for names in (object_keys, common_prefixes) if names]
            next_marker = max(last_seen) if last_seen else ""
        return ListPage(
            common_prefixes=common_prefixes,
            object_keys=object_keys,
            next_marker=next_marker,
            is_truncated=is_truncated,
        )

    @retry()
    def delete_object(self, bucket: str, key: str) -> None:
        self._client.delete_object(Bucket=bucket, Key=key)

    @retry()
    def copy_object(self, bucket: str, key: str, source: CopySource) -> None:
        """
        Server-side copy of ``source`` to ``(bucket, key)``.

        Args:
            bucket (str): Target bucket
            key (str): Target key
            source (CopySource): Object to copy from
        """
        logger.debug(
            f"copy_object: {self.session.config.copy_source_host(source.bucket)}/{source.key} -> {bucket}/{key}"
        )
        self._client.copy_object(
            Bucket=bucket,
            Key=key,
            CopySource={"Bucket": source.bucket, "Key": source.key},
        )

    @retry()
    def bucket_exists(self, bucket: str) -> bool:
        """Return True when HEAD on the bucket succeeds, False when it reports 404."""
        try:
            self._client.head_bucket(Bucket=bucket)
        except ClientError as e:
            code, _, status = _error_details(e)
            if status == 404 or code in ("404", "NoSuchBucket", "NotFound"):
                return False
            raise
        return True

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        close = getattr(self._client, "close", None)
        if callable(close):
            close()
        logger.info("COSClient closed")
