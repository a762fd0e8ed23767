"""In-memory object store implementing the client protocol for tests."""
from dataclasses import dataclass, field
from email.utils import formatdate
from typing import Dict, List, Optional, Tuple

from cos_fs.client.exceptions import BucketError, ObjectError
from cos_fs.client.types import CopySource, HeadObjectOutput, ListObjectsOptions, ListPage

DEFAULT_LAST_MODIFIED = "Wed, 21 Oct 2015 07:28:00 GMT"


@dataclass
class InjectedFailure:
    operation: str
    key: Optional[str]
    store_code: str
    times: Optional[int]


@dataclass
class FakeObjectStore:
    """
    Dict-backed store with S3 ``list_objects`` v1 semantics.

    ``calls`` records ``(operation, bucket, key)`` for every request;
    ``fail_on`` makes matching requests raise a store error.
    """

    objects: Dict[str, Dict[str, Tuple[bytes, str]]] = field(default_factory=dict)
    calls: List[Tuple[str, str, str]] = field(default_factory=list)
    failures: List[InjectedFailure] = field(default_factory=list)
    closed: bool = False

    @classmethod
    def with_buckets(cls, *buckets):
        return cls(objects={bucket: {} for bucket in buckets})

    def put(self, bucket, key, data, last_modified=DEFAULT_LAST_MODIFIED):
        """Seed an object without recording a call."""
        self.objects[bucket][key] = (data, last_modified)

    def content(self, bucket, key):
        return self.objects[bucket][key][0]

    def keys(self, bucket):
        return sorted(self.objects[bucket])

    def fail_on(self, operation, key=None, store_code="InternalError", times=None):
        self.failures.append(InjectedFailure(operation, key, store_code, times))

    def calls_to(self, operation):
        return [call for call in self.calls if call[0] == operation]

    def _request(self, operation, bucket, key):
        self.calls.append((operation, bucket, key))
        for failure in self.failures:
            if failure.operation != operation or failure.key not in (None, key):
                continue
            if failure.times is not None:
                if failure.times <= 0:
                    continue
                failure.times -= 1
            raise ObjectError(f"injected {failure.store_code}", operation=operation, store_code=failure.store_code)

    def _bucket(self, bucket, operation):
        if bucket not in self.objects:
            raise BucketError("The specified bucket does not exist", operation=operation, store_code="NoSuchBucket")
        return self.objects[bucket]

    def head_object(self, bucket, key):
        self._request("head_object", bucket, key)
        objects = self._bucket(bucket, "head_object")
        if key not in objects:
            raise ObjectError("Not Found", operation="HEAD", store_code="404")
        data, last_modified = objects[key]
        return HeadObjectOutput(content_length=len(data), last_modified=last_modified)

    def get_object_range(self, bucket, key, offset, length):
        self._request("get_object_range", bucket, key)
        objects = self._bucket(bucket, "get_object_range")
        if key not in objects:
            raise ObjectError("The specified key does not exist.", operation="GET", store_code="NoSuchKey")
        data = objects[key][0]
        if offset >= len(data):
            raise ObjectError("The requested range is not satisfiable", operation="GET", store_code="InvalidRange")
        return data[offset:offset + length]

    def put_object(self, bucket, key, stream):
        self._request("put_object", bucket, key)
        objects = self._bucket(bucket, "put_object")
        objects[key] = (stream.read(), formatdate(usegmt=True))

    def list_objects(self, bucket, options: ListObjectsOptions):
        self._request("list_objects", bucket, options.prefix)
        objects = self._bucket(bucket, "list_objects")
        prefix = options.prefix or ""
        delimiter = options.delimiter
        max_keys = options.max_keys or 1000

        page = ListPage()
        last_entry = ""
        for key in sorted(objects):
            if not key.startswith(prefix):
                continue
            entry, is_prefix = key, False
            if delimiter:
                index = key.find(delimiter, len(prefix))
                if index >= 0:
                    entry, is_prefix = key[:index + len(delimiter)], True
            if options.marker and entry <= options.marker:
                continue
            if entry == last_entry:
                continue
            if len(page.common_prefixes) + len(page.object_keys) == max_keys:
                page.is_truncated = True
                page.next_marker = last_entry
                break
            if is_prefix:
                page.common_prefixes.append(entry)
            else:
                page.object_keys.append(entry)
            last_entry = entry
        return page

    def delete_object(self, bucket, key):
        self._request("delete_object", bucket, key)
        self._bucket(bucket, "delete_object").pop(key, None)

    def copy_object(self, bucket, key, source: CopySource):
        self._request("copy_object", bucket, key)
        source_objects = self._bucket(source.bucket, "copy_object")
        if source.key not in source_objects:
            raise ObjectError("The specified key does not exist.", operation="COPY", store_code="NoSuchKey")
        self._bucket(bucket, "copy_object")[key] = (source_objects[source.key][0], formatdate(usegmt=True))

    def bucket_exists(self, bucket):
        self._request("bucket_exists", bucket, "")
        return bucket in self.objects

    def close(self):
        self.closed = True
