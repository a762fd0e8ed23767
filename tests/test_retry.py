from unittest.mock import patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from cos_fs.client.exceptions import BucketError, ObjectError
from cos_fs.client.retry import _convert_client_error, retry


def client_error(code, status=400, operation="HeadObject"):
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} message"}, "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


def flaky(name, *outcomes):
    """Build a function that raises or returns each outcome in turn."""
    remaining = list(outcomes)
    calls = []

    def operation():
        calls.append(1)
        outcome = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    operation.__name__ = name
    operation.calls = calls
    return operation


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("cos_fs.client.retry.time.sleep") as sleep:
        yield sleep


def test_convert_object_error():
    error = _convert_client_error(client_error("NoSuchKey", 404), "GET")
    assert isinstance(error, ObjectError)
    assert error.store_code == "NoSuchKey"
    assert error.code == "ERR_OBJECT_GET"
    assert error.not_found


def test_convert_bucket_error():
    error = _convert_client_error(client_error("NoSuchBucket", 404), "LIST")
    assert isinstance(error, BucketError)
    assert error.code == "ERR_BUCKET_LIST"


def test_convert_connection_error():
    error = _convert_client_error(EndpointConnectionError(endpoint_url="https://cos"), "PUT")
    assert isinstance(error, ObjectError)
    assert error.store_code == "EndpointConnectionError"


def test_non_retryable_error_raised_immediately():
    func = flaky("head_object", client_error("AccessDenied", 403))
    with pytest.raises(ObjectError, match="AccessDenied"):
        retry()(func)()
    assert len(func.calls) == 1


def test_retryable_error_then_success(no_sleep):
    func = flaky("put_object", client_error("SlowDown", 503), "ok")
    assert retry()(func)() == "ok"
    assert len(func.calls) == 2
    no_sleep.assert_called_once_with(0.1)


def test_retries_exhausted(no_sleep):
    func = flaky("get_object_range", client_error("InternalError", 500))
    with pytest.raises(ObjectError) as exc_info:
        retry(max_attempts=3)(func)()
    assert len(func.calls) == 3
    assert exc_info.value.code == "ERR_OBJECT_GET"
    assert [call.args[0] for call in no_sleep.call_args_list] == [0.1, 0.2]


def test_connection_errors_are_retried():
    func = flaky("get", EndpointConnectionError(endpoint_url="https://cos"), b"data")
    assert retry()(func)() == b"data"


def test_backoff_is_capped(no_sleep):
    func = flaky("list_objects", client_error("ServiceUnavailable", 503))
    with pytest.raises(ObjectError):
        retry(max_attempts=4, initial_backoff=1.0, max_backoff=1.5)(func)()
    assert [call.args[0] for call in no_sleep.call_args_list] == [1.0, 1.5, 1.5]
