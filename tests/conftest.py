import os

import pytest

from cos_fs.fs.filesystem import CosFileSystem
from mock_store import FakeObjectStore

BUCKET = "test-bucket-1250000000"


def pytest_configure(config):
    """Configure test environment."""
    # Keep a developer's real credentials file out of unit tests
    os.environ.pop("COS_CONFIG_FILE", None)


@pytest.fixture
def bucket():
    return BUCKET


@pytest.fixture
def store():
    """In-memory store holding one empty bucket."""
    return FakeObjectStore.with_buckets(BUCKET)


@pytest.fixture
def fs(store):
    """Filesystem over the in-memory store."""
    return CosFileSystem(client=store)


@pytest.fixture
def cos_path():
    """Build ``cos://`` paths in the test bucket."""
    def build(key=""):
        return f"cos://{BUCKET}/{key}"
    return build
