from unittest.mock import Mock

import pytest
from qcloud_cos import CosServiceError

from cos_storage.infrastructure.storage.object_storage import COSAdapter, StorageConfig


def service_error(code: str = "InternalError", status: int = 500) -> CosServiceError:
    return CosServiceError(
        "GET",
        {
            "code": code,
            "message": f"{code} message",
            "resource": "/key",
            "requestid": "req-1",
            "traceid": "trace-1",
        },
        status,
    )


def make_config(**overrides) -> StorageConfig:
    values = {
        "bucket": "media",
        "app_id": "1250000000",
        "region": "gz",
        "secret_id": "sid",
        "secret_key": "skey",
    }
    values.update(overrides)
    return StorageConfig(**values)


@pytest.fixture
def client():
    return Mock()


@pytest.fixture
def adapter(client):
    return COSAdapter(client, make_config())
