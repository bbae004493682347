from unittest.mock import Mock, patch

import pytest

from cos_storage.infrastructure.storage.object_storage import (
    COSAdapter,
    FilesystemAdapter,
    StorageConfig,
    StorageFactory,
)

from conftest import make_config

FACTORY = "cos_storage.infrastructure.storage.object_storage.factory"


def test_create_storage_with_injected_client():
    client = Mock()
    config = make_config()

    storage = StorageFactory.create_storage("cos", config=config, client=client)

    assert isinstance(storage, COSAdapter)
    assert storage.get_client() is client
    assert storage.config is config


def test_create_storage_builds_sdk_client():
    config = make_config(region="sh", scheme="https", token="tmp-token", timeout=30)

    with patch(f"{FACTORY}.CosConfig") as cos_config, patch(f"{FACTORY}.CosS3Client") as cos_client:
        storage = StorageFactory.create_storage("COS", config=config)

    cos_config.assert_called_once_with(
        Region="ap-shanghai",
        SecretId="sid",
        SecretKey="skey",
        Token="tmp-token",
        Scheme="https",
        Timeout=30,
    )
    cos_client.assert_called_once_with(cos_config.return_value)
    assert storage.get_client() is cos_client.return_value


def test_create_storage_rejects_unknown_type():
    with pytest.raises(ValueError):
        StorageFactory.create_storage("oss", config=make_config(), client=Mock())


def test_register_adapter_requires_filesystem_adapter():
    with pytest.raises(ValueError):
        StorageFactory.register_adapter("broken", dict)


def test_register_adapter_adds_backend():
    class MirrorAdapter(COSAdapter):
        pass

    StorageFactory.register_adapter("mirror", MirrorAdapter)
    try:
        storage = StorageFactory.create_storage("mirror", config=make_config(), client=Mock())
        assert isinstance(storage, MirrorAdapter)
        assert isinstance(storage, FilesystemAdapter)
    finally:
        StorageFactory._adapters.pop("mirror", None)


def test_default_config_comes_from_settings():
    with patch(f"{FACTORY}.settings") as settings:
        settings.COS_CONFIG = {
            "bucket": "media-1250000000",
            "region": "gz",
            "credentials": {"appId": "1250000000", "secretId": "sid", "secretKey": "skey", "token": None},
            "cdn": None,
            "scheme": "http",
            "read_from_cdn": False,
            "encrypt": True,
            "timeout": 60,
            "connect_timeout": 10,
            "legacy_errors": True,
        }
        storage = StorageFactory.create_storage("cos", client=Mock())

    assert storage.get_bucket() == "media"
    assert storage.config.encrypt is True
    assert storage.config.connect_timeout == 10


def test_config_from_nested_credentials():
    config = StorageConfig.from_dict({
        "bucket": "media",
        "region": "bj",
        "credentials": {"appId": 1250000000, "secretId": "sid", "secretKey": "skey"},
        "cdn": "",
        "read_from_cdn": True,
    })

    assert config.app_id == "1250000000"
    assert config.secret_id == "sid"
    assert config.cdn is None
    assert config.scheme == "http"
    assert config.read_from_cdn is True
    assert config.legacy_errors is True


def test_config_flat_keys_win_over_credentials():
    config = StorageConfig.from_dict({
        "bucket": "media",
        "region": "bj",
        "app_id": "42",
        "credentials": {"appId": "1"},
    })

    assert config.app_id == "42"


def test_config_requires_bucket_region_and_app_id():
    with pytest.raises(KeyError):
        StorageConfig.from_dict({"bucket": "media", "region": "bj"})


def test_config_is_immutable():
    config = make_config()

    with pytest.raises(AttributeError):
        config.bucket = "other"
