"""
Object Storage Factory

Creates the COS client and filesystem adapters based on configuration.
"""

import logging
from typing import Dict, Optional, Type

from qcloud_cos import CosConfig, CosS3Client

from cos_storage.core.config import settings
from .base import FilesystemAdapter, StorageConfig
from .cos_adapter import COSAdapter, REGION_MAP

logger = logging.getLogger(__name__)


class StorageFactory:
    """Factory for creating filesystem adapter instances"""

    _adapters: Dict[str, Type[FilesystemAdapter]] = {
        "cos": COSAdapter,
    }

    @staticmethod
    def create_client(config: StorageConfig) -> CosS3Client:
        """
        Build a COS SDK client from adapter configuration

        Args:
            config: Adapter configuration

        Returns:
            CosS3Client instance
        """
        cos_config = CosConfig(
            Region=REGION_MAP.get(config.region, config.region),
            SecretId=config.secret_id,
            SecretKey=config.secret_key,
            Token=config.token,
            Scheme=config.scheme,
            Timeout=config.timeout,
        )
        return CosS3Client(cos_config)

    @classmethod
    def create_storage(
        cls,
        storage_type: str = "cos",
        config: Optional[StorageConfig] = None,
        client=None
    ) -> FilesystemAdapter:
        """
        Create filesystem adapter instance based on type

        Args:
            storage_type: Type of storage ("cos", or a registered name)
            config: Optional custom configuration
            client: Optional pre-built provider client

        Returns:
            FilesystemAdapter implementation

        Raises:
            ValueError: Unsupported storage type
        """
        adapter_class = cls._adapters.get(storage_type.lower())
        if adapter_class is None:
            raise ValueError(f"Unsupported storage type: {storage_type}")

        if config is None:
            config = cls._get_default_config(storage_type)

        if client is None:
            client = cls.create_client(config)

        logger.info(f"创建{storage_type}存储适配器, 存储桶: {config.bucket}, 地域: {config.region}")
        return adapter_class(client, config)

    @staticmethod
    def _get_default_config(storage_type: str) -> StorageConfig:
        """Get default configuration from settings"""
        if storage_type.lower() == "cos":
            return StorageConfig.from_dict(settings.COS_CONFIG)
        raise ValueError(f"No default configuration for storage type: {storage_type}")

    @classmethod
    def register_adapter(cls, name: str, adapter_class: Type[FilesystemAdapter]) -> None:
        """
        注册新的适配器类型

        Args:
            name: 适配器名称
            adapter_class: 适配器类（必须实现FilesystemAdapter接口）
        """
        if not isinstance(adapter_class, type) or not issubclass(adapter_class, FilesystemAdapter):
            raise ValueError("适配器类必须实现FilesystemAdapter接口")

        cls._adapters[name.lower()] = adapter_class
        logger.info(f"注册存储适配器: {name}")

    @classmethod
    def get_default_storage(cls) -> FilesystemAdapter:
        """Get default storage instance (COS)"""
        return cls.create_storage("cos")
