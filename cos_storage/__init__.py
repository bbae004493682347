"""
Tencent COS backed filesystem adapter.
"""

from cos_storage.infrastructure.storage.object_storage import (
    COSAdapter,
    FileMetadata,
    FilesystemAdapter,
    OperationResult,
    StorageConfig,
    StorageFactory,
    Visibility,
)
from cos_storage.infrastructure.exceptions import ErrorKind, StorageError
from cos_storage.core.logging_config import setup_logging

__version__ = "0.1.0"

__all__ = [
    'COSAdapter',
    'FileMetadata',
    'FilesystemAdapter',
    'OperationResult',
    'StorageConfig',
    'StorageFactory',
    'Visibility',
    'ErrorKind',
    'StorageError',
    'setup_logging',
]
