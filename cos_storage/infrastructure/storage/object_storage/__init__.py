"""
Object Storage Infrastructure Module

Provides the filesystem contract and its Tencent COS implementation.
"""

from .base import FilesystemAdapter, StorageConfig, FileMetadata, OperationResult, Visibility
from .cos_adapter import COSAdapter, REGION_MAP, normalize_file_info
from .factory import StorageFactory

__all__ = [
    'FilesystemAdapter',
    'StorageConfig',
    'FileMetadata',
    'OperationResult',
    'Visibility',
    'COSAdapter',
    'REGION_MAP',
    'normalize_file_info',
    'StorageFactory'
]
