"""
Storage Infrastructure Module

Provides object storage backends behind the filesystem contract.
"""

from . import object_storage

__all__ = [
    'object_storage'
]
