"""
Provider error translation

Maps COS SDK and HTTP client exceptions onto StorageError kinds and applies
the adapter's error contract (legacy sentinels or OperationResult).
"""

import functools
import logging
from typing import Any, Callable

import requests
from qcloud_cos import CosClientError, CosServiceError

from cos_storage.infrastructure.exceptions import ErrorKind, StorageError
from .base import OperationResult

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchResource"}


def translate_cos_error(exc: Exception) -> StorageError:
    """
    Convert a COS SDK exception into a StorageError

    Args:
        exc: CosServiceError or CosClientError

    Returns:
        StorageError with the matching kind
    """
    if isinstance(exc, CosServiceError):
        status = exc.get_status_code()
        code = exc.get_error_code()
        message = f"{code}: {exc.get_error_msg()} (status={status}, request_id={exc.get_request_id()})"
        if status == 404 or code in NOT_FOUND_CODES:
            return StorageError(ErrorKind.NOT_FOUND, message)
        return StorageError(ErrorKind.SERVICE_ERROR, message)
    return StorageError(ErrorKind.NETWORK_ERROR, str(exc))


def translate_http_error(exc: requests.RequestException, url: str) -> StorageError:
    """Convert a requests exception into a StorageError"""
    # 签名URL的查询串包含凭证，不写入日志
    safe_url = url.split("?", 1)[0]
    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        kind = ErrorKind.NOT_FOUND if status == 404 else ErrorKind.SERVICE_ERROR
        return StorageError(kind, f"HTTP {status}: {safe_url}")
    return StorageError(ErrorKind.NETWORK_ERROR, f"{type(exc).__name__}: {safe_url}")


def call_provider(func: Callable, **kwargs) -> Any:
    """Invoke an SDK method, re-raising provider failures as StorageError."""
    try:
        return func(**kwargs)
    except (CosServiceError, CosClientError) as e:
        raise translate_cos_error(e) from e


def storage_operation(fallback: Any = None, discard_result: bool = False):
    """
    Apply the adapter error contract to a public operation

    With ``config.legacy_errors`` the StorageError is logged and ``fallback``
    is returned; void operations (``discard_result``) return None. Otherwise
    the outcome is wrapped in an OperationResult. Exceptions other than
    StorageError propagate.

    Args:
        fallback: Legacy return value on failure (callables are invoked)
        discard_result: Legacy mode returns None on success
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                value = func(self, *args, **kwargs)
            except StorageError as e:
                if not self.config.legacy_errors:
                    return OperationResult.failure(e.kind, e.message)
                logger.error(f"❌ {func.__name__} 执行失败: {e}")
                return fallback() if callable(fallback) else fallback
            if not self.config.legacy_errors:
                return OperationResult.success(value)
            return None if discard_result else value
        return wrapper
    return decorator
