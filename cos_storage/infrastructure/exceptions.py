"""
Custom exceptions for the Infrastructure layer.
"""
from enum import Enum


class InfrastructureError(Exception):
    """Base class for exceptions in the infrastructure layer."""
    pass


class ErrorKind(str, Enum):
    """Failure categories reported by storage operations"""
    NOT_FOUND = "not_found"
    SERVICE_ERROR = "service_error"
    NETWORK_ERROR = "network_error"
    INVALID_ARGUMENT = "invalid_argument"


class StorageError(InfrastructureError):
    """Raised when the object storage provider rejects or cannot serve a request."""

    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"
