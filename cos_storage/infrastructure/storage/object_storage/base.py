"""
Object Storage Abstract Base Classes

Defines the filesystem contract that object storage backends implement so
they can be plugged in behind a generic file-storage abstraction
(Tencent COS today; other providers register through the factory).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import Any, BinaryIO, Dict, Mapping, Optional, Union

from pydantic import BaseModel, Field

from cos_storage.infrastructure.exceptions import ErrorKind


class Visibility(str, Enum):
    """Object visibility as seen by the filesystem abstraction"""
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class StorageConfig:
    """Configuration for the COS filesystem adapter"""
    bucket: str
    app_id: str
    region: str
    secret_id: str = ""
    secret_key: str = ""
    token: Optional[str] = None

    # CDN domain, e.g. "https://cdn.example.com"
    cdn: Optional[str] = None
    scheme: str = "http"
    read_from_cdn: bool = False
    encrypt: bool = False

    # HTTP timeouts in seconds
    timeout: int = 60
    connect_timeout: int = 60

    # Keep the swallow-and-return-sentinel behaviour of the legacy adapter
    legacy_errors: bool = True

    # Uploads above this size go through the multipart buffer upload
    multipart_threshold: int = 5 * 1024 * 1024

    @classmethod
    def from_dict(cls, config: Mapping[str, Any]) -> "StorageConfig":
        """
        Build a config from a flysystem-style mapping

        Accepts both flat keys (``app_id``, ``secret_id``...) and the nested
        ``credentials`` block (``appId``, ``secretId``, ``secretKey``, ``token``).

        Args:
            config: Raw configuration mapping

        Returns:
            StorageConfig instance

        Raises:
            KeyError: If bucket, app id or region is missing
        """
        credentials = config.get("credentials") or {}

        def pick(flat_key: str, nested_key: str, default=None):
            if config.get(flat_key) not in (None, ""):
                return config[flat_key]
            if credentials.get(nested_key) not in (None, ""):
                return credentials[nested_key]
            return default

        app_id = pick("app_id", "appId")
        if not config.get("bucket") or not config.get("region") or app_id in (None, ""):
            raise KeyError("bucket, region and app id are required")

        return cls(
            bucket=str(config["bucket"]),
            app_id=str(app_id),
            region=str(config["region"]),
            secret_id=pick("secret_id", "secretId", ""),
            secret_key=pick("secret_key", "secretKey", ""),
            token=pick("token", "token"),
            cdn=config.get("cdn") or None,
            scheme=config.get("scheme") or "http",
            read_from_cdn=bool(config.get("read_from_cdn", False)),
            encrypt=bool(config.get("encrypt", False)),
            timeout=int(config.get("timeout") or 60),
            connect_timeout=int(config.get("connect_timeout") or 60),
            legacy_errors=bool(config.get("legacy_errors", True)),
            multipart_threshold=int(config.get("multipart_threshold") or 5 * 1024 * 1024),
        )


@dataclass
class FileMetadata:
    """Normalized listing record"""
    type: str
    path: str
    timestamp: int
    size: int
    dirname: str
    basename: str
    extension: str
    filename: str

    def is_dir(self) -> bool:
        return self.type == "dir"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class OperationResult(BaseModel):
    """Uniform outcome of a storage operation"""
    ok: bool = Field(..., description="操作是否成功")
    value: Any = Field(default=None, description="操作返回值")
    error_kind: Optional[ErrorKind] = Field(default=None, description="错误类型")
    message: Optional[str] = Field(default=None, description="错误信息")

    @classmethod
    def success(cls, value: Any = None) -> "OperationResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str = "") -> "OperationResult":
        return cls(ok=False, error_kind=kind, message=message)

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> dict:
        """转换为字典"""
        return {
            "ok": self.ok,
            "value": self.value,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "message": self.message
        }


class FilesystemAdapter(ABC):
    """
    Abstract filesystem contract for object storage backends

    Every backend maps these calls onto its provider. Keys are opaque
    strings; directories are emulated with trailing-slash marker objects.
    """

    def __init__(self, config: StorageConfig):
        self.config = config

    @abstractmethod
    def write(self, path: str, contents: Union[bytes, str], options: Optional[dict] = None):
        """
        Upload contents under the given key

        Args:
            path: Object key
            contents: Content as bytes or text
            options: Upload options (``visibility``, ``params``)
        """
        pass

    @abstractmethod
    def write_stream(self, path: str, stream: BinaryIO, options: Optional[dict] = None):
        """
        Upload the whole content of a readable stream

        Args:
            path: Object key
            stream: Readable binary stream
            options: Upload options (``visibility``, ``params``)
        """
        pass

    def update(self, path: str, contents: Union[bytes, str], options: Optional[dict] = None):
        return self.write(path, contents, options)

    def update_stream(self, path: str, stream: BinaryIO, options: Optional[dict] = None):
        return self.write_stream(path, stream, options)

    @abstractmethod
    def read(self, path: str):
        """
        Read an object as text

        Args:
            path: Object key

        Returns:
            Object content
        """
        pass

    @abstractmethod
    def read_stream(self, path: str):
        """
        Open a readable stream over an object

        Args:
            path: Object key

        Returns:
            Readable stream
        """
        pass

    @abstractmethod
    def copy(self, path: str, new_path: str):
        """Server-side copy of ``path`` to ``new_path``"""
        pass

    @abstractmethod
    def rename(self, path: str, new_path: str):
        """
        Move an object: copy, then delete the source once the copy succeeded

        Args:
            path: Source key
            new_path: Destination key

        Returns:
            True if successful, False otherwise
        """
        pass

    def move(self, source: str, destination: str):
        return self.rename(source, destination)

    @abstractmethod
    def delete(self, path: str):
        """Delete a single object"""
        pass

    @abstractmethod
    def delete_directory(self, path: str):
        """Delete every object stored under the directory prefix"""
        pass

    @abstractmethod
    def create_directory(self, path: str, options: Optional[dict] = None):
        """Create the zero-byte directory marker ``{path}/``"""
        pass

    @abstractmethod
    def has(self, path: str):
        """
        Check if an object exists

        Args:
            path: Object key

        Returns:
            True if the object exists, False otherwise
        """
        pass

    @abstractmethod
    def file_exists(self, path: str):
        pass

    @abstractmethod
    def directory_exists(self, path: str):
        pass

    @abstractmethod
    def set_visibility(self, path: str, visibility: Union[Visibility, str]):
        """Apply the ACL matching the visibility"""
        pass

    @abstractmethod
    def get_visibility(self, path: str):
        """Resolve the visibility of an object from its ACL"""
        pass

    @abstractmethod
    def list_contents(self, directory: str = "", recursive: bool = False):
        """
        List objects under a directory

        Args:
            directory: Directory key without trailing slash ('' for root)
            recursive: Include nested keys

        Returns:
            List of FileMetadata
        """
        pass

    @abstractmethod
    def get_metadata(self, path: str):
        pass

    @abstractmethod
    def get_size(self, path: str):
        pass

    @abstractmethod
    def get_mimetype(self, path: str):
        pass

    @abstractmethod
    def get_timestamp(self, path: str):
        pass

    @abstractmethod
    def get_url(self, path: str) -> str:
        """Public (CDN) or signed URL for an object"""
        pass

    @abstractmethod
    def get_temporary_url(self, path: str, expiration: datetime, options: Optional[dict] = None) -> str:
        """
        Signed URL valid until ``expiration``

        Args:
            path: Object key
            expiration: Absolute expiry time
            options: Extra options forwarded to the provider

        Returns:
            Signed URL
        """
        pass
