"""
Tencent COS Filesystem Adapter

Implements FilesystemAdapter on top of a pre-built qcloud_cos client.
This adapter only translates calls and responses; signing, retries and
transport are handled by the SDK and by requests.
"""

import io
import logging
import posixpath
import re
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from types import MappingProxyType
from typing import Any, BinaryIO, Dict, List, Optional, Union

import requests

from cos_storage.infrastructure.exceptions import ErrorKind, StorageError
from .base import FilesystemAdapter, FileMetadata, StorageConfig, Visibility
from .errors import call_provider, storage_operation, translate_http_error

logger = logging.getLogger(__name__)

# 旧版地域代码 → COS地域名称
REGION_MAP = MappingProxyType({
    'cn-east': 'ap-shanghai',
    'cn-sorth': 'ap-guangzhou',
    'cn-north': 'ap-beijing-1',
    'cn-south-2': 'ap-guangzhou-2',
    'cn-southwest': 'ap-chengdu',
    'sg': 'ap-singapore',
    'tj': 'ap-beijing-1',
    'bj': 'ap-beijing',
    'sh': 'ap-shanghai',
    'gz': 'ap-guangzhou',
    'cd': 'ap-chengdu',
    'sgp': 'ap-singapore',
})

# COS单页最多返回1000条记录，超过时需要用marker翻页
MAX_KEYS = 1000
ALL_USERS_GROUP = 'global/AllUsers'
URL_EXPIRES = timedelta(minutes=30)
STREAM_URL_EXPIRES = timedelta(minutes=5)

# get_presigned_download_url 接受的附加参数
PRESIGN_OPTIONS = ('Params', 'Headers', 'UseCiEndPoint', 'SignHost')


def parse_timestamp(value: Union[str, datetime]) -> int:
    """Parse an ISO-8601 or RFC 1123 time into unix seconds (naive means UTC)."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            parsed = parsedate_to_datetime(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def normalize_file_info(content: Dict[str, Any]) -> FileMetadata:
    """
    Normalize one ``Contents`` entry of a listing

    Args:
        content: Raw entry with Key, LastModified and Size

    Returns:
        FileMetadata record
    """
    key = content['Key']
    # 与pathinfo一致：忽略末尾的斜杠
    stripped = key.rstrip('/') or key
    dirname, basename = posixpath.split(stripped)
    if '.' in basename:
        filename, _, extension = basename.rpartition('.')
    else:
        filename, extension = basename, ''

    return FileMetadata(
        type='dir' if key.endswith('/') else 'file',
        path=key,
        timestamp=parse_timestamp(content['LastModified']),
        size=int(content.get('Size', 0)),
        dirname=dirname,
        basename=basename,
        extension=extension,
        filename=filename,
    )


def normalize_visibility(visibility: Union[Visibility, str]) -> str:
    """Map a visibility onto a COS canned ACL; only ``public`` is translated."""
    value = visibility.value if isinstance(visibility, Visibility) else visibility
    if value == Visibility.PUBLIC.value:
        return 'public-read'
    return value


def _is_truncated(value: Any) -> bool:
    # SDK返回字符串 'true'/'false'
    if isinstance(value, str):
        return value.strip().lower() == 'true'
    return bool(value)


def _next_marker(page: Dict[str, Any], contents: List[Dict[str, Any]], marker: str) -> Optional[str]:
    """Marker for the following page, or None when the listing cannot advance."""
    # 未指定分隔符时COS不返回NextMarker，改用本页最后一个Key
    next_marker = page.get('NextMarker') or (contents[-1]['Key'] if contents else '')
    if not next_marker or next_marker == marker:
        logger.warning(f"分页标记未推进，停止翻页 (marker={marker})")
        return None
    return next_marker


class COSAdapter(FilesystemAdapter):
    """
    Tencent COS implementation of FilesystemAdapter

    Wraps an injected CosS3Client; configuration is immutable.
    """

    def __init__(self, client, config: StorageConfig):
        super().__init__(config)
        self.client = client

    # ------------------------------------------------------------------
    # 标识符
    # ------------------------------------------------------------------

    def get_client(self):
        return self.client

    def get_app_id(self) -> str:
        return self.config.app_id

    def get_bucket(self) -> str:
        """Configured bucket without the ``-{appId}`` suffix"""
        return re.sub(f"-{re.escape(self.get_app_id())}$", '', self.config.bucket)

    def get_bucket_with_app_id(self) -> str:
        return f"{self.get_bucket()}-{self.get_app_id()}"

    def get_region(self) -> str:
        return REGION_MAP.get(self.config.region, self.config.region)

    def get_source_path(self, path: str) -> str:
        return f"{self.get_bucket_with_app_id()}.cos.{self.get_region()}.myqcloud.com/{path}"

    def get_picture_path(self, path: str) -> str:
        return f"{self.get_bucket_with_app_id()}.pic.{self.get_region()}.myqcloud.com/{path}"

    def get_authorization(self, method: str, path: str, expired: int = 300) -> str:
        """
        Sign a hand-built request against this bucket

        Args:
            method: HTTP method
            path: Object key
            expired: Signature lifetime in seconds

        Returns:
            Value for the Authorization header
        """
        return call_provider(
            self.client.get_auth,
            Method=method.upper(),
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
            Expired=expired,
        )

    # ------------------------------------------------------------------
    # URL
    # ------------------------------------------------------------------

    def _apply_cdn_prefix(self, path: str) -> str:
        return f"{self.config.cdn.rstrip('/')}/{path.lstrip('/')}"

    def _presign(self, path: str, expires_in: int, options: Optional[dict] = None) -> str:
        options = options or {}
        ignored = sorted(set(options) - set(PRESIGN_OPTIONS))
        if ignored:
            logger.debug(f"忽略不支持的签名参数: {ignored}")

        url = call_provider(
            self.client.get_presigned_download_url,
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
            Expired=expires_in,
            **{k: v for k, v in options.items() if k in PRESIGN_OPTIONS}
        )
        return str(url)

    def _temporary_url(self, path: str, expiration: datetime, options: Optional[dict] = None) -> str:
        now = datetime.now(expiration.tzinfo) if expiration.tzinfo else datetime.now()
        expires_in = max(1, int((expiration - now).total_seconds()))
        return self._presign(path, expires_in, options)

    @storage_operation(fallback='')
    def get_url(self, path: str) -> str:
        if self.config.cdn:
            return self._apply_cdn_prefix(path)
        return self._presign(path, int(URL_EXPIRES.total_seconds()))

    @storage_operation(fallback='')
    def get_temporary_url(self, path: str, expiration: datetime, options: Optional[dict] = None) -> str:
        """
        Signed URL valid until ``expiration``

        Only ``Params``, ``Headers``, ``UseCiEndPoint`` and ``SignHost`` are
        forwarded to the SDK; other option keys (e.g. ``Scheme``) are ignored.
        """
        return self._temporary_url(path, expiration, options)

    # ------------------------------------------------------------------
    # 写入
    # ------------------------------------------------------------------

    def _prepare_upload_options(self, options: Optional[dict]) -> Dict[str, Any]:
        options = options or {}
        upload_options: Dict[str, Any] = {}

        if self.config.encrypt:
            upload_options['ServerSideEncryption'] = 'AES256'

        if options.get('params'):
            upload_options.update(options['params'])

        if options.get('visibility') is not None:
            upload_options['ACL'] = normalize_visibility(options['visibility'])

        return upload_options

    def _upload(self, path: str, data: bytes, options: Optional[dict]):
        upload_options = self._prepare_upload_options(options)
        bucket = self.get_bucket_with_app_id()
        logger.debug(f"正在上传对象: {bucket}/{path} (大小: {len(data)}字节)")

        if len(data) > self.config.multipart_threshold:
            response = call_provider(
                self.client.upload_file_from_buffer,
                Bucket=bucket,
                Key=path,
                Body=io.BytesIO(data),
                **upload_options
            )
        else:
            response = call_provider(
                self.client.put_object,
                Bucket=bucket,
                Key=path,
                Body=data,
                **upload_options
            )

        logger.info(f"✅ 文件上传成功: {bucket}/{path}")
        return response

    @storage_operation(discard_result=True)
    def write(self, path: str, contents: Union[bytes, str], options: Optional[dict] = None):
        if isinstance(contents, str):
            contents = contents.encode('utf-8')
        return self._upload(path, contents, options)

    @storage_operation(discard_result=True)
    def write_stream(self, path: str, stream: BinaryIO, options: Optional[dict] = None):
        # 从流的起始位置读取全部内容
        if getattr(stream, 'seekable', None) and stream.seekable():
            stream.seek(0)
        contents = stream.read()
        if isinstance(contents, str):
            contents = contents.encode('utf-8')
        return self._upload(path, contents, options)

    def _copy(self, path: str, new_path: str):
        response = call_provider(
            self.client.copy_object,
            Bucket=self.get_bucket_with_app_id(),
            Key=new_path,
            CopySource={
                'Bucket': self.get_bucket_with_app_id(),
                'Key': path,
                'Region': self.get_region(),
            },
        )
        logger.info(f"✅ 文件复制成功: {self.get_source_path(path)} → {new_path}")
        return response

    @storage_operation(discard_result=True)
    def copy(self, path: str, new_path: str):
        return self._copy(path, new_path)

    @storage_operation(fallback=False)
    def rename(self, path: str, new_path: str) -> bool:
        self._copy(path, new_path)
        try:
            self._delete(path)
        except StorageError as e:
            # 复制已完成，源文件删除失败不影响结果
            logger.error(f"❌ 删除源文件失败 {path}: {e}")
        return True

    def _delete(self, path: str):
        response = call_provider(
            self.client.delete_object,
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
        )
        logger.info(f"✅ 文件删除成功: {self.get_bucket_with_app_id()}/{path}")
        return response

    @storage_operation(discard_result=True)
    def delete(self, path: str):
        return self._delete(path)

    @storage_operation(discard_result=True)
    def delete_directory(self, path: str) -> int:
        prefix = path.strip('/')
        if not prefix:
            raise StorageError(ErrorKind.INVALID_ARGUMENT, "拒绝删除存储桶根目录")
        prefix = f"{prefix}/"

        bucket = self.get_bucket_with_app_id()
        marker = ''
        deleted = 0
        while True:
            try:
                page = call_provider(
                    self.client.list_objects,
                    Bucket=bucket,
                    Prefix=prefix,
                    Delimiter='',
                    Marker=marker,
                    MaxKeys=MAX_KEYS,
                )
            except StorageError as e:
                if not self.config.legacy_errors:
                    raise
                logger.error(f"❌ 列出目录失败 {bucket}/{prefix}: {e}")
                break

            contents = page.get('Contents') or []
            for content in contents:
                try:
                    self._delete(content['Key'])
                    deleted += 1
                except StorageError as e:
                    logger.error(f"❌ 删除文件失败 {content['Key']}: {e}")

            if not _is_truncated(page.get('IsTruncated')):
                break
            marker = _next_marker(page, contents, marker)
            if marker is None:
                break

        logger.info(f"✅ 目录删除完成: {bucket}/{prefix} (共删除{deleted}个文件)")
        return deleted

    def _put_directory_marker(self, dirname: str, options: Optional[dict] = None):
        return call_provider(
            self.client.put_object,
            Bucket=self.get_bucket_with_app_id(),
            Key=f"{dirname.rstrip('/')}/",
            Body=b'',
            **self._prepare_upload_options(options)
        )

    @storage_operation(discard_result=True)
    def create_directory(self, path: str, options: Optional[dict] = None):
        return self._put_directory_marker(path, options)

    @storage_operation(fallback=False)
    def create_dir(self, dirname: str, options: Optional[dict] = None):
        return self._put_directory_marker(dirname, options)

    @storage_operation(fallback=False)
    def delete_dir(self, dirname: str) -> bool:
        self._delete(f"{dirname.rstrip('/')}/")
        return True

    @storage_operation(discard_result=True)
    def set_visibility(self, path: str, visibility: Union[Visibility, str]):
        return call_provider(
            self.client.put_object_acl,
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
            ACL=normalize_visibility(visibility),
        )

    # ------------------------------------------------------------------
    # 读取
    # ------------------------------------------------------------------

    def _http_get(self, url: str, **kwargs) -> requests.Response:
        try:
            response = requests.get(
                url,
                timeout=(self.config.connect_timeout, self.config.timeout),
                **kwargs
            )
        except requests.RequestException as e:
            raise translate_http_error(e, url) from e

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            # 释放连接池中的连接
            response.close()
            raise translate_http_error(e, url) from e
        return response

    def _should_read_from_cdn(self) -> bool:
        return bool(self.config.cdn) and self.config.read_from_cdn

    def _read_from_cdn(self, path: str) -> bytes:
        return self._http_get(self._apply_cdn_prefix(path)).content

    def _read_from_source(self, path: str) -> bytes:
        response = call_provider(
            self.client.get_object,
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
        )
        return response['Body'].get_raw_stream().read()

    def _read(self, path: str) -> bytes:
        if self._should_read_from_cdn():
            return self._read_from_cdn(path)
        return self._read_from_source(path)

    @storage_operation(fallback='')
    def read(self, path: str) -> str:
        """
        Read an object as text

        Bytes that are not valid UTF-8 are replaced with U+FFFD; use
        ``read_bytes`` for binary content such as images or archives.
        """
        return self._read(path).decode('utf-8', errors='replace')

    @storage_operation(fallback=b'')
    def read_bytes(self, path: str) -> bytes:
        return self._read(path)

    @storage_operation(fallback=False)
    def read_stream(self, path: str):
        url = self._temporary_url(path, datetime.now(timezone.utc) + STREAM_URL_EXPIRES)
        response = self._http_get(url, stream=True)
        return response.raw

    def _head(self, path: str) -> Dict[str, Any]:
        return call_provider(
            self.client.head_object,
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
        )

    @storage_operation(fallback=False)
    def has(self, path: str) -> bool:
        try:
            self._head(path)
        except StorageError as e:
            if e.kind == ErrorKind.NOT_FOUND:
                return False
            raise
        return True

    @storage_operation(fallback=False)
    def file_exists(self, path: str) -> bool:
        return bool(call_provider(
            self.client.object_exists,
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
        ))

    @storage_operation(fallback=False)
    def directory_exists(self, path: str) -> bool:
        prefix = path.strip('/')
        page = call_provider(
            self.client.list_objects,
            Bucket=self.get_bucket_with_app_id(),
            Prefix=f"{prefix}/" if prefix else '',
            Delimiter='/',
            MaxKeys=1,
        )
        return bool(page.get('Contents') or page.get('CommonPrefixes'))

    @storage_operation(fallback=False)
    def get_metadata(self, path: str) -> Dict[str, Any]:
        return self._head(path)

    def _head_field(self, path: str, header: str) -> Any:
        meta = self._head(path)
        if meta.get(header) is None:
            raise StorageError(ErrorKind.NOT_FOUND, f"{path} 缺少 {header}")
        return meta[header]

    @storage_operation(fallback=False)
    def get_size(self, path: str) -> Dict[str, int]:
        return {'size': int(self._head_field(path, 'Content-Length'))}

    @storage_operation(fallback=False)
    def get_mimetype(self, path: str) -> Dict[str, str]:
        return {'mimetype': self._head_field(path, 'Content-Type')}

    @storage_operation(fallback=False)
    def get_timestamp(self, path: str) -> Dict[str, int]:
        return {'timestamp': parse_timestamp(self._head_field(path, 'Last-Modified'))}

    @storage_operation(fallback=False)
    def get_visibility(self, path: str) -> Dict[str, str]:
        acl = call_provider(
            self.client.get_object_acl,
            Bucket=self.get_bucket_with_app_id(),
            Key=path,
        )
        grants = (acl.get('AccessControlList') or {}).get('Grant') or []
        if isinstance(grants, dict):
            grants = [grants]

        for grant in grants:
            uri = (grant.get('Grantee') or {}).get('URI')
            if uri and grant.get('Permission') == 'READ' and ALL_USERS_GROUP in uri:
                return {'visibility': Visibility.PUBLIC.value}

        return {'visibility': Visibility.PRIVATE.value}

    # ------------------------------------------------------------------
    # 列表
    # ------------------------------------------------------------------

    def _list_objects(self, directory: str = '', recursive: bool = False, marker: str = '') -> Dict[str, Any]:
        return call_provider(
            self.client.list_objects,
            Bucket=self.get_bucket_with_app_id(),
            Prefix='' if directory == '' else f"{directory}/",
            Delimiter='' if recursive else '/',
            Marker=marker,
            MaxKeys=MAX_KEYS,
        )

    @storage_operation(fallback=list)
    def list_contents(self, directory: str = '', recursive: bool = False) -> List[FileMetadata]:
        records: List[FileMetadata] = []
        marker = ''
        while True:
            try:
                page = self._list_objects(directory, recursive, marker)
            except StorageError as e:
                if not self.config.legacy_errors:
                    raise
                # 失败的分页视为空的最后一页
                logger.error(f"❌ 列出文件失败 {directory or '/'} (marker={marker}): {e}")
                page = {'Contents': [], 'IsTruncated': False, 'NextMarker': ''}

            contents = page.get('Contents') or []
            records.extend(normalize_file_info(content) for content in contents)

            if not _is_truncated(page.get('IsTruncated')):
                break
            marker = _next_marker(page, contents, marker)
            if marker is None:
                break

        logger.debug(f"列出文件成功: {directory or '/'} (共{len(records)}个文件)")
        return records
