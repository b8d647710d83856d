from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Optional

from minio import Minio
from minio.error import S3Error

from core.settings import StorageSettings
from providers.storage import StorageProvider

log = logging.getLogger(__name__)

# MinIO needs a part size when the stream length is unknown (min 5 MiB).
UNKNOWN_LENGTH_PART_SIZE = 10 * 1024 * 1024

_MISSING_CODES = ("NoSuchKey", "NoSuchObject")


def _host(endpoint: str, port: int) -> str:
    # Minio client expects "host:port" (no scheme)
    endpoint = (endpoint or "").strip()
    endpoint = endpoint.replace("http://", "").replace("https://", "")
    endpoint = endpoint.rstrip("/")
    if not endpoint:
        return ""
    if ":" in endpoint or not port:
        return endpoint
    return f"{endpoint}:{int(port)}"


def _string_meta(metadata: Optional[Dict[str, str]]) -> Optional[Dict[str, str]]:
    # metadata headers must be strings
    meta: Dict[str, str] = {}
    for k, v in (metadata or {}).items():
        if v is None:
            continue
        meta[str(k)] = str(v)
    return meta or None


@dataclass
class MinioStorageProvider(StorageProvider):
    """
    MinIO-backed implementation of StorageProvider.

    Notes:
      - We auto-create the bucket if missing.
      - Keys are treated as opaque strings (e.g. 2025/01/<uuid>.wav).
      - Synchronous; routers run it in the threadpool.
    """

    endpoint: str
    bucket: str
    access_key: str
    secret_key: str
    port: int = 9000
    secure: bool = False
    client: Optional[Any] = None

    def __post_init__(self) -> None:
        if self.client is None:
            host = _host(self.endpoint, self.port)
            if not host:
                raise RuntimeError("MINIO_ENDPOINT is empty or invalid")

            self.client = Minio(
                endpoint=host,
                access_key=self.access_key,
                secret_key=self.secret_key,
                secure=bool(self.secure),
            )

        self.ensure_bucket()

    @classmethod
    def from_settings(cls, s: StorageSettings) -> "MinioStorageProvider":
        return cls(
            endpoint=s.minio_endpoint,
            port=s.minio_port,
            bucket=s.minio_bucket,
            access_key=s.minio_access_key,
            secret_key=s.minio_secret_key,
            secure=s.minio_use_ssl,
        )

    def ensure_bucket(self) -> None:
        try:
            if not self.client.bucket_exists(bucket_name=self.bucket):
                self.client.make_bucket(bucket_name=self.bucket)
                log.info("Created bucket: %s", self.bucket)
            else:
                log.info("Bucket %s already exists", self.bucket)
        except Exception as e:
            # Keep serving; uploads fail per request and /health/storage reports it.
            log.error("Bucket check failed: %s (bucket=%s)", e, self.bucket)

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        data = data or b""
        self.put_stream(key, io.BytesIO(data), len(data), content_type, metadata)

    def put_stream(
        self,
        key: str,
        stream: BinaryIO,
        length: int = -1,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        key = (key or "").lstrip("/")
        kwargs: Dict[str, Any] = {}
        if length is None or length < 0:
            length = -1
            kwargs["part_size"] = UNKNOWN_LENGTH_PART_SIZE

        self.client.put_object(
            bucket_name=self.bucket,
            object_name=key,
            data=stream,
            length=length,
            content_type=content_type or "application/octet-stream",
            metadata=_string_meta(metadata),
            **kwargs,
        )

    def delete_object(self, key: str) -> None:
        key = (key or "").lstrip("/")
        try:
            self.client.remove_object(bucket_name=self.bucket, object_name=key)
        except S3Error as e:
            if getattr(e, "code", "") in _MISSING_CODES:
                return
            raise

    def ping(self) -> None:
        if not self.client.bucket_exists(bucket_name=self.bucket):
            raise RuntimeError(f"Bucket {self.bucket} does not exist")
