from __future__ import annotations

from typing import Any, BinaryIO, Dict, Optional

import boto3
from botocore.config import Config

from core.settings import StorageSettings
from providers.storage import StorageProvider


class S3StorageProvider(StorageProvider):
    """
    boto3 StorageProvider.

    Works against AWS S3 (default credential chain) or any S3-compatible
    endpoint when endpoint_url is set (e.g. http://minio:9000).
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        bucket = (bucket or "").strip()
        if not bucket:
            raise RuntimeError("A bucket name is required for the S3 storage provider")

        prefix = (prefix or "").strip()
        if prefix and not prefix.endswith("/"):
            prefix = prefix + "/"

        self.bucket = bucket
        self.prefix = prefix

        if client is not None:
            self.s3 = client
            return

        cfg = Config(
            retries={"max_attempts": 8, "mode": "standard"},
            region_name=(region or "").strip() or None,
        )
        kwargs: Dict[str, Any] = {"config": cfg}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        if access_key and secret_key:
            kwargs["aws_access_key_id"] = access_key
            kwargs["aws_secret_access_key"] = secret_key
        self.s3 = boto3.client("s3", **kwargs)

    @classmethod
    def from_settings(cls, s: StorageSettings) -> "S3StorageProvider":
        # Static keys only make sense for a custom (S3-compatible) endpoint.
        custom = bool(s.s3_endpoint_url)
        return cls(
            bucket=s.minio_bucket,
            region=s.s3_region or None,
            endpoint_url=s.s3_endpoint_url or None,
            access_key=s.minio_access_key if custom else None,
            secret_key=s.minio_secret_key if custom else None,
        )

    def _key(self, key: str) -> str:
        key = (key or "").lstrip("/")
        if self.prefix:
            return f"{self.prefix}{key}"
        return key

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        kwargs: Dict[str, Any] = {
            "Bucket": self.bucket,
            "Key": self._key(key),
            "Body": data,
            "ContentType": content_type or "application/octet-stream",
        }
        if metadata:
            # S3 metadata keys must be strings
            kwargs["Metadata"] = {str(kk): str(vv) for kk, vv in metadata.items()}
        self.s3.put_object(**kwargs)

    def put_stream(
        self,
        key: str,
        stream: BinaryIO,
        length: int = -1,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        # upload_fileobj does multipart transfers, so length is not needed.
        extra: Dict[str, Any] = {"ContentType": content_type or "application/octet-stream"}
        if metadata:
            extra["Metadata"] = {str(kk): str(vv) for kk, vv in metadata.items()}
        self.s3.upload_fileobj(stream, self.bucket, self._key(key), ExtraArgs=extra)

    def delete_object(self, key: str) -> None:
        self.s3.delete_object(Bucket=self.bucket, Key=self._key(key))

    def ping(self) -> None:
        self.s3.head_bucket(Bucket=self.bucket)
