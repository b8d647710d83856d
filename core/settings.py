from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


DEFAULT_JWT_SECRET = "secret"
DEFAULT_MAX_UPLOAD_BYTES = 1024 * 1024 * 1024


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else str(v)


def _env_int(name: str, default: int) -> int:
    raw = _env(name, "")
    if not raw.strip():
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


# ---------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class AuthSettings:
    jwt_secret: str
    algorithm: str = "HS256"
    token_ttl_seconds: int = 24 * 3600

    # Stand-in for a real identity provider: any username + this password.
    demo_password: str = "demo123"

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET


@dataclass(frozen=True)
class StorageSettings:
    """
    Storage provider configuration.

    provider:
      - "minio"  -> MinioStorageProvider (S3-compatible, default)
      - "s3"     -> S3StorageProvider (boto3, optional custom endpoint)
      - "local"  -> LocalFilesStorageProvider
    """
    provider: str

    # Local
    local_dir: str = "./data"

    # MinIO
    minio_endpoint: str = "minio"
    minio_port: int = 9000
    minio_use_ssl: bool = False
    minio_access_key: str = "minioadmin"
    minio_secret_key: str = "minioadmin"
    minio_bucket: str = "tasama-recordings"

    # boto3
    s3_endpoint_url: str = ""
    s3_region: str = ""


@dataclass(frozen=True)
class MediaSettings:
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    public_prefix: str = "/v1/audio/"

    # Slack on top of max_upload_bytes for multipart boundaries and part headers
    # when the raw request body is capped before parsing.
    multipart_overhead_bytes: int = 64 * 1024

    # Off by default: any valid token may read any known handle.
    owner_scoped: bool = False


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"


@dataclass(frozen=True)
class Settings:
    auth: AuthSettings
    storage: StorageSettings
    media: MediaSettings
    server: ServerSettings


# ---------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------

def _load_auth_settings() -> AuthSettings:
    secret = _env("JWT_SECRET", "") or DEFAULT_JWT_SECRET
    algorithm = (_env("JWT_ALGORITHM", "") or "HS256").strip().upper()
    ttl = _env_int("AUTH_TOKEN_TTL_SECONDS", 24 * 3600)
    demo_password = _env("AUTH_DEMO_PASSWORD", "") or "demo123"
    return AuthSettings(
        jwt_secret=secret,
        algorithm=algorithm,
        token_ttl_seconds=ttl,
        demo_password=demo_password,
    )


def _normalize_storage_provider(raw: str) -> str:
    v = (raw or "").strip().lower()
    if v in ("minio", "object_store", "objectstore"):
        return "minio"
    if v in ("s3", "boto3", "aws"):
        return "s3"
    if v in ("local", "file", "files", "filesystem"):
        return "local"
    return "minio"


def _strip_scheme(endpoint: str) -> str:
    endpoint = (endpoint or "").strip()
    endpoint = endpoint.replace("http://", "").replace("https://", "")
    return endpoint.rstrip("/")


def _load_storage_settings() -> StorageSettings:
    """
    Storage precedence (DO NOT break this):
      1) STORAGE_MODE (deployment/runtime truth)  <-- must win
      2) STORAGE_PROVIDER (legacy override)
      3) default minio
    """
    raw_mode = (_env("STORAGE_MODE", "") or "").strip()
    raw_provider = (_env("STORAGE_PROVIDER", "") or "").strip()
    provider = _normalize_storage_provider(raw_mode or raw_provider or "minio")

    local_dir = (_env("STORAGE_LOCAL_DIR", "") or "./data").strip()

    raw_endpoint = (_env("MINIO_ENDPOINT", "") or "minio").strip()
    use_ssl = _env_bool("MINIO_USE_SSL", raw_endpoint.lower().startswith("https://"))
    port = _env_int("MINIO_PORT", 9000)
    if port <= 0:
        port = 9000

    return StorageSettings(
        provider=provider,
        local_dir=local_dir,
        minio_endpoint=_strip_scheme(raw_endpoint),
        minio_port=port,
        minio_use_ssl=use_ssl,
        minio_access_key=(_env("MINIO_ACCESS_KEY", "") or "minioadmin").strip(),
        minio_secret_key=(_env("MINIO_SECRET_KEY", "") or "minioadmin").strip(),
        minio_bucket=(_env("MINIO_BUCKET", "") or "tasama-recordings").strip(),
        s3_endpoint_url=(_env("S3_ENDPOINT_URL", "") or "").strip(),
        s3_region=(_env("AWS_REGION", "") or _env("AWS_DEFAULT_REGION", "") or "").strip(),
    )


def _load_media_settings() -> MediaSettings:
    max_bytes = _env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES)
    if max_bytes <= 0:
        max_bytes = DEFAULT_MAX_UPLOAD_BYTES
    overhead = _env_int("UPLOAD_MULTIPART_OVERHEAD_BYTES", 64 * 1024)
    if overhead < 0:
        overhead = 64 * 1024
    return MediaSettings(
        max_upload_bytes=max_bytes,
        multipart_overhead_bytes=overhead,
        owner_scoped=_env_bool("MEDIA_OWNER_SCOPED", False),
    )


def _load_server_settings() -> ServerSettings:
    return ServerSettings(
        host=(_env("HOST", "") or "0.0.0.0").strip(),
        port=_env_int("PORT", 3000),
        log_level=(_env("LOG_LEVEL", "") or "INFO").strip().upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(
        auth=_load_auth_settings(),
        storage=_load_storage_settings(),
        media=_load_media_settings(),
        server=_load_server_settings(),
    )
