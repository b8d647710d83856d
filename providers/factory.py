from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from core.settings import Settings, StorageSettings, get_settings
from media.registry import HandleRegistry, InMemoryHandleRegistry
from providers.storage import StorageProvider

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Providers:
    """
    Central container for runtime collaborators, attached to app.state.providers.
    """
    settings: Settings
    storage: StorageProvider
    registry: HandleRegistry


def build_storage(s: StorageSettings) -> StorageProvider:
    # Imported lazily so only the selected backend's SDK has to be importable.
    if s.provider == "local":
        from providers.impl.storage_local_files import LocalFilesStorageProvider

        log.info("Storage: local files at %s", s.local_dir)
        return LocalFilesStorageProvider(s.local_dir)

    if s.provider == "s3":
        from providers.impl.storage_s3 import S3StorageProvider

        log.info("Storage: s3 bucket=%s endpoint=%s", s.minio_bucket, s.s3_endpoint_url or "aws")
        return S3StorageProvider.from_settings(s)

    from providers.impl.storage_minio import MinioStorageProvider

    log.info("Storage: minio bucket=%s endpoint=%s:%s", s.minio_bucket, s.minio_endpoint, s.minio_port)
    return MinioStorageProvider.from_settings(s)


_cached: Optional[Providers] = None


def get_providers() -> Providers:
    global _cached
    if _cached is None:
        settings = get_settings()
        _cached = Providers(
            settings=settings,
            storage=build_storage(settings.storage),
            registry=InMemoryHandleRegistry(),
        )
    return _cached


def reset_providers() -> None:
    global _cached
    _cached = None
