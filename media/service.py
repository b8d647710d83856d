from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import BinaryIO, List, Optional

from auth.jwt import Identity
from core.errors import BadRequest, DuplicateHandle, PayloadTooLarge, StorageWriteFailed
from media.keys import new_handle, new_storage_key
from media.models import MediaRecord
from media.registry import HandleRegistry
from providers.storage import StorageProvider

log = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class LimitedReader:
    """
    File-like wrapper that counts bytes and raises PayloadTooLarge as soon as
    more than `limit` bytes have been read. Lets the store stream the body
    while still enforcing the ceiling on bodies that lie about their size.
    """

    def __init__(self, raw: BinaryIO, limit: int):
        self._raw = raw
        self._limit = int(limit)
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            # bounded read: at most one byte past the limit
            size = self._limit - self.bytes_read + 1
        chunk = self._raw.read(size)
        self.bytes_read += len(chunk)
        if self.bytes_read > self._limit:
            raise PayloadTooLarge(f"Upload exceeds {self._limit} bytes")
        return chunk

    def readable(self) -> bool:
        return True


def store_media(
    storage: StorageProvider,
    registry: HandleRegistry,
    identity: Identity,
    filename: str,
    content_type: Optional[str],
    stream: BinaryIO,
    size: Optional[int],
    max_bytes: int,
    now: Optional[datetime] = None,
) -> MediaRecord:
    """
    Write an upload to the object store and register its public handle.

    Order matters: the registry is only touched after the store confirms the
    write, so a failed or abandoned write never becomes a visible record.
    """
    filename = (filename or "").strip()
    if not filename:
        raise BadRequest("No file uploaded")
    if size == 0:
        raise BadRequest("No file uploaded")

    if size is not None and size > max_bytes:
        raise PayloadTooLarge(f"Upload exceeds {max_bytes} bytes")

    content_type = (content_type or "").strip() or DEFAULT_CONTENT_TYPE
    now = now or datetime.now(timezone.utc)

    storage_key = new_storage_key(filename, now)
    handle = new_handle()
    reader = LimitedReader(stream, max_bytes)

    log.info(
        "[UPLOAD] user=%s filename=%s size=%s key=%s",
        identity.subject,
        filename,
        size if size is not None else "unknown",
        storage_key,
    )

    try:
        storage.put_stream(
            storage_key,
            reader,
            length=size if size is not None else -1,
            content_type=content_type,
            metadata={"original-name": filename, "uploaded-by": identity.subject},
        )
    except PayloadTooLarge:
        log.warning("[UPLOAD] rejected key=%s: body exceeded %s bytes", storage_key, max_bytes)
        _discard(storage, storage_key)
        raise
    except Exception as exc:
        log.error("[UPLOAD ERROR] key=%s: %s", storage_key, exc, exc_info=True)
        raise StorageWriteFailed(f"Storage write failed: {exc}") from exc

    if reader.bytes_read == 0:
        # Size was not declared and the part turned out empty.
        log.warning("[UPLOAD] rejected key=%s: empty body", storage_key)
        _discard(storage, storage_key)
        raise BadRequest("No file uploaded")

    record = MediaRecord(
        handle=handle,
        storage_key=storage_key,
        original_name=filename,
        size_bytes=size if size is not None else reader.bytes_read,
        content_type=content_type,
        owner=identity.subject,
        created_at=now,
    )

    try:
        registry.register(record)
    except DuplicateHandle:
        # Object is written but unreferenced; try not to leave it behind.
        _discard(storage, storage_key)
        raise

    log.info("[UPLOAD] Success - handle=%s key=%s", handle, storage_key)
    return record


def _discard(storage: StorageProvider, storage_key: str) -> None:
    try:
        storage.delete_object(storage_key)
    except Exception as exc:
        log.error("[UPLOAD] orphaned object left at key=%s: %s", storage_key, exc)


def list_media(registry: HandleRegistry, identity: Identity, owner_scoped: bool = False) -> List[MediaRecord]:
    """
    All known records in upload order. With owner_scoped, only the caller's own.
    """
    records = registry.list()
    if owner_scoped:
        records = [r for r in records if r.owner == identity.subject]
    log.info("[LIST] user=%s count=%d", identity.subject, len(records))
    return records
