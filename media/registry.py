from __future__ import annotations

import logging
import threading
from typing import Dict, List, Protocol, runtime_checkable

from core.errors import DuplicateHandle, HandleNotFound
from media.models import MediaRecord

log = logging.getLogger(__name__)


@runtime_checkable
class HandleRegistry(Protocol):
    """
    handle -> MediaRecord mapping.

    Append-only: records are inserted once and never mutated. A durable
    key-value backend can replace the in-memory one behind this interface.
    """

    def register(self, record: MediaRecord) -> None: ...

    def resolve(self, handle: str) -> MediaRecord: ...

    def list(self) -> List[MediaRecord]: ...


class InMemoryHandleRegistry(HandleRegistry):
    """
    Process-lifetime registry. Contents are lost on restart.

    A single lock guards the dict and the insertion-order list together, so
    list() never sees a handle that resolve() cannot find (or vice versa).
    Critical sections are O(1) apart from the list() copy.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_handle: Dict[str, MediaRecord] = {}
        self._order: List[MediaRecord] = []

    def register(self, record: MediaRecord) -> None:
        with self._lock:
            if record.handle not in self._by_handle:
                self._by_handle[record.handle] = record
                self._order.append(record)
                return

        log.critical(
            "Duplicate media handle %s (storage_key=%s): handle uniqueness is broken",
            record.handle,
            record.storage_key,
        )
        raise DuplicateHandle(f"Handle already registered: {record.handle}")

    def resolve(self, handle: str) -> MediaRecord:
        with self._lock:
            record = self._by_handle.get(handle)
        if record is None:
            raise HandleNotFound(f"Unknown handle: {handle}")
        return record

    def list(self) -> List[MediaRecord]:
        with self._lock:
            return list(self._order)

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def __contains__(self, handle: object) -> bool:
        with self._lock:
            return handle in self._by_handle
