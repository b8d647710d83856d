from __future__ import annotations

from typing import BinaryIO, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class StorageProvider(Protocol):
    """
    Object storage abstraction.

    Keys are opaque strings (e.g. 2025/01/<uuid>.wav). put_stream is the upload
    path; length == -1 means "unknown, read until EOF".
    """

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None: ...

    def put_stream(
        self,
        key: str,
        stream: BinaryIO,
        length: int = -1,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None: ...

    def delete_object(self, key: str) -> None: ...

    def ping(self) -> None: ...
