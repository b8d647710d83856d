from __future__ import annotations

import os
import shutil
from typing import BinaryIO, Dict, Optional

from providers.storage import StorageProvider


class LocalFilesStorageProvider(StorageProvider):
    """
    Local filesystem storage provider (dev / tests).

    Objects live under base_dir; content type and metadata are not persisted.
    """

    def __init__(self, base_dir: str = "./data"):
        self.base_dir = os.path.abspath(base_dir)
        os.makedirs(self.base_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        safe = key.replace("..", "").lstrip("/").replace("/", os.sep)
        return os.path.join(self.base_dir, safe)

    def put_object(
        self,
        key: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(data)

    def put_stream(
        self,
        key: str,
        stream: BinaryIO,
        length: int = -1,
        content_type: str = "application/octet-stream",
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        path = self._path(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp = path + ".part"
        try:
            with open(tmp, "wb") as f:
                shutil.copyfileobj(stream, f)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
        os.replace(tmp, path)

    def delete_object(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)

    def ping(self) -> None:
        if not os.path.isdir(self.base_dir):
            raise RuntimeError(f"Storage dir missing: {self.base_dir}")
