from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List

from pydantic import BaseModel

PUBLIC_PREFIX = "/v1/audio/"


@dataclass(frozen=True)
class MediaRecord:
    """
    One stored object as known to the service.

    - handle: opaque public id, shared with clients (/v1/audio/<handle>)
    - storage_key: internal object-store key, never shared by the upload API as a URL
    - everything else is descriptive metadata fixed at upload time
    """
    handle: str
    storage_key: str
    original_name: str
    size_bytes: int
    content_type: str
    owner: str
    created_at: datetime

    @property
    def download_path(self) -> str:
        return f"{PUBLIC_PREFIX}{self.handle}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "handle": self.handle,
            "storageKey": self.storage_key,
            "originalName": self.original_name,
            "size": self.size_bytes,
            "contentType": self.content_type,
            "uploadedAt": self.created_at.isoformat(),
            "uploadedBy": self.owner,
            "downloadPath": self.download_path,
        }


class MediaFileModel(BaseModel):
    handle: str
    storageKey: str
    originalName: str
    size: int
    contentType: str
    uploadedAt: str
    uploadedBy: str
    downloadPath: str


class MediaListResponse(BaseModel):
    files: List[MediaFileModel]
    count: int
