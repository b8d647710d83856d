from __future__ import annotations

import os
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional

_EXT_PATTERN = re.compile(r"^\.[a-z0-9]{1,15}$")


def safe_extension(filename: str) -> str:
    """
    ".WAV" -> ".wav"; anything odd (spaces, unicode, very long) -> "".
    """
    ext = os.path.splitext(os.path.basename(filename or ""))[1].lower()
    return ext if _EXT_PATTERN.match(ext) else ""


def new_storage_key(filename: str, now: Optional[datetime] = None) -> str:
    """
    Internal object key: YYYY/MM/<uuid4><ext>, partitioned by upload month.
    """
    now = now or datetime.now(timezone.utc)
    return f"{now.year:04d}/{now.month:02d}/{uuid.uuid4()}{safe_extension(filename)}"


def new_handle() -> str:
    """
    Public handle: 144 random bits from the OS CSPRNG, URL-safe base64.

    Drawn separately from the storage key's uuid4 and shaped differently, so
    neither can be derived from the other.
    """
    return secrets.token_urlsafe(18)
