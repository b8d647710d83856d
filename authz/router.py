from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse, PlainTextResponse

from auth.jwt import extract_bearer
from authz.broker import authorize
from core.deps import RegistryDep, SettingsDep

log = logging.getLogger(__name__)

router = APIRouter(prefix="/authz", tags=["authz"])

# Header names are part of the nginx contract; do not rename.
MEDIA_KEY_HEADER = "X-Media-Key"
MEDIA_FILENAME_HEADER = "X-Media-Filename"


def _header_safe(value: str) -> str:
    """
    Printable ASCII passes through byte-for-byte. Anything else (non-ASCII, control
    characters) is sent as an RFC 5987 ext-value: UTF-8''<percent-encoded>.
    """
    value = value or ""
    if all(0x20 <= ord(ch) <= 0x7E for ch in value):
        return value
    return "UTF-8''" + quote(value, safe="")


# ---------------------------------------------------------------------
# GET /authz/media  (nginx auth_request target)
# ---------------------------------------------------------------------
@router.get("/media")
def authorize_media(
    registry: RegistryDep,
    settings: SettingsDep,
    authorization: Optional[str] = Header(None),
    x_original_method: Optional[str] = Header(None),
    x_original_uri: Optional[str] = Header(None),
):
    result = authorize(
        token=extract_bearer(authorization),
        original_method=x_original_method,
        original_uri=x_original_uri,
        registry=registry,
        owner_scoped=settings.media.owner_scoped,
        prefix=settings.media.public_prefix,
    )

    if not result.allowed:
        log.warning(
            "[AUTHZ] denied status=%s user=%s method=%s uri=%s reason=%s",
            result.status_code,
            result.subject or "-",
            x_original_method or "GET",
            x_original_uri or "",
            result.reason,
        )
        return JSONResponse(status_code=result.status_code, content={"error": result.reason})

    log.info("[AUTHZ] user=%s handle=%s authorized", result.subject, result.handle)
    return PlainTextResponse(
        "OK",
        status_code=200,
        headers={
            MEDIA_KEY_HEADER: result.storage_key or "",
            MEDIA_FILENAME_HEADER: _header_safe(result.filename or ""),
        },
    )
