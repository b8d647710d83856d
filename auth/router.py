from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from auth.jwt import issue_token
from core.errors import InvalidCredentials

log = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class LoginResponse(BaseModel):
    token: str
    expiresIn: str
    expiresAt: str


# ---------------------------------------------------------------------
# POST /auth/login
# ---------------------------------------------------------------------
@router.post("/login", response_model=LoginResponse)
async def login(body: Optional[LoginRequest] = None):
    username = ((body.username if body else None) or "").strip()
    password = (body.password if body else None) or ""

    if not username or not password:
        raise HTTPException(status_code=400, detail="Username and password required")

    try:
        issued = issue_token(username, password)
    except InvalidCredentials as exc:
        log.info("[LOGIN] rejected user=%s", username)
        raise HTTPException(status_code=exc.status_code, detail=str(exc))

    log.info("[LOGIN] user=%s token generated", username)
    return LoginResponse(
        token=issued.token,
        expiresIn=issued.expires_in_label,
        expiresAt=datetime.fromtimestamp(issued.expires_at, tz=timezone.utc).isoformat(),
    )
