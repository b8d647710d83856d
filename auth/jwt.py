from __future__ import annotations

import hmac
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from core.errors import (
    CredentialError,
    ExpiredCredential,
    InvalidCredential,
    InvalidCredentials,
    MissingCredential,
)
from core.settings import AuthSettings, get_settings

log = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Identity:
    subject: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: int
    expires_in: int

    @property
    def expires_in_label(self) -> str:
        # "24h" for whole hours, otherwise seconds
        if self.expires_in % 3600 == 0:
            return f"{self.expires_in // 3600}h"
        return f"{self.expires_in}s"


def _auth_settings(settings: Optional[AuthSettings] = None) -> AuthSettings:
    return settings or get_settings().auth


# ---------------------------------------------------------------------
# Credential issuer
# ---------------------------------------------------------------------

def check_credentials(username: str, password: str, settings: Optional[AuthSettings] = None) -> None:
    """
    Fixed demo rule: any non-empty username with the configured password.
    """
    s = _auth_settings(settings)
    if not username or not password:
        raise InvalidCredentials()
    if not hmac.compare_digest(password.encode("utf-8"), s.demo_password.encode("utf-8")):
        raise InvalidCredentials()


def issue_token(
    username: str,
    password: str,
    settings: Optional[AuthSettings] = None,
    now: Optional[float] = None,
) -> IssuedToken:
    s = _auth_settings(settings)
    check_credentials(username, password, s)

    iat = int(now if now is not None else time.time())
    exp = iat + int(s.token_ttl_seconds)
    claims = {
        "sub": username,
        "username": username,
        "iat": iat,
        "exp": exp,
    }
    token = jwt.encode(claims, s.jwt_secret, algorithm=s.algorithm)
    return IssuedToken(token=token, expires_at=exp, expires_in=exp - iat)


# ---------------------------------------------------------------------
# Token validator
# ---------------------------------------------------------------------

def extract_bearer(header_value: Optional[str]) -> Optional[str]:
    """
    "Bearer <token>" -> "<token>". Anything else counts as no token.
    """
    raw = (header_value or "").strip()
    if not raw:
        return None
    parts = raw.split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1].strip() or None


def validate_token(raw_token: Optional[str], settings: Optional[AuthSettings] = None) -> Identity:
    if not raw_token or not raw_token.strip():
        raise MissingCredential()

    s = _auth_settings(settings)
    try:
        claims: Dict[str, Any] = jwt.decode(
            raw_token.strip(),
            s.jwt_secret,
            algorithms=[s.algorithm],
            options={"require_exp": True, "require_iat": True},
        )
    except ExpiredSignatureError as e:
        raise ExpiredCredential() from e
    except JWTError as e:
        raise InvalidCredential(f"Invalid token: {e}") from e

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise InvalidCredential("Token missing subject")

    return Identity(
        subject=subject,
        issued_at=int(claims.get("iat") or 0),
        expires_at=int(claims.get("exp") or 0),
    )


async def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> Identity:
    """
    Dependency for the plain protected endpoints. Every credential failure is a 401 here;
    the proxy-facing broker applies its own 401/403 split.
    """
    token = creds.credentials if creds else None
    try:
        return validate_token(token)
    except CredentialError as e:
        log.info("Rejected bearer token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
