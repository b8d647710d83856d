"""
Authorization broker for the reverse proxy's auth subrequest.

nginx sends `GET /authz/media` before serving `/v1/audio/<handle>` and copies
X-Original-Method / X-Original-Uri from the client request. A 2xx answer lets the
request through; the proxy then reads X-Media-Key to rewrite the upstream request
to the real object. Anything else is a deny.

Checks run in a fixed order and stop at the first failure:

    credential -> method -> path -> handle (-> owner, when scoping is on)

The broker only reads the registry. It never touches the object store.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from auth.jwt import Identity, validate_token
from core.errors import BadRequest, CredentialError, HandleNotFound
from media.models import PUBLIC_PREFIX
from media.registry import HandleRegistry

log = logging.getLogger(__name__)

ALLOWED_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class AuthzOutcome(str, enum.Enum):
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"


_STATUS = {
    AuthzOutcome.AUTHORIZED: 200,
    AuthzOutcome.UNAUTHORIZED: 401,
    AuthzOutcome.FORBIDDEN: 403,
    AuthzOutcome.BAD_REQUEST: 400,
    AuthzOutcome.NOT_FOUND: 404,
}


@dataclass(frozen=True)
class AuthzResult:
    outcome: AuthzOutcome
    reason: str = ""
    subject: Optional[str] = None
    handle: Optional[str] = None
    storage_key: Optional[str] = None
    filename: Optional[str] = None

    @property
    def status_code(self) -> int:
        return _STATUS[self.outcome]

    @property
    def allowed(self) -> bool:
        return self.outcome is AuthzOutcome.AUTHORIZED


def parse_handle(original_uri: Optional[str], prefix: str = PUBLIC_PREFIX) -> str:
    """
    "/v1/audio/<handle>[?query]" -> "<handle>". Exactly one non-empty segment.
    """
    path = (original_uri or "").split("?", 1)[0].split("#", 1)[0]
    if not path.startswith(prefix):
        raise BadRequest("invalid path")
    handle = path[len(prefix):]
    if not handle or "/" in handle:
        raise BadRequest("invalid path")
    return handle


def authorize(
    token: Optional[str],
    original_method: Optional[str],
    original_uri: Optional[str],
    registry: HandleRegistry,
    validate: Callable[[Optional[str]], Identity] = validate_token,
    owner_scoped: bool = False,
    prefix: str = PUBLIC_PREFIX,
) -> AuthzResult:
    # 1) credential: missing -> 401, invalid/expired -> 403
    try:
        identity = validate(token)
    except CredentialError as exc:
        outcome = AuthzOutcome.UNAUTHORIZED if exc.status_code == 401 else AuthzOutcome.FORBIDDEN
        return AuthzResult(outcome, reason=str(exc))

    # 2) read-only methods
    method = (original_method or "GET").strip().upper()
    if method not in ALLOWED_METHODS:
        return AuthzResult(AuthzOutcome.FORBIDDEN, reason="method not allowed", subject=identity.subject)

    # 3) path shape
    try:
        handle = parse_handle(original_uri, prefix)
    except BadRequest as exc:
        return AuthzResult(AuthzOutcome.BAD_REQUEST, reason=str(exc), subject=identity.subject)

    # 4) handle lookup
    try:
        record = registry.resolve(handle)
    except HandleNotFound:
        return AuthzResult(AuthzOutcome.NOT_FOUND, reason="not found", subject=identity.subject, handle=handle)

    # Same answer as an unknown handle, so ownership cannot be discovered.
    if owner_scoped and record.owner != identity.subject:
        return AuthzResult(AuthzOutcome.NOT_FOUND, reason="not found", subject=identity.subject, handle=handle)

    return AuthzResult(
        AuthzOutcome.AUTHORIZED,
        subject=identity.subject,
        handle=handle,
        storage_key=record.storage_key,
        filename=record.original_name,
    )
