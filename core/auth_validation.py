from __future__ import annotations

import logging
from core.settings import get_settings

log = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")


class AuthConfigError(RuntimeError):
    pass


def validate_auth_config() -> None:
    """
    Validate auth-related configuration at startup.

    - Unsupported signing algorithm → hard fail
    - Non-positive token lifetime → hard fail
    - Default JWT secret → warn (fine for local/dev only)
    """
    s = get_settings()

    if s.auth.algorithm not in SUPPORTED_ALGORITHMS:
        raise AuthConfigError(
            f"JWT_ALGORITHM must be one of {', '.join(SUPPORTED_ALGORITHMS)} (got {s.auth.algorithm})"
        )

    if s.auth.token_ttl_seconds <= 0:
        raise AuthConfigError("AUTH_TOKEN_TTL_SECONDS must be positive")

    if s.auth.uses_default_secret:
        log.warning("JWT_SECRET not set. Using the built-in default secret (local/dev only).")
        return

    log.info("Auth: %s tokens, ttl=%ss", s.auth.algorithm, s.auth.token_ttl_seconds)
