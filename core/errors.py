from __future__ import annotations


class MediaError(Exception):
    """
    Base for every failure a request handler translates into a status code.

    Routers catch these at the request boundary and raise HTTPException
    with `status_code` and `str(exc)` as the detail.
    """

    status_code: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)


# ---------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------

class CredentialError(MediaError):
    status_code = 401
    default_message = "unauthorized"


class MissingCredential(CredentialError):
    status_code = 401
    default_message = "Missing bearer token"


class InvalidCredential(CredentialError):
    status_code = 403
    default_message = "Invalid token"


class ExpiredCredential(CredentialError):
    status_code = 403
    default_message = "Token expired"


class InvalidCredentials(MediaError):
    """Login rejected (username/password mismatch)."""

    status_code = 401
    default_message = "Invalid credentials"


# ---------------------------------------------------------------------
# Requests / media
# ---------------------------------------------------------------------

class BadRequest(MediaError):
    status_code = 400
    default_message = "Bad request"


class HandleNotFound(MediaError):
    status_code = 404
    default_message = "not found"


class PayloadTooLarge(MediaError):
    status_code = 413
    default_message = "Upload exceeds size limit"


class StorageWriteFailed(MediaError):
    status_code = 500
    default_message = "Storage write failed"


class DuplicateHandle(MediaError):
    status_code = 500
    default_message = "Duplicate media handle"
