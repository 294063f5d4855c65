"""
Closed error taxonomy for the credential and session-token core.

Every failure raised by utils.security, utils.credentials and utils.sessions
is an AuthError subclass carrying an ErrorKind. The HTTP layer
(api/errors.py) maps the kind to a status code and a fixed message; the
``detail`` string is for logs only and never reaches a response body.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    MISSING_CREDENTIAL = "MISSING_CREDENTIAL"
    MALFORMED_CREDENTIAL = "MALFORMED_CREDENTIAL"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    EXPIRED = "EXPIRED"
    REVOKED = "REVOKED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    HASH_FAILURE = "HASH_FAILURE"
    STORE_FAILURE = "STORE_FAILURE"
    # routing-layer additions
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"


class AuthError(Exception):
    """Base class: ``kind`` is the contract, ``detail`` is log-only context."""

    kind: ErrorKind

    def __init__(self, detail: str = ""):
        super().__init__(detail or self.kind.value)
        self.detail = detail


class MissingCredential(AuthError):
    kind = ErrorKind.MISSING_CREDENTIAL


class MalformedCredential(AuthError):
    kind = ErrorKind.MALFORMED_CREDENTIAL


class InvalidSignature(AuthError):
    kind = ErrorKind.INVALID_SIGNATURE


class Expired(AuthError):
    kind = ErrorKind.EXPIRED


class Revoked(AuthError):
    kind = ErrorKind.REVOKED


class NotFound(AuthError):
    kind = ErrorKind.NOT_FOUND


class InvalidCredentials(AuthError):
    kind = ErrorKind.INVALID_CREDENTIALS


class HashFailure(AuthError):
    kind = ErrorKind.HASH_FAILURE


class StoreFailure(AuthError):
    kind = ErrorKind.STORE_FAILURE


class Conflict(AuthError):
    kind = ErrorKind.CONFLICT


class Unauthorized(AuthError):
    kind = ErrorKind.UNAUTHORIZED


class Forbidden(AuthError):
    kind = ErrorKind.FORBIDDEN
