"""
auth/errors.py -- Exception taxonomy for the authentication core.

Every failure the core can surface to a caller is one of these types. The
HTTP layer (api/main.py) maps them onto the ErrorResponse envelope via a single
exception handler keyed on AuthError, so route handlers simply raise.

  AuthError            base; carries status_code, code, message, detail
    ValidationError    422 -- malformed/out-of-range input, detail lists fields
    Conflict           409 -- duplicate email
    NotFound           404 -- no user with that id
    Unauthenticated    401 -- missing/invalid/expired token, bad credentials
    StoreError         500 -- persistence backend failure
    CryptoFailure      500 -- hashing/signing subsystem fault

  TokenError           raised by TokenIssuer.verify() only
    TokenInvalid       bad signature, malformed structure, missing claims
    TokenExpired       valid signature, now >= exp

TokenError is deliberately NOT an AuthError: the gate converts it into
Unauthenticated so a token problem can never reach a handler or the client
with its internal reason attached.

Layer rule: stdlib only.
"""

from __future__ import annotations

from typing import Any


class AuthError(Exception):
    """Base class for errors surfaced through the HTTP layer."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, code: str | None = None, detail: Any = None) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 422
    code = "validation_error"
    message = "Request validation failed."


class Conflict(AuthError):
    status_code = 409
    code = "conflict"
    message = "A user with that email already exists."


class NotFound(AuthError):
    status_code = 404
    code = "not_found"
    message = "User not found."


class Unauthenticated(AuthError):
    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class StoreError(AuthError):
    """Persistence backend failure. Internal detail is logged, never returned."""


class CryptoFailure(AuthError):
    """Hashing or signing fault. Always fatal to the request."""


class TokenError(Exception):
    pass


class TokenInvalid(TokenError):
    pass


class TokenExpired(TokenError):
    pass
