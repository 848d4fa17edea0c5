"""
auth/tokens.py -- Session token issue/verify (JWT) and the auth cookie helper.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with the server secret and
       carry sub (user id), name, iat and exp. Nothing is stored server-side:
       verification is a pure function of (token, secret), so any process
       holding the same secret verifies tokens issued by any other.

  Expiry: checked here rather than by python-jose. jose treats exp as still
       valid at now == exp; a token is expired once now >= exp. The check runs
       after the signature check, so an expired forgery is TokenInvalid, never
       TokenExpired.

  Encoding: each segment must be canonical base64url. jose decodes leniently
       and ignores the spare low bits of a segment's last character, so a
       token with that character swapped would otherwise still verify.

  Errors: verify() raises TokenInvalid / TokenExpired. The gate in
       auth/dependencies.py turns both into Unauthenticated -- the reason is
       logged at debug level and never sent to the client.

  Secret: passed to the constructor. api/main.py reads it from Settings, which
       enforces the >= 32 chars / required-in-production policy [S1][S2].

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode

from auth.errors import CryptoFailure, TokenExpired, TokenInvalid
from auth.models import TokenClaims, User

logger = logging.getLogger("usersapi.auth.tokens")

_ALGORITHM = "HS256"

AUTH_COOKIE = "access_token"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Token Issuer/Verifier bound to one signing secret.

    Usage:
        issuer = TokenIssuer(secret_key=settings.secret_key, expire_seconds=3600)
        token = issuer.issue(user)
        claims = issuer.verify(token)   # TokenClaims, or raises TokenError
    """

    def __init__(self, secret_key: str, expire_seconds: int = 3600, algorithm: str = _ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenIssuer requires a non-empty secret_key")
        if expire_seconds <= 0:
            raise ValueError("expire_seconds must be positive")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self.algorithm = algorithm

    def issue(self, user: User, expire_seconds: int | None = None, issued_at: datetime | None = None) -> str:
        """Encode a signed token for user.

        Args:
            user:           The identity; must already have a store-assigned id.
            expire_seconds: Token lifetime. Defaults to the issuer's ttl.
            issued_at:      Override the issue time (timezone-aware). Used by
                            tests to mint tokens that are already expired.
        """
        if user.id is None:
            raise ValueError("Cannot issue a token for a user without an id")
        duration = expire_seconds if expire_seconds is not None else self.expire_seconds
        iat = int((issued_at or _now()).timestamp())
        payload = {
            "sub": str(user.id),
            "name": user.name,
            "iat": iat,
            "exp": iat + duration,
        }
        try:
            return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)
        except JWTError as exc:
            raise CryptoFailure("Token signing failed.") from exc

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry; return the embedded claims.

        Raises:
            TokenInvalid: signature mismatch, wrong algorithm, malformed token,
                          or missing / mistyped claims.
            TokenExpired: signature is valid but now >= exp.
        """
        _check_segments(token)
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise TokenInvalid(str(exc)) from exc

        claims = _claims_from_payload(payload)
        if int(_now().timestamp()) >= claims.expires_at:
            raise TokenExpired(f"token expired at {claims.expires_at}")
        return claims


def _check_segments(token: str) -> None:
    """Require header.payload.signature, each segment in canonical base64url."""
    segments = token.split(".")
    if len(segments) != 3:
        raise TokenInvalid("token must have three segments")
    for segment in segments:
        try:
            raw = segment.encode("ascii")
            canonical = base64url_encode(base64url_decode(raw))
        except (UnicodeEncodeError, ValueError, TypeError) as exc:
            raise TokenInvalid("segment is not base64url") from exc
        if canonical != raw:
            raise TokenInvalid("segment is not canonical base64url")


def _claims_from_payload(payload: dict) -> TokenClaims:
    sub = payload.get("sub")
    name = payload.get("name")
    iat = payload.get("iat")
    exp = payload.get("exp")
    if not isinstance(sub, str) or not sub.isdigit():
        raise TokenInvalid("sub claim missing or not a user id")
    if not isinstance(name, str):
        raise TokenInvalid("name claim missing")
    # bool is an int subclass; reject it explicitly
    for value in (iat, exp):
        if not isinstance(value, int) or isinstance(value, bool):
            raise TokenInvalid("iat/exp claims missing or not integers")
    return TokenClaims(user_id=int(sub), name=name, issued_at=iat, expires_at=exp)


# ---------------------------------------------------------------------------
# Cookie helper
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int, secure: bool = False) -> None:
    """Write the token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: only sent over HTTPS when SECURE_COOKIES=true (set in production).
    max_age: matches the token expiry so both expire together.
    """
    response.set_cookie(
        AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        secure=secure,
        max_age=expire_seconds,
    )
