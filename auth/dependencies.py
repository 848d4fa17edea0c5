"""
auth/dependencies.py -- FastAPI Depends() helpers: the Auth Gate.

Two carriers are tried in order:
  1. Authorization: Bearer <token> header -- API clients.
  2. JWT cookie ("access_token") -- set by POST /login for browser clients.

The first carrier whose token verifies wins. A stale cookie left in a browser
therefore never shadows a valid Bearer header, and a bad header does not hide
a valid cookie.

require_auth() is installed as a router-level dependency on the protected
router (api/routes/v1/*), so it runs before every protected handler. It never
touches the user store or the identity cache: the claims it attaches are
exactly what was signed at login, and their freshness is bounded by the token
ttl alone.

Any failure -- no carrier, bad signature, malformed token, expired token --
is raised as Unauthenticated. The exception handler in api/main.py turns it
into a 401 before the handler runs; the handler never sees a token error.

Layer rule: no imports from api/ or cache/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.errors import TokenError, Unauthenticated
from auth.models import TokenClaims
from auth.tokens import AUTH_COOKIE, TokenIssuer

logger = logging.getLogger("usersapi.auth.gate")


def extract_tokens(request: Request) -> list[str]:
    """Return the raw tokens present, Bearer header first, then cookie."""
    tokens = []
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        tokens.append(credentials.strip())

    cookie = request.cookies.get(AUTH_COOKIE)
    if cookie:
        tokens.append(cookie)
    return tokens


def require_auth(request: Request) -> TokenClaims:
    """Require a valid token. Raises Unauthenticated otherwise.

    On success the claims are attached to request.state.claims and returned,
    so handlers may either declare this dependency or call get_claims().

    Use as a router-level dependency:
        router = APIRouter(dependencies=[Depends(require_auth)])
    """
    tokens = extract_tokens(request)
    if not tokens:
        raise Unauthenticated()

    issuer: TokenIssuer = request.app.state.token_issuer
    rejection: TokenError | None = None
    for token in tokens:
        try:
            claims = issuer.verify(token)
        except TokenError as exc:
            logger.debug("Rejected token on %s: %s", request.url.path, exc.__class__.__name__)
            rejection = exc
            continue
        request.state.claims = claims
        return claims
    raise Unauthenticated("Invalid or expired token.") from rejection


def get_claims(request: Request) -> TokenClaims:
    """Return the claims attached by require_auth().

    Runs require_auth() itself if the gate has not run for this request, so a
    handler can never observe a request without verified claims.
    """
    claims = getattr(request.state, "claims", None)
    if claims is None:
        return require_auth(request)
    return claims
