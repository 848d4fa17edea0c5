"""
api/routes/v1/auth.py -- Registration, login and session endpoints.

Routes:
  POST /register          -- create an account (public)
  POST /login             -- password login; returns token + sets cookie (public)
  POST /logout            -- clears cookie (public)
  GET  /profile           -- greeting built from token claims (protected)
  POST /change-password   -- re-authenticate, then replace password (protected)

Security:
  [H1] POST /login is rate-limited per client IP (LOGIN_RATE_LIMIT).
  [C1] AuthService.login() provides timing equalization and a single error
       for unknown email / wrong password -- never inline the lookup here.
  [C2] AuthService.change_password() re-verifies the current password.
  [M5] Cache-Control: no-store on every response that carries a token or a
       credential outcome (errors get it from the handler in api/main.py).

Handlers that hash or verify passwords are plain `def` so FastAPI runs them
in its thread pool; bcrypt's deliberate slowness never stalls the event loop.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    ProfileResponse,
    RegisterRequest,
    UserResponse,
)
from auth.dependencies import get_claims, require_auth
from auth.models import TokenClaims
from auth.service import AuthService
from auth.tokens import AUTH_COOKIE, set_auth_cookie

# Auth policy:
# - POST /register:         public -- account creation needs no prior auth
# - POST /login:            public -- rate limited [H1]
# - POST /logout:           public -- clearing a cookie needs no prior auth
# - GET  /profile:          protected (router-level require_auth)
# - POST /change-password:  protected (router-level require_auth)
router = APIRouter()
protected_router = APIRouter(dependencies=[Depends(require_auth)])


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register", response_model=UserResponse)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an account. 409 if the email is taken, 422 on invalid input."""
    user = _service(request).register(body.name, body.email, body.password)
    resp = JSONResponse(status_code=200, content=UserResponse.from_user(user).model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)  # [H1] below @router so the registered endpoint is the limited wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return the token and set it as a cookie.

    Wrong password and unknown email produce the same 401 body
    ({"error": {"code": "bad_credentials", ...}}) to avoid account enumeration.
    """
    service = _service(request)
    user, token = service.login(body.email, body.password)
    expires_in = service.issuer.expire_seconds
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=token,
            token_type="bearer",  # noqa: S106 -- OAuth token type, not a password
            expires_in=expires_in,
            user=UserResponse.from_user(user),
        ).model_dump(),
    )
    set_auth_cookie(resp, token, expire_seconds=expires_in, secure=request.app.state.secure_cookies)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.post("/logout", response_model=MessageResponse)
async def logout() -> JSONResponse:
    """Clear the token cookie. The token itself stays valid until it expires."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie(AUTH_COOKIE)
    return resp


# ---------------------------------------------------------------------------
# Protected endpoints
# ---------------------------------------------------------------------------


@protected_router.get("/profile", response_model=ProfileResponse)
async def profile(claims: TokenClaims = Depends(get_claims)) -> ProfileResponse:
    """Greet the authenticated user. Served from token claims, no store access."""
    return ProfileResponse(message=f"Hello, {claims.name}!", user_id=claims.user_id)


@protected_router.post("/change-password", response_model=MessageResponse)
def change_password(
    request: Request,
    body: ChangePasswordRequest,
    claims: TokenClaims = Depends(get_claims),
) -> JSONResponse:
    """Replace the caller's password after re-checking the current one [C2].

    401 if the email is not the caller's or the current password is wrong.
    Existing tokens stay valid until they expire.
    """
    _service(request).change_password(claims, body.email, body.password, body.new_password)
    resp = JSONResponse(content=MessageResponse(message="Password changed.").model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp
