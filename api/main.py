"""
api/main.py -- FastAPI application entry point for the users API.

Run with:  uvicorn api.main:app --reload
           python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan builds the auth core from Settings on startup (store, hasher, token
issuer, identity cache, service) and tears it down symmetrically. Nothing in
auth/ or cache/ reads configuration itself; everything is wired here.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.openapi.docs import get_redoc_html, get_swagger_ui_html
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import protected_router as auth_protected_router
from api.routes.v1.auth import router as auth_router
from api.routes.v1.users import router as users_router
from auth.dependencies import require_auth
from auth.errors import AuthError
from auth.passwords import PasswordHasher
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from cache.store import IdentityCache
from core.config import get_settings

API_VERSION = "1.0.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("usersapi.api")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Drop expired identity cache entries every `interval` seconds.

    Expired entries are already ignored on read; this only bounds memory for
    ids that are never read again. CancelledError from task.cancel() during
    shutdown propagates out of asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(interval)
        removed = app.state.identity_cache.purge_expired()
        if removed:
            logger.debug("Purged %d expired identity cache entries", removed)


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the auth core on startup; release it on shutdown.

    Startup order matters:
      1. Store first -- creates the schema; fails fast on a bad DATABASE_URL.
      2. Hasher, issuer, cache -- pure in-process objects.
      3. Service -- needs all of the above.
      4. Purge task last -- references app.state.identity_cache.
    """
    settings = get_settings()
    logger.info("Users API starting up")
    app.state.user_store = UserStore(settings.database_url)
    app.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.token_issuer = TokenIssuer(settings.secret_key, expire_seconds=settings.token_expire_seconds)
    app.state.identity_cache = IdentityCache(ttl=settings.identity_cache_ttl)
    app.state.auth_service = AuthService(
        store=app.state.user_store,
        hasher=app.state.password_hasher,
        issuer=app.state.token_issuer,
        cache=app.state.identity_cache,
    )
    app.state.secure_cookies = settings.secure_cookies
    logger.info(
        "Auth initialized (bcrypt_rounds=%d, token_ttl=%ds, cache_ttl=%ds)",
        settings.bcrypt_rounds,
        settings.token_expire_seconds,
        settings.identity_cache_ttl,
    )
    app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.cache_purge_interval))

    yield

    app.state.purge_task.cancel()
    with suppress(asyncio.CancelledError):
        await app.state.purge_task
    app.state.identity_cache.clear()
    app.state.user_store.close()
    logger.info("Users API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Users API",
    description="Users resource with bcrypt credentials and signed bearer tokens.",
    version=API_VERSION,
    lifespan=lifespan,
    # Built-in /docs and /redoc are replaced below by gated equivalents.
    docs_url=None,
    redoc_url=None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS -> SlowAPI.
# ---------------------------------------------------------------------------

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=True,
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Logs method, path, status, latency and client for every response. Headers
# and bodies are never logged -- they carry tokens and passwords.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(auth_protected_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])


# ---------------------------------------------------------------------------
# Gated API documentation
# ---------------------------------------------------------------------------


@app.get("/docs", include_in_schema=False)
async def docs(claims=Depends(require_auth)):
    """Swagger UI -- requires authentication."""
    return get_swagger_ui_html(openapi_url="/openapi.json", title="Users API")


@app.get("/redoc", include_in_schema=False)
async def redoc(claims=Depends(require_auth)):
    """ReDoc UI -- requires authentication."""
    return get_redoc_html(openapi_url="/openapi.json", title="Users API")


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(
            exclude_none=True
        ),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render the auth core's error taxonomy.

    4xx errors carry their code, message and (for validation) field detail.
    5xx errors (StoreError, CryptoFailure) are logged with their traceback and
    reduced to a generic internal_error -- no internals reach the client.
    """
    if exc.status_code >= 500:
        logger.error(
            "%s on %s %s",
            exc.__class__.__name__,
            request.method,
            request.url.path,
            exc_info=exc,
        )
        response = _error_response(500, "internal_error", "An unexpected error occurred.")
    else:
        response = _error_response(exc.status_code, exc.code, exc.message, exc.detail)
    if exc.status_code == 401:
        response.headers["WWW-Authenticate"] = "Bearer"
    response.headers["Cache-Control"] = "no-store"
    return response


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = _error_response(429, "rate_limited", "Too many requests.", str(exc.detail))
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 in the same shape AuthService uses for its ValidationError."""
    detail = [
        {"field": ".".join(str(part) for part in err["loc"][1:]) or None, "message": err["msg"]}
        for err in exc.errors()
    ]
    return _error_response(422, "validation_error", "Request validation failed.", detail)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for framework HTTP exceptions (404 route, 405 method)."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Root and health
#
# Defined directly in main.py (not in a router) so they are always reachable
# regardless of router registration state. Not rate limited -- probes from
# load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/", include_in_schema=False)
async def root() -> PlainTextResponse:
    return PlainTextResponse("Welcome to the users API!")


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and per-component status."""
    database = "ok" if request.app.state.user_store.ping() else "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=API_VERSION,
        components={"app": "ok", "database": database},
    )
