"""
api/limiter.py -- Shared slowapi rate limiter and the login limit.

Import `limiter` in api/main.py (to mount as middleware, via app.state) and in
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

One shared instance means one in-memory counter store. Separate instances per
module would each count in isolation and never trigger.

login_rate_limit is passed to @limiter.limit() as a callable, so the limit is
read from Settings when a request is checked rather than when the route
module is imported. Tests raise it through LOGIN_RATE_LIMIT.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Return the POST /login limit string, e.g. "10/minute"."""
    return get_settings().login_rate_limit
