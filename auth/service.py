"""
auth/service.py -- Registration, login, password change and user maintenance.

AuthService orchestrates the four leaf components; it owns no state of its own:

  store   -- auth.store.UserStore (source of truth)
  hasher  -- auth.passwords.PasswordHasher
  issuer  -- auth.tokens.TokenIssuer
  cache   -- cache.store.IdentityCache (any object with get/put/invalidate)

All dependencies are passed to the constructor, so tests can wire an
in-memory store and a throwaway secret without touching app state.

Security:
  [C1] login() runs bcrypt even when the email is unknown and returns the same
       Unauthenticated error for "no such user" and "wrong password", so
       neither response body nor response time reveals which emails exist.
  [C2] change_password() re-verifies the current password, and checks it
       belongs to the authenticated subject, before storing a new hash.
  [C3] Every write path (update, delete, password change) invalidates the
       cached copy of the identity.

Threading: every method is synchronous. Routes calling into this service are
plain `def` handlers, so FastAPI runs them in its worker thread pool and
bcrypt never blocks the event loop.

Layer rule: no runtime imports from api/ or cache/.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from auth.errors import Conflict, NotFound, Unauthenticated, ValidationError
from auth.models import TokenClaims, User
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenIssuer

if TYPE_CHECKING:
    from cache.store import IdentityCache

logger = logging.getLogger("usersapi.auth.service")

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 50
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 6

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_BAD_CREDENTIALS = "Invalid email or password."


# ---------------------------------------------------------------------------
# Input validation
#
# Each checker appends {"field", "message"} dicts to `errors` and returns the
# normalized value. Callers raise one ValidationError listing every problem.
# ---------------------------------------------------------------------------


def _check_name(name: str, errors: list[dict]) -> str:
    name = name.strip()
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        errors.append(
            {
                "field": "name",
                "message": f"Name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters.",
            }
        )
    return name


def _check_email(email: str, errors: list[dict]) -> str:
    email = email.strip().lower()
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        errors.append({"field": "email", "message": "Email must be a valid email address."})
    return email


def _check_password(password: str, errors: list[dict], field: str = "password") -> str:
    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(
            {"field": field, "message": f"Password must be at least {PASSWORD_MIN_LENGTH} characters."}
        )
    elif len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        errors.append({"field": field, "message": f"Password must be at most {MAX_PASSWORD_BYTES} bytes."})
    elif "\x00" in password:
        errors.append({"field": field, "message": "Password must not contain NUL characters."})
    return password


def _raise_if(errors: list[dict]) -> None:
    if errors:
        raise ValidationError(detail=errors)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AuthService:
    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        issuer: TokenIssuer,
        cache: IdentityCache,
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.issuer = issuer
        self.cache = cache

    # ------------------------------------------------------------------
    # Credential flows
    # ------------------------------------------------------------------

    def register(self, name: str, email: str, password: str) -> User:
        """Create an account. Raises ValidationError or Conflict."""
        errors: list[dict] = []
        name = _check_name(name, errors)
        email = _check_email(email, errors)
        _check_password(password, errors)
        _raise_if(errors)

        if self.store.get_by_email(email) is not None:
            raise Conflict()

        user = self.store.create_user(User(name=name, email=email, hashed_password=self.hasher.hash(password)))
        logger.info("Registered user_id=%s", user.id)
        return user

    def login(self, email: str, password: str) -> tuple[User, str]:
        """Check credentials and issue a token. Returns (user, token).

        Raises Unauthenticated with an identical code and message whether the
        email is unknown or the password is wrong [C1].
        """
        user = self.store.get_by_email(email.strip())
        if user is None or user.hashed_password is None:
            self.hasher.verify_dummy(password)
            logger.info("Login rejected: bad credentials")
            raise Unauthenticated(_BAD_CREDENTIALS, code="bad_credentials")
        if not self.hasher.verify(password, user.hashed_password):
            logger.info("Login rejected: bad credentials")
            raise Unauthenticated(_BAD_CREDENTIALS, code="bad_credentials")

        token = self.issuer.issue(user)
        logger.info("Login succeeded for user_id=%s", user.id)
        return user, token

    def change_password(self, claims: TokenClaims, email: str, password: str, new_password: str) -> User:
        """Replace the stored hash after re-authenticating with the current password [C2].

        email must belong to the token's subject; a mismatch is reported the
        same way as a wrong password.
        """
        errors: list[dict] = []
        _check_password(new_password, errors, field="newPassword")
        _raise_if(errors)

        user = self.store.get_by_email(email.strip())
        if user is None or user.id != claims.user_id or user.hashed_password is None:
            self.hasher.verify_dummy(password)
            raise Unauthenticated(_BAD_CREDENTIALS, code="bad_credentials")
        if not self.hasher.verify(password, user.hashed_password):
            logger.info("Password change rejected for user_id=%s: current password mismatch", user.id)
            raise Unauthenticated(_BAD_CREDENTIALS, code="bad_credentials")

        updated = self.store.update_user(user.id, hashed_password=self.hasher.hash(new_password))
        self.cache.invalidate(user.id)  # [C3]
        if updated is None:
            raise NotFound()
        logger.info("Password changed for user_id=%s", user.id)
        return updated

    # ------------------------------------------------------------------
    # User maintenance
    # ------------------------------------------------------------------

    def get_user(self, user_id: int) -> User:
        """Read-through lookup: cache first, store on miss. Raises NotFound."""
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFound()
        self.cache.put(user_id, user)
        return user

    def list_users(self, offset: int = 0, limit: int = 50) -> tuple[list[User], int]:
        """Return (page, total). Bypasses the cache -- list reads are not keyed by id."""
        return self.store.list_users(offset=offset, limit=limit), self.store.count_users()

    def update_profile(self, user_id: int, name: str | None = None, email: str | None = None) -> User:
        """Change display name and/or email. Raises ValidationError, Conflict or NotFound."""
        errors: list[dict] = []
        fields: dict = {}
        if name is not None:
            fields["name"] = _check_name(name, errors)
        if email is not None:
            fields["email"] = _check_email(email, errors)
        if not fields and not errors:
            errors.append({"field": None, "message": "No fields to update."})
        _raise_if(errors)

        if "email" in fields:
            owner = self.store.get_by_email(fields["email"])
            if owner is not None and owner.id != user_id:
                raise Conflict()

        updated = self.store.update_user(user_id, **fields)
        self.cache.invalidate(user_id)  # [C3]
        if updated is None:
            raise NotFound()
        return updated

    def delete_user(self, user_id: int) -> None:
        """Remove the account and its cached copy. Raises NotFound."""
        deleted = self.store.delete_user(user_id)
        self.cache.invalidate(user_id)  # [C3]
        if not deleted:
            raise NotFound()
        logger.info("Deleted user_id=%s", user_id)
