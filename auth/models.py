"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores, the token
issuer and routes do the work; these classes only own the shape.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered identity.

    email is unique across all users and is stored lower-cased.
    hashed_password is the bcrypt string; it never leaves the server --
    api/models.py response models do not declare the field.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert
    updated_at: str | None = None  # ISO 8601, set by store on every write


@dataclass(frozen=True)
class TokenClaims:
    """Decoded, signature-checked contents of a session token.

    These are the claims as issued -- not a fresh store lookup. A name change
    after login is only visible here once the user logs in again.
    """

    user_id: int
    name: str
    issued_at: int  # UNIX seconds
    expires_at: int  # UNIX seconds
