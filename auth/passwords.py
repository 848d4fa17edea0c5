"""
auth/passwords.py -- Credential hashing and verification (bcrypt).

Security design decisions:
  bcrypt directly, no passlib wrapper. passlib's wrap-bug probe feeds bcrypt a
  password longer than 72 bytes, which bcrypt 4.x+ rejects outright. Direct
  usage has no compatibility shim and is actively maintained.

  Salt: bcrypt.gensalt() draws 16 bytes from the OS CSPRNG on every call, so
  two hashes of the same password are never equal.

  Constant time: bcrypt.checkpw() re-derives the hash and compares digests in
  constant time. We never compare hash strings ourselves.

  72-byte limit: bcrypt only reads the first 72 bytes of input. hash() refuses
  longer input instead of silently truncating; verify() answers False for it
  because such a password can never have been stored.

  Timing equalization [C1]: verify_dummy() runs a full bcrypt check against a
  hash computed once per hasher, so a login for an unknown email costs the
  same as a login with a wrong password.

Layer rule: no imports from api/ or cache/.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import CryptoFailure

logger = logging.getLogger("usersapi.auth.passwords")

MAX_PASSWORD_BYTES = 72
MIN_ROUNDS = 4
MAX_ROUNDS = 31


class PasswordHasher:
    """bcrypt-backed Credential Hasher with a fixed work factor.

    Usage:
        hasher = PasswordHasher(rounds=12)
        stored = hasher.hash("secret1")
        hasher.verify("secret1", stored)   # True
        hasher.verify("nope", stored)      # False
    """

    def __init__(self, rounds: int = 12) -> None:
        if not MIN_ROUNDS <= rounds <= MAX_ROUNDS:
            raise ValueError(f"bcrypt rounds must be between {MIN_ROUNDS} and {MAX_ROUNDS}, got {rounds}")
        self.rounds = rounds
        # Computed eagerly so the first unknown-email login is not measurably
        # faster or slower than later ones.
        self._dummy_hash = self.hash("usersapi_timing_dummy")

    def hash(self, plaintext: str) -> str:
        """Return a salted bcrypt hash of plaintext.

        Raises CryptoFailure if the input cannot be encoded within bcrypt's
        limits or the underlying library fails (RNG, encoding).
        """
        raw = plaintext.encode("utf-8")
        if len(raw) > MAX_PASSWORD_BYTES:
            raise CryptoFailure(f"Password exceeds bcrypt's {MAX_PASSWORD_BYTES}-byte input limit.")
        try:
            return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")
        except (ValueError, TypeError, OSError) as exc:
            raise CryptoFailure("Password hashing failed.") from exc

    def verify(self, plaintext: str, hashed: str) -> bool:
        """Return True if plaintext matches hashed.

        A mismatch is a normal False. CryptoFailure is raised only when the
        stored hash is not a usable bcrypt string.
        """
        raw = plaintext.encode("utf-8")
        if len(raw) > MAX_PASSWORD_BYTES or b"\x00" in raw:
            return False
        try:
            return bcrypt.checkpw(raw, hashed.encode("ascii"))
        except (ValueError, TypeError) as exc:
            logger.error("Stored credential is not a valid bcrypt hash")
            raise CryptoFailure("Password verification failed.") from exc

    def verify_dummy(self, plaintext: str) -> None:
        """Burn one bcrypt check so unknown-account paths cost the same time [C1]."""
        self.verify(plaintext, self._dummy_hash)
