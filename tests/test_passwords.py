"""Unit tests for auth/passwords.py -- the bcrypt credential hasher.

Covers:
- verify(p, hash(p)) holds, including non-ASCII passwords
- Fresh salt per call: hashing the same password twice gives different strings
- Wrong password is a plain False, never an exception
- 72-byte bcrypt input limit: hash() refuses, verify() answers False
- Corrupt stored hash raises CryptoFailure
- Work factor validation and encoding
"""

import pytest

from auth.errors import CryptoFailure
from auth.passwords import PasswordHasher


@pytest.fixture(scope="module")
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


class TestHashAndVerify:
    @pytest.mark.parametrize("password", ["secret1", "correct horse battery staple", "pässwörd-ü", " spaces "])
    def test_verify_accepts_original(self, hasher: PasswordHasher, password: str) -> None:
        assert hasher.verify(password, hasher.hash(password)) is True

    def test_same_password_hashes_differently(self, hasher: PasswordHasher) -> None:
        """Salt randomization: two hashes of one plaintext never collide."""
        assert hasher.hash("secret1") != hasher.hash("secret1")

    def test_different_passwords_hash_differently(self, hasher: PasswordHasher) -> None:
        assert hasher.hash("secret1") != hasher.hash("secret2")

    def test_wrong_password_is_false(self, hasher: PasswordHasher) -> None:
        stored = hasher.hash("secret1")
        assert hasher.verify("secret2", stored) is False
        assert hasher.verify("", stored) is False

    def test_hash_never_contains_plaintext(self, hasher: PasswordHasher) -> None:
        assert "secret1" not in hasher.hash("secret1")

    def test_hash_encodes_work_factor(self) -> None:
        assert PasswordHasher(rounds=5).hash("secret1").startswith("$2b$05$")


class TestLimitsAndFaults:
    def test_hash_rejects_input_over_72_bytes(self, hasher: PasswordHasher) -> None:
        with pytest.raises(CryptoFailure):
            hasher.hash("x" * 73)

    def test_hash_accepts_exactly_72_bytes(self, hasher: PasswordHasher) -> None:
        password = "x" * 72
        assert hasher.verify(password, hasher.hash(password)) is True

    def test_multibyte_input_counts_bytes_not_characters(self, hasher: PasswordHasher) -> None:
        """37 x 'ü' is 37 characters but 74 UTF-8 bytes."""
        with pytest.raises(CryptoFailure):
            hasher.hash("ü" * 37)

    def test_verify_over_72_bytes_is_false(self, hasher: PasswordHasher) -> None:
        stored = hasher.hash("x" * 72)
        assert hasher.verify("x" * 73, stored) is False

    def test_verify_nul_byte_is_false(self, hasher: PasswordHasher) -> None:
        stored = hasher.hash("secret1")
        assert hasher.verify("secret1\x00", stored) is False

    @pytest.mark.parametrize("stored", ["", "not-a-bcrypt-hash", "$2b$04$short"])
    def test_corrupt_stored_hash_raises_crypto_failure(self, hasher: PasswordHasher, stored: str) -> None:
        with pytest.raises(CryptoFailure):
            hasher.verify("secret1", stored)

    @pytest.mark.parametrize("rounds", [3, 32, 0, -1])
    def test_rounds_out_of_range(self, rounds: int) -> None:
        with pytest.raises(ValueError):
            PasswordHasher(rounds=rounds)

    def test_verify_dummy_never_raises(self, hasher: PasswordHasher) -> None:
        assert hasher.verify_dummy("anything") is None
