"""
auth/passwords.py -- Password hashing and verification.

Security design decisions:
  PBKDF2-HMAC-SHA256 (default scheme): 16-byte random salt, 32-byte derived
       key, iteration count from Settings (>= 100_000). Stored as

           hex(salt) $ iterations $ hex(derived_key)

       The iteration count travels inside the record, so raising
       TRUSTGATE_PBKDF2_ITERATIONS never breaks older hashes [P1].

  Argon2id (opt-in scheme): argon2-cffi PasswordHasher, whose output is the
       self-describing $argon2id$... string. Selected with
       TRUSTGATE_PASSWORD_SCHEME=argon2id.

  Both encodings coexist as a tagged PasswordHash; verify() dispatches on the
       discriminant, so a table can hold a mix of records during a migration.
       needs_rehash() tells the caller when a record should be re-hashed on
       the next successful login. Nothing here migrates records on its own.

  Mismatch is a result, not an error [P2]: verify() returns False for a wrong
       password. Exceptions are reserved for malformed records, null input,
       and a broken environment.

  Constant-time comparison [P3]: core.crypto.constant_time_equals over the
       fixed 32-byte key length.

  hash() and verify() are deliberately slow, CPU-bound and blocking. Async
  callers should push them to a thread pool.

Layer rule: imports from core/ and auth.models / auth.context only.
"""

from __future__ import annotations

import hashlib
import logging
import re

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError, VerifyMismatchError

from auth.context import TrustContext, get_context
from auth.models import PasswordHash, PasswordScheme
from core.crypto import constant_time_equals, strict_unhex
from core.errors import (
    HashingFailure,
    HexDecodeFailure,
    InvalidHashFormat,
    InvalidIterationCount,
    NullInput,
    RandomSourceFailure,
    SaltGenerationFailure,
)

logger = logging.getLogger("trustgate.passwords")

SALT_LEN = 16
HASH_LEN = 32
_DELIMITER = "$"
_DIGITS = re.compile(r"[0-9]+")

# argon2-cffi defaults are Argon2id with RFC 9106 low-memory parameters.
_ARGON2 = PasswordHasher()


def _pbkdf2(password: str, salt: bytes, iterations: int) -> bytes:
    try:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations, dklen=HASH_LEN)
    except (ValueError, OverflowError, UnicodeEncodeError) as exc:
        raise HashingFailure(detail=f"{type(exc).__name__}: {exc}") from exc


def _parse_pbkdf2(encoded: str) -> tuple[bytes, int, bytes]:
    """Split a salt$iterations$hash record into (salt, iterations, key)."""
    parts = encoded.split(_DELIMITER)
    if len(parts) != 3:
        raise InvalidHashFormat(detail=f"expected 2 delimiters, found {len(parts) - 1}")
    salt_hex, iter_str, hash_hex = parts

    if not _DIGITS.fullmatch(iter_str) or int(iter_str) <= 0:
        raise InvalidIterationCount(detail=f"iterations={iter_str!r}")
    iterations = int(iter_str)

    salt = strict_unhex(salt_hex, SALT_LEN)
    if salt is None:
        raise HexDecodeFailure("Failed to decode salt hex string.")
    expected = strict_unhex(hash_hex, HASH_LEN)
    if expected is None:
        raise HexDecodeFailure("Failed to decode expected hash hex string.")
    return salt, iterations, expected


class PasswordEngine:
    """Derives and checks password records."""

    def __init__(self, context: TrustContext) -> None:
        self._context = context

    @property
    def scheme(self) -> PasswordScheme:
        return PasswordScheme(self._context.settings.password_scheme)

    @property
    def iterations(self) -> int:
        return self._context.settings.pbkdf2_iterations

    # ------------------------------------------------------------------
    # hash
    # ------------------------------------------------------------------

    def hash(self, password: str | None) -> str:
        """Return an encoded record for `password` in the configured scheme."""
        if password is None:
            raise NullInput("Password is missing.")
        if self.scheme is PasswordScheme.ARGON2ID:
            return self._hash_argon2(password)
        return self._hash_pbkdf2(password)

    def _hash_pbkdf2(self, password: str) -> str:
        try:
            salt = self._context.rng(SALT_LEN)
        except RandomSourceFailure as exc:
            raise SaltGenerationFailure(detail=exc.detail) from exc
        derived = _pbkdf2(password, salt, self.iterations)
        return f"{salt.hex()}{_DELIMITER}{self.iterations}{_DELIMITER}{derived.hex()}"

    def _hash_argon2(self, password: str) -> str:
        try:
            return _ARGON2.hash(password)
        except (HashingError, UnicodeEncodeError) as exc:
            raise HashingFailure(detail=f"{type(exc).__name__}: {exc}") from exc

    # ------------------------------------------------------------------
    # verify
    # ------------------------------------------------------------------

    def verify(self, password: str | None, encoded: str | None) -> bool:
        """Return True on match, False on mismatch [P2].

        Raises NullInput, InvalidHashFormat, InvalidIterationCount,
        HexDecodeFailure for bad input and HashingFailure if derivation fails.
        """
        if password is None or encoded is None:
            raise NullInput()
        record = PasswordHash.parse(encoded)
        if record.scheme is PasswordScheme.ARGON2ID:
            matched = self._verify_argon2(password, record.encoded)
        else:
            matched = self._verify_pbkdf2(password, record.encoded)
        if not matched:
            logger.info("Password verification failed (scheme=%s)", record.scheme.value)
        return matched

    def _verify_pbkdf2(self, password: str, encoded: str) -> bool:
        salt, iterations, expected = _parse_pbkdf2(encoded)
        actual = _pbkdf2(password, salt, iterations)
        return constant_time_equals(expected, actual)  # [P3]

    def _verify_argon2(self, password: str, encoded: str) -> bool:
        try:
            return _ARGON2.verify(encoded, password)
        except VerifyMismatchError:
            return False
        except InvalidHashError as exc:
            raise InvalidHashFormat(detail=str(exc)) from exc
        except (VerificationError, UnicodeEncodeError) as exc:
            raise HashingFailure(detail=f"{type(exc).__name__}: {exc}") from exc

    # ------------------------------------------------------------------
    # upgrade-on-login support
    # ------------------------------------------------------------------

    def needs_rehash(self, encoded: str | None) -> bool:
        """Return True if `encoded` should be replaced by a fresh hash().

        True when the record uses a different scheme than the configured one,
        or weaker parameters (fewer PBKDF2 iterations, outdated Argon2 cost).
        Only meaningful right after verify() succeeded with the plaintext.
        """
        if encoded is None:
            raise NullInput()
        record = PasswordHash.parse(encoded)
        if record.scheme is not self.scheme:
            return True
        if record.scheme is PasswordScheme.ARGON2ID:
            try:
                return _ARGON2.check_needs_rehash(record.encoded)
            except (InvalidHashError, ValueError) as exc:
                raise InvalidHashFormat(detail=str(exc)) from exc
        _salt, iterations, _key = _parse_pbkdf2(record.encoded)
        return iterations < self.iterations


# ---------------------------------------------------------------------------
# Module-level helpers bound to the default context
# ---------------------------------------------------------------------------


def hash_password(password: str | None, context: TrustContext | None = None) -> str:
    return PasswordEngine(context or get_context()).hash(password)


def verify_password(password: str | None, encoded: str | None, context: TrustContext | None = None) -> bool:
    return PasswordEngine(context or get_context()).verify(password, encoded)
