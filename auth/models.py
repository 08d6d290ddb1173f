"""
auth/models.py -- Value types for the tokens and credentials trustgate issues.

Pattern: Data class (pure data container, near-zero logic). Engines in
auth/csrf.py, auth/passwords.py and auth/tokens.py do the work; these types
only own the domain shape and the bit-exact wire layout.

Layer rule: imports from core/ only.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

# ---------------------------------------------------------------------------
# CSRF token layout: nonce(32) || issued_at(8, big-endian) || mac(32)
# ---------------------------------------------------------------------------

CSRF_NONCE_SIZE = 32
CSRF_TIMESTAMP_SIZE = 8
CSRF_MAC_SIZE = 32
CSRF_RAW_SIZE = CSRF_NONCE_SIZE + CSRF_TIMESTAMP_SIZE + CSRF_MAC_SIZE
CSRF_HEX_SIZE = CSRF_RAW_SIZE * 2


@dataclass(frozen=True)
class CsrfToken:
    """A decoded anti-forgery token.

    The token is self-contained: nothing about it is stored server-side.
    Validity is a function of these bytes, the CSRF secret, and the clock.
    """

    nonce: bytes
    issued_at: int
    mac: bytes

    @property
    def signed_payload(self) -> bytes:
        """The bytes the MAC covers: nonce || issued_at."""
        return self.nonce + self.issued_at.to_bytes(CSRF_TIMESTAMP_SIZE, "big")

    def to_bytes(self) -> bytes:
        return self.signed_payload + self.mac

    def to_hex(self) -> str:
        return self.to_bytes().hex()

    @classmethod
    def from_bytes(cls, raw: bytes) -> CsrfToken:
        if len(raw) != CSRF_RAW_SIZE:
            raise ValueError(f"CSRF token must be {CSRF_RAW_SIZE} bytes, got {len(raw)}")
        ts_end = CSRF_NONCE_SIZE + CSRF_TIMESTAMP_SIZE
        return cls(
            nonce=raw[:CSRF_NONCE_SIZE],
            issued_at=int.from_bytes(raw[CSRF_NONCE_SIZE:ts_end], "big"),
            mac=raw[ts_end:],
        )


# ---------------------------------------------------------------------------
# Password records
# ---------------------------------------------------------------------------


class PasswordScheme(str, enum.Enum):
    PBKDF2_SHA256 = "pbkdf2_sha256"
    ARGON2ID = "argon2id"


ARGON2ID_PREFIX = "$argon2id$"


@dataclass(frozen=True)
class PasswordHash:
    """A stored password record tagged with the algorithm that produced it.

    Two encodings coexist:
      pbkdf2_sha256  hex(salt)$iterations$hex(derived_key)
      argon2id       $argon2id$v=19$m=...,t=...,p=...$salt$hash (argon2-cffi)

    The discriminant is derived from the string itself, so records of both
    kinds can sit in the same column.
    """

    scheme: PasswordScheme
    encoded: str

    @classmethod
    def parse(cls, encoded: str) -> PasswordHash:
        if encoded.startswith(ARGON2ID_PREFIX):
            return cls(PasswordScheme.ARGON2ID, encoded)
        return cls(PasswordScheme.PBKDF2_SHA256, encoded)

    def __str__(self) -> str:
        return self.encoded


# ---------------------------------------------------------------------------
# JWT claims
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class JwtClaims:
    """The payload of a session JWT. Never persisted server-side."""

    id: str
    iat: int
    exp: int

    @property
    def lifetime(self) -> int:
        return self.exp - self.iat

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "iat": self.iat, "exp": self.exp}
