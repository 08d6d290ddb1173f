"""
core/crypto.py -- Byte-level primitives shared by the CSRF and password engines.

  random_bytes()          CSPRNG draw via secrets.token_bytes. OSError and
                          NotImplementedError (no entropy source) surface as
                          RandomSourceFailure.

  strict_unhex()          Fixed-width hex decode. bytes.fromhex() skips
                          whitespace, which would let two different strings
                          decode to the same bytes; this helper accepts only
                          exactly 2*size hex digits.

  constant_time_equals()  XOR-OR accumulation over a fixed number of
                          iterations, so running time does not depend on
                          where the first differing byte sits [T1].

  hmac_sha256()           Thin wrapper over hmac.new(..., hashlib.sha256).

[T1] The comparison never breaks out of its loop. Inputs of unequal length
     are compared over the expected length with the shorter side padded, so a
     short input costs the same as a full-length one and still fails.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import string

from core.errors import RandomSourceFailure

_HEX_DIGITS = frozenset(string.hexdigits)


def random_bytes(size: int) -> bytes:
    """Return `size` bytes from the operating system CSPRNG."""
    try:
        data = secrets.token_bytes(size)
    except (OSError, NotImplementedError) as exc:
        raise RandomSourceFailure(detail=f"{type(exc).__name__}: {exc}") from exc
    if len(data) != size:
        raise RandomSourceFailure(detail=f"requested={size}, received={len(data)}")
    return data


def is_hex(text: str) -> bool:
    return all(ch in _HEX_DIGITS for ch in text)


def strict_unhex(text: str, size: int) -> bytes | None:
    """Decode exactly `size` bytes of hex, or return None.

    Upper- and lowercase digits are accepted; anything else (whitespace,
    signs, prefixes) is rejected.
    """
    if len(text) != size * 2 or not is_hex(text):
        return None
    return bytes.fromhex(text)


def constant_time_equals(expected: bytes, actual: bytes) -> bool:
    """Compare two byte strings without an early exit [T1]."""
    length = len(expected)
    diff = len(actual) ^ length
    padded = actual.ljust(length, b"\0")
    for i in range(length):
        diff |= expected[i] ^ padded[i]
    return diff == 0


def hmac_sha256(key: bytes, message: bytes) -> bytes:
    return hmac.new(key, message, hashlib.sha256).digest()
