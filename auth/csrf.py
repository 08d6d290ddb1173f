"""
auth/csrf.py -- Stateless, time-limited anti-forgery tokens.

Token layout (72 bytes, 144 lowercase hex chars on the wire):

    nonce      32 bytes   CSPRNG output, makes every token unique
    issued_at   8 bytes   big-endian unsigned UNIX seconds
    mac        32 bytes   HMAC-SHA256(csrf_secret, nonce || issued_at)

Security design decisions:
  Stateless: the token carries its own proof of authenticity and freshness,
      so the server stores nothing between generate() and validate(). The
      cost is computing the HMAC twice per token; there is no storage and
      no eviction.

  Strict parsing [C1]: validate() rejects anything that is not exactly 144
      hex digits. There is no sanitizing pass -- a token with a stray
      character is malformed, not "almost valid".

  Check order [C2]: shape, then timestamp, then MAC. Expiry is decided
      before the secret is fetched, so an expired token is reported as
      CsrfExpired even when the secret store is down.

  Constant-time MAC comparison [C3]: core.crypto.constant_time_equals, so
      response timing does not reveal how many leading MAC bytes matched.

  No revocation: a token is valid until it ages out of the window.

Layer rule: imports from core/ and auth.models / auth.context only.
"""

from __future__ import annotations

import logging

from auth.context import TrustContext, get_context
from auth.models import CSRF_HEX_SIZE, CSRF_NONCE_SIZE, CSRF_RAW_SIZE, CSRF_TIMESTAMP_SIZE, CsrfToken
from core.crypto import constant_time_equals, hmac_sha256, strict_unhex
from core.errors import (
    ClockFailure,
    CsrfError,
    CsrfExpired,
    CsrfFutureTimestamp,
    CsrfMacMismatch,
    InvalidCsrfToken,
)
from core.secret_store import CSRF_SECRET

logger = logging.getLogger("trustgate.csrf")

_MAX_TIMESTAMP = 2**64 - 1


class CsrfEngine:
    """Builds and checks anti-forgery tokens with the CSRF secret."""

    def __init__(self, context: TrustContext) -> None:
        self._context = context

    @property
    def ttl_seconds(self) -> int:
        return self._context.settings.csrf_token_ttl_seconds

    def _mac(self, payload: bytes) -> bytes:
        secret = self._context.secret(CSRF_SECRET)
        return hmac_sha256(secret.value, payload)

    # ------------------------------------------------------------------
    # generate
    # ------------------------------------------------------------------

    def generate(self) -> str:
        """Return a fresh 144-char hex token.

        Raises RandomSourceFailure if the CSPRNG fails, ClockFailure if the
        clock is outside the unsigned 64-bit range, and SecretUnavailable if
        the CSRF secret is missing or empty.
        """
        nonce = self._context.rng(CSRF_NONCE_SIZE)
        issued_at = self._context.now()
        if not 0 <= issued_at <= _MAX_TIMESTAMP:
            raise ClockFailure(detail=f"issued_at={issued_at}")

        payload = nonce + issued_at.to_bytes(CSRF_TIMESTAMP_SIZE, "big")
        token = CsrfToken(nonce=nonce, issued_at=issued_at, mac=self._mac(payload))
        return token.to_hex()

    # ------------------------------------------------------------------
    # decode / validate
    # ------------------------------------------------------------------

    def decode(self, token_hex: str | None) -> CsrfToken:
        """Parse a token's fields without checking time or MAC [C1].

        Raises InvalidCsrfToken for None, empty, wrong-length or non-hex input.
        """
        if not token_hex:
            raise InvalidCsrfToken("CSRF token is missing.")
        if not isinstance(token_hex, str):
            raise InvalidCsrfToken("CSRF token must be a string.")
        raw = strict_unhex(token_hex, CSRF_RAW_SIZE)
        if raw is None:
            raise InvalidCsrfToken(
                detail=f"token_length={len(token_hex)}, expected={CSRF_HEX_SIZE}",
            )
        return CsrfToken.from_bytes(raw)

    def validate(self, token_hex: str | None) -> None:
        """Return None if the token is authentic and fresh, raise otherwise.

        Raises:
            InvalidCsrfToken     malformed input (MALFORMED_INPUT)
            CsrfFutureTimestamp  issued_at > now (REJECTED)
            CsrfExpired          older than ttl_seconds (REJECTED)
            CsrfMacMismatch      forged or tampered (REJECTED)
            SecretUnavailable    CSRF secret missing (CONFIGURATION)
        """
        token = self.decode(token_hex)

        # [C2] timestamp checks before touching the secret
        now = self._context.now()
        if token.issued_at > now:
            raise CsrfFutureTimestamp(detail=f"token_ts={token.issued_at}, now={now}")
        if now - token.issued_at > self.ttl_seconds:
            raise CsrfExpired(
                detail=f"token_ts={token.issued_at}, now={now}, expire_seconds={self.ttl_seconds}",
            )

        expected = self._mac(token.signed_payload)
        if not constant_time_equals(expected, token.mac):  # [C3]
            logger.info("CSRF token rejected: MAC mismatch")
            raise CsrfMacMismatch()

    def is_valid(self, token_hex: str | None) -> bool:
        """Boolean form of validate().

        Malformed and rejected tokens return False. Configuration failures
        (SecretUnavailable, RandomSourceFailure) still raise -- a missing key
        is not the client's fault and must not look like a bad token.
        """
        try:
            self.validate(token_hex)
        except CsrfError as exc:
            logger.debug("CSRF token invalid: code=%d", exc.code)
            return False
        return True


# ---------------------------------------------------------------------------
# Module-level helpers bound to the default context
# ---------------------------------------------------------------------------


def generate_csrf_token(context: TrustContext | None = None) -> str:
    return CsrfEngine(context or get_context()).generate()


def validate_csrf_token(token_hex: str | None, context: TrustContext | None = None) -> None:
    CsrfEngine(context or get_context()).validate(token_hex)
