"""
auth/tokens.py -- Session JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256 (configurable HS384/HS512). Tokens are signed
       with the jwt_secret from the SecretStore and carry exactly three
       claims: id (subject), iat, exp. exp is fixed at issue time to
       iat + jwt_ttl_seconds (default 7 days).

  Expiry follows the context clock [J1]: python-jose's own exp check
       (wall-clock time) is switched off, and verify() compares exp with
       TrustContext.now(). A context with a fixed or simulated clock then
       issues and verifies consistently. Signature and iat checks stay on.

  Codec diagnostics stay internal [J2]: python-jose error text is attached
       to JwtValidationFailure.detail, which core.errors only serializes in
       debug mode. Production callers see "JWT validation failed." whether
       the signature, the expiry, or the structure was wrong.

  No revocation: a token stays valid until exp. Logging out is the client
       discarding the token.

Layer rule: imports from core/ and auth.models / auth.context only.
"""

from __future__ import annotations

import logging
from typing import Any

from jose import jwt
from jose.exceptions import JOSEError

from auth.context import TrustContext, get_context
from auth.models import JwtClaims
from core.errors import InvalidArgument, InvalidSubject, JwtValidationFailure, SignFailure
from core.secret_store import JWT_SECRET

logger = logging.getLogger("trustgate.tokens")


def _claims_from_payload(payload: dict[str, Any]) -> JwtClaims:
    subject = payload.get("id")
    iat = payload.get("iat")
    exp = payload.get("exp")
    if not isinstance(subject, str) or not subject:
        raise JwtValidationFailure(detail="missing or empty 'id' claim")
    # bool is an int subclass; a token with "exp": true is not a timestamp.
    for name, value in (("iat", iat), ("exp", exp)):
        if not isinstance(value, int) or isinstance(value, bool):
            raise JwtValidationFailure(detail=f"missing or non-integer {name!r} claim")
    return JwtClaims(id=subject, iat=iat, exp=exp)


class JwtEngine:
    """Issues and verifies session JWTs with the JWT secret."""

    def __init__(self, context: TrustContext) -> None:
        self._context = context

    @property
    def ttl_seconds(self) -> int:
        return self._context.settings.jwt_ttl_seconds

    @property
    def algorithm(self) -> str:
        return self._context.settings.jwt_algorithm

    def _key(self) -> str:
        return self._context.secret(JWT_SECRET).as_text()

    # ------------------------------------------------------------------
    # issue
    # ------------------------------------------------------------------

    def issue(self, subject_id: str | int | None) -> str:
        """Encode a signed JWT for `subject_id`.

        Raises InvalidSubject for a None/empty id, SecretUnavailable if the
        JWT secret is missing, and SignFailure if python-jose cannot sign.
        """
        if subject_id is None or str(subject_id) == "":
            raise InvalidSubject()
        key = self._key()
        now = self._context.now()
        claims = JwtClaims(id=str(subject_id), iat=now, exp=now + self.ttl_seconds)
        try:
            return jwt.encode(claims.to_dict(), key, algorithm=self.algorithm)
        except JOSEError as exc:
            logger.error("JWT signing failed: %s", type(exc).__name__)
            raise SignFailure(detail=str(exc)) from exc

    # ------------------------------------------------------------------
    # verify
    # ------------------------------------------------------------------

    def verify(self, token: str | None) -> JwtClaims:
        """Verify signature and expiry, return the claims.

        Raises InvalidArgument for None, SecretUnavailable if the JWT secret
        is missing, and JwtValidationFailure for every signature, expiry, or
        structure problem [J2].
        """
        if token is None:
            raise InvalidArgument()
        key = self._key()
        try:
            payload = jwt.decode(
                token,
                key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JOSEError as exc:
            logger.info("JWT rejected by codec: %s", type(exc).__name__)
            raise JwtValidationFailure(detail=str(exc)) from exc

        claims = _claims_from_payload(payload)
        now = self._context.now()
        if now > claims.exp:  # [J1]
            logger.info("JWT rejected: expired")
            raise JwtValidationFailure(detail=f"exp={claims.exp}, now={now}")
        return claims

    def decode(self, token: str | None) -> JwtClaims | None:
        """Verify and return the claims, or None on any token problem.

        Returning None (rather than raising) keeps route-layer callers simple:
        any invalid token is treated as unauthenticated. SecretUnavailable is
        NOT swallowed -- a missing key must surface as a server error.
        """
        try:
            return self.verify(token)
        except (JwtValidationFailure, InvalidArgument):
            return None


# ---------------------------------------------------------------------------
# Module-level helpers bound to the default context
# ---------------------------------------------------------------------------


def issue_jwt(subject_id: str | int | None, context: TrustContext | None = None) -> str:
    return JwtEngine(context or get_context()).issue(subject_id)


def verify_jwt(token: str | None, context: TrustContext | None = None) -> JwtClaims:
    return JwtEngine(context or get_context()).verify(token)

