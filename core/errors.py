"""
core/errors.py -- Error taxonomy shared by every trustgate engine.

Every failure an engine can report is a TrustError subclass carrying:

  category  -- one of three ErrorCategory values. Callers branch on this,
               never on message text:
                 CONFIGURATION    misprovisioned environment (missing/empty
                                  secret, RNG or clock failure). 5xx-class.
                 MALFORMED_INPUT  client sent something structurally wrong
                                  (bad token shape, bad hash record, null
                                  argument). 4xx-class, not retryable as-is.
                 REJECTED         expected negative outcome (expired token,
                                  MAC mismatch, failed JWT check). Ordinary
                                  result, not a crash.
  code      -- stable integer code, grouped by component:
                 14xx secrets, 15xx CSRF, 16xx passwords, 17xx JWT.
  location  -- raise site (file, line, function), captured from the frame
               stack when the error is constructed.
  detail    -- optional diagnostic text. Only serialized in debug mode
               (the debug argument, or Settings.debug when omitted).

Password mismatch is NOT an error: PasswordEngine.verify() returns False.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass
from typing import Any

from core.config import get_settings


class ErrorCategory(str, enum.Enum):
    CONFIGURATION = "configuration"
    MALFORMED_INPUT = "malformed_input"
    REJECTED = "rejected"


_HTTP_STATUS = {
    ErrorCategory.CONFIGURATION: 500,
    ErrorCategory.MALFORMED_INPUT: 400,
    ErrorCategory.REJECTED: 403,
}


@dataclass(frozen=True)
class SourceLocation:
    """Where a TrustError was constructed."""

    file: str
    line: int
    function: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line} in {self.function}"


def _capture_location(error: BaseException) -> SourceLocation | None:
    """Return the first frame outside the error's own __init__ chain.

    Subclass constructors call super().__init__(), so the raise site sits an
    unknown number of frames up. Skip every frame whose `self` is the error
    being built.
    """
    frame = sys._getframe(1)
    while frame is not None and frame.f_locals.get("self") is error:
        frame = frame.f_back
    if frame is None:
        return None
    return SourceLocation(
        file=frame.f_code.co_filename,
        line=frame.f_lineno,
        function=frame.f_code.co_name,
    )


class TrustError(Exception):
    """Base exception for all trustgate errors."""

    category: ErrorCategory = ErrorCategory.CONFIGURATION
    code: int = 1000
    message: str = "Trust operation failed."

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        self.message = message or type(self).message
        self.detail = detail
        self.location = _capture_location(self)
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self.category]

    def to_dict(self, debug: bool | None = None) -> dict[str, Any]:
        """Serialize for a response body.

        detail and location are attached only in debug mode so production
        responses never carry library internals or file paths [S3]. When
        `debug` is not given, Settings.debug decides.
        """
        if debug is None:
            debug = get_settings().debug
        body: dict[str, Any] = {
            "error": type(self).__name__,
            "category": self.category.value,
            "code": self.code,
            "message": self.message,
        }
        if debug:
            body["detail"] = self.detail
            body["location"] = str(self.location) if self.location else None
        return body


# ---------------------------------------------------------------------------
# Configuration / fatal
# ---------------------------------------------------------------------------


class SecretUnavailable(TrustError):
    """A named secret could not be read, or is empty."""

    code = 1401
    message = "Secret is unavailable."


class RandomSourceFailure(TrustError):
    """The CSPRNG could not supply bytes. Not retryable without a restart."""

    code = 1501
    message = "Secure random source failed."


class ClockFailure(TrustError):
    """The clock returned a time that cannot be encoded as unsigned seconds."""

    code = 1502
    message = "System clock returned an unusable time."


# ---------------------------------------------------------------------------
# CSRF
# ---------------------------------------------------------------------------


class CsrfError(TrustError):
    """Base for CSRF validation failures."""

    category = ErrorCategory.REJECTED
    code = 1500
    message = "CSRF token rejected."


class InvalidCsrfToken(CsrfError):
    category = ErrorCategory.MALFORMED_INPUT
    code = 1512
    message = "CSRF token is malformed."


class CsrfFutureTimestamp(CsrfError):
    code = 1509
    message = "CSRF token timestamp is in the future."


class CsrfExpired(CsrfError):
    code = 1510
    message = "CSRF token has expired."


class CsrfMacMismatch(CsrfError):
    code = 1511
    message = "CSRF token signature does not match."


# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


class PasswordError(TrustError):
    """Base for password hashing/verification failures."""

    code = 1600
    message = "Password operation failed."


class NullInput(PasswordError):
    category = ErrorCategory.MALFORMED_INPUT
    code = 1601
    message = "Password or stored hash is missing."


class SaltGenerationFailure(PasswordError):
    code = 1602
    message = "Failed to generate random salt."


class HashingFailure(PasswordError):
    code = 1603
    message = "Password hashing failed."


class InvalidHashFormat(PasswordError):
    category = ErrorCategory.MALFORMED_INPUT
    code = 1604
    message = "Stored password hash has an invalid format."


class InvalidIterationCount(PasswordError):
    category = ErrorCategory.MALFORMED_INPUT
    code = 1605
    message = "Stored password hash has an invalid iteration count."


class HexDecodeFailure(PasswordError):
    category = ErrorCategory.MALFORMED_INPUT
    code = 1606
    message = "Stored password hash could not be hex-decoded."


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------


class JwtError(TrustError):
    """Base for JWT issuance/verification failures."""

    code = 1700
    message = "JWT operation failed."


class InvalidSubject(JwtError):
    category = ErrorCategory.MALFORMED_INPUT
    code = 1701
    message = "JWT subject id cannot be empty."


class InvalidArgument(JwtError):
    category = ErrorCategory.MALFORMED_INPUT
    code = 1702
    message = "JWT token is missing."


class SignFailure(JwtError):
    code = 1703
    message = "JWT generation failed."


class JwtValidationFailure(JwtError):
    category = ErrorCategory.REJECTED
    code = 1704
    message = "JWT validation failed."
