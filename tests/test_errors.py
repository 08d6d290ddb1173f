"""Tests for core/errors.py and core/crypto.py.

Covers:
- Every error class sits in exactly one category with a stable code
- Raise-site location is captured from the frame stack
- Serialization hides detail and location outside debug mode, which
  defaults to Settings.debug
- constant_time_equals and strict_unhex edge cases
"""

from __future__ import annotations

import pytest

from auth.csrf import CsrfEngine
from core import errors
from core.config import get_settings
from core.crypto import constant_time_equals, strict_unhex
from core.errors import ErrorCategory, InvalidCsrfToken, TrustError

_EXPECTED_CATEGORIES = {
    errors.SecretUnavailable: ErrorCategory.CONFIGURATION,
    errors.RandomSourceFailure: ErrorCategory.CONFIGURATION,
    errors.ClockFailure: ErrorCategory.CONFIGURATION,
    errors.InvalidCsrfToken: ErrorCategory.MALFORMED_INPUT,
    errors.CsrfFutureTimestamp: ErrorCategory.REJECTED,
    errors.CsrfExpired: ErrorCategory.REJECTED,
    errors.CsrfMacMismatch: ErrorCategory.REJECTED,
    errors.NullInput: ErrorCategory.MALFORMED_INPUT,
    errors.SaltGenerationFailure: ErrorCategory.CONFIGURATION,
    errors.HashingFailure: ErrorCategory.CONFIGURATION,
    errors.InvalidHashFormat: ErrorCategory.MALFORMED_INPUT,
    errors.InvalidIterationCount: ErrorCategory.MALFORMED_INPUT,
    errors.HexDecodeFailure: ErrorCategory.MALFORMED_INPUT,
    errors.InvalidSubject: ErrorCategory.MALFORMED_INPUT,
    errors.InvalidArgument: ErrorCategory.MALFORMED_INPUT,
    errors.SignFailure: ErrorCategory.CONFIGURATION,
    errors.JwtValidationFailure: ErrorCategory.REJECTED,
}


class TestTaxonomy:
    @pytest.mark.parametrize("cls,category", list(_EXPECTED_CATEGORIES.items()))
    def test_category(self, cls, category) -> None:
        assert cls().category is category

    def test_codes_are_unique(self) -> None:
        codes = [cls.code for cls in _EXPECTED_CATEGORIES]
        assert len(codes) == len(set(codes))

    def test_csrf_codes_match_wire_contract(self) -> None:
        assert errors.CsrfFutureTimestamp.code == 1509
        assert errors.CsrfExpired.code == 1510
        assert errors.CsrfMacMismatch.code == 1511

    def test_http_status_by_category(self) -> None:
        assert errors.SecretUnavailable().http_status == 500
        assert errors.InvalidCsrfToken().http_status == 400
        assert errors.CsrfExpired().http_status == 403

    def test_all_are_trust_errors(self) -> None:
        assert all(issubclass(cls, TrustError) for cls in _EXPECTED_CATEGORIES)


class TestLocation:
    def test_captures_raise_site(self) -> None:
        error = errors.CsrfExpired()
        assert error.location is not None
        assert error.location.function == "test_captures_raise_site"
        assert error.location.file.endswith("test_errors.py")

    def test_captures_engine_frame(self, context) -> None:
        with pytest.raises(InvalidCsrfToken) as exc_info:
            CsrfEngine(context).validate("short")
        location = exc_info.value.location
        assert location.function == "decode"
        assert location.file.endswith("csrf.py")


class TestSerialization:
    def test_production_shape(self) -> None:
        error = errors.CsrfExpired(detail="token_ts=1, now=99999")
        assert error.to_dict() == {
            "error": "CsrfExpired",
            "category": "rejected",
            "code": 1510,
            "message": "CSRF token has expired.",
        }

    def test_debug_shape(self) -> None:
        error = errors.CsrfExpired(detail="token_ts=1, now=99999")
        body = error.to_dict(debug=True)
        assert body["detail"] == "token_ts=1, now=99999"
        assert "test_errors.py" in body["location"]

    def test_debug_defaults_to_settings(self, monkeypatch) -> None:
        error = errors.CsrfExpired(detail="token_ts=1, now=99999")
        assert "detail" not in error.to_dict()
        monkeypatch.setenv("TRUSTGATE_DEBUG", "true")
        get_settings.cache_clear()
        assert error.to_dict()["detail"] == "token_ts=1, now=99999"
        assert "detail" not in error.to_dict(debug=False)

    def test_custom_message(self) -> None:
        error = errors.SecretUnavailable("Secret 'jwt_secret' is empty.")
        assert str(error) == "Secret 'jwt_secret' is empty."
        assert error.message == "Secret 'jwt_secret' is empty."


class TestConstantTimeEquals:
    def test_equal(self) -> None:
        assert constant_time_equals(b"\x01" * 32, b"\x01" * 32) is True

    def test_last_byte_differs(self) -> None:
        assert constant_time_equals(b"\x00" * 32, b"\x00" * 31 + b"\x01") is False

    def test_first_byte_differs(self) -> None:
        assert constant_time_equals(b"\x00" * 32, b"\x01" + b"\x00" * 31) is False

    def test_length_mismatch(self) -> None:
        assert constant_time_equals(b"\x00" * 32, b"\x00" * 31) is False
        assert constant_time_equals(b"\x00" * 32, b"\x00" * 33) is False
        assert constant_time_equals(b"\x00" * 32, b"") is False


class TestStrictUnhex:
    def test_decodes_both_cases(self) -> None:
        assert strict_unhex("ABcd", 2) == b"\xab\xcd"

    @pytest.mark.parametrize("text", ["abc", "abcdef", "ab d", "zzzz", "-1ab"])
    def test_rejects(self, text) -> None:
        assert strict_unhex(text, 2) is None
