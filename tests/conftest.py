"""
tests/conftest.py -- Shared fixtures for trustgate tests.

This module provides:
  - secrets_dir: a tmp directory holding csrf.txt and jwt.txt, written the way
                 provisioning scripts do (trailing newline included)
  - clock:       a FrozenClock starting at the current wall-clock second
  - make_settings / settings: isolated Settings pointing at secrets_dir
  - context:     a TrustContext over those settings and the frozen clock
  - default_context: patches the environment so the module-level helpers
                 (generate_csrf_token(), issue_jwt(), ...) see secrets_dir

Debug is pinned off for every test, and Settings are built with
_env_file=None, so a developer's shell or .env never leaks into the test run.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from auth.context import TrustContext, get_context, reset_context
from core.config import Settings, get_settings

CSRF_SECRET_VALUE = "test-csrf-secret-0123456789abcdef0123456789abcdef"
JWT_SECRET_VALUE = "test-jwt-secret-0123456789abcdef0123456789abcdef"


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: int) -> None:
        self.current = start

    def __call__(self) -> int:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current += seconds

    def set(self, value: int) -> None:
        self.current = value


@pytest.fixture(autouse=True)
def _production_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Pin debug off for the default Settings, whatever the shell exports."""
    monkeypatch.setenv("TRUSTGATE_DEBUG", "false")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def secrets_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "secrets"
    directory.mkdir()
    (directory / "csrf.txt").write_text(CSRF_SECRET_VALUE + "\n")
    (directory / "jwt.txt").write_text(JWT_SECRET_VALUE + "\r\n")
    return directory


@pytest.fixture
def secret_values() -> dict[str, str]:
    """The trimmed values written into secrets_dir."""
    return {"csrf_secret": CSRF_SECRET_VALUE, "jwt_secret": JWT_SECRET_VALUE}


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(int(time.time()))


@pytest.fixture
def make_settings(secrets_dir: Path) -> Callable[..., Settings]:
    """Return a factory for Settings overrides, e.g. make_settings(password_scheme="argon2id")."""

    def _make(**overrides) -> Settings:
        overrides.setdefault("secrets_dir", secrets_dir)
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def settings(make_settings: Callable[..., Settings]) -> Settings:
    return make_settings()


@pytest.fixture
def make_context(make_settings: Callable[..., Settings], clock: FrozenClock) -> Callable[..., TrustContext]:
    """Return a factory building a fresh TrustContext per call."""

    def _make(**overrides) -> TrustContext:
        extra = {"rng": overrides.pop("rng")} if "rng" in overrides else {}
        return TrustContext.from_settings(make_settings(**overrides), clock=clock, **extra)

    return _make


@pytest.fixture
def context(make_context: Callable[..., TrustContext]) -> TrustContext:
    return make_context()


@pytest.fixture
def default_context(secrets_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[TrustContext, None, None]:
    """Point the process-wide default context at secrets_dir.

    The settings and context singletons are reset before and after so no
    test sees a context built from another test's environment.
    """
    monkeypatch.setenv("TRUSTGATE_SECRETS_DIR", str(secrets_dir))
    get_settings.cache_clear()
    reset_context()
    yield get_context()
    get_settings.cache_clear()
    reset_context()
