"""
auth/context.py -- The long-lived object every engine is built from.

TrustContext bundles what the engines share: Settings, the SecretStore (the
only shared mutable state, loaded once per name), a clock, and a CSPRNG.
Engines receive it explicitly instead of reaching for module globals, so a
test can build an isolated context over temporary secret files and a frozen
clock without touching process state.

get_context() is the process-wide default used by the module-level helpers
(generate_csrf_token(), hash_password(), issue_jwt(), ...). It is built
lazily under a module lock, the same double-checked pattern
SecretStore.get_secret() uses per secret.

Layer rule: imports from core/ only.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from core.config import Settings, get_settings
from core.crypto import random_bytes
from core.secret_store import Secret, SecretStore

Clock = Callable[[], int]
RandomSource = Callable[[int], bytes]


def system_clock() -> int:
    """Current UNIX time in whole seconds."""
    return int(time.time())


@dataclass
class TrustContext:
    settings: Settings
    secrets: SecretStore
    clock: Clock = field(default=system_clock)
    rng: RandomSource = field(default=random_bytes)

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> TrustContext:
        return cls(settings=settings, secrets=SecretStore.from_settings(settings), **kwargs)

    def now(self) -> int:
        return self.clock()

    def secret(self, name: str) -> Secret:
        return self.secrets.get_secret(name)


_default_context: TrustContext | None = None
_default_lock = threading.Lock()


def get_context() -> TrustContext:
    """Return the process-wide TrustContext.

    Built once under a lock so concurrent first callers share one
    SecretStore, and with it one load per secret.

    In tests: call reset_context() (and get_settings.cache_clear()) to
    rebuild it from a patched environment.
    """
    global _default_context
    context = _default_context
    if context is None:
        with _default_lock:
            context = _default_context
            if context is None:
                context = TrustContext.from_settings(get_settings())
                _default_context = context
    return context


def reset_context() -> None:
    """Drop the process-wide TrustContext so the next get_context() rebuilds it."""
    global _default_context
    with _default_lock:
        _default_context = None
