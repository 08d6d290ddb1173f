"""
core/secret_store.py -- Load-once cache for the long-lived symmetric secrets.

Two named secrets exist: csrf_secret (HMAC key for anti-forgery tokens) and
jwt_secret (HS256 signing key). Each is read from its backing location the
first time an engine asks for it and cached for the lifetime of the store.

Security design:
  Secrets are provisioned out of band. The store never writes, rotates, or
  generates a key -- a missing file is a misprovisioned environment and every
  dependent operation fails with SecretUnavailable.

  Trailing CR/LF are trimmed (files are usually written with `echo`). A value
  that is empty after trimming is rejected; an HMAC with a zero-length key
  would still "work", which is exactly the silent failure to avoid.

  Secret values are never logged and never appear in repr(). Only the name
  and byte length are logged on load.

Concurrency:
  Double-checked locking with one threading.Lock per name. Concurrent first
  callers block on the lock, the first one reads, and the rest see the cached
  value. Failed reads are not cached so a fixed file is picked up on the next
  call. The lock is held only across the single read.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

from __future__ import annotations

import functools
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from core.config import Settings
from core.errors import SecretUnavailable

logger = logging.getLogger("trustgate.secrets")

CSRF_SECRET = "csrf_secret"
JWT_SECRET = "jwt_secret"

# Byte-oriented reader: takes the secret's backing location, returns raw bytes.
SecretReader = Callable[[Path], bytes]


@dataclass(frozen=True)
class Secret:
    """An immutable secret value. repr() never shows the bytes."""

    name: str
    value: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if not self.value:
            raise SecretUnavailable(f"Secret {self.name!r} is empty.")

    def __len__(self) -> int:
        return len(self.value)

    def as_text(self) -> str:
        """Decode as UTF-8 for libraries that expect a str key (python-jose)."""
        try:
            return self.value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SecretUnavailable(f"Secret {self.name!r} is not valid UTF-8.") from exc


def read_secret_file(path: Path, max_bytes: int = 1024) -> bytes:
    """Read a secret file, refusing anything larger than max_bytes.

    Reads one byte past the limit so an oversized file is detected without
    stat() racing a concurrent rewrite.
    """
    with open(path, "rb") as fh:
        data = fh.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValueError(f"secret file exceeds {max_bytes} bytes")
    return data


class SecretStore:
    """Thread-safe, load-once store for named secrets.

    Usage:
        store = SecretStore.from_settings(get_settings())
        key = store.get_secret(CSRF_SECRET).value
    """

    def __init__(
        self,
        locations: Mapping[str, Path],
        reader: SecretReader | None = None,
    ) -> None:
        self._locations = dict(locations)
        self._reader: SecretReader = reader or read_secret_file
        self._cache: dict[str, Secret] = {}
        self._locks = {name: threading.Lock() for name in self._locations}

    @classmethod
    def from_settings(cls, settings: Settings, reader: SecretReader | None = None) -> SecretStore:
        if reader is None:
            reader = functools.partial(read_secret_file, max_bytes=settings.max_secret_bytes)
        return cls(settings.secret_paths(), reader=reader)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._locations)

    def loaded(self, name: str) -> bool:
        """Return True if `name` has been read and cached."""
        return name in self._cache

    def get_secret(self, name: str) -> Secret:
        """Return the cached secret, reading it on first use.

        Raises SecretUnavailable for unknown names, read failures, and empty
        values.
        """
        cached = self._cache.get(name)
        if cached is not None:
            return cached

        lock = self._locks.get(name)
        if lock is None:
            raise SecretUnavailable(f"Unknown secret {name!r}.")

        with lock:
            # Another thread may have finished the load while we waited.
            cached = self._cache.get(name)
            if cached is not None:
                return cached
            secret = self._load(name)
            self._cache[name] = secret
            return secret

    def _load(self, name: str) -> Secret:
        location = self._locations[name]
        try:
            raw = self._reader(location)
        except (OSError, ValueError) as exc:
            logger.error("Failed to read secret %s: %s", name, type(exc).__name__)
            raise SecretUnavailable(
                f"Failed to read secret {name!r}.",
                detail=f"location={location}, error={exc}",
            ) from exc

        value = raw.rstrip(b"\r\n")
        if not value:
            logger.error("Secret %s is empty after trimming line terminators", name)
            raise SecretUnavailable(f"Secret {name!r} is empty.", detail=f"location={location}")

        logger.info("Loaded secret %s (%d bytes)", name, len(value))
        return Secret(name=name, value=value)
