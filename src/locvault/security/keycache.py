"""In-memory cache of derived keys, keyed by shared secret.

The KDFs are slow on purpose, so every encrypt/decrypt goes through a cache.
An entry is created on the first miss for a secret and lives until clear().
A KeyCache is a plain object so tests and callers can hold their own; the
module-level default cache backs the convenience functions in
:mod:`locvault.security.encryption`.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Tuple

from .kdf import derive_key

logger = logging.getLogger(__name__)

KeyFunction = Callable[[str], bytes]


class KeyCache:
    def __init__(self):
        self._keys: Dict[Tuple[KeyFunction, str], bytes] = {}
        self._lock = threading.Lock()

    def get_or_derive(self, secret: str, kdf: KeyFunction = derive_key) -> bytes:
        """Return the cached key for ``secret`` or derive and store it.

        The KDF runs outside the lock so one slow derivation never blocks
        readers of other secrets. Two threads missing on the same secret may
        both derive; the result is identical and the first stored value wins.
        """
        slot = (kdf, secret)
        with self._lock:
            key = self._keys.get(slot)
        if key is not None:
            return key

        # raises InvalidSecretError before anything is stored
        derived = kdf(secret)
        with self._lock:
            key = self._keys.setdefault(slot, derived)
        logger.debug(
            "derived key on cache miss (kdf=%s)", getattr(kdf, "__name__", type(kdf).__name__)
        )
        return key

    def clear(self) -> None:
        """Drop every cached key (family change, test isolation)."""
        with self._lock:
            self._keys.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def __contains__(self, secret: object) -> bool:
        with self._lock:
            return any(s == secret for _, s in self._keys)


# module-level default key cache
_default_cache = KeyCache()


def get_key_cache() -> KeyCache:
    return _default_cache


def get_or_derive(secret: str, kdf: KeyFunction = derive_key) -> bytes:
    return get_key_cache().get_or_derive(secret, kdf)


def clear_key_cache() -> None:
    get_key_cache().clear()
