"""Security helpers: key derivation, envelopes and location encryption for LocVault.

This package provides:
- deterministic key derivation from a family's shared secret
- a process-wide (or injected) cache of derived keys
- the versioned ``v1:base64(...)`` envelope codec
- AEAD encryption/decryption of location payloads
- a resolver that reads both envelopes and legacy plaintext records

The four operations most callers need are ``encrypt_location``,
``decrypt_location``, ``resolve_location`` and ``clear_key_cache``.
"""

from .kdf import derive_key, derive_key_argon2
from .keycache import KeyCache, get_key_cache, clear_key_cache
from .envelope import ACTIVE_VERSION, SUITES, encode, decode, is_envelope
from .encryption import LocationEncryption, encrypt_location, decrypt_location
from .compat import CompatibilityResolver, is_encrypted, resolve_location

__all__ = [
    "derive_key",
    "derive_key_argon2",
    "KeyCache",
    "get_key_cache",
    "clear_key_cache",
    "ACTIVE_VERSION",
    "SUITES",
    "encode",
    "decode",
    "is_envelope",
    "LocationEncryption",
    "encrypt_location",
    "decrypt_location",
    "CompatibilityResolver",
    "is_encrypted",
    "resolve_location",
]
