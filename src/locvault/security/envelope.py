"""Versioned text envelope for encrypted location payloads.

Wire format (the only byte-exact contract between devices):

    <version-tag> ":" base64(nonce || ciphertext || tag)

- version-tag: "v1", "v2", ... one per algorithm revision
- nonce: fixed length per version
- base64: standard alphabet, padded

The tag is read first and selects every algorithm parameter, so envelopes of
different revisions can sit side by side in storage forever. Adding a
revision means adding a CipherSuite to SUITES; existing tags never change
meaning.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Type

from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..core.exceptions import FormatError, TruncatedError, UnknownVersionError
from .kdf import derive_key, derive_key_argon2

SEPARATOR = ":"
TAG_SIZE = 16  # GCM and Poly1305 both append a 128-bit tag


@dataclass(frozen=True)
class CipherSuite:
    tag: str
    nonce_length: int
    aead: Type
    kdf: Callable[[str], bytes]
    kdf_name: str

    @property
    def prefix(self) -> str:
        return f"{self.tag}{SEPARATOR}"


SUITES: Dict[str, CipherSuite] = {
    "v1": CipherSuite(tag="v1", nonce_length=12, aead=AESGCM, kdf=derive_key, kdf_name="sha256-stretch"),
    "v2": CipherSuite(
        tag="v2", nonce_length=12, aead=ChaCha20Poly1305, kdf=derive_key_argon2, kdf_name="argon2id"
    ),
}

ACTIVE_VERSION = "v1"


@dataclass(frozen=True)
class DecodedEnvelope:
    suite: CipherSuite
    nonce: bytes
    ciphertext: bytes  # includes the trailing AEAD tag


def get_suite(tag: str) -> CipherSuite:
    suite = SUITES.get(tag)
    if suite is None:
        raise UnknownVersionError(f"unknown envelope version: {tag!r}")
    return suite


def detect_version(value: object) -> Optional[str]:
    """Return the version tag ``value`` starts with, or None."""
    if not isinstance(value, str):
        return None
    tag, sep, _ = value.partition(SEPARATOR)
    if sep and tag in SUITES:
        return tag
    return None


def is_envelope(value: object) -> bool:
    return detect_version(value) is not None


def encode(nonce: bytes, ciphertext: bytes, version: str = ACTIVE_VERSION) -> str:
    """Serialize ``nonce || ciphertext`` into an envelope string."""
    suite = get_suite(version)
    if len(nonce) != suite.nonce_length:
        raise ValueError(f"{suite.tag} requires a {suite.nonce_length}-byte nonce, got {len(nonce)}")
    body = base64.b64encode(nonce + ciphertext).decode("ascii")
    return f"{suite.prefix}{body}"


def decode(envelope: str) -> DecodedEnvelope:
    """Parse an envelope string.

    Raises UnknownVersionError when the prefix is not a known tag,
    FormatError when the body is not base64, and TruncatedError when the
    body is too short to hold the nonce.
    """
    if not isinstance(envelope, str):
        raise FormatError("envelope must be a string")

    tag, sep, body = envelope.partition(SEPARATOR)
    if not sep:
        raise UnknownVersionError("envelope has no version tag")
    suite = get_suite(tag)

    try:
        raw = base64.b64decode(body.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise FormatError(f"{suite.tag} envelope body is not valid base64") from e

    if len(raw) < suite.nonce_length:
        raise TruncatedError(
            f"{suite.tag} envelope body is {len(raw)} bytes, shorter than its {suite.nonce_length}-byte nonce"
        )

    return DecodedEnvelope(
        suite=suite,
        nonce=raw[: suite.nonce_length],
        ciphertext=raw[suite.nonce_length:],
    )
