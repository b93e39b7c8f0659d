"""
Location encryption for LocVault.

Both family apps run this same code: the monitored device encrypts a reading
and writes the envelope to the shared document, the family member's device
reads it back and decrypts. They never talk to each other, so the key is a
function of the family's shared secret alone (see :mod:`locvault.security.kdf`).
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional, Tuple, Union

from cryptography.exceptions import InvalidTag

from ..core.exceptions import AuthenticationFailedError, DecryptError, FormatError
from ..core.models import LocationPayload
from .envelope import ACTIVE_VERSION, TAG_SIZE, decode, encode, get_suite
from .keycache import KeyCache, get_key_cache

logger = logging.getLogger(__name__)

PayloadLike = Union[LocationPayload, Mapping[str, Any]]


class LocationEncryption:
    """
    Encrypts and decrypts location payloads as envelope strings.

    - keys come from the injected :class:`KeyCache` (the module default if
      none is given), derived with the KDF of the envelope's version
    - every encryption draws a fresh random nonce
    - ``version`` selects the suite used for *new* envelopes; decryption
      always follows the tag of the envelope it is given
    """

    def __init__(self, cache: Optional[KeyCache] = None, version: str = ACTIVE_VERSION):
        self.cache = cache if cache is not None else get_key_cache()
        self.suite = get_suite(version)

    # ------------------------------------------------------------------
    # Byte-level encryption
    # ------------------------------------------------------------------

    def encrypt_bytes(self, secret: str, plaintext: bytes) -> str:
        """
        Encrypt ``plaintext`` under the key for ``secret`` and return an envelope.

        The AEAD output (ciphertext with its trailing tag) goes into the
        envelope right after the nonce.
        """
        suite = self.suite
        key = self.cache.get_or_derive(secret, suite.kdf)
        nonce = os.urandom(suite.nonce_length)
        ct = suite.aead(key).encrypt(nonce, plaintext, None)
        return encode(nonce, ct, suite.tag)

    def decrypt_bytes(self, secret: str, envelope: str) -> bytes:
        """
        Decrypt an envelope produced by :meth:`encrypt_bytes`.

        Raises AuthenticationFailedError if the key is wrong or any byte of
        the body was altered or cut off.
        """
        decoded = decode(envelope)
        suite = decoded.suite
        if len(decoded.ciphertext) < TAG_SIZE:
            raise AuthenticationFailedError(f"{suite.tag} envelope is too short to carry an authentication tag")

        key = self.cache.get_or_derive(secret, suite.kdf)
        try:
            return suite.aead(key).decrypt(decoded.nonce, decoded.ciphertext, None)
        except InvalidTag as e:
            raise AuthenticationFailedError(f"{suite.tag} envelope failed authentication") from e

    # ------------------------------------------------------------------
    # Location payloads
    # ------------------------------------------------------------------

    def encrypt(self, secret: str, payload: PayloadLike) -> str:
        if not isinstance(payload, LocationPayload):
            payload = LocationPayload.from_dict(payload)
        envelope = self.encrypt_bytes(secret, payload.to_bytes())
        logger.debug("encrypted location payload (version=%s, length=%d)", self.suite.tag, len(envelope))
        return envelope

    def decrypt(self, secret: str, envelope: str) -> LocationPayload:
        raw = self.decrypt_bytes(secret, envelope)
        try:
            return LocationPayload.from_bytes(raw)
        except FormatError as e:
            # authenticated but not a payload we understand
            raise FormatError("decrypted envelope does not hold a location payload") from e

    def encrypt_coordinates(
        self,
        secret: str,
        latitude: float,
        longitude: float,
        address: Optional[str] = None,
    ) -> str:
        """Encrypt a fresh reading stamped with the current UTC time."""
        return self.encrypt(secret, LocationPayload.create(latitude, longitude, address))

    def decrypt_coordinates(self, secret: str, envelope: str) -> Tuple[float, float]:
        return self.decrypt(secret, envelope).coordinates()

    def validate(self, secret: str, envelope: str) -> bool:
        """True when ``envelope`` decrypts to a payload under ``secret``."""
        try:
            self.decrypt(secret, envelope)
        except (FormatError, DecryptError):
            return False
        return True


# module-level default encryption bound to the default key cache
_default_encryption = LocationEncryption()


def get_encryption() -> LocationEncryption:
    return _default_encryption


def encrypt_location(secret: str, payload: PayloadLike) -> str:
    return get_encryption().encrypt(secret, payload)


def decrypt_location(secret: str, envelope: str) -> LocationPayload:
    return get_encryption().decrypt(secret, envelope)
