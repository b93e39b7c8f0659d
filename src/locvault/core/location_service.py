"""
Encrypted location storage on top of a FamilyDirectory.

LocationService is the glue the apps call: it looks up the family's shared
secret, encrypts on write, resolves any stored shape on read, and can migrate
legacy plaintext records to envelopes. All I/O goes through the injected
directory; the crypto engine itself never touches storage.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

from ..security.compat import CompatibilityResolver, is_encrypted
from ..security.encryption import LocationEncryption, get_encryption
from .directory import FamilyDirectory
from .exceptions import FormatError
from .models import LocationPayload

logger = logging.getLogger(__name__)


class LocationService:
    def __init__(
        self,
        directory: FamilyDirectory,
        encryption: Optional[LocationEncryption] = None,
        resolver: Optional[CompatibilityResolver] = None,
    ):
        self.directory = directory
        self.encryption = encryption if encryption is not None else get_encryption()
        self.resolver = resolver if resolver is not None else CompatibilityResolver(self.encryption)

    def store_location(
        self,
        family_id: str,
        payload: Union[LocationPayload, Mapping[str, Any]],
        encrypt: bool = True,
    ) -> None:
        """
        Write a reading to the family document.

        ``encrypt=False`` writes the plain object the way pre-encryption
        builds did; it exists so mixed-format families can be reproduced.
        """
        if not isinstance(payload, LocationPayload):
            payload = LocationPayload.from_dict(payload)

        if encrypt:
            secret = self.directory.get_shared_secret_for_family(family_id)
            value: Any = self.encryption.encrypt(secret, payload)
        else:
            value = payload.to_dict()

        self.directory.write_location_field(family_id, value)
        logger.info("stored location for family (encrypted=%s)", encrypt)

    def get_location(self, family_id: str) -> Optional[Dict[str, Any]]:
        raw = self.directory.read_location_field(family_id)
        if raw is None:
            logger.debug("no location stored for family")
            return None
        if isinstance(raw, Mapping):
            # legacy plaintext object; readable without the family secret
            return raw
        secret = self.directory.get_shared_secret_for_family(family_id)
        return self.resolver.resolve(raw, secret)

    def is_location_encrypted(self, raw: Any) -> bool:
        return is_encrypted(raw)

    def validate_encrypted_location(self, family_id: str, envelope: str) -> bool:
        secret = self.directory.get_shared_secret_for_family(family_id)
        return self.encryption.validate(secret, envelope)

    def migrate_to_encrypted(self, family_id: str) -> bool:
        """
        Re-write a legacy plaintext object as an envelope.

        Returns True when the record is encrypted afterwards or there was
        nothing to migrate, False when the stored value has a shape that
        cannot be migrated.
        """
        raw = self.directory.read_location_field(family_id)
        if raw is None:
            return True
        if is_encrypted(raw):
            return True
        if not isinstance(raw, Mapping):
            logger.warning("cannot migrate stored location of type %s", type(raw).__name__)
            return False

        try:
            payload = LocationPayload.from_dict(raw)
        except FormatError as e:
            logger.warning("cannot migrate legacy location record: %s", e)
            return False
        secret = self.directory.get_shared_secret_for_family(family_id)
        self.directory.write_location_field(family_id, self.encryption.encrypt(secret, payload))
        logger.info("migrated legacy location record to %s envelope", self.encryption.suite.tag)
        return True
