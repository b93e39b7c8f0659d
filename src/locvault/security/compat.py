"""Read location values regardless of how they were stored.

The ``location`` field of a family document has held three shapes over the
app's lifetime:

- a plain object, written before encryption was introduced
- a JSON string, written by older builds
- an envelope string (``v1:...``), written by current builds

:class:`CompatibilityResolver` turns any of them into a location mapping.
It is the one place where a bad record becomes ``None`` instead of an
exception, so a single corrupted value never stops a stream of updates.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, Iterator, Optional

from ..core.exceptions import DecryptError, FormatError
from ..core.models import Absent, Structured, Text, classify
from .encryption import LocationEncryption, get_encryption
from .envelope import detect_version, is_envelope

logger = logging.getLogger(__name__)


def is_encrypted(raw: Any) -> bool:
    """True when ``raw`` is a string carrying a known envelope version tag."""
    return is_envelope(raw)


class CompatibilityResolver:
    def __init__(self, encryption: Optional[LocationEncryption] = None):
        self.encryption = encryption if encryption is not None else get_encryption()

    def resolve(self, raw: Any, secret: str) -> Optional[Dict[str, Any]]:
        """
        Return the location held by ``raw``, or None.

        Legacy objects come back unchanged (the same object). Envelopes are
        decrypted with ``secret``; a malformed or unauthenticated envelope
        yields None. InvalidSecretError is not caught: an empty secret is a
        caller bug, not a bad record.
        """
        try:
            value = classify(raw)
        except FormatError as e:
            logger.warning("ignoring stored location: %s", e)
            return None

        if isinstance(value, Absent):
            return None

        if isinstance(value, Structured):
            return value.data

        if isinstance(value, Text):
            if detect_version(value.value) is not None:
                return self._decrypt(value.value, secret)
            return self._parse_legacy_json(value.value)

        return None

    def resolve_many(self, raws: Iterable[Any], secret: str) -> Iterator[Optional[Dict[str, Any]]]:
        """Resolve each stored value in turn, one result per input."""
        for raw in raws:
            yield self.resolve(raw, secret)

    def _decrypt(self, envelope: str, secret: str) -> Optional[Dict[str, Any]]:
        try:
            payload = self.encryption.decrypt(secret, envelope)
        except (FormatError, DecryptError) as e:
            # the exception text never contains key material or coordinates
            logger.warning("dropping unreadable %s envelope: %s", detect_version(envelope), e)
            return None
        return payload.to_dict()

    @staticmethod
    def _parse_legacy_json(text: str) -> Optional[Dict[str, Any]]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            logger.warning("stored location is neither an envelope nor JSON (length=%d)", len(text))
            return None
        if not isinstance(data, dict):
            logger.warning("legacy location JSON is a %s, not an object", type(data).__name__)
            return None
        return data


_default_resolver: Optional[CompatibilityResolver] = None


def get_resolver() -> CompatibilityResolver:
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = CompatibilityResolver()
    return _default_resolver


def resolve_location(raw: Any, secret: str) -> Optional[Dict[str, Any]]:
    return get_resolver().resolve(raw, secret)
