"""
Family Directory Service interface and an in-memory implementation

The real directory is the cloud document store the apps share. LocVault only
needs three calls from it; anything providing them can be plugged in.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Optional, Protocol

from .exceptions import SecretNotFoundError


class FamilyDirectory(Protocol):
    def get_shared_secret_for_family(self, family_id: str) -> str: ...

    def read_location_field(self, family_id: str) -> Any: ...

    def write_location_field(self, family_id: str, value: Any) -> None: ...


class InMemoryFamilyDirectory:
    """
    Dict-backed directory, one document per family.

    Stored values are deep-copied in and out so callers cannot mutate a
    record behind the directory's back, the way a remote store behaves.
    """

    def __init__(self, secrets: Optional[Dict[str, str]] = None):
        self._secrets: Dict[str, str] = dict(secrets or {})
        self._locations: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def add_family(self, family_id: str, secret: str) -> None:
        with self._lock:
            self._secrets[family_id] = secret

    def get_shared_secret_for_family(self, family_id: str) -> str:
        with self._lock:
            secret = self._secrets.get(family_id)
        if secret is None:
            raise SecretNotFoundError(f"no shared secret known for family {family_id!r}")
        return secret

    def read_location_field(self, family_id: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._locations.get(family_id))

    def write_location_field(self, family_id: str, value: Any) -> None:
        with self._lock:
            self._locations[family_id] = copy.deepcopy(value)
