"""OS keystore integration using keyring for a device's family secrets.

Each device keeps the shared secret (the family connection code) of the
family it belongs to, stored under a service/family-id pair. Only the secret
is stored: derived keys are recomputed on demand and live in the in-memory
KeyCache. Do not assume keyring provides hardware-backed security on all
platforms.
"""
from typing import Optional

try:
    import keyring
    from keyring.errors import PasswordDeleteError
except ImportError:
    keyring = None
    PasswordDeleteError = None

from ..core.exceptions import InvalidSecretError, SecretNotFoundError

DEFAULT_SERVICE = "locvault"


def _require_keyring():
    if keyring is None:
        raise RuntimeError("keyring package is not available; install keyring to use keystore features")


def save_secret(service: str, family_id: str, secret: str) -> None:
    """Persist the shared ``secret`` of ``family_id`` in the OS keystore."""
    _require_keyring()
    if not isinstance(secret, str) or not secret:
        raise InvalidSecretError("refusing to store an empty shared secret")
    keyring.set_password(service, family_id, secret)


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristics are used because the `keyring` package exposes different backends
    across platforms. If `keyring` is not available this returns (False, reason).
    """
    if keyring is None:
        return False, "keyring package is not installed"

    try:
        backend = keyring.get_keyring()
    except Exception as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Null", "Fail")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"


def load_secret(service: str, family_id: str) -> Optional[str]:
    """Load the shared secret of ``family_id``; returns None when not stored."""
    _require_keyring()
    secret = keyring.get_password(service, family_id)
    if not secret:
        return None
    return secret


def delete_secret(service: str, family_id: str) -> bool:
    """Remove the stored secret. Returns False if there was nothing to remove."""
    _require_keyring()
    try:
        keyring.delete_password(service, family_id)
    except PasswordDeleteError:
        return False
    return True


class KeyringSecretSource:
    """Answers ``get_shared_secret_for_family`` from the OS keystore."""

    def __init__(self, service: str = DEFAULT_SERVICE, require_secure_backend: bool = True):
        self.service = service
        self.require_secure_backend = require_secure_backend

    def remember(self, family_id: str, secret: str) -> None:
        if self.require_secure_backend:
            secure, msg = assess_keyring_backend()
            if not secure:
                raise RuntimeError(f"refusing to store family secret in OS keystore: {msg}")
        save_secret(self.service, family_id, secret)

    def get_shared_secret_for_family(self, family_id: str) -> str:
        secret = load_secret(self.service, family_id)
        if secret is None:
            raise SecretNotFoundError(f"no shared secret stored for family {family_id!r}")
        return secret

    def forget(self, family_id: str) -> bool:
        return delete_secret(self.service, family_id)
