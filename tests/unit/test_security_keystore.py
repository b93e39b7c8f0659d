"""
Unit tests for the keystore module.
"""

import pytest
from unittest.mock import MagicMock, patch

from keyring.errors import PasswordDeleteError

from locvault.core.exceptions import InvalidSecretError, SecretNotFoundError
from locvault.security import keystore
from locvault.security.keystore import KeyringSecretSource


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def mock_keyring_lib():
    """Patches the keyring module within locvault.security.keystore."""
    with patch("locvault.security.keystore.keyring", autospec=True) as mock_lib:
        yield mock_lib


@pytest.fixture
def no_keyring_lib():
    """Simulates keyring not being installed."""
    with patch("locvault.security.keystore.keyring", None):
        yield


def _backend(class_name, priority=1):
    cls = type(class_name, (), {})
    backend = cls()
    backend.priority = priority
    return backend


# ==============================================================================
# Tests: Dependency Availability (_require_keyring)
# ==============================================================================

def test_require_keyring_raises_if_missing(no_keyring_lib):
    with pytest.raises(RuntimeError, match="keyring package is not available"):
        keystore.save_secret("service", "family-1", "ABC123")

    with pytest.raises(RuntimeError, match="keyring package is not available"):
        keystore.load_secret("service", "family-1")

    with pytest.raises(RuntimeError, match="keyring package is not available"):
        keystore.delete_secret("service", "family-1")


def test_assess_backend_returns_false_if_missing(no_keyring_lib):
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "not installed" in msg


# ==============================================================================
# Tests: save / load / delete
# ==============================================================================

def test_save_secret(mock_keyring_lib):
    keystore.save_secret("locvault", "family-1", "ABC123")
    mock_keyring_lib.set_password.assert_called_once_with("locvault", "family-1", "ABC123")


def test_save_secret_rejects_empty(mock_keyring_lib):
    with pytest.raises(InvalidSecretError):
        keystore.save_secret("locvault", "family-1", "")
    mock_keyring_lib.set_password.assert_not_called()


def test_load_secret_found(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = "ABC123"
    assert keystore.load_secret("locvault", "family-1") == "ABC123"


@pytest.mark.parametrize("stored", [None, ""])
def test_load_secret_missing(mock_keyring_lib, stored):
    mock_keyring_lib.get_password.return_value = stored
    assert keystore.load_secret("locvault", "family-1") is None


def test_delete_secret(mock_keyring_lib):
    assert keystore.delete_secret("locvault", "family-1") is True
    mock_keyring_lib.delete_password.assert_called_once_with("locvault", "family-1")


def test_delete_secret_missing(mock_keyring_lib):
    mock_keyring_lib.delete_password.side_effect = PasswordDeleteError("not found")
    assert keystore.delete_secret("locvault", "family-1") is False


# ==============================================================================
# Tests: assess_keyring_backend
# ==============================================================================

@pytest.mark.parametrize(
    "name,priority,expected",
    [
        ("PlaintextKeyring", 1, False),
        ("NullKeyring", 1, False),
        ("SomeKeyring", 0, False),
        ("Keychain", 5, True),
        ("SecretServiceKeyring", 5, True),
        ("CustomKeyring", 1, True),
    ],
)
def test_assess_backend(mock_keyring_lib, name, priority, expected):
    mock_keyring_lib.get_keyring.return_value = _backend(name, priority)
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is expected
    assert name in msg


def test_assess_backend_lookup_failure(mock_keyring_lib):
    mock_keyring_lib.get_keyring.side_effect = RuntimeError("boom")
    is_secure, msg = keystore.assess_keyring_backend()
    assert is_secure is False
    assert "boom" in msg


# ==============================================================================
# Tests: KeyringSecretSource
# ==============================================================================

def test_source_returns_stored_secret(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = "ABC123"
    source = KeyringSecretSource("svc")
    assert source.get_shared_secret_for_family("family-1") == "ABC123"
    mock_keyring_lib.get_password.assert_called_once_with("svc", "family-1")


def test_source_missing_secret(mock_keyring_lib):
    mock_keyring_lib.get_password.return_value = None
    with pytest.raises(SecretNotFoundError):
        KeyringSecretSource().get_shared_secret_for_family("family-1")


def test_source_remember_refuses_insecure_backend(mock_keyring_lib):
    mock_keyring_lib.get_keyring.return_value = _backend("PlaintextKeyring")
    with pytest.raises(RuntimeError, match="refusing to store"):
        KeyringSecretSource().remember("family-1", "ABC123")
    mock_keyring_lib.set_password.assert_not_called()


def test_source_remember_without_backend_check(mock_keyring_lib):
    source = KeyringSecretSource("svc", require_secure_backend=False)
    source.remember("family-1", "ABC123")
    mock_keyring_lib.set_password.assert_called_once_with("svc", "family-1", "ABC123")
    mock_keyring_lib.get_keyring.assert_not_called()


def test_source_forget(mock_keyring_lib):
    assert KeyringSecretSource("svc").forget("family-1") is True
    mock_keyring_lib.delete_password.assert_called_once_with("svc", "family-1")
