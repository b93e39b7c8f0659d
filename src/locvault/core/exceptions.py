"""
Exceptions for LocVault
Everything derives from LocVaultError so callers have a single error catcher.
Messages never carry key material, secrets or coordinates.
"""


class LocVaultError(Exception):
    # general container for errors
    pass


class InvalidSecretError(LocVaultError):
    # raised when an empty or non-string shared secret reaches key derivation
    pass


class SecretNotFoundError(LocVaultError):
    # raised when no shared secret is known for a family
    pass


class FormatError(LocVaultError):
    # raised when a stored value or envelope cannot be parsed
    pass


class UnknownVersionError(FormatError):
    # raised when the envelope prefix is not a known version tag
    pass


class TruncatedError(FormatError):
    # raised when the envelope body is shorter than the nonce
    pass


class DecryptError(LocVaultError):
    # raised when ciphertext cannot be turned back into plaintext
    pass


class AuthenticationFailedError(DecryptError):
    # raised on a wrong key or tampered / truncated ciphertext
    pass


class PaddingInvalidError(DecryptError):
    # non-AEAD suites only; treated the same as an authentication failure
    pass
