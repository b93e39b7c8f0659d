"""Key derivation from a family's shared secret.

Every device of a family must arrive at the same key on its own, so both
functions here are pure: the only input is the secret. There is no random or
per-device salt; domain separation comes from the fixed ``KEY_DOMAIN`` string
that every installation ships with.
"""
import hashlib
from typing import Dict

from argon2.low_level import Type, hash_secret_raw

from ..core.exceptions import InvalidSecretError

KEY_DOMAIN = "thanks_everyday_secure_salt_v1_2025"
KEY_LEN = 32

# v1: iterated SHA-256
KDF_ROUNDS = 10_000

# v2: Argon2id over a salt fixed by KEY_DOMAIN
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536
ARGON2_PARALLELISM = 1
ARGON2_SALT = hashlib.sha256(f"argon2id:{KEY_DOMAIN}".encode("utf-8")).digest()[:16]


def _require_secret(secret: str) -> bytes:
    if not isinstance(secret, str):
        raise InvalidSecretError("shared secret must be a string")
    if not secret:
        raise InvalidSecretError("shared secret must not be empty")
    return secret.encode("utf-8")


def derive_key(secret: str) -> bytes:
    """
    Derive the 256-bit v1 key for ``secret``.

    SHA-256 of ``"<secret>:<KEY_DOMAIN>"``, then KDF_ROUNDS more SHA-256
    rounds over the previous digest. The iteration count is what makes each
    brute-force guess expensive; callers should go through a KeyCache.
    """
    _require_secret(secret)
    digest = hashlib.sha256(f"{secret}:{KEY_DOMAIN}".encode("utf-8")).digest()
    for _ in range(KDF_ROUNDS):
        digest = hashlib.sha256(digest).digest()
    return digest[:KEY_LEN]


def derive_key_argon2(
    secret: str,
    time_cost: int = ARGON2_TIME_COST,
    memory_cost: int = ARGON2_MEMORY_COST,
    parallelism: int = ARGON2_PARALLELISM,
) -> bytes:
    """
    Derive the 256-bit v2 key for ``secret`` using Argon2id.
    Returns raw derived key bytes.
    """
    password = _require_secret(secret)

    return hash_secret_raw(
        secret=password,
        salt=ARGON2_SALT,
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=KEY_LEN,
        type=Type.ID,
    )


def kdf_params_to_dict(name: str) -> Dict:
    if name == "sha256-stretch":
        return {
            "algo": "sha256-stretch",
            "domain": KEY_DOMAIN,
            "rounds": KDF_ROUNDS,
            "key_len": KEY_LEN,
        }
    if name == "argon2id":
        return {
            "algo": "argon2id",
            "salt": ARGON2_SALT.hex(),
            "time": ARGON2_TIME_COST,
            "memory": ARGON2_MEMORY_COST,
            "parallelism": ARGON2_PARALLELISM,
            "key_len": KEY_LEN,
        }
    raise ValueError(f"unknown KDF: {name}")
