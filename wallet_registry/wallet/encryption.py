"""
Wallet secret encryption.

Two schemes are supported, selected by CryptoType:
- scrypt key derivation + ChaCha20-Poly1305 (default)
- Argon2id key derivation (memory-hard) + AES-256-GCM

The encrypted envelope records the scheme, KDF parameters, salt and
nonce next to the ciphertext, so decryption never depends on the
current configuration.
"""

import base64
import binascii
import json
import secrets
from collections.abc import Callable
from typing import Any

from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from wallet_registry.exceptions import InvalidPasswordError, MissingPasswordError, WalletError
from wallet_registry.models import CryptoType

# ============================================
# Security Constants
# ============================================

KEY_SIZE = 32  # 256 bits for both ciphers
NONCE_SIZE = 12  # 96 bits for both ciphers
SALT_SIZE = 16

SCRYPT_N = 2**15
SCRYPT_R = 8
SCRYPT_P = 1

# Argon2id parameters (OWASP recommendations for high-security)
ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536  # 64 MB
ARGON2_PARALLELISM = 4


# ============================================
# Key Derivation
# ============================================


def _scrypt_key(password: bytes, salt: bytes, n: int, r: int, p: int) -> bytes:
    return Scrypt(salt=salt, length=KEY_SIZE, n=n, r=r, p=p).derive(password)


def _argon2_key(
    password: bytes, salt: bytes, time_cost: int, memory_cost: int, parallelism: int
) -> bytes:
    return hash_secret_raw(
        secret=password,
        salt=salt,
        time_cost=time_cost,
        memory_cost=memory_cost,
        parallelism=parallelism,
        hash_len=KEY_SIZE,
        type=Type.ID,
    )


_KDFS: dict[CryptoType, tuple[Callable[..., bytes], dict[str, int]]] = {
    CryptoType.SCRYPT_CHACHA20POLY1305: (
        _scrypt_key,
        {"n": SCRYPT_N, "r": SCRYPT_R, "p": SCRYPT_P},
    ),
    CryptoType.ARGON2ID_AES256GCM: (
        _argon2_key,
        {
            "time_cost": ARGON2_TIME_COST,
            "memory_cost": ARGON2_MEMORY_COST,
            "parallelism": ARGON2_PARALLELISM,
        },
    ),
}

_CIPHERS: dict[CryptoType, type[ChaCha20Poly1305] | type[AESGCM]] = {
    CryptoType.SCRYPT_CHACHA20POLY1305: ChaCha20Poly1305,
    CryptoType.ARGON2ID_AES256GCM: AESGCM,
}


# ============================================
# Encryption
# ============================================


def encrypt(crypto_type: CryptoType, data: bytes, password: bytes) -> str:
    """
    Encrypt data with a password.

    Returns: base64 text of the JSON envelope.

    Raises: MissingPasswordError if password is empty.
    """
    if not password:
        raise MissingPasswordError()

    derive, params = _KDFS[crypto_type]
    salt = secrets.token_bytes(SALT_SIZE)
    nonce = secrets.token_bytes(NONCE_SIZE)
    key = derive(password, salt, **params)

    aead = _CIPHERS[crypto_type](key)
    ciphertext = aead.encrypt(nonce, data, crypto_type.value.encode("utf-8"))

    envelope = {
        "crypto_type": crypto_type.value,
        "kdf": params,
        "salt": salt.hex(),
        "nonce": nonce.hex(),
        "ciphertext": ciphertext.hex(),
    }
    return base64.b64encode(json.dumps(envelope).encode("utf-8")).decode("ascii")


def decrypt(blob: str, password: bytes) -> bytes:
    """
    Decrypt an envelope produced by encrypt().

    Raises:
        MissingPasswordError: If password is empty.
        InvalidPasswordError: If the password is wrong or data is tampered.
        WalletError: If the envelope itself is malformed.
    """
    if not password:
        raise MissingPasswordError()

    envelope = _parse_envelope(blob)
    crypto_type = CryptoType(envelope["crypto_type"])
    derive, _ = _KDFS[crypto_type]

    try:
        key = derive(password, bytes.fromhex(envelope["salt"]), **envelope["kdf"])
        aead = _CIPHERS[crypto_type](key)
        return aead.decrypt(
            bytes.fromhex(envelope["nonce"]),
            bytes.fromhex(envelope["ciphertext"]),
            crypto_type.value.encode("utf-8"),
        )
    except InvalidTag as e:
        raise InvalidPasswordError() from e
    except (TypeError, ValueError) as e:
        raise WalletError(f"invalid encrypted secrets: {e}") from e


def _parse_envelope(blob: str) -> dict[str, Any]:
    try:
        envelope = json.loads(base64.b64decode(blob, validate=True))
        CryptoType(envelope["crypto_type"])
    except (binascii.Error, KeyError, TypeError, ValueError) as e:
        raise WalletError("invalid encrypted secrets envelope") from e

    missing = [f for f in ("kdf", "salt", "nonce", "ciphertext") if f not in envelope]
    if missing:
        raise WalletError(f"invalid encrypted secrets envelope: missing {', '.join(missing)}")
    return envelope
