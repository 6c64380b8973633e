"""Locking, unlocking and guarded access to wallet secrets.

A wallet's secrets are its seed and the private key of every entry. Locking
seals them into a single encrypted envelope and erases the plaintext;
unlocking reverses this on a copy. ``guard_view`` and ``guard_update`` are
the only sanctioned way to reach the plaintext of an encrypted wallet: the
decrypted working copy never outlives the callback.
"""

import json
from collections.abc import Callable

from wallet_registry.exceptions import (
    MissingPasswordError,
    WalletEncryptedError,
    WalletError,
    WalletNotEncryptedError,
)
from wallet_registry.models import CryptoType, Wallet
from wallet_registry.wallet import encryption

WalletCallback = Callable[[Wallet], None]


def lock_wallet(wallet: Wallet, password: bytes, crypto_type: CryptoType) -> Wallet:
    """Return an encrypted copy of an unencrypted wallet.

    Raises:
        MissingPasswordError: If password is empty.
        WalletEncryptedError: If the wallet is already encrypted.
    """
    if not password:
        raise MissingPasswordError()
    if wallet.encrypted:
        raise WalletEncryptedError()

    locked = wallet.clone()
    payload = {
        "seed": locked.seed,
        "keys": {e.address: e.secret_key for e in locked.entries},
    }
    try:
        locked.secrets = encryption.encrypt(
            crypto_type, json.dumps(payload).encode("utf-8"), password
        )
    finally:
        payload.clear()

    locked.crypto_type = crypto_type
    locked.encrypted = True
    locked.erase_secrets()
    return locked


def unlock_wallet(wallet: Wallet, password: bytes) -> Wallet:
    """Return a decrypted copy of an encrypted wallet.

    Raises:
        MissingPasswordError: If password is empty.
        WalletNotEncryptedError: If the wallet is not encrypted.
        InvalidPasswordError: If the password is wrong.
    """
    if not password:
        raise MissingPasswordError()
    if not wallet.encrypted:
        raise WalletNotEncryptedError()

    payload = json.loads(encryption.decrypt(wallet.secrets, password))

    unlocked = wallet.clone()
    unlocked.seed = payload.get("seed", "")
    secret_keys = payload.get("keys", {})
    for entry in unlocked.entries:
        if entry.address not in secret_keys:
            raise WalletError(f"encrypted secrets are missing the key for {entry.address}")
        entry.secret_key = secret_keys[entry.address]
    payload.clear()

    unlocked.secrets = ""
    unlocked.encrypted = False
    return unlocked


def guard_view(wallet: Wallet, password: bytes, fn: WalletCallback) -> None:
    """Run ``fn`` on a decrypted copy of an encrypted wallet.

    The copy's secrets are erased on every exit path, including when
    ``fn`` raises. Changes made by ``fn`` are discarded.
    """
    unlocked = unlock_wallet(wallet, password)
    try:
        fn(unlocked)
    finally:
        unlocked.erase_secrets()


def guard_update(wallet: Wallet, password: bytes, fn: WalletCallback) -> Wallet:
    """Run ``fn`` on a decrypted copy and return it re-encrypted.

    The working copy is re-locked with the same password and the wallet's
    crypto type. ``wallet`` itself is left untouched; the caller decides
    whether to commit the returned snapshot.
    """
    if wallet.crypto_type is None:
        raise WalletError("encrypted wallet has no crypto type")

    unlocked = unlock_wallet(wallet, password)
    try:
        fn(unlocked)
        return lock_wallet(unlocked, password, wallet.crypto_type)
    finally:
        unlocked.erase_secrets()
