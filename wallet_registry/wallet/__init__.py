"""Wallet management module.

Provides the wallet registry service and the pieces it is built from:
secret encryption, deterministic derivation, guarded access and storage.
"""

from wallet_registry.wallet.builder import (
    generate_addresses,
    new_wallet,
    new_wallet_scan_ahead,
    scan_addresses,
)
from wallet_registry.wallet.derivation import derive_keys, first_address, generate_seed
from wallet_registry.wallet.guard import guard_update, guard_view, lock_wallet, unlock_wallet
from wallet_registry.wallet.rwlock import RWLock
from wallet_registry.wallet.storage import WalletStore, new_wallet_filename
from wallet_registry.wallet.service import WalletService

__all__ = [
    "RWLock",
    "WalletService",
    "WalletStore",
    "derive_keys",
    "first_address",
    "generate_addresses",
    "generate_seed",
    "guard_update",
    "guard_view",
    "lock_wallet",
    "new_wallet",
    "new_wallet_filename",
    "new_wallet_scan_ahead",
    "scan_addresses",
    "unlock_wallet",
]
