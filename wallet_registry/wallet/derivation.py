"""
Deterministic key derivation.

A wallet seed is any non-empty string. It is stretched into BIP-39 seed
bytes (PBKDF2-HMAC-SHA512, no word-list check) and keys are derived along
the BIP-44 path of the wallet's coin, so the same seed always yields the
same addresses.
"""

from dataclasses import dataclass

from eth_account import Account
from eth_account.hdaccount import key_from_seed
from eth_keys import keys
from mnemonic import Mnemonic

from wallet_registry.models import AddressEntry, CoinType

# BIP-44 derivation paths
DERIVATION_PATHS: dict[CoinType, str] = {
    CoinType.ETHEREUM: "m/44'/60'/0'/0/{}",
    CoinType.ETHEREUM_CLASSIC: "m/44'/61'/0'/0/{}",
}


@dataclass
class KeyPair:
    """A derived key pair and its address."""

    address: str
    public_key: str
    secret_key: str = ""

    def to_entry(self, child_number: int | None = None) -> AddressEntry:
        return AddressEntry(
            address=self.address,
            public_key=self.public_key,
            secret_key=self.secret_key,
            child_number=child_number,
        )


def generate_seed(word_count: int = 12) -> str:
    """
    Generate a fresh BIP-39 seed phrase.

    Args:
        word_count: 12 (128-bit) or 24 (256-bit) word seed
    """
    if word_count == 12:
        strength = 128
    elif word_count == 24:
        strength = 256
    else:
        raise ValueError("word_count must be 12 or 24")
    return Mnemonic("english").generate(strength=strength)


def key_pair_from_private_key(private_key: bytes) -> KeyPair:
    """Build the key pair for a raw 32-byte private key."""
    account = Account.from_key(private_key)
    public_key = keys.PrivateKey(private_key).public_key
    return KeyPair(
        address=account.address,
        public_key=public_key.to_hex(),
        secret_key=f"0x{private_key.hex()}",
    )


def key_pair_from_hex(private_key: str) -> KeyPair:
    """Build the key pair for a hex private key (with or without 0x prefix)."""
    pkey = private_key.strip()
    if pkey.startswith("0x") or pkey.startswith("0X"):
        pkey = pkey[2:]
    if len(pkey) != 64:
        raise ValueError("Private key must be 64 hex characters")
    try:
        pkey_bytes = bytes.fromhex(pkey)
    except ValueError as e:
        raise ValueError("Private key must be valid hexadecimal") from e
    return key_pair_from_private_key(pkey_bytes)


def derive_keys(seed: str, coin: CoinType, start: int, n: int) -> list[KeyPair]:
    """
    Derive ``n`` sequential key pairs beginning at index ``start``.

    Raises: ValueError if the seed is empty.
    """
    if not seed:
        raise ValueError("seed must not be empty")

    seed_bytes = Mnemonic.to_seed(seed, passphrase="")
    path = DERIVATION_PATHS[coin]
    return [
        key_pair_from_private_key(key_from_seed(seed_bytes, path.format(index)))
        for index in range(start, start + n)
    ]


def first_address(seed: str, coin: CoinType) -> str:
    """The address at index 0, a seed's identity within the registry."""
    return derive_keys(seed, coin, 0, 1)[0].address
