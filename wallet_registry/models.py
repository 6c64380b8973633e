"""Domain models for the wallet registry."""

from enum import Enum
from time import time

from pydantic import BaseModel, Field, model_validator

WALLET_VERSION = "0.2"


class CoinType(str, Enum):
    """Coin family, which selects the BIP-44 derivation path."""

    ETHEREUM = "ethereum"
    ETHEREUM_CLASSIC = "ethereum_classic"


class WalletType(str, Enum):
    """How a wallet's keys were obtained."""

    DETERMINISTIC = "deterministic"
    COLLECTION = "collection"


class CryptoType(str, Enum):
    """Key derivation function and cipher used to lock wallet secrets."""

    SCRYPT_CHACHA20POLY1305 = "scrypt-chacha20poly1305"
    ARGON2ID_AES256GCM = "argon2id-aes256gcm"


# =============================================================================
# Wallet Models
# =============================================================================


class AddressEntry(BaseModel):
    """A single address held by a wallet.

    ``secret_key`` is only populated while the wallet is unencrypted.
    """

    address: str = Field(..., description="Checksummed address")
    public_key: str = Field(..., description="Uncompressed public key (hex)")
    secret_key: str = Field(default="", repr=False, description="Private key (hex)")
    child_number: int | None = Field(
        default=None, ge=0, description="Derivation index, None for imported keys"
    )


class Wallet(BaseModel):
    """A wallet snapshot as held by the registry and written to disk.

    The filename doubles as the wallet id. While the wallet is encrypted,
    ``seed`` and every entry's ``secret_key`` are empty and ``secrets``
    carries the encrypted envelope instead.
    """

    filename: str = Field(..., description="Wallet id and storage filename")
    version: str = Field(default=WALLET_VERSION)
    label: str = Field(default="")
    coin: CoinType = Field(default=CoinType.ETHEREUM)
    wallet_type: WalletType = Field(default=WalletType.DETERMINISTIC)
    crypto_type: CryptoType | None = Field(default=None)
    encrypted: bool = Field(default=False)
    created_at: int = Field(default_factory=lambda: int(time()))
    seed: str = Field(default="", repr=False)
    secrets: str = Field(default="", repr=False)
    entries: list[AddressEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_secret_state(self) -> "Wallet":
        if self.encrypted:
            if not self.secrets:
                raise ValueError("encrypted wallet has no secrets")
            if self.crypto_type is None:
                raise ValueError("encrypted wallet has no crypto type")
            if self.seed or any(e.secret_key for e in self.entries):
                raise ValueError("encrypted wallet holds plaintext secrets")
        else:
            if self.secrets:
                raise ValueError("unencrypted wallet holds an encrypted envelope")
            if self.wallet_type == WalletType.DETERMINISTIC and not self.seed:
                raise ValueError("deterministic wallet has no seed")
        return self

    @property
    def id(self) -> str:
        """The wallet id (its filename)."""
        return self.filename

    @property
    def first_address(self) -> str | None:
        """Address of the first entry, the wallet's deduplication key."""
        if not self.entries:
            return None
        return self.entries[0].address

    def addresses(self) -> list[str]:
        return [e.address for e in self.entries]

    def clone(self) -> "Wallet":
        """Return an independent deep copy."""
        return self.model_copy(deep=True)

    def erase_secrets(self) -> None:
        """Drop seed and private keys from this snapshot."""
        self.seed = ""
        for entry in self.entries:
            entry.secret_key = ""


class Options(BaseModel):
    """Wallet creation parameters, consumed once by the builder."""

    seed: str = Field(default="", repr=False)
    label: str = Field(default="")
    coin: CoinType = Field(default=CoinType.ETHEREUM)
    wallet_type: WalletType = Field(default=WalletType.DETERMINISTIC)
    generate_count: int = Field(default=0, ge=0, description="Addresses to derive (0 means 1)")
    scan_count: int = Field(default=0, ge=0, description="Scan-ahead batch size")
    encrypt: bool = Field(default=False)
    password: bytes = Field(default=b"", repr=False)
    crypto_type: CryptoType | None = Field(default=None)
    private_keys: list[str] = Field(
        default_factory=list, repr=False, description="Hex keys for collection wallets"
    )


# =============================================================================
# Balance Models
# =============================================================================


class BalancePair(BaseModel):
    """Confirmed and predicted (pending included) balance of one address."""

    model_config = {"frozen": True}

    confirmed: int = Field(default=0, ge=0, description="Confirmed balance in base units")
    predicted: int = Field(default=0, ge=0, description="Balance including unconfirmed")

    def has_activity(self) -> bool:
        return self.confirmed > 0 or self.predicted > 0
