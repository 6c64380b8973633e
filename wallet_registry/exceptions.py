"""Custom exceptions for the wallet registry."""


class WalletError(Exception):
    """Base exception for wallet-related errors."""

    pass


# =============================================================================
# Feature Flags
# =============================================================================


class WalletAPIDisabledError(WalletError):
    """Raised when the wallet API is disabled in configuration."""

    def __init__(self, message: str = "wallet api is disabled") -> None:
        super().__init__(message)


class SeedAPIDisabledError(WalletError):
    """Raised when seed retrieval is disabled in configuration."""

    def __init__(self, message: str = "wallet seed api is disabled") -> None:
        super().__init__(message)


# =============================================================================
# Lookup and State Exceptions
# =============================================================================


class WalletNotExistError(WalletError):
    """Raised when no wallet is loaded under the requested id."""

    def __init__(self, wallet_id: str = "") -> None:
        message = "wallet doesn't exist"
        if wallet_id:
            message = f"{message}: {wallet_id}"
        super().__init__(message)
        self.wallet_id = wallet_id


class WalletNameConflictError(WalletError):
    """Raised when a wallet with the same filename is already loaded."""

    def __init__(self, wallet_id: str) -> None:
        super().__init__(f"wallet name would conflict with existing wallet: {wallet_id}")
        self.wallet_id = wallet_id


class WalletEncryptedError(WalletError):
    """Raised when an operation requires an unencrypted wallet."""

    def __init__(self, message: str = "wallet is encrypted") -> None:
        super().__init__(message)


class WalletNotEncryptedError(WalletError):
    """Raised when an operation requires an encrypted wallet."""

    def __init__(self, message: str = "wallet is not encrypted") -> None:
        super().__init__(message)


class WalletNotDeterministicError(WalletError):
    """Raised when a seed operation is attempted on a non-deterministic wallet."""

    def __init__(self, message: str = "wallet type is not deterministic") -> None:
        super().__init__(message)


# =============================================================================
# Secret Material Exceptions
# =============================================================================


class InvalidPasswordError(WalletError):
    """Raised when the crypto envelope fails authentication."""

    def __init__(self, message: str = "invalid password") -> None:
        super().__init__(message)


class MissingPasswordError(WalletError):
    """Raised when a password is required but empty."""

    def __init__(self, message: str = "missing password") -> None:
        super().__init__(message)


class MissingSeedError(WalletError):
    """Raised when a deterministic wallet is created without a seed."""

    def __init__(self, message: str = "missing seed") -> None:
        super().__init__(message)


class SeedUsedError(WalletError):
    """Raised when a new wallet's first address is already registered."""

    def __init__(self, message: str = "a wallet already exists with this seed") -> None:
        super().__init__(message)


class WalletRecoverSeedWrongError(WalletError):
    """Raised when a recovery seed does not reproduce the wallet's first address."""

    def __init__(self, message: str = "wallet recovery seed is wrong") -> None:
        super().__init__(message)


class InvalidOptionsError(WalletError):
    """Raised when wallet creation options are inconsistent."""

    pass


# =============================================================================
# Load Exceptions
# =============================================================================


class WalletLoadError(WalletError):
    """Raised when the wallet directory cannot be loaded.

    Attributes:
        wallet_id: Filename of the offending wallet, if known.
    """

    def __init__(self, message: str, wallet_id: str | None = None) -> None:
        super().__init__(message)
        self.wallet_id = wallet_id


class DuplicateWalletError(WalletLoadError):
    """Raised when two wallet files share the same first address."""

    def __init__(self, wallet_id: str, address: str) -> None:
        super().__init__(
            f"duplicate wallet found with initial address {address} in file {wallet_id!r}",
            wallet_id=wallet_id,
        )
        self.address = address


class EmptyWalletError(WalletLoadError):
    """Raised when a wallet file has no address entries."""

    def __init__(self, wallet_id: str) -> None:
        super().__init__(f"empty wallet file found: {wallet_id!r}", wallet_id=wallet_id)
