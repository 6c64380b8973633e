"""Wallet construction and address generation."""

from loguru import logger

from wallet_registry.exceptions import (
    InvalidOptionsError,
    MissingPasswordError,
    MissingSeedError,
    WalletEncryptedError,
    WalletError,
    WalletNotDeterministicError,
)
from wallet_registry.interfaces.balance import BalanceGetter
from wallet_registry.models import CryptoType, Options, Wallet, WalletType
from wallet_registry.wallet.derivation import derive_keys, key_pair_from_hex
from wallet_registry.wallet.guard import lock_wallet

DEFAULT_CRYPTO_TYPE = CryptoType.SCRYPT_CHACHA20POLY1305


def new_wallet(filename: str, options: Options) -> Wallet:
    """Create a wallet from options, encrypting it if requested.

    Args:
        filename: Wallet id and storage filename.
        options: Creation parameters.

    Returns:
        The new wallet, not yet saved.

    Raises:
        MissingSeedError: If a deterministic wallet has no seed.
        MissingPasswordError: If encryption is requested without a password.
        InvalidOptionsError: If the options are inconsistent.
    """
    wallet = _build(filename, options)
    return _maybe_lock(wallet, options)


def new_wallet_scan_ahead(
    filename: str, options: Options, balance_getter: BalanceGetter | None
) -> Wallet:
    """Create a wallet and extend it with any used addresses found by scanning.

    Scanning only applies to deterministic wallets with ``scan_count > 0``
    and a balance getter. The wallet is encrypted after the scan.
    """
    wallet = _build(filename, options)
    if (
        options.scan_count > 0
        and balance_getter is not None
        and wallet.wallet_type == WalletType.DETERMINISTIC
    ):
        scan_addresses(wallet, options.scan_count, balance_getter)
    return _maybe_lock(wallet, options)


def generate_addresses(wallet: Wallet, num: int) -> list[str]:
    """Derive ``num`` new sequential addresses and append them to the wallet.

    The wallet must be deterministic and unencrypted (a decrypted working
    copy inside guarded access qualifies).

    Returns:
        Only the newly generated addresses.
    """
    if wallet.wallet_type != WalletType.DETERMINISTIC:
        raise WalletNotDeterministicError()
    if wallet.encrypted:
        raise WalletEncryptedError()
    if num == 0:
        return []

    start = _next_child_number(wallet)
    pairs = derive_keys(wallet.seed, wallet.coin, start, num)
    wallet.entries.extend(kp.to_entry(start + i) for i, kp in enumerate(pairs))
    return [kp.address for kp in pairs]


def scan_addresses(wallet: Wallet, scan_count: int, balance_getter: BalanceGetter) -> int:
    """Append derived addresses until ``scan_count`` unused ones follow the last used one.

    Addresses are derived in batches of ``scan_count`` past the wallet's
    current entries. Each batch keeps everything up to its last address with
    activity; a batch without activity ends the scan and is discarded.

    Returns:
        Number of addresses added to the wallet.
    """
    added = 0
    while True:
        candidate = wallet.clone()
        addrs = generate_addresses(candidate, scan_count)
        balances = balance_getter.get_balance_of_addrs(addrs)
        if len(balances) != len(addrs):
            raise WalletError(
                f"balance getter returned {len(balances)} balances for {len(addrs)} addresses"
            )

        keep = 0
        for i, balance in enumerate(balances):
            if balance.has_activity():
                keep = i + 1

        if keep == 0:
            candidate.erase_secrets()
            break

        start = len(wallet.entries)
        candidate.seed = ""
        for dropped in candidate.entries[start + keep :]:
            dropped.secret_key = ""
        wallet.entries = candidate.entries[: start + keep]
        added += keep

    if added:
        logger.debug("Scan-ahead found {} used address(es) in {}", added, wallet.filename)
    return added


def _build(filename: str, options: Options) -> Wallet:
    _validate_options(options)

    wallet = Wallet(
        filename=filename,
        label=options.label,
        coin=options.coin,
        wallet_type=options.wallet_type,
        seed=options.seed,
    )

    if options.wallet_type == WalletType.DETERMINISTIC:
        generate_addresses(wallet, options.generate_count or 1)
        return wallet

    seen: set[str] = set()
    for private_key in options.private_keys:
        try:
            pair = key_pair_from_hex(private_key)
        except ValueError as e:
            raise InvalidOptionsError(f"invalid private key: {e}") from e
        if pair.address in seen:
            continue
        seen.add(pair.address)
        wallet.entries.append(pair.to_entry())
    return wallet


def _validate_options(options: Options) -> None:
    if options.wallet_type == WalletType.DETERMINISTIC:
        if not options.seed:
            raise MissingSeedError()
        if options.private_keys:
            raise InvalidOptionsError("private keys are only accepted for collection wallets")
    else:
        if options.seed:
            raise InvalidOptionsError("collection wallets do not take a seed")
        if not options.private_keys:
            raise InvalidOptionsError("collection wallet requires at least one private key")

    if options.encrypt and not options.password:
        raise MissingPasswordError()
    if options.password and not options.encrypt:
        raise InvalidOptionsError("password provided but encrypt is not set")


def _maybe_lock(wallet: Wallet, options: Options) -> Wallet:
    if not options.encrypt:
        return wallet
    locked = lock_wallet(wallet, options.password, options.crypto_type or DEFAULT_CRYPTO_TYPE)
    wallet.erase_secrets()
    return locked


def _next_child_number(wallet: Wallet) -> int:
    numbers = [e.child_number for e in wallet.entries if e.child_number is not None]
    return max(numbers) + 1 if numbers else 0
