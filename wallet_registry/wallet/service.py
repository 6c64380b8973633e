"""Wallet registry service.

Holds every loaded wallet in memory, mirrored on disk through a
WalletStore, behind a single reader/writer lock. Mutations follow one rule:
compute the new snapshot on a copy, save it, and only then install it in
memory. Every wallet handed to a caller is a deep copy.
"""

from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from wallet_registry.config import WalletConfig
from wallet_registry.exceptions import (
    DuplicateWalletError,
    EmptyWalletError,
    InvalidOptionsError,
    MissingSeedError,
    SeedAPIDisabledError,
    SeedUsedError,
    WalletAPIDisabledError,
    WalletEncryptedError,
    WalletError,
    WalletNameConflictError,
    WalletNotDeterministicError,
    WalletNotEncryptedError,
    WalletNotExistError,
    WalletRecoverSeedWrongError,
)
from wallet_registry.interfaces.balance import BalanceGetter
from wallet_registry.models import Options, Wallet, WalletType
from wallet_registry.wallet.builder import generate_addresses, new_wallet, new_wallet_scan_ahead
from wallet_registry.wallet.derivation import first_address
from wallet_registry.wallet.guard import (
    WalletCallback,
    guard_update,
    guard_view,
    lock_wallet,
    unlock_wallet,
)
from wallet_registry.wallet.rwlock import RWLock
from wallet_registry.wallet.storage import WALLET_EXT, WalletStore, new_wallet_filename


class WalletService:
    """Registry of wallets with durable, all-or-nothing mutations.

    All operations raise WalletAPIDisabledError when the wallet API is
    disabled. Writers are serialized by one exclusive lock covering every
    wallet; readers share it. Callbacks passed to view/update methods run
    while the lock is held and must not call back into the service.

    Usage:
        service = WalletService(WalletConfig(wallet_dir=path, enable_wallet_api=True))

        # Create a wallet from a seed
        wallet = service.create_wallet("", Options(seed="my seed", generate_count=2))

        # Encrypt it
        service.encrypt_wallet(wallet.id, b"password")

        # Derive more addresses (password required while encrypted)
        addrs = service.new_addresses(wallet.id, b"password", 3)
    """

    def __init__(self, config: WalletConfig, store: WalletStore | None = None) -> None:
        """Initialize the service and load the wallet directory.

        Args:
            config: Wallet configuration.
            store: Persistence backend. Defaults to a WalletStore on
                ``config.wallet_dir``.

        Raises:
            DuplicateWalletError: If two wallet files share a first address.
            EmptyWalletError: If a wallet file has no entries.
            WalletLoadError: If a wallet file is unreadable or invalid.
            OSError: If the wallet directory cannot be prepared.
        """
        self._config = config
        self._store = store or WalletStore(config.wallet_dir)
        self._lock = RWLock()
        self._wallets: dict[str, Wallet] = {}
        # Key: first address in wallet; Value: wallet id
        self._first_addr_ids: dict[str, str] = {}

        if not config.enable_wallet_api:
            logger.info("Wallet API disabled, wallet registry not loaded")
            return

        self._store.ensure_dir()
        removed = self._store.remove_backup_files()
        if removed:
            logger.warning("Removed {} stale wallet backup or temp file(s)", removed)

        wallets = self._store.load_all()
        _check_duplicates(wallets)
        _check_empty(wallets)
        self._set_wallets(wallets)

        logger.info("Loaded {} wallet(s) from {}", len(wallets), self._store.wallet_dir)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def wallet_dir(self) -> Path:
        """Return the configured wallet directory."""
        with self._lock.read_lock():
            self._check_enabled()
            return self._store.wallet_dir

    def create_wallet(
        self,
        name: str,
        options: Options,
        balance_getter: BalanceGetter | None = None,
    ) -> Wallet:
        """Create, save and load a new wallet.

        Args:
            name: Wallet filename. Empty to generate a unique one; ``.wlt``
                is appended when missing.
            options: Creation parameters. When ``encrypt`` is set, the
                configured crypto type replaces ``options.crypto_type``.
            balance_getter: Used to scan ahead for addresses with activity.

        Returns:
            A copy of the created wallet.

        Raises:
            WalletNameConflictError: If the name is already loaded.
            SeedUsedError: If a loaded wallet has the same first address.
            OSError: If saving fails; nothing is kept in memory.
        """
        with self._lock.write_lock():
            self._check_enabled()

            if name:
                name = _normalize_filename(name)
            else:
                name = self._generate_unique_filename()

            if name in self._wallets:
                raise WalletNameConflictError(name)

            # The service decides what crypto type new wallets use
            if options.encrypt:
                options = options.model_copy(update={"crypto_type": self._config.crypto_type})

            wallet = new_wallet_scan_ahead(name, options, balance_getter)
            addr = wallet.first_address
            if addr is None:
                raise WalletError("created wallet has no addresses")

            if addr in self._first_addr_ids:
                raise SeedUsedError()

            self._wallets[name] = wallet
            try:
                self._store.save(wallet)
            except Exception:
                # If save fails, remove the added wallet
                self._wallets.pop(name, None)
                logger.warning("Failed to save new wallet {}, creation rolled back", name)
                raise

            self._first_addr_ids[addr] = name

            logger.info(
                "Created wallet {} ({} address(es), encrypted={})",
                name,
                len(wallet.entries),
                wallet.encrypted,
            )
            return wallet.clone()

    def unload_wallet(self, wallet_id: str) -> None:
        """Remove a wallet from memory. The wallet file is kept on disk."""
        with self._lock.write_lock():
            self._check_enabled()

            wallet = self._wallets.pop(wallet_id, None)
            if wallet is None:
                return

            addr = wallet.first_address
            if addr is not None and self._first_addr_ids.get(addr) == wallet_id:
                del self._first_addr_ids[addr]

            logger.info("Unloaded wallet {}", wallet_id)

    # =========================================================================
    # Encryption
    # =========================================================================

    def encrypt_wallet(self, wallet_id: str, password: bytes) -> Wallet:
        """Encrypt a wallet with the configured crypto type.

        Raises:
            WalletNotExistError: If the wallet is not loaded.
            WalletEncryptedError: If the wallet is already encrypted.
            MissingPasswordError: If password is empty.
        """
        with self._lock.write_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            if wallet.encrypted:
                raise WalletEncryptedError()

            locked = lock_wallet(wallet, password, self._config.crypto_type)
            wallet.erase_secrets()

            self._commit(locked)
            logger.info("Encrypted wallet {} ({})", wallet_id, self._config.crypto_type.value)
            return locked.clone()

    def decrypt_wallet(self, wallet_id: str, password: bytes) -> Wallet:
        """Decrypt a wallet and store it unencrypted.

        Raises:
            WalletNotExistError: If the wallet is not loaded.
            WalletNotEncryptedError: If the wallet is not encrypted.
            InvalidPasswordError: If the password is wrong.
        """
        with self._lock.write_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            if not wallet.encrypted:
                raise WalletNotEncryptedError()

            unlocked = unlock_wallet(wallet, password)
            try:
                self._commit(unlocked)
            except Exception:
                unlocked.erase_secrets()
                raise

            logger.info("Decrypted wallet {}", wallet_id)
            return unlocked.clone()

    # =========================================================================
    # Addresses
    # =========================================================================

    def new_addresses(self, wallet_id: str, password: bytes, num: int) -> list[str]:
        """Derive and save ``num`` new addresses.

        Args:
            wallet_id: Wallet to extend.
            password: Required if and only if the wallet is encrypted.
            num: Number of addresses to add.

        Returns:
            Only the newly generated addresses.
        """
        with self._lock.write_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            if wallet.wallet_type != WalletType.DETERMINISTIC:
                raise WalletNotDeterministicError()

            addrs: list[str] = []

            def generate(wlt: Wallet) -> None:
                addrs.extend(generate_addresses(wlt, num))

            updated = self._apply_secrets(wallet, password, generate)
            self._commit(updated)

            logger.info("Added {} address(es) to wallet {}", len(addrs), wallet_id)
            return addrs

    def get_addresses(self, wallet_id: str) -> list[str]:
        """Return every address of a wallet."""
        with self._lock.read_lock():
            self._check_enabled()
            return self._get_wallet(wallet_id).addresses()

    # =========================================================================
    # Reads
    # =========================================================================

    def get_wallet(self, wallet_id: str) -> Wallet:
        """Return a copy of a wallet."""
        with self._lock.read_lock():
            self._check_enabled()
            return self._get_wallet(wallet_id)

    def get_wallets(self) -> dict[str, Wallet]:
        """Return copies of all loaded wallets keyed by id."""
        with self._lock.read_lock():
            self._check_enabled()
            return {wallet_id: w.clone() for wallet_id, w in self._wallets.items()}

    def get_wallet_seed(self, wallet_id: str, password: bytes) -> str:
        """Return the seed of an encrypted wallet.

        Raises:
            SeedAPIDisabledError: If the seed API is disabled.
            WalletNotEncryptedError: If the wallet is not encrypted.
            WalletNotDeterministicError: If the wallet has no seed.
            InvalidPasswordError: If the password is wrong.
        """
        with self._lock.read_lock():
            self._check_enabled()
            if not self._config.enable_seed_api:
                raise SeedAPIDisabledError()

            wallet = self._get_wallet(wallet_id)
            if not wallet.encrypted:
                raise WalletNotEncryptedError()
            if wallet.wallet_type != WalletType.DETERMINISTIC:
                raise WalletNotDeterministicError()

            seed = ""

            def read_seed(wlt: Wallet) -> None:
                nonlocal seed
                seed = wlt.seed

            guard_view(wallet, password, read_seed)
            return seed

    def view(self, wallet_id: str, fn: WalletCallback) -> None:
        """Run ``fn`` on a copy of a wallet with secrets removed."""
        with self._lock.read_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            wallet.erase_secrets()
            fn(wallet)

    def view_secrets(self, wallet_id: str, password: bytes, fn: WalletCallback) -> None:
        """Run ``fn`` on a copy of a wallet including its secrets.

        Encrypted wallets are decrypted for the callback only. Anything
        ``fn`` changes is discarded.

        Raises:
            WalletNotEncryptedError: If a password is given for an
                unencrypted wallet.
        """
        with self._lock.read_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            if wallet.encrypted:
                guard_view(wallet, password, fn)
                return
            if password:
                raise WalletNotEncryptedError()

            try:
                fn(wallet)
            finally:
                wallet.erase_secrets()

    # =========================================================================
    # Updates
    # =========================================================================

    def update_wallet_label(self, wallet_id: str, label: str) -> None:
        """Change a wallet's label."""
        with self._lock.write_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            wallet.label = label
            self._commit(wallet)

            logger.info("Updated label of wallet {}", wallet_id)

    def update(self, wallet_id: str, fn: WalletCallback) -> None:
        """Modify non-secret data of a wallet and save it.

        ``fn`` receives a copy with secrets removed. It may not change the
        address entries, the coin, the wallet type or the encryption state;
        use update_secrets for that.
        """
        with self._lock.write_lock():
            self._check_enabled()

            original = self._get_wallet(wallet_id)
            working = original.clone()
            working.erase_secrets()
            fn(working)

            if (
                working.filename != original.filename
                or working.coin != original.coin
                or working.wallet_type != original.wallet_type
                or _public_entries(working) != _public_entries(original)
                or working.encrypted != original.encrypted
                or working.secrets != original.secrets
                or working.crypto_type != original.crypto_type
            ):
                raise WalletError("update cannot change secret data, use update_secrets")

            working.seed = original.seed
            for entry, source in zip(working.entries, original.entries):
                entry.secret_key = source.secret_key

            self._commit(working)

    def update_secrets(self, wallet_id: str, password: bytes, fn: WalletCallback) -> None:
        """Modify secret data of a wallet and save it.

        Encrypted wallets are decrypted for ``fn`` and re-encrypted with the
        same password afterwards.
        """
        with self._lock.write_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            updated = self._apply_secrets(wallet, password, fn)
            if updated.filename != wallet_id:
                raise WalletError("update cannot rename a wallet")
            self._commit(updated)

    # =========================================================================
    # Recovery
    # =========================================================================

    def recover_wallet(self, wallet_id: str, seed: str, password: bytes = b"") -> Wallet:
        """Rebuild an encrypted wallet from its seed.

        The seed must reproduce the wallet's first address. The rebuilt wallet
        has the same number of entries, coin, crypto type, label and creation
        time, and is encrypted with ``password`` when one is given.

        Raises:
            WalletNotExistError: If the wallet is not loaded.
            WalletNotEncryptedError: If the wallet is not encrypted.
            WalletNotDeterministicError: If the wallet is not seed-derived.
            WalletRecoverSeedWrongError: If the seed does not match.
        """
        with self._lock.write_lock():
            self._check_enabled()

            wallet = self._get_wallet(wallet_id)
            if not wallet.encrypted:
                raise WalletNotEncryptedError()
            if wallet.wallet_type != WalletType.DETERMINISTIC:
                raise WalletNotDeterministicError()
            if not seed:
                raise MissingSeedError()

            # Compare to the wallet's first address
            if first_address(seed, wallet.coin) != wallet.first_address:
                raise WalletRecoverSeedWrongError()

            recovered = new_wallet(
                wallet_id,
                Options(
                    seed=seed,
                    label=wallet.label,
                    coin=wallet.coin,
                    encrypt=bool(password),
                    password=password or b"",
                    crypto_type=wallet.crypto_type,
                    generate_count=len(wallet.entries),
                ),
            )
            # Preserve the timestamp of the old wallet
            recovered.created_at = wallet.created_at

            self._commit(recovered)
            logger.info(
                "Recovered wallet {} ({} address(es), encrypted={})",
                wallet_id,
                len(recovered.entries),
                recovered.encrypted,
            )
            return recovered.clone()

    # =========================================================================
    # Internals (lock must be held)
    # =========================================================================

    def _check_enabled(self) -> None:
        if not self._config.enable_wallet_api:
            raise WalletAPIDisabledError()

    def _get_wallet(self, wallet_id: str) -> Wallet:
        """Return a clone of the wallet of the given id."""
        wallet = self._wallets.get(wallet_id)
        if wallet is None:
            raise WalletNotExistError(wallet_id)
        return wallet.clone()

    def _apply_secrets(self, wallet: Wallet, password: bytes, fn: WalletCallback) -> Wallet:
        """Run ``fn`` with access to secrets and return the resulting snapshot."""
        if wallet.encrypted:
            return guard_update(wallet, password, fn)
        if password:
            raise WalletNotEncryptedError()
        fn(wallet)
        return wallet

    def _commit(self, wallet: Wallet) -> None:
        """Save a snapshot, then install it in memory."""
        try:
            wallet = Wallet.model_validate(wallet.model_dump())
        except ValidationError as e:
            raise WalletError(f"invalid wallet state: {e}") from e
        if not wallet.entries:
            raise WalletError("wallet has no addresses")

        owner = self._first_addr_ids.get(wallet.entries[0].address)
        if owner is not None and owner != wallet.filename:
            raise SeedUsedError()

        self._store.save(wallet)
        self._install(wallet)

    def _install(self, wallet: Wallet) -> None:
        previous = self._wallets.get(wallet.filename)
        old_addr = previous.first_address if previous is not None else None
        if (
            old_addr is not None
            and old_addr != wallet.first_address
            and self._first_addr_ids.get(old_addr) == wallet.filename
        ):
            del self._first_addr_ids[old_addr]

        self._wallets[wallet.filename] = wallet
        addr = wallet.first_address
        if addr is not None:
            self._first_addr_ids[addr] = wallet.filename

    def _set_wallets(self, wallets: dict[str, Wallet]) -> None:
        self._wallets = wallets
        self._first_addr_ids = {}
        for wallet_id, wallet in wallets.items():
            addr = wallet.first_address
            if addr is not None:
                self._first_addr_ids[addr] = wallet_id

    def _generate_unique_filename(self) -> str:
        name = new_wallet_filename()
        while name in self._wallets or self._store.wallet_path(name).exists():
            name = new_wallet_filename()
        return name


def _normalize_filename(name: str) -> str:
    if Path(name).name != name or name in (".", ".."):
        raise InvalidOptionsError(f"invalid wallet name: {name!r}")
    if not name.endswith(WALLET_EXT):
        name = f"{name}{WALLET_EXT}"
    return name


def _public_entries(wallet: Wallet) -> list[dict]:
    """Entries of a wallet without their private keys."""
    return [e.model_dump(exclude={"secret_key"}) for e in wallet.entries]


def _check_duplicates(wallets: dict[str, Wallet]) -> None:
    """Abort if there are duplicate wallets on disk."""
    seen: dict[str, str] = {}
    for wallet_id in sorted(wallets):
        addr = wallets[wallet_id].first_address
        if addr is None:
            continue
        if addr in seen:
            raise DuplicateWalletError(wallet_id, addr)
        seen[addr] = wallet_id


def _check_empty(wallets: dict[str, Wallet]) -> None:
    """Abort if there are empty wallets on disk."""
    for wallet_id in sorted(wallets):
        if not wallets[wallet_id].entries:
            raise EmptyWalletError(wallet_id)
