"""Wallet file storage.

Each wallet lives in its own ``<id>`` file (``*.wlt``) holding the JSON form
of the Wallet model. Saves are atomic: the previous file is backed up to
``*.wlt.bak``, the new content is written to a temp file, flushed and
renamed over the original, then the backup is removed. Backup and temp
files that survive a crash are discarded on the next startup.
"""

import os
import secrets
import shutil
from datetime import datetime
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from wallet_registry.exceptions import WalletLoadError
from wallet_registry.models import Wallet

WALLET_EXT = ".wlt"
BACKUP_EXT = ".wlt.bak"
TEMP_EXT = ".wlt.tmp"

# Secure permissions (Unix only)
SECURE_DIR_MODE = 0o700
SECURE_FILE_MODE = 0o600


def new_wallet_filename() -> str:
    """Generate a wallet filename like ``2026_10_17_a1f3.wlt``."""
    return f"{datetime.now().strftime('%Y_%m_%d')}_{secrets.token_hex(2)}{WALLET_EXT}"


def set_secure_permissions(filepath: Path) -> None:
    """
    Set restrictive file permissions on Unix systems.

    No-op on Windows (NTFS uses ACLs, not Unix permissions).
    """
    if os.name == "posix":
        try:
            os.chmod(filepath, SECURE_FILE_MODE)
        except OSError as e:
            logger.warning("Failed to restrict permissions on {}: {}", filepath, e)


class WalletStore:
    """Durable save/load of wallets in a single directory.

    Usage:
        store = WalletStore(Path("data/wallets"))
        store.ensure_dir()
        store.remove_backup_files()
        wallets = store.load_all()
        store.save(wallet)
    """

    def __init__(self, wallet_dir: Path) -> None:
        """Initialize the store.

        Args:
            wallet_dir: Directory holding the wallet files.
        """
        self._wallet_dir = Path(wallet_dir)

    @property
    def wallet_dir(self) -> Path:
        """Get the wallet storage directory."""
        return self._wallet_dir

    def wallet_path(self, wallet_id: str) -> Path:
        return self._wallet_dir / wallet_id

    def ensure_dir(self) -> None:
        """Create the wallet directory with owner-only permissions if missing."""
        if not self._wallet_dir.exists():
            self._wallet_dir.mkdir(parents=True, mode=SECURE_DIR_MODE)
            logger.info("Created wallet directory: {}", self._wallet_dir)

    def remove_backup_files(self) -> int:
        """Delete ``*.wlt.bak`` and ``*.wlt.tmp`` files left by an interrupted save.

        Temp files may hold plaintext secrets with default permissions, so
        they are removed along with the backups.

        Returns:
            Number of files removed.
        """
        removed = 0
        for ext in (BACKUP_EXT, TEMP_EXT):
            for stale in self._wallet_dir.glob(f"*{ext}"):
                stale.unlink()
                removed += 1
                logger.debug("Removed stale wallet file: {}", stale.name)
        return removed

    def save(self, wallet: Wallet) -> None:
        """Atomically write a wallet to ``<wallet_dir>/<wallet.filename>``.

        Raises:
            OSError: If any step up to the final rename fails. The previous
                file, if any, is left in place. Once the new file is in
                place the save counts as done; a backup that cannot be
                removed is left for the next startup.
        """
        path = self.wallet_path(wallet.filename)
        backup_path = path.with_name(path.name.removesuffix(WALLET_EXT) + BACKUP_EXT)
        temp_path = path.with_name(path.name.removesuffix(WALLET_EXT) + TEMP_EXT)

        if path.exists():
            shutil.copy2(path, backup_path)

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(wallet.model_dump_json(indent=2))
                f.flush()
                os.fsync(f.fileno())
            set_secure_permissions(temp_path)
            temp_path.replace(path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

        try:
            backup_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove wallet backup {}: {}", backup_path, e)
        logger.debug("Saved wallet file: {}", path)

    def load(self, wallet_id: str) -> Wallet:
        """Load a single wallet file.

        Raises:
            WalletLoadError: If the file cannot be read or is not a valid wallet.
        """
        path = self.wallet_path(wallet_id)
        try:
            with open(path, encoding="utf-8") as f:
                wallet = Wallet.model_validate_json(f.read())
        except OSError as e:
            raise WalletLoadError(f"failed to read wallet file {path}: {e}", wallet_id) from e
        except ValidationError as e:
            raise WalletLoadError(f"invalid wallet file {path}: {e}", wallet_id) from e

        # The file name on disk is authoritative
        wallet.filename = path.name
        return wallet

    def load_all(self) -> dict[str, Wallet]:
        """Load every ``*.wlt`` file in the directory.

        Returns:
            Mapping of wallet id to wallet.

        Raises:
            WalletLoadError: If any wallet file is unreadable or invalid.
        """
        wallets: dict[str, Wallet] = {}
        for path in sorted(self._wallet_dir.glob(f"*{WALLET_EXT}")):
            if not path.is_file():
                continue
            wallets[path.name] = self.load(path.name)
        logger.debug("Loaded {} wallet file(s) from {}", len(wallets), self._wallet_dir)
        return wallets
