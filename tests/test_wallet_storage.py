"""Tests for wallet file storage."""

import json
import os
import re
from pathlib import Path
from unittest.mock import patch

import pytest

from wallet_registry.exceptions import WalletLoadError
from wallet_registry.models import Options, Wallet
from wallet_registry.wallet import WalletStore, new_wallet, new_wallet_filename


@pytest.fixture
def wallet_dir(tmp_path: Path) -> Path:
    """Create a temporary wallet directory for tests."""
    return tmp_path / "wallets"


@pytest.fixture
def store(wallet_dir: Path) -> WalletStore:
    store = WalletStore(wallet_dir)
    store.ensure_dir()
    return store


@pytest.fixture
def wallet() -> Wallet:
    return new_wallet("w.wlt", Options(seed="S1", label="L", generate_count=2))


def unlink_failing_for_backups():
    """Path.unlink replacement that refuses to delete backup files."""
    original_unlink = Path.unlink

    def unlink(self: Path, missing_ok: bool = False) -> None:
        if self.name.endswith(".wlt.bak"):
            raise PermissionError(f"cannot remove {self.name}")
        original_unlink(self, missing_ok=missing_ok)

    return unlink


class TestFilenames:
    """Tests for generated wallet names."""

    def test_format(self) -> None:
        assert re.fullmatch(r"\d{4}_\d{2}_\d{2}_[0-9a-f]{4}\.wlt", new_wallet_filename())


class TestEnsureDir:
    """Tests for WalletStore.ensure_dir."""

    def test_creates_directory(self, wallet_dir: Path) -> None:
        assert not wallet_dir.exists()
        WalletStore(wallet_dir).ensure_dir()
        assert wallet_dir.is_dir()

    def test_existing_directory(self, store: WalletStore, wallet_dir: Path) -> None:
        (wallet_dir / "keep.txt").write_text("x")
        store.ensure_dir()
        assert (wallet_dir / "keep.txt").exists()


class TestSave:
    """Tests for WalletStore.save."""

    def test_writes_json(self, store: WalletStore, wallet_dir: Path, wallet: Wallet) -> None:
        store.save(wallet)

        with open(wallet_dir / "w.wlt") as f:
            data = json.load(f)
        assert data["filename"] == "w.wlt"
        assert data["label"] == "L"
        assert len(data["entries"]) == 2

    def test_leaves_no_temp_or_backup(
        self, store: WalletStore, wallet_dir: Path, wallet: Wallet
    ) -> None:
        store.save(wallet)
        wallet.label = "second"
        store.save(wallet)

        assert sorted(p.name for p in wallet_dir.iterdir()) == ["w.wlt"]

    @pytest.mark.skipif(os.name != "posix", reason="Unix permissions only")
    def test_owner_only_permissions(
        self, store: WalletStore, wallet_dir: Path, wallet: Wallet
    ) -> None:
        store.save(wallet)
        assert (wallet_dir / "w.wlt").stat().st_mode & 0o777 == 0o600

    def test_failed_write_keeps_previous_file(
        self, store: WalletStore, wallet_dir: Path, wallet: Wallet
    ) -> None:
        """A failure mid-save leaves the old file and no temp file."""
        store.save(wallet)
        wallet.label = "changed"

        with patch("wallet_registry.wallet.storage.os.fsync", side_effect=OSError("io error")):
            with pytest.raises(OSError, match="io error"):
                store.save(wallet)

        assert store.load("w.wlt").label == "L"
        assert not (wallet_dir / "w.wlt.tmp").exists()

    def test_backup_removal_failure_is_not_an_error(
        self, store: WalletStore, wallet_dir: Path, wallet: Wallet
    ) -> None:
        """Once the new file is in place, a stuck backup does not fail the save."""
        store.save(wallet)
        wallet.label = "changed"

        with patch.object(Path, "unlink", unlink_failing_for_backups()):
            store.save(wallet)

        assert store.load("w.wlt").label == "changed"
        assert (wallet_dir / "w.wlt.bak").exists()
        assert store.remove_backup_files() == 1

    def test_missing_directory(self, tmp_path: Path, wallet: Wallet) -> None:
        with pytest.raises(OSError):
            WalletStore(tmp_path / "missing").save(wallet)


class TestLoad:
    """Tests for WalletStore.load and load_all."""

    def test_round_trip(self, store: WalletStore, wallet: Wallet) -> None:
        store.save(wallet)
        assert store.load("w.wlt") == wallet

    def test_filename_from_path(self, store: WalletStore, wallet_dir: Path, wallet: Wallet) -> None:
        """A renamed file loads under its new name."""
        store.save(wallet)
        (wallet_dir / "w.wlt").rename(wallet_dir / "renamed.wlt")

        assert store.load("renamed.wlt").id == "renamed.wlt"

    def test_missing_file(self, store: WalletStore) -> None:
        with pytest.raises(WalletLoadError) as exc_info:
            store.load("nope.wlt")
        assert exc_info.value.wallet_id == "nope.wlt"

    def test_invalid_json(self, store: WalletStore, wallet_dir: Path) -> None:
        (wallet_dir / "bad.wlt").write_text("{not json")
        with pytest.raises(WalletLoadError, match="invalid wallet file"):
            store.load("bad.wlt")

    def test_inconsistent_secrets(self, store: WalletStore, wallet_dir: Path) -> None:
        """An encrypted wallet without an envelope is rejected."""
        data = {"filename": "x.wlt", "encrypted": True, "crypto_type": "scrypt-chacha20poly1305"}
        (wallet_dir / "x.wlt").write_text(json.dumps(data))
        with pytest.raises(WalletLoadError):
            store.load("x.wlt")

    def test_load_all_only_wallet_files(
        self, store: WalletStore, wallet_dir: Path, wallet: Wallet
    ) -> None:
        store.save(wallet)
        store.save(new_wallet("other.wlt", Options(seed="S2")))
        (wallet_dir / "notes.txt").write_text("ignored")
        (wallet_dir / "old.wlt.bak").write_text("ignored")

        assert sorted(store.load_all()) == ["other.wlt", "w.wlt"]


class TestRemoveBackupFiles:
    """Tests for WalletStore.remove_backup_files."""

    def test_removes_only_backups(self, store: WalletStore, wallet_dir: Path, wallet: Wallet) -> None:
        store.save(wallet)
        (wallet_dir / "a.wlt.bak").write_text("x")
        (wallet_dir / "b.wlt.bak").write_text("x")

        assert store.remove_backup_files() == 2
        assert sorted(p.name for p in wallet_dir.iterdir()) == ["w.wlt"]

    def test_removes_leftover_temp_files(
        self, store: WalletStore, wallet_dir: Path, wallet: Wallet
    ) -> None:
        """A temp file left by a crash before the rename is removed."""
        store.save(wallet)
        (wallet_dir / "w.wlt.tmp").write_text(wallet.model_dump_json())
        (wallet_dir / "x.wlt.bak").write_text("x")

        assert store.remove_backup_files() == 2
        assert sorted(p.name for p in wallet_dir.iterdir()) == ["w.wlt"]

    def test_nothing_to_remove(self, store: WalletStore) -> None:
        assert store.remove_backup_files() == 0
