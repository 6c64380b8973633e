"""Tests for locking, unlocking and guarded access."""

import pytest

from wallet_registry.exceptions import (
    InvalidPasswordError,
    MissingPasswordError,
    WalletEncryptedError,
    WalletError,
    WalletNotEncryptedError,
)
from wallet_registry.models import AddressEntry, CryptoType, Options, Wallet
from wallet_registry.wallet import guard_update, guard_view, lock_wallet, new_wallet, unlock_wallet

PASSWORD = b"s3cret"


@pytest.fixture
def plain_wallet() -> Wallet:
    """Unencrypted deterministic wallet with two addresses."""
    return new_wallet("w.wlt", Options(seed="S1", label="L", generate_count=2))


@pytest.fixture
def locked_wallet(plain_wallet: Wallet) -> Wallet:
    return lock_wallet(plain_wallet, PASSWORD, CryptoType.SCRYPT_CHACHA20POLY1305)


class TestLockWallet:
    """Tests for lock_wallet."""

    def test_returns_encrypted_copy(self, plain_wallet: Wallet) -> None:
        """Locking leaves the input untouched and erases the copy's secrets."""
        locked = lock_wallet(plain_wallet, PASSWORD, CryptoType.SCRYPT_CHACHA20POLY1305)

        assert locked.encrypted
        assert locked.crypto_type == CryptoType.SCRYPT_CHACHA20POLY1305
        assert locked.secrets
        assert locked.seed == ""
        assert all(e.secret_key == "" for e in locked.entries)
        assert locked.addresses() == plain_wallet.addresses()

        assert not plain_wallet.encrypted
        assert plain_wallet.seed == "S1"
        assert all(e.secret_key for e in plain_wallet.entries)

    def test_empty_password(self, plain_wallet: Wallet) -> None:
        with pytest.raises(MissingPasswordError):
            lock_wallet(plain_wallet, b"", CryptoType.SCRYPT_CHACHA20POLY1305)

    def test_already_encrypted(self, locked_wallet: Wallet) -> None:
        with pytest.raises(WalletEncryptedError):
            lock_wallet(locked_wallet, PASSWORD, CryptoType.SCRYPT_CHACHA20POLY1305)


class TestUnlockWallet:
    """Tests for unlock_wallet."""

    def test_round_trip(self, plain_wallet: Wallet, locked_wallet: Wallet) -> None:
        unlocked = unlock_wallet(locked_wallet, PASSWORD)

        assert not unlocked.encrypted
        assert unlocked.secrets == ""
        assert unlocked.seed == plain_wallet.seed
        assert unlocked.entries == plain_wallet.entries
        assert locked_wallet.encrypted

    def test_wrong_password(self, locked_wallet: Wallet) -> None:
        with pytest.raises(InvalidPasswordError):
            unlock_wallet(locked_wallet, b"wrong")

    def test_empty_password(self, locked_wallet: Wallet) -> None:
        with pytest.raises(MissingPasswordError):
            unlock_wallet(locked_wallet, b"")

    def test_not_encrypted(self, plain_wallet: Wallet) -> None:
        with pytest.raises(WalletNotEncryptedError):
            unlock_wallet(plain_wallet, PASSWORD)

    def test_missing_key_in_envelope(self, locked_wallet: Wallet) -> None:
        """An entry without a sealed private key is an error."""
        locked_wallet.entries.append(
            AddressEntry(address="0xdeadbeef", public_key="0x00", child_number=9)
        )
        with pytest.raises(WalletError, match="0xdeadbeef"):
            unlock_wallet(locked_wallet, PASSWORD)


class TestGuardView:
    """Tests for guard_view."""

    def test_callback_sees_secrets(self, locked_wallet: Wallet) -> None:
        seen: list[str] = []
        guard_view(locked_wallet, PASSWORD, lambda w: seen.append(w.seed))
        assert seen == ["S1"]
        assert locked_wallet.seed == ""

    def test_erases_on_exception(self, locked_wallet: Wallet) -> None:
        captured: list[Wallet] = []

        def boom(wallet: Wallet) -> None:
            captured.append(wallet)
            raise ValueError("boom")

        with pytest.raises(ValueError):
            guard_view(locked_wallet, PASSWORD, boom)

        assert captured[0].seed == ""
        assert all(e.secret_key == "" for e in captured[0].entries)

    def test_wrong_password_skips_callback(self, locked_wallet: Wallet) -> None:
        called: list[bool] = []
        with pytest.raises(InvalidPasswordError):
            guard_view(locked_wallet, b"wrong", lambda w: called.append(True))
        assert called == []


class TestGuardUpdate:
    """Tests for guard_update."""

    def test_returns_relocked_snapshot(self, locked_wallet: Wallet) -> None:
        def relabel(wallet: Wallet) -> None:
            wallet.label = "new"

        updated = guard_update(locked_wallet, PASSWORD, relabel)

        assert updated.encrypted
        assert updated.label == "new"
        assert updated.crypto_type == locked_wallet.crypto_type
        assert updated.seed == ""
        assert locked_wallet.label == "L"
        assert unlock_wallet(updated, PASSWORD).seed == "S1"

    def test_callback_failure_leaves_wallet(self, locked_wallet: Wallet) -> None:
        before = locked_wallet.clone()

        def boom(wallet: Wallet) -> None:
            wallet.label = "partial"
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            guard_update(locked_wallet, PASSWORD, boom)

        assert locked_wallet == before

    def test_not_encrypted(self, plain_wallet: Wallet) -> None:
        with pytest.raises(WalletError):
            guard_update(plain_wallet, PASSWORD, lambda w: None)
