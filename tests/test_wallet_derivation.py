"""Tests for deterministic key derivation."""

import pytest
from eth_account import Account

from wallet_registry.models import CoinType
from wallet_registry.wallet.derivation import (
    derive_keys,
    first_address,
    generate_seed,
    key_pair_from_hex,
)

# Well-known development mnemonic and its first two accounts
DEV_SEED = "test test test test test test test test test test test junk"
DEV_ADDRESS_0 = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
DEV_ADDRESS_1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
DEV_KEY_0 = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"


class TestDeriveKeys:
    """Tests for derive_keys."""

    def test_known_vectors(self) -> None:
        """BIP-44 Ethereum derivation matches the standard accounts."""
        pairs = derive_keys(DEV_SEED, CoinType.ETHEREUM, 0, 2)

        assert [p.address for p in pairs] == [DEV_ADDRESS_0, DEV_ADDRESS_1]
        assert pairs[0].secret_key == DEV_KEY_0

    def test_start_offset(self) -> None:
        """Deriving from an offset continues the same sequence."""
        assert derive_keys(DEV_SEED, CoinType.ETHEREUM, 1, 1)[0].address == DEV_ADDRESS_1

    def test_deterministic(self) -> None:
        first = derive_keys("any seed", CoinType.ETHEREUM, 0, 3)
        second = derive_keys("any seed", CoinType.ETHEREUM, 0, 3)
        assert first == second

    def test_coin_changes_path(self) -> None:
        eth = first_address(DEV_SEED, CoinType.ETHEREUM)
        etc = first_address(DEV_SEED, CoinType.ETHEREUM_CLASSIC)
        assert eth == DEV_ADDRESS_0
        assert etc != eth

    def test_public_key_matches_address(self) -> None:
        pair = derive_keys("S1", CoinType.ETHEREUM, 0, 1)[0]
        assert Account.from_key(pair.secret_key).address == pair.address
        assert pair.public_key.startswith("0x")
        assert len(pair.public_key) == 2 + 128

    def test_empty_seed(self) -> None:
        with pytest.raises(ValueError, match="seed"):
            derive_keys("", CoinType.ETHEREUM, 0, 1)

    def test_zero_count(self) -> None:
        assert derive_keys("S1", CoinType.ETHEREUM, 0, 0) == []


class TestKeyPairFromHex:
    """Tests for importing private keys."""

    def test_with_and_without_prefix(self) -> None:
        assert key_pair_from_hex(DEV_KEY_0).address == DEV_ADDRESS_0
        assert key_pair_from_hex(DEV_KEY_0[2:]).address == DEV_ADDRESS_0

    def test_to_entry(self) -> None:
        entry = key_pair_from_hex(DEV_KEY_0).to_entry()
        assert entry.address == DEV_ADDRESS_0
        assert entry.secret_key == DEV_KEY_0
        assert entry.child_number is None

    @pytest.mark.parametrize("key", ["0x1234", "zz" * 32, ""])
    def test_invalid(self, key: str) -> None:
        with pytest.raises(ValueError):
            key_pair_from_hex(key)


class TestGenerateSeed:
    """Tests for generate_seed."""

    @pytest.mark.parametrize("words", [12, 24])
    def test_word_count(self, words: int) -> None:
        assert len(generate_seed(words).split()) == words

    def test_unique(self) -> None:
        assert generate_seed() != generate_seed()

    def test_invalid_word_count(self) -> None:
        with pytest.raises(ValueError):
            generate_seed(15)
