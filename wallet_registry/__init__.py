"""Wallet registry: encrypted, durably persisted wallets behind one lock."""
