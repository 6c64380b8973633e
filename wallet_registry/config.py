"""Configuration architecture using pydantic-settings for typed environment loading."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from wallet_registry.models import CryptoType


class WalletConfig(BaseSettings):
    """Wallet service configuration."""

    model_config = SettingsConfigDict(
        env_prefix="WALLET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    wallet_dir: Path = Path("data/wallets")
    crypto_type: CryptoType = CryptoType.SCRYPT_CHACHA20POLY1305
    enable_wallet_api: bool = False
    enable_seed_api: bool = False


class LoggingConfig(BaseSettings):
    """Logging configuration for the command-line entry point."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = "INFO"
    log_dir: Path = Path("logs")


class Settings:
    """Root settings aggregating all configuration sections."""

    def __init__(self) -> None:
        self.wallet = WalletConfig()
        self.logging = LoggingConfig()


# Global settings instance - lazily loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
