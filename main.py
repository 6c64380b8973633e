"""Main entry point for the wallet registry command-line tool."""

import argparse
import getpass
import sys
from pathlib import Path

from loguru import logger

from wallet_registry.config import LoggingConfig, WalletConfig, get_settings
from wallet_registry.exceptions import WalletError
from wallet_registry.models import CoinType, Options, Wallet
from wallet_registry.wallet import WalletService, generate_seed


def setup_logging(config: LoggingConfig) -> None:
    """Configure loguru logging."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=config.level,
    )
    config.log_dir.mkdir(parents=True, exist_ok=True)
    logger.add(
        config.log_dir / "wallet_{time}.log",
        rotation="100 MB",
        retention="7 days",
        level="DEBUG",
    )


def read_password(prompt: str = "Password: ", confirm: bool = False) -> bytes:
    """Read a password from the terminal without echo."""
    password = getpass.getpass(prompt)
    if confirm and getpass.getpass("Confirm password: ") != password:
        raise WalletError("passwords do not match")
    return password.encode("utf-8")


def describe(wallet: Wallet) -> str:
    state = "encrypted" if wallet.encrypted else "unencrypted"
    label = f" '{wallet.label}'" if wallet.label else ""
    return (
        f"{wallet.id}{label} [{wallet.wallet_type.value}, {wallet.coin.value}, {state}] "
        f"{len(wallet.entries)} address(es), first {wallet.first_address}"
    )


def run(args: argparse.Namespace, config: WalletConfig) -> None:
    """Execute one command against the wallet service."""
    service = WalletService(config)

    if args.command == "list":
        wallets = service.get_wallets()
        if not wallets:
            print("No wallets loaded")
        for wallet_id in sorted(wallets):
            print(describe(wallets[wallet_id]))

    elif args.command == "create":
        seed = args.seed
        if not seed:
            seed = generate_seed(args.words)
            print(f"Generated seed (write it down, it is shown only once):\n  {seed}")
        password = read_password(confirm=True) if args.encrypt else b""
        wallet = service.create_wallet(
            args.name,
            Options(
                seed=seed,
                label=args.label,
                coin=CoinType(args.coin),
                generate_count=args.count,
                encrypt=args.encrypt,
                password=password,
            ),
        )
        print(describe(wallet))

    elif args.command == "addresses":
        for addr in service.get_addresses(args.wallet):
            print(addr)

    elif args.command == "new-address":
        wallet = service.get_wallet(args.wallet)
        password = read_password() if wallet.encrypted else b""
        for addr in service.new_addresses(args.wallet, password, args.count):
            print(addr)

    elif args.command == "encrypt":
        wallet = service.encrypt_wallet(args.wallet, read_password(confirm=True))
        print(describe(wallet))

    elif args.command == "decrypt":
        wallet = service.decrypt_wallet(args.wallet, read_password())
        print(describe(wallet))

    elif args.command == "label":
        service.update_wallet_label(args.wallet, args.label)
        print(describe(service.get_wallet(args.wallet)))

    elif args.command == "seed":
        print(service.get_wallet_seed(args.wallet, read_password()))

    elif args.command == "recover":
        seed = getpass.getpass("Seed: ")
        password = read_password("New password (empty to store unencrypted): ", confirm=True)
        wallet = service.recover_wallet(args.wallet, seed, password)
        print(describe(wallet))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Wallet Registry - encrypted wallet management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--wallet-dir",
        help="Wallet directory (default: WALLET_WALLET_DIR or data/wallets)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List loaded wallets")

    create = sub.add_parser("create", help="Create a wallet from a seed")
    create.add_argument("--name", default="", help="Wallet filename (generated if omitted)")
    create.add_argument("--seed", default="", help="Seed (a new BIP-39 phrase if omitted)")
    create.add_argument("--words", type=int, choices=(12, 24), default=12)
    create.add_argument("--label", default="")
    create.add_argument("--coin", choices=[c.value for c in CoinType], default=CoinType.ETHEREUM.value)
    create.add_argument("--count", type=int, default=1, help="Addresses to derive")
    create.add_argument("--encrypt", action="store_true", help="Encrypt with a password")

    for name, help_text in (
        ("addresses", "Show a wallet's addresses"),
        ("encrypt", "Encrypt a wallet"),
        ("decrypt", "Decrypt a wallet"),
        ("seed", "Reveal an encrypted wallet's seed"),
        ("recover", "Rebuild an encrypted wallet from its seed"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("wallet", help="Wallet id")

    new_address = sub.add_parser("new-address", help="Derive new addresses")
    new_address.add_argument("wallet", help="Wallet id")
    new_address.add_argument("--count", type=int, default=1)

    label = sub.add_parser("label", help="Set a wallet's label")
    label.add_argument("wallet", help="Wallet id")
    label.add_argument("label")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the command-line tool."""
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings.logging)

    config = settings.wallet
    if args.wallet_dir:
        config = config.model_copy(update={"wallet_dir": Path(args.wallet_dir)})

    try:
        run(args, config)
    except WalletError as e:
        logger.error("{}", e)
        return 1
    except OSError as e:
        logger.error("Filesystem error: {}", e)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
