"""Trader intelligence from the command line — prints JSON reports.

Usage:
    python scripts/intel.py top-traders solana <TOKEN>
    python scripts/intel.py common-traders solana:<TOKEN_A> base:<TOKEN_B>
    python scripts/intel.py trade-history solana <WALLET> <TOKEN> [<TOKEN> ...]
    python scripts/intel.py wallet base <WALLET>
"""

import argparse
import asyncio
import dataclasses
import json
import sys
from decimal import Decimal
from enum import Enum
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from loguru import logger  # noqa: E402
from pydantic import BaseModel  # noqa: E402

from config.settings import settings  # noqa: E402
from src.chains.registry import build_default_registry  # noqa: E402
from src.exceptions import InputValidationError  # noqa: E402
from src.models.chain import parse_chain  # noqa: E402
from src.models.token import TokenSpec, TrackedToken  # noqa: E402
from src.parsers.cache import StalenessCache  # noqa: E402
from src.parsers.common_traders import compute_common_traders  # noqa: E402
from src.parsers.rate_limiter import RateLimitGateway  # noqa: E402
from src.parsers.trade_history import fetch_trade_histories  # noqa: E402
from src.parsers.trader_pnl import fetch_top_traders  # noqa: E402
from src.parsers.wallet_profile import build_wallet_profile  # noqa: E402
from src.utils.logger import setup_logger  # noqa: E402


def _to_json(value: object) -> object:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _dump(report: object) -> str:
    data = dataclasses.asdict(report) if dataclasses.is_dataclass(report) else report
    return json.dumps(data, default=_to_json, indent=2)


def _token_arg(value: str) -> TokenSpec:
    chain, sep, address = value.partition(":")
    if not sep:
        raise InputValidationError(f"Expected CHAIN:ADDRESS, got {value!r}")
    return TokenSpec(chain=parse_chain(chain), address=address)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="On-chain trader intelligence")
    parser.add_argument("--log-level", default="WARNING")
    sub = parser.add_subparsers(dest="command", required=True)

    top = sub.add_parser("top-traders", help="PnL of a token's top holders")
    top.add_argument("chain")
    top.add_argument("address")

    common = sub.add_parser("common-traders", help="Wallets holding several tokens")
    common.add_argument("tokens", nargs="+", metavar="CHAIN:ADDRESS")

    history = sub.add_parser("trade-history", help="Buy/sell tranches of a wallet")
    history.add_argument("chain")
    history.add_argument("wallet")
    history.add_argument("tokens", nargs="+")

    wallet = sub.add_parser("wallet", help="Wallet balance and deployer reputation")
    wallet.add_argument("chain")
    wallet.add_argument("address")

    return parser


async def run(args: argparse.Namespace) -> object:
    gateway = RateLimitGateway(settings.rate_limits())
    registry = build_default_registry(settings, gateway)
    cache = StalenessCache(settings.cache_max_size)
    try:
        if args.command == "top-traders":
            token = TokenSpec(chain=parse_chain(args.chain), address=args.address)
            return await fetch_top_traders(registry, cache, token, settings=settings)
        if args.command == "common-traders":
            tokens = [_token_arg(t) for t in args.tokens]
            return await compute_common_traders(registry, cache, tokens, settings=settings)
        if args.command == "trade-history":
            chain = parse_chain(args.chain)
            tracked = [TrackedToken(chain=chain, address=t) for t in args.tokens]
            return await fetch_trade_histories(registry, cache, args.wallet, tracked, settings)
        return await build_wallet_profile(registry, cache, args.chain, args.address)
    finally:
        await registry.close()


def main() -> None:
    args = build_parser().parse_args()
    setup_logger(level=args.log_level, log_file=False)
    try:
        report = asyncio.run(run(args))
    except InputValidationError as e:
        logger.error(f"[CLI] {e}")
        print(f"error: {e}", file=sys.stderr)
        sys.exit(2)
    print(_dump(report))


if __name__ == "__main__":
    main()
