"""Common traders — wallets that currently hold several of the given tokens.

Holder lists are owner-resolved by the providers, so a wallet that holds a
token through several token accounts is matched once per token (the
largest balance wins).
"""

import asyncio
from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from config.settings import Settings, settings as default_settings
from src.chains.registry import ProviderRegistry
from src.exceptions import TokenCountError
from src.models.chain import normalize_address, parse_chain, validate_address
from src.models.token import HolderEntry, TokenSpec
from src.models.trade import (
    CommonTrader,
    CommonTraderHolding,
    CommonTradersReport,
    TokenMeta,
)
from src.parsers.cache import CACHE_TTL, StalenessCache

ZERO = Decimal("0")


@dataclass
class HolderSet:
    """Current holders of one token, with what is needed to value them."""

    token: TokenSpec
    symbol: str
    price_usd: Decimal | None
    holders: list[HolderEntry]


def intersect_holders(
    holder_sets: list[HolderSet],
    *,
    min_tokens: int = 2,
    max_results: int = 100,
) -> list[CommonTrader]:
    by_owner: dict[str, dict[str, tuple[HolderSet, HolderEntry]]] = {}

    for hs in holder_sets:
        for holder in hs.holders:
            owner = normalize_address(hs.token.chain, holder.owner_address)
            tokens = by_owner.setdefault(owner, {})
            existing = tokens.get(hs.token.key)
            if existing is None or holder.balance > existing[1].balance:
                tokens[hs.token.key] = (hs, holder)

    traders = []
    for entries in by_owner.values():
        if len(entries) < min_tokens:
            continue

        holdings = []
        for hs, holder in entries.values():
            balance_usd = holder.balance * hs.price_usd if hs.price_usd is not None else ZERO
            holdings.append(
                CommonTraderHolding(
                    token_address=hs.token.address,
                    chain=hs.token.chain,
                    symbol=hs.symbol,
                    balance=holder.balance,
                    balance_usd=balance_usd,
                    percentage=holder.percentage,
                )
            )

        first_holder = next(iter(entries.values()))[1]
        traders.append(
            CommonTrader(
                wallet_address=first_holder.owner_address,
                holdings=holdings,
                total_value_usd=sum((h.balance_usd for h in holdings), ZERO),
                token_count=len(entries),
            )
        )

    traders.sort(key=lambda t: (t.token_count, t.total_value_usd), reverse=True)
    return traders[:max_results]


async def load_holder_set(
    registry: ProviderRegistry,
    cache: StalenessCache,
    token: TokenSpec,
    *,
    holder_limit: int = 50,
) -> HolderSet:
    cache_key = f"common-holders:{token.key}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    provider = registry.get(token.chain)
    holders, pair, metadata = await asyncio.gather(
        provider.get_top_holders(token.address, holder_limit),
        provider.get_pair_data(token.address),
        provider.get_token_metadata(token.address),
    )
    symbol = (metadata.symbol if metadata and metadata.symbol != "???" else None) or (
        pair.symbol if pair else None
    )
    holder_set = HolderSet(
        token=token,
        symbol=symbol or "???",
        price_usd=pair.price_usd if pair else None,
        holders=holders,
    )
    cache.set(cache_key, holder_set, CACHE_TTL["holders"])
    return holder_set


def validate_tokens(
    tokens: list[TokenSpec],
    registry: ProviderRegistry,
    *,
    min_tokens: int = 2,
    max_tokens: int = 10,
) -> list[TokenSpec]:
    """Normalize and dedupe the request. Raises before any upstream call."""
    distinct: dict[str, TokenSpec] = {}
    for token in tokens:
        chain = parse_chain(token.chain)
        registry.get(chain)
        spec = TokenSpec(chain=chain, address=validate_address(chain, token.address))
        distinct.setdefault(spec.key, spec)

    if not min_tokens <= len(distinct) <= max_tokens:
        raise TokenCountError(f"Provide {min_tokens}-{max_tokens} distinct tokens, got {len(distinct)}")
    return list(distinct.values())


async def compute_common_traders(
    registry: ProviderRegistry,
    cache: StalenessCache,
    tokens: list[TokenSpec],
    *,
    holder_limit: int | None = None,
    max_results: int | None = None,
    settings: Settings = default_settings,
) -> CommonTradersReport:
    specs = validate_tokens(
        tokens,
        registry,
        min_tokens=settings.common_traders_min_tokens,
        max_tokens=settings.common_traders_max_tokens,
    )
    holder_limit = holder_limit or settings.common_traders_holder_limit
    max_results = max_results or settings.common_traders_max_results

    holder_sets = await asyncio.gather(
        *(load_holder_set(registry, cache, spec, holder_limit=holder_limit) for spec in specs)
    )
    for hs in holder_sets:
        if not hs.holders:
            logger.warning(f"[COMMON] No holders for {hs.token.key}, it cannot match anyone")

    traders = intersect_holders(list(holder_sets), min_tokens=2, max_results=max_results)
    logger.info(
        f"[COMMON] {len(specs)} tokens, "
        f"{sum(len(hs.holders) for hs in holder_sets)} holders → {len(traders)} common traders"
    )

    return CommonTradersReport(
        traders=traders,
        tokens_meta=[
            TokenMeta(address=hs.token.address, chain=hs.token.chain, symbol=hs.symbol, price_usd=hs.price_usd)
            for hs in holder_sets
        ],
    )
