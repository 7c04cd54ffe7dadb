"""Trader PnL and tiering for a token's current holders.

Historical prices are not available per tranche, so every USD figure uses
the token's *current* price and market cap as a proxy. The token-unit
numbers are exact; the USD ones are indicative only.
"""

import asyncio
from decimal import Decimal

from loguru import logger

from config.settings import Settings, settings as default_settings
from src.chains.base import ChainProvider
from src.chains.registry import ProviderRegistry
from src.models.chain import parse_chain, stablecoin_symbol, validate_address
from src.models.token import HolderEntry, TokenSpec
from src.models.trade import (
    PriceContext,
    StablecoinBalance,
    TokenTradeHistory,
    TopTrader,
    TopTradersReport,
    TraderPnL,
    TraderTier,
)
from src.models.wallet import TxQueryOptions, WalletBalance
from src.parsers.cache import CACHE_TTL, StalenessCache
from src.parsers.trade_history import load_wallet_transfers, reconstruct_trade_history
from src.utils.batching import run_in_batches

ZERO = Decimal("0")

# Lower bound of |PnL USD| per tier, highest first
TIER_THRESHOLDS: list[tuple[Decimal, TraderTier]] = [
    (Decimal("50000"), TraderTier.WHALE),
    (Decimal("10000"), TraderTier.DOLPHIN),
    (Decimal("1000"), TraderTier.FISH),
    (Decimal("100"), TraderTier.CRAB),
]


def get_tier(pnl_usd: Decimal) -> TraderTier:
    value = abs(pnl_usd)
    for threshold, tier in TIER_THRESHOLDS:
        if value >= threshold:
            return tier
    return TraderTier.SHRIMP


def compute_trader_pnl(history: TokenTradeHistory, price: PriceContext) -> TraderPnL:
    buys = history.buys
    sells = history.sells
    realized = history.realized_value_proxy
    realized_usd = realized * price.price_usd if price.price_usd is not None else ZERO

    avg_buy = history.total_bought / len(buys) if buys else ZERO
    avg_buy_usd = avg_buy * price.price_usd if price.price_usd is not None else ZERO

    timestamps = [t.timestamp for t in history.tranches]

    return TraderPnL(
        realized_pnl=realized,
        realized_pnl_usd=realized_usd,
        avg_buy_amount=avg_buy,
        avg_buy_amount_usd=avg_buy_usd,
        avg_buy_market_cap=price.market_cap if buys else None,
        avg_sell_market_cap=price.market_cap if sells else None,
        avg_sell_price=price.price_usd if sells else None,
        tier=get_tier(realized_usd),
        trade_count=len(history.tranches),
        last_trade_timestamp=max(timestamps) if timestamps else None,
    )


def summarize_stablecoins(provider: ChainProvider, balance: WalletBalance) -> list[StablecoinBalance]:
    """Stablecoin holdings, valued 1:1 when the provider gives no USD value."""
    stables = []
    for holding in balance.tokens:
        symbol = stablecoin_symbol(provider.config.id, holding.token_address)
        if symbol is None:
            continue
        stables.append(
            StablecoinBalance(
                symbol=symbol,
                balance=holding.balance,
                balance_usd=holding.balance_usd if holding.balance_usd is not None else holding.balance,
            )
        )
    return stables


def _zeroed_trader(holder: HolderEntry, price: PriceContext) -> TopTrader:
    remaining_usd = holder.balance * price.price_usd if price.price_usd is not None else ZERO
    return TopTrader(
        wallet_address=holder.owner_address,
        native_balance=ZERO,
        native_balance_usd=ZERO,
        stablecoin_total=ZERO,
        stablecoins=[],
        avg_buy_amount=ZERO,
        avg_buy_amount_usd=ZERO,
        avg_buy_market_cap=None,
        avg_sell_market_cap=None,
        avg_sell_price=None,
        realized_pnl=ZERO,
        realized_pnl_usd=ZERO,
        remaining_tokens=holder.balance,
        remaining_tokens_usd=remaining_usd,
        last_trade_timestamp=None,
        tier=TraderTier.SHRIMP,
        trade_count=0,
    )


async def build_top_trader(
    provider: ChainProvider,
    token: TokenSpec,
    holder: HolderEntry,
    price: PriceContext,
    *,
    history_pages: int = 1,
    cache: StalenessCache | None = None,
) -> TopTrader:
    """Enrich one holder. Never raises: any failure gives a zeroed shrimp."""
    wallet = holder.owner_address
    try:
        options = TxQueryOptions(limit=100, max_pages=history_pages, tx_type="SWAP")
        if provider.filters_by_token:
            options = options.model_copy(update={"token_address": token.address})

        if cache is not None:
            balance, transfers = await asyncio.gather(
                provider.get_wallet_balance(wallet),
                load_wallet_transfers(provider, cache, wallet, options),
            )
        else:
            balance, transfers = await asyncio.gather(
                provider.get_wallet_balance(wallet),
                provider.get_wallet_transactions(wallet, options),
            )

        stables = summarize_stablecoins(provider, balance)
        history = reconstruct_trade_history(
            wallet,
            token,
            transfers or [],
            current_balance=holder.balance,
            inference=provider.trade_inference,
        )
        pnl = compute_trader_pnl(history, price)
    except Exception as e:
        logger.warning(f"[PNL] Holder {wallet[:12]} enrichment failed: {e}")
        return _zeroed_trader(holder, price)

    return TopTrader(
        wallet_address=wallet,
        native_balance=balance.native_balance,
        native_balance_usd=balance.native_balance_usd,
        stablecoin_total=sum((s.balance_usd for s in stables), ZERO),
        stablecoins=stables,
        avg_buy_amount=pnl.avg_buy_amount,
        avg_buy_amount_usd=pnl.avg_buy_amount_usd,
        avg_buy_market_cap=pnl.avg_buy_market_cap,
        avg_sell_market_cap=pnl.avg_sell_market_cap,
        avg_sell_price=pnl.avg_sell_price,
        realized_pnl=pnl.realized_pnl,
        realized_pnl_usd=pnl.realized_pnl_usd,
        remaining_tokens=holder.balance,
        remaining_tokens_usd=holder.balance * price.price_usd if price.price_usd is not None else ZERO,
        last_trade_timestamp=pnl.last_trade_timestamp,
        tier=pnl.tier,
        trade_count=pnl.trade_count,
    )


async def compute_top_traders(
    provider: ChainProvider,
    token: TokenSpec,
    holders: list[HolderEntry],
    price: PriceContext,
    *,
    batch_size: int = 5,
    history_pages: int = 1,
    limit: int = 50,
    cache: StalenessCache | None = None,
) -> list[TopTrader]:
    """Per-holder PnL records, largest |PnL USD| first."""

    async def enrich(holder: HolderEntry) -> TopTrader:
        return await build_top_trader(
            provider, token, holder, price, history_pages=history_pages, cache=cache
        )

    traders = await run_in_batches(holders, enrich, batch_size)
    traders.sort(key=lambda t: abs(t.realized_pnl_usd), reverse=True)
    return traders[:limit]


async def fetch_top_traders(
    registry: ProviderRegistry,
    cache: StalenessCache,
    token: TokenSpec,
    *,
    settings: Settings = default_settings,
) -> TopTradersReport:
    """Top traders of a token, with pair and holder lookups. Cached."""
    chain = parse_chain(token.chain)
    provider = registry.get(chain)
    address = validate_address(chain, token.address)
    token = TokenSpec(chain=chain, address=address)

    cache_key = f"top-traders:{token.key}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    pair, holders = await asyncio.gather(
        provider.get_pair_data(address),
        provider.get_top_holders(address, settings.top_traders_holder_limit),
    )
    price = PriceContext(
        price_usd=pair.price_usd if pair else None,
        market_cap=pair.market_cap if pair else None,
    )
    if not holders:
        logger.info(f"[PNL] No holders found for {token.key}")

    traders = await compute_top_traders(
        provider,
        token,
        holders,
        price,
        batch_size=settings.trader_batch_size,
        history_pages=settings.top_traders_history_pages,
        limit=settings.top_traders_max_results,
        cache=cache,
    )
    whales = sum(1 for t in traders if t.tier == TraderTier.WHALE)
    logger.info(f"[PNL] {token.key}: {len(traders)} traders, {whales} whales")

    report = TopTradersReport(
        token=token,
        traders=traders,
        token_symbol=(pair.symbol if pair else None) or "???",
        token_price_usd=price.price_usd,
        native_symbol=provider.config.native_symbol,
    )
    cache.set(cache_key, report, CACHE_TTL["top_traders"])
    return report
