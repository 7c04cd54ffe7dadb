"""Trade reconstruction — turn a wallet's transfer history into buy/sell tranches.

Two inference modes, picked by the provider that produced the events:

NET_DELTA (swap history): all movements of the target token inside one
transaction are netted for the wallet. Net in → buy, net out → sell,
exactly zero → nothing (routing through the wallet is not a trade).

TRANSFER (plain ERC-20 transfer lists): every event is its own tranche.
Incoming → buy, outgoing → sell. Airdrops and wallet-to-wallet moves are
indistinguishable from trades here; that is accepted.
"""

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import replace
from decimal import Decimal

from loguru import logger

from config.settings import Settings
from src.chains.base import ChainProvider
from src.chains.registry import ProviderRegistry
from src.exceptions import InputValidationError
from src.models.chain import ChainId, normalize_address, parse_chain, validate_address
from src.models.token import TokenSpec, TrackedToken
from src.models.trade import (
    TokenTradeHistory,
    TradeHistoryReport,
    TradeInference,
    TradeSide,
    TradeTranche,
)
from src.models.wallet import TransferEvent, TxQueryOptions
from src.parsers.cache import CACHE_TTL, StalenessCache

ZERO = Decimal("0")


def reconstruct_trade_history(
    wallet: str,
    token: TokenSpec,
    transfers: Iterable[TransferEvent],
    *,
    current_balance: Decimal = ZERO,
    inference: TradeInference = TradeInference.NET_DELTA,
    symbol: str | None = None,
    price_usd: Decimal | None = None,
) -> TokenTradeHistory:
    """Reconstruct one wallet's trades in one token.

    Pure: the result depends only on the arguments, not on event order.
    """
    chain = token.chain
    me = normalize_address(chain, wallet)
    target = normalize_address(chain, token.address)
    relevant = [e for e in transfers if normalize_address(chain, e.asset_id) == target]

    if inference == TradeInference.NET_DELTA:
        tranches = _net_delta_tranches(relevant, me, chain)
    else:
        tranches = _transfer_tranches(relevant, me, chain)
    tranches.sort(key=lambda t: (t.timestamp, t.tx_hash, t.side, t.amount))

    total_bought = sum((t.amount for t in tranches if t.side == TradeSide.BUY), ZERO)
    total_sold = sum((t.amount for t in tranches if t.side == TradeSide.SELL), ZERO)

    return TokenTradeHistory(
        token=token,
        wallet=wallet,
        total_bought=total_bought,
        total_sold=total_sold,
        current_balance=current_balance,
        tranches=tranches,
        symbol=symbol or "???",
        price_usd=price_usd,
    )


def _net_delta_tranches(events: list[TransferEvent], me: str, chain: ChainId) -> list[TradeTranche]:
    net: dict[str, Decimal] = defaultdict(Decimal)
    timestamps: dict[str, int] = {}
    sources: dict[str, set[str]] = defaultdict(set)

    for e in events:
        incoming = normalize_address(chain, e.to_address) == me
        outgoing = normalize_address(chain, e.from_address) == me
        if incoming == outgoing:
            # Unrelated to the wallet, or a self-transfer that nets to zero
            continue
        net[e.tx_hash] += e.amount if incoming else -e.amount
        timestamps[e.tx_hash] = min(timestamps.get(e.tx_hash, e.timestamp), e.timestamp)
        if e.source:
            sources[e.tx_hash].add(e.source)

    tranches = []
    for tx_hash, delta in net.items():
        if delta == 0:
            continue
        tranches.append(
            TradeTranche(
                tx_hash=tx_hash,
                timestamp=timestamps[tx_hash],
                amount=abs(delta),
                side=TradeSide.BUY if delta > 0 else TradeSide.SELL,
                source=min(sources[tx_hash]) if sources[tx_hash] else None,
            )
        )
    return tranches


def _transfer_tranches(events: list[TransferEvent], me: str, chain: ChainId) -> list[TradeTranche]:
    tranches = []
    for e in events:
        if e.amount <= 0:
            continue
        if normalize_address(chain, e.to_address) == me:
            side = TradeSide.BUY
        elif normalize_address(chain, e.from_address) == me:
            side = TradeSide.SELL
        else:
            continue
        tranches.append(
            TradeTranche(tx_hash=e.tx_hash, timestamp=e.timestamp, amount=e.amount, side=side, source=e.source)
        )
    return tranches


async def load_wallet_transfers(
    provider: ChainProvider,
    cache: StalenessCache,
    wallet: str,
    options: TxQueryOptions,
) -> list[TransferEvent] | None:
    """Wallet history through the cache. None (not cached) when unavailable."""
    chain = provider.config.id
    key = f"wallet-history:{chain}:{normalize_address(chain, wallet)}:{options.tx_type}:{options.max_pages}"
    if provider.filters_by_token and options.token_address:
        key += f":{normalize_address(chain, options.token_address)}"

    cached = cache.get(key)
    if cached is not None:
        return cached

    events = await provider.get_wallet_transactions(wallet, options)
    if events is None:
        logger.debug(f"[HISTORY] No history available for {wallet[:12]} on {chain}")
        return None
    cache.set(key, events, CACHE_TTL["trade_history"])
    return events


async def fetch_trade_histories(
    registry: ProviderRegistry,
    cache: StalenessCache,
    wallet: str,
    tokens: list[TrackedToken],
    settings: Settings,
) -> TradeHistoryReport:
    """Trade histories of one wallet across several tokens.

    Each chain's history is fetched once and filtered per token, unless the
    provider can query a single token upstream. A token whose history is
    unavailable gets an empty history rather than an error.
    """
    if not wallet or not tokens:
        raise InputValidationError("wallet and at least one token are required")

    tokens = [replace(t, chain=parse_chain(t.chain)) for t in tokens]
    providers = {}
    for token in tokens:
        provider = registry.get(token.chain)
        validate_address(token.chain, token.address)
        validate_address(token.chain, wallet)
        providers[token.chain] = provider

    request_key = "trade-history:{}:{}".format(
        wallet, ",".join(f"{t.spec.key}:{t.current_balance}" for t in tokens)
    )
    cached = cache.get(request_key)
    if cached is not None:
        return cached

    base_options = TxQueryOptions(
        limit=settings.trade_history_page_limit,
        max_pages=settings.trade_history_max_pages,
        tx_type="SWAP",
    )

    balances = {}
    if any(t.current_balance is None for t in tokens):
        chains = sorted({t.chain for t in tokens if t.current_balance is None})
        results = await asyncio.gather(*(providers[c].get_wallet_balance(wallet) for c in chains))
        balances = dict(zip(chains, results))

    # Whole-wallet histories: one fetch per chain, shared by its tokens
    whole = sorted(c for c, p in providers.items() if not p.filters_by_token)
    fetched = await asyncio.gather(
        *(load_wallet_transfers(providers[c], cache, wallet, base_options) for c in whole)
    )
    shared = dict(zip(whole, fetched))

    async def one(token: TrackedToken) -> TokenTradeHistory:
        provider = providers[token.chain]
        if provider.filters_by_token:
            options = base_options.model_copy(update={"token_address": token.address})
            transfers = await load_wallet_transfers(provider, cache, wallet, options) or []
        else:
            transfers = shared[token.chain] or []

        current = token.current_balance
        if current is None:
            current = balances[token.chain].token_balance(
                token.address, case_insensitive=provider.config.is_evm
            )

        return reconstruct_trade_history(
            wallet,
            token.spec,
            transfers,
            current_balance=current,
            inference=provider.trade_inference,
            symbol=token.symbol,
            price_usd=token.price_usd,
        )

    histories = list(await asyncio.gather(*(one(t) for t in tokens)))
    logger.info(
        f"[HISTORY] {wallet[:12]}: {len(histories)} tokens, "
        f"{sum(len(h.tranches) for h in histories)} tranches"
    )

    report = TradeHistoryReport(wallet=wallet, histories=histories)
    cache.set(request_key, report, CACHE_TTL["trade_history"])
    return report
