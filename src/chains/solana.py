"""Solana provider: Helius (RPC, DAS, enhanced history) + DexScreener."""

from collections import defaultdict
from decimal import Decimal

import httpx
from loguru import logger
from pydantic import ValidationError

from src.chains.base import ChainProvider, build_deployed_token, pair_data_from_dexscreener
from src.models.chain import CHAIN_CONFIGS, ChainId
from src.models.token import DeployedToken, HolderEntry, PairData, TokenMetadata
from src.models.trade import TradeInference
from src.models.wallet import (
    TransferEvent,
    TxQueryOptions,
    WalletBalance,
    WalletTokenHolding,
)
from src.parsers.dexscreener.client import DexScreenerClient
from src.parsers.dexscreener.models import DexScreenerPair
from src.parsers.helius.client import HeliusClient
from src.parsers.helius.models import HeliusRawTransaction, HeliusTransaction
from src.utils.batching import run_in_batches

# Wrapped SOL mint doubles as the asset id of native SOL movements
NATIVE_MINT = "So11111111111111111111111111111111111111112"
LAMPORTS_PER_SOL = Decimal(10) ** 9


class SolanaProvider(ChainProvider):
    trade_inference = TradeInference.NET_DELTA
    filters_by_token = False

    def __init__(
        self,
        helius: HeliusClient,
        dexscreener: DexScreenerClient,
        *,
        tx_fallback_batch_size: int = 8,
        account_batch_size: int = 100,
        rug_liquidity_usd: float = 100.0,
        dead_liquidity_usd: float = 1000.0,
    ) -> None:
        self.config = CHAIN_CONFIGS[ChainId.SOLANA]
        self._helius = helius
        self._dexscreener = dexscreener
        self._tx_fallback_batch_size = tx_fallback_batch_size
        self._account_batch_size = account_batch_size
        self._rug_liquidity_usd = rug_liquidity_usd
        self._dead_liquidity_usd = dead_liquidity_usd

    async def close(self) -> None:
        await self._helius.close()

    async def get_pair_data(self, token_address: str) -> PairData | None:
        try:
            pairs = await self._dexscreener.get_token_pairs(self.config.dexscreener_chain_id, token_address)
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning(f"[SOLANA] Pair lookup failed for {token_address[:12]}: {e}")
            return None
        return pair_data_from_dexscreener(pairs)

    async def get_token_metadata(self, token_address: str) -> TokenMetadata | None:
        asset = await self._helius.get_asset(token_address)
        if asset is not None:
            return TokenMetadata(
                address=token_address,
                name=asset.name or "Unknown",
                symbol=asset.symbol or "???",
                decimals=asset.decimals,
                logo_url=asset.image,
                total_supply=asset.ui_supply,
                description=asset.description,
            )

        pair = await self.get_pair_data(token_address)
        if pair is None:
            return None
        return TokenMetadata(
            address=token_address,
            name=pair.name or "Unknown",
            symbol=pair.symbol or "???",
            logo_url=pair.logo_url,
        )

    async def get_top_holders(self, token_address: str, limit: int = 50) -> list[HolderEntry]:
        """Largest token accounts, resolved to owner wallets.

        The RPC caps largest accounts at 20. An account whose owner cannot be
        resolved is reported under its own address.
        """
        accounts = await self._helius.get_token_largest_accounts(token_address)
        if not accounts:
            return []
        accounts = accounts[:limit]

        mint = await self._helius.get_mint_info(token_address)
        supply = mint.ui_supply if mint else Decimal("0")
        owners = await self._helius.get_multiple_account_owners(
            [a.address for a in accounts], batch_size=self._account_batch_size
        )
        if len(owners) < len(accounts):
            logger.debug(f"[SOLANA] Resolved {len(owners)}/{len(accounts)} holder owners for {token_address[:12]}")

        return [
            HolderEntry(
                owner_address=owners.get(acct.address, acct.address),
                account_address=acct.address,
                balance=acct.ui_amount,
                percentage=float(acct.ui_amount / supply * 100) if supply > 0 else 0.0,
            )
            for acct in accounts
        ]

    async def get_wallet_balance(self, wallet_address: str) -> WalletBalance:
        result = await self._helius.get_assets_by_owner(wallet_address)
        if result is None:
            # DAS needs an API key; plain RPC still gives the SOL balance
            lamports = await self._helius.get_balance(wallet_address)
            if lamports is None:
                return WalletBalance()
            return WalletBalance(native_balance=Decimal(lamports) / LAMPORTS_PER_SOL)

        assets, native = result
        tokens = [
            WalletTokenHolding(
                token_address=asset.id,
                symbol=asset.symbol or "???",
                name=asset.name or "Unknown",
                balance=asset.ui_balance,
                balance_usd=asset.total_price,
                price_usd=asset.price_per_token,
                logo_url=asset.image,
            )
            for asset in assets
        ]
        tokens.sort(key=lambda t: t.balance_usd or Decimal("0"), reverse=True)

        native_balance = Decimal(native.lamports) / LAMPORTS_PER_SOL if native else Decimal("0")
        native_usd = (native.total_price or Decimal("0")) if native else Decimal("0")
        tokens_usd = sum((t.balance_usd or Decimal("0") for t in tokens), Decimal("0"))

        return WalletBalance(
            native_balance=native_balance,
            native_balance_usd=native_usd,
            tokens=tokens,
            total_portfolio_usd=tokens_usd + native_usd,
        )

    async def get_wallet_transactions(
        self, wallet_address: str, options: TxQueryOptions | None = None
    ) -> list[TransferEvent] | None:
        options = options or TxQueryOptions()
        txns = await self._helius.get_wallet_history(
            wallet_address,
            tx_type=options.tx_type,
            limit=options.limit,
            max_pages=options.max_pages,
        )
        if txns is not None:
            return [event for tx in txns if tx.transaction_error is None for event in _events_from_enhanced(tx)]

        logger.debug(f"[SOLANA] Enhanced history unavailable for {wallet_address[:12]}, using RPC fallback")
        return await self._transactions_from_rpc(wallet_address, options)

    async def _transactions_from_rpc(self, wallet_address: str, options: TxQueryOptions) -> list[TransferEvent]:
        signatures = await self._helius.get_signatures_for_address(
            wallet_address, limit=options.limit * options.max_pages
        )
        ok = [s.signature for s in signatures if s.err is None and s.signature]
        if not ok:
            return []

        raw_txs = await run_in_batches(ok, self._helius.get_transaction, self._tx_fallback_batch_size)
        events: list[TransferEvent] = []
        for raw in raw_txs:
            if raw is None or raw.err is not None:
                continue
            events.extend(_events_from_balance_changes(raw, wallet_address))
        return events

    async def get_deployed_tokens(self, wallet_address: str) -> list[DeployedToken]:
        txns = await self._helius.get_wallet_history(wallet_address, tx_type="CREATE", limit=100)
        if not txns:
            return []

        created: dict[str, int] = {}
        for tx in txns:
            if tx.transaction_error is not None:
                continue
            for mint in _created_mints(tx):
                created.setdefault(mint, tx.timestamp)
        if not created:
            return []

        pairs_by_token: dict[str, list[DexScreenerPair]] = defaultdict(list)
        try:
            pairs = await self._dexscreener.get_tokens_batch(self.config.dexscreener_chain_id, list(created))
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning(f"[SOLANA] Pair lookup for {len(created)} deployed tokens failed: {e}")
            pairs = []
        for pair in pairs:
            if pair.baseToken:
                pairs_by_token[pair.baseToken.address].append(pair)

        return [
            build_deployed_token(
                mint,
                deployed_at,
                pair_data_from_dexscreener(pairs_by_token.get(mint, [])),
                rug_liquidity_usd=self._rug_liquidity_usd,
                dead_liquidity_usd=self._dead_liquidity_usd,
            )
            for mint, deployed_at in created.items()
        ]


def _events_from_enhanced(tx: HeliusTransaction) -> list[TransferEvent]:
    source = tx.source or None
    events = [
        TransferEvent(
            tx_hash=tx.signature,
            timestamp=tx.timestamp,
            from_address=t.from_user_account,
            to_address=t.to_user_account,
            asset_id=t.mint,
            amount=t.token_amount,
            source=source,
        )
        for t in tx.token_transfers
        if t.mint
    ]
    events.extend(
        TransferEvent(
            tx_hash=tx.signature,
            timestamp=tx.timestamp,
            from_address=n.from_user_account,
            to_address=n.to_user_account,
            asset_id=NATIVE_MINT,
            amount=Decimal(n.amount) / LAMPORTS_PER_SOL,
            source=source,
        )
        for n in tx.native_transfers
        if n.amount
    )
    return events


def _events_from_balance_changes(raw: HeliusRawTransaction, wallet_address: str) -> list[TransferEvent]:
    # A positive delta reads as a credit to the owner, a negative one as a debit
    events = []
    for change in raw.balance_changes:
        if change.owner != wallet_address:
            continue
        credit = change.delta > 0
        events.append(
            TransferEvent(
                tx_hash=raw.signature,
                timestamp=raw.timestamp,
                from_address="" if credit else change.owner,
                to_address=change.owner if credit else "",
                asset_id=change.mint,
                amount=abs(change.delta),
            )
        )
    return events


def _created_mints(tx: HeliusTransaction) -> list[str]:
    """Mints first issued by a CREATE transaction (transfers with no sender)."""
    minted = [t.mint for t in tx.token_transfers if t.mint and not t.from_user_account]
    if minted:
        return list(dict.fromkeys(minted))
    return [tx.token_transfers[0].mint] if tx.token_transfers and tx.token_transfers[0].mint else []
