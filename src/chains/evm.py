"""EVM provider (Base, BNB Chain): Etherscan-family explorer + DexScreener."""

import time
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
from src.parsers.etherscan.client import EtherscanClient
from src.parsers.etherscan.models import EtherscanTokenTx

# Wrapped native token, used to price the native balance
WRAPPED_NATIVE: dict[ChainId, str] = {
    ChainId.BASE: "0x4200000000000000000000000000000000000006",  # WETH
    ChainId.BSC: "0xbb4cdb9cbd36b01bd1cbaebf2de08d9173bc095c",  # WBNB
}
NATIVE_PRICE_TTL = 30.0


class EvmProvider(ChainProvider):
    trade_inference = TradeInference.TRANSFER
    filters_by_token = True

    def __init__(
        self,
        chain: ChainId,
        explorer: EtherscanClient,
        dexscreener: DexScreenerClient,
        *,
        rug_liquidity_usd: float = 100.0,
        dead_liquidity_usd: float = 1000.0,
    ) -> None:
        self.config = CHAIN_CONFIGS[chain]
        if not self.config.is_evm:
            raise ValueError(f"{chain} is not an EVM chain")
        self._explorer = explorer
        self._dexscreener = dexscreener
        self._rug_liquidity_usd = rug_liquidity_usd
        self._dead_liquidity_usd = dead_liquidity_usd
        self._native_price: tuple[float, Decimal | None] | None = None
        self._tag = self.config.id.upper()

    async def close(self) -> None:
        await self._explorer.close()

    async def get_pair_data(self, token_address: str) -> PairData | None:
        try:
            pairs = await self._dexscreener.get_token_pairs(self.config.dexscreener_chain_id, token_address)
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning(f"[{self._tag}] Pair lookup failed for {token_address[:12]}: {e}")
            return None
        return pair_data_from_dexscreener(pairs)

    async def get_token_metadata(self, token_address: str) -> TokenMetadata | None:
        pair = await self.get_pair_data(token_address)
        decimals = await self._explorer.get_token_decimals(token_address)
        if pair is None and decimals is None:
            return None

        supply = None
        raw_supply = await self._explorer.get_token_supply(token_address)
        if raw_supply is not None and decimals is not None:
            supply = Decimal(raw_supply) / (Decimal(10) ** decimals)

        return TokenMetadata(
            address=token_address,
            name=(pair.name if pair else None) or "Unknown",
            symbol=(pair.symbol if pair else None) or "???",
            decimals=decimals if decimals is not None else 18,
            logo_url=pair.logo_url if pair else None,
            total_supply=supply,
        )

    async def get_top_holders(self, token_address: str, limit: int = 50) -> list[HolderEntry]:
        holders = await self._explorer.get_token_holders(token_address, limit=limit)
        if not holders:
            return []

        decimals = await self._explorer.get_token_decimals(token_address)
        scale = Decimal(10) ** (decimals if decimals is not None else 18)
        raw_supply = await self._explorer.get_token_supply(token_address)
        supply = Decimal(raw_supply) / scale if raw_supply else Decimal("0")

        entries = []
        for h in holders[:limit]:
            try:
                balance = Decimal(h.TokenHolderQuantity) / scale
            except ArithmeticError:
                continue
            entries.append(
                HolderEntry(
                    owner_address=h.TokenHolderAddress,
                    account_address=h.TokenHolderAddress,
                    balance=balance,
                    percentage=float(balance / supply * 100) if supply > 0 else 0.0,
                )
            )
        return entries

    async def get_wallet_balance(self, wallet_address: str) -> WalletBalance:
        wei = await self._explorer.get_balance(wallet_address)
        native_balance = Decimal(wei or 0) / (Decimal(10) ** self.config.native_decimals)
        native_price = await self._get_native_price() if native_balance > 0 else None
        native_usd = native_balance * native_price if native_price is not None else Decimal("0")

        tokens = []
        for tb in await self._explorer.get_token_balances(wallet_address):
            try:
                balance = Decimal(tb.TokenQuantity) / (Decimal(10) ** int(tb.TokenDecimal or 0))
            except (ArithmeticError, ValueError):
                continue
            tokens.append(
                WalletTokenHolding(
                    token_address=tb.TokenAddress,
                    symbol=tb.TokenSymbol or "???",
                    name=tb.TokenName or "Unknown",
                    balance=balance,
                )
            )

        return WalletBalance(
            native_balance=native_balance,
            native_balance_usd=native_usd,
            tokens=tokens,
            total_portfolio_usd=native_usd,
        )

    async def get_wallet_transactions(
        self, wallet_address: str, options: TxQueryOptions | None = None
    ) -> list[TransferEvent] | None:
        """ERC-20 transfers of the wallet, optionally for one token contract."""
        options = options or TxQueryOptions()
        events: list[TransferEvent] = []
        for page in range(1, options.max_pages + 1):
            txs = await self._explorer.get_token_tx_list(
                wallet_address,
                contract_address=options.token_address,
                limit=options.limit,
                page=page,
            )
            if txs is None:
                if page == 1:
                    return None
                break
            events.extend(e for tx in txs if (e := _event_from_token_tx(tx)) is not None)
            if len(txs) < options.limit:
                break
        return events

    async def get_deployed_tokens(self, wallet_address: str) -> list[DeployedToken]:
        wallet = wallet_address.lower()
        created: dict[str, int] = {}
        for tx in await self._explorer.get_normal_tx_list(wallet_address, limit=100):
            if not tx.is_contract_creation or tx.isError != "0" or tx.from_.lower() != wallet:
                continue
            try:
                deployed_at = int(tx.timeStamp or 0)
            except ValueError:
                logger.debug(f"[{self._tag}] bad timestamp on contract creation {tx.hash}")
                deployed_at = 0
            created.setdefault(tx.contractAddress.lower(), deployed_at)
        if not created:
            return []

        pairs_by_token: dict[str, list[DexScreenerPair]] = defaultdict(list)
        try:
            pairs = await self._dexscreener.get_tokens_batch(self.config.dexscreener_chain_id, list(created))
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.warning(f"[{self._tag}] Pair lookup for {len(created)} deployed contracts failed: {e}")
            pairs = []
        for pair in pairs:
            if pair.baseToken:
                pairs_by_token[pair.baseToken.address.lower()].append(pair)

        return [
            build_deployed_token(
                address,
                deployed_at,
                pair_data_from_dexscreener(pairs_by_token.get(address, [])),
                rug_liquidity_usd=self._rug_liquidity_usd,
                dead_liquidity_usd=self._dead_liquidity_usd,
            )
            for address, deployed_at in created.items()
        ]

    async def _get_native_price(self) -> Decimal | None:
        now = time.monotonic()
        if self._native_price and now - self._native_price[0] < NATIVE_PRICE_TTL:
            return self._native_price[1]
        pair = await self.get_pair_data(WRAPPED_NATIVE[self.config.id])
        price = pair.price_usd if pair else None
        self._native_price = (now, price)
        return price


def _event_from_token_tx(tx: EtherscanTokenTx) -> TransferEvent | None:
    try:
        amount = Decimal(tx.value) / (Decimal(10) ** int(tx.tokenDecimal or 0))
        timestamp = int(tx.timeStamp)
    except (ArithmeticError, ValueError):
        logger.debug(f"[EVM] skipping unparseable transfer in {tx.hash}")
        return None
    return TransferEvent(
        tx_hash=tx.hash,
        timestamp=timestamp,
        from_address=tx.from_,
        to_address=tx.to,
        asset_id=tx.contractAddress,
        amount=amount,
    )
