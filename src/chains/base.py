"""Chain provider contract.

One provider per chain hides that chain's upstream APIs behind the same
normalized shapes. Providers never raise for missing or unavailable data:
they log and hand back None / [] / an empty WalletBalance.
"""

from abc import ABC, abstractmethod
from decimal import Decimal

from src.models.chain import ChainConfig
from src.models.token import (
    DeployedToken,
    DeployedTokenStatus,
    HolderEntry,
    PairData,
    PairInfo,
    TokenMetadata,
)
from src.models.trade import TradeInference
from src.models.wallet import TransferEvent, TxQueryOptions, WalletBalance
from src.parsers.dexscreener.models import DexScreenerPair


class ChainProvider(ABC):
    config: ChainConfig
    # How get_wallet_transactions output must be turned into trades
    trade_inference: TradeInference = TradeInference.NET_DELTA
    # True when get_wallet_transactions honours options.token_address upstream
    filters_by_token: bool = False

    @abstractmethod
    async def get_pair_data(self, token_address: str) -> PairData | None: ...

    @abstractmethod
    async def get_token_metadata(self, token_address: str) -> TokenMetadata | None: ...

    @abstractmethod
    async def get_top_holders(self, token_address: str, limit: int = 50) -> list[HolderEntry]: ...

    @abstractmethod
    async def get_wallet_balance(self, wallet_address: str) -> WalletBalance: ...

    @abstractmethod
    async def get_wallet_transactions(
        self, wallet_address: str, options: TxQueryOptions | None = None
    ) -> list[TransferEvent] | None:
        """Asset movements involving the wallet. None when history is unavailable."""

    @abstractmethod
    async def get_deployed_tokens(self, wallet_address: str) -> list[DeployedToken]: ...

    async def close(self) -> None:
        pass


def pair_data_from_dexscreener(pairs: list[DexScreenerPair]) -> PairData | None:
    """Collapse DexScreener pairs (most liquid first) into PairData."""
    if not pairs:
        return None

    infos = [
        PairInfo(
            pair_address=p.pairAddress,
            dex_id=p.dexId,
            base_symbol=p.baseToken.symbol or "" if p.baseToken else "",
            quote_symbol=p.quoteToken.symbol or "" if p.quoteToken else "",
            price_usd=_dec(p.priceUsd) or Decimal("0"),
            liquidity_usd=p.liquidity_usd,
            volume_24h=p.volume.h24 or Decimal("0") if p.volume else Decimal("0"),
            url=p.url,
        )
        for p in pairs
    ]
    top = pairs[0]
    base = top.baseToken
    created_at = top.pairCreatedAt // 1000 if top.pairCreatedAt else None

    return PairData(
        pairs=infos,
        primary_pair=infos[0],
        symbol=base.symbol if base else None,
        name=base.name if base else None,
        price_usd=_dec(top.priceUsd),
        price_native=_dec(top.priceNative),
        volume_24h=top.volume.h24 if top.volume else None,
        liquidity_usd=top.liquidity.usd if top.liquidity else None,
        market_cap=top.marketCap,
        fdv=top.fdv,
        price_change_h24=top.priceChange.h24 if top.priceChange else None,
        created_at=created_at,
        logo_url=top.info.imageUrl if top.info else None,
    )


def classify_deployed_token(
    pair: PairData | None,
    *,
    rug_liquidity_usd: float,
    dead_liquidity_usd: float,
) -> DeployedTokenStatus:
    """Status of a deployed token from its current market.

    No market at all is unknown rather than rugged: DexScreener may simply
    not index the token.
    """
    if pair is None:
        return DeployedTokenStatus.UNKNOWN
    liquidity = pair.liquidity_usd or Decimal("0")
    if liquidity < Decimal(str(rug_liquidity_usd)):
        return DeployedTokenStatus.RUGGED
    if liquidity < Decimal(str(dead_liquidity_usd)) or not pair.volume_24h:
        return DeployedTokenStatus.DEAD
    return DeployedTokenStatus.ACTIVE


def build_deployed_token(
    address: str,
    deployed_at: int,
    pair: PairData | None,
    *,
    rug_liquidity_usd: float,
    dead_liquidity_usd: float,
    name: str | None = None,
    symbol: str | None = None,
) -> DeployedToken:
    return DeployedToken(
        address=address,
        name=(pair.name if pair and pair.name else name) or "Unknown",
        symbol=(pair.symbol if pair and pair.symbol else symbol) or "???",
        deployed_at=deployed_at,
        current_price_usd=pair.price_usd if pair else None,
        current_liquidity_usd=pair.liquidity_usd if pair else None,
        status=classify_deployed_token(
            pair,
            rug_liquidity_usd=rug_liquidity_usd,
            dead_liquidity_usd=dead_liquidity_usd,
        ),
    )


def _dec(value: str | None) -> Decimal | None:
    if not value:
        return None
    try:
        return Decimal(value)
    except ArithmeticError:
        return None
