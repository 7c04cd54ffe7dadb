"""Derived trading artifacts. Computed fresh per request, never persisted."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum

from src.models.chain import ChainId
from src.models.token import DeployedToken, TokenSpec
from src.models.wallet import WalletTokenHolding


class TradeSide(StrEnum):
    BUY = "buy"
    SELL = "sell"


class TradeInference(StrEnum):
    """How a provider's history should be turned into tranches."""

    NET_DELTA = "net_delta"  # swap history: net per transaction
    TRANSFER = "transfer"  # plain transfer list: one tranche per event


class TraderTier(StrEnum):
    WHALE = "whale"
    DOLPHIN = "dolphin"
    FISH = "fish"
    CRAB = "crab"
    SHRIMP = "shrimp"


@dataclass(frozen=True)
class TradeTranche:
    tx_hash: str
    timestamp: int
    amount: Decimal  # always > 0
    side: TradeSide
    source: str | None = None


@dataclass
class TokenTradeHistory:
    token: TokenSpec
    wallet: str
    total_bought: Decimal
    total_sold: Decimal
    current_balance: Decimal
    tranches: list[TradeTranche] = field(default_factory=list)
    symbol: str = "???"
    price_usd: Decimal | None = None

    @property
    def realized_value_proxy(self) -> Decimal:
        """Token-unit profit proxy: sold − bought + still held."""
        return self.total_sold - self.total_bought + self.current_balance

    @property
    def buys(self) -> list[TradeTranche]:
        return [t for t in self.tranches if t.side == TradeSide.BUY]

    @property
    def sells(self) -> list[TradeTranche]:
        return [t for t in self.tranches if t.side == TradeSide.SELL]


@dataclass
class TradeHistoryReport:
    wallet: str
    histories: list[TokenTradeHistory]


@dataclass(frozen=True)
class PriceContext:
    """What is known about a token's current market. Either field may be unknown."""

    price_usd: Decimal | None = None
    market_cap: Decimal | None = None


@dataclass
class TraderPnL:
    realized_pnl: Decimal  # token units
    realized_pnl_usd: Decimal  # 0 when price unknown
    avg_buy_amount: Decimal
    avg_buy_amount_usd: Decimal
    avg_buy_market_cap: Decimal | None
    avg_sell_market_cap: Decimal | None
    avg_sell_price: Decimal | None
    tier: TraderTier
    trade_count: int
    last_trade_timestamp: int | None


@dataclass(frozen=True)
class StablecoinBalance:
    symbol: str
    balance: Decimal
    balance_usd: Decimal


@dataclass
class TopTrader:
    wallet_address: str
    native_balance: Decimal
    native_balance_usd: Decimal
    stablecoin_total: Decimal
    stablecoins: list[StablecoinBalance]
    avg_buy_amount: Decimal
    avg_buy_amount_usd: Decimal
    avg_buy_market_cap: Decimal | None
    avg_sell_market_cap: Decimal | None
    avg_sell_price: Decimal | None
    realized_pnl: Decimal
    realized_pnl_usd: Decimal
    remaining_tokens: Decimal
    remaining_tokens_usd: Decimal
    last_trade_timestamp: int | None
    tier: TraderTier
    trade_count: int


@dataclass
class TopTradersReport:
    token: TokenSpec
    traders: list[TopTrader]
    token_symbol: str
    token_price_usd: Decimal | None
    native_symbol: str


@dataclass(frozen=True)
class CommonTraderHolding:
    token_address: str
    chain: ChainId
    symbol: str
    balance: Decimal
    balance_usd: Decimal
    percentage: float


@dataclass
class CommonTrader:
    wallet_address: str
    holdings: list[CommonTraderHolding]
    total_value_usd: Decimal
    token_count: int


@dataclass(frozen=True)
class TokenMeta:
    address: str
    chain: ChainId
    symbol: str
    price_usd: Decimal | None


@dataclass
class CommonTradersReport:
    traders: list[CommonTrader]
    tokens_meta: list[TokenMeta]


class DeployerGrade(StrEnum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class DeployerScore:
    total_deployed: int
    active_count: int
    rugged_count: int
    dead_count: int
    score: int  # 0-100
    grade: DeployerGrade
    risk_level: RiskLevel


@dataclass
class WalletProfile:
    address: str
    chain: ChainId
    native_balance: Decimal
    native_balance_usd: Decimal
    total_portfolio_usd: Decimal
    tokens: list[WalletTokenHolding]
    is_deployer: bool
    deployed_tokens: list[DeployedToken]
    deployer_score: DeployerScore | None
