from src.models.chain import CHAIN_CONFIGS, ChainConfig, ChainId
from src.models.token import (
    DeployedToken,
    DeployedTokenStatus,
    HolderEntry,
    PairData,
    PairInfo,
    TokenMetadata,
    TokenSpec,
    TrackedToken,
)
from src.models.trade import (
    CommonTrader,
    CommonTraderHolding,
    CommonTradersReport,
    DeployerGrade,
    DeployerScore,
    PriceContext,
    RiskLevel,
    StablecoinBalance,
    TokenMeta,
    TokenTradeHistory,
    TopTrader,
    TopTradersReport,
    TradeHistoryReport,
    TradeInference,
    TraderPnL,
    TraderTier,
    TradeSide,
    TradeTranche,
    WalletProfile,
)
from src.models.wallet import TransferEvent, TxQueryOptions, WalletBalance, WalletTokenHolding

__all__ = [
    "CHAIN_CONFIGS",
    "ChainConfig",
    "ChainId",
    "CommonTrader",
    "CommonTraderHolding",
    "CommonTradersReport",
    "DeployedToken",
    "DeployedTokenStatus",
    "DeployerGrade",
    "DeployerScore",
    "HolderEntry",
    "PairData",
    "PairInfo",
    "PriceContext",
    "RiskLevel",
    "StablecoinBalance",
    "TokenMeta",
    "TokenMetadata",
    "TokenSpec",
    "TokenTradeHistory",
    "TopTrader",
    "TopTradersReport",
    "TrackedToken",
    "TradeHistoryReport",
    "TradeInference",
    "TraderPnL",
    "TraderTier",
    "TradeSide",
    "TradeTranche",
    "TransferEvent",
    "TxQueryOptions",
    "WalletBalance",
    "WalletProfile",
    "WalletTokenHolding",
]
