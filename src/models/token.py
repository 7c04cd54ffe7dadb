"""Normalized token-side shapes returned by every chain provider."""

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from src.models.chain import ChainId, normalize_address


@dataclass(frozen=True)
class TokenSpec:
    """A token on a specific chain."""

    chain: ChainId
    address: str

    @property
    def key(self) -> str:
        return f"{self.chain}:{normalize_address(self.chain, self.address)}"


@dataclass(frozen=True)
class TrackedToken:
    """A token whose trade history is requested, with what the caller already knows."""

    chain: ChainId
    address: str
    symbol: str = "???"
    current_balance: Decimal | None = None  # None → look up the live balance
    price_usd: Decimal | None = None

    @property
    def spec(self) -> TokenSpec:
        return TokenSpec(chain=self.chain, address=self.address)


class PairInfo(BaseModel):
    pair_address: str
    dex_id: str = ""
    base_symbol: str = ""
    quote_symbol: str = ""
    price_usd: Decimal = Decimal("0")
    liquidity_usd: Decimal = Decimal("0")
    volume_24h: Decimal = Decimal("0")
    url: str = ""


class PairData(BaseModel):
    """Price and liquidity for a token, from its most liquid pair."""

    pairs: list[PairInfo] = []
    primary_pair: PairInfo | None = None
    symbol: str | None = None
    name: str | None = None
    price_usd: Decimal | None = None
    price_native: Decimal | None = None
    volume_24h: Decimal | None = None
    liquidity_usd: Decimal | None = None
    market_cap: Decimal | None = None
    fdv: Decimal | None = None
    price_change_h24: float | None = None
    created_at: int | None = None  # unix seconds
    logo_url: str | None = None


class TokenMetadata(BaseModel):
    address: str
    name: str = "Unknown"
    symbol: str = "???"
    decimals: int = 0
    logo_url: str | None = None
    total_supply: Decimal | None = None
    holder_count: int | None = None
    website: str | None = None
    twitter: str | None = None
    telegram: str | None = None
    description: str | None = None


class HolderEntry(BaseModel):
    """One row of a token's current holder set.

    ``owner_address`` is the beneficial owner, already resolved by the provider.
    ``account_address`` is the raw holder account (a token account on Solana).
    """

    model_config = ConfigDict(frozen=True)

    owner_address: str
    account_address: str
    balance: Decimal
    percentage: float = 0.0


class DeployedTokenStatus(StrEnum):
    ACTIVE = "active"
    RUGGED = "rugged"
    DEAD = "dead"
    UNKNOWN = "unknown"


class DeployedToken(BaseModel):
    address: str
    name: str = "Unknown"
    symbol: str = "???"
    deployed_at: int = 0  # unix seconds
    current_price_usd: Decimal | None = None
    current_liquidity_usd: Decimal | None = None
    status: DeployedTokenStatus = DeployedTokenStatus.UNKNOWN
