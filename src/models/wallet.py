"""Normalized wallet-side shapes returned by every chain provider."""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class WalletTokenHolding(BaseModel):
    token_address: str
    symbol: str = "???"
    name: str = "Unknown"
    balance: Decimal = Decimal("0")
    balance_usd: Decimal | None = None
    price_usd: Decimal | None = None
    logo_url: str | None = None


class WalletBalance(BaseModel):
    native_balance: Decimal = Decimal("0")
    native_balance_usd: Decimal = Decimal("0")
    tokens: list[WalletTokenHolding] = []
    total_portfolio_usd: Decimal = Decimal("0")

    def token_balance(self, token_address: str, *, case_insensitive: bool = False) -> Decimal:
        """Balance of one token, 0 when the wallet does not hold it."""
        wanted = token_address.lower() if case_insensitive else token_address
        for holding in self.tokens:
            addr = holding.token_address.lower() if case_insensitive else holding.token_address
            if addr == wanted:
                return holding.balance
        return Decimal("0")


class TransferEvent(BaseModel):
    """One directional movement of an asset inside a transaction.

    Sourced verbatim from a provider and never mutated.
    """

    model_config = ConfigDict(frozen=True)

    tx_hash: str
    timestamp: int  # unix seconds
    from_address: str = ""  # "" for mints / balance-delta credits
    to_address: str = ""  # "" for burns / balance-delta debits
    asset_id: str
    amount: Decimal
    source: str | None = None  # DEX / program label when known


class TxQueryOptions(BaseModel):
    limit: int = 100  # per page
    max_pages: int = 1
    tx_type: str | None = "SWAP"  # Helius enhanced type filter; ignored on EVM
    token_address: str | None = None  # only honoured by providers that filter by token
