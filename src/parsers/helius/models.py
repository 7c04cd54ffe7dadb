"""Pydantic models for Helius RPC, DAS and Enhanced Transaction API responses."""

from decimal import Decimal

from pydantic import BaseModel


class HeliusTokenTransfer(BaseModel):
    """Token transfer within a transaction."""

    from_user_account: str = ""
    to_user_account: str = ""
    from_token_account: str = ""
    to_token_account: str = ""
    token_amount: Decimal = Decimal("0")  # UI units (decimals applied)
    mint: str = ""
    token_standard: str = ""


class HeliusNativeTransfer(BaseModel):
    """SOL native transfer within a transaction."""

    from_user_account: str = ""
    to_user_account: str = ""
    amount: int = 0  # lamports


class HeliusTransaction(BaseModel):
    """Enhanced parsed transaction from Helius."""

    signature: str
    type: str = ""  # "TRANSFER", "SWAP", "CREATE", etc.
    source: str = ""  # "RAYDIUM", "ORCA", "JUPITER", etc.
    fee: int = 0  # lamports
    fee_payer: str = ""
    timestamp: int = 0  # unix
    description: str = ""
    token_transfers: list[HeliusTokenTransfer] = []
    native_transfers: list[HeliusNativeTransfer] = []
    transaction_error: str | dict | None = None  # non-None means failed (Helius returns dict or str)


class HeliusSignature(BaseModel):
    """Transaction signature metadata."""

    signature: str
    slot: int = 0
    timestamp: int = 0
    err: dict | str | None = None  # non-None means failed


class HeliusMintInfo(BaseModel):
    supply: int = 0  # raw units
    decimals: int = 0
    mint_authority: str | None = None
    freeze_authority: str | None = None

    @property
    def ui_supply(self) -> Decimal:
        return Decimal(self.supply) / (Decimal(10) ** self.decimals)


class HeliusLargestAccount(BaseModel):
    address: str  # token account, not the owner
    amount: str = "0"
    decimals: int = 0
    ui_amount: Decimal = Decimal("0")


class HeliusAsset(BaseModel):
    """Fungible asset as returned by DAS getAsset / getAssetsByOwner."""

    id: str
    name: str | None = None
    symbol: str | None = None
    description: str | None = None
    image: str | None = None
    decimals: int = 0
    supply: int | None = None  # raw units
    balance: int = 0  # raw units (owner queries only)
    price_per_token: Decimal | None = None
    total_price: Decimal | None = None

    @property
    def ui_balance(self) -> Decimal:
        return Decimal(self.balance) / (Decimal(10) ** self.decimals)

    @property
    def ui_supply(self) -> Decimal | None:
        if self.supply is None:
            return None
        return Decimal(self.supply) / (Decimal(10) ** self.decimals)


class HeliusNativeBalance(BaseModel):
    lamports: int = 0
    price_per_sol: Decimal | None = None
    total_price: Decimal | None = None


class HeliusBalanceChange(BaseModel):
    """Net token balance change of one owner for one mint in a transaction."""

    owner: str
    mint: str
    delta: Decimal  # UI units, signed


class HeliusRawTransaction(BaseModel):
    """Plain RPC getTransaction, reduced to token balance deltas."""

    signature: str
    timestamp: int = 0
    err: dict | str | None = None
    balance_changes: list[HeliusBalanceChange] = []
