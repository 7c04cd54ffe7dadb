"""Shared test fixtures."""

from decimal import Decimal

import pytest

from src.chains.base import ChainProvider
from src.chains.registry import ProviderRegistry
from src.models.chain import CHAIN_CONFIGS, ChainId
from src.models.token import DeployedToken, HolderEntry, PairData, TokenMetadata
from src.models.trade import TradeInference
from src.models.wallet import TransferEvent, TxQueryOptions, WalletBalance
from src.parsers.cache import StalenessCache

SOL_WALLET_A = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
SOL_WALLET_B = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
SOL_WALLET_C = "HN7cABqLq46Es1jh92dQQisAq662SmxELLLsHHe4YWrH"
SOL_TOKEN_A = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"
SOL_TOKEN_B = "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
EVM_WALLET = "0x71C7656EC7ab88b098defB751B7401B5f6d8976F"
EVM_TOKEN = "0x4ed4E862860beD51a9570b96d89aF5E1B0Efefed"


class FakeProvider(ChainProvider):
    """In-memory provider; every call is recorded in ``calls``."""

    def __init__(
        self,
        chain: ChainId = ChainId.SOLANA,
        *,
        pairs: dict[str, PairData] | None = None,
        holders: dict[str, list[HolderEntry]] | None = None,
        balances: dict[str, WalletBalance] | None = None,
        transfers: dict[str, list[TransferEvent] | None] | None = None,
        deployed: dict[str, list[DeployedToken]] | None = None,
        fail_wallets: set[str] | None = None,
    ) -> None:
        self.config = CHAIN_CONFIGS[chain]
        if self.config.is_evm:
            self.trade_inference = TradeInference.TRANSFER
            self.filters_by_token = True
        self.pairs = pairs or {}
        self.holders = holders or {}
        self.balances = balances or {}
        self.transfers = transfers or {}
        self.deployed = deployed or {}
        self.fail_wallets = fail_wallets or set()
        self.calls: list[tuple[str, str]] = []

    async def get_pair_data(self, token_address: str) -> PairData | None:
        self.calls.append(("pair", token_address))
        return self.pairs.get(token_address)

    async def get_token_metadata(self, token_address: str) -> TokenMetadata | None:
        self.calls.append(("metadata", token_address))
        pair = self.pairs.get(token_address)
        if pair is None:
            return None
        return TokenMetadata(address=token_address, symbol=pair.symbol or "???")

    async def get_top_holders(self, token_address: str, limit: int = 50) -> list[HolderEntry]:
        self.calls.append(("holders", token_address))
        return self.holders.get(token_address, [])[:limit]

    async def get_wallet_balance(self, wallet_address: str) -> WalletBalance:
        self.calls.append(("balance", wallet_address))
        if wallet_address in self.fail_wallets:
            raise RuntimeError("upstream exploded")
        return self.balances.get(wallet_address, WalletBalance())

    async def get_wallet_transactions(
        self, wallet_address: str, options: TxQueryOptions | None = None
    ) -> list[TransferEvent] | None:
        self.calls.append(("transactions", wallet_address))
        return self.transfers.get(wallet_address)

    async def get_deployed_tokens(self, wallet_address: str) -> list[DeployedToken]:
        self.calls.append(("deployed", wallet_address))
        return self.deployed.get(wallet_address, [])


def make_event(
    tx_hash: str,
    *,
    asset: str = SOL_TOKEN_A,
    frm: str = "",
    to: str = "",
    amount: str | int = 1,
    ts: int = 1_700_000_000,
    source: str | None = None,
) -> TransferEvent:
    return TransferEvent(
        tx_hash=tx_hash,
        timestamp=ts,
        from_address=frm,
        to_address=to,
        asset_id=asset,
        amount=Decimal(str(amount)),
        source=source,
    )


def make_holder(owner: str, balance: str | int, *, account: str | None = None, pct: float = 1.0) -> HolderEntry:
    return HolderEntry(
        owner_address=owner,
        account_address=account or owner,
        balance=Decimal(str(balance)),
        percentage=pct,
    )


@pytest.fixture
def cache() -> StalenessCache:
    return StalenessCache(max_size=500)


@pytest.fixture
def fake_solana() -> FakeProvider:
    return FakeProvider(ChainId.SOLANA)


@pytest.fixture
def registry_for():
    """Build a registry from fake providers keyed by their chain."""

    def build(*providers: FakeProvider) -> ProviderRegistry:
        return ProviderRegistry({p.config.id: p for p in providers})

    return build
