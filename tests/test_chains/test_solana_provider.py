"""Tests for the Solana chain provider over mocked Helius / DexScreener clients."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.chains.solana import NATIVE_MINT, SolanaProvider
from src.models.token import DeployedTokenStatus
from src.models.trade import TradeInference
from src.models.wallet import TxQueryOptions
from src.parsers.dexscreener.models import DexScreenerPair
from src.parsers.helius.models import (
    HeliusAsset,
    HeliusBalanceChange,
    HeliusLargestAccount,
    HeliusMintInfo,
    HeliusNativeBalance,
    HeliusNativeTransfer,
    HeliusRawTransaction,
    HeliusSignature,
    HeliusTokenTransfer,
    HeliusTransaction,
)
from tests.conftest import SOL_TOKEN_A, SOL_WALLET_A

USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def _provider(helius: MagicMock | None = None, dexscreener: MagicMock | None = None) -> SolanaProvider:
    return SolanaProvider(helius or AsyncMock(), dexscreener or AsyncMock(), tx_fallback_batch_size=2)


def _pair(address: str, liquidity: float, volume: float = 1000.0) -> DexScreenerPair:
    return DexScreenerPair.model_validate(
        {
            "pairAddress": f"pair-{address}",
            "baseToken": {"address": address, "symbol": "TKN", "name": "Token"},
            "priceUsd": "0.01",
            "liquidity": {"usd": liquidity},
            "volume": {"h24": volume},
        }
    )


class TestAttributes:
    def test_net_delta_and_whole_wallet_history(self) -> None:
        provider = _provider()
        assert provider.trade_inference == TradeInference.NET_DELTA
        assert provider.filters_by_token is False
        assert provider.config.native_symbol == "SOL"


class TestTopHolders:
    @pytest.mark.asyncio
    async def test_owner_resolution_and_percentages(self) -> None:
        helius = AsyncMock()
        helius.get_token_largest_accounts.return_value = [
            HeliusLargestAccount(address="acct0", ui_amount=Decimal("250")),
            HeliusLargestAccount(address="acct1", ui_amount=Decimal("100")),
        ]
        helius.get_mint_info.return_value = HeliusMintInfo(supply=1000, decimals=0)
        helius.get_multiple_account_owners.return_value = {"acct0": "OwnerWallet0"}

        holders = await _provider(helius).get_top_holders(SOL_TOKEN_A, 20)

        assert holders[0].owner_address == "OwnerWallet0"
        assert holders[0].account_address == "acct0"
        assert holders[0].percentage == pytest.approx(25.0)
        assert holders[1].owner_address == "acct1"  # unresolved keeps the account

    @pytest.mark.asyncio
    async def test_no_accounts(self) -> None:
        helius = AsyncMock()
        helius.get_token_largest_accounts.return_value = []

        assert await _provider(helius).get_top_holders(SOL_TOKEN_A) == []
        helius.get_mint_info.assert_not_called()


class TestWalletTransactions:
    @pytest.mark.asyncio
    async def test_enhanced_history_to_events(self) -> None:
        helius = AsyncMock()
        helius.get_wallet_history.return_value = [
            HeliusTransaction(
                signature="sig1",
                source="JUPITER",
                timestamp=100,
                token_transfers=[
                    HeliusTokenTransfer(
                        from_user_account="Pool",
                        to_user_account=SOL_WALLET_A,
                        token_amount=Decimal("42"),
                        mint=SOL_TOKEN_A,
                    )
                ],
                native_transfers=[
                    HeliusNativeTransfer(from_user_account=SOL_WALLET_A, to_user_account="Pool", amount=1_500_000_000)
                ],
            ),
            HeliusTransaction(signature="failed", transaction_error={"InstructionError": [0, "x"]}),
        ]

        events = await _provider(helius).get_wallet_transactions(SOL_WALLET_A, TxQueryOptions(max_pages=2))

        assert {e.tx_hash for e in events} == {"sig1"}
        token_event = next(e for e in events if e.asset_id == SOL_TOKEN_A)
        assert token_event.amount == Decimal("42")
        assert token_event.source == "JUPITER"
        native_event = next(e for e in events if e.asset_id == NATIVE_MINT)
        assert native_event.amount == Decimal("1.5")
        helius.get_wallet_history.assert_awaited_once_with(SOL_WALLET_A, tx_type="SWAP", limit=100, max_pages=2)

    @pytest.mark.asyncio
    async def test_rpc_fallback_from_balance_deltas(self) -> None:
        helius = AsyncMock()
        helius.get_wallet_history.return_value = None
        helius.get_signatures_for_address.return_value = [
            HeliusSignature(signature="s1"),
            HeliusSignature(signature="s2", err={"fail": 1}),
            HeliusSignature(signature="s3"),
        ]
        raw = {
            "s1": HeliusRawTransaction(
                signature="s1",
                timestamp=10,
                balance_changes=[
                    HeliusBalanceChange(owner=SOL_WALLET_A, mint=SOL_TOKEN_A, delta=Decimal("12")),
                    HeliusBalanceChange(owner="Pool", mint=SOL_TOKEN_A, delta=Decimal("-12")),
                ],
            ),
            "s3": HeliusRawTransaction(
                signature="s3",
                timestamp=20,
                balance_changes=[HeliusBalanceChange(owner=SOL_WALLET_A, mint=SOL_TOKEN_A, delta=Decimal("-4"))],
            ),
        }
        helius.get_transaction.side_effect = lambda sig: raw.get(sig)

        events = await _provider(helius).get_wallet_transactions(SOL_WALLET_A)

        assert [(e.tx_hash, e.to_address, e.from_address, e.amount) for e in events] == [
            ("s1", SOL_WALLET_A, "", Decimal("12")),
            ("s3", "", SOL_WALLET_A, Decimal("4")),
        ]
        assert helius.get_transaction.await_count == 2  # failed signature skipped


class TestWalletBalance:
    @pytest.mark.asyncio
    async def test_assets_and_native(self) -> None:
        helius = AsyncMock()
        helius.get_assets_by_owner.return_value = (
            [
                HeliusAsset(id=USDC, symbol="USDC", decimals=6, balance=25_000_000, total_price=Decimal("25")),
                HeliusAsset(id=SOL_TOKEN_A, symbol="BONK", decimals=5, balance=100_000, total_price=Decimal("100")),
            ],
            HeliusNativeBalance(lamports=2_000_000_000, total_price=Decimal("300")),
        )

        balance = await _provider(helius).get_wallet_balance(SOL_WALLET_A)

        assert balance.native_balance == Decimal("2")
        assert balance.native_balance_usd == Decimal("300")
        assert [t.symbol for t in balance.tokens] == ["BONK", "USDC"]
        assert balance.token_balance(USDC) == Decimal("25")
        assert balance.total_portfolio_usd == Decimal("425")

    @pytest.mark.asyncio
    async def test_falls_back_to_plain_balance(self) -> None:
        helius = AsyncMock()
        helius.get_assets_by_owner.return_value = None
        helius.get_balance.return_value = 500_000_000

        balance = await _provider(helius).get_wallet_balance(SOL_WALLET_A)

        assert balance.native_balance == Decimal("0.5")
        assert balance.tokens == []


class TestPairAndMetadata:
    @pytest.mark.asyncio
    async def test_pair_lookup_failure_is_none(self) -> None:
        dexscreener = AsyncMock()
        dexscreener.get_token_pairs.side_effect = httpx.ConnectError("down")

        assert await _provider(dexscreener=dexscreener).get_pair_data(SOL_TOKEN_A) is None

    @pytest.mark.asyncio
    async def test_metadata_falls_back_to_pair(self) -> None:
        helius = AsyncMock()
        helius.get_asset.return_value = None
        dexscreener = AsyncMock()
        dexscreener.get_token_pairs.return_value = [_pair(SOL_TOKEN_A, 5000)]

        meta = await _provider(helius, dexscreener).get_token_metadata(SOL_TOKEN_A)

        assert meta is not None
        assert meta.symbol == "TKN"


class TestDeployedTokens:
    @pytest.mark.asyncio
    async def test_created_mints_with_status(self) -> None:
        helius = AsyncMock()
        helius.get_wallet_history.return_value = [
            HeliusTransaction(
                signature="c1",
                type="CREATE",
                timestamp=111,
                token_transfers=[HeliusTokenTransfer(to_user_account="Curve", token_amount=Decimal("1e9"), mint="MintLive")],
            ),
            HeliusTransaction(
                signature="c2",
                type="CREATE",
                timestamp=222,
                token_transfers=[HeliusTokenTransfer(to_user_account="Curve", token_amount=Decimal("1e9"), mint="MintRug")],
            ),
            HeliusTransaction(
                signature="c3",
                type="CREATE",
                timestamp=333,
                token_transfers=[HeliusTokenTransfer(to_user_account="Curve", token_amount=Decimal("1e9"), mint="MintGone")],
            ),
        ]
        dexscreener = AsyncMock()
        dexscreener.get_tokens_batch.return_value = [_pair("MintLive", 50_000), _pair("MintRug", 12)]

        deployed = await _provider(helius, dexscreener).get_deployed_tokens(SOL_WALLET_A)

        status = {d.address: d.status for d in deployed}
        assert status == {
            "MintLive": DeployedTokenStatus.ACTIVE,
            "MintRug": DeployedTokenStatus.RUGGED,
            "MintGone": DeployedTokenStatus.UNKNOWN,
        }
        assert next(d for d in deployed if d.address == "MintLive").deployed_at == 111
        helius.get_wallet_history.assert_awaited_once_with(SOL_WALLET_A, tx_type="CREATE", limit=100)
