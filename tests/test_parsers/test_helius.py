"""Tests for the Helius client parsing and degradation paths."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.parsers.helius.client import HeliusClient, _parse_raw_tx, _parse_tx
from src.parsers.rate_limiter import TokenBucket


def _response(payload: object, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    return resp


def _client(api_key: str = "test-key") -> HeliusClient:
    return HeliusClient(api_key, rate_limiter=TokenBucket(1000, 1000.0))


def _enhanced_tx(signature: str) -> dict:
    return {
        "signature": signature,
        "type": "SWAP",
        "source": "RAYDIUM",
        "timestamp": 1700000000,
        "fee": 5000,
        "feePayer": "Wallet1",
        "tokenTransfers": [
            {
                "fromUserAccount": "Pool1",
                "toUserAccount": "Wallet1",
                "tokenAmount": 1234.5,
                "mint": "Mint1",
            }
        ],
        "nativeTransfers": [
            {"fromUserAccount": "Wallet1", "toUserAccount": "Pool1", "amount": 500000000},
        ],
    }


class TestParsers:
    def test_parse_enhanced_tx(self) -> None:
        tx = _parse_tx(_enhanced_tx("sig1"))

        assert tx.signature == "sig1"
        assert tx.source == "RAYDIUM"
        assert tx.token_transfers[0].token_amount == Decimal("1234.5")
        assert tx.native_transfers[0].amount == 500000000

    def test_parse_raw_tx_balance_deltas(self) -> None:
        raw = {
            "blockTime": 1700000100,
            "meta": {
                "err": None,
                "preTokenBalances": [
                    {"owner": "Wallet1", "mint": "Mint1", "uiTokenAmount": {"uiAmountString": "10"}},
                    {"owner": "Pool1", "mint": "Mint1", "uiTokenAmount": {"uiAmountString": "500"}},
                ],
                "postTokenBalances": [
                    {"owner": "Wallet1", "mint": "Mint1", "uiTokenAmount": {"uiAmountString": "35.5"}},
                    {"owner": "Pool1", "mint": "Mint1", "uiTokenAmount": {"uiAmountString": "474.5"}},
                    {"owner": "Wallet1", "mint": "Mint2", "uiTokenAmount": {"uiAmountString": "3"}},
                ],
            },
        }

        tx = _parse_raw_tx("sig2", raw)

        changes = {(c.owner, c.mint): c.delta for c in tx.balance_changes}
        assert changes[("Wallet1", "Mint1")] == Decimal("25.5")
        assert changes[("Pool1", "Mint1")] == Decimal("-25.5")
        assert changes[("Wallet1", "Mint2")] == Decimal("3")
        assert tx.timestamp == 1700000100


class TestHeliusClient:
    @pytest.mark.asyncio
    async def test_wallet_history_pages_with_before_cursor(self) -> None:
        client = _client()
        client._client = AsyncMock()
        page1 = [_enhanced_tx("a"), _enhanced_tx("b")]
        page2 = [_enhanced_tx("c")]
        client._client.get = AsyncMock(side_effect=[_response(page1), _response(page2)])

        txns = await client.get_wallet_history("Wallet1", limit=2, max_pages=3)

        assert [t.signature for t in txns] == ["a", "b", "c"]
        second_call = client._client.get.await_args_list[1]
        assert second_call.kwargs["params"]["before"] == "b"

    @pytest.mark.asyncio
    async def test_wallet_history_none_when_first_page_fails(self) -> None:
        client = _client()
        client._client = AsyncMock()
        client._client.get = AsyncMock(return_value=_response({"error": "bad"}, status=500))

        assert await client.get_wallet_history("Wallet1") is None

    @pytest.mark.asyncio
    async def test_no_api_key_skips_enhanced_api(self) -> None:
        client = _client(api_key="")
        client._client = AsyncMock()

        assert await client.get_wallet_history("Wallet1") is None
        assert await client.get_assets_by_owner("Wallet1") is None
        client._client.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_account_owners_resolved_in_batches(self) -> None:
        client = _client()
        client._client = AsyncMock()

        def owners_for(url, json):
            accounts = json["params"][0]
            value = [
                {"data": {"parsed": {"info": {"owner": f"owner-{a}"}}}} if a != "acct1" else None
                for a in accounts
            ]
            return _response({"jsonrpc": "2.0", "id": 1, "result": {"value": value}})

        client._client.post = AsyncMock(side_effect=owners_for)

        owners = await client.get_multiple_account_owners(["acct0", "acct1", "acct2"], batch_size=2)

        assert owners == {"acct0": "owner-acct0", "acct2": "owner-acct2"}
        assert client._client.post.await_count == 2

    @pytest.mark.asyncio
    async def test_rpc_error_degrades_to_none(self) -> None:
        client = _client()
        client._client = AsyncMock()
        client._client.post = AsyncMock(
            return_value=_response({"jsonrpc": "2.0", "id": 1, "error": {"code": -32602, "message": "bad"}})
        )

        assert await client.get_mint_info("Mint1") is None
        assert await client.get_token_largest_accounts("Mint1") == []

    @pytest.mark.asyncio
    async def test_connect_error_degrades_after_retries(self, monkeypatch) -> None:
        monkeypatch.setattr("src.parsers.helius.client.RETRY_DELAYS", [0.0, 0.0])
        client = _client()
        client._client = AsyncMock()
        client._client.post = AsyncMock(side_effect=httpx.ConnectError("down"))

        assert await client.get_balance("Wallet1") is None
        assert client._client.post.await_count == 3

    @pytest.mark.asyncio
    async def test_largest_accounts_and_mint_supply(self) -> None:
        client = _client()
        client._client = AsyncMock()
        client._client.post = AsyncMock(
            side_effect=[
                _response(
                    {
                        "result": {
                            "value": [
                                {"address": "acct0", "amount": "5000000", "decimals": 6, "uiAmountString": "5"},
                            ]
                        }
                    }
                ),
                _response(
                    {
                        "result": {
                            "value": {
                                "data": {
                                    "parsed": {
                                        "info": {"supply": "100000000", "decimals": 6, "mintAuthority": None}
                                    }
                                }
                            }
                        }
                    }
                ),
            ]
        )

        accounts = await client.get_token_largest_accounts("Mint1")
        mint = await client.get_mint_info("Mint1")

        assert accounts[0].ui_amount == Decimal("5")
        assert mint is not None
        assert mint.ui_supply == Decimal("100")
        assert mint.mint_authority is None
