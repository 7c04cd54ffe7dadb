"""Helius API client — Solana RPC, DAS assets and enhanced transaction history.

Every method degrades to None / [] / {} on upstream failure; callers never
see an exception for a bad response.
"""

import asyncio
from decimal import Decimal, InvalidOperation
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

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
from src.parsers.rate_limiter import Limiter, TokenBucket

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]
PUBLIC_RPC_URL = "https://api.mainnet-beta.solana.com"
API_URL = "https://api.helius.xyz/v0"


class HeliusClient:
    """Async HTTP client for Helius RPC + Enhanced API."""

    def __init__(
        self,
        api_key: str,
        rpc_url: str = "",
        rate_limiter: Limiter | None = None,
        *,
        fallback_rpc_url: str = PUBLIC_RPC_URL,
    ) -> None:
        self._api_key = api_key
        if rpc_url and not rpc_url.endswith("api-key="):
            self._rpc_url = rpc_url
        elif api_key:
            self._rpc_url = f"https://mainnet.helius-rpc.com/?api-key={api_key}"
        else:
            self._rpc_url = fallback_rpc_url
        self._api_url = API_URL
        self._rate_limiter = rate_limiter or TokenBucket(10, 0.16)
        self._client = httpx.AsyncClient(timeout=15.0)

    async def close(self) -> None:
        await self._client.aclose()

    async def _rpc(self, method: str, params: Any) -> Any | None:
        """JSON-RPC call with retry on 429/timeout. Returns ``result`` or None."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        for attempt in range(MAX_RETRIES + 1):
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.post(self._rpc_url, json=payload)

                if resp.status_code == 429:
                    await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                    continue
                if resp.status_code != 200:
                    logger.debug(f"[HELIUS] {method} HTTP {resp.status_code}")
                    return None

                data = resp.json()
                if "error" in data:
                    logger.debug(f"[HELIUS] {method} RPC error: {data['error']}")
                    return None
                return data.get("result")

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                else:
                    logger.warning(f"[HELIUS] {method} failed: {e}")
                    return None
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[HELIUS] {method} bad response: {e}")
                return None

        return None

    async def _api_get(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        """GET on the Enhanced API. Needs an API key."""
        if not self._api_key:
            return None
        query = {"api-key": self._api_key, **(params or {})}

        for attempt in range(MAX_RETRIES + 1):
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(f"{self._api_url}{path}", params=query)

                if resp.status_code == 429:
                    await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                    continue
                if resp.status_code != 200:
                    logger.debug(f"[HELIUS] HTTP {resp.status_code} for {path}")
                    return None
                return resp.json()

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                else:
                    logger.warning(f"[HELIUS] GET {path} failed: {e}")
                    return None
            except (httpx.HTTPError, ValueError) as e:
                logger.warning(f"[HELIUS] GET {path} bad response: {e}")
                return None

        return None

    async def get_mint_info(self, mint: str) -> HeliusMintInfo | None:
        result = await self._rpc("getAccountInfo", [mint, {"encoding": "jsonParsed"}])
        try:
            info = result["value"]["data"]["parsed"]["info"]
            return HeliusMintInfo(
                supply=int(info.get("supply", 0)),
                decimals=int(info.get("decimals", 0)),
                mint_authority=info.get("mintAuthority"),
                freeze_authority=info.get("freezeAuthority"),
            )
        except (KeyError, TypeError, ValueError):
            return None

    async def get_token_largest_accounts(self, mint: str) -> list[HeliusLargestAccount]:
        """Top token accounts for a mint (RPC caps this at 20)."""
        result = await self._rpc("getTokenLargestAccounts", [mint])
        if not isinstance(result, dict):
            return []
        accounts = []
        for acct in result.get("value") or []:
            try:
                accounts.append(
                    HeliusLargestAccount(
                        address=acct["address"],
                        amount=str(acct.get("amount", "0")),
                        decimals=int(acct.get("decimals", 0)),
                        ui_amount=_to_decimal(acct.get("uiAmountString") or acct.get("uiAmount")),
                    )
                )
            except (KeyError, ValidationError):
                continue
        return accounts

    async def get_multiple_account_owners(
        self, accounts: list[str], *, batch_size: int = 100
    ) -> dict[str, str]:
        """Resolve token accounts to their owner wallets.

        Batches of ``batch_size`` (getMultipleAccounts caps at 100). Accounts
        that cannot be resolved are simply absent from the result.
        """
        owners: dict[str, str] = {}
        for start in range(0, len(accounts), batch_size):
            batch = accounts[start:start + batch_size]
            result = await self._rpc("getMultipleAccounts", [batch, {"encoding": "jsonParsed"}])
            if not isinstance(result, dict):
                continue
            for address, account in zip(batch, result.get("value") or []):
                try:
                    owner = account["data"]["parsed"]["info"]["owner"]
                except (KeyError, TypeError):
                    continue
                if owner:
                    owners[address] = owner
        return owners

    async def get_asset(self, asset_id: str) -> HeliusAsset | None:
        """Fetch asset metadata via Helius DAS getAsset. 10 credits per call."""
        if not self._api_key:
            return None
        result = await self._rpc("getAsset", {"id": asset_id})
        if not isinstance(result, dict):
            return None
        return _parse_asset(result)

    async def get_assets_by_owner(
        self, owner: str, *, limit: int = 100
    ) -> tuple[list[HeliusAsset], HeliusNativeBalance | None] | None:
        """Fungible holdings + native SOL balance. None on failure."""
        if not self._api_key:
            return None
        result = await self._rpc(
            "getAssetsByOwner",
            {
                "ownerAddress": owner,
                "displayOptions": {"showFungible": True, "showNativeBalance": True},
                "limit": limit,
            },
        )
        if not isinstance(result, dict):
            return None

        assets = [
            asset
            for item in result.get("items") or []
            if (asset := _parse_asset(item)) is not None and item.get("token_info")
        ]
        native = None
        nb = result.get("nativeBalance")
        if isinstance(nb, dict):
            native = HeliusNativeBalance(
                lamports=int(nb.get("lamports", 0)),
                price_per_sol=_to_decimal_or_none(nb.get("price_per_sol")),
                total_price=_to_decimal_or_none(nb.get("total_price")),
            )
        return assets, native

    async def get_balance(self, address: str) -> int | None:
        """Native balance in lamports."""
        result = await self._rpc("getBalance", [address])
        if isinstance(result, dict):
            return int(result.get("value", 0))
        return None

    async def get_wallet_history(
        self,
        address: str,
        *,
        tx_type: str | None = "SWAP",
        limit: int = 100,
        max_pages: int = 1,
    ) -> list[HeliusTransaction] | None:
        """Enhanced transaction history, newest first, paged by ``before`` cursor.

        None when the first page could not be fetched; a later page failing
        keeps what was already collected.
        """
        txns: list[HeliusTransaction] = []
        before = ""
        for page in range(max_pages):
            params: dict[str, Any] = {"limit": min(limit, 100)}
            if tx_type:
                params["type"] = tx_type
            if before:
                params["before"] = before

            data = await self._api_get(f"/addresses/{address}/transactions", params)
            if not isinstance(data, list):
                return txns if page else None

            for raw in data:
                try:
                    txns.append(_parse_tx(raw))
                except (ValidationError, TypeError, AttributeError) as e:
                    logger.debug(f"[HELIUS] skipping malformed tx: {e}")

            if len(data) < params["limit"]:
                break
            before = data[-1].get("signature", "") if isinstance(data[-1], dict) else ""
            if not before:
                break
        return txns

    async def get_signatures_for_address(
        self, address: str, *, limit: int = 50, before: str = ""
    ) -> list[HeliusSignature]:
        """Fetch transaction signatures for an address via RPC."""
        params: dict[str, Any] = {"limit": min(limit, 1000)}
        if before:
            params["before"] = before

        result = await self._rpc("getSignaturesForAddress", [address, params])
        if not isinstance(result, list):
            return []
        return [
            HeliusSignature(
                signature=sig.get("signature", ""),
                slot=sig.get("slot", 0),
                timestamp=sig.get("blockTime") or 0,
                err=sig.get("err"),
            )
            for sig in result
        ]

    async def get_transaction(self, signature: str) -> HeliusRawTransaction | None:
        """Plain RPC transaction reduced to per-owner token balance deltas."""
        result = await self._rpc(
            "getTransaction",
            [signature, {"encoding": "jsonParsed", "maxSupportedTransactionVersion": 0}],
        )
        if not isinstance(result, dict):
            return None
        return _parse_raw_tx(signature, result)


def _to_decimal(value: Any) -> Decimal:
    parsed = _to_decimal_or_none(value)
    return parsed if parsed is not None else Decimal("0")


def _to_decimal_or_none(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _parse_asset(data: dict) -> HeliusAsset | None:
    asset_id = data.get("id")
    if not asset_id:
        return None
    content = data.get("content") or {}
    metadata = content.get("metadata") or {}
    links = content.get("links") or {}
    token_info = data.get("token_info") or {}
    price_info = token_info.get("price_info") or {}
    try:
        return HeliusAsset(
            id=asset_id,
            name=metadata.get("name") or None,
            symbol=metadata.get("symbol") or token_info.get("symbol") or None,
            description=metadata.get("description") or None,
            image=links.get("image") or None,
            decimals=int(token_info.get("decimals") or 0),
            supply=int(token_info["supply"]) if token_info.get("supply") is not None else None,
            balance=int(token_info.get("balance") or 0),
            price_per_token=_to_decimal_or_none(price_info.get("price_per_token")),
            total_price=_to_decimal_or_none(price_info.get("total_price")),
        )
    except (ValidationError, ValueError, TypeError) as e:
        logger.debug(f"[HELIUS] malformed asset {asset_id}: {e}")
        return None


def _parse_tx(data: dict) -> HeliusTransaction:
    """Parse raw Helius enhanced transaction."""
    token_transfers = [
        HeliusTokenTransfer(
            from_user_account=t.get("fromUserAccount") or "",
            to_user_account=t.get("toUserAccount") or "",
            from_token_account=t.get("fromTokenAccount") or "",
            to_token_account=t.get("toTokenAccount") or "",
            token_amount=_to_decimal(t.get("tokenAmount")),
            mint=t.get("mint") or "",
            token_standard=t.get("tokenStandard") or "",
        )
        for t in data.get("tokenTransfers") or []
    ]

    native_transfers = [
        HeliusNativeTransfer(
            from_user_account=t.get("fromUserAccount") or "",
            to_user_account=t.get("toUserAccount") or "",
            amount=t.get("amount", 0),
        )
        for t in data.get("nativeTransfers") or []
    ]

    return HeliusTransaction(
        signature=data.get("signature", ""),
        type=data.get("type", ""),
        source=data.get("source", ""),
        fee=data.get("fee", 0),
        fee_payer=data.get("feePayer", ""),
        timestamp=data.get("timestamp") or 0,
        description=data.get("description", ""),
        token_transfers=token_transfers,
        native_transfers=native_transfers,
        transaction_error=data.get("transactionError"),
    )


def _parse_raw_tx(signature: str, data: dict) -> HeliusRawTransaction:
    meta = data.get("meta") or {}
    pre: dict[tuple[str, str], Decimal] = {}
    post: dict[tuple[str, str], Decimal] = {}
    for source, target in ((meta.get("preTokenBalances") or [], pre), (meta.get("postTokenBalances") or [], post)):
        for bal in source:
            owner = bal.get("owner")
            mint = bal.get("mint")
            if not owner or not mint:
                continue
            ui = (bal.get("uiTokenAmount") or {}).get("uiAmountString")
            key = (owner, mint)
            target[key] = target.get(key, Decimal("0")) + _to_decimal(ui)

    changes = []
    for key in sorted(set(pre) | set(post)):
        delta = post.get(key, Decimal("0")) - pre.get(key, Decimal("0"))
        if delta != 0:
            changes.append(HeliusBalanceChange(owner=key[0], mint=key[1], delta=delta))

    return HeliusRawTransaction(
        signature=signature,
        timestamp=data.get("blockTime") or 0,
        err=meta.get("err"),
        balance_changes=changes,
    )
