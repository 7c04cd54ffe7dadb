"""Etherscan-family explorer client (Basescan, BscScan share one API shape).

Returns None / [] when the explorer is down, rate limited past retries,
or answers with status "0" with an error message. "No transactions found"
is also status "0" but carries an empty list, which is returned as-is.
"""

import asyncio
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from src.parsers.etherscan.models import (
    EtherscanTokenBalance,
    EtherscanTokenHolder,
    EtherscanTokenTx,
    EtherscanTx,
)
from src.parsers.rate_limiter import Limiter, TokenBucket

MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class EtherscanClient:
    """Async client for one Etherscan-compatible explorer."""

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        rate_limiter: Limiter | None = None,
        *,
        name: str = "etherscan",
    ) -> None:
        self._api_url = api_url
        self._api_key = api_key
        self._tag = name.upper()
        self._rate_limiter = rate_limiter or TokenBucket(5, 0.08)
        self._client = httpx.AsyncClient(timeout=15.0, headers={"Accept": "application/json"})

    async def close(self) -> None:
        await self._client.aclose()

    async def _fetch(self, params: dict[str, str]) -> Any | None:
        query = {**params, "apikey": self._api_key}

        for attempt in range(MAX_RETRIES + 1):
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(self._api_url, params=query)

                if resp.status_code == 429:
                    await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                    continue
                if resp.status_code != 200:
                    logger.debug(f"[{self._tag}] HTTP {resp.status_code} for {params.get('action')}")
                    return None

                data = resp.json()
                if str(data.get("status")) == "0":
                    result = data.get("result")
                    if result == []:
                        return result
                    # Explorer throttling comes back as status 0 with a 200
                    if isinstance(result, str) and "rate limit" in result.lower() and attempt < MAX_RETRIES:
                        await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                        continue
                    logger.debug(f"[{self._tag}] {params.get('action')}: {data.get('message')} {result}")
                    return None
                return data.get("result")

            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES:
                    await asyncio.sleep(RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)])
                else:
                    logger.warning(f"[{self._tag}] {params.get('action')} failed: {e}")
                    return None
            except (httpx.HTTPError, ValueError, AttributeError) as e:
                logger.warning(f"[{self._tag}] {params.get('action')} bad response: {e}")
                return None

        return None

    async def get_balance(self, address: str) -> int | None:
        """Native balance in wei."""
        result = await self._fetch(
            {"module": "account", "action": "balance", "address": address, "tag": "latest"}
        )
        try:
            return int(result) if result is not None else None
        except (TypeError, ValueError):
            return None

    async def get_token_balances(self, address: str, *, limit: int = 50) -> list[EtherscanTokenBalance]:
        result = await self._fetch(
            {
                "module": "account",
                "action": "addresstokenbalance",
                "address": address,
                "page": "1",
                "offset": str(limit),
            }
        )
        return _parse_list(result, EtherscanTokenBalance, self._tag)

    async def get_normal_tx_list(self, address: str, *, limit: int = 50) -> list[EtherscanTx]:
        result = await self._fetch(
            {
                "module": "account",
                "action": "txlist",
                "address": address,
                "startblock": "0",
                "endblock": "99999999",
                "page": "1",
                "offset": str(limit),
                "sort": "desc",
            }
        )
        return _parse_list(result, EtherscanTx, self._tag)

    async def get_token_tx_list(
        self,
        address: str,
        *,
        contract_address: str | None = None,
        limit: int = 100,
        page: int = 1,
    ) -> list[EtherscanTokenTx] | None:
        """ERC-20 transfers touching ``address``; None when the call failed."""
        params = {
            "module": "account",
            "action": "tokentx",
            "address": address,
            "startblock": "0",
            "endblock": "99999999",
            "page": str(page),
            "offset": str(limit),
            "sort": "desc",
        }
        if contract_address:
            params["contractaddress"] = contract_address
        result = await self._fetch(params)
        if result is None:
            return None
        return _parse_list(result, EtherscanTokenTx, self._tag)

    async def get_token_decimals(self, contract_address: str) -> int | None:
        """Decimals from the newest transfer of the token."""
        result = await self._fetch(
            {
                "module": "account",
                "action": "tokentx",
                "contractaddress": contract_address,
                "page": "1",
                "offset": "1",
                "sort": "desc",
            }
        )
        txs = _parse_list(result, EtherscanTokenTx, self._tag)
        if not txs:
            return None
        try:
            return int(txs[0].tokenDecimal)
        except ValueError:
            return None

    async def get_token_supply(self, contract_address: str) -> int | None:
        """Total supply in raw units."""
        result = await self._fetch(
            {"module": "stats", "action": "tokensupply", "contractaddress": contract_address}
        )
        try:
            return int(result) if result is not None else None
        except (TypeError, ValueError):
            return None

    async def get_token_holders(self, contract_address: str, *, limit: int = 50) -> list[EtherscanTokenHolder]:
        """Top holders (API Pro endpoint on most explorers; [] without it)."""
        result = await self._fetch(
            {
                "module": "token",
                "action": "tokenholderlist",
                "contractaddress": contract_address,
                "page": "1",
                "offset": str(limit),
            }
        )
        return _parse_list(result, EtherscanTokenHolder, self._tag)


def _parse_list(result: Any, model: type, tag: str) -> list:
    if not isinstance(result, list):
        return []
    items = []
    for raw in result:
        try:
            items.append(model.model_validate(raw))
        except ValidationError as e:
            logger.debug(f"[{tag}] skipping malformed {model.__name__}: {e}")
    return items
