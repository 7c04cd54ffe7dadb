import asyncio

import httpx
from loguru import logger

from src.parsers.dexscreener.models import DexScreenerPair
from src.parsers.rate_limiter import Limiter, TokenBucket

BASE_URL = "https://api.dexscreener.com"
MAX_RETRIES = 3
RETRY_DELAYS = [1.0, 2.0, 4.0]
BATCH_LIMIT = 30  # addresses per /tokens/v1 request


class DexScreenerClient:
    """Async REST client for DexScreener public API (no auth required).

    Shared by every chain provider; the chain is passed per call.
    """

    def __init__(self, rate_limiter: Limiter | None = None) -> None:
        self._client = httpx.AsyncClient(
            base_url=BASE_URL,
            timeout=10.0,
            headers={"Accept": "application/json"},
        )
        self._rate_limiter = rate_limiter or TokenBucket(60, 1.0)

    async def _request_with_retry(self, path: str) -> httpx.Response:
        """Execute GET with retry on 429/timeout."""
        for attempt in range(MAX_RETRIES):
            await self._rate_limiter.acquire()
            try:
                response = await self._client.get(path)
                if response.status_code == 429:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    retry_after = response.headers.get("Retry-After")
                    if retry_after:
                        delay = max(float(retry_after), delay)
                    logger.debug(f"[DEXSCREENER] 429 rate limited, retrying in {delay}s")
                    await asyncio.sleep(delay)
                    continue
                response.raise_for_status()
                return response
            except (httpx.TimeoutException, httpx.ConnectError) as e:
                if attempt < MAX_RETRIES - 1:
                    delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
                    logger.debug(f"[DEXSCREENER] {type(e).__name__}, retrying in {delay}s")
                    await asyncio.sleep(delay)
                else:
                    raise
        # Final attempt, no retry
        await self._rate_limiter.acquire()
        response = await self._client.get(path)
        response.raise_for_status()
        return response

    async def get_token_pairs(self, chain_id: str, token_address: str) -> list[DexScreenerPair]:
        """Get all pairs for a token, most liquid first."""
        response = await self._request_with_retry(f"/tokens/v1/{chain_id}/{token_address}")
        return _sort_by_liquidity(_parse_pairs(response.json()))

    async def get_tokens_batch(self, chain_id: str, addresses: list[str]) -> list[DexScreenerPair]:
        """Get pairs for many tokens, BATCH_LIMIT per request."""
        pairs: list[DexScreenerPair] = []
        for start in range(0, len(addresses), BATCH_LIMIT):
            addr_str = ",".join(addresses[start:start + BATCH_LIMIT])
            response = await self._request_with_retry(f"/tokens/v1/{chain_id}/{addr_str}")
            pairs.extend(_parse_pairs(response.json()))
        return _sort_by_liquidity(pairs)

    async def close(self) -> None:
        await self._client.aclose()


def _parse_pairs(data: object) -> list[DexScreenerPair]:
    # /tokens/v1 returns a bare list; older endpoints wrap it in {"pairs": [...]}
    if isinstance(data, dict):
        data = data.get("pairs", data.get("pair", []))
        if not isinstance(data, list):
            data = [data] if data else []
    if not isinstance(data, list):
        return []
    return [DexScreenerPair.model_validate(p) for p in data]


def _sort_by_liquidity(pairs: list[DexScreenerPair]) -> list[DexScreenerPair]:
    return sorted(pairs, key=lambda p: p.liquidity_usd, reverse=True)
