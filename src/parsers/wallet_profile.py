import asyncio
from decimal import Decimal

from loguru import logger

from src.chains.registry import ProviderRegistry
from src.models.chain import ChainId, normalize_address, parse_chain, validate_address
from src.models.trade import WalletProfile
from src.models.wallet import WalletBalance
from src.parsers.cache import CACHE_TTL, StalenessCache
from src.parsers.deployer_score import score_deployer


async def build_wallet_profile(
    registry: ProviderRegistry,
    cache: StalenessCache,
    chain: ChainId | str,
    address: str,
) -> WalletProfile:
    """Balance, deployed tokens and deployer reputation of one wallet.

    Balance and deployed-token lookups are independent: either failing
    leaves its part empty without affecting the other.
    """
    chain_id = parse_chain(chain)
    provider = registry.get(chain_id)
    address = validate_address(chain_id, address)

    cache_key = f"wallet:{chain_id}:{normalize_address(chain_id, address)}"
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    balance_result, deployed_result = await asyncio.gather(
        provider.get_wallet_balance(address),
        provider.get_deployed_tokens(address),
        return_exceptions=True,
    )
    if isinstance(balance_result, Exception):
        logger.warning(f"[WALLET] Balance lookup failed for {address[:12]}: {balance_result}")
        balance_result = WalletBalance()
    if isinstance(deployed_result, Exception):
        logger.warning(f"[WALLET] Deployed tokens lookup failed for {address[:12]}: {deployed_result}")
        deployed_result = []

    profile = WalletProfile(
        address=address,
        chain=chain_id,
        native_balance=balance_result.native_balance,
        native_balance_usd=balance_result.native_balance_usd,
        total_portfolio_usd=balance_result.total_portfolio_usd or Decimal("0"),
        tokens=balance_result.tokens,
        is_deployer=bool(deployed_result),
        deployed_tokens=deployed_result,
        deployer_score=score_deployer(deployed_result) if deployed_result else None,
    )
    cache.set(cache_key, profile, CACHE_TTL["token_meta"])
    return profile
