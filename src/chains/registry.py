from config.settings import Settings
from src.chains.base import ChainProvider
from src.chains.evm import EvmProvider
from src.chains.solana import SolanaProvider
from src.exceptions import UnsupportedChainError
from src.models.chain import ChainId, parse_chain
from src.parsers.dexscreener.client import DexScreenerClient
from src.parsers.etherscan.client import EtherscanClient
from src.parsers.helius.client import HeliusClient
from src.parsers.rate_limiter import RateLimitGateway


class ProviderRegistry:
    """Chain → provider, chosen once at startup."""

    def __init__(self, providers: dict[ChainId, ChainProvider], *, shared: list | None = None) -> None:
        self._providers = dict(providers)
        # Clients used by several providers, closed once
        self._shared = shared or []

    @property
    def chains(self) -> list[ChainId]:
        return list(self._providers)

    def get(self, chain: ChainId | str) -> ChainProvider:
        chain_id = parse_chain(chain) if not isinstance(chain, ChainId) else chain
        provider = self._providers.get(chain_id)
        if provider is None:
            raise UnsupportedChainError(f"No provider configured for {chain_id}")
        return provider

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()
        for client in self._shared:
            await client.close()


def build_default_registry(settings: Settings, gateway: RateLimitGateway) -> ProviderRegistry:
    dexscreener = DexScreenerClient(rate_limiter=gateway.limiter("dexscreener"))
    status_thresholds = {
        "rug_liquidity_usd": settings.rug_liquidity_usd,
        "dead_liquidity_usd": settings.dead_liquidity_usd,
    }

    solana = SolanaProvider(
        HeliusClient(
            settings.helius_api_key,
            settings.helius_rpc_url,
            rate_limiter=gateway.limiter("helius"),
            fallback_rpc_url=settings.solana_rpc_url,
        ),
        dexscreener,
        tx_fallback_batch_size=settings.tx_fallback_batch_size,
        account_batch_size=settings.account_batch_size,
        **status_thresholds,
    )
    base = EvmProvider(
        ChainId.BASE,
        EtherscanClient(
            settings.basescan_api_url,
            settings.basescan_api_key,
            rate_limiter=gateway.limiter("basescan"),
            name="basescan",
        ),
        dexscreener,
        **status_thresholds,
    )
    bsc = EvmProvider(
        ChainId.BSC,
        EtherscanClient(
            settings.bscscan_api_url,
            settings.bscscan_api_key,
            rate_limiter=gateway.limiter("bscscan"),
            name="bscscan",
        ),
        dexscreener,
        **status_thresholds,
    )
    return ProviderRegistry(
        {ChainId.SOLANA: solana, ChainId.BASE: base, ChainId.BSC: bsc},
        shared=[dexscreener],
    )
