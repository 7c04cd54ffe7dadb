from unittest.mock import AsyncMock

import pytest

from config.settings import Settings
from src.chains.evm import EvmProvider
from src.chains.registry import ProviderRegistry, build_default_registry
from src.chains.solana import SolanaProvider
from src.exceptions import UnsupportedChainError
from src.models.chain import ChainId
from src.parsers.rate_limiter import RateLimitGateway


class TestDefaultRegistry:
    def test_all_chains_wired(self) -> None:
        settings = Settings(_env_file=None)
        registry = build_default_registry(settings, RateLimitGateway(settings.rate_limits()))

        assert set(registry.chains) == {ChainId.SOLANA, ChainId.BASE, ChainId.BSC}
        assert isinstance(registry.get(ChainId.SOLANA), SolanaProvider)
        assert isinstance(registry.get("base"), EvmProvider)
        assert registry.get(" BSC ").config.native_symbol == "BNB"

    def test_unknown_chain(self) -> None:
        settings = Settings(_env_file=None)
        registry = build_default_registry(settings, RateLimitGateway(settings.rate_limits()))

        with pytest.raises(UnsupportedChainError):
            registry.get("ethereum")


class TestProviderRegistry:
    def test_configured_but_missing_provider(self) -> None:
        registry = ProviderRegistry({ChainId.SOLANA: AsyncMock()})

        with pytest.raises(UnsupportedChainError):
            registry.get(ChainId.BASE)

    @pytest.mark.asyncio
    async def test_close_releases_providers_and_shared_clients(self) -> None:
        solana, base, shared = AsyncMock(), AsyncMock(), AsyncMock()
        registry = ProviderRegistry({ChainId.SOLANA: solana, ChainId.BASE: base}, shared=[shared])

        await registry.close()

        solana.close.assert_awaited_once()
        base.close.assert_awaited_once()
        shared.close.assert_awaited_once()
