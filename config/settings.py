from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Helius (Solana RPC + Enhanced API)
    helius_api_key: str = ""
    helius_rpc_url: str = ""
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"  # used when no Helius key

    # Etherscan-family explorers (EVM)
    basescan_api_key: str = ""
    basescan_api_url: str = "https://api.basescan.org/api"
    bscscan_api_key: str = ""
    bscscan_api_url: str = "https://api.bscscan.com/api"

    # Token buckets per upstream: capacity + refill (tokens/sec)
    dexscreener_max_tokens: float = 60.0
    dexscreener_refill_rate: float = 1.0
    helius_max_tokens: float = 10.0
    helius_refill_rate: float = 0.16
    basescan_max_tokens: float = 5.0
    basescan_refill_rate: float = 0.08
    bscscan_max_tokens: float = 5.0
    bscscan_refill_rate: float = 0.08

    # Staleness cache
    cache_max_size: int = 500

    # Batching (batch b+1 starts after batch b settles)
    trader_batch_size: int = 5
    tx_fallback_batch_size: int = 8
    account_batch_size: int = 100

    # Top traders
    top_traders_holder_limit: int = 50
    top_traders_max_results: int = 50
    top_traders_history_pages: int = 1  # 100 swaps per page

    # Common traders
    common_traders_holder_limit: int = 50
    common_traders_max_results: int = 100
    common_traders_min_tokens: int = 2
    common_traders_max_tokens: int = 10

    # Trade history drill-down
    trade_history_max_pages: int = 3
    trade_history_page_limit: int = 100

    # Deployed token status thresholds
    rug_liquidity_usd: float = 100.0  # below this the LP is considered pulled
    dead_liquidity_usd: float = 1000.0

    def rate_limits(self) -> dict[str, tuple[float, float]]:
        """Upstream key → (capacity, refill per second)."""
        return {
            "dexscreener": (self.dexscreener_max_tokens, self.dexscreener_refill_rate),
            "helius": (self.helius_max_tokens, self.helius_refill_rate),
            "basescan": (self.basescan_max_tokens, self.basescan_refill_rate),
            "bscscan": (self.bscscan_max_tokens, self.bscscan_refill_rate),
        }


settings = Settings()
