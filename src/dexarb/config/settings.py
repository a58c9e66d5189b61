"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dexarb.config.constants import (
    ALCHEMY_ETHEREUM_URL,
    ARBITRAGE_GAS_COST_USD,
    CHAINS,
    DEFAULT_DETECTION_INTERVAL,
    DEFAULT_DETECTION_POOL_LIMIT,
    DEFAULT_FLASH_LOAN_THRESHOLD_USD,
    DEFAULT_MAX_GAS_COST,
    DEFAULT_MAX_HOPS,
    DEFAULT_MAX_LIQUIDITY_UTILIZATION,
    DEFAULT_MAX_PRICE_IMPACT,
    DEFAULT_MAX_TRADE_SIZE_USD,
    DEFAULT_MIN_ABSOLUTE_PROFIT,
    DEFAULT_MIN_PRICE_DELTA,
    DEFAULT_MIN_ROUTE_PROFIT,
    DEFAULT_POOL_REFRESH_INTERVAL,
    DEFAULT_PRICE_CACHE_TTL,
    DEFAULT_ROUTE_CACHE_TTL,
    DEFAULT_RPC_URLS,
    DEFAULT_SLIPPAGE_FACTOR,
    DEFAULT_TOP_POOLS_PER_CHAIN,
    DEFAULT_TRADE_SIZE_USD,
    MIN_BLOCK_INTERVAL,
    RPC_MIN_CALL_INTERVAL,
    RPC_REQUESTS_PER_SECOND,
    SWAP_GAS_COST_USD,
)
from dexarb.core.types import ChainConfig, RouteConstraints


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via ``DEXARB_``-prefixed environment
    variables. RPC endpoints may embed provider keys and use SecretStr.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEXARB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Chain Connectivity
    # =========================================================================

    chains: list[str] = Field(
        default_factory=lambda: list(CHAINS),
        description="Chains to observe",
    )
    arbitrum_rpc_url: SecretStr = Field(
        default=SecretStr(DEFAULT_RPC_URLS["arbitrum"]),
        description="Arbitrum JSON-RPC endpoint",
    )
    base_rpc_url: SecretStr = Field(
        default=SecretStr(DEFAULT_RPC_URLS["base"]),
        description="Base JSON-RPC endpoint",
    )
    polygon_rpc_url: SecretStr = Field(
        default=SecretStr(DEFAULT_RPC_URLS["polygon"]),
        description="Polygon JSON-RPC endpoint",
    )
    ethereum_rpc_url: SecretStr | None = Field(
        default=None,
        description="Ethereum JSON-RPC endpoint (overrides the Alchemy URL)",
    )
    alchemy_api_key: SecretStr | None = Field(
        default=None,
        description="Alchemy key used to build the Ethereum endpoint",
    )
    rpc_requests_per_second: int = Field(
        default=RPC_REQUESTS_PER_SECOND,
        ge=1,
        le=1000,
        description="Request rate per RPC endpoint",
    )
    rpc_min_call_interval: float = Field(
        default=RPC_MIN_CALL_INTERVAL,
        ge=0.0,
        le=10.0,
        description="Minimum delay between two calls to one endpoint (seconds)",
    )

    # =========================================================================
    # Price Observer
    # =========================================================================

    price_cache_ttl: float = Field(
        default=DEFAULT_PRICE_CACHE_TTL,
        gt=0.0,
        le=300.0,
        description="Price cache entry lifetime (seconds)",
    )
    top_pools_per_chain: int = Field(
        default=DEFAULT_TOP_POOLS_PER_CHAIN,
        ge=1,
        le=10_000,
        description="Pools sampled per chain and block",
    )

    # =========================================================================
    # Pairwise Detection
    # =========================================================================

    detection_interval: float = Field(
        default=DEFAULT_DETECTION_INTERVAL,
        gt=0.0,
        description="Seconds between opportunity detection passes",
    )
    detection_pool_limit: int = Field(
        default=DEFAULT_DETECTION_POOL_LIMIT,
        ge=2,
        le=100_000,
        description="Top liquidity pools considered per detection pass",
    )
    min_price_delta: float = Field(
        default=DEFAULT_MIN_PRICE_DELTA,
        ge=0.0,
        le=1.0,
        description="Minimum relative price divergence (e.g., 0.005 = 0.5%)",
    )
    min_absolute_profit: float = Field(
        default=DEFAULT_MIN_ABSOLUTE_PROFIT,
        ge=0.0,
        description="Minimum profit after gas in USD",
    )
    max_trade_size_usd: float = Field(
        default=DEFAULT_MAX_TRADE_SIZE_USD,
        gt=0.0,
        description="Hard cap on the estimated trade size in USD",
    )
    slippage_factor: float = Field(
        default=DEFAULT_SLIPPAGE_FACTOR,
        gt=0.0,
        le=1.0,
        description="Share of theoretical profit retained after slippage",
    )
    arbitrage_gas_cost_usd: dict[str, float] = Field(
        default_factory=lambda: dict(ARBITRAGE_GAS_COST_USD),
        description="USD gas cost of a two-pool arbitrage per chain",
    )

    # =========================================================================
    # Route Search
    # =========================================================================

    max_hops: int = Field(default=DEFAULT_MAX_HOPS, ge=2, le=8)
    min_route_profit: float = Field(default=DEFAULT_MIN_ROUTE_PROFIT, ge=0.0)
    max_gas_cost: float = Field(default=DEFAULT_MAX_GAS_COST, gt=0.0)
    max_liquidity_utilization: float = Field(
        default=DEFAULT_MAX_LIQUIDITY_UTILIZATION,
        gt=0.0,
        le=1.0,
    )
    max_price_impact: float = Field(default=DEFAULT_MAX_PRICE_IMPACT, gt=0.0, le=1.0)
    allow_cross_chain: bool = Field(default=False)
    route_cache_ttl: float = Field(
        default=DEFAULT_ROUTE_CACHE_TTL,
        gt=0.0,
        description="Route cache entry lifetime (seconds)",
    )
    pool_refresh_interval: float = Field(
        default=DEFAULT_POOL_REFRESH_INTERVAL,
        gt=0.0,
        description="Seconds between pool snapshot reloads",
    )
    default_trade_size_usd: float = Field(
        default=DEFAULT_TRADE_SIZE_USD,
        gt=0.0,
        description="Input size used when ranking top opportunities",
    )
    flash_loan_threshold_usd: float = Field(
        default=DEFAULT_FLASH_LOAN_THRESHOLD_USD,
        ge=0.0,
        description="Input value above which a route needs a flash loan",
    )
    swap_gas_cost_usd: dict[str, float] = Field(
        default_factory=lambda: dict(SWAP_GAS_COST_USD),
        description="USD gas cost of a single swap step per chain",
    )

    # =========================================================================
    # Operation Mode
    # =========================================================================

    simulate: bool = Field(
        default=False,
        description="Run against the pool simulator instead of RPC endpoints",
    )
    pools_file: Path | None = Field(
        default=None,
        description="JSON pool snapshot loaded into the repository at startup",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )
    log_file: Path | None = Field(default=None)
    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("chains", mode="after")
    @classmethod
    def validate_chains(cls, v: list[str]) -> list[str]:
        """Ensure every configured chain is known."""
        unknown = [c for c in v if c not in CHAINS]
        if unknown:
            raise ValueError(f"Unknown chains: {', '.join(unknown)}")
        if not v:
            raise ValueError("At least one chain must be configured")
        return v

    @field_validator("min_absolute_profit", mode="after")
    @classmethod
    def validate_profit_floor(cls, v: float) -> float:
        """Warn if the profit floor is very low."""
        if v < 1.0:
            import warnings

            warnings.warn(
                f"Profit floor ${v} is very low, most detections will not cover costs",
                stacklevel=2,
            )
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    def rpc_url_for(self, chain: str) -> str | None:
        """Resolve the RPC endpoint of a chain."""
        if chain == "ethereum":
            if self.ethereum_rpc_url is not None:
                return self.ethereum_rpc_url.get_secret_value()
            if self.alchemy_api_key is not None:
                return ALCHEMY_ETHEREUM_URL + self.alchemy_api_key.get_secret_value()
            return None

        url: SecretStr | None = getattr(self, f"{chain}_rpc_url", None)
        return url.get_secret_value() if url is not None else None

    @property
    def chain_configs(self) -> list[ChainConfig]:
        """Build chain configurations for the enabled chains."""
        configs = []
        for name in self.chains:
            chain_id, block_time, native_token = CHAINS[name]
            configs.append(
                ChainConfig(
                    name=name,
                    chain_id=chain_id,
                    block_time=max(block_time, MIN_BLOCK_INTERVAL),
                    native_token=native_token,
                    rpc_url=self.rpc_url_for(name),
                )
            )
        return configs

    @property
    def default_constraints(self) -> RouteConstraints:
        """Route constraints built from settings."""
        return RouteConstraints(
            max_hops=self.max_hops,
            min_profit=self.min_route_profit,
            max_gas_cost=self.max_gas_cost,
            max_liquidity_utilization=self.max_liquidity_utilization,
            allow_cross_chain=self.allow_cross_chain,
            max_price_impact=self.max_price_impact,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()
