"""
Detection constants and configuration values.

This module contains all hardcoded values used throughout the arbitrage engine.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Chains
# =============================================================================

# name -> (chain id, average block time in seconds, native token)
CHAINS: Final[dict[str, tuple[int, float, str]]] = {
    "arbitrum": (42161, 0.25, "ETH"),
    "base": (8453, 2.0, "ETH"),
    "ethereum": (1, 12.0, "ETH"),
    "polygon": (137, 2.0, "MATIC"),
}

DEFAULT_RPC_URLS: Final[dict[str, str]] = {
    "arbitrum": "https://arb1.arbitrum.io/rpc",
    "base": "https://mainnet.base.org",
    "polygon": "https://polygon-rpc.com",
}

ALCHEMY_ETHEREUM_URL: Final[str] = "https://eth-mainnet.g.alchemy.com/v2/"

# Block time floor so a fast chain cannot spin the event loop
MIN_BLOCK_INTERVAL: Final[float] = 0.25  # seconds


# =============================================================================
# Gas Cost Tables (USD)
# =============================================================================

# Full two-pool arbitrage on one chain
ARBITRAGE_GAS_COST_USD: Final[dict[str, float]] = {
    "ethereum": 50.0,
    "arbitrum": 5.0,
    "polygon": 2.0,
    "base": 3.0,
}
DEFAULT_ARBITRAGE_GAS_COST_USD: Final[float] = 10.0

# Single swap step inside a route
SWAP_GAS_COST_USD: Final[dict[str, float]] = {
    "ethereum": 15.0,
    "arbitrum": 0.5,
    "polygon": 0.1,
    "base": 0.3,
}
DEFAULT_SWAP_GAS_COST_USD: Final[float] = 1.0


# =============================================================================
# Pool Math
# =============================================================================

# Pool fees are expressed in parts per million (3000 = 0.3%)
FEE_DENOMINATOR: Final[int] = 1_000_000

# Aave flash loan premium (0.09%)
FLASH_LOAN_FEE_RATE: Final[float] = 0.0009


# =============================================================================
# Price Observer
# =============================================================================

DEFAULT_PRICE_CACHE_TTL: Final[float] = 5.0  # seconds
DEFAULT_TOP_POOLS_PER_CHAIN: Final[int] = 100


# =============================================================================
# Pairwise Opportunity Detection
# =============================================================================

DEFAULT_DETECTION_INTERVAL: Final[float] = 5.0  # seconds
DEFAULT_DETECTION_POOL_LIMIT: Final[int] = 500

# Minimum price divergence between two pools (0.5%)
DEFAULT_MIN_PRICE_DELTA: Final[float] = 0.005

# Minimum profit after gas (USD)
DEFAULT_MIN_ABSOLUTE_PROFIT: Final[float] = 50.0

# Trade size is 1% of the shallower pool, capped
DEFAULT_TRADE_SIZE_FRACTION: Final[float] = 0.01
DEFAULT_MAX_TRADE_SIZE_USD: Final[float] = 50_000.0

# Share of theoretical profit expected to survive slippage
DEFAULT_SLIPPAGE_FACTOR: Final[float] = 0.8


# =============================================================================
# Route Search
# =============================================================================

DEFAULT_MAX_HOPS: Final[int] = 4
DEFAULT_MIN_ROUTE_PROFIT: Final[float] = 10.0  # USD
DEFAULT_MAX_GAS_COST: Final[float] = 100.0  # USD
DEFAULT_MAX_LIQUIDITY_UTILIZATION: Final[float] = 0.1
DEFAULT_MAX_PRICE_IMPACT: Final[float] = 0.05

DEFAULT_ROUTE_CACHE_TTL: Final[float] = 30.0  # seconds
DEFAULT_POOL_REFRESH_INTERVAL: Final[float] = 60.0  # seconds
DEFAULT_TRADE_SIZE_USD: Final[float] = 10_000.0
DEFAULT_FLASH_LOAN_THRESHOLD_USD: Final[float] = 10_000.0

# Upper bound on stack frames expanded per multi-hop search
MAX_SEARCH_EXPANSIONS: Final[int] = 20_000

# Risk surcharge for routes spanning chains
CROSS_CHAIN_RISK_PENALTY: Final[float] = 3.0
MAX_RISK_SCORE: Final[float] = 10.0


# =============================================================================
# JSON-RPC
# =============================================================================

RPC_REQUESTS_PER_SECOND: Final[int] = 10
RPC_MIN_CALL_INTERVAL: Final[float] = 0.1  # seconds between calls
RPC_TIMEOUT: Final[float] = 10.0  # seconds

# Priority fee assumed when deriving EIP-1559 fee data (1 gwei)
DEFAULT_PRIORITY_FEE_WEI: Final[int] = 1_000_000_000
WEI_PER_GWEI: Final[int] = 1_000_000_000


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Status log interval (seconds)
METRICS_REPORT_INTERVAL: Final[float] = 30.0

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
