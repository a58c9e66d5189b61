"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

import pytest

from dexarb.core.types import Pool, RouteConstraints
from dexarb.storage.memory import InMemoryPoolRepository
from dexarb.strategy.routes import RouteFinder
from dexarb.telemetry.metrics import MetricsCollector
from tests.mocks import MockChainClient, make_pool, triangle_pools


# =============================================================================
# Pool Fixtures
# =============================================================================


@pytest.fixture
def pool_eth_usdc_cheap() -> Pool:
    """ETH/USDC at 2000 with $4M liquidity."""
    return make_pool("arb-uni-eth-usdc", "ETH", "USDC", 1_000.0, 2_000_000.0, 4_000_000.0)


@pytest.fixture
def pool_eth_usdc_rich() -> Pool:
    """ETH/USDC at 2100 with $4.2M liquidity."""
    return make_pool(
        "arb-sushi-eth-usdc",
        "ETH",
        "USDC",
        1_000.0,
        2_100_000.0,
        4_200_000.0,
        dex="sushiswap",
    )


@pytest.fixture
def pool_zero_reserve() -> Pool:
    """ETH/USDC pool with an empty ETH side."""
    return make_pool("arb-dead-eth-usdc", "ETH", "USDC", 0.0, 1_000_000.0, 1_000_000.0)


@pytest.fixture
def triangle() -> list[Pool]:
    """Profitable USDC -> ETH -> WBTC -> USDC triangle on one chain."""
    return triangle_pools()


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def constraints() -> RouteConstraints:
    """Default route constraints."""
    return RouteConstraints()


@pytest.fixture
def route_finder(triangle: list[Pool]) -> RouteFinder:
    """Route finder over the triangle pools."""
    return RouteFinder(triangle)


@pytest.fixture
def metrics() -> MetricsCollector:
    """Create metrics collector."""
    return MetricsCollector()


@pytest.fixture
def chain_client() -> MockChainClient:
    """Healthy arbitrum mock client."""
    return MockChainClient("arbitrum")


@pytest.fixture
async def repository() -> InMemoryPoolRepository:
    """Initialized empty in-memory repository."""
    repo = InMemoryPoolRepository()
    await repo.initialize()
    return repo
