"""Mock implementations for testing."""

from tests.mocks.chain import MockChainClient
from tests.mocks.pools import make_pool, token, triangle_pools


__all__ = [
    "MockChainClient",
    "make_pool",
    "token",
    "triangle_pools",
]
