"""Chain connectivity: JSON-RPC client and rate limiting."""

from dexarb.chain.client import ChainClientError, JsonRpcClient, RpcError
from dexarb.chain.rate_limiter import RateLimiter, TokenBucket


__all__ = [
    "ChainClientError",
    "JsonRpcClient",
    "RateLimiter",
    "RpcError",
    "TokenBucket",
]
