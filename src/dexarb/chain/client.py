"""
Async Ethereum JSON-RPC client.

Optimized for frequent small polls with:
- Connection pooling and keep-alive
- Fast JSON parsing with orjson
- Integrated rate limiting and minimum call spacing
"""

import asyncio
import itertools
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import orjson
from pydantic import ValidationError

from dexarb.chain.models import BlockHeader, JsonRpcResponse, parse_quantity
from dexarb.chain.rate_limiter import RateLimiter
from dexarb.config.constants import DEFAULT_PRIORITY_FEE_WEI, RPC_TIMEOUT
from dexarb.core.types import FeeData


class ChainClientError(Exception):
    """Base exception for chain client errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RpcError(ChainClientError):
    """Error object returned by the node."""

    pass


class JsonRpcClient:
    """
    Async JSON-RPC client for one chain endpoint.

    Features:
    - Single session with connection pooling
    - orjson request/response encoding
    - Rate limiting with minimum call spacing
    - EIP-1559 fee derivation
    """

    def __init__(
        self,
        chain: str,
        url: str,
        rate_limiter: RateLimiter | None = None,
        timeout: float = RPC_TIMEOUT,
    ) -> None:
        """
        Initialize the client.

        Args:
            chain: Chain name, used in error messages.
            url: JSON-RPC endpoint URL.
            rate_limiter: Optional rate limiter instance.
            timeout: Total request timeout in seconds.
        """
        self._chain = chain
        self._url = url
        self._rate_limiter = rate_limiter or RateLimiter()
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None
        self._ids = itertools.count(1)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )

            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                json_serialize=lambda x: orjson.dumps(x).decode(),
            )

        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    @asynccontextmanager
    async def _request_context(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Context manager for making requests."""
        session = await self._get_session()
        try:
            yield session
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ChainClientError(f"[{self._chain}] Network error: {e}") from e

    async def call(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name (e.g., "eth_blockNumber").
            params: Positional parameters.

        Returns:
            The ``result`` member of the response.

        Raises:
            RpcError: On an error object in the response.
            ChainClientError: On network, HTTP or decoding errors.
        """
        await self._rate_limiter.acquire()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        async with self._request_context() as session:
            async with session.post(self._url, json=payload) as response:
                return await self._handle_response(method, response)

    async def _handle_response(self, method: str, response: aiohttp.ClientResponse) -> Any:
        """Parse and validate response."""
        text = await response.text()

        if response.status >= 400:
            raise ChainClientError(
                f"[{self._chain}] HTTP {response.status} on {method}: {text[:200]}",
                code=response.status,
            )

        try:
            envelope = JsonRpcResponse.model_validate(orjson.loads(text))
        except (orjson.JSONDecodeError, ValidationError) as e:
            raise ChainClientError(f"[{self._chain}] Invalid response to {method}: {e}") from e

        if envelope.error is not None:
            raise RpcError(
                f"[{self._chain}] RPC error {envelope.error.code} on {method}: "
                f"{envelope.error.message}",
                code=envelope.error.code,
            )

        return envelope.result

    # =========================================================================
    # Chain Queries
    # =========================================================================

    async def get_block_number(self) -> int:
        """Get the latest block number."""
        result = await self.call("eth_blockNumber")
        try:
            return parse_quantity(result)
        except ValueError as e:
            raise ChainClientError(f"[{self._chain}] {e}") from e

    async def get_latest_block(self) -> BlockHeader:
        """Get the latest block header (without transactions)."""
        result = await self.call("eth_getBlockByNumber", ["latest", False])
        if result is None:
            raise ChainClientError(f"[{self._chain}] Latest block unavailable")
        try:
            return BlockHeader.model_validate(result)
        except ValidationError as e:
            raise ChainClientError(f"[{self._chain}] Invalid block: {e}") from e

    async def get_fee_data(self) -> FeeData:
        """
        Get current gas fee data.

        EIP-1559 chains report ``max_fee = 2 * base_fee + priority`` with a
        1 gwei priority fee; legacy chains only report the gas price.
        """
        gas_price_hex, block = await asyncio.gather(
            self.call("eth_gasPrice"),
            self.get_latest_block(),
        )
        try:
            gas_price = parse_quantity(gas_price_hex)
        except ValueError as e:
            raise ChainClientError(f"[{self._chain}] {e}") from e

        if block.base_fee_per_gas is None:
            return FeeData(gas_price=gas_price)

        priority = DEFAULT_PRIORITY_FEE_WEI
        return FeeData(
            gas_price=gas_price,
            max_priority_fee_per_gas=priority,
            max_fee_per_gas=2 * block.base_fee_per_gas + priority,
        )

    @property
    def chain(self) -> str:
        return self._chain

    async def __aenter__(self) -> "JsonRpcClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
