"""
Unit tests for the JSON-RPC chain client.

Tests response models, error mapping, fee derivation and rate limiting
without network access.
"""

import time
from typing import Any

import pytest
from pydantic import ValidationError

from dexarb.chain.client import ChainClientError, JsonRpcClient, RpcError
from dexarb.chain.models import BlockHeader, JsonRpcResponse, parse_quantity
from dexarb.chain.rate_limiter import RateLimiter, TokenBucket


GWEI = 1_000_000_000


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, body: str, status: int = 200) -> None:
        self.status = status
        self._body = body

    async def text(self) -> str:
        return self._body


def scripted_client(results: dict[str, Any]) -> JsonRpcClient:
    """Client whose ``call`` returns canned results per method."""
    client = JsonRpcClient("ethereum", "http://localhost:8545")

    async def call(method: str, params: list[Any] | None = None) -> Any:
        return results[method]

    client.call = call  # type: ignore[method-assign]
    return client


class TestModels:
    """Tests for JSON-RPC response models."""

    @pytest.mark.parametrize(
        "value,expected",
        [("0x0", 0), ("0x1b4", 436), ("0XFF", 255), (42, 42)],
    )
    def test_parse_quantity(self, value: Any, expected: int) -> None:
        assert parse_quantity(value) == expected

    @pytest.mark.parametrize("value", ["12", None, "0xzz"])
    def test_parse_quantity_invalid(self, value: Any) -> None:
        with pytest.raises(ValueError):
            parse_quantity(value)

    def test_block_header(self) -> None:
        """Test decoding a London block header."""
        block = BlockHeader.model_validate(
            {
                "number": "0x10",
                "timestamp": "0x65920080",
                "baseFeePerGas": "0x3b9aca00",
                "gasUsed": "0x5208",
                "gasLimit": "0xa410",
                "hash": "0xabc",
            }
        )

        assert block.number == 16
        assert block.base_fee_per_gas == GWEI
        assert block.supports_eip1559
        assert block.utilization == pytest.approx(0.5)

    def test_legacy_block_header(self) -> None:
        block = BlockHeader.model_validate({"number": "0x1", "timestamp": "0x2"})

        assert block.base_fee_per_gas is None
        assert not block.supports_eip1559
        assert block.utilization == 0.0

    def test_invalid_block_header(self) -> None:
        with pytest.raises(ValidationError):
            BlockHeader.model_validate({"number": "sixteen", "timestamp": "0x2"})

    def test_error_envelope(self) -> None:
        envelope = JsonRpcResponse.model_validate(
            {"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "not found"}}
        )

        assert envelope.is_error
        assert envelope.error is not None and envelope.error.code == -32601


class TestJsonRpcClient:
    """Tests for JsonRpcClient."""

    @pytest.mark.asyncio
    async def test_handle_result(self) -> None:
        client = JsonRpcClient("ethereum", "http://localhost:8545")

        result = await client._handle_response(
            "eth_blockNumber",
            FakeResponse('{"jsonrpc": "2.0", "id": 1, "result": "0x10"}'),  # type: ignore[arg-type]
        )

        assert result == "0x10"

    @pytest.mark.asyncio
    async def test_handle_rpc_error(self) -> None:
        client = JsonRpcClient("ethereum", "http://localhost:8545")
        body = '{"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "limit"}}'

        with pytest.raises(RpcError) as exc_info:
            await client._handle_response("eth_call", FakeResponse(body))  # type: ignore[arg-type]

        assert exc_info.value.code == -32005

    @pytest.mark.asyncio
    async def test_handle_http_error(self) -> None:
        client = JsonRpcClient("ethereum", "http://localhost:8545")

        with pytest.raises(ChainClientError) as exc_info:
            await client._handle_response(
                "eth_call", FakeResponse("Too Many Requests", status=429)  # type: ignore[arg-type]
            )

        assert exc_info.value.code == 429
        assert not isinstance(exc_info.value, RpcError)

    @pytest.mark.asyncio
    async def test_handle_invalid_json(self) -> None:
        client = JsonRpcClient("ethereum", "http://localhost:8545")

        with pytest.raises(ChainClientError):
            await client._handle_response("eth_call", FakeResponse("<html>"))  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_block_number(self) -> None:
        client = scripted_client({"eth_blockNumber": "0x12d687"})

        assert await client.get_block_number() == 1_234_567

    @pytest.mark.asyncio
    async def test_block_number_invalid(self) -> None:
        client = scripted_client({"eth_blockNumber": "pending"})

        with pytest.raises(ChainClientError):
            await client.get_block_number()

    @pytest.mark.asyncio
    async def test_fee_data_eip1559(self) -> None:
        """Test max fee = 2 * base fee + 1 gwei priority."""
        client = scripted_client(
            {
                "eth_gasPrice": hex(31 * GWEI),
                "eth_getBlockByNumber": {
                    "number": "0x1",
                    "timestamp": "0x1",
                    "baseFeePerGas": hex(30 * GWEI),
                },
            }
        )

        fee_data = await client.get_fee_data()

        assert fee_data.gas_price == 31 * GWEI
        assert fee_data.max_priority_fee_per_gas == GWEI
        assert fee_data.max_fee_per_gas == 61 * GWEI

    @pytest.mark.asyncio
    async def test_fee_data_legacy(self) -> None:
        client = scripted_client(
            {
                "eth_gasPrice": hex(40 * GWEI),
                "eth_getBlockByNumber": {"number": "0x1", "timestamp": "0x1"},
            }
        )

        fee_data = await client.get_fee_data()

        assert fee_data.gas_price_gwei == pytest.approx(40.0)
        assert fee_data.max_fee_per_gas is None

    @pytest.mark.asyncio
    async def test_missing_block(self) -> None:
        client = scripted_client({"eth_getBlockByNumber": None})

        with pytest.raises(ChainClientError):
            await client.get_latest_block()

    @pytest.mark.asyncio
    async def test_close_without_session(self) -> None:
        async with JsonRpcClient("base", "http://localhost:8545") as client:
            assert client.chain == "base"


class TestRateLimiter:
    """Tests for the token bucket and call spacing."""

    @pytest.mark.asyncio
    async def test_bucket_exhaustion(self) -> None:
        bucket = TokenBucket(capacity=2, refill_rate=0.001)

        assert await bucket.try_acquire()
        assert await bucket.try_acquire()
        assert not await bucket.try_acquire()

    @pytest.mark.asyncio
    async def test_min_interval_spacing(self) -> None:
        """Test that consecutive calls are spaced by the minimum interval."""
        limiter = RateLimiter(requests_per_second=100, min_interval=0.05)

        start = time.monotonic()
        await limiter.acquire()
        await limiter.acquire()
        await limiter.acquire()

        assert time.monotonic() - start >= 0.1

    @pytest.mark.asyncio
    async def test_try_acquire_respects_spacing(self) -> None:
        limiter = RateLimiter(requests_per_second=100, min_interval=1.0)

        assert await limiter.try_acquire()
        assert not await limiter.try_acquire()
