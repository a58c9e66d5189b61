"""
Pydantic models for Ethereum JSON-RPC responses.

These models provide type-safe parsing of node responses
with automatic validation of hex quantities.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


def parse_quantity(value: Any) -> int:
    """Decode a JSON-RPC hex quantity (``"0x1b4"``) into an int."""
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.startswith(("0x", "0X")):
        return int(value, 16)
    raise ValueError(f"Invalid hex quantity: {value!r}")


class RpcErrorData(BaseModel):
    """Error object of a failed JSON-RPC call."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response envelope."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any = None
    error: RpcErrorData | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class BlockHeader(BaseModel):
    """Subset of ``eth_getBlockByNumber`` used for fee estimation."""

    number: int
    timestamp: int
    base_fee_per_gas: int | None = Field(default=None, alias="baseFeePerGas")
    gas_used: int = Field(default=0, alias="gasUsed")
    gas_limit: int = Field(default=0, alias="gasLimit")

    model_config = {"populate_by_name": True}

    @field_validator("number", "timestamp", "gas_used", "gas_limit", mode="before")
    @classmethod
    def decode_quantity(cls, v: Any) -> int:
        return parse_quantity(v)

    @field_validator("base_fee_per_gas", mode="before")
    @classmethod
    def decode_optional_quantity(cls, v: Any) -> int | None:
        """Pre-London blocks carry no base fee."""
        if v is None:
            return None
        return parse_quantity(v)

    @property
    def supports_eip1559(self) -> bool:
        return self.base_fee_per_gas is not None

    @property
    def utilization(self) -> float:
        """Share of the block gas limit used."""
        return self.gas_used / self.gas_limit if self.gas_limit else 0.0
