"""
JSON pool snapshots.

A snapshot is a JSON array of pool objects::

    [{"id": "arb-uni-eth-usdc", "chain": "arbitrum", "dex": "uniswap_v2",
      "address": "0x...",
      "token0": {"address": "0x...", "symbol": "ETH", "decimals": 18},
      "token1": {"address": "0x...", "symbol": "USDC", "decimals": 6},
      "fee": 3000, "reserve0": 500.0, "reserve1": 1000000.0,
      "liquidity_usd": 2000000.0, "kind": "v2"}]
"""

from pathlib import Path

import orjson
from pydantic import BaseModel, Field, TypeAdapter

from dexarb.config.constants import CHAINS
from dexarb.core.types import Pool, PoolKind, Token


class TokenRecord(BaseModel):
    address: str
    symbol: str
    decimals: int = 18


class PoolRecord(BaseModel):
    """Pool as stored in a snapshot file."""

    id: str
    chain: str
    dex: str
    address: str
    token0: TokenRecord
    token1: TokenRecord
    fee: int = Field(ge=0, lt=1_000_000)
    reserve0: float = Field(ge=0)
    reserve1: float = Field(ge=0)
    liquidity_usd: float = 0.0
    total_supply: float = 0.0
    volume_24h: float = 0.0
    volume_7d: float = 0.0
    fees_earned_24h: float = 0.0
    apr: float = 0.0
    is_active: bool = True
    last_updated: float = 0.0
    kind: PoolKind = PoolKind.CONSTANT_PRODUCT

    def to_pool(self) -> Pool:
        chain_id = CHAINS[self.chain][0] if self.chain in CHAINS else 0
        return Pool(
            id=self.id,
            chain=self.chain,
            dex=self.dex,
            address=self.address,
            token0=Token(**self.token0.model_dump()),
            token1=Token(**self.token1.model_dump()),
            fee=self.fee,
            reserve0=self.reserve0,
            reserve1=self.reserve1,
            liquidity_usd=self.liquidity_usd,
            total_supply=self.total_supply,
            volume_24h=self.volume_24h,
            volume_7d=self.volume_7d,
            fees_earned_24h=self.fees_earned_24h,
            apr=self.apr,
            is_active=self.is_active,
            last_updated=self.last_updated,
            kind=self.kind,
            chain_id=chain_id,
        )

    @classmethod
    def from_pool(cls, pool: Pool) -> "PoolRecord":
        return cls(
            id=pool.id,
            chain=pool.chain,
            dex=pool.dex,
            address=pool.address,
            token0=TokenRecord(
                address=pool.token0.address,
                symbol=pool.token0.symbol,
                decimals=pool.token0.decimals,
            ),
            token1=TokenRecord(
                address=pool.token1.address,
                symbol=pool.token1.symbol,
                decimals=pool.token1.decimals,
            ),
            fee=pool.fee,
            reserve0=pool.reserve0,
            reserve1=pool.reserve1,
            liquidity_usd=pool.liquidity_usd,
            total_supply=pool.total_supply,
            volume_24h=pool.volume_24h,
            volume_7d=pool.volume_7d,
            fees_earned_24h=pool.fees_earned_24h,
            apr=pool.apr,
            is_active=pool.is_active,
            last_updated=pool.last_updated,
            kind=pool.kind,
        )


_SNAPSHOT = TypeAdapter(list[PoolRecord])


def parse_pools(data: bytes | str) -> list[Pool]:
    """
    Parse a JSON snapshot.

    Raises:
        pydantic.ValidationError: On a malformed pool object.
    """
    return [record.to_pool() for record in _SNAPSHOT.validate_python(orjson.loads(data))]


def load_pools_from_json(path: Path | str) -> list[Pool]:
    """Load pools from a JSON snapshot file."""
    return parse_pools(Path(path).read_bytes())


def dump_pools_to_json(pools: list[Pool], path: Path | str) -> None:
    """Write pools as a JSON snapshot file."""
    records = [PoolRecord.from_pool(p).model_dump(mode="json") for p in pools]
    Path(path).write_bytes(orjson.dumps(records, option=orjson.OPT_INDENT_2))
