"""
Type definitions for the arbitrage engine.

This module contains all dataclasses, enums and Protocol definitions used
throughout the application. Using slots=True for memory efficiency and
faster attribute access.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Protocol

import orjson

from dexarb.config.constants import (
    DEFAULT_MAX_GAS_COST,
    DEFAULT_MAX_HOPS,
    DEFAULT_MAX_LIQUIDITY_UTILIZATION,
    DEFAULT_MAX_PRICE_IMPACT,
    DEFAULT_MIN_ROUTE_PROFIT,
    WEI_PER_GWEI,
)


# =============================================================================
# Enums
# =============================================================================


class PoolKind(str, Enum):
    """Pool pricing variant. Swap math dispatches on this tag."""

    CONSTANT_PRODUCT = "v2"
    CONCENTRATED_LIQUIDITY = "v3"


class OpportunityStatus(str, Enum):
    """Lifecycle of a detected opportunity. Owned downstream after detection."""

    DETECTED = "detected"
    EXECUTING = "executing"
    EXECUTED = "executed"
    FAILED = "failed"
    EXPIRED = "expired"


class ExecutionComplexity(str, Enum):
    """Rough execution difficulty of a route."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class RouteStrategy(str, Enum):
    """Search strategy that produced a route."""

    DIRECT = "direct"
    MULTI_HOP = "multi_hop"
    CROSS_CHAIN = "cross_chain"


# =============================================================================
# Pool Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Token:
    """ERC-20 token as seen by a pool."""

    address: str
    symbol: str
    decimals: int = 18


@dataclass(slots=True)
class Pool:
    """
    Liquidity pool state.

    Upserted by ingestion keyed by id. Deactivated through ``is_active``,
    never deleted. A pool with a zero reserve is untradeable.
    """

    id: str
    chain: str
    dex: str
    address: str
    token0: Token
    token1: Token
    fee: int  # parts per million
    reserve0: float
    reserve1: float
    liquidity_usd: float = 0.0
    total_supply: float = 0.0
    volume_24h: float = 0.0
    volume_7d: float = 0.0
    fees_earned_24h: float = 0.0
    apr: float = 0.0
    is_active: bool = True
    last_updated: float = 0.0
    kind: PoolKind = PoolKind.CONSTANT_PRODUCT
    chain_id: int = 0

    def __post_init__(self) -> None:
        if self.reserve0 < 0 or self.reserve1 < 0:
            raise ValueError(f"Pool {self.id} has negative reserves")
        if not 0 <= self.fee < 1_000_000:
            raise ValueError(f"Pool {self.id} fee {self.fee} out of range")

    @property
    def is_tradeable(self) -> bool:
        """Check if both reserves are non-zero."""
        return self.reserve0 > 0 and self.reserve1 > 0

    @property
    def symbols(self) -> tuple[str, str]:
        """Normalized token symbols (token0, token1)."""
        return (self.token0.symbol.upper(), self.token1.symbol.upper())

    @property
    def pair_key(self) -> str:
        """Order-independent pair key, e.g. ``ETH/USDC``."""
        return "/".join(sorted(self.symbols))

    def has_token(self, symbol: str) -> bool:
        """Check if the pool trades a token."""
        return symbol.upper() in self.symbols

    def other_token(self, symbol: str) -> str:
        """Get the counterpart of a token in this pool."""
        sym0, sym1 = self.symbols
        symbol = symbol.upper()
        if symbol == sym0:
            return sym1
        if symbol == sym1:
            return sym0
        raise KeyError(f"{symbol} not in pool {self.id}")

    def reserves_for(self, token_in: str) -> tuple[float, float]:
        """Get (reserve_in, reserve_out) ordered by the sold token."""
        sym0, sym1 = self.symbols
        token_in = token_in.upper()
        if token_in == sym0:
            return self.reserve0, self.reserve1
        if token_in == sym1:
            return self.reserve1, self.reserve0
        raise KeyError(f"{token_in} not in pool {self.id}")

    def token_value_usd(self, symbol: str, amount: float) -> float:
        """
        Estimate the USD value of an amount of one pool token.

        Assumes the pool's USD liquidity is split evenly between both sides,
        so one unit is worth ``liquidity_usd / (2 * reserve)``.
        """
        reserve, _ = self.reserves_for(symbol)
        if reserve <= 0 or self.liquidity_usd <= 0:
            return 0.0
        return amount * self.liquidity_usd / (2.0 * reserve)

    def with_reserves(self, reserve0: float, reserve1: float, timestamp: float) -> "Pool":
        """Copy of this pool with new reserves."""
        return replace(self, reserve0=reserve0, reserve1=reserve1, last_updated=timestamp)


@dataclass(slots=True, frozen=True)
class PricePoint:
    """Immutable price observation. One per (pool, block)."""

    pool_id: str
    price: float
    reserve0: float
    reserve1: float
    block_number: int
    timestamp: float
    gas_price: float  # gwei

    @property
    def id(self) -> str:
        return f"{self.pool_id}-{self.block_number}"


@dataclass(slots=True)
class ArbitrageOpportunity:
    """
    Two-pool price divergence detected by the pairwise detector.

    ``price_delta`` is ``|price_a - price_b| / min(price_a, price_b)``.
    """

    id: str
    pool_a: str
    pool_b: str
    token_pair: str
    price_a: float
    price_b: float
    price_delta: float
    profit_estimate: float
    gas_estimate: float
    liquidity_required: float
    viable: bool
    cross_chain: bool
    detected_at: float
    status: OpportunityStatus = OpportunityStatus.DETECTED

    @property
    def net_profit(self) -> float:
        """Profit after gas."""
        return self.profit_estimate - self.gas_estimate


# =============================================================================
# Route Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class RouteStep:
    """Single swap of a route."""

    pool: Pool
    token_in: str
    token_out: str
    amount_in: float
    amount_out: float
    price_impact: float
    gas_estimate: float

    def __repr__(self) -> str:
        return f"{self.token_in}->{self.token_out}({self.pool.dex}@{self.pool.chain})"


@dataclass(slots=True, frozen=True)
class ArbitrageRoute:
    """
    Ranked arbitrage route.

    Consecutive steps chain amounts (``steps[i].amount_out ==
    steps[i + 1].amount_in``); cycles end in the token they start with.
    """

    id: str
    strategy: RouteStrategy
    steps: tuple[RouteStep, ...]
    amount_in: float
    amount_out: float
    total_gas_estimate: float
    estimated_profit: float
    profit_margin: float
    risk_score: float
    liquidity_utilization: float
    execution_complexity: ExecutionComplexity
    flash_loan_required: bool
    cross_chain: bool
    viability_score: float = 0.0

    @property
    def hop_count(self) -> int:
        return len(self.steps)

    @property
    def start_token(self) -> str:
        return self.steps[0].token_in

    @property
    def end_token(self) -> str:
        return self.steps[-1].token_out

    @property
    def is_cycle(self) -> bool:
        return self.start_token == self.end_token

    @property
    def total_price_impact(self) -> float:
        return sum(step.price_impact for step in self.steps)

    @property
    def chains(self) -> frozenset[str]:
        return frozenset(step.pool.chain for step in self.steps)

    @property
    def path(self) -> tuple[str, ...]:
        """Token path including the closing token."""
        return tuple(step.token_in for step in self.steps) + (self.end_token,)


@dataclass(slots=True, frozen=True)
class RouteConstraints:
    """Immutable route search constraints."""

    max_hops: int = DEFAULT_MAX_HOPS
    min_profit: float = DEFAULT_MIN_ROUTE_PROFIT
    max_gas_cost: float = DEFAULT_MAX_GAS_COST
    max_liquidity_utilization: float = DEFAULT_MAX_LIQUIDITY_UTILIZATION
    allow_cross_chain: bool = False
    preferred_chains: frozenset[str] = field(default_factory=frozenset)
    excluded_tokens: frozenset[str] = field(default_factory=frozenset)
    max_price_impact: float = DEFAULT_MAX_PRICE_IMPACT

    def __post_init__(self) -> None:
        if self.max_hops < 2:
            raise ValueError("max_hops must be at least 2")
        if self.max_price_impact <= 0:
            raise ValueError("max_price_impact must be positive")
        # Normalize collections so equal constraint sets serialize identically
        object.__setattr__(self, "preferred_chains", frozenset(self.preferred_chains))
        object.__setattr__(
            self,
            "excluded_tokens",
            frozenset(t.upper() for t in self.excluded_tokens),
        )

    def cache_key(self) -> str:
        """Deterministic serialization used in route cache keys."""
        return orjson.dumps(
            {
                "max_hops": self.max_hops,
                "min_profit": self.min_profit,
                "max_gas_cost": self.max_gas_cost,
                "max_liquidity_utilization": self.max_liquidity_utilization,
                "allow_cross_chain": self.allow_cross_chain,
                "preferred_chains": sorted(self.preferred_chains),
                "excluded_tokens": sorted(self.excluded_tokens),
                "max_price_impact": self.max_price_impact,
            },
            option=orjson.OPT_SORT_KEYS,
        ).decode()

    def allows_pool(self, pool: Pool) -> bool:
        """Check pool-level constraints (chains, excluded tokens)."""
        if self.preferred_chains and pool.chain not in self.preferred_chains:
            return False
        return not any(sym in self.excluded_tokens for sym in pool.symbols)


# =============================================================================
# Chain Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class ChainConfig:
    """Static chain configuration."""

    name: str
    chain_id: int
    block_time: float  # seconds
    native_token: str
    rpc_url: str | None = None


@dataclass(slots=True, frozen=True)
class FeeData:
    """Gas fee data in wei. EIP-1559 fields are None on legacy chains."""

    gas_price: int
    max_priority_fee_per_gas: int | None = None
    max_fee_per_gas: int | None = None

    @property
    def gas_price_gwei(self) -> float:
        return self.gas_price / WEI_PER_GWEI


@dataclass(slots=True, frozen=True)
class GasSnapshot:
    """Latest gas observation for a chain, in gwei."""

    chain: str
    block_number: int
    base_fee: float
    priority_fee: float
    max_fee: float
    timestamp: float


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class PoolRepository(Protocol):
    """Durable store of pools, price history and opportunities."""

    async def initialize(self) -> None:
        """Prepare the store for use."""
        ...

    async def close(self) -> None:
        """Release resources."""
        ...

    async def get_pools_by_chain(self, chain: str) -> list[Pool]:
        """Get all pools of a chain, deepest first."""
        ...

    async def get_top_liquidity_pools(self, limit: int) -> list[Pool]:
        """Get active pools ranked by USD liquidity."""
        ...

    async def insert_pool(self, pool: Pool) -> None:
        """Upsert a pool by id."""
        ...

    async def insert_price_point(self, point: PricePoint) -> None:
        """Append a price observation."""
        ...

    async def insert_arbitrage_opportunity(self, opportunity: ArbitrageOpportunity) -> None:
        """Append a detected opportunity."""
        ...

    async def get_viable_arbitrage_opportunities(
        self, min_profit: float
    ) -> list[ArbitrageOpportunity]:
        """Get viable opportunities with profit above a floor."""
        ...


class ChainClient(Protocol):
    """Chain connectivity collaborator."""

    async def get_block_number(self) -> int:
        """Get the latest block number."""
        ...

    async def get_fee_data(self) -> FeeData:
        """Get current gas fee data."""
        ...

    async def close(self) -> None:
        """Release network resources."""
        ...
