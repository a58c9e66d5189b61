"""
In-memory pool repository.

Holds pools, price history and detected opportunities in process
memory. Suitable for simulation runs, scripts and tests.
"""

import logging
from collections import defaultdict

from dexarb.core.types import ArbitrageOpportunity, Pool, PricePoint
from dexarb.storage.repository import PoolNotFoundError, RepositoryNotInitializedError


logger = logging.getLogger(__name__)


class InMemoryPoolRepository:
    """
    Dict-backed implementation of ``PoolRepository``.

    Features:
    - Pools upserted by id, soft-deactivated, never deleted
    - Append-only price history, one point per (pool, block)
    - Append-only opportunity log
    """

    def __init__(self, pools: list[Pool] | None = None) -> None:
        """
        Initialize repository.

        Args:
            pools: Pools stored on ``initialize()``.
        """
        self._seed = list(pools or [])
        self._pools: dict[str, Pool] = {}
        self._prices: dict[str, list[PricePoint]] = defaultdict(list)
        self._price_ids: set[str] = set()
        self._opportunities: list[ArbitrageOpportunity] = []
        self._initialized = False

    async def initialize(self) -> None:
        """Mark the store ready and load seed pools."""
        if self._initialized:
            return
        self._initialized = True
        for pool in self._seed:
            self._pools[pool.id] = pool
        logger.info(f"In-memory repository ready with {len(self._pools)} pools")

    async def close(self) -> None:
        self._initialized = False

    def _check(self) -> None:
        if not self._initialized:
            raise RepositoryNotInitializedError(type(self).__name__)

    # =========================================================================
    # Pools
    # =========================================================================

    async def get_pools_by_chain(self, chain: str) -> list[Pool]:
        """Get all pools of a chain, deepest first."""
        self._check()
        pools = [p for p in self._pools.values() if p.chain == chain]
        pools.sort(key=lambda p: p.liquidity_usd, reverse=True)
        return pools

    async def get_top_liquidity_pools(self, limit: int) -> list[Pool]:
        """Get active pools ranked by USD liquidity."""
        self._check()
        pools = [p for p in self._pools.values() if p.is_active]
        pools.sort(key=lambda p: p.liquidity_usd, reverse=True)
        return pools[:limit]

    async def get_pool(self, pool_id: str) -> Pool:
        self._check()
        try:
            return self._pools[pool_id]
        except KeyError:
            raise PoolNotFoundError(pool_id) from None

    async def insert_pool(self, pool: Pool) -> None:
        """Upsert a pool by id."""
        self._check()
        self._pools[pool.id] = pool

    async def deactivate_pool(self, pool_id: str) -> None:
        """Soft-delete a pool."""
        pool = await self.get_pool(pool_id)
        pool.is_active = False

    # =========================================================================
    # Price History
    # =========================================================================

    async def insert_price_point(self, point: PricePoint) -> None:
        """Append a price observation. Repeats of a (pool, block) are ignored."""
        self._check()
        if point.id in self._price_ids:
            return
        self._price_ids.add(point.id)
        self._prices[point.pool_id].append(point)

    async def get_price_history(self, pool_id: str, limit: int | None = None) -> list[PricePoint]:
        """
        Get a pool's price points, oldest first.

        Args:
            pool_id: Pool id.
            limit: Keep only the most recent ``limit`` points.
        """
        self._check()
        history = self._prices.get(pool_id, [])
        return list(history[-limit:] if limit else history)

    # =========================================================================
    # Opportunities
    # =========================================================================

    async def insert_arbitrage_opportunity(self, opportunity: ArbitrageOpportunity) -> None:
        self._check()
        self._opportunities.append(opportunity)

    async def get_viable_arbitrage_opportunities(
        self, min_profit: float
    ) -> list[ArbitrageOpportunity]:
        """Get viable opportunities with net profit above a floor, best first."""
        self._check()
        viable = [
            o for o in self._opportunities if o.viable and o.net_profit >= min_profit
        ]
        viable.sort(key=lambda o: o.net_profit, reverse=True)
        return viable

    @property
    def pool_count(self) -> int:
        return len(self._pools)

    @property
    def price_point_count(self) -> int:
        return len(self._price_ids)

    @property
    def opportunity_count(self) -> int:
        return len(self._opportunities)
