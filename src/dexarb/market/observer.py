"""
Per-chain pool price observation.

Every chain tick samples the deepest pools of that chain, prices them
from their reserves and appends one price point per (pool, block).
Fresh prices live in a short-TTL cache read by the pairwise detector.
"""

import asyncio
import logging
import time
from collections.abc import Mapping

from dexarb.config.constants import (
    DEFAULT_PRICE_CACHE_TTL,
    DEFAULT_TOP_POOLS_PER_CHAIN,
    WEI_PER_GWEI,
)
from dexarb.core.types import ChainClient, FeeData, GasSnapshot, Pool, PoolRepository, PricePoint
from dexarb.market.cache import Clock, TTLCache
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.utils.time import LatencyTimer, get_timestamp


logger = logging.getLogger(__name__)


def compute_price(pool: Pool) -> float | None:
    """
    Price of token0 in token1 units.

    Returns:
        ``reserve1 / reserve0``, or None if either reserve is zero.
    """
    if pool.reserve0 <= 0 or pool.reserve1 <= 0:
        return None
    return pool.reserve1 / pool.reserve0


def gas_snapshot(chain: str, block_number: int, fee_data: FeeData) -> GasSnapshot:
    """
    Convert wei fee data into a gwei gas snapshot.

    With EIP-1559 fields the base fee is recovered from
    ``max_fee = 2 * base_fee + priority``; legacy chains report
    the gas price as base fee.
    """
    if fee_data.max_fee_per_gas is not None and fee_data.max_priority_fee_per_gas is not None:
        priority = fee_data.max_priority_fee_per_gas / WEI_PER_GWEI
        max_fee = fee_data.max_fee_per_gas / WEI_PER_GWEI
        base_fee = max(0.0, (max_fee - priority) / 2.0)
    else:
        base_fee = fee_data.gas_price_gwei
        priority = 0.0
        max_fee = base_fee

    return GasSnapshot(
        chain=chain,
        block_number=block_number,
        base_fee=base_fee,
        priority_fee=priority,
        max_fee=max_fee,
        timestamp=get_timestamp(),
    )


class PriceObserver:
    """
    Collects pool prices per chain.

    Features:
    - Concurrent block and fee fetch per chain tick
    - Concurrent per-pool pricing with failure isolation
    - TTL price cache shared with detection
    - Latest gas snapshot per chain
    """

    def __init__(
        self,
        repository: PoolRepository,
        clients: Mapping[str, ChainClient],
        cache_ttl: float = DEFAULT_PRICE_CACHE_TTL,
        top_pools: int = DEFAULT_TOP_POOLS_PER_CHAIN,
        metrics: MetricsCollector | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """
        Initialize price observer.

        Args:
            repository: Pool and price store.
            clients: Chain client per chain name.
            cache_ttl: Price cache entry lifetime in seconds.
            top_pools: Pools sampled per chain tick.
            metrics: Optional metrics collector.
            clock: Time source for the price cache.
        """
        self._repository = repository
        self._clients = dict(clients)
        self._cache: TTLCache[str, float] = TTLCache(cache_ttl, clock=clock)
        self._top_pools = top_pools
        self._metrics = metrics
        self._gas: dict[str, GasSnapshot] = {}

    async def collect_chain_prices(self, chain: str) -> list[PricePoint]:
        """
        Run one observation cycle for a chain.

        A failed block/fee fetch or pool lookup aborts only this cycle.
        A failed pool is logged and skipped.

        Returns:
            Price points written this cycle.
        """
        client = self._clients.get(chain)
        if client is None:
            raise KeyError(f"No chain client for {chain}")

        with LatencyTimer() as timer:
            try:
                block_number, fee_data = await asyncio.gather(
                    client.get_block_number(),
                    client.get_fee_data(),
                )
                pools = await self._repository.get_pools_by_chain(chain)
            except Exception as e:
                logger.warning(f"[{chain}] Price cycle aborted: {e}")
                self._count("chain_cycle_failures")
                return []

            snapshot = gas_snapshot(chain, block_number, fee_data)
            self._gas[chain] = snapshot

            active = [p for p in pools if p.is_active]
            active.sort(key=lambda p: p.liquidity_usd, reverse=True)
            top = active[: self._top_pools]

            timestamp = get_timestamp()
            results = await asyncio.gather(
                *(
                    self._observe_pool(pool, block_number, fee_data.gas_price_gwei, timestamp)
                    for pool in top
                ),
                return_exceptions=True,
            )

        points: list[PricePoint] = []
        failed = 0
        for pool, result in zip(top, results):
            if isinstance(result, Exception):
                failed += 1
                logger.warning(f"[{chain}] Failed to price pool {pool.id}: {result}")
            elif result is not None:
                points.append(result)

        if self._metrics is not None:
            self._metrics.record_prices(len(points), failed)
            self._metrics.record_latency(f"prices_{chain}", timer.latency_us)

        logger.debug(
            f"[{chain}] Block {block_number}: {len(points)} new prices from {len(top)} pools, "
            f"gas {snapshot.max_fee:.2f} gwei"
        )
        return points

    async def _observe_pool(
        self,
        pool: Pool,
        block_number: int,
        gas_price: float,
        timestamp: float,
    ) -> PricePoint | None:
        if self._cache.get(pool.id) is not None:
            return None

        price = compute_price(pool)
        if price is None:
            return None

        point = PricePoint(
            pool_id=pool.id,
            price=price,
            reserve0=pool.reserve0,
            reserve1=pool.reserve1,
            block_number=block_number,
            timestamp=timestamp,
            gas_price=gas_price,
        )
        await self._repository.insert_price_point(point)
        self._cache.set(pool.id, price)
        return point

    def cached_price(self, pool_id: str) -> float | None:
        """Fresh cached price of a pool, or None."""
        return self._cache.get(pool_id)

    def latest_gas(self, chain: str) -> GasSnapshot | None:
        """Latest gas snapshot of a chain."""
        return self._gas.get(chain)

    def _count(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter(name)

    @property
    def chains(self) -> list[str]:
        return list(self._clients)

    @property
    def cache(self) -> TTLCache[str, float]:
        return self._cache
