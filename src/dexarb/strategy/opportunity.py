"""
Pairwise opportunity detection.

Compares cached prices of pools quoting the same token pair, on one chain
or across chains, and records two-pool divergences that cover their gas.
"""

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from itertools import combinations

from dexarb.config.constants import (
    ARBITRAGE_GAS_COST_USD,
    DEFAULT_ARBITRAGE_GAS_COST_USD,
    DEFAULT_DETECTION_POOL_LIMIT,
    DEFAULT_MAX_TRADE_SIZE_USD,
    DEFAULT_MIN_ABSOLUTE_PROFIT,
    DEFAULT_MIN_PRICE_DELTA,
    DEFAULT_SLIPPAGE_FACTOR,
    DEFAULT_TRADE_SIZE_FRACTION,
)
from dexarb.core.types import ArbitrageOpportunity, Pool, PoolRepository
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.utils.math import relative_delta
from dexarb.utils.time import LatencyTimer, get_timestamp


logger = logging.getLogger(__name__)


# Type alias for opportunity callbacks
OpportunityCallback = Callable[[ArbitrageOpportunity], None]

# Fresh cached price of a pool, or None
PriceLookup = Callable[[str], float | None]


@dataclass
class OpportunityStats:
    """Statistics for pairwise detection."""

    total_scans: int = 0
    pairs_evaluated: int = 0
    pools_skipped: int = 0
    opportunities_found: int = 0
    insert_failures: int = 0
    best_net_profit: float = 0.0
    avg_net_profit: float = 0.0
    _profit_sum: float = field(default=0.0, repr=False)

    def record_opportunity(self, net_profit: float) -> None:
        """Record a viable opportunity."""
        self.opportunities_found += 1
        self._profit_sum += net_profit
        self.avg_net_profit = self._profit_sum / self.opportunities_found

        if net_profit > self.best_net_profit:
            self.best_net_profit = net_profit


@dataclass(slots=True, frozen=True)
class DetectionParams:
    """Thresholds applied to every evaluated pool pair."""

    min_price_delta: float = DEFAULT_MIN_PRICE_DELTA
    min_absolute_profit: float = DEFAULT_MIN_ABSOLUTE_PROFIT
    trade_size_fraction: float = DEFAULT_TRADE_SIZE_FRACTION
    max_trade_size_usd: float = DEFAULT_MAX_TRADE_SIZE_USD
    slippage_factor: float = DEFAULT_SLIPPAGE_FACTOR


# =============================================================================
# Pure Pair Evaluation
# =============================================================================


def orient_price(pool: Pool, price: float, pair_key: str) -> float:
    """
    Express a pool price as units of the pair key's second symbol per first.

    ``price`` is ``reserve1 / reserve0``; a pool listing the tokens in the
    opposite order quotes the inverse.
    """
    base = pair_key.split("/", 1)[0]
    return price if pool.symbols[0] == base else 1.0 / price


def estimate_gas_cost(
    pool_a: Pool,
    pool_b: Pool,
    gas_cost_usd: Mapping[str, float] = ARBITRAGE_GAS_COST_USD,
) -> float:
    """
    USD gas cost of executing a two-pool arbitrage.

    Same chain pays once; a cross-chain pair pays both legs.
    """
    cost_a = gas_cost_usd.get(pool_a.chain, DEFAULT_ARBITRAGE_GAS_COST_USD)
    if pool_a.chain == pool_b.chain:
        return cost_a
    return cost_a + gas_cost_usd.get(pool_b.chain, DEFAULT_ARBITRAGE_GAS_COST_USD)


def evaluate_pair(
    pool_a: Pool,
    price_a: float,
    pool_b: Pool,
    price_b: float,
    params: DetectionParams = DetectionParams(),
    gas_cost_usd: Mapping[str, float] = ARBITRAGE_GAS_COST_USD,
    detected_at: float | None = None,
) -> ArbitrageOpportunity | None:
    """
    Evaluate one pool pair quoting the same token pair.

    The result does not depend on argument order: pools are put in
    pool-id order before anything is computed.

    Args:
        pool_a: First pool.
        price_a: Cached ``reserve1 / reserve0`` of ``pool_a``.
        pool_b: Second pool.
        price_b: Cached ``reserve1 / reserve0`` of ``pool_b``.
        params: Detection thresholds.
        gas_cost_usd: Per-chain USD gas cost table.
        detected_at: Detection timestamp (now if None).

    Returns:
        Opportunity (viable or not) if the divergence exceeds the minimum,
        else None.
    """
    if pool_a.pair_key != pool_b.pair_key:
        raise ValueError(f"Pools {pool_a.id} and {pool_b.id} quote different pairs")
    if price_a <= 0 or price_b <= 0:
        return None

    if pool_b.id < pool_a.id:
        pool_a, price_a, pool_b, price_b = pool_b, price_b, pool_a, price_a

    pair_key = pool_a.pair_key
    price_a = orient_price(pool_a, price_a, pair_key)
    price_b = orient_price(pool_b, price_b, pair_key)

    price_delta = relative_delta(price_a, price_b)
    if price_delta <= params.min_price_delta:
        return None

    trade_size = min(
        params.trade_size_fraction * min(pool_a.liquidity_usd, pool_b.liquidity_usd),
        params.max_trade_size_usd,
    )
    profit_estimate = trade_size * price_delta * params.slippage_factor
    gas_estimate = estimate_gas_cost(pool_a, pool_b, gas_cost_usd)
    viable = profit_estimate - gas_estimate > params.min_absolute_profit

    timestamp = get_timestamp() if detected_at is None else detected_at

    return ArbitrageOpportunity(
        id=f"{pool_a.id}-{pool_b.id}-{int(timestamp * 1000)}",
        pool_a=pool_a.id,
        pool_b=pool_b.id,
        token_pair=pair_key,
        price_a=price_a,
        price_b=price_b,
        price_delta=price_delta,
        profit_estimate=profit_estimate,
        gas_estimate=gas_estimate,
        liquidity_required=trade_size,
        viable=viable,
        cross_chain=pool_a.chain != pool_b.chain,
        detected_at=timestamp,
    )


def group_by_pair(pools: Iterable[Pool]) -> dict[str, list[Pool]]:
    """Group pools by order-independent pair key."""
    groups: dict[str, list[Pool]] = defaultdict(list)
    for pool in pools:
        groups[pool.pair_key].append(pool)
    return dict(groups)


# =============================================================================
# Detector
# =============================================================================


class PairwiseOpportunityDetector:
    """
    Detects two-pool price divergences.

    Features:
    - Reads cached prices only, never fetches
    - Same-chain and cross-chain pairs
    - Per-insert failure isolation
    - Callback-based notification
    """

    def __init__(
        self,
        repository: PoolRepository,
        price_lookup: PriceLookup,
        params: DetectionParams | None = None,
        gas_cost_usd: Mapping[str, float] | None = None,
        pool_limit: int = DEFAULT_DETECTION_POOL_LIMIT,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the detector.

        Args:
            repository: Pool and opportunity store.
            price_lookup: Returns a pool's fresh cached price or None.
            params: Detection thresholds.
            gas_cost_usd: Per-chain USD gas cost table.
            pool_limit: Top liquidity pools loaded per pass.
            metrics: Optional metrics collector.
        """
        self._repository = repository
        self._price_lookup = price_lookup
        self._params = params or DetectionParams()
        self._gas_cost = dict(ARBITRAGE_GAS_COST_USD if gas_cost_usd is None else gas_cost_usd)
        self._pool_limit = pool_limit
        self._metrics = metrics

        self._callbacks: list[OpportunityCallback] = []
        self._stats = OpportunityStats()

    def register_callback(self, callback: OpportunityCallback) -> None:
        """Register callback for viable opportunities."""
        self._callbacks.append(callback)

    def unregister_callback(self, callback: OpportunityCallback) -> None:
        """Unregister a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def _notify_callbacks(self, opportunity: ArbitrageOpportunity) -> None:
        for callback in self._callbacks:
            try:
                callback(opportunity)
            except Exception as e:
                logger.error(f"Callback error: {e}")

    def scan(self, pools: Iterable[Pool]) -> list[ArbitrageOpportunity]:
        """
        Evaluate every same-pair pool combination.

        Pools without a fresh cached price are skipped silently.

        Returns:
            Viable opportunities, best net profit first.
        """
        self._stats.total_scans += 1
        detected_at = get_timestamp()
        opportunities: list[ArbitrageOpportunity] = []

        for pair_key, group in group_by_pair(pools).items():
            if len(group) < 2:
                continue

            priced: list[tuple[Pool, float]] = []
            for pool in group:
                price = self._price_lookup(pool.id)
                if price is None:
                    self._stats.pools_skipped += 1
                    continue
                priced.append((pool, price))

            for (pool_a, price_a), (pool_b, price_b) in combinations(priced, 2):
                self._stats.pairs_evaluated += 1
                opportunity = evaluate_pair(
                    pool_a,
                    price_a,
                    pool_b,
                    price_b,
                    self._params,
                    self._gas_cost,
                    detected_at,
                )
                if opportunity is None:
                    continue

                if self._metrics is not None:
                    self._metrics.record_opportunity(opportunity)

                if opportunity.viable:
                    opportunities.append(opportunity)

        opportunities.sort(key=lambda o: o.net_profit, reverse=True)
        return opportunities

    async def detect(self) -> list[ArbitrageOpportunity]:
        """
        Run one detection pass against the repository.

        Returns:
            Viable opportunities written during this pass.
        """
        with LatencyTimer() as timer:
            pools = await self._repository.get_top_liquidity_pools(self._pool_limit)
            opportunities = self.scan(pools)

        if self._metrics is not None:
            self._metrics.record_latency("detection", timer.latency_us)

        written: list[ArbitrageOpportunity] = []
        for opportunity in opportunities:
            try:
                await self._repository.insert_arbitrage_opportunity(opportunity)
            except Exception as e:
                self._stats.insert_failures += 1
                logger.warning(f"Failed to store opportunity {opportunity.id}: {e}")
                continue

            written.append(opportunity)
            self._stats.record_opportunity(opportunity.net_profit)
            self._notify_callbacks(opportunity)
            logger.info(
                f"Opportunity {opportunity.token_pair} "
                f"{opportunity.pool_a} vs {opportunity.pool_b}: "
                f"delta={opportunity.price_delta * 100:.2f}% "
                f"net=${opportunity.net_profit:.2f}"
                f"{' (cross-chain)' if opportunity.cross_chain else ''}"
            )

        return written

    @property
    def stats(self) -> OpportunityStats:
        """Get detection statistics."""
        return self._stats

    @property
    def params(self) -> DetectionParams:
        return self._params
