"""
Arbitrage route search and ranking.

Combines three strategies over the token graph:
- direct: buy on one pool, sell on another pool of the same pair
- multi-hop: simple cycles of three or more hops through the graph
- cross-chain: reserved, yields no routes yet

Results are constraint-filtered, scored, ranked and memoized per
(pair, amount, constraint set) until the pool set changes.
"""

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from dexarb.config.constants import (
    DEFAULT_FLASH_LOAN_THRESHOLD_USD,
    DEFAULT_ROUTE_CACHE_TTL,
    DEFAULT_SWAP_GAS_COST_USD,
    DEFAULT_TRADE_SIZE_USD,
    FLASH_LOAN_FEE_RATE,
    MAX_SEARCH_EXPANSIONS,
    SWAP_GAS_COST_USD,
)
from dexarb.core.types import (
    ArbitrageRoute,
    Pool,
    PoolRepository,
    RouteConstraints,
    RouteStep,
    RouteStrategy,
)
from dexarb.market.cache import Clock, TTLCache
from dexarb.strategy import scoring
from dexarb.strategy.graph import PoolPredicate, TokenGraph
from dexarb.strategy.swap import quote_swap
from dexarb.telemetry.metrics import MetricsCollector
from dexarb.utils.time import LatencyTimer


logger = logging.getLogger(__name__)


RouteCacheKey = tuple[str, str, float, str]


@dataclass(slots=True, frozen=True)
class _Frame:
    """Partial cycle on the search stack. Each frame owns its path."""

    token: str
    path: tuple[str, ...]
    steps: tuple[RouteStep, ...]
    amount: float
    impact: float
    chain: str | None


class RouteFinder:
    """
    Finds and ranks arbitrage routes for a token pair.

    Route search is synchronous, in-memory computation over the current
    pool snapshot. Only ``refresh`` touches the repository.
    """

    def __init__(
        self,
        pools: Iterable[Pool] = (),
        cache_ttl: float | None = DEFAULT_ROUTE_CACHE_TTL,
        swap_gas_cost_usd: dict[str, float] | None = None,
        flash_loan_threshold_usd: float = DEFAULT_FLASH_LOAN_THRESHOLD_USD,
        default_trade_size_usd: float = DEFAULT_TRADE_SIZE_USD,
        max_expansions: int = MAX_SEARCH_EXPANSIONS,
        metrics: MetricsCollector | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        """
        Initialize route finder.

        Args:
            pools: Initial pool snapshot.
            cache_ttl: Route cache entry lifetime, None for no expiry.
            swap_gas_cost_usd: USD gas cost of one swap per chain.
            flash_loan_threshold_usd: Input value requiring a flash loan.
            default_trade_size_usd: Input value used by top-opportunity scans.
            max_expansions: Stack frames expanded per multi-hop search.
            metrics: Optional metrics collector.
            clock: Time source for the route cache.
        """
        self._graph = TokenGraph()
        self._cache: TTLCache[RouteCacheKey, list[ArbitrageRoute]] = TTLCache(
            cache_ttl, clock=clock
        )
        self._swap_gas = dict(SWAP_GAS_COST_USD if swap_gas_cost_usd is None else swap_gas_cost_usd)
        self._flash_loan_threshold = flash_loan_threshold_usd
        self._default_trade_size = default_trade_size_usd
        self._max_expansions = max_expansions
        self._metrics = metrics
        self._invalidations = 0

        self.update_pools(pools)

    # =========================================================================
    # Pool Set Management
    # =========================================================================

    def update_pools(self, pools: Iterable[Pool]) -> None:
        """
        Replace the pool snapshot.

        Rebuilds the token graph and clears the whole route cache.
        """
        self._graph.rebuild(pools)
        self._cache.invalidate_all()
        self._invalidations += 1

    async def refresh(self, repository: PoolRepository, chains: Sequence[str]) -> int:
        """
        Reload pools from the repository.

        Args:
            repository: Pool repository.
            chains: Chains to load.

        Returns:
            Number of pools in the rebuilt graph.
        """
        results = await asyncio.gather(*(repository.get_pools_by_chain(c) for c in chains))
        pools = [pool for chain_pools in results for pool in chain_pools]
        self.update_pools(pools)
        return self._graph.pool_count

    # =========================================================================
    # Public Search API
    # =========================================================================

    def find_arbitrage_routes(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        constraints: RouteConstraints | None = None,
    ) -> list[ArbitrageRoute]:
        """
        Find ranked arbitrage routes starting and ending at ``token_a``.

        Args:
            token_a: Start/end token, the unit of ``amount_in``.
            token_b: Counter token every route must trade through.
            amount_in: Input amount in ``token_a`` units.
            constraints: Search constraints (defaults if None).

        Returns:
            Routes with estimated profit >= constraints.min_profit, best first.
        """
        if amount_in <= 0:
            raise ValueError("amount_in must be positive")

        constraints = constraints or RouteConstraints()
        token_a = token_a.upper()
        token_b = token_b.upper()
        if token_a == token_b:
            raise ValueError("token_a and token_b must differ")

        key: RouteCacheKey = (token_a, token_b, amount_in, constraints.cache_key())
        cached = self._cache.get(key)
        if cached is not None:
            self._count("route_cache_hits")
            return list(cached)

        self._count("route_searches")

        with LatencyTimer() as timer:
            if token_a in constraints.excluded_tokens or token_b in constraints.excluded_tokens:
                routes: list[ArbitrageRoute] = []
            else:
                routes = [
                    *self._find_direct(token_a, token_b, amount_in, constraints),
                    *self._find_multi_hop(token_a, token_b, amount_in, constraints),
                    *self._find_cross_chain(token_a, token_b, amount_in, constraints),
                ]
            routes = scoring.rank_routes(
                [r for r in routes if r.estimated_profit >= constraints.min_profit]
            )

        if self._metrics is not None:
            self._metrics.record_latency("route_search", timer.latency_us)
            self._metrics.record_routes(routes)

        self._cache.set(key, routes)
        return list(routes)

    def get_top_opportunities(
        self,
        limit: int = 10,
        constraints: RouteConstraints | None = None,
        trade_size_usd: float | None = None,
    ) -> list[ArbitrageRoute]:
        """
        Scan every connected token pair and rank the best routes.

        Each start token is sized to the same USD input value.

        Args:
            limit: Maximum routes to return.
            constraints: Search constraints (defaults if None).
            trade_size_usd: USD input value (finder default if None).

        Returns:
            Up to ``limit`` distinct routes, best first.
        """
        size_usd = trade_size_usd or self._default_trade_size
        found: dict[str, ArbitrageRoute] = {}

        for token_a, token_b in self._graph.token_pairs():
            for start, counter in ((token_a, token_b), (token_b, token_a)):
                price = self._graph.token_price_usd(start)
                if not price:
                    continue
                for route in self.find_arbitrage_routes(
                    start, counter, size_usd / price, constraints
                ):
                    found.setdefault(route.id, route)

        return scoring.rank_routes(list(found.values()))[:limit]

    # =========================================================================
    # Strategies
    # =========================================================================

    def _find_direct(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        constraints: RouteConstraints,
    ) -> list[ArbitrageRoute]:
        """Buy ``token_b`` on one pool and sell it back on another."""
        pools = [p for p in self._graph.pools_between(token_a, token_b) if constraints.allows_pool(p)]
        routes: list[ArbitrageRoute] = []

        for buy_pool in pools:
            for sell_pool in pools:
                if buy_pool.id == sell_pool.id or buy_pool.chain != sell_pool.chain:
                    continue
                try:
                    buy = self._make_step(buy_pool, token_a, amount_in)
                    sell = self._make_step(sell_pool, token_b, buy.amount_out)
                    if buy.price_impact + sell.price_impact > constraints.max_price_impact:
                        continue
                    route = self._build_route(RouteStrategy.DIRECT, (buy, sell), constraints)
                except Exception as e:
                    logger.debug(f"Direct candidate {buy_pool.id}/{sell_pool.id} dropped: {e}")
                    continue
                if route is not None:
                    routes.append(route)

        return routes

    def _find_multi_hop(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        constraints: RouteConstraints,
    ) -> list[ArbitrageRoute]:
        """
        Depth-bounded search for cycles through ``token_b``.

        Cycles start and end at ``token_a``, visit no token twice and have
        3 to ``max_hops`` hops. Uses an explicit stack; each frame carries
        its own immutable path, so sibling branches never share state.
        """
        if not self._graph.has_token(token_a) or not self._graph.has_token(token_b):
            return []

        max_hops = constraints.max_hops
        if max_hops < 3:
            return []

        routes: list[ArbitrageRoute] = []
        stack = [_Frame(token_a, (token_a,), (), amount_in, 0.0, None)]
        expansions = 0

        while stack:
            frame = stack.pop()
            expansions += 1
            if expansions > self._max_expansions:
                logger.debug(f"Multi-hop search {token_a}/{token_b} hit expansion cap")
                break

            depth = len(frame.steps)

            for next_token in self._graph.neighbors(frame.token):
                closing = next_token == token_a
                if closing:
                    if depth + 1 < 3 or token_b not in frame.path:
                        continue
                elif (
                    next_token in frame.path
                    or next_token in constraints.excluded_tokens
                    or depth + 2 > max_hops
                ):
                    continue

                for pool in self._hop_pools(frame, next_token, constraints):
                    try:
                        step = self._make_step(pool, frame.token, frame.amount)
                    except Exception as e:
                        logger.debug(f"Hop {frame.token}->{next_token} via {pool.id} dropped: {e}")
                        continue

                    impact = frame.impact + step.price_impact
                    if impact > constraints.max_price_impact:
                        continue

                    steps = frame.steps + (step,)
                    if closing:
                        try:
                            route = self._build_route(RouteStrategy.MULTI_HOP, steps, constraints)
                        except Exception as e:
                            logger.debug(f"Cycle {'->'.join(frame.path)} dropped: {e}")
                            continue
                        if route is not None:
                            routes.append(route)
                    else:
                        stack.append(
                            _Frame(
                                token=next_token,
                                path=frame.path + (next_token,),
                                steps=steps,
                                amount=step.amount_out,
                                impact=impact,
                                chain=step.pool.chain,
                            )
                        )

        return routes

    def _hop_pools(
        self,
        frame: _Frame,
        next_token: str,
        constraints: RouteConstraints,
    ) -> list[Pool]:
        """
        Pools to try for the hop ``frame.token -> next_token``.

        Once a cycle has a chain, only the best pool on that chain is tried.
        The first hop tries the best pool on every chain, so a deeper pool on
        a chain that cannot close the cycle never hides one that can.
        """
        if frame.chain is not None:
            chains = [frame.chain]
        else:
            chains = sorted({p.chain for p in self._graph.pools_between(frame.token, next_token)})

        pools: list[Pool] = []
        for chain in chains:
            best = self._graph.best_pool(
                frame.token, next_token, frame.amount, self._pool_filter(constraints, chain)
            )
            if best is not None:
                pools.append(best[0])
        return pools

    def _find_cross_chain(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        constraints: RouteConstraints,
    ) -> list[ArbitrageRoute]:
        """Cross-chain routes need bridge pricing, which is not modelled yet."""
        if constraints.allow_cross_chain:
            logger.debug(f"Cross-chain search for {token_a}/{token_b} not supported")
        return []

    # =========================================================================
    # Route Construction
    # =========================================================================

    def _pool_filter(self, constraints: RouteConstraints, chain: str | None) -> PoolPredicate:
        def allowed(pool: Pool) -> bool:
            if chain is not None and pool.chain != chain:
                return False
            return constraints.allows_pool(pool)

        return allowed

    def _make_step(self, pool: Pool, token_in: str, amount_in: float) -> RouteStep:
        quote = quote_swap(pool, token_in, amount_in)
        return RouteStep(
            pool=pool,
            token_in=token_in,
            token_out=pool.other_token(token_in),
            amount_in=amount_in,
            amount_out=quote.amount_out,
            price_impact=quote.price_impact,
            gas_estimate=self.swap_gas_cost(pool.chain),
        )

    def _build_route(
        self,
        strategy: RouteStrategy,
        steps: tuple[RouteStep, ...],
        constraints: RouteConstraints,
    ) -> ArbitrageRoute | None:
        """
        Price a complete cycle and apply route-level constraints.

        Returns:
            Scored route, or None if a constraint rejects it.
        """
        first = steps[0]
        input_usd = first.pool.token_value_usd(first.token_in, first.amount_in)
        if input_usd <= 0:
            return None

        total_impact = sum(step.price_impact for step in steps)
        if total_impact > constraints.max_price_impact or len(steps) > constraints.max_hops:
            return None

        total_gas = sum(step.gas_estimate for step in steps)
        if total_gas > constraints.max_gas_cost:
            return None

        utilization = scoring.liquidity_utilization(steps)
        if utilization > constraints.max_liquidity_utilization:
            return None

        amount_out = steps[-1].amount_out
        gross_profit = (amount_out - first.amount_in) * (input_usd / first.amount_in)
        flash_loan_required = input_usd > self._flash_loan_threshold
        flash_loan_fee = input_usd * FLASH_LOAN_FEE_RATE if flash_loan_required else 0.0
        estimated_profit = gross_profit - total_gas - flash_loan_fee
        if estimated_profit < constraints.min_profit:
            return None

        cross_chain = len({step.pool.chain for step in steps}) > 1
        profit_margin = estimated_profit / input_usd

        return ArbitrageRoute(
            id=self._route_id(strategy, steps),
            strategy=strategy,
            steps=steps,
            amount_in=first.amount_in,
            amount_out=amount_out,
            total_gas_estimate=total_gas,
            estimated_profit=estimated_profit,
            profit_margin=profit_margin,
            risk_score=scoring.risk_score(steps, cross_chain),
            liquidity_utilization=utilization,
            execution_complexity=scoring.execution_complexity(len(steps), cross_chain),
            flash_loan_required=flash_loan_required,
            cross_chain=cross_chain,
            viability_score=scoring.viability_score(
                profit_margin=profit_margin,
                gross_profit=gross_profit,
                total_gas=total_gas,
                total_price_impact=total_impact,
                hop_count=len(steps),
            ),
        )

    @staticmethod
    def _route_id(strategy: RouteStrategy, steps: Sequence[RouteStep]) -> str:
        hops = "|".join(f"{s.token_in}>{s.token_out}@{s.pool.id}" for s in steps)
        return f"{strategy.value}:{hops}"

    def swap_gas_cost(self, chain: str) -> float:
        """USD gas cost of one swap on a chain."""
        return self._swap_gas.get(chain, DEFAULT_SWAP_GAS_COST_USD)

    def _count(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.increment_counter(name)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def graph(self) -> TokenGraph:
        return self._graph

    @property
    def cache(self) -> TTLCache[RouteCacheKey, list[ArbitrageRoute]]:
        return self._cache

    @property
    def invalidation_count(self) -> int:
        """Number of times the pool set was replaced."""
        return self._invalidations
