"""
Route risk and viability scoring.

All scores live on a 0-10 scale. Routes are ranked by viability score,
ties broken by estimated profit.
"""

from collections.abc import Sequence

from dexarb.config.constants import CROSS_CHAIN_RISK_PENALTY, MAX_RISK_SCORE
from dexarb.core.types import ArbitrageRoute, ExecutionComplexity, RouteStep
from dexarb.utils.math import clamp, safe_divide


def risk_score(steps: Sequence[RouteStep], cross_chain: bool) -> float:
    """Hop count plus 100x cumulative price impact, capped at 10."""
    score = len(steps) + 100.0 * sum(step.price_impact for step in steps)
    if cross_chain:
        score += CROSS_CHAIN_RISK_PENALTY
    return min(MAX_RISK_SCORE, score)


def liquidity_utilization(steps: Sequence[RouteStep]) -> float:
    """
    Largest share of a pool's USD liquidity consumed by one hop.

    Returns:
        Utilization in [0, 1].
    """
    worst = 0.0
    for step in steps:
        pool = step.pool
        if pool.liquidity_usd <= 0:
            # No USD data: fall back to the reserve share
            reserve_in, _ = pool.reserves_for(step.token_in)
            share = safe_divide(step.amount_in, 2.0 * reserve_in, default=1.0)
        else:
            share = pool.token_value_usd(step.token_in, step.amount_in) / pool.liquidity_usd
        worst = max(worst, share)
    return clamp(worst, 0.0, 1.0)


def execution_complexity(hop_count: int, cross_chain: bool) -> ExecutionComplexity:
    """Classify how hard a route is to execute."""
    if cross_chain or hop_count > 3:
        return ExecutionComplexity.COMPLEX
    if hop_count == 3:
        return ExecutionComplexity.MEDIUM
    return ExecutionComplexity.SIMPLE


def viability_score(
    profit_margin: float,
    gross_profit: float,
    total_gas: float,
    total_price_impact: float,
    hop_count: int,
) -> float:
    """
    Average of four 0-10 sub-scores.

    - profit: 1% margin or better scores 10
    - gas: share of gross profit left after gas
    - impact: 5% cumulative impact or worse scores 0
    - hops: two hops score 10, each extra hop costs 2
    """
    profit = clamp(profit_margin * 1000.0, 0.0, 10.0)
    if gross_profit > 0:
        gas = clamp(10.0 * (1.0 - total_gas / gross_profit), 0.0, 10.0)
    else:
        gas = 0.0
    impact = clamp(10.0 - 200.0 * total_price_impact, 0.0, 10.0)
    hops = clamp(10.0 - 2.0 * (hop_count - 2), 0.0, 10.0)
    return (profit + gas + impact + hops) / 4.0


def rank_key(route: ArbitrageRoute) -> tuple[float, float]:
    """Sort key: viability score, then estimated profit (use reverse=True)."""
    return (route.viability_score, route.estimated_profit)


def rank_routes(routes: list[ArbitrageRoute]) -> list[ArbitrageRoute]:
    """Sort routes best first."""
    return sorted(routes, key=rank_key, reverse=True)
