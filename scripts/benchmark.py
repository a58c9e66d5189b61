#!/usr/bin/env python3
"""
Latency Benchmark Script.

Measures route search, graph rebuild and pairwise scan latencies
on simulated pools.
"""

import statistics
import sys
from pathlib import Path

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dexarb.core.types import RouteConstraints
from dexarb.simulation.market import PoolSimulator
from dexarb.strategy.opportunity import PairwiseOpportunityDetector
from dexarb.strategy.routes import RouteFinder
from dexarb.utils.time import format_duration_us, get_timestamp_us


# Permissive constraints so every candidate is fully evaluated
BENCH_CONSTRAINTS = RouteConstraints(
    max_hops=4,
    min_profit=-1e12,
    max_gas_cost=1e12,
    max_liquidity_utilization=1.0,
    max_price_impact=1.0,
)


def summarize(latencies: list[int]) -> dict[str, float]:
    return {
        "min": min(latencies),
        "max": max(latencies),
        "avg": statistics.mean(latencies),
        "p50": statistics.median(latencies),
        "p99": sorted(latencies)[int(len(latencies) * 0.99)],
    }


def benchmark_graph_rebuild(iterations: int = 200) -> dict[str, float]:
    """Benchmark token graph rebuild plus cache invalidation."""
    simulator = PoolSimulator(seed=1)
    finder = RouteFinder()
    latencies: list[int] = []

    for _ in range(iterations):
        pools = simulator.tick()
        start = get_timestamp_us()
        finder.update_pools(pools)
        latencies.append(get_timestamp_us() - start)

    return summarize(latencies)


def benchmark_route_search(iterations: int = 200) -> dict[str, float]:
    """Benchmark uncached route search for ETH/USDC."""
    simulator = PoolSimulator(chains=["arbitrum"], seed=2)
    latencies: list[int] = []

    for _ in range(iterations):
        finder = RouteFinder(simulator.tick())
        start = get_timestamp_us()
        finder.find_arbitrage_routes("ETH", "USDC", 1.0, BENCH_CONSTRAINTS)
        latencies.append(get_timestamp_us() - start)

    return summarize(latencies)


def benchmark_cached_route_search(iterations: int = 10000) -> dict[str, float]:
    """Benchmark route cache hits."""
    simulator = PoolSimulator(chains=["arbitrum"], seed=3)
    finder = RouteFinder(simulator.pools)
    finder.find_arbitrage_routes("ETH", "USDC", 1.0, BENCH_CONSTRAINTS)
    latencies: list[int] = []

    for _ in range(iterations):
        start = get_timestamp_us()
        finder.find_arbitrage_routes("ETH", "USDC", 1.0, BENCH_CONSTRAINTS)
        latencies.append(get_timestamp_us() - start)

    return summarize(latencies)


def benchmark_pairwise_scan(iterations: int = 500) -> dict[str, float]:
    """Benchmark one pairwise scan over all simulated pools."""
    simulator = PoolSimulator(seed=4)
    pools = simulator.pools
    prices = {p.id: p.reserve1 / p.reserve0 for p in pools}
    detector = PairwiseOpportunityDetector(repository=None, price_lookup=prices.get)  # type: ignore[arg-type]
    latencies: list[int] = []

    for _ in range(iterations):
        start = get_timestamp_us()
        detector.scan(pools)
        latencies.append(get_timestamp_us() - start)

    return summarize(latencies)


def format_stats(stats: dict[str, float]) -> str:
    """Format stats for display."""
    return (
        f"min={format_duration_us(int(stats['min']))}, "
        f"avg={format_duration_us(int(stats['avg']))}, "
        f"p50={format_duration_us(int(stats['p50']))}, "
        f"p99={format_duration_us(int(stats['p99']))}, "
        f"max={format_duration_us(int(stats['max']))}"
    )


def main() -> int:
    """Run all benchmarks."""
    print("=" * 70)
    print("  LATENCY BENCHMARK")
    print("=" * 70)
    print()

    # Warm up
    print("Warming up...")
    benchmark_graph_rebuild(10)
    benchmark_route_search(10)
    print()

    print("Running benchmarks...")
    print()

    print("1. Graph Rebuild (200 iterations)")
    print(f"   {format_stats(benchmark_graph_rebuild(200))}")
    print()

    print("2. Route Search, uncached (200 iterations)")
    print(f"   {format_stats(benchmark_route_search(200))}")
    print()

    print("3. Route Search, cached (10,000 iterations)")
    print(f"   {format_stats(benchmark_cached_route_search(10000))}")
    print()

    print("4. Pairwise Scan (500 iterations)")
    print(f"   {format_stats(benchmark_pairwise_scan(500))}")
    print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
