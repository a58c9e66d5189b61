#!/usr/bin/env python3
"""
Route Discovery Script.

Loads a pool snapshot and prints the best arbitrage routes
without connecting to any chain.

Usage:
    find_routes.py                       # simulated pools, top routes
    find_routes.py pools.json            # snapshot file, top routes
    find_routes.py pools.json ETH USDC   # routes for one pair
"""

import sys
from pathlib import Path

# Add src to path for direct execution
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from dexarb.config.settings import get_settings
from dexarb.simulation.market import PoolSimulator
from dexarb.storage.snapshot import dump_pools_to_json, load_pools_from_json
from dexarb.strategy.routes import RouteFinder
from dexarb.utils.math import format_usd


def main() -> int:
    """Discover and display routes."""
    print("=" * 60)
    print("  ROUTE DISCOVERY")
    print("=" * 60)
    print()

    try:
        settings = get_settings()
    except Exception as e:
        print(f"Error loading settings: {e}")
        return 1

    args = sys.argv[1:]
    snapshot = Path(args[0]) if args else settings.pools_file

    if snapshot is not None:
        print(f"Loading pools from {snapshot}...")
        pools = load_pools_from_json(snapshot)
    else:
        print("No snapshot given, simulating pools...")
        simulator = PoolSimulator(chains=settings.chains, seed=42)
        for _ in range(50):
            pools = simulator.tick()
        export_path = Path("pools.json")
        dump_pools_to_json(pools, export_path)
        print(f"Simulated snapshot exported to: {export_path}")

    finder = RouteFinder(
        pools,
        swap_gas_cost_usd=settings.swap_gas_cost_usd,
        flash_loan_threshold_usd=settings.flash_loan_threshold_usd,
        default_trade_size_usd=settings.default_trade_size_usd,
    )
    print(f"Graph: {len(finder.graph.tokens)} tokens, {finder.graph.pool_count} pools")
    print()

    constraints = settings.default_constraints

    if len(args) >= 3:
        token_a, token_b = args[1].upper(), args[2].upper()
        price = finder.graph.token_price_usd(token_a)
        if not price:
            print(f"No USD price for {token_a}")
            return 1
        amount = settings.default_trade_size_usd / price
        print(f"Searching {token_a}/{token_b} with {amount:.6f} {token_a}...")
        routes = finder.find_arbitrage_routes(token_a, token_b, amount, constraints)
    else:
        print("Scanning all token pairs...")
        routes = finder.get_top_opportunities(limit=20, constraints=constraints)

    print(f"Found {len(routes)} routes")
    print()

    for i, route in enumerate(routes, 1):
        print(f"{i:3}. {' -> '.join(route.path)} [{route.strategy.value}]")
        print(
            f"     profit={format_usd(route.estimated_profit)} "
            f"margin={route.profit_margin * 100:.3f}% "
            f"gas={format_usd(route.total_gas_estimate)}"
        )
        print(
            f"     viability={route.viability_score:.2f} risk={route.risk_score:.2f} "
            f"complexity={route.execution_complexity.value}"
            f"{' flash-loan' if route.flash_loan_required else ''}"
        )
        for step in route.steps:
            print(f"       {step!r} impact={step.price_impact * 100:.3f}%")
        print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
