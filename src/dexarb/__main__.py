"""
Entry point for the arbitrage detector.

Usage:
    python -m dexarb
    dexarb  # if installed via pip
    DEXARB_SIMULATE=true dexarb  # demo run on simulated pools
"""

import asyncio
import sys
from functools import partial


def _install_uvloop() -> bool:
    """Use uvloop for better performance when available."""
    try:
        import uvloop
    except ImportError:
        return False

    uvloop.install()
    return True


def main() -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success).
    """
    from dexarb import __version__
    from dexarb.config.settings import get_settings
    from dexarb.core.engine import ArbitrageEngine
    from dexarb.core.scheduler import PeriodicTask
    from dexarb.simulation.market import PoolSimulator
    from dexarb.storage.memory import InMemoryPoolRepository
    from dexarb.telemetry.logger import setup_logging

    # Print banner
    print(
        f"""
╔═══════════════════════════════════════════════════════════════╗
║     MULTI-CHAIN DEX ARBITRAGE DETECTOR v{__version__:<16}      ║
║                                                               ║
║     Pool price divergence and multi-hop route search          ║
╚═══════════════════════════════════════════════════════════════╝
    """
    )

    # Load settings
    try:
        settings = get_settings()
    except Exception as e:
        print(f"Configuration error: {e}")
        print("\nSettings are read from DEXARB_* variables or a .env file, e.g.:")
        print("  DEXARB_CHAINS='[\"arbitrum\", \"base\"]'")
        print("  DEXARB_ALCHEMY_API_KEY=your_key")
        print("  DEXARB_SIMULATE=true")
        return 1

    uvloop_enabled = settings.use_uvloop and _install_uvloop()

    # Print configuration summary
    print("Configuration:")
    print(f"  Mode:             {'SIMULATION' if settings.simulate else 'LIVE RPC'}")
    print(f"  Chains:           {', '.join(settings.chains)}")
    print(f"  Min price delta:  {settings.min_price_delta * 100:.2f}%")
    print(f"  Min net profit:   ${settings.min_absolute_profit:,.2f}")
    print(f"  Max hops:         {settings.max_hops}")
    print(f"  Min route profit: ${settings.min_route_profit:,.2f}")
    print(f"  Pools file:       {settings.pools_file or '-'}")
    print(f"  uvloop:           {'Enabled' if uvloop_enabled else 'Disabled'}")
    print()

    async def run_engine() -> int:
        async_logger = setup_logging(level=settings.log_level, log_file=settings.log_file)
        simulator_task: PeriodicTask | None = None

        if settings.simulate:
            simulator = PoolSimulator(chains=settings.chains)
            repository = InMemoryPoolRepository(simulator.pools)
            engine = ArbitrageEngine(settings, repository, simulator.chain_clients())
            simulator_task = PeriodicTask(
                name="simulator",
                body=partial(simulator.step, repository),
                interval=1.0,
                run_immediately=False,
            )
        else:
            engine = ArbitrageEngine(settings)

        try:
            await engine.setup()
            if simulator_task is not None:
                simulator_task.start()
            await engine.run()
            return 0

        except KeyboardInterrupt:
            print("\nInterrupted by user")
            return 0

        except Exception as e:
            print(f"\nFatal error: {e}")
            import traceback

            traceback.print_exc()
            return 1

        finally:
            if simulator_task is not None:
                await simulator_task.stop()
            await engine.shutdown()
            async_logger.stop()

    return asyncio.run(run_engine())


if __name__ == "__main__":
    sys.exit(main())
