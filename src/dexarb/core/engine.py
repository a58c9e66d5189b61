"""
Main arbitrage engine orchestrator.

Coordinates all system components and manages the
detection lifecycle.
"""

import asyncio
import logging
import signal
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from functools import partial

from dexarb.chain.client import JsonRpcClient
from dexarb.chain.rate_limiter import RateLimiter
from dexarb.config.constants import METRICS_REPORT_INTERVAL
from dexarb.config.settings import Settings
from dexarb.core.scheduler import PeriodicTask
from dexarb.core.types import (
    ArbitrageOpportunity,
    ArbitrageRoute,
    ChainClient,
    Pool,
    PoolRepository,
    RouteConstraints,
)
from dexarb.market.observer import PriceObserver
from dexarb.storage.memory import InMemoryPoolRepository
from dexarb.storage.snapshot import load_pools_from_json
from dexarb.strategy.opportunity import DetectionParams, PairwiseOpportunityDetector
from dexarb.strategy.routes import RouteFinder
from dexarb.telemetry.logger import log_status
from dexarb.telemetry.metrics import MetricsCollector


logger = logging.getLogger(__name__)


class ArbitrageEngine:
    """
    Main detection engine orchestrator.

    Manages the complete lifecycle of:
    - Repository and chain connectivity
    - Per-chain price observation
    - Pairwise opportunity detection
    - Pool snapshot refresh for route search
    - Telemetry and status reporting
    """

    def __init__(
        self,
        settings: Settings,
        repository: PoolRepository | None = None,
        chain_clients: Mapping[str, ChainClient] | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            settings: Application settings.
            repository: Pool store (in-memory if None).
            chain_clients: Chain client per chain name. If None, JSON-RPC
                clients are built from the settings and owned by the engine.
            metrics: Metrics collector (new if None).
        """
        self._settings = settings
        self._repository: PoolRepository = repository or InMemoryPoolRepository()
        self._clients: dict[str, ChainClient] = dict(chain_clients or {})
        self._owns_clients = chain_clients is None
        self._metrics = metrics or MetricsCollector()

        self._route_finder = RouteFinder(
            cache_ttl=settings.route_cache_ttl,
            swap_gas_cost_usd=settings.swap_gas_cost_usd,
            flash_loan_threshold_usd=settings.flash_loan_threshold_usd,
            default_trade_size_usd=settings.default_trade_size_usd,
            metrics=self._metrics,
        )
        # Configured chains plus any chain an explicit pool update touched
        self._route_chains: list[str] = list(settings.chains)

        # Components built in setup
        self._observer: PriceObserver | None = None
        self._detector: PairwiseOpportunityDetector | None = None
        self._tasks: list[PeriodicTask] = []

        # State
        self._setup_done = False
        self._running = False
        self._shutdown_event = asyncio.Event()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def setup(self) -> None:
        """Initialize all components. Safe to call twice."""
        if self._setup_done:
            return

        logger.info("Initializing arbitrage engine...")

        await self._repository.initialize()

        if self._settings.pools_file:
            pools = load_pools_from_json(self._settings.pools_file)
            for pool in pools:
                await self._repository.insert_pool(pool)
            self._track_chains(pools)
            logger.info(f"Loaded {len(pools)} pools from {self._settings.pools_file}")

        if self._owns_clients:
            self._clients = self._build_rpc_clients()

        self._observer = PriceObserver(
            repository=self._repository,
            clients=self._clients,
            cache_ttl=self._settings.price_cache_ttl,
            top_pools=self._settings.top_pools_per_chain,
            metrics=self._metrics,
        )

        self._detector = PairwiseOpportunityDetector(
            repository=self._repository,
            price_lookup=self._observer.cached_price,
            params=DetectionParams(
                min_price_delta=self._settings.min_price_delta,
                min_absolute_profit=self._settings.min_absolute_profit,
                max_trade_size_usd=self._settings.max_trade_size_usd,
                slippage_factor=self._settings.slippage_factor,
            ),
            gas_cost_usd=self._settings.arbitrage_gas_cost_usd,
            pool_limit=self._settings.detection_pool_limit,
            metrics=self._metrics,
        )

        pool_count = await self._route_finder.refresh(self._repository, self._route_chains)
        logger.info(f"Route graph ready with {pool_count} pools")

        self._tasks = self._build_tasks()
        self._setup_done = True

        logger.info(
            f"Engine initialization complete: {len(self._clients)} chains, "
            f"{len(self._tasks)} scheduled tasks"
        )

    def _build_rpc_clients(self) -> dict[str, ChainClient]:
        clients: dict[str, ChainClient] = {}
        for config in self._settings.chain_configs:
            if config.rpc_url is None:
                logger.warning(f"[{config.name}] No RPC endpoint configured, chain skipped")
                continue
            clients[config.name] = JsonRpcClient(
                chain=config.name,
                url=config.rpc_url,
                rate_limiter=RateLimiter(
                    requests_per_second=self._settings.rpc_requests_per_second,
                    min_interval=self._settings.rpc_min_call_interval,
                ),
            )
        return clients

    def _build_tasks(self) -> list[PeriodicTask]:
        assert self._observer is not None and self._detector is not None

        block_times = {c.name: c.block_time for c in self._settings.chain_configs}
        tasks = [
            PeriodicTask(
                name=f"prices:{chain}",
                body=partial(self._observer.collect_chain_prices, chain),
                interval=block_times.get(chain, self._settings.detection_interval),
            )
            for chain in self._clients
        ]
        tasks.append(
            PeriodicTask(
                name="detection",
                body=self._detector.detect,
                interval=self._settings.detection_interval,
            )
        )
        tasks.append(
            PeriodicTask(
                name="pool_refresh",
                body=self._refresh_pools,
                interval=self._settings.pool_refresh_interval,
                run_immediately=False,
            )
        )
        tasks.append(
            PeriodicTask(
                name="status",
                body=self._report_status,
                interval=METRICS_REPORT_INTERVAL,
                run_immediately=False,
            )
        )
        return tasks

    async def start(self) -> None:
        """Start all scheduled tasks, running setup first if needed."""
        if self._running:
            return

        await self.setup()

        for task in self._tasks:
            task.start()

        self._running = True
        logger.info("Engine started")

    async def stop(self) -> None:
        """Stop all scheduled tasks."""
        if not self._running:
            return

        self._running = False
        await asyncio.gather(*(task.stop() for task in self._tasks))
        logger.info("Engine stopped")

    async def run(self) -> None:
        """Run until SIGINT/SIGTERM."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self._handle_shutdown)

        try:
            await self.start()
            await self._shutdown_event.wait()

        except Exception as e:
            logger.error(f"Engine error: {e}")
            raise

        finally:
            await self.shutdown()

    def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()

    async def shutdown(self) -> None:
        """Gracefully shut down the engine."""
        logger.info("Shutting down engine...")

        await self.stop()

        if self._owns_clients:
            for client in self._clients.values():
                await client.close()

        if self._setup_done:
            await self._repository.close()
            self._setup_done = False
            log_status(self._metrics, logger)

        logger.info("Engine shutdown complete")

    # =========================================================================
    # Scheduled Bodies
    # =========================================================================

    async def _refresh_pools(self) -> None:
        count = await self._route_finder.refresh(self._repository, self._route_chains)
        self._metrics.increment_counter("pool_refreshes")
        logger.debug(f"Pool snapshot refreshed: {count} pools in route graph")

    async def _report_status(self) -> None:
        log_status(self._metrics, logger)

    def _track_chains(self, pools: Iterable[Pool]) -> None:
        for pool in pools:
            if pool.chain not in self._route_chains:
                self._route_chains.append(pool.chain)

    # =========================================================================
    # Public API
    # =========================================================================

    def find_arbitrage_routes(
        self,
        token_a: str,
        token_b: str,
        amount_in: float,
        constraints: RouteConstraints | None = None,
    ) -> list[ArbitrageRoute]:
        """
        Find ranked routes for a token pair.

        Constraints default to the configured route constraints.
        """
        return self._route_finder.find_arbitrage_routes(
            token_a,
            token_b,
            amount_in,
            constraints or self._settings.default_constraints,
        )

    def get_top_opportunities(
        self,
        limit: int = 10,
        constraints: RouteConstraints | None = None,
    ) -> list[ArbitrageRoute]:
        """Best routes across every token pair in the graph."""
        return self._route_finder.get_top_opportunities(
            limit,
            constraints or self._settings.default_constraints,
        )

    async def update_pools(self, pools: Iterable[Pool]) -> int:
        """
        Upsert pools and rebuild the route graph.

        Pools on chains outside the configured set still join the graph
        and stay in it across scheduled refreshes. Clears the route cache
        even if nothing changed.

        Returns:
            Number of pools in the rebuilt graph.
        """
        pools = list(pools)
        for pool in pools:
            await self._repository.insert_pool(pool)
        self._track_chains(pools)
        return await self._route_finder.refresh(self._repository, self._route_chains)

    async def get_viable_opportunities(
        self, min_profit: float | None = None
    ) -> list[ArbitrageOpportunity]:
        """Stored viable pairwise opportunities above a profit floor."""
        floor = self._settings.min_absolute_profit if min_profit is None else min_profit
        return await self._repository.get_viable_arbitrage_opportunities(floor)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def is_running(self) -> bool:
        """Check if engine is running."""
        return self._running

    @property
    def metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics

    @property
    def route_finder(self) -> RouteFinder:
        return self._route_finder

    @property
    def observer(self) -> PriceObserver | None:
        return self._observer

    @property
    def detector(self) -> PairwiseOpportunityDetector | None:
        return self._detector

    @property
    def tasks(self) -> list[PeriodicTask]:
        return list(self._tasks)


@asynccontextmanager
async def create_engine(
    settings: Settings,
    repository: PoolRepository | None = None,
    chain_clients: Mapping[str, ChainClient] | None = None,
) -> AsyncIterator[ArbitrageEngine]:
    """
    Create and manage engine lifecycle.

    Usage:
        async with create_engine(settings) as engine:
            await engine.run()
    """
    engine = ArbitrageEngine(settings, repository, chain_clients)

    try:
        await engine.setup()
        yield engine
    finally:
        await engine.shutdown()
