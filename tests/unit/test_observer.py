"""
Unit tests for PriceObserver.

Tests price computation, caching, gas snapshots and per-chain and
per-pool failure isolation.
"""

import pytest

from dexarb.core.types import FeeData, Pool, PricePoint
from dexarb.market.observer import PriceObserver, compute_price, gas_snapshot
from dexarb.storage.memory import InMemoryPoolRepository
from dexarb.telemetry.metrics import MetricsCollector
from tests.mocks import MockChainClient, make_pool


GWEI = 1_000_000_000


class FlakyRepository(InMemoryPoolRepository):
    """Repository that rejects price points of one pool."""

    def __init__(self, pools: list[Pool], failing_pool: str) -> None:
        super().__init__(pools)
        self.failing_pool = failing_pool

    async def insert_price_point(self, point: PricePoint) -> None:
        if point.pool_id == self.failing_pool:
            raise ConnectionError("write timeout")
        await super().insert_price_point(point)


async def make_repo(pools: list[Pool]) -> InMemoryPoolRepository:
    repo = InMemoryPoolRepository(pools)
    await repo.initialize()
    return repo


class TestComputePrice:
    """Tests for compute_price."""

    def test_reserve_ratio(self, pool_eth_usdc_cheap: Pool) -> None:
        assert compute_price(pool_eth_usdc_cheap) == 2000.0

    def test_zero_reserve(self, pool_zero_reserve: Pool) -> None:
        assert compute_price(pool_zero_reserve) is None


class TestGasSnapshot:
    """Tests for gas_snapshot."""

    def test_eip1559(self) -> None:
        """Test base fee recovery from max and priority fees."""
        fee_data = FeeData(
            gas_price=31 * GWEI,
            max_priority_fee_per_gas=2 * GWEI,
            max_fee_per_gas=62 * GWEI,
        )

        snapshot = gas_snapshot("ethereum", 100, fee_data)

        assert snapshot.base_fee == pytest.approx(30.0)
        assert snapshot.priority_fee == pytest.approx(2.0)
        assert snapshot.max_fee == pytest.approx(62.0)
        assert snapshot.block_number == 100

    def test_legacy(self) -> None:
        """Test that legacy chains report the gas price as base fee."""
        snapshot = gas_snapshot("polygon", 5, FeeData(gas_price=40 * GWEI))

        assert snapshot.base_fee == pytest.approx(40.0)
        assert snapshot.priority_fee == 0.0
        assert snapshot.max_fee == pytest.approx(40.0)


class TestPriceObserver:
    """Tests for PriceObserver."""

    @pytest.mark.asyncio
    async def test_collect_writes_price_points(
        self, pool_eth_usdc_cheap: Pool, pool_eth_usdc_rich: Pool
    ) -> None:
        """Test one cycle prices and stores every pool."""
        repo = await make_repo([pool_eth_usdc_cheap, pool_eth_usdc_rich])
        client = MockChainClient("arbitrum", block_number=42)
        observer = PriceObserver(repo, {"arbitrum": client})

        points = await observer.collect_chain_prices("arbitrum")

        prices = {p.pool_id: p.price for p in points}
        assert prices == {pool_eth_usdc_cheap.id: 2000.0, pool_eth_usdc_rich.id: 2100.0}
        assert all(p.block_number == 42 for p in points)
        assert all(p.gas_price == pytest.approx(1.1) for p in points)
        assert repo.price_point_count == 2
        assert observer.cached_price(pool_eth_usdc_cheap.id) == 2000.0

    @pytest.mark.asyncio
    async def test_gas_snapshot_stored(self, pool_eth_usdc_cheap: Pool) -> None:
        """Test that each cycle keeps the latest gas snapshot."""
        repo = await make_repo([pool_eth_usdc_cheap])
        observer = PriceObserver(repo, {"arbitrum": MockChainClient(base_fee_gwei=0.5)})

        assert observer.latest_gas("arbitrum") is None
        await observer.collect_chain_prices("arbitrum")

        snapshot = observer.latest_gas("arbitrum")
        assert snapshot is not None
        assert snapshot.base_fee == pytest.approx(0.5)
        assert snapshot.priority_fee == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_zero_reserve_pool_skipped(
        self, pool_eth_usdc_cheap: Pool, pool_zero_reserve: Pool
    ) -> None:
        """Test that an empty pool yields no price point."""
        repo = await make_repo([pool_eth_usdc_cheap, pool_zero_reserve])
        observer = PriceObserver(repo, {"arbitrum": MockChainClient()})

        points = await observer.collect_chain_prices("arbitrum")

        assert [p.pool_id for p in points] == [pool_eth_usdc_cheap.id]
        assert observer.cached_price(pool_zero_reserve.id) is None

    @pytest.mark.asyncio
    async def test_cached_pool_not_repriced(self, pool_eth_usdc_cheap: Pool) -> None:
        """Test that a fresh cached price suppresses a new point."""
        repo = await make_repo([pool_eth_usdc_cheap])
        now = [0.0]
        observer = PriceObserver(
            repo, {"arbitrum": MockChainClient()}, cache_ttl=5.0, clock=lambda: now[0]
        )

        assert len(await observer.collect_chain_prices("arbitrum")) == 1
        now[0] = 4.0
        assert await observer.collect_chain_prices("arbitrum") == []
        now[0] = 10.0
        assert len(await observer.collect_chain_prices("arbitrum")) == 1
        assert repo.price_point_count == 2

    @pytest.mark.asyncio
    async def test_top_pools_limit(self) -> None:
        """Test that only the deepest active pools are sampled."""
        pools = [
            make_pool(f"p{i}", "ETH", "USDC", 10.0, 20_000.0, float(i * 1_000))
            for i in range(1, 6)
        ]
        pools.append(make_pool("off", "ETH", "USDC", 10.0, 20_000.0, 1e9, is_active=False))
        repo = await make_repo(pools)
        observer = PriceObserver(repo, {"arbitrum": MockChainClient()}, top_pools=2)

        points = await observer.collect_chain_prices("arbitrum")

        assert sorted(p.pool_id for p in points) == ["p4", "p5"]

    @pytest.mark.asyncio
    async def test_other_chain_pools_ignored(self, pool_eth_usdc_cheap: Pool) -> None:
        """Test that a chain cycle only prices its own pools."""
        base_pool = make_pool("base-eth-usdc", "ETH", "USDC", 10.0, 20_000.0, chain="base")
        repo = await make_repo([pool_eth_usdc_cheap, base_pool])
        observer = PriceObserver(repo, {"arbitrum": MockChainClient()})

        points = await observer.collect_chain_prices("arbitrum")

        assert [p.pool_id for p in points] == [pool_eth_usdc_cheap.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("fail_blocks,fail_fees", [(True, False), (False, True)])
    async def test_chain_failure_aborts_cycle(
        self, pool_eth_usdc_cheap: Pool, fail_blocks: bool, fail_fees: bool
    ) -> None:
        """Test that an RPC failure skips the cycle without raising."""
        repo = await make_repo([pool_eth_usdc_cheap])
        metrics = MetricsCollector()
        client = MockChainClient(fail_blocks=fail_blocks, fail_fees=fail_fees)
        observer = PriceObserver(repo, {"arbitrum": client}, metrics=metrics)

        assert await observer.collect_chain_prices("arbitrum") == []
        assert repo.price_point_count == 0
        assert metrics.get_counter("chain_cycle_failures") == 1

    @pytest.mark.asyncio
    async def test_one_chain_failure_isolated(self, pool_eth_usdc_cheap: Pool) -> None:
        """Test that a dead chain does not affect a healthy one."""
        base_pool = make_pool("base-eth-usdc", "ETH", "USDC", 10.0, 20_000.0, chain="base")
        repo = await make_repo([pool_eth_usdc_cheap, base_pool])
        clients = {
            "arbitrum": MockChainClient("arbitrum"),
            "base": MockChainClient("base", fail_blocks=True),
        }
        observer = PriceObserver(repo, clients)

        assert await observer.collect_chain_prices("base") == []
        assert len(await observer.collect_chain_prices("arbitrum")) == 1

    @pytest.mark.asyncio
    async def test_pool_failure_isolated(
        self, pool_eth_usdc_cheap: Pool, pool_eth_usdc_rich: Pool
    ) -> None:
        """Test that one failing pool does not drop the others."""
        repo = FlakyRepository(
            [pool_eth_usdc_cheap, pool_eth_usdc_rich], failing_pool=pool_eth_usdc_cheap.id
        )
        await repo.initialize()
        metrics = MetricsCollector()
        observer = PriceObserver(repo, {"arbitrum": MockChainClient()}, metrics=metrics)

        points = await observer.collect_chain_prices("arbitrum")

        assert [p.pool_id for p in points] == [pool_eth_usdc_rich.id]
        assert metrics.detection_stats.price_points == 1
        assert metrics.detection_stats.price_failures == 1

    @pytest.mark.asyncio
    async def test_failed_write_not_cached(self, pool_eth_usdc_cheap: Pool) -> None:
        """Test that a price whose point was not stored is retried next cycle."""
        repo = FlakyRepository([pool_eth_usdc_cheap], failing_pool=pool_eth_usdc_cheap.id)
        await repo.initialize()
        observer = PriceObserver(repo, {"arbitrum": MockChainClient()}, cache_ttl=60.0)

        assert await observer.collect_chain_prices("arbitrum") == []
        assert observer.cached_price(pool_eth_usdc_cheap.id) is None

        repo.failing_pool = ""
        points = await observer.collect_chain_prices("arbitrum")

        assert [p.pool_id for p in points] == [pool_eth_usdc_cheap.id]
        assert observer.cached_price(pool_eth_usdc_cheap.id) == points[0].price
        assert repo.price_point_count == 1

    @pytest.mark.asyncio
    async def test_unknown_chain(self, repository: InMemoryPoolRepository) -> None:
        """Test that a chain without a client is a programming error."""
        observer = PriceObserver(repository, {})

        with pytest.raises(KeyError):
            await observer.collect_chain_prices("arbitrum")
