"""
Pool market simulator for demo mode.

Generates pools for several DEXes on every configured chain and moves
their reserves with a random walk, occasionally knocking one pool off
its fair price to create a cross-pool divergence.
"""

import random
import time
from collections.abc import Iterable
from dataclasses import dataclass

from dexarb.config.constants import CHAINS, WEI_PER_GWEI
from dexarb.core.types import FeeData, Pool, PoolRepository, Token
from dexarb.utils.time import get_timestamp


@dataclass(frozen=True)
class SimulatedToken:
    """Token with a reference USD price."""

    symbol: str
    price_usd: float
    decimals: int = 18
    volatility: float = 0.002  # Relative reserve shock per tick


DEFAULT_TOKENS = [
    SimulatedToken("ETH", 3500.0, 18, 0.002),
    SimulatedToken("WBTC", 65000.0, 8, 0.0015),
    SimulatedToken("USDC", 1.0, 6, 0.0001),
    SimulatedToken("USDT", 1.0, 6, 0.0001),
    SimulatedToken("ARB", 1.1, 18, 0.004),
    SimulatedToken("LINK", 18.5, 18, 0.003),
]

DEFAULT_PAIRS = [
    ("ETH", "USDC"),
    ("ETH", "USDT"),
    ("WBTC", "ETH"),
    ("WBTC", "USDC"),
    ("USDC", "USDT"),
    ("ARB", "ETH"),
    ("ARB", "USDC"),
    ("LINK", "ETH"),
]

DEFAULT_DEXES = {
    "uniswap_v2": 3000,
    "sushiswap": 3000,
    "pancakeswap": 2500,
}

# Simulated gas prices (gwei)
BASE_GAS_GWEI = {
    "ethereum": 20.0,
    "arbitrum": 0.1,
    "base": 0.05,
    "polygon": 40.0,
}


class PoolSimulator:
    """
    Simulates pool reserves across chains and DEXes.

    Features:
    - Deterministic pool generation from a seed
    - Random walk on the reserve ratio (constant k)
    - Occasional mispricing of a single pool
    - Decay back toward the reference price
    """

    def __init__(
        self,
        chains: Iterable[str] = tuple(CHAINS),
        tokens: list[SimulatedToken] | None = None,
        pairs: list[tuple[str, str]] | None = None,
        dexes: dict[str, int] | None = None,
        liquidity_range: tuple[float, float] = (500_000.0, 5_000_000.0),
        opportunity_frequency: float = 0.05,
        mispricing_range: tuple[float, float] = (0.006, 0.02),
        seed: int | None = None,
    ) -> None:
        """
        Initialize pool simulator.

        Args:
            chains: Chains to generate pools on.
            tokens: Tokens with reference prices.
            pairs: Token pairs to list on every DEX.
            dexes: DEX name -> fee in ppm.
            liquidity_range: Min/max USD liquidity per pool.
            opportunity_frequency: Probability of mispricing a pool per tick.
            mispricing_range: Min/max relative mispricing.
            seed: Random seed for reproducible runs.
        """
        self._rng = random.Random(seed)
        self._chains = list(chains)
        self._tokens = {t.symbol: t for t in (tokens or DEFAULT_TOKENS)}
        self._pairs = pairs or DEFAULT_PAIRS
        self._dexes = dexes or DEFAULT_DEXES
        self._liquidity_range = liquidity_range
        self._opportunity_frequency = opportunity_frequency
        self._mispricing_range = mispricing_range

        self._pools: dict[str, Pool] = {}
        self._tick_count = 0
        self._opportunities_created = 0

        self._generate_pools()

    def _generate_pools(self) -> None:
        now = get_timestamp()
        for chain in self._chains:
            chain_id = CHAINS[chain][0] if chain in CHAINS else 0
            for dex, fee in self._dexes.items():
                for sym0, sym1 in self._pairs:
                    t0, t1 = self._tokens[sym0], self._tokens[sym1]
                    liquidity = self._rng.uniform(*self._liquidity_range)
                    pool_id = f"{chain}-{dex}-{sym0}-{sym1}".lower()
                    self._pools[pool_id] = Pool(
                        id=pool_id,
                        chain=chain,
                        dex=dex,
                        address=f"0x{self._rng.getrandbits(160):040x}",
                        token0=Token(f"0x{self._rng.getrandbits(160):040x}", sym0, t0.decimals),
                        token1=Token(f"0x{self._rng.getrandbits(160):040x}", sym1, t1.decimals),
                        fee=fee,
                        reserve0=liquidity / 2.0 / t0.price_usd,
                        reserve1=liquidity / 2.0 / t1.price_usd,
                        liquidity_usd=liquidity,
                        volume_24h=liquidity * self._rng.uniform(0.05, 0.5),
                        last_updated=now,
                        chain_id=chain_id,
                    )

    def _fair_ratio(self, pool: Pool) -> float:
        """Reference reserve1 / reserve0."""
        t0 = self._tokens[pool.token0.symbol]
        t1 = self._tokens[pool.token1.symbol]
        return t0.price_usd / t1.price_usd

    def _move(self, pool: Pool, shock: float, timestamp: float) -> Pool:
        """Shift the reserve ratio by ``shock`` keeping k constant."""
        factor = (1.0 + shock) ** 0.5
        return pool.with_reserves(pool.reserve0 / factor, pool.reserve1 * factor, timestamp)

    def tick(self) -> list[Pool]:
        """
        Advance every pool one step.

        Returns:
            Updated pools.
        """
        self._tick_count += 1
        now = get_timestamp()

        for pool_id, pool in self._pools.items():
            volatility = self._tokens[pool.token0.symbol].volatility
            shock = self._rng.gauss(0.0, volatility)

            # Pull back toward the reference price
            current = pool.reserve1 / pool.reserve0
            shock += (self._fair_ratio(pool) / current - 1.0) * 0.1

            self._pools[pool_id] = self._move(pool, shock, now)

        if self._pools and self._rng.random() < self._opportunity_frequency:
            pool_id = self._rng.choice(list(self._pools))
            sign = self._rng.choice((-1.0, 1.0))
            shock = sign * self._rng.uniform(*self._mispricing_range)
            self._pools[pool_id] = self._move(self._pools[pool_id], shock, now)
            self._opportunities_created += 1

        return list(self._pools.values())

    async def step(self, repository: PoolRepository) -> int:
        """Advance one tick and upsert the pools into a repository."""
        pools = self.tick()
        for pool in pools:
            await repository.insert_pool(pool)
        return len(pools)

    def chain_clients(self) -> dict[str, "SimulatedChainClient"]:
        """Build one simulated chain client per simulated chain."""
        return {
            chain: SimulatedChainClient(chain, rng=random.Random(self._rng.random()))
            for chain in self._chains
        }

    @property
    def pools(self) -> list[Pool]:
        return list(self._pools.values())

    @property
    def tick_count(self) -> int:
        """Get number of ticks processed."""
        return self._tick_count

    @property
    def opportunities_created(self) -> int:
        """Get number of artificial mispricings created."""
        return self._opportunities_created


class SimulatedChainClient:
    """
    Chain client producing blocks at the chain's block time.

    Gas prices wander around a per-chain base.
    """

    def __init__(
        self,
        chain: str,
        start_block: int = 1_000_000,
        rng: random.Random | None = None,
    ) -> None:
        self._chain = chain
        self._start_block = start_block
        self._block_time = CHAINS[chain][1] if chain in CHAINS else 2.0
        self._started = time.monotonic()
        self._rng = rng or random.Random()
        self._closed = False

    async def get_block_number(self) -> int:
        elapsed = time.monotonic() - self._started
        return self._start_block + int(elapsed / self._block_time)

    async def get_fee_data(self) -> FeeData:
        base_gwei = BASE_GAS_GWEI.get(self._chain, 1.0) * self._rng.uniform(0.8, 1.25)
        base_fee = int(base_gwei * WEI_PER_GWEI)
        priority = WEI_PER_GWEI // 10
        return FeeData(
            gas_price=base_fee + priority,
            max_priority_fee_per_gas=priority,
            max_fee_per_gas=2 * base_fee + priority,
        )

    async def close(self) -> None:
        self._closed = True

    @property
    def chain(self) -> str:
        return self._chain
