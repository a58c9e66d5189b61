"""
Token graph built from liquidity pools.

Uses a NetworkX multigraph where tokens are nodes and every pool is an
undirected edge keyed by pool id, so several pools may connect the same
two tokens.
"""

import logging
from collections.abc import Callable, Iterable
from typing import Any

import networkx as nx

from dexarb.core.types import Pool
from dexarb.strategy.swap import SwapError, quote_swap


logger = logging.getLogger(__name__)


PoolPredicate = Callable[[Pool], bool]


class TokenGraph:
    """
    Undirected token multigraph.

    - Nodes are upper-cased token symbols (ETH, USDC, ...)
    - Edges are pools, one per pool, keyed by pool id

    Rebuilt wholesale whenever the pool set changes.
    """

    def __init__(self, pools: Iterable[Pool] = ()) -> None:
        """
        Initialize the graph.

        Args:
            pools: Initial pool set.
        """
        self._graph: nx.MultiGraph = nx.MultiGraph()
        self._pools: dict[str, Pool] = {}
        self.rebuild(pools)

    def rebuild(self, pools: Iterable[Pool]) -> int:
        """
        Rebuild the graph from a pool set.

        Inactive and untradeable pools are left out.

        Returns:
            Number of edges (pools) added.
        """
        self._graph.clear()
        self._pools.clear()

        skipped = 0
        for pool in pools:
            if not pool.is_active or not pool.is_tradeable:
                skipped += 1
                continue

            sym0, sym1 = pool.symbols
            if sym0 == sym1:
                skipped += 1
                continue

            self._graph.add_edge(sym0, sym1, key=pool.id, pool=pool)
            self._pools[pool.id] = pool

        logger.info(
            f"Built token graph with {self._graph.number_of_nodes()} tokens, "
            f"{self._graph.number_of_edges()} pools ({skipped} skipped)"
        )

        return int(self._graph.number_of_edges())

    def neighbors(self, token: str) -> list[str]:
        """
        Get tokens sharing at least one pool with ``token``.

        Returns:
            Sorted neighbor symbols, empty for an unknown token.
        """
        token = token.upper()
        if token not in self._graph:
            return []
        return sorted(self._graph.neighbors(token))

    def pools_between(self, token_a: str, token_b: str) -> list[Pool]:
        """Get all pools trading a token pair."""
        edges: dict[Any, dict[str, Any]] | None = self._graph.get_edge_data(
            token_a.upper(), token_b.upper()
        )
        if not edges:
            return []
        return [data["pool"] for _, data in sorted(edges.items())]

    def best_pool(
        self,
        token_in: str,
        token_out: str,
        amount_in: float,
        predicate: PoolPredicate | None = None,
    ) -> tuple[Pool, float] | None:
        """
        Find the pool giving the largest output for a swap.

        Args:
            token_in: Sold token.
            token_out: Bought token.
            amount_in: Amount sold.
            predicate: Optional pool filter.

        Returns:
            Tuple of (pool, amount_out), or None if no pool can quote.
        """
        best: tuple[Pool, float] | None = None

        for pool in self.pools_between(token_in, token_out):
            if predicate is not None and not predicate(pool):
                continue
            try:
                quote = quote_swap(pool, token_in, amount_in)
            except SwapError:
                continue
            if best is None or quote.amount_out > best[1]:
                best = (pool, quote.amount_out)

        return best

    def token_price_usd(self, token: str) -> float | None:
        """
        Estimate a token's USD price from its deepest pool.

        Returns:
            Price per unit, or None if no pool carries USD liquidity.
        """
        token = token.upper()
        if token not in self._graph:
            return None

        deepest: Pool | None = None
        for _, _, data in self._graph.edges(token, data=True):
            pool: Pool = data["pool"]
            if deepest is None or pool.liquidity_usd > deepest.liquidity_usd:
                deepest = pool

        if deepest is None or deepest.liquidity_usd <= 0:
            return None
        return deepest.token_value_usd(token, 1.0)

    def token_pairs(self) -> list[tuple[str, str]]:
        """Get every connected token pair once, in sorted order."""
        pairs = {tuple(sorted((u, v))) for u, v in self._graph.edges()}
        return sorted(pairs)  # type: ignore[arg-type]

    def edge_signature(self) -> tuple[tuple[str, str, str], ...]:
        """Order-independent description of the edge set."""
        return tuple(
            sorted(
                (*sorted((u, v)), key)  # type: ignore[misc]
                for u, v, key in self._graph.edges(keys=True)
            )
        )

    def get_pool(self, pool_id: str) -> Pool | None:
        """Get a graph pool by id."""
        return self._pools.get(pool_id)

    def has_token(self, token: str) -> bool:
        """Check if a token is in the graph."""
        return token.upper() in self._graph

    @property
    def tokens(self) -> set[str]:
        """Get all tokens in the graph."""
        return set(self._graph.nodes())

    @property
    def pool_count(self) -> int:
        return int(self._graph.number_of_edges())

    @property
    def graph(self) -> nx.MultiGraph:
        """Get the underlying NetworkX graph."""
        return self._graph
