"""Strategy module for opportunity detection and route search."""

from dexarb.strategy.graph import TokenGraph
from dexarb.strategy.opportunity import PairwiseOpportunityDetector, evaluate_pair
from dexarb.strategy.routes import RouteFinder
from dexarb.strategy.swap import SwapError, quote_swap


__all__ = [
    "PairwiseOpportunityDetector",
    "RouteFinder",
    "SwapError",
    "TokenGraph",
    "evaluate_pair",
    "quote_swap",
]
