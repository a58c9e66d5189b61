"""Core module containing type definitions and task scheduling.

The engine lives in ``dexarb.core.engine`` and is imported from there.
"""

from dexarb.core.scheduler import PeriodicTask, TaskStats
from dexarb.core.types import (
    ArbitrageOpportunity,
    ArbitrageRoute,
    ChainClient,
    FeeData,
    OpportunityStatus,
    Pool,
    PoolKind,
    PoolRepository,
    PricePoint,
    RouteConstraints,
    RouteStep,
    RouteStrategy,
    Token,
)


__all__ = [
    "ArbitrageOpportunity",
    "ArbitrageRoute",
    "ChainClient",
    "FeeData",
    "OpportunityStatus",
    "PeriodicTask",
    "Pool",
    "PoolKind",
    "PoolRepository",
    "PricePoint",
    "RouteConstraints",
    "RouteStep",
    "RouteStrategy",
    "TaskStats",
    "Token",
]
