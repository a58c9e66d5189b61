"""Market data module: pool price observation and caching."""

from dexarb.market.cache import TTLCache
from dexarb.market.observer import PriceObserver, compute_price


__all__ = [
    "PriceObserver",
    "TTLCache",
    "compute_price",
]
