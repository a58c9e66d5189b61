"""Configuration module for the arbitrage engine.

Settings live in ``dexarb.config.settings``; they depend on the core
types, which in turn read these constants.
"""

from dexarb.config.constants import (
    CHAINS,
    DEFAULT_MIN_ABSOLUTE_PROFIT,
    DEFAULT_MIN_PRICE_DELTA,
    DEFAULT_PRICE_CACHE_TTL,
    FEE_DENOMINATOR,
)


__all__ = [
    "CHAINS",
    "DEFAULT_MIN_ABSOLUTE_PROFIT",
    "DEFAULT_MIN_PRICE_DELTA",
    "DEFAULT_PRICE_CACHE_TTL",
    "FEE_DENOMINATOR",
]
