"""
Swap output math.

Every pool variant is currently quoted with the constant-product formula,
an approximation for concentrated liquidity. Quotes dispatch on
``Pool.kind`` so a variant can get its own formula without touching
callers.
"""

from collections.abc import Callable
from dataclasses import dataclass

from dexarb.config.constants import FEE_DENOMINATOR
from dexarb.core.types import Pool, PoolKind


class SwapError(ValueError):
    """Raised when a pool cannot quote a swap."""


@dataclass(slots=True, frozen=True)
class SwapQuote:
    """Result of quoting one swap."""

    amount_in: float
    amount_out: float
    price_impact: float


def constant_product_out(
    amount_in: float,
    reserve_in: float,
    reserve_out: float,
    fee_ppm: int,
) -> tuple[float, float]:
    """
    Quote a constant-product swap.

    Args:
        amount_in: Amount of the sold token.
        reserve_in: Pool reserve of the sold token.
        reserve_out: Pool reserve of the bought token.
        fee_ppm: Pool fee in parts per million.

    Returns:
        Tuple of (amount_out, price_impact).

    Raises:
        SwapError: If a reserve is zero or the amount is not positive.
    """
    if reserve_in <= 0 or reserve_out <= 0:
        raise SwapError("pool has a zero reserve")
    if amount_in <= 0:
        raise SwapError("amount_in must be positive")

    amount_in_with_fee = amount_in * (1.0 - fee_ppm / FEE_DENOMINATOR)
    denominator = reserve_in + amount_in_with_fee
    amount_out = reserve_out * amount_in_with_fee / denominator

    # Execution price vs. spot price: 1 - reserve_in / (reserve_in + x)
    price_impact = amount_in_with_fee / denominator

    return amount_out, price_impact


def _quote_constant_product(pool: Pool, token_in: str, amount_in: float) -> SwapQuote:
    reserve_in, reserve_out = pool.reserves_for(token_in)
    amount_out, impact = constant_product_out(amount_in, reserve_in, reserve_out, pool.fee)
    return SwapQuote(amount_in=amount_in, amount_out=amount_out, price_impact=impact)


QuoteFn = Callable[[Pool, str, float], SwapQuote]

_QUOTERS: dict[PoolKind, QuoteFn] = {
    PoolKind.CONSTANT_PRODUCT: _quote_constant_product,
    # Tick-accurate math is out of scope; approximate with x * y = k
    PoolKind.CONCENTRATED_LIQUIDITY: _quote_constant_product,
}


def quote_swap(pool: Pool, token_in: str, amount_in: float) -> SwapQuote:
    """
    Quote selling ``amount_in`` of ``token_in`` into a pool.

    Raises:
        SwapError: If the pool cannot quote the swap.
        KeyError: If the pool does not trade ``token_in``.
    """
    return _QUOTERS[pool.kind](pool, token_in, amount_in)


def get_amount_out(pool: Pool, token_in: str, amount_in: float) -> float | None:
    """Quote output amount, or None if the pool cannot quote."""
    try:
        return quote_swap(pool, token_in, amount_in).amount_out
    except (SwapError, KeyError):
        return None
