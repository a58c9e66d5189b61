"""
Mathematical helpers for pool and scoring calculations.
"""

from typing import Final


# Epsilon for floating point comparisons
EPSILON: Final[float] = 1e-10


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default on division by zero.

    Args:
        numerator: The dividend.
        denominator: The divisor.
        default: Value to return if denominator is zero.

    Returns:
        Result of division or default value.
    """
    if abs(denominator) < EPSILON:
        return default
    return numerator / denominator


def clamp(value: float, lower: float, upper: float) -> float:
    """
    Clamp a value into [lower, upper].

    Example:
        >>> clamp(12.0, 0.0, 10.0)
        10.0
    """
    return max(lower, min(upper, value))


def relative_delta(a: float, b: float) -> float:
    """
    Relative divergence of two positive prices.

    Measured against the smaller price, so the result is symmetric in
    its arguments.

    Example:
        >>> round(relative_delta(2000.0, 2050.0), 4)
        0.025
    """
    if a <= 0 or b <= 0:
        raise ValueError("prices must be positive")
    return abs(a - b) / min(a, b)


def format_usd(amount: float) -> str:
    """Format a USD amount for display."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
