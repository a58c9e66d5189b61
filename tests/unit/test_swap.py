"""
Unit tests for swap output math.

Tests the constant-product formula and pool-kind dispatch.
"""

import pytest

from dexarb.core.types import PoolKind
from dexarb.strategy.swap import (
    SwapError,
    constant_product_out,
    get_amount_out,
    quote_swap,
)
from tests.mocks import make_pool


class TestConstantProduct:
    """Tests for constant_product_out."""

    def test_known_output(self) -> None:
        """Test output against a hand-computed value."""
        out, impact = constant_product_out(10.0, 1_000.0, 2_000_000.0, 3000)

        amount_with_fee = 10.0 * 0.997
        expected = 2_000_000.0 * amount_with_fee / (1_000.0 + amount_with_fee)
        assert out == pytest.approx(expected)
        assert impact == pytest.approx(amount_with_fee / (1_000.0 + amount_with_fee))

    def test_zero_fee_balanced_pool(self) -> None:
        """Test a small trade on a balanced zero-fee pool returns almost 1:1."""
        out, _ = constant_product_out(1.0, 1_000_000.0, 1_000_000.0, 0)

        assert out < 1.0
        assert out == pytest.approx(1.0, rel=1e-5)

    def test_output_strictly_increasing(self) -> None:
        """Test that more input always buys more output."""
        amounts = [0.001, 0.1, 1.0, 10.0, 100.0, 1_000.0]
        outputs = [constant_product_out(a, 500.0, 1_000_000.0, 3000)[0] for a in amounts]

        assert all(a < b for a, b in zip(outputs, outputs[1:]))

    def test_output_vanishes_with_input(self) -> None:
        """Test that output tends to zero as input tends to zero."""
        out, impact = constant_product_out(1e-12, 500.0, 1_000_000.0, 3000)

        assert out < 1e-5
        assert impact < 1e-12

    def test_output_bounded_by_reserve(self) -> None:
        """Test that a huge trade cannot drain the pool."""
        out, impact = constant_product_out(1e12, 500.0, 1_000_000.0, 3000)

        assert out < 1_000_000.0
        assert impact < 1.0

    def test_higher_fee_less_output(self) -> None:
        """Test that a higher fee tier gives less output."""
        low, _ = constant_product_out(10.0, 1_000.0, 2_000_000.0, 500)
        high, _ = constant_product_out(10.0, 1_000.0, 2_000_000.0, 10_000)

        assert high < low

    @pytest.mark.parametrize("reserve_in,reserve_out", [(0.0, 100.0), (100.0, 0.0)])
    def test_zero_reserve_raises(self, reserve_in: float, reserve_out: float) -> None:
        """Test that an empty side cannot be quoted."""
        with pytest.raises(SwapError):
            constant_product_out(1.0, reserve_in, reserve_out, 3000)

    @pytest.mark.parametrize("amount", [0.0, -1.0])
    def test_non_positive_amount_raises(self, amount: float) -> None:
        """Test that a non-positive amount is rejected."""
        with pytest.raises(SwapError):
            constant_product_out(amount, 100.0, 100.0, 3000)


class TestQuoteSwap:
    """Tests for pool-level quoting."""

    def test_direction(self) -> None:
        """Test that selling each side uses the matching reserves."""
        pool = make_pool("p", "ETH", "USDC", 1_000.0, 2_000_000.0)

        usdc_out = quote_swap(pool, "ETH", 1.0).amount_out
        eth_out = quote_swap(pool, "usdc", 2_000.0).amount_out

        assert usdc_out == pytest.approx(1_991.0, rel=1e-3)
        assert eth_out == pytest.approx(0.996, rel=1e-3)

    def test_concentrated_liquidity_uses_same_formula(self) -> None:
        """Test that concentrated pools fall back to constant product."""
        v2 = make_pool("v2", "ETH", "USDC", 1_000.0, 2_000_000.0)
        v3 = make_pool("v3", "ETH", "USDC", 1_000.0, 2_000_000.0)
        v3.kind = PoolKind.CONCENTRATED_LIQUIDITY

        assert quote_swap(v3, "ETH", 1.0) == quote_swap(v2, "ETH", 1.0)

    def test_foreign_token_raises(self) -> None:
        """Test that quoting a token the pool lacks fails."""
        pool = make_pool("p", "ETH", "USDC", 1_000.0, 2_000_000.0)

        with pytest.raises(KeyError):
            quote_swap(pool, "WBTC", 1.0)

    def test_get_amount_out_none_on_failure(self) -> None:
        """Test that get_amount_out hides quoting failures."""
        empty = make_pool("p", "ETH", "USDC", 0.0, 2_000_000.0)

        assert get_amount_out(empty, "ETH", 1.0) is None
        assert get_amount_out(empty, "WBTC", 1.0) is None
