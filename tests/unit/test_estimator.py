"""
Unit tests for the constant-product estimator.

Tests output quoting, spot rates and input validation.
"""

from decimal import Decimal

import pytest

from triarb.core.errors import IllegalPoolState
from triarb.core.types import Pool, PoolReserves, Route
from triarb.strategy.estimator import compute_output, compute_rate, leg_rate, quote_leg
from triarb.utils.numeric import engine_context


FEE = Decimal("0.003")
SLIPPAGE = Decimal("0.01")


class TestComputeOutput:
    """Tests for compute_output."""

    def test_reference_swap(self) -> None:
        """Test the worked example: 1,000 in against 1,000,000 / 2,000,000."""
        quote = compute_output(
            Decimal(1_000_000), Decimal(2_000_000), Decimal(1_000), FEE, SLIPPAGE
        )

        with engine_context():
            expected = Decimal(2_000_000) * Decimal(997) / Decimal(1_000_997)

        assert quote.input_after_fee == Decimal(997)
        assert quote.output_amount == expected
        assert round(quote.output_amount, 6) == Decimal("1992.013962")
        with engine_context():
            assert quote.min_output_amount == quote.output_amount * Decimal("0.99")

    def test_zero_fee_and_slippage(self) -> None:
        """Test that without fee the floor equals the output."""
        quote = compute_output(Decimal(100), Decimal(100), Decimal(100), Decimal(0), Decimal(0))

        assert quote.output_amount == Decimal(50)
        assert quote.min_output_amount == quote.output_amount

    def test_output_below_reserve(self) -> None:
        """Test that even a huge swap cannot drain the pool."""
        quote = compute_output(Decimal(10), Decimal(10), Decimal(10) ** 12, FEE, SLIPPAGE)

        assert Decimal(0) < quote.output_amount < Decimal(10)

    def test_output_monotonic_in_input(self) -> None:
        """Test that more input never gives less output."""
        outputs = [
            compute_output(Decimal(5_000), Decimal(7_000), Decimal(amount), FEE, SLIPPAGE).output_amount
            for amount in (1, 10, 100, 1_000, 10_000)
        ]

        assert outputs == sorted(outputs)
        assert len(set(outputs)) == len(outputs)

    def test_zero_reserve_in_raises(self) -> None:
        """Test that an empty pool side is rejected instead of dividing by zero."""
        with pytest.raises(IllegalPoolState):
            compute_output(Decimal(0), Decimal(2_000_000), Decimal(1_000), FEE, SLIPPAGE)

    def test_negative_reserve_out_raises(self) -> None:
        with pytest.raises(IllegalPoolState):
            compute_output(Decimal(1_000), Decimal(-1), Decimal(1), FEE, SLIPPAGE)

    @pytest.mark.parametrize("amount", [Decimal(0), Decimal(-5)])
    def test_non_positive_input_raises(self, amount: Decimal) -> None:
        with pytest.raises(ValueError):
            compute_output(Decimal(1_000), Decimal(1_000), amount, FEE, SLIPPAGE)

    @pytest.mark.parametrize(
        "fee_rate,slippage",
        [
            (Decimal(1), SLIPPAGE),
            (Decimal("-0.001"), SLIPPAGE),
            (FEE, Decimal(1)),
            (FEE, Decimal("1.5")),
        ],
    )
    def test_out_of_range_rates_raise(self, fee_rate: Decimal, slippage: Decimal) -> None:
        """Test that fee and slippage must lie in [0, 1)."""
        with pytest.raises(ValueError):
            compute_output(Decimal(1_000), Decimal(1_000), Decimal(1), fee_rate, slippage)


class TestComputeRate:
    """Tests for compute_rate."""

    def test_spot_rate(self) -> None:
        assert compute_rate(Decimal(1_000_000), Decimal(2_000_000)) == Decimal(2)

    def test_zero_reserve_raises(self) -> None:
        with pytest.raises(IllegalPoolState):
            compute_rate(Decimal(0), Decimal(1))


class TestLegQuoting:
    """Tests for direction-aware leg helpers."""

    def test_rate_follows_leg_direction(self, route: Route, eth_sol_pool: Pool) -> None:
        """Test that ETH->SOL reads reserves B/A of the ETH/SOL pool."""
        reserves = PoolReserves(pool=eth_sol_pool, reserve_a=10**11, reserve_b=2 * 10**13)

        # 1,000 ETH against 20,000 SOL
        assert leg_rate(route.legs[2], reserves) == Decimal(20)

    def test_quote_uses_pool_fee(self, route: Route, sol_usdc_pool: Pool) -> None:
        reserves = PoolReserves(pool=sol_usdc_pool, reserve_a=10**13, reserve_b=10**12)

        quote = quote_leg(route.legs[0], reserves, Decimal(1), SLIPPAGE)

        assert quote.input_after_fee == Decimal("0.997")
        assert Decimal(99) < quote.output_amount < Decimal(100)
