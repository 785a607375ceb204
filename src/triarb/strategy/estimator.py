"""
Constant-product rate and output estimation.

The output formula is the swap law the pool itself enforces, so the
minimum-output floor derived here is what protects each leg on-chain.
"""

from decimal import Decimal

from triarb.core.errors import IllegalPoolState
from triarb.core.types import PoolReserves, Quote, RouteLeg
from triarb.utils.numeric import ONE, ZERO, check_fraction, engine_context


def _check_reserves(reserve_in: Decimal, reserve_out: Decimal) -> None:
    if reserve_in <= ZERO or reserve_out <= ZERO:
        raise IllegalPoolState(
            f"Pool reserves must be positive (in={reserve_in}, out={reserve_out})"
        )


def compute_output(
    reserve_in: Decimal,
    reserve_out: Decimal,
    input_amount: Decimal,
    fee_rate: Decimal,
    slippage_tolerance: Decimal,
) -> Quote:
    """
    Quote a swap against a constant-product pool.

    input_after_fee = input * (1 - fee)
    output = reserve_out * input_after_fee / (reserve_in + input_after_fee)
    min_output = output * (1 - slippage)

    Args:
        reserve_in: Reserve of the asset going in.
        reserve_out: Reserve of the asset coming out.
        input_amount: Amount swapped in, same units as reserve_in.
        fee_rate: Pool fee in [0, 1).
        slippage_tolerance: Accepted shortfall in [0, 1).

    Returns:
        Quote with output and minimum acceptable output.

    Raises:
        IllegalPoolState: If either reserve is not positive.
        ValueError: On a non-positive input or out-of-range rate.
    """
    _check_reserves(reserve_in, reserve_out)
    if input_amount <= ZERO:
        raise ValueError(f"input_amount must be positive, got {input_amount}")
    check_fraction("fee_rate", fee_rate)
    check_fraction("slippage_tolerance", slippage_tolerance)

    with engine_context():
        input_after_fee = input_amount * (ONE - fee_rate)
        output_amount = reserve_out * input_after_fee / (reserve_in + input_after_fee)
        min_output_amount = output_amount * (ONE - slippage_tolerance)

    return Quote(
        input_amount=input_amount,
        input_after_fee=input_after_fee,
        output_amount=output_amount,
        min_output_amount=min_output_amount,
    )


def compute_rate(reserve_in: Decimal, reserve_out: Decimal) -> Decimal:
    """
    Spot exchange rate reserve_out / reserve_in.

    Ignores price impact and is therefore optimistic; only used to
    estimate cycle profitability, never to size a swap.
    """
    _check_reserves(reserve_in, reserve_out)
    with engine_context():
        return reserve_out / reserve_in


def quote_leg(
    leg: RouteLeg,
    reserves: PoolReserves,
    input_amount: Decimal,
    slippage_tolerance: Decimal,
) -> Quote:
    """Quote one route leg on a reserve snapshot of its pool."""
    reserve_in, reserve_out = reserves.oriented(leg.input_asset.symbol)
    return compute_output(
        reserve_in,
        reserve_out,
        input_amount,
        leg.pool.fee_rate,
        slippage_tolerance,
    )


def leg_rate(leg: RouteLeg, reserves: PoolReserves) -> Decimal:
    """Spot rate of one route leg in the leg's swap direction."""
    reserve_in, reserve_out = reserves.oriented(leg.input_asset.symbol)
    return compute_rate(reserve_in, reserve_out)
