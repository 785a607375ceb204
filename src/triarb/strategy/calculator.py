"""
Arbitrage profit calculation.

Chains three spot rates and fees into a net profit for a cycle. All
arithmetic is Decimal under the engine context, so identical inputs
always give identical results.
"""

import logging
from collections.abc import Mapping
from decimal import Decimal

from triarb.config.constants import CYCLE_LEGS, PERCENTAGE_DISPLAY_PLACES, PROFIT_DISPLAY_PLACES
from triarb.core.errors import DataUnavailable
from triarb.core.types import CycleEvaluation, Pool, PoolReserves, Quote, Route
from triarb.strategy.estimator import leg_rate, quote_leg
from triarb.utils.numeric import HUNDRED, ONE, ZERO, engine_context, format_amount


logger = logging.getLogger(__name__)


def compute_profit(
    start_amount: Decimal,
    rate1: Decimal,
    rate2: Decimal,
    rate3: Decimal,
    fee1: Decimal,
    fee2: Decimal,
    fee3: Decimal,
    network_fee: Decimal,
) -> Decimal:
    """
    Net profit of a 3-leg cycle.

    after_i = after_{i-1} * rate_i * (1 - fee_i), starting from start_amount;
    net = after_3 - start_amount - network_fee * 3.

    Example:
        >>> compute_profit(Decimal(1), *[Decimal(1)] * 3, *[Decimal(0)] * 3, Decimal(0))
        Decimal('0')
    """
    with engine_context():
        amount = start_amount
        for rate, fee in ((rate1, fee1), (rate2, fee2), (rate3, fee3)):
            amount = amount * rate * (ONE - fee)
        return amount - start_amount - network_fee * CYCLE_LEGS


def profit_percentage(net_profit: Decimal, start_amount: Decimal) -> Decimal:
    """Net profit as a percentage of the starting amount."""
    if start_amount <= ZERO:
        raise ValueError(f"start_amount must be positive, got {start_amount}")
    with engine_context():
        return net_profit / start_amount * HUNDRED


class ProfitCalculator:
    """Evaluates a route on a reserve snapshot."""

    __slots__ = ("_slippage_tolerance",)

    def __init__(self, slippage_tolerance: Decimal) -> None:
        """
        Initialize calculator.

        Args:
            slippage_tolerance: Tolerance used for the chained quotes.
        """
        self._slippage_tolerance = slippage_tolerance

    def evaluate(
        self,
        route: Route,
        reserves: Mapping[Pool, PoolReserves],
        start_amount: Decimal,
        network_fee: Decimal,
    ) -> CycleEvaluation:
        """
        Evaluate profitability of a route.

        Profit uses spot rates and the pools' true fee rates. Quotes are
        chained through the constant-product formula on the same snapshot
        and recorded alongside for logging.

        Args:
            route: Cycle to evaluate.
            reserves: Reserve snapshot covering every pool of the route.
            start_amount: Base asset amount entering leg 1.
            network_fee: Network fee per leg, in base asset.

        Raises:
            DataUnavailable: If the snapshot misses a route pool.
            IllegalPoolState: If a pool has a non-positive reserve.
        """
        rates: list[Decimal] = []
        fees: list[Decimal] = []
        quotes: list[Quote] = []
        amount = start_amount

        for leg in route.legs:
            snapshot = reserves.get(leg.pool)
            if snapshot is None:
                raise DataUnavailable(f"No reserves for {leg.pool.name} in snapshot")

            rates.append(leg_rate(leg, snapshot))
            fees.append(leg.pool.fee_rate)

            quote = quote_leg(leg, snapshot, amount, self._slippage_tolerance)
            quotes.append(quote)
            amount = quote.output_amount

        net_profit = compute_profit(start_amount, *rates, *fees, network_fee)
        percentage = profit_percentage(net_profit, start_amount)

        evaluation = CycleEvaluation(
            route=route,
            start_amount=start_amount,
            rates=tuple(rates),  # type: ignore[arg-type]
            fees=tuple(fees),  # type: ignore[arg-type]
            quotes=tuple(quotes),  # type: ignore[arg-type]
            network_fee=network_fee,
            net_profit=net_profit,
            profit_percentage=percentage,
        )

        for leg, rate in zip(route.legs, rates):
            logger.info(f"Exchange Rate ({leg.input_asset.symbol} → {leg.output_asset.symbol}): {rate}")
        logger.info(
            f"Calculated Profit: {format_amount(net_profit, PROFIT_DISPLAY_PLACES)} "
            f"{route.base_asset} ({format_amount(percentage, PERCENTAGE_DISPLAY_PLACES)}%), "
            f"quoted output {format_amount(evaluation.expected_output, PROFIT_DISPLAY_PLACES)}"
        )

        return evaluation
