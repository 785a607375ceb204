"""
Cycle execution sequencer.

Runs the three swaps of a route strictly in order. Each leg is
re-quoted on fresh reserves right before submission and is fed the
previous leg's realized output, never its estimate.
"""

import logging
from decimal import Decimal

from triarb.core.errors import SubmissionFailed
from triarb.core.types import ExecutionResult, LegResult, Route, SwapSubmitter
from triarb.market.oracle import MarketDataOracle
from triarb.strategy.estimator import quote_leg
from triarb.utils.time import LatencyTimer, get_timestamp_us


logger = logging.getLogger(__name__)


class ExecutionSequencer:
    """
    Executes a route leg by leg.

    A failed leg halts the cycle immediately: no retry and no unwind.
    Legs that already landed stand, so the wallet may be left holding an
    intermediate asset; that outcome is reported, not repaired.
    """

    def __init__(self, oracle: MarketDataOracle, submitter: SwapSubmitter) -> None:
        """
        Initialize sequencer.

        Args:
            oracle: Source of fresh reserves for re-quoting.
            submitter: Swap submission service, used one swap at a time.
        """
        self._oracle = oracle
        self._submitter = submitter

    async def execute_cycle(
        self,
        route: Route,
        start_amount: Decimal,
        slippage_tolerance: Decimal,
    ) -> ExecutionResult:
        """
        Execute the three legs of a route.

        Args:
            route: Cycle to execute.
            start_amount: Base asset amount entering leg 1.
            slippage_tolerance: Floor below each fresh quote passed to the
                submitter as the on-chain minimum output.

        Returns:
            ExecutionResult of a complete cycle.

        Raises:
            SubmissionFailed: If any leg fails; carries the partial result.
        """
        result = ExecutionResult(
            route=route,
            start_amount=start_amount,
            start_timestamp_us=get_timestamp_us(),
        )
        amount = start_amount

        logger.info(f"Executing cycle {route.id} with {start_amount} {route.base_asset}")

        for index, leg in enumerate(route.legs):
            leg_result = LegResult(leg=leg, input_amount=amount)
            result.legs.append(leg_result)
            timer = LatencyTimer()

            try:
                with timer:
                    reserves = await self._oracle.fetch_reserves(leg.pool)
                    quote = quote_leg(leg, reserves, amount, slippage_tolerance)
                    leg_result.quote = quote
                    receipt = await self._submitter.submit_swap(
                        leg.pool,
                        leg.input_asset,
                        amount,
                        quote.min_output_amount,
                    )
            except Exception as e:
                leg_result.latency_us = timer.latency_us
                leg_result.error_message = str(e)
                result.end_timestamp_us = get_timestamp_us()
                result.error_message = f"Leg {index + 1} ({leg}) failed: {e}"
                logger.error(
                    f"{result.error_message}; halting with {result.final_output} "
                    f"{result.held_asset.symbol} held"
                )
                raise SubmissionFailed(result.error_message, leg_index=index, result=result) from e

            leg_result.latency_us = timer.latency_us
            leg_result.signature = receipt.signature
            leg_result.realized_output = receipt.realized_output

            logger.info(
                f"{leg.input_asset.symbol} swap transaction: {receipt.signature} "
                f"swapped {amount} for {receipt.realized_output} {leg.output_asset.symbol} "
                f"(quoted {quote.output_amount}, floor {quote.min_output_amount})"
            )
            amount = receipt.realized_output

        result.end_timestamp_us = get_timestamp_us()
        logger.info(
            f"Cycle {route.id} complete: {start_amount} -> {result.final_output} "
            f"{route.base_asset} in {result.total_latency_us}μs"
        )
        return result
