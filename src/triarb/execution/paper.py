"""
Paper swap submitter.

Simulates swaps without sending transactions: fills are computed with the
constant-product law against live reserves and checked against the
minimum-output floor the same way the pool program would.
"""

import asyncio
import logging
from decimal import Decimal

from triarb.core.types import Asset, Pool, SwapReceipt, TransactionDraft
from triarb.market.oracle import MarketDataOracle
from triarb.strategy.estimator import compute_output
from triarb.utils.numeric import ZERO
from triarb.utils.time import get_timestamp_us


logger = logging.getLogger(__name__)


class MinimumOutputViolation(Exception):
    """Simulated fill fell below the requested floor."""

    def __init__(self, realized: Decimal, min_output: Decimal) -> None:
        super().__init__(f"Output {realized} below minimum {min_output}")
        self.realized = realized
        self.min_output = min_output


class PaperSwapSubmitter:
    """
    Dry-run implementation of the swap submission service.

    Draws no priority fee; `priority_fee_cap` is only reported so dry-run
    logs show what a live submitter would be allowed to spend.
    """

    def __init__(
        self,
        oracle: MarketDataOracle,
        priority_fee_cap: int = 0,
        latency_seconds: float = 0.0,
    ) -> None:
        """
        Initialize paper submitter.

        Args:
            oracle: Source of live reserves to fill against.
            priority_fee_cap: Priority fee cap in lamports.
            latency_seconds: Simulated confirmation delay.
        """
        self._oracle = oracle
        self._priority_fee_cap = priority_fee_cap
        self._latency_seconds = latency_seconds
        self._submissions = 0

    async def build_draft(self, pool: Pool, input_asset: Asset, amount: Decimal) -> TransactionDraft:
        """Drafts carry no compiled message; fees fall back to the base fee."""
        return TransactionDraft(pool=pool, input_asset=input_asset, input_amount=amount)

    async def submit_swap(
        self,
        pool: Pool,
        input_asset: Asset,
        amount: Decimal,
        min_output: Decimal,
    ) -> SwapReceipt:
        """
        Simulate a swap on current reserves.

        Raises:
            MinimumOutputViolation: If the fill is below `min_output`.
        """
        reserves = await self._oracle.fetch_reserves(pool)
        reserve_in, reserve_out = reserves.oriented(input_asset.symbol)
        quote = compute_output(reserve_in, reserve_out, amount, pool.fee_rate, ZERO)

        # Settle in whole raw units of the output asset, as the token program does
        output_asset = pool.other(input_asset.symbol)
        realized = output_asset.to_ui(output_asset.to_raw(quote.output_amount))

        if realized < min_output:
            raise MinimumOutputViolation(realized, min_output)

        if self._latency_seconds:
            await asyncio.sleep(self._latency_seconds)

        self._submissions += 1
        signature = f"PAPER_{self._submissions}_{get_timestamp_us()}"

        logger.info(
            f"[DRY RUN] {pool.name}: {amount} {input_asset.symbol} -> "
            f"{realized} {output_asset.symbol} (floor {min_output}, "
            f"priority fee cap {self._priority_fee_cap} lamports)"
        )
        return SwapReceipt(signature=signature, realized_output=realized)

    @property
    def submissions(self) -> int:
        """Number of simulated swaps that landed."""
        return self._submissions
