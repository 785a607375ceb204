"""
Pool fee and price-impact estimation.

The figure produced here is a ranking heuristic, not the fee the pool
charges: price_impact is the reserve ratio B/A in the pool's own order,
and fee = price_impact * base fee. It overstates the real fee whenever
reserve B exceeds reserve A, so it is only meaningful for comparing
candidate pools against each other. The true per-swap fee is the
pool's base fee rate, applied by the output estimator.
"""

import asyncio
import logging
from collections.abc import Sequence

from triarb.core.types import FeeEstimate, Pool, PoolReserves
from triarb.market.oracle import MarketDataOracle
from triarb.strategy.estimator import compute_rate
from triarb.utils.numeric import engine_context


logger = logging.getLogger(__name__)


def estimate_fee_from_reserves(pool: Pool, reserves: PoolReserves) -> FeeEstimate:
    """
    Estimate the ranking fee of a pool from a reserve snapshot.

    Raises:
        IllegalPoolState: If a reserve is not positive.
    """
    price_impact = compute_rate(reserves.ui_reserve_a, reserves.ui_reserve_b)
    with engine_context():
        fee = price_impact * pool.fee_rate
    return FeeEstimate(pool=pool, fee=fee, price_impact=price_impact)


class PoolFeeEstimator:
    """Derives per-pool fee signals from live reserves."""

    def __init__(self, oracle: MarketDataOracle) -> None:
        self._oracle = oracle

    async def estimate_fee(self, pool: Pool) -> FeeEstimate:
        """Fetch reserves and estimate the ranking fee of one pool."""
        reserves = await self._oracle.fetch_reserves(pool)
        estimate = estimate_fee_from_reserves(pool, reserves)
        logger.debug(
            f"Fee estimate {pool.name}: fee={estimate.fee:.8f} "
            f"price_impact={estimate.price_impact:.8f}"
        )
        return estimate

    async def estimate_fees(self, pools: Sequence[Pool]) -> list[FeeEstimate]:
        """Estimate several pools concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.estimate_fee(pool) for pool in pools)))
