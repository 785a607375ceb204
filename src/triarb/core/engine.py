"""
Arbitrage loop orchestrator.

Drives the fetch / select / evaluate / execute cycle as an explicit
state machine. One iteration never leaks an exception: failures are
logged with their context, the loop backs off and starts over.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from decimal import Decimal

from triarb.chain.client import SolanaRpcClient
from triarb.chain.rate_limiter import RateLimiter
from triarb.config.constants import NATIVE_SOL_MINT, PERCENTAGE_DISPLAY_PLACES, PROFIT_DISPLAY_PLACES
from triarb.config.pools import resolve_asset, resolve_pools
from triarb.config.settings import Settings
from triarb.core.errors import ArbitrageError, ConfigurationError, SubmissionFailed
from triarb.core.types import (
    Asset,
    CycleEvaluation,
    ExecutionResult,
    LoopState,
    Pool,
    PoolReserves,
    Route,
    SwapSubmitter,
    WalletContext,
)
from triarb.execution.paper import PaperSwapSubmitter
from triarb.execution.sequencer import ExecutionSequencer
from triarb.market.oracle import MarketDataOracle
from triarb.strategy.calculator import ProfitCalculator
from triarb.strategy.estimator import compute_rate
from triarb.strategy.fees import PoolFeeEstimator
from triarb.strategy.route import RouteSelector
from triarb.telemetry.logger import bind_iteration, unbind_iteration
from triarb.telemetry.metrics import MetricsCollector
from triarb.utils.numeric import engine_context, format_amount


logger = logging.getLogger(__name__)

STATE_HISTORY_SIZE = 256


@dataclass(slots=True, frozen=True)
class LoopConfig:
    """Trading parameters of the loop, fixed for a run."""

    base_asset: str
    quote_asset: str
    min_profit_threshold: Decimal
    min_trade_amount: Decimal
    slippage_tolerance: Decimal
    iteration_delay_seconds: float = 1.0
    error_delay_seconds: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "LoopConfig":
        return cls(
            base_asset=settings.base_asset,
            quote_asset=settings.quote_asset,
            min_profit_threshold=settings.min_profit_threshold,
            min_trade_amount=settings.min_trade_amount,
            slippage_tolerance=settings.slippage_tolerance,
            iteration_delay_seconds=settings.iteration_delay_seconds,
            error_delay_seconds=settings.error_delay_seconds,
        )


@dataclass(slots=True)
class IterationOutcome:
    """What a single loop iteration saw and did."""

    final_state: LoopState = LoopState.IDLE
    wallet_balance: Decimal | None = None
    route: Route | None = None
    evaluation: CycleEvaluation | None = None
    execution: ExecutionResult | None = None
    error: Exception | None = None

    @property
    def executed(self) -> bool:
        return self.execution is not None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ArbitrageLoop:
    """
    Triangular arbitrage loop.

    States per iteration:
        IDLE -> FETCHING_MARKET_DATA -> SELECTING_ROUTE -> EVALUATING_PROFIT
             -> EXECUTING | SLEEPING -> IDLE
    and from any of them -> ERROR -> IDLE on failure.

    A cycle is executed only when its profit percentage is strictly above
    the threshold and the wallet holds at least `min_trade_amount` of the
    base asset. The trade size is `min_trade_amount`.
    """

    def __init__(
        self,
        oracle: MarketDataOracle,
        selector: RouteSelector,
        calculator: ProfitCalculator,
        sequencer: ExecutionSequencer,
        submitter: SwapSubmitter,
        pools: Sequence[Pool],
        config: LoopConfig,
        metrics: MetricsCollector | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the loop.

        Args:
            oracle: Live chain reads.
            selector: Route selection over `pools`.
            calculator: Cycle profitability.
            sequencer: Leg-by-leg execution.
            submitter: Used to draft the transaction for fee estimation.
            pools: Configured pools, in tie-break order.
            config: Trading parameters.
            metrics: Optional metrics collector.
            sleep: Awaitable delay, replaced in tests.
            clock: Monotonic seconds, replaced in tests.

        Raises:
            ConfigurationError: If no pool trades the base asset, or the
                base asset is not SOL and no pool prices it against SOL.
        """
        self._oracle = oracle
        self._selector = selector
        self._calculator = calculator
        self._sequencer = sequencer
        self._submitter = submitter
        self._pools = list(pools)
        self._config = config
        self._metrics = metrics or MetricsCollector()
        self._sleep = sleep
        self._clock = clock

        self._base_asset = self._resolve_base_asset()
        self._fee_pool = self._resolve_fee_pool()
        self._state = LoopState.IDLE
        self._history: deque[LoopState] = deque([LoopState.IDLE], maxlen=STATE_HISTORY_SIZE)
        self._running = False
        self._iterations = 0

    def _resolve_base_asset(self) -> Asset:
        asset = resolve_asset(self._config.base_asset)
        if not any(pool.contains(asset.symbol) for pool in self._pools):
            raise ConfigurationError(f"No configured pool trades {asset.symbol}")
        return asset

    def _resolve_fee_pool(self) -> Pool | None:
        """Pool pricing SOL in the base asset; None when the base is SOL."""
        if self._base_asset.mint == NATIVE_SOL_MINT:
            return None
        for pool in self._pools:
            mints = (pool.asset_a.mint, pool.asset_b.mint)
            if pool.contains(self._base_asset.symbol) and NATIVE_SOL_MINT in mints:
                return pool
        raise ConfigurationError(
            f"Network fees are paid in SOL; a SOL/{self._base_asset.symbol} pool is required"
        )

    # =========================================================================
    # State
    # =========================================================================

    def _transition(self, state: LoopState) -> None:
        logger.debug(f"State {self._state.value} -> {state.value}")
        self._state = state
        self._history.append(state)

    @property
    def state(self) -> LoopState:
        """Current loop state."""
        return self._state

    @property
    def state_history(self) -> list[LoopState]:
        """Most recent states, oldest first."""
        return list(self._history)

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    # =========================================================================
    # Iteration
    # =========================================================================

    async def run_once(self) -> IterationOutcome:
        """
        Run exactly one iteration, including its trailing delay.

        Returns:
            IterationOutcome describing what happened. Errors are captured
            on the outcome, never raised.
        """
        outcome = IterationOutcome()
        self._iterations += 1
        self._metrics.record_iteration()
        token = bind_iteration(self._iterations)

        try:
            try:
                await self._iterate(outcome)
            except Exception as e:
                outcome.error = e
                self._on_error(outcome, e)
                await self._sleep(self._config.error_delay_seconds)

            outcome.final_state = self._state
            self._transition(LoopState.IDLE)
        finally:
            unbind_iteration(token)
        return outcome

    async def _iterate(self, outcome: IterationOutcome) -> None:
        config = self._config

        self._transition(LoopState.FETCHING_MARKET_DATA)
        started = self._clock()
        balance = await self._oracle.get_wallet_balance(self._base_asset)
        outcome.wallet_balance = balance
        self._record_latency("fetch_market_data", started)
        logger.info(f"Wallet {self._base_asset.symbol} balance: {balance} {self._base_asset.symbol}")

        self._transition(LoopState.SELECTING_ROUTE)
        started = self._clock()
        route = await self._selector.select_route(config.base_asset, config.quote_asset, self._pools)
        outcome.route = route
        self._record_latency("select_route", started)

        self._transition(LoopState.EVALUATING_PROFIT)
        started = self._clock()
        evaluation = await self._evaluate(route)
        outcome.evaluation = evaluation
        self._record_latency("evaluate", started)

        should_execute = (
            evaluation.profit_percentage > config.min_profit_threshold
            and balance >= config.min_trade_amount
        )
        self._metrics.record_evaluation(evaluation, executed=should_execute)

        if not should_execute:
            self._transition(LoopState.SLEEPING)
            logger.debug(self._skip_reason(evaluation, balance))
            await self._sleep(config.iteration_delay_seconds)
            return

        self._transition(LoopState.EXECUTING)
        logger.info(
            f"Opportunity on {route.id}: "
            f"{format_amount(evaluation.profit_percentage, PERCENTAGE_DISPLAY_PLACES)}% "
            f"> {config.min_profit_threshold}%, executing {config.min_trade_amount} "
            f"{config.base_asset}"
        )
        started = self._clock()
        try:
            result = await self._sequencer.execute_cycle(
                route,
                config.min_trade_amount,
                config.slippage_tolerance,
            )
        except SubmissionFailed as e:
            outcome.execution = e.result
            self._metrics.record_execution(e.result)
            raise
        finally:
            self._record_latency("execute", started)

        outcome.execution = result
        self._metrics.record_execution(result)
        logger.info(
            f"Realized {format_amount(result.realized_profit, PROFIT_DISPLAY_PLACES)} "
            f"{config.base_asset} on {route.id}"
        )

    async def _evaluate(self, route: Route) -> CycleEvaluation:
        """Read fresh reserves and the network fee, then score the route."""
        start_amount = self._config.min_trade_amount
        first_leg = route.legs[0]

        pools = list(route.pools)
        if self._fee_pool is not None and self._fee_pool not in pools:
            pools.append(self._fee_pool)

        reserves = await self._oracle.fetch_all_reserves(pools)
        draft = await self._submitter.build_draft(first_leg.pool, first_leg.input_asset, start_amount)
        network_fee = self._fee_in_base_asset(await self._oracle.estimate_network_fee(draft), reserves)

        return self._calculator.evaluate(route, reserves, start_amount, network_fee)

    def _fee_in_base_asset(self, fee_sol: Decimal, reserves: Mapping[Pool, PoolReserves]) -> Decimal:
        """Convert a SOL network fee into the base asset at the snapshot spot rate."""
        if self._fee_pool is None:
            return fee_sol
        sol_symbol = self._fee_pool.other(self._base_asset.symbol).symbol
        rate = compute_rate(*reserves[self._fee_pool].oriented(sol_symbol))
        with engine_context():
            return fee_sol * rate

    def _skip_reason(self, evaluation: CycleEvaluation, balance: Decimal) -> str:
        if balance < self._config.min_trade_amount:
            return (
                f"Skipping: balance {balance} below trade amount "
                f"{self._config.min_trade_amount} {self._config.base_asset}"
            )
        return (
            f"Skipping: profit {evaluation.profit_percentage}% not above "
            f"threshold {self._config.min_profit_threshold}%"
        )

    def _on_error(self, outcome: IterationOutcome, error: Exception) -> None:
        """Log a failed iteration with whatever context it reached."""
        failed_in = self._state
        self._transition(LoopState.ERROR)

        kind = error.kind if isinstance(error, ArbitrageError) else "unexpected"
        self._metrics.increment_counter(f"errors.{kind}")

        context = [f"state={failed_in.value}", f"trade_amount={self._config.min_trade_amount}"]
        if outcome.route is not None:
            context.append(f"route={outcome.route.id}")
        if outcome.evaluation is not None:
            rates = ", ".join(str(rate) for rate in outcome.evaluation.rates)
            context.append(f"rates=[{rates}]")
            context.append(f"profit={outcome.evaluation.net_profit}")
        if outcome.execution is not None:
            context.append(
                f"holding={outcome.execution.final_output} {outcome.execution.held_asset.symbol}"
            )

        if isinstance(error, ArbitrageError):
            logger.error(f"Iteration failed ({kind}): {error} [{' '.join(context)}]")
        else:
            logger.exception(f"Unexpected iteration failure: {error} [{' '.join(context)}]")

    def _record_latency(self, name: str, started: float) -> None:
        self._metrics.record_latency(name, int((self._clock() - started) * 1_000_000))

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def run(self, max_iterations: int | None = None) -> None:
        """
        Run iterations until stopped.

        Args:
            max_iterations: Stop after this many iterations; None runs
                until `stop()` is called.
        """
        self._running = True
        logger.info(
            f"Starting arbitrage loop: {self._config.base_asset} via {self._config.quote_asset}, "
            f"threshold {self._config.min_profit_threshold}%, "
            f"trade amount {self._config.min_trade_amount} {self._config.base_asset}"
        )

        try:
            completed = 0
            while self._running and (max_iterations is None or completed < max_iterations):
                await self.run_once()
                completed += 1
        finally:
            self._running = False
            logger.info(f"Arbitrage loop stopped after {self._iterations} iterations")

    def stop(self) -> None:
        """Request the loop to stop after the current iteration."""
        if self._running:
            logger.info("Shutdown signal received")
        self._running = False


@asynccontextmanager
async def create_loop(
    settings: Settings,
    submitter: SwapSubmitter | None = None,
    metrics: MetricsCollector | None = None,
) -> AsyncIterator[ArbitrageLoop]:
    """
    Build a loop wired to a live RPC client and manage its lifecycle.

    Without an injected `submitter` the loop trades on paper; live mode
    requires one.

    Usage:
        async with create_loop(settings) as loop:
            await loop.run()

    Raises:
        ConfigurationError: On invalid pools or live mode without a submitter.
    """
    if submitter is None and not settings.dry_run:
        raise ConfigurationError("Live trading requires a swap submitter; set DRY_RUN=true")

    pools = resolve_pools(settings.pools, settings.pool_vaults)
    wallet = WalletContext(public_key=settings.wallet_public_key)

    client = SolanaRpcClient(
        rpc_url=settings.rpc_url,
        commitment=settings.commitment,
        timeout_seconds=settings.rpc_timeout_seconds,
        rate_limiter=RateLimiter(settings.rpc_requests_per_second),
    )

    try:
        block_height = await client.get_block_height()
        logger.info(f"Current Block Height: {block_height}")
        logger.info("RPC endpoint is connected.")

        oracle = MarketDataOracle(client, wallet)
        if submitter is None:
            submitter = PaperSwapSubmitter(oracle, priority_fee_cap=settings.priority_fee_cap)

        loop = ArbitrageLoop(
            oracle=oracle,
            selector=RouteSelector(PoolFeeEstimator(oracle)),
            calculator=ProfitCalculator(settings.slippage_tolerance),
            sequencer=ExecutionSequencer(oracle, submitter),
            submitter=submitter,
            pools=pools,
            config=LoopConfig.from_settings(settings),
            metrics=metrics,
        )
        yield loop
    finally:
        await client.close()
