"""
Integration tests for the arbitrage loop.

Drives single iterations deterministically with an injected sleep and
clock against an in-memory chain.
"""

import dataclasses
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

import pytest

from triarb.chain.client import SolanaRpcClient
from triarb.config.pools import PoolName
from triarb.config.settings import Settings
from triarb.core.engine import ArbitrageLoop, LoopConfig, create_loop
from triarb.core.errors import ConfigurationError, DataUnavailable, SubmissionFailed
from triarb.core.types import Asset, CycleEvaluation, ExecutionStatus, LoopState, Pool, SwapSubmitter
from triarb.execution.paper import PaperSwapSubmitter
from triarb.execution.sequencer import ExecutionSequencer
from triarb.market.oracle import MarketDataOracle
from triarb.strategy.calculator import ProfitCalculator
from triarb.strategy.fees import PoolFeeEstimator
from triarb.strategy.route import RouteSelector
from triarb.telemetry.metrics import MetricsCollector

from tests.mocks.chain import WALLET_PUBLIC_KEY, MockChainClient, MockSwapSubmitter, raw


CONFIG = LoopConfig(
    base_asset="SOL",
    quote_asset="USDC",
    min_profit_threshold=Decimal("0.02"),
    min_trade_amount=Decimal(1),
    slippage_tolerance=Decimal("0.01"),
    iteration_delay_seconds=1.0,
    error_delay_seconds=5.0,
)

FULL_ITERATION = [
    LoopState.IDLE,
    LoopState.FETCHING_MARKET_DATA,
    LoopState.SELECTING_ROUTE,
    LoopState.EVALUATING_PROFIT,
]


class PinnedProfitCalculator(ProfitCalculator):
    """Scores cycles normally, then reports a fixed profit percentage."""

    __slots__ = ("_profit_percentage",)

    def __init__(self, slippage_tolerance: Decimal, profit_percentage: Decimal) -> None:
        super().__init__(slippage_tolerance)
        self._profit_percentage = profit_percentage

    def evaluate(self, *args: Any, **kwargs: Any) -> CycleEvaluation:
        evaluation = super().evaluate(*args, **kwargs)
        return dataclasses.replace(evaluation, profit_percentage=self._profit_percentage)


class FakeClock:
    """Monotonic clock advancing one millisecond per reading."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        self.now += 0.001
        return self.now


def build_loop(
    oracle: MarketDataOracle,
    submitter: SwapSubmitter,
    pools: list[Pool],
    sleep: AsyncMock,
    metrics: MetricsCollector | None = None,
    config: LoopConfig = CONFIG,
    calculator: ProfitCalculator | None = None,
) -> ArbitrageLoop:
    return ArbitrageLoop(
        oracle=oracle,
        selector=RouteSelector(PoolFeeEstimator(oracle)),
        calculator=calculator or ProfitCalculator(config.slippage_tolerance),
        sequencer=ExecutionSequencer(oracle, submitter),
        submitter=submitter,
        pools=pools,
        config=config,
        metrics=metrics,
        sleep=sleep,
        clock=FakeClock(),
    )


class TestArbitrageLoopIteration:
    """Tests for single iterations."""

    @pytest.mark.asyncio
    async def test_unprofitable_market_sleeps(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
    ) -> None:
        sleep = AsyncMock()
        loop = build_loop(oracle, mock_submitter, pools, sleep)

        outcome = await loop.run_once()

        assert outcome.final_state == LoopState.SLEEPING
        assert not outcome.executed
        assert not outcome.failed
        assert outcome.evaluation is not None
        assert outcome.evaluation.net_profit < 0
        assert mock_submitter.calls == []
        sleep.assert_awaited_once_with(1.0)
        assert loop.state == LoopState.IDLE
        assert loop.state_history == [*FULL_ITERATION, LoopState.SLEEPING, LoopState.IDLE]

    @pytest.mark.asyncio
    async def test_profitable_market_executes(
        self,
        oracle: MarketDataOracle,
        profitable_chain_client: MockChainClient,
        pools: list[Pool],
    ) -> None:
        sleep = AsyncMock()
        submitter = PaperSwapSubmitter(oracle)
        metrics = MetricsCollector()
        loop = build_loop(oracle, submitter, pools, sleep, metrics)

        outcome = await loop.run_once()

        assert outcome.final_state == LoopState.EXECUTING
        assert outcome.evaluation is not None
        assert outcome.evaluation.profit_percentage > CONFIG.min_profit_threshold
        assert outcome.execution is not None
        assert outcome.execution.status == ExecutionStatus.SUCCESS
        assert outcome.execution.start_amount == CONFIG.min_trade_amount
        assert submitter.submissions == 3
        assert loop.state_history == [*FULL_ITERATION, LoopState.EXECUTING, LoopState.IDLE]
        assert metrics.trading_stats.executions_successful == 1
        assert metrics.get_latency_stats("execute").count == 1

    @pytest.mark.asyncio
    async def test_low_balance_skips_execution(
        self,
        oracle: MarketDataOracle,
        profitable_chain_client: MockChainClient,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
        sol: Asset,
    ) -> None:
        profitable_chain_client.native_balance = raw(sol, "0.5")
        loop = build_loop(oracle, mock_submitter, pools, AsyncMock())

        outcome = await loop.run_once()

        assert outcome.final_state == LoopState.SLEEPING
        assert outcome.wallet_balance == Decimal("0.5")
        assert outcome.evaluation is not None
        assert outcome.evaluation.is_profitable
        assert mock_submitter.calls == []

    @pytest.mark.asyncio
    async def test_profit_equal_to_threshold_sleeps(
        self,
        oracle: MarketDataOracle,
        profitable_chain_client: MockChainClient,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
    ) -> None:
        """Test that the threshold itself is not enough to execute."""
        calculator = PinnedProfitCalculator(CONFIG.slippage_tolerance, CONFIG.min_profit_threshold)
        loop = build_loop(oracle, mock_submitter, pools, AsyncMock(), calculator=calculator)

        outcome = await loop.run_once()

        assert outcome.evaluation is not None
        assert outcome.evaluation.profit_percentage == CONFIG.min_profit_threshold
        assert outcome.final_state == LoopState.SLEEPING
        assert mock_submitter.calls == []

    @pytest.mark.asyncio
    async def test_profit_just_above_threshold_executes(
        self,
        oracle: MarketDataOracle,
        profitable_chain_client: MockChainClient,
        pools: list[Pool],
    ) -> None:
        calculator = PinnedProfitCalculator(
            CONFIG.slippage_tolerance,
            CONFIG.min_profit_threshold + Decimal("0.000001"),
        )
        submitter = PaperSwapSubmitter(oracle)
        loop = build_loop(oracle, submitter, pools, AsyncMock(), calculator=calculator)

        outcome = await loop.run_once()

        assert outcome.final_state == LoopState.EXECUTING

    @pytest.mark.asyncio
    async def test_balance_equal_to_trade_amount_executes(
        self,
        oracle: MarketDataOracle,
        profitable_chain_client: MockChainClient,
        pools: list[Pool],
        sol: Asset,
    ) -> None:
        """Test that holding exactly the trade amount is enough."""
        profitable_chain_client.native_balance = raw(sol, 1)
        submitter = PaperSwapSubmitter(oracle)
        loop = build_loop(oracle, submitter, pools, AsyncMock())

        outcome = await loop.run_once()

        assert outcome.wallet_balance == CONFIG.min_trade_amount
        assert outcome.final_state == LoopState.EXECUTING
        assert submitter.submissions == 3

    @pytest.mark.asyncio
    async def test_network_fee_converted_to_base_asset(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
    ) -> None:
        """Test that a SOL fee is charged in ETH at the ETH/SOL spot rate."""
        config = dataclasses.replace(CONFIG, base_asset="ETH")
        loop = build_loop(oracle, mock_submitter, pools, AsyncMock(), config=config)

        outcome = await loop.run_once()

        assert outcome.route is not None
        assert outcome.route.id == "ETH-USDC-SOL-ETH"
        assert outcome.evaluation is not None
        # 5000 lamports = 0.000005 SOL, at 1000 ETH / 20000 SOL
        assert outcome.evaluation.network_fee == Decimal("0.00000025")

    @pytest.mark.asyncio
    async def test_network_fee_drafted_for_first_leg(
        self,
        oracle: MarketDataOracle,
        mock_chain_client: MockChainClient,
        pools: list[Pool],
        sol_usdc_pool: Pool,
    ) -> None:
        submitter = MockSwapSubmitter(message="AQABAg==")
        mock_chain_client.fee_lamports = 7_500
        loop = build_loop(oracle, submitter, pools, AsyncMock())

        outcome = await loop.run_once()

        assert submitter.drafts[0].pool == sol_usdc_pool
        assert submitter.drafts[0].input_amount == CONFIG.min_trade_amount
        assert outcome.evaluation is not None
        assert outcome.evaluation.network_fee == Decimal("0.0000075")

    @pytest.mark.asyncio
    async def test_read_failure_enters_error_state(
        self,
        oracle: MarketDataOracle,
        mock_chain_client: MockChainClient,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
        eth_sol_pool: Pool,
    ) -> None:
        mock_chain_client.failing.add(eth_sol_pool.vault_a)
        sleep = AsyncMock()
        metrics = MetricsCollector()
        loop = build_loop(oracle, mock_submitter, pools, sleep, metrics)

        outcome = await loop.run_once()

        assert isinstance(outcome.error, DataUnavailable)
        assert outcome.final_state == LoopState.ERROR
        assert loop.state == LoopState.IDLE
        assert loop.state_history == [
            LoopState.IDLE,
            LoopState.FETCHING_MARKET_DATA,
            LoopState.SELECTING_ROUTE,
            LoopState.ERROR,
            LoopState.IDLE,
        ]
        sleep.assert_awaited_once_with(5.0)
        assert metrics.get_counter("errors.data_unavailable") == 1

    @pytest.mark.asyncio
    async def test_submission_failure_reports_partial_cycle(
        self,
        oracle: MarketDataOracle,
        profitable_chain_client: MockChainClient,
        pools: list[Pool],
    ) -> None:
        submitter = MockSwapSubmitter(outputs=[Decimal("99.4")], fail_on_leg=1)
        metrics = MetricsCollector()
        loop = build_loop(oracle, submitter, pools, AsyncMock(), metrics)

        outcome = await loop.run_once()

        assert isinstance(outcome.error, SubmissionFailed)
        assert outcome.execution is not None
        assert outcome.execution.status == ExecutionStatus.PARTIAL
        assert outcome.execution.held_asset.symbol == "USDC"
        assert metrics.trading_stats.executions_failed == 1
        assert metrics.trading_stats.stranded == {"USDC": Decimal("99.4")}
        assert metrics.get_counter("errors.submission_failed") == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(oracle, "estimate_network_fee", AsyncMock(side_effect=RuntimeError("boom")))
        metrics = MetricsCollector()
        loop = build_loop(oracle, mock_submitter, pools, AsyncMock(), metrics)

        outcome = await loop.run_once()

        assert isinstance(outcome.error, RuntimeError)
        assert outcome.route is not None
        assert metrics.get_counter("errors.unexpected") == 1
        assert loop.state == LoopState.IDLE

    def test_requires_pool_with_base_asset(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        eth_usdc_pool: Pool,
    ) -> None:
        with pytest.raises(ConfigurationError):
            build_loop(oracle, mock_submitter, [eth_usdc_pool], AsyncMock())

    def test_non_sol_base_requires_sol_pool(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        eth_usdc_pool: Pool,
    ) -> None:
        config = dataclasses.replace(CONFIG, base_asset="USDC", quote_asset="ETH")

        with pytest.raises(ConfigurationError, match="SOL/USDC"):
            build_loop(oracle, mock_submitter, [eth_usdc_pool], AsyncMock(), config=config)

    def test_rejects_unknown_base_asset(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
    ) -> None:
        config = dataclasses.replace(CONFIG, base_asset="DOGE")

        with pytest.raises(ConfigurationError, match="DOGE"):
            build_loop(oracle, mock_submitter, pools, AsyncMock(), config=config)


class TestArbitrageLoopRun:
    """Tests for the repeating loop."""

    @pytest.mark.asyncio
    async def test_run_bounded_iterations(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
    ) -> None:
        sleep = AsyncMock()
        metrics = MetricsCollector()
        loop = build_loop(oracle, mock_submitter, pools, sleep, metrics)

        await loop.run(max_iterations=3)

        assert loop.iterations == 3
        assert metrics.trading_stats.iterations == 3
        assert sleep.await_count == 3
        assert not loop.is_running

    @pytest.mark.asyncio
    async def test_loop_recovers_after_error(
        self,
        oracle: MarketDataOracle,
        mock_chain_client: MockChainClient,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
        eth_sol_pool: Pool,
    ) -> None:
        """Test that a failed iteration does not stop the next one."""
        mock_chain_client.failing.add(eth_sol_pool.vault_b)
        sleep = AsyncMock(side_effect=lambda _: mock_chain_client.failing.clear())
        loop = build_loop(oracle, mock_submitter, pools, sleep)

        first = await loop.run_once()
        second = await loop.run_once()

        assert first.failed
        assert not second.failed
        assert second.final_state == LoopState.SLEEPING
        assert [call.args[0] for call in sleep.await_args_list] == [5.0, 1.0]

    @pytest.mark.asyncio
    async def test_stop_ends_run(
        self,
        oracle: MarketDataOracle,
        mock_submitter: MockSwapSubmitter,
        pools: list[Pool],
    ) -> None:
        sleep = AsyncMock()
        loop = build_loop(oracle, mock_submitter, pools, sleep)
        sleep.side_effect = lambda _: loop.stop()

        await loop.run()

        assert loop.iterations == 1
        assert not loop.is_running


class TestCreateLoop:
    """Tests for the loop factory."""

    @pytest.fixture
    def settings(self) -> Settings:
        return Settings(
            wallet_public_key=WALLET_PUBLIC_KEY,
            pool_vaults={
                PoolName.SOL_USDC: ("A1", "B1"),
                PoolName.ETH_USDC: ("A2", "B2"),
                PoolName.ETH_SOL: ("A3", "B3"),
            },
            _env_file=None,
        )

    @pytest.mark.asyncio
    async def test_builds_paper_loop(
        self,
        settings: Settings,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(SolanaRpcClient, "get_block_height", AsyncMock(return_value=250_000_000))

        async with create_loop(settings) as loop:
            assert isinstance(loop, ArbitrageLoop)
            assert loop.state == LoopState.IDLE

    @pytest.mark.asyncio
    async def test_live_mode_requires_submitter(self, settings: Settings) -> None:
        live = settings.model_copy(update={"dry_run": False})

        with pytest.raises(ConfigurationError):
            async with create_loop(live):
                pass

    @pytest.mark.asyncio
    async def test_missing_vaults_rejected(self, settings: Settings) -> None:
        incomplete = settings.model_copy(update={"pool_vaults": {}})

        with pytest.raises(ConfigurationError):
            async with create_loop(incomplete):
                pass
