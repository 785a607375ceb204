"""
In-memory metrics for the arbitrage loop.

Rolling latency windows per loop phase, error counters, and trading
statistics kept per route. Nothing is persisted; the summary is logged
on shutdown.
"""

from collections import defaultdict, deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from triarb.core.types import CycleEvaluation, ExecutionResult, ExecutionStatus
from triarb.utils.numeric import format_profit
from triarb.utils.time import format_duration_us, monotonic_seconds


def _percentile(sorted_samples: Sequence[int], fraction: float) -> int:
    """Nearest-rank percentile of an ascending, non-empty sequence."""
    index = min(len(sorted_samples) - 1, int(len(sorted_samples) * fraction))
    return sorted_samples[index]


@dataclass(slots=True, frozen=True)
class LatencyStats:
    """Aggregated latency of one loop phase, in microseconds."""

    count: int = 0
    min_us: int = 0
    max_us: int = 0
    avg_us: float = 0.0
    p50_us: int = 0
    p99_us: int = 0

    @classmethod
    def from_samples(cls, samples: Sequence[int]) -> "LatencyStats":
        if not samples:
            return cls()
        ordered = sorted(samples)
        return cls(
            count=len(ordered),
            min_us=ordered[0],
            max_us=ordered[-1],
            avg_us=sum(ordered) / len(ordered),
            p50_us=_percentile(ordered, 0.50),
            p99_us=_percentile(ordered, 0.99),
        )


@dataclass(slots=True)
class RouteStats:
    """Evaluation history of one route."""

    evaluations: int = 0
    profitable: int = 0
    best_profit_pct: Decimal | None = None
    last_profit_pct: Decimal | None = None

    def add(self, profit_pct: Decimal) -> None:
        self.evaluations += 1
        self.last_profit_pct = profit_pct
        if profit_pct > 0:
            self.profitable += 1
        if self.best_profit_pct is None or profit_pct > self.best_profit_pct:
            self.best_profit_pct = profit_pct


@dataclass(slots=True)
class TradingStats:
    """Trading results since start."""

    iterations: int = 0
    opportunities_found: int = 0
    opportunities_executed: int = 0
    executions_successful: int = 0
    executions_failed: int = 0
    realized_profit: Decimal = Decimal(0)
    # Amounts left in a non-base asset by partial cycles, by symbol
    stranded: dict[str, Decimal] = field(default_factory=lambda: defaultdict(Decimal))

    @property
    def execution_success_rate(self) -> float:
        total = self.executions_successful + self.executions_failed
        return self.executions_successful / total if total else 0.0


class MetricsCollector:
    """
    Collects loop metrics.

    Latencies keep a rolling window per name; counters and trading stats
    accumulate until reset().
    """

    def __init__(
        self,
        latency_window_size: int = 1000,
        clock: Callable[[], float] = monotonic_seconds,
    ) -> None:
        """
        Initialize metrics collector.

        Args:
            latency_window_size: Samples kept per latency name.
            clock: Monotonic seconds source for uptime.
        """
        self._window_size = latency_window_size
        self._clock = clock
        self._latencies: dict[str, deque[int]] = {}
        self._counters: dict[str, int] = defaultdict(int)
        self._routes: dict[str, RouteStats] = defaultdict(RouteStats)
        self._trading_stats = TradingStats()
        self._started = clock()

    # =========================================================================
    # Recording
    # =========================================================================

    def record_latency(self, name: str, latency_us: int) -> None:
        """Record one latency sample, e.g. for "select_route" or "execute"."""
        window = self._latencies.get(name)
        if window is None:
            window = self._latencies[name] = deque(maxlen=self._window_size)
        window.append(latency_us)

    def increment_counter(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def record_iteration(self) -> None:
        self._trading_stats.iterations += 1

    def record_evaluation(self, evaluation: CycleEvaluation, executed: bool = False) -> None:
        """
        Record a scored cycle.

        Args:
            evaluation: The cycle evaluation.
            executed: Whether the loop went on to execute it.
        """
        profit_pct = evaluation.profit_percentage
        self._routes[evaluation.route.id].add(profit_pct)

        if profit_pct > 0:
            self._trading_stats.opportunities_found += 1
        if executed:
            self._trading_stats.opportunities_executed += 1

    def record_execution(self, result: ExecutionResult | None) -> None:
        """
        Record an execution attempt.

        A complete cycle adds its realized profit. A partial cycle records
        the amount left in the asset it stopped on. A missing result counts
        as a failure.
        """
        stats = self._trading_stats

        if result is not None and result.status == ExecutionStatus.SUCCESS:
            stats.executions_successful += 1
            stats.realized_profit += result.realized_profit
            return

        stats.executions_failed += 1
        if result is not None and result.status == ExecutionStatus.PARTIAL:
            stats.stranded[result.held_asset.symbol] += result.final_output

    # =========================================================================
    # Queries
    # =========================================================================

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def get_latency_stats(self, name: str) -> LatencyStats:
        return LatencyStats.from_samples(self._latencies.get(name, ()))

    def get_all_latency_stats(self) -> dict[str, LatencyStats]:
        return {name: LatencyStats.from_samples(samples) for name, samples in self._latencies.items()}

    def get_route_stats(self, route_id: str) -> RouteStats:
        return self._routes.get(route_id, RouteStats())

    @property
    def best_profit_pct(self) -> Decimal | None:
        """Best estimated profit percentage over all routes."""
        best = [stats.best_profit_pct for stats in self._routes.values() if stats.best_profit_pct is not None]
        return max(best, default=None)

    @property
    def trading_stats(self) -> TradingStats:
        return self._trading_stats

    @property
    def uptime_seconds(self) -> float:
        return self._clock() - self._started

    def summary_lines(self) -> list[str]:
        """Render a human-readable summary, one line per item."""
        stats = self._trading_stats
        best = self.best_profit_pct
        lines = [
            f"Uptime: {self.uptime_seconds:.0f}s, iterations: {stats.iterations}",
            f"Opportunities: {stats.opportunities_found} found, "
            f"{stats.opportunities_executed} executed, best {'n/a' if best is None else format_profit(best)}",
            f"Executions: {stats.executions_successful} ok, {stats.executions_failed} failed, "
            f"realized profit {stats.realized_profit}",
        ]
        for symbol, amount in sorted(stats.stranded.items()):
            lines.append(f"Stranded by partial cycles: {amount} {symbol}")
        for route_id, route in sorted(self._routes.items()):
            last = "n/a" if route.last_profit_pct is None else format_profit(route.last_profit_pct)
            lines.append(f"Route {route_id}: {route.evaluations} evaluated, {route.profitable} profitable, last {last}")
        for name, count in sorted(self._counters.items()):
            lines.append(f"Counter {name}: {count}")
        for name, latency in self.get_all_latency_stats().items():
            lines.append(
                f"Latency [{name}]: avg={format_duration_us(int(latency.avg_us))} "
                f"p99={format_duration_us(latency.p99_us)} max={format_duration_us(latency.max_us)}"
            )
        return lines

    def reset(self) -> None:
        self._latencies.clear()
        self._counters.clear()
        self._routes.clear()
        self._trading_stats = TradingStats()
        self._started = self._clock()
