"""
Type definitions for the arbitrage engine.

This module contains the dataclasses, enums and Protocol definitions
used throughout the application. All amounts are Decimal; raw on-chain
integers are only converted at the Asset boundary.
"""

from dataclasses import dataclass, field
from decimal import ROUND_FLOOR, Decimal
from enum import Enum
from typing import Protocol

from triarb.core.errors import ConfigurationError


# =============================================================================
# Enums
# =============================================================================


class ExecutionStatus(str, Enum):
    """Cycle execution status."""

    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    FAILED = "FAILED"


class LoopState(str, Enum):
    """States of the arbitrage loop."""

    IDLE = "IDLE"
    FETCHING_MARKET_DATA = "FETCHING_MARKET_DATA"
    SELECTING_ROUTE = "SELECTING_ROUTE"
    EVALUATING_PROFIT = "EVALUATING_PROFIT"
    EXECUTING = "EXECUTING"
    SLEEPING = "SLEEPING"
    ERROR = "ERROR"


# =============================================================================
# Market Data Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Asset:
    """
    A token resolved at startup.

    Frozen: an asset never changes once resolved.
    """

    mint: str
    symbol: str
    decimals: int

    @property
    def scale(self) -> Decimal:
        """Power-of-ten divisor from raw to display amounts."""
        return Decimal(10) ** self.decimals

    def to_ui(self, raw: int) -> Decimal:
        """Convert a raw integer amount to a display amount."""
        return Decimal(raw) / self.scale

    def to_raw(self, amount: Decimal) -> int:
        """Convert a display amount to raw units, rounding down."""
        return int((amount * self.scale).to_integral_value(rounding=ROUND_FLOOR))

    def __repr__(self) -> str:
        return self.symbol


@dataclass(slots=True, frozen=True)
class Pool:
    """
    Constant-product liquidity pool between two assets.

    The A/B order is the pool's own and is not interchangeable; the
    direction of a swap is chosen per use through `orient`.
    """

    name: str
    asset_a: Asset
    asset_b: Asset
    vault_a: str
    vault_b: str
    fee_rate: Decimal

    def __post_init__(self) -> None:
        if self.asset_a.symbol == self.asset_b.symbol:
            raise ConfigurationError(f"Pool {self.name} pairs {self.asset_a} with itself")
        if not Decimal(0) <= self.fee_rate < Decimal(1):
            raise ConfigurationError(f"Pool {self.name} fee rate {self.fee_rate} not in [0, 1)")

    @property
    def key(self) -> frozenset[str]:
        """Unordered pair of asset symbols identifying the pool."""
        return frozenset((self.asset_a.symbol, self.asset_b.symbol))

    def contains(self, symbol: str) -> bool:
        """Check if the pool trades the given asset."""
        return symbol in (self.asset_a.symbol, self.asset_b.symbol)

    def other(self, symbol: str) -> Asset:
        """Get the counter asset of `symbol` in this pool."""
        if symbol == self.asset_a.symbol:
            return self.asset_b
        if symbol == self.asset_b.symbol:
            return self.asset_a
        raise ValueError(f"{symbol} not in pool {self.name}")

    def asset(self, symbol: str) -> Asset:
        """Get the pool asset with the given symbol."""
        if symbol == self.asset_a.symbol:
            return self.asset_a
        if symbol == self.asset_b.symbol:
            return self.asset_b
        raise ValueError(f"{symbol} not in pool {self.name}")

    def __repr__(self) -> str:
        return self.name


@dataclass(slots=True, frozen=True)
class PoolReserves:
    """Raw reserve snapshot of a pool, as read from its vaults."""

    pool: Pool
    reserve_a: int
    reserve_b: int

    @property
    def ui_reserve_a(self) -> Decimal:
        return self.pool.asset_a.to_ui(self.reserve_a)

    @property
    def ui_reserve_b(self) -> Decimal:
        return self.pool.asset_b.to_ui(self.reserve_b)

    def oriented(self, input_symbol: str) -> tuple[Decimal, Decimal]:
        """
        Get display reserves ordered as (reserve_in, reserve_out).

        Args:
            input_symbol: Symbol of the asset going into the pool.
        """
        if input_symbol == self.pool.asset_a.symbol:
            return self.ui_reserve_a, self.ui_reserve_b
        if input_symbol == self.pool.asset_b.symbol:
            return self.ui_reserve_b, self.ui_reserve_a
        raise ValueError(f"{input_symbol} not in pool {self.pool.name}")


@dataclass(slots=True, frozen=True)
class FeeEstimate:
    """Advisory fee signal used to rank candidate pools."""

    pool: Pool
    fee: Decimal
    price_impact: Decimal


# =============================================================================
# Route Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class RouteLeg:
    """Single swap of a route: `input_asset` in, `output_asset` out."""

    pool: Pool
    input_asset: Asset
    output_asset: Asset

    def __post_init__(self) -> None:
        if not (self.pool.contains(self.input_asset.symbol) and self.pool.contains(self.output_asset.symbol)):
            raise ConfigurationError(
                f"Leg {self.input_asset}->{self.output_asset} does not match pool {self.pool.name}"
            )
        if self.input_asset.symbol == self.output_asset.symbol:
            raise ConfigurationError(f"Leg on {self.pool.name} swaps {self.input_asset} into itself")

    def __repr__(self) -> str:
        return f"{self.input_asset}->{self.output_asset}({self.pool.name})"


@dataclass(slots=True, frozen=True)
class Route:
    """
    Closed 3-leg cycle through the base asset.

    Asset continuity is checked at construction: leg i's output must be
    leg i+1's input, and the cycle starts and ends at `base_asset`.
    """

    base_asset: str
    legs: tuple[RouteLeg, RouteLeg, RouteLeg]

    def __post_init__(self) -> None:
        if len(self.legs) != 3:
            raise ConfigurationError(f"Route needs exactly 3 legs, got {len(self.legs)}")
        if self.legs[0].input_asset.symbol != self.base_asset:
            raise ConfigurationError(f"Route must start at {self.base_asset}: {self}")
        if self.legs[-1].output_asset.symbol != self.base_asset:
            raise ConfigurationError(f"Route must end at {self.base_asset}: {self}")
        for current, following in zip(self.legs, self.legs[1:]):
            if current.output_asset.symbol != following.input_asset.symbol:
                raise ConfigurationError(f"Broken asset continuity at {current} -> {following}")

    @property
    def id(self) -> str:
        symbols = [leg.input_asset.symbol for leg in self.legs]
        return "-".join([*symbols, self.base_asset])

    @property
    def pools(self) -> tuple[Pool, Pool, Pool]:
        return tuple(leg.pool for leg in self.legs)  # type: ignore[return-value]

    def __repr__(self) -> str:
        return self.id


# =============================================================================
# Evaluation Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class Quote:
    """Constant-product quote for one leg. Created per evaluation."""

    input_amount: Decimal
    input_after_fee: Decimal
    output_amount: Decimal
    min_output_amount: Decimal


@dataclass(slots=True, frozen=True)
class CycleEvaluation:
    """
    Profitability of one route on one reserve snapshot.

    Rates are spot ratios and therefore optimistic; the quotes carry the
    constant-product amounts for the same snapshot.
    """

    route: Route
    start_amount: Decimal
    rates: tuple[Decimal, Decimal, Decimal]
    fees: tuple[Decimal, Decimal, Decimal]
    quotes: tuple[Quote, Quote, Quote]
    network_fee: Decimal
    net_profit: Decimal
    profit_percentage: Decimal

    @property
    def is_profitable(self) -> bool:
        return self.net_profit > 0

    @property
    def expected_output(self) -> Decimal:
        """Base asset returned by the chained constant-product quotes."""
        return self.quotes[-1].output_amount


# =============================================================================
# Execution Types
# =============================================================================


@dataclass(slots=True, frozen=True)
class TransactionDraft:
    """Unsigned swap transaction used for network fee estimation."""

    pool: Pool
    input_asset: Asset
    input_amount: Decimal
    message: str | None = None  # base64 compiled message, if the submitter built one


@dataclass(slots=True, frozen=True)
class SwapReceipt:
    """What the submission service reports for a landed swap."""

    signature: str
    realized_output: Decimal


@dataclass(slots=True)
class LegResult:
    """Result of executing a single leg."""

    leg: RouteLeg
    input_amount: Decimal
    quote: Quote | None = None
    signature: str | None = None
    realized_output: Decimal = Decimal(0)
    error_message: str = ""
    latency_us: int = 0

    @property
    def is_filled(self) -> bool:
        return self.signature is not None


@dataclass(slots=True)
class ExecutionResult:
    """Result of executing a complete cycle."""

    route: Route
    start_amount: Decimal
    legs: list[LegResult] = field(default_factory=list)
    start_timestamp_us: int = 0
    end_timestamp_us: int = 0
    error_message: str = ""

    @property
    def status(self) -> ExecutionStatus:
        filled = sum(1 for leg in self.legs if leg.is_filled)
        if filled == len(self.route.legs):
            return ExecutionStatus.SUCCESS
        if filled == 0:
            return ExecutionStatus.FAILED
        return ExecutionStatus.PARTIAL

    @property
    def final_output(self) -> Decimal:
        """Realized output of the last filled leg."""
        for leg in reversed(self.legs):
            if leg.is_filled:
                return leg.realized_output
        return Decimal(0)

    @property
    def held_asset(self) -> Asset:
        """Asset the wallet holds after the last filled leg."""
        for leg in reversed(self.legs):
            if leg.is_filled:
                return leg.leg.output_asset
        return self.route.legs[0].input_asset

    @property
    def realized_profit(self) -> Decimal:
        """Base asset gained by a complete cycle, zero otherwise."""
        if self.status != ExecutionStatus.SUCCESS:
            return Decimal(0)
        return self.final_output - self.start_amount

    @property
    def total_latency_us(self) -> int:
        return self.end_timestamp_us - self.start_timestamp_us

    @property
    def is_success(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS


@dataclass(slots=True, frozen=True)
class WalletContext:
    """
    Wallet identity, built once at startup and never mutated.

    `signer` is whatever signing handle the wallet collaborator supplies;
    the engine only passes it through to the swap submitter.
    """

    public_key: str
    signer: object | None = field(default=None, repr=False)


# =============================================================================
# Protocols (Interfaces)
# =============================================================================


class ChainClient(Protocol):
    """Chain RPC reads the engine depends on. Amounts are raw integers."""

    async def get_token_account_balance(self, address: str) -> int:
        """Get the raw balance of a token account."""
        ...

    async def get_balance(self, owner: str) -> int:
        """Get the native balance of an account in lamports."""
        ...

    async def get_token_balance(self, owner: str, mint: str) -> int:
        """Get the raw balance an owner holds of a mint."""
        ...

    async def get_fee_for_message(self, message: str) -> int | None:
        """Get the fee in lamports for a compiled message."""
        ...


class SwapSubmitter(Protocol):
    """
    Swap submission service.

    `submit_swap` must enforce `realized_output >= min_output` on-chain
    or fail; the engine does not verify it independently.
    """

    async def build_draft(self, pool: Pool, input_asset: Asset, amount: Decimal) -> TransactionDraft:
        """Build an unsigned swap transaction for fee estimation."""
        ...

    async def submit_swap(
        self,
        pool: Pool,
        input_asset: Asset,
        amount: Decimal,
        min_output: Decimal,
    ) -> SwapReceipt:
        """Submit a swap and block until it lands or fails."""
        ...
