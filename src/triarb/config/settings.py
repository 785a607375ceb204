"""
Application settings with environment variable support.

Uses Pydantic Settings for type-safe configuration with automatic
environment variable loading and validation. Values are read once per
run; the engine never re-reads them mid-run.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from triarb.config.constants import (
    DEFAULT_BASE_ASSET,
    DEFAULT_COMMITMENT,
    DEFAULT_ERROR_DELAY_SECONDS,
    DEFAULT_ITERATION_DELAY_SECONDS,
    DEFAULT_MIN_PROFIT_THRESHOLD,
    DEFAULT_MIN_TRADE_AMOUNT,
    DEFAULT_PRIORITY_FEE_CAP,
    DEFAULT_QUOTE_ASSET,
    DEFAULT_RPC_REQUESTS_PER_SECOND,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    DEFAULT_SLIPPAGE_TOLERANCE,
    SOLANA_MAINNET_RPC_URL,
)
from triarb.config.pools import ASSETS, PoolName


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # RPC Configuration
    # =========================================================================

    rpc_url: str = Field(
        default=SOLANA_MAINNET_RPC_URL,
        description="Solana JSON-RPC endpoint",
    )

    rpc_timeout_seconds: float = Field(
        default=DEFAULT_RPC_TIMEOUT_SECONDS,
        gt=0.0,
        le=300.0,
        description="Timeout for a single RPC call",
    )

    rpc_requests_per_second: int = Field(
        default=DEFAULT_RPC_REQUESTS_PER_SECOND,
        ge=1,
        le=1000,
        description="Client-side RPC request rate limit",
    )

    commitment: Literal["processed", "confirmed", "finalized"] = Field(
        default=DEFAULT_COMMITMENT,
        description="Commitment level for reads",
    )

    # =========================================================================
    # Wallet
    # =========================================================================

    wallet_public_key: str = Field(
        ...,
        min_length=32,
        max_length=44,
        description="Base58 public key of the trading wallet",
    )

    # =========================================================================
    # Pools
    # =========================================================================

    base_asset: str = Field(
        default=DEFAULT_BASE_ASSET,
        description="Asset every cycle starts and ends in",
    )

    quote_asset: str = Field(
        default=DEFAULT_QUOTE_ASSET,
        description="Asset the first leg swaps the base asset into",
    )

    pools: list[PoolName] = Field(
        default_factory=lambda: [PoolName.SOL_USDC, PoolName.ETH_USDC, PoolName.ETH_SOL],
        description="Pools to monitor, in tie-break order",
    )

    pool_vaults: dict[PoolName, tuple[str, str]] = Field(
        default_factory=dict,
        description='JSON mapping, e.g. {"SOL_USDC": ["<vault A>", "<vault B>"]}',
    )

    # =========================================================================
    # Trading Configuration
    # =========================================================================

    min_profit_threshold: Decimal = Field(
        default=DEFAULT_MIN_PROFIT_THRESHOLD,
        ge=0,
        description="Minimum profit percentage to execute (0.02 = 0.02%)",
    )

    min_trade_amount: Decimal = Field(
        default=DEFAULT_MIN_TRADE_AMOUNT,
        gt=0,
        description="Base asset amount traded per cycle; also the minimum wallet balance",
    )

    slippage_tolerance: Decimal = Field(
        default=DEFAULT_SLIPPAGE_TOLERANCE,
        ge=0,
        lt=1,
        description="Fraction below the quoted output accepted as a floor",
    )

    priority_fee_cap: int = Field(
        default=DEFAULT_PRIORITY_FEE_CAP,
        ge=0,
        description="Maximum priority fee per swap in lamports",
    )

    # =========================================================================
    # Loop Timing
    # =========================================================================

    iteration_delay_seconds: float = Field(
        default=DEFAULT_ITERATION_DELAY_SECONDS,
        ge=0.0,
        description="Sleep between iterations",
    )

    error_delay_seconds: float = Field(
        default=DEFAULT_ERROR_DELAY_SECONDS,
        ge=0.0,
        description="Sleep after a failed iteration",
    )

    # =========================================================================
    # Operation Mode
    # =========================================================================

    dry_run: bool = Field(
        default=True,
        description="Simulate swaps without submitting transactions",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging verbosity level",
    )

    log_file: Path | None = Field(
        default=None,
        description="Optional log file path",
    )

    use_uvloop: bool = Field(
        default=True,
        description="Use uvloop for improved async performance",
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("base_asset", "quote_asset", mode="after")
    @classmethod
    def validate_asset(cls, v: str) -> str:
        """Ensure the asset is one the pool registry knows."""
        v = v.upper()
        if v not in ASSETS:
            raise ValueError(f"Unsupported asset {v}, expected one of {sorted(ASSETS)}")
        return v

    @field_validator("min_profit_threshold", mode="after")
    @classmethod
    def validate_profit_threshold(cls, v: Decimal) -> Decimal:
        """Warn if profit threshold is zero."""
        if v == 0:
            import warnings

            warnings.warn(
                "Profit threshold is zero, any positive spot estimate will be executed",
                stacklevel=2,
            )
        return v

    @model_validator(mode="after")
    def validate_asset_pair(self) -> "Settings":
        """Base and quote assets must differ."""
        if self.base_asset == self.quote_asset:
            raise ValueError("base_asset and quote_asset must differ")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are loaded only once.
    Clear cache with `get_settings.cache_clear()` if needed.
    """
    return Settings()  # type: ignore[call-arg, unused-ignore]
