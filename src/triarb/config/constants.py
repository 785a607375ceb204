"""
Trading constants and configuration values.

This module contains all hardcoded values used throughout the arbitrage engine.
Values are organized by category for easy maintenance and auditing.
"""

from decimal import Decimal
from typing import Final


# =============================================================================
# Solana RPC
# =============================================================================

SOLANA_MAINNET_RPC_URL: Final[str] = "https://api.mainnet-beta.solana.com"
SOLANA_DEVNET_RPC_URL: Final[str] = "https://api.devnet.solana.com"

DEFAULT_COMMITMENT: Final[str] = "confirmed"
DEFAULT_RPC_TIMEOUT_SECONDS: Final[float] = 60.0

# JSON-RPC methods
METHOD_GET_BALANCE: Final[str] = "getBalance"
METHOD_GET_BLOCK_HEIGHT: Final[str] = "getBlockHeight"
METHOD_GET_FEE_FOR_MESSAGE: Final[str] = "getFeeForMessage"
METHOD_GET_TOKEN_ACCOUNT_BALANCE: Final[str] = "getTokenAccountBalance"
METHOD_GET_TOKEN_ACCOUNTS_BY_OWNER: Final[str] = "getTokenAccountsByOwner"

# Public endpoints throttle aggressively; stay well under their limits
DEFAULT_RPC_REQUESTS_PER_SECOND: Final[int] = 10


# =============================================================================
# Chain Constants
# =============================================================================

TOKEN_PROGRAM_ID: Final[str] = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"

NATIVE_SOL_MINT: Final[str] = "So11111111111111111111111111111111111111112"
USDC_MINT: Final[str] = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
WORMHOLE_ETH_MINT: Final[str] = "7vfCXTUXx5WJV5JADk17DUJ4ksgau7utNKj4b963voxs"

SOL_DECIMALS: Final[int] = 9
LAMPORTS_PER_SOL: Final[int] = 1_000_000_000

# Base fee charged per transaction signature
SIGNATURE_FEE_LAMPORTS: Final[int] = 5000


# =============================================================================
# Pool Fees
# =============================================================================

# Constant-product pool fee (0.25% LP + 0.05% protocol)
DEFAULT_POOL_FEE_RATE: Final[Decimal] = Decimal("0.003")


# =============================================================================
# Trading Constraints
# =============================================================================

DEFAULT_BASE_ASSET: Final[str] = "SOL"
DEFAULT_QUOTE_ASSET: Final[str] = "USDC"

# Minimum profit percentage to execute (0.02%)
DEFAULT_MIN_PROFIT_THRESHOLD: Final[Decimal] = Decimal("0.02")

# Amount of base asset traded per cycle
DEFAULT_MIN_TRADE_AMOUNT: Final[Decimal] = Decimal("1")

# Minimum-output floor below the quoted output (1%)
DEFAULT_SLIPPAGE_TOLERANCE: Final[Decimal] = Decimal("0.01")

# Upper bound on priority fee attached to a swap (lamports)
DEFAULT_PRIORITY_FEE_CAP: Final[int] = 100_000

# Legs per cycle, each paying the network fee once
CYCLE_LEGS: Final[int] = 3


# =============================================================================
# Loop Timing
# =============================================================================

DEFAULT_ITERATION_DELAY_SECONDS: Final[float] = 1.0
DEFAULT_ERROR_DELAY_SECONDS: Final[float] = 5.0


# =============================================================================
# Precision & Formatting
# =============================================================================

# Working precision for Decimal arithmetic
DECIMAL_PRECISION: Final[int] = 40

PROFIT_DISPLAY_PLACES: Final[int] = 6
PERCENTAGE_DISPLAY_PLACES: Final[int] = 2


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | it=%(iteration)s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000

# Log file rotation
LOG_FILE_MAX_BYTES: Final[int] = 10 * 1024 * 1024
LOG_FILE_BACKUPS: Final[int] = 5
