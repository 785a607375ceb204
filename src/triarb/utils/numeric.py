"""
Decimal utilities for trading calculations.

All engine arithmetic runs in Decimal under one shared context so that
chained multiplications round identically on every run.
"""

from contextlib import AbstractContextManager
from decimal import ROUND_HALF_EVEN, Context, Decimal, localcontext
from typing import Final

from triarb.config.constants import DECIMAL_PRECISION


DECIMAL_CONTEXT: Final[Context] = Context(prec=DECIMAL_PRECISION, rounding=ROUND_HALF_EVEN)

ZERO: Final[Decimal] = Decimal(0)
ONE: Final[Decimal] = Decimal(1)
HUNDRED: Final[Decimal] = Decimal(100)


def engine_context() -> AbstractContextManager[Context]:
    """Context manager applying the engine's Decimal context."""
    return localcontext(DECIMAL_CONTEXT)


def check_fraction(name: str, value: Decimal) -> Decimal:
    """
    Validate that a rate lies in [0, 1).

    Raises:
        ValueError: If the value is out of range.
    """
    if not ZERO <= value < ONE:
        raise ValueError(f"{name} must be in [0, 1), got {value}")
    return value


def format_amount(value: Decimal, places: int) -> str:
    """
    Format a Decimal with a fixed number of places.

    Example:
        >>> format_amount(Decimal("-0.0290935664"), 6)
        '-0.029094'
    """
    return f"{value:.{places}f}"


def format_profit(profit_pct: Decimal) -> str:
    """
    Format profit percentage for display.

    Example:
        >>> format_profit(Decimal("0.5"))
        '+0.50%'
    """
    sign = "+" if profit_pct >= 0 else ""
    return f"{sign}{profit_pct:.2f}%"
