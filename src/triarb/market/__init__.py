"""Market data module for live on-chain reads."""

from triarb.market.oracle import MarketDataOracle


__all__ = [
    "MarketDataOracle",
]
