"""
Triangular AMM Arbitrage Engine.

An asynchronous bot that monitors constant-product liquidity pools on
Solana and executes three-leg arbitrage cycles through a base asset.
"""

__version__ = "1.0.0"
__author__ = "Tim"
