"""Configuration module for the arbitrage engine."""

from triarb.config.constants import (
    DEFAULT_POOL_FEE_RATE,
    NATIVE_SOL_MINT,
    SOLANA_MAINNET_RPC_URL,
)
from triarb.config.pools import POOL_REGISTRY, PoolName, resolve_asset, resolve_pools
from triarb.config.settings import Settings


__all__ = [
    "DEFAULT_POOL_FEE_RATE",
    "NATIVE_SOL_MINT",
    "POOL_REGISTRY",
    "PoolName",
    "SOLANA_MAINNET_RPC_URL",
    "Settings",
    "resolve_asset",
    "resolve_pools",
]
