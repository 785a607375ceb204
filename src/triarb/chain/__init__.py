"""Solana chain access: JSON-RPC client, response models and rate limiting."""

from triarb.chain.client import RpcError, RpcResponseError, SolanaRpcClient
from triarb.chain.rate_limiter import RateLimiter


__all__ = [
    "RateLimiter",
    "RpcError",
    "RpcResponseError",
    "SolanaRpcClient",
]
