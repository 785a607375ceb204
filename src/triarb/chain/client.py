"""
Async Solana JSON-RPC client.

Optimized for a long-lived polling loop with:
- One pooled keep-alive session for the process lifetime
- Fast JSON parsing with orjson
- Client-side rate limiting
- Typed responses via pydantic models
"""

import asyncio
import itertools
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import orjson
from pydantic import ValidationError

from triarb.chain.models import (
    Balance,
    FeeForMessage,
    RpcResponse,
    TokenAccountBalance,
    TokenAccountsByOwner,
)
from triarb.chain.rate_limiter import RateLimiter
from triarb.config.constants import (
    DEFAULT_COMMITMENT,
    DEFAULT_RPC_TIMEOUT_SECONDS,
    METHOD_GET_BALANCE,
    METHOD_GET_BLOCK_HEIGHT,
    METHOD_GET_FEE_FOR_MESSAGE,
    METHOD_GET_TOKEN_ACCOUNT_BALANCE,
    METHOD_GET_TOKEN_ACCOUNTS_BY_OWNER,
)


logger = logging.getLogger(__name__)


class RpcError(Exception):
    """Base exception for RPC client errors."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RpcResponseError(RpcError):
    """The node answered with a JSON-RPC error object."""

    pass


class SolanaRpcClient:
    """
    Async Solana JSON-RPC client.

    Timeouts are owned here; every transport, timeout or protocol failure
    is raised as RpcError.
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = DEFAULT_COMMITMENT,
        timeout_seconds: float = DEFAULT_RPC_TIMEOUT_SECONDS,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        """
        Initialize the RPC client.

        Args:
            rpc_url: JSON-RPC endpoint.
            commitment: Commitment level for reads.
            timeout_seconds: Total timeout per call.
            rate_limiter: Optional rate limiter instance.
        """
        self._rpc_url = rpc_url
        self._commitment = commitment
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._rate_limiter = rate_limiter or RateLimiter()
        self._session: aiohttp.ClientSession | None = None
        self._ids = itertools.count(1)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=20,
                keepalive_timeout=30,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=self._timeout,
                headers={"Content-Type": "application/json"},
                json_serialize=lambda x: orjson.dumps(x).decode(),
            )

        return self._session

    async def close(self) -> None:
        """Close the client session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    @asynccontextmanager
    async def _request_context(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Context manager translating transport failures."""
        session = await self._get_session()
        try:
            yield session
        except aiohttp.ClientError as e:
            raise RpcError(f"Network error: {e}") from e
        except asyncio.TimeoutError as e:
            raise RpcError("RPC request timed out") from e

    async def _request(self, method: str, params: list[Any] | None = None) -> Any:
        """
        Make a JSON-RPC call.

        Args:
            method: RPC method name.
            params: Positional parameters.

        Returns:
            The `result` member of the response.

        Raises:
            RpcResponseError: On a JSON-RPC error response.
            RpcError: On network, timeout or parsing errors.
        """
        await self._rate_limiter.acquire()

        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }

        async with self._request_context() as session:
            async with session.post(self._rpc_url, json=payload) as response:
                return await self._handle_response(method, response)

    async def _handle_response(self, method: str, response: aiohttp.ClientResponse) -> Any:
        """Parse and validate response."""
        text = await response.text()

        if response.status >= 400:
            raise RpcError(f"HTTP {response.status} from {method}: {text[:200]}", code=response.status)

        try:
            envelope = RpcResponse.model_validate(orjson.loads(text))
        except orjson.JSONDecodeError as e:
            raise RpcError(f"Invalid JSON response: {e}") from e
        except ValidationError as e:
            raise RpcError(f"Malformed RPC response: {e}") from e

        if envelope.error is not None:
            raise RpcResponseError(
                f"RPC error {envelope.error.code} from {method}: {envelope.error.message}",
                code=envelope.error.code,
            )

        return envelope.result

    def _parse(self, model: type, method: str, result: Any) -> Any:
        try:
            return model.model_validate(result)  # type: ignore[attr-defined]
        except ValidationError as e:
            raise RpcError(f"Unexpected {method} result: {e}") from e

    # =========================================================================
    # Read Methods
    # =========================================================================

    async def get_block_height(self) -> int:
        """Get current block height (connectivity check)."""
        result = await self._request(METHOD_GET_BLOCK_HEIGHT, [{"commitment": self._commitment}])
        return int(result)

    async def get_token_account_balance(self, address: str) -> int:
        """
        Get the raw balance of an SPL token account.

        Args:
            address: Token account address (e.g. a pool vault).

        Returns:
            Raw integer amount.
        """
        result = await self._request(
            METHOD_GET_TOKEN_ACCOUNT_BALANCE,
            [address, {"commitment": self._commitment}],
        )
        parsed: TokenAccountBalance = self._parse(TokenAccountBalance, METHOD_GET_TOKEN_ACCOUNT_BALANCE, result)
        return parsed.value.raw

    async def get_balance(self, owner: str) -> int:
        """
        Get native balance in lamports.

        Args:
            owner: Account address.
        """
        result = await self._request(METHOD_GET_BALANCE, [owner, {"commitment": self._commitment}])
        parsed: Balance = self._parse(Balance, METHOD_GET_BALANCE, result)
        return parsed.value

    async def get_token_balance(self, owner: str, mint: str) -> int:
        """
        Get the raw amount of a mint held across an owner's token accounts.

        Args:
            owner: Wallet address.
            mint: Token mint address.
        """
        result = await self._request(
            METHOD_GET_TOKEN_ACCOUNTS_BY_OWNER,
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": self._commitment}],
        )
        parsed: TokenAccountsByOwner = self._parse(
            TokenAccountsByOwner, METHOD_GET_TOKEN_ACCOUNTS_BY_OWNER, result
        )
        return parsed.total_raw(mint)

    async def get_fee_for_message(self, message: str) -> int | None:
        """
        Get the fee the network would charge for a compiled message.

        Args:
            message: Base64-encoded compiled message.

        Returns:
            Fee in lamports, or None if the blockhash has expired.
        """
        result = await self._request(
            METHOD_GET_FEE_FOR_MESSAGE,
            [message, {"commitment": self._commitment}],
        )
        parsed: FeeForMessage = self._parse(FeeForMessage, METHOD_GET_FEE_FOR_MESSAGE, result)
        return parsed.value

    async def __aenter__(self) -> "SolanaRpcClient":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, *args: object) -> None:
        """Async context manager exit."""
        await self.close()
