"""
Pydantic models for Solana JSON-RPC responses.

These models provide type-safe parsing of node responses
with automatic validation.
"""

from typing import Any

from pydantic import BaseModel, Field


class RpcErrorBody(BaseModel):
    """JSON-RPC error object."""

    code: int
    message: str
    data: Any | None = None


class RpcResponse(BaseModel):
    """JSON-RPC 2.0 response envelope."""

    jsonrpc: str = "2.0"
    id: int | str | None = None
    result: Any | None = None
    error: RpcErrorBody | None = None


class RpcContext(BaseModel):
    """Slot at which a read was served."""

    slot: int

    model_config = {"extra": "ignore"}


class TokenAmount(BaseModel):
    """SPL token amount as returned by the node."""

    amount: str
    decimals: int
    ui_amount_string: str | None = Field(default=None, alias="uiAmountString")

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def raw(self) -> int:
        """Get raw integer amount."""
        return int(self.amount)


class TokenAccountBalance(BaseModel):
    """getTokenAccountBalance result."""

    context: RpcContext
    value: TokenAmount


class Balance(BaseModel):
    """getBalance result, in lamports."""

    context: RpcContext
    value: int


class FeeForMessage(BaseModel):
    """getFeeForMessage result; value is null for an expired blockhash."""

    context: RpcContext
    value: int | None = None


class TokenAccountInfo(BaseModel):
    """Parsed SPL token account state."""

    mint: str
    owner: str
    token_amount: TokenAmount = Field(alias="tokenAmount")

    model_config = {"populate_by_name": True, "extra": "ignore"}


class ParsedTokenAccount(BaseModel):
    info: TokenAccountInfo
    type: str

    model_config = {"extra": "ignore"}


class ParsedAccountData(BaseModel):
    program: str
    parsed: ParsedTokenAccount

    model_config = {"extra": "ignore"}


class AccountData(BaseModel):
    data: ParsedAccountData
    lamports: int
    owner: str

    model_config = {"extra": "ignore"}


class KeyedAccount(BaseModel):
    pubkey: str
    account: AccountData


class TokenAccountsByOwner(BaseModel):
    """getTokenAccountsByOwner result with jsonParsed encoding."""

    context: RpcContext
    value: list[KeyedAccount] = Field(default_factory=list)

    def total_raw(self, mint: str) -> int:
        """Sum raw balances across the owner's accounts for a mint."""
        return sum(
            keyed.account.data.parsed.info.token_amount.raw
            for keyed in self.value
            if keyed.account.data.parsed.info.mint == mint
        )
