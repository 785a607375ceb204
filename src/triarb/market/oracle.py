"""
Market data oracle.

Reads live pool reserves, wallet balances and network fee estimates
through the chain client. Nothing is cached: every call re-queries the
chain, and any failed or empty read surfaces as DataUnavailable.
"""

import asyncio
import logging
from collections.abc import Sequence
from decimal import Decimal

from triarb.chain.client import RpcError
from triarb.config.constants import LAMPORTS_PER_SOL, NATIVE_SOL_MINT, SIGNATURE_FEE_LAMPORTS
from triarb.core.errors import DataUnavailable
from triarb.core.types import Asset, ChainClient, Pool, PoolReserves, TransactionDraft, WalletContext


logger = logging.getLogger(__name__)


class MarketDataOracle:
    """
    Live reads of on-chain state.

    The two vault reads of a pool are issued concurrently; they are not
    read atomically, which is accepted since both land within the same
    evaluation pass.
    """

    def __init__(self, client: ChainClient, wallet: WalletContext) -> None:
        """
        Initialize oracle.

        Args:
            client: Chain RPC client, shared read-only.
            wallet: Wallet whose balances are read.
        """
        self._client = client
        self._wallet = wallet

    async def fetch_reserves(self, pool: Pool) -> PoolReserves:
        """
        Fetch raw reserves of both pool vaults.

        Raises:
            DataUnavailable: If either read fails or returns nothing.
        """
        reserve_a, reserve_b = await asyncio.gather(
            self._read_vault(pool, pool.vault_a),
            self._read_vault(pool, pool.vault_b),
        )
        logger.debug(f"Reserves {pool.name}: A={reserve_a} B={reserve_b}")
        return PoolReserves(pool=pool, reserve_a=reserve_a, reserve_b=reserve_b)

    async def fetch_all_reserves(self, pools: Sequence[Pool]) -> dict[Pool, PoolReserves]:
        """Fetch reserves for several pools concurrently."""
        snapshots = await asyncio.gather(*(self.fetch_reserves(pool) for pool in pools))
        return {snapshot.pool: snapshot for snapshot in snapshots}

    async def _read_vault(self, pool: Pool, vault: str) -> int:
        try:
            amount = await self._client.get_token_account_balance(vault)
        except RpcError as e:
            raise DataUnavailable(f"Reserve read failed for {pool.name} vault {vault}: {e}") from e

        if amount is None:
            raise DataUnavailable(f"No balance returned for {pool.name} vault {vault}")
        return int(amount)

    async def get_wallet_balance(self, asset: Asset) -> Decimal:
        """
        Get the wallet's current balance of an asset in display units.

        Native SOL is read from the account itself, SPL assets from the
        owner's token accounts.
        """
        owner = self._wallet.public_key
        try:
            if asset.mint == NATIVE_SOL_MINT:
                raw = await self._client.get_balance(owner)
            else:
                raw = await self._client.get_token_balance(owner, asset.mint)
        except RpcError as e:
            raise DataUnavailable(f"Balance read failed for {asset.symbol}: {e}") from e

        if raw is None:
            raise DataUnavailable(f"No {asset.symbol} balance returned for {owner}")
        return asset.to_ui(int(raw))

    async def estimate_network_fee(self, draft: TransactionDraft) -> Decimal:
        """
        Estimate the network fee of one swap transaction in SOL.

        Falls back to the per-signature base fee when the draft carries no
        compiled message or the node cannot price it (expired blockhash).
        """
        lamports: int | None = None

        if draft.message is not None:
            try:
                lamports = await self._client.get_fee_for_message(draft.message)
            except RpcError as e:
                raise DataUnavailable(f"Fee estimate failed for {draft.pool.name}: {e}") from e

            if lamports is None:
                logger.warning("Unable to calculate the fee, blockhash might be invalid")

        if lamports is None:
            lamports = SIGNATURE_FEE_LAMPORTS

        fee = Decimal(lamports) / Decimal(LAMPORTS_PER_SOL)
        logger.debug(f"Transaction fee: {fee} SOL")
        return fee
