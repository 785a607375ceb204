"""
Closed registry of supported pools.

Pools are referenced by `PoolName` in configuration and resolved once at
startup into typed `Pool` objects, so nothing downstream looks pools up
by string key.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Final

from triarb.config.constants import (
    DEFAULT_POOL_FEE_RATE,
    NATIVE_SOL_MINT,
    SOL_DECIMALS,
    USDC_MINT,
    WORMHOLE_ETH_MINT,
)
from triarb.core.errors import ConfigurationError
from triarb.core.types import Asset, Pool


SOL: Final[Asset] = Asset(mint=NATIVE_SOL_MINT, symbol="SOL", decimals=SOL_DECIMALS)
USDC: Final[Asset] = Asset(mint=USDC_MINT, symbol="USDC", decimals=6)
ETH: Final[Asset] = Asset(mint=WORMHOLE_ETH_MINT, symbol="ETH", decimals=8)

ASSETS: Final[dict[str, Asset]] = {asset.symbol: asset for asset in (SOL, USDC, ETH)}


class PoolName(str, Enum):
    """Supported pools, named TOKENA_TOKENB."""

    SOL_USDC = "SOL_USDC"
    ETH_USDC = "ETH_USDC"
    ETH_SOL = "ETH_SOL"


@dataclass(slots=True, frozen=True)
class PoolDescriptor:
    """Static description of a pool before its vaults are known."""

    asset_a: Asset
    asset_b: Asset
    fee_rate: Decimal = DEFAULT_POOL_FEE_RATE


POOL_REGISTRY: Final[dict[PoolName, PoolDescriptor]] = {
    PoolName.SOL_USDC: PoolDescriptor(SOL, USDC),
    PoolName.ETH_USDC: PoolDescriptor(ETH, USDC),
    PoolName.ETH_SOL: PoolDescriptor(ETH, SOL),
}


def resolve_pools(
    names: Iterable[PoolName],
    vaults: Mapping[PoolName, tuple[str, str]],
) -> list[Pool]:
    """
    Build typed pools from configured names and vault accounts.

    Args:
        names: Pools to enable, in ranking tie-break order.
        vaults: Token accounts holding reserves A and B for each pool.

    Returns:
        Resolved pools in the order given.

    Raises:
        ConfigurationError: On unknown, duplicated or vault-less pools.
    """
    pools: list[Pool] = []
    seen: set[PoolName] = set()

    for name in names:
        name = PoolName(name)
        if name in seen:
            raise ConfigurationError(f"Pool {name.value} configured twice")
        seen.add(name)

        descriptor = POOL_REGISTRY.get(name)
        if descriptor is None:
            raise ConfigurationError(f"Unknown pool {name.value}")

        pair = vaults.get(name)
        if not pair or len(pair) != 2 or not all(pair):
            raise ConfigurationError(f"Missing vault accounts for pool {name.value}")

        vault_a, vault_b = pair
        pools.append(
            Pool(
                name=name.value,
                asset_a=descriptor.asset_a,
                asset_b=descriptor.asset_b,
                vault_a=vault_a,
                vault_b=vault_b,
                fee_rate=descriptor.fee_rate,
            )
        )

    return pools


def resolve_asset(symbol: str) -> Asset:
    """Look up a supported asset by symbol."""
    try:
        return ASSETS[symbol]
    except KeyError:
        raise ConfigurationError(f"Unsupported asset {symbol}") from None
