"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from decimal import Decimal

import pytest

from triarb.config.pools import ETH, SOL, USDC
from triarb.core.types import Asset, Pool, Route, RouteLeg, WalletContext
from triarb.market.oracle import MarketDataOracle
from tests.mocks.chain import WALLET_PUBLIC_KEY, MockChainClient, MockSwapSubmitter, raw


FEE_RATE = Decimal("0.003")


# =============================================================================
# Asset Fixtures
# =============================================================================


@pytest.fixture
def sol() -> Asset:
    return SOL


@pytest.fixture
def usdc() -> Asset:
    return USDC


@pytest.fixture
def eth() -> Asset:
    return ETH


# =============================================================================
# Pool Fixtures
# =============================================================================


@pytest.fixture
def sol_usdc_pool() -> Pool:
    """SOL/USDC pool, A=SOL B=USDC."""
    return Pool(
        name="SOL_USDC",
        asset_a=SOL,
        asset_b=USDC,
        vault_a="SolUsdcVaultSol1111111111111111111111111111",
        vault_b="SolUsdcVaultUsdc111111111111111111111111111",
        fee_rate=FEE_RATE,
    )


@pytest.fixture
def eth_usdc_pool() -> Pool:
    """ETH/USDC pool, A=ETH B=USDC."""
    return Pool(
        name="ETH_USDC",
        asset_a=ETH,
        asset_b=USDC,
        vault_a="EthUsdcVaultEth1111111111111111111111111111",
        vault_b="EthUsdcVaultUsdc111111111111111111111111111",
        fee_rate=FEE_RATE,
    )


@pytest.fixture
def eth_sol_pool() -> Pool:
    """ETH/SOL pool, A=ETH B=SOL."""
    return Pool(
        name="ETH_SOL",
        asset_a=ETH,
        asset_b=SOL,
        vault_a="EthSolVaultEth11111111111111111111111111111",
        vault_b="EthSolVaultSol11111111111111111111111111111",
        fee_rate=FEE_RATE,
    )


@pytest.fixture
def pools(sol_usdc_pool: Pool, eth_usdc_pool: Pool, eth_sol_pool: Pool) -> list[Pool]:
    return [sol_usdc_pool, eth_usdc_pool, eth_sol_pool]


@pytest.fixture
def route(sol_usdc_pool: Pool, eth_usdc_pool: Pool, eth_sol_pool: Pool) -> Route:
    """SOL -> USDC -> ETH -> SOL cycle."""
    return Route(
        base_asset="SOL",
        legs=(
            RouteLeg(sol_usdc_pool, SOL, USDC),
            RouteLeg(eth_usdc_pool, USDC, ETH),
            RouteLeg(eth_sol_pool, ETH, SOL),
        ),
    )


# =============================================================================
# Chain Fixtures
# =============================================================================


@pytest.fixture
def wallet() -> WalletContext:
    return WalletContext(public_key=WALLET_PUBLIC_KEY)


@pytest.fixture
def mock_chain_client(
    sol_usdc_pool: Pool,
    eth_usdc_pool: Pool,
    eth_sol_pool: Pool,
) -> MockChainClient:
    """
    Chain with a balanced market and 5 SOL in the wallet.

    Spot rates: SOL->USDC 100, USDC->ETH 0.0005, ETH->SOL 20, so the
    cycle loses exactly the pool fees.
    """
    client = MockChainClient(native_balance=raw(SOL, 5))
    client.set_reserves(sol_usdc_pool, raw(SOL, 10_000), raw(USDC, 1_000_000))
    client.set_reserves(eth_usdc_pool, raw(ETH, 1_000), raw(USDC, 2_000_000))
    client.set_reserves(eth_sol_pool, raw(ETH, 1_000), raw(SOL, 20_000))
    return client


@pytest.fixture
def profitable_chain_client(
    mock_chain_client: MockChainClient,
    eth_sol_pool: Pool,
) -> MockChainClient:
    """Same market with ETH->SOL at 21, roughly 4% over the fees."""
    mock_chain_client.set_reserves(eth_sol_pool, raw(ETH, 1_000), raw(SOL, 21_000))
    return mock_chain_client


@pytest.fixture
def oracle(mock_chain_client: MockChainClient, wallet: WalletContext) -> MarketDataOracle:
    return MarketDataOracle(mock_chain_client, wallet)


@pytest.fixture
def mock_submitter() -> MockSwapSubmitter:
    return MockSwapSubmitter()
