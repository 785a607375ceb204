"""Mock implementations for testing."""

from tests.mocks.chain import MockChainClient, MockSwapSubmitter


__all__ = [
    "MockChainClient",
    "MockSwapSubmitter",
]
