"""Pytest configuration and fixtures."""

import pytest

from balancer_math.pools import LinearPool, StablePool, WeightedPool
from tests.helpers import make_linear_pool, make_stable_pool, make_weighted_pool


@pytest.fixture
def weighted_pool() -> WeightedPool:
    """50/50 WETH/DAI pool holding 1000 WETH and 1500 DAI, 0.3% fee."""
    return make_weighted_pool()


@pytest.fixture
def stable_pool() -> StablePool:
    """Balanced DAI/USDC stable pool with A=100."""
    return make_stable_pool()


@pytest.fixture
def linear_pool() -> LinearPool:
    """DAI/aDAI linear pool with the main balance between the targets."""
    return make_linear_pool()
