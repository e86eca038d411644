"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token addresses and pool identifiers
- factories: Pool and pool-payload factory functions
"""

from tests.helpers.constants import (
    ADAI,
    DAI,
    POOL_ADDRESS,
    POOL_ID,
    TOKEN_DECIMALS,
    USDC,
    USDT,
    WBTC,
    WETH,
)
from tests.helpers.factories import (
    make_linear_pool,
    make_pool_data,
    make_stable_pool,
    make_token,
    make_weighted_pool,
)

__all__ = [
    # Constants
    "WETH",
    "USDC",
    "DAI",
    "USDT",
    "WBTC",
    "ADAI",
    "POOL_ADDRESS",
    "POOL_ID",
    "TOKEN_DECIMALS",
    # Factories
    "make_token",
    "make_weighted_pool",
    "make_stable_pool",
    "make_linear_pool",
    "make_pool_data",
]
