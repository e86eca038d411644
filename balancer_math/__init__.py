"""Balancer V2 pool math, replicated off-chain to the wei."""

from balancer_math.errors import BalancerError
from balancer_math.math import Bfp
from balancer_math.pools import (
    LinearPool,
    PoolKind,
    StablePool,
    Token,
    WeightedPool,
    build_pool,
)

__version__ = "0.1.0"
__all__ = [
    "BalancerError",
    "Bfp",
    "WeightedPool",
    "StablePool",
    "LinearPool",
    "PoolKind",
    "Token",
    "build_pool",
    "__version__",
]
