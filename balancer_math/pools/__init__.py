"""Balancer V2 pool simulators and their math.

Pool types supported:
- Weighted (constant weighted product)
- Stable (StableSwap / Curve-style)
- Linear (main/wrapped/BPT with a fee-free target band)

Math modules are imported as modules (``weighted_math``, ``stable_math``,
``linear_math``) since their function names overlap.
"""

from . import linear_math, stable_math, weighted_math

# Pool state
from .base import BPT_DECIMALS, BasePool, PoolKind, QuotablePool, Token

# Configuration
from .config import DEFAULT_POOL_LIMITS, PoolLimits

# Errors
from .errors import (
    BalancerError,
    BptInExceedsSupplyError,
    BptLimitError,
    DuplicateTokenError,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountsError,
    InvalidDecimalError,
    InvalidFeeError,
    InvalidScalingFactorError,
    LowerGreaterThanUpperTargetError,
    MaxAmpError,
    MaxInRatioError,
    MaxOutBptForTokenInError,
    MaxOutRatioError,
    MaxSwapFeeError,
    MaxTokensError,
    MinAmpError,
    MinBptInForTokenOutError,
    MinSwapFeeError,
    MinTokensError,
    MinWeightError,
    MissingPoolParameterError,
    NormalizedWeightInvariantError,
    SameTokenError,
    StableGetBalanceDidNotConverge,
    StableInvariantDidNotConverge,
    SwapLimitError,
    UnknownTokenError,
    UnsupportedOperationError,
    UnsupportedPoolTypeError,
    UpperTargetTooHighError,
    ZeroInvariantError,
)

# Pool simulators
from .linear import LinearPool
from .linear_math import LinearParams

# Construction input
from .parsing import PoolData, TokenData, build_pool

# Scaling helpers
from .scaling import (
    add_swap_fee_amount,
    format_units,
    parse_units,
    scale_down_down,
    scale_down_up,
    scale_up,
    scaling_factor,
    subtract_swap_fee_amount,
)
from .stable import StablePool
from .weighted import WeightedPool

__all__ = [
    # Pool simulators
    "WeightedPool",
    "StablePool",
    "LinearPool",
    "BasePool",
    "QuotablePool",
    "PoolKind",
    "Token",
    "BPT_DECIMALS",
    # Construction input
    "PoolData",
    "TokenData",
    "build_pool",
    # Configuration
    "PoolLimits",
    "DEFAULT_POOL_LIMITS",
    # Math modules
    "weighted_math",
    "stable_math",
    "linear_math",
    "LinearParams",
    # Scaling helpers
    "parse_units",
    "format_units",
    "scaling_factor",
    "scale_up",
    "scale_down_down",
    "scale_down_up",
    "add_swap_fee_amount",
    "subtract_swap_fee_amount",
    # Errors
    "BalancerError",
    "MinTokensError",
    "MaxTokensError",
    "DuplicateTokenError",
    "InvalidAddressError",
    "MinSwapFeeError",
    "MaxSwapFeeError",
    "MinWeightError",
    "NormalizedWeightInvariantError",
    "MinAmpError",
    "MaxAmpError",
    "LowerGreaterThanUpperTargetError",
    "UpperTargetTooHighError",
    "InvalidDecimalError",
    "UnsupportedPoolTypeError",
    "MissingPoolParameterError",
    "UnknownTokenError",
    "SameTokenError",
    "SwapLimitError",
    "BptLimitError",
    "InvalidAmountsError",
    "BptInExceedsSupplyError",
    "InsufficientBalanceError",
    "UnsupportedOperationError",
    "MaxInRatioError",
    "MaxOutRatioError",
    "MaxOutBptForTokenInError",
    "MinBptInForTokenOutError",
    "ZeroInvariantError",
    "StableInvariantDidNotConverge",
    "StableGetBalanceDidNotConverge",
    "InvalidFeeError",
    "InvalidScalingFactorError",
]
