"""Balancer error classes.

Each error carries a ``code`` matching the reason string the contracts (or
the pool simulators) revert with, so callers can branch on a stable value
instead of on message text. Fixed-point and LogExp errors share the same
BalancerError root.
"""

from balancer_math.errors import BalancerError

# =============================================================================
# Construction-time validation
# =============================================================================


class MinTokensError(BalancerError):
    """Pool has fewer tokens than its type allows."""

    code = "MIN_TOKENS"


class MaxTokensError(BalancerError):
    """Pool has more tokens than its type allows."""

    code = "MAX_TOKENS"


class DuplicateTokenError(BalancerError):
    """Two pool tokens share a symbol or an address."""

    code = "TOKEN_ALREADY_REGISTERED"


class InvalidAddressError(BalancerError):
    """Pool or token address is not 0x plus 40 hex characters."""

    code = "INVALID_ADDRESS"


class MinSwapFeeError(BalancerError):
    """Swap fee below MIN_SWAP_FEE_PERCENTAGE."""

    code = "MIN_SWAP_FEE_PERCENTAGE"


class MaxSwapFeeError(BalancerError):
    """Swap fee above MAX_SWAP_FEE_PERCENTAGE."""

    code = "MAX_SWAP_FEE_PERCENTAGE"


class MinWeightError(BalancerError):
    """Error 302: a normalized weight is below MIN_WEIGHT."""

    code = "MIN_WEIGHT"


class NormalizedWeightInvariantError(BalancerError):
    """Error 303: normalized weights do not add up to one."""

    code = "NORMALIZED_WEIGHT_INVARIANT"


class MinAmpError(BalancerError):
    """Error 300: amplification parameter below PoolLimits.min_amp."""

    code = "MIN_AMP"


class MaxAmpError(BalancerError):
    """Error 301: amplification parameter above PoolLimits.max_amp."""

    code = "MAX_AMP"


class LowerGreaterThanUpperTargetError(BalancerError):
    """Linear pool lower target above upper target."""

    code = "LOWER_GREATER_THAN_UPPER_TARGET"


class UpperTargetTooHighError(BalancerError):
    """Linear pool upper target above the maximum token balance."""

    code = "UPPER_TARGET_TOO_HIGH"


class InvalidDecimalError(BalancerError):
    """Amount is not a non-negative decimal string."""

    code = "INVALID_DECIMAL"


class UnsupportedPoolTypeError(BalancerError):
    """Construction input names a pool type with no simulator."""

    code = "UNSUPPORTED_POOL_TYPE"


class MissingPoolParameterError(BalancerError):
    """Construction input lacks a field its pool type requires."""

    code = "MISSING_POOL_PARAMETER"


# =============================================================================
# Per-operation errors
# =============================================================================


class UnknownTokenError(BalancerError):
    """Token is not part of the pool."""

    code = "INVALID_TOKEN"


class SameTokenError(BalancerError):
    """Error 509: token in and token out are the same."""

    code = "CANNOT_SWAP_SAME_TOKEN"


class SwapLimitError(BalancerError):
    """Error 507: computed swap amount violates the caller's limit."""

    code = "SWAP_LIMIT"


class BptLimitError(BalancerError):
    """BPT amount violates the caller's limit (BPT_OUT_MIN_AMOUNT / BPT_IN_MAX_AMOUNT)."""

    code = "BPT_LIMIT"


class InvalidAmountsError(BalancerError):
    """Amounts do not cover every pool token exactly once."""

    code = "INPUT_LENGTH_MISMATCH"


class BptInExceedsSupplyError(BalancerError):
    """BPT in is larger than the BPT total supply."""

    code = "BPT_IN_EXCEEDS_SUPPLY"


class InsufficientBalanceError(BalancerError):
    """Operation would take more of a token than the pool holds."""

    code = "INSUFFICIENT_BALANCE"


class UnsupportedOperationError(BalancerError):
    """Operation is not available for this pool type."""

    code = "UNHANDLED_BY_POOL"


class MaxInRatioError(BalancerError):
    """Error 304: Input amount exceeds 30% of balance_in."""

    code = "MAX_IN_RATIO"


class MaxOutRatioError(BalancerError):
    """Error 305: Output amount exceeds 30% of balance_out."""

    code = "MAX_OUT_RATIO"


class MaxOutBptForTokenInError(BalancerError):
    """Error 307: join would grow the invariant more than MAX_INVARIANT_RATIO."""

    code = "MAX_OUT_BPT_FOR_TOKEN_IN"


class MinBptInForTokenOutError(BalancerError):
    """Error 306: exit would shrink the invariant below MIN_INVARIANT_RATIO."""

    code = "MIN_BPT_IN_FOR_TOKEN_OUT"


class ZeroInvariantError(BalancerError):
    """Error 311: weighted invariant is zero."""

    code = "ZERO_INVARIANT"


# =============================================================================
# Numerical convergence
# =============================================================================


class StableInvariantDidNotConverge(BalancerError):
    """Newton-Raphson iteration for stable invariant D did not converge."""

    code = "STABLE_INVARIANT_DIDNT_CONVERGE"


class StableGetBalanceDidNotConverge(BalancerError):
    """Newton-Raphson iteration for stable balance Y did not converge."""

    code = "STABLE_GET_BALANCE_DIDNT_CONVERGE"


# =============================================================================
# Scaling and fee helpers
# =============================================================================


class InvalidFeeError(BalancerError):
    """Swap fee must be in range [0, 1)."""

    code = "INVALID_FEE"


class InvalidScalingFactorError(BalancerError):
    """Token decimals must be in range [0, 18]."""

    code = "INVALID_SCALING_FACTOR"
