"""Protocol bounds enforced when building pools."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PoolLimits:
    """Centralized configuration for pool validation.

    Values are raw 18-decimal fixed-point integers unless noted, matching
    what the contracts store.

    Attributes:
        min_swap_fee: Smallest accepted swap fee (0.0001%)
        max_swap_fee: Largest accepted swap fee (10%)
        min_tokens: Fewest tokens a weighted or stable pool may hold
        max_weighted_tokens: Most tokens a weighted pool may hold
        max_stable_tokens: Most tokens a stable pool may hold
        min_weight: Smallest normalized weight. Weight ratios become exponents
            in the power function, which loses precision past 1:99.
        min_amp: Smallest amplification parameter (unscaled)
        max_amp: Largest amplification parameter (unscaled)
        max_token_balance: Largest representable token balance (2^112 - 1),
            which also caps the linear pool upper target
    """

    min_swap_fee: int = 10**12
    max_swap_fee: int = 10**17

    min_tokens: int = 2
    max_weighted_tokens: int = 8
    max_stable_tokens: int = 5

    min_weight: int = 10**16

    min_amp: int = 1
    max_amp: int = 5000

    max_token_balance: int = 2**112 - 1


# Default configuration instance
DEFAULT_POOL_LIMITS = PoolLimits()
