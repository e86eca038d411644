"""Balancer Fixed Point (Bfp) math library.

18-decimal fixed-point arithmetic matching Balancer's FixedPoint.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/6c9e24e22d0c46cca6dd15861d3d33da61a60b98/pkg/solidity-utils/contracts/math/FixedPoint.sol

All values are stored as integers scaled by 10^18. Every multiplication and
division names its rounding direction; nothing rounds to nearest.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, localcontext
from typing import ClassVar

from balancer_math.safe_int import (
    DivisionByZero,
    checked_add,
    checked_mul,
    checked_sub,
)

from .log_exp import ONE_18, pow_raw

__all__ = [
    "Bfp",
    "ZERO",
    "ONE",
    "ONE_18",
    "MAX_POW_RELATIVE_ERROR",
    "MIN_POW_BASE_FREE_EXPONENT",
]

# 10^-14 relative error bound on LogExpMath.pow
MAX_POW_RELATIVE_ERROR = 10000

# Smallest base for which pow() works with any exponent
MIN_POW_BASE_FREE_EXPONENT = 7 * 10**17

# Enough digits for any uint256 with 18 decimals
_DECIMAL_PRECISION = 100


class Bfp:
    """18-decimal fixed-point number stored as int.

    Example: 1.5 is stored as 1_500_000_000_000_000_000

    Operations are checked like the contract: subtraction below zero raises
    Underflow, results beyond uint256 raise Uint256Overflow, and division by
    zero raises DivisionByZero.
    """

    ONE: ClassVar[int] = ONE_18

    __slots__ = ("value",)
    __hash__ = None  # type: ignore[assignment]  # Unhashable since we define __eq__

    def __init__(self, value: int) -> None:
        """Create Bfp from raw scaled value."""
        self.value = value

    @classmethod
    def from_wei(cls, wei: int) -> Bfp:
        """Create from raw wei value (already scaled to 18 decimals)."""
        return cls(wei)

    @classmethod
    def from_int(cls, i: int) -> Bfp:
        """Create from integer (will be scaled by 10^18)."""
        return cls(i * cls.ONE)

    @classmethod
    def from_decimal(cls, d: Decimal | str) -> Bfp:
        """Create from a decimal, truncating digits beyond the 18th.

        Requires non-negative input (matches Solidity unsigned semantics).
        """
        d = Decimal(d)
        if not d.is_finite() or d < 0:
            raise ValueError(f"Bfp.from_decimal requires non-negative input, got {d}")
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            scaled = (d * cls.ONE).to_integral_value(rounding=ROUND_DOWN)
        return cls(int(scaled))

    def to_decimal(self) -> Decimal:
        """Convert to Decimal for display."""
        with localcontext() as ctx:
            ctx.prec = _DECIMAL_PRECISION
            return Decimal(self.value) / Decimal(self.ONE)

    def add(self, other: Bfp) -> Bfp:
        """Add two Bfp values."""
        return Bfp(checked_add(self.value, other.value))

    def sub(self, other: Bfp) -> Bfp:
        """Subtract other from self; raises Underflow if other > self."""
        return Bfp(checked_sub(self.value, other.value))

    def mul_down(self, other: Bfp) -> Bfp:
        """Multiply with floor rounding: (a * b) // 10^18"""
        return Bfp(checked_mul(self.value, other.value) // self.ONE)

    def mul_up(self, other: Bfp) -> Bfp:
        """Multiply with ceiling rounding: (a * b - 1) // 10^18 + 1"""
        product = checked_mul(self.value, other.value)
        if product == 0:
            return Bfp(0)
        return Bfp((product - 1) // self.ONE + 1)

    def div_down(self, other: Bfp) -> Bfp:
        """Divide with floor rounding: (a * 10^18) // b"""
        if other.value == 0:
            raise DivisionByZero("Bfp division by zero")
        if self.value == 0:
            return Bfp(0)
        return Bfp(checked_mul(self.value, self.ONE) // other.value)

    def div_up(self, other: Bfp) -> Bfp:
        """Divide with ceiling rounding: (a * 10^18 - 1) // b + 1"""
        if other.value == 0:
            raise DivisionByZero("Bfp division by zero")
        if self.value == 0:
            return Bfp(0)
        return Bfp((checked_mul(self.value, self.ONE) - 1) // other.value + 1)

    def complement(self) -> Bfp:
        """Return 1 - self. Clamps to 0 if self > 1."""
        return Bfp(max(0, self.ONE - self.value))

    def _max_pow_error(self, raw: int) -> int:
        return Bfp(raw).mul_up(Bfp(MAX_POW_RELATIVE_ERROR)).value + 1

    def pow_down(self, exp: Bfp) -> Bfp:
        """self^exp, rounded down by the maximum LogExp error."""
        raw = pow_raw(self.value, exp.value)
        max_error = self._max_pow_error(raw)
        if raw < max_error:
            return Bfp(0)
        return Bfp(raw - max_error)

    def pow_up(self, exp: Bfp) -> Bfp:
        """self^exp, rounded up by the maximum LogExp error."""
        raw = pow_raw(self.value, exp.value)
        return Bfp(checked_add(raw, self._max_pow_error(raw)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value == other.value

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value <= other.value

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value > other.value

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Bfp):
            return NotImplemented
        return self.value >= other.value

    def __repr__(self) -> str:
        return f"Bfp({self.value})"

    def __str__(self) -> str:
        return str(self.to_decimal())


ZERO = Bfp(0)
ONE = Bfp(ONE_18)
