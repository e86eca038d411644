"""Checked uint256 integer arithmetic.

SafeInt mirrors the semantics of Balancer's Math.sol: every operation
reverts where the contract would, instead of silently producing a value the
contract could never return.

- Addition/multiplication beyond 2^256 - 1 raise Uint256Overflow
- Subtraction below zero raises Underflow
- Division by zero raises DivisionByZero

Usage pattern:
    from balancer_math.safe_int import S

    def calc(a: int, b: int, c: int) -> int:
        sa, sb, sc = S(a), S(b), S(c)
        return (sa * sb).div_up(sc).value
"""

from __future__ import annotations

from balancer_math.errors import BalancerError

UINT256_MAX = 2**256 - 1


class SafeIntError(BalancerError, ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    code = "MATH"


class Uint256Overflow(SafeIntError):
    """Result exceeds uint256 maximum."""

    code = "UINT256_OVERFLOW"


class AddOverflow(Uint256Overflow):
    """Error 000: addition overflow."""

    code = "ADD_OVERFLOW"


class MulOverflow(Uint256Overflow):
    """Error 003: multiplication overflow."""

    code = "MUL_OVERFLOW"


class Underflow(SafeIntError):
    """Error 001: subtraction would produce a negative result."""

    code = "SUB_OVERFLOW"


class DivisionByZero(SafeIntError):
    """Error 004: division by zero."""

    code = "ZERO_DIVISION"


def checked_add(a: int, b: int) -> int:
    result = a + b
    if result > UINT256_MAX:
        raise AddOverflow(f"Overflow: {a} + {b} exceeds uint256")
    return result


def checked_sub(a: int, b: int) -> int:
    result = a - b
    if result < 0:
        raise Underflow(f"Underflow: {a} - {b} = {result}")
    return result


def checked_mul(a: int, b: int) -> int:
    result = a * b
    if result > UINT256_MAX:
        raise MulOverflow(f"Overflow: {a} * {b} exceeds uint256")
    return result


def div_down(a: int, b: int) -> int:
    if b == 0:
        raise DivisionByZero(f"Division by zero: {a} // 0")
    return a // b


def div_up(a: int, b: int) -> int:
    """Ceiling division, written as 1 + (a - 1) / b so it cannot overflow."""
    if b == 0:
        raise DivisionByZero(f"Division by zero: {a} // 0")
    if a == 0:
        return 0
    return 1 + (a - 1) // b


class SafeInt:
    """Non-negative integer with uint256-checked arithmetic operators.

    The Newton-Raphson solvers in StableMath work on raw integers rather
    than fixed-point values; SafeInt keeps that arithmetic readable while
    preserving the contract's revert conditions.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(checked_add(self._value, _extract_value(other)))

    def __radd__(self, other: int) -> SafeInt:
        return SafeInt(checked_add(other, self._value))

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        return SafeInt(checked_sub(self._value, _extract_value(other)))

    def __rsub__(self, other: int) -> SafeInt:
        return SafeInt(checked_sub(other, self._value))

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(checked_mul(self._value, _extract_value(other)))

    def __rmul__(self, other: int) -> SafeInt:
        return SafeInt(checked_mul(other, self._value))

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Integer division rounding down.

        Raises:
            DivisionByZero: If other is zero
        """
        return SafeInt(div_down(self._value, _extract_value(other)))

    def div_up(self, other: SafeInt | int) -> SafeInt:
        """Integer division rounding up.

        Raises:
            DivisionByZero: If other is zero
        """
        return SafeInt(div_up(self._value, _extract_value(other)))

    def div(self, other: SafeInt | int, round_up: bool) -> SafeInt:
        """Division in the requested rounding direction."""
        return self.div_up(other) if round_up else self // other

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def abs_diff(self, other: SafeInt | int) -> int:
        """|self - other| as a plain int (never underflows)."""
        return abs(self._value - _extract_value(other))


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


# Convenience alias for concise code
S = SafeInt
