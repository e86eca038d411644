"""Exponentiation and logarithm with 18-decimal fixed-point inputs.

Port of Balancer's LogExpMath.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/6c9e24e22d0c46cca6dd15861d3d33da61a60b98/pkg/solidity-utils/contracts/math/LogExpMath.sol

Results match the contract to the wei, including its truncation toward zero
on signed division. Python's ``//`` floors, so every division that can see a
negative operand goes through ``_div_trunc``.
"""

from __future__ import annotations

from balancer_math.errors import BalancerError

__all__ = [
    # Errors
    "LogExpMathError",
    "XOutOfBounds",
    "YOutOfBounds",
    "ProductOutOfBounds",
    "InvalidExponent",
    "OutOfBounds",
    "InvalidLogBase",
    # Functions
    "exp",
    "ln",
    "log",
    "pow_raw",
    # Constants
    "ONE_18",
    "ONE_20",
    "ONE_36",
    "MAX_NATURAL_EXPONENT",
    "MIN_NATURAL_EXPONENT",
]

ONE_18 = 10**18
ONE_20 = 10**20
ONE_36 = 10**36

MAX_NATURAL_EXPONENT = 130 * ONE_18
MIN_NATURAL_EXPONENT = -41 * ONE_18

# ln(x) is computed with 36 decimals when x is in (0.9, 1.1)
LN_36_LOWER_BOUND = ONE_18 - 10**17
LN_36_UPPER_BOUND = ONE_18 + 10**17

MILD_EXPONENT_BOUND = (1 << 254) // ONE_20

# x_n are powers of two, a_n = e^x_n. The first two are stored with 18
# decimals, the rest with 20.
X_18 = (128 * ONE_18, 64 * ONE_18)
A_18 = (
    38877084059945950922200000000000000000000000000000000000,  # e^128
    6235149080811616882910000000,  # e^64
)

X_20 = (
    3_200_000_000_000_000_000_000,  # 2^5
    1_600_000_000_000_000_000_000,  # 2^4
    800_000_000_000_000_000_000,  # 2^3
    400_000_000_000_000_000_000,  # 2^2
    200_000_000_000_000_000_000,  # 2^1
    100_000_000_000_000_000_000,  # 2^0
    50_000_000_000_000_000_000,  # 2^-1
    25_000_000_000_000_000_000,  # 2^-2
    12_500_000_000_000_000_000,  # 2^-3
    6_250_000_000_000_000_000,  # 2^-4
)
A_20 = (
    7_896_296_018_268_069_516_100_000_000_000_000,  # e^32
    888_611_052_050_787_263_676_000_000,  # e^16
    298_095_798_704_172_827_474_000,  # e^8
    5_459_815_003_314_423_907_810,  # e^4
    738_905_609_893_065_022_723,  # e^2
    271_828_182_845_904_523_536,  # e^1
    164_872_127_070_012_814_685,  # e^0.5
    128_402_541_668_774_148_407,  # e^0.25
    113_314_845_306_682_631_683,  # e^0.125
    106_449_445_891_785_942_956,  # e^0.0625
)


class LogExpMathError(BalancerError, ArithmeticError):
    """Base error for LogExpMath operations."""

    code = "LOG_EXP_MATH"


class XOutOfBounds(LogExpMathError):
    """Error 006: base does not fit in a signed 256-bit integer."""

    code = "X_OUT_OF_BOUNDS"


class YOutOfBounds(LogExpMathError):
    """Error 007: exponent is above MILD_EXPONENT_BOUND."""

    code = "Y_OUT_OF_BOUNDS"


class ProductOutOfBounds(LogExpMathError):
    """Error 008: y * ln(x) falls outside the domain of exp."""

    code = "PRODUCT_OUT_OF_BOUNDS"


class InvalidExponent(LogExpMathError):
    """Error 009: exp argument outside [-41, 130]."""

    code = "INVALID_EXPONENT"


class OutOfBounds(LogExpMathError):
    """Error 100: logarithm of a non-positive number."""

    code = "OUT_OF_BOUNDS"


class InvalidLogBase(LogExpMathError):
    """Logarithm base of exactly one, whose natural log is zero."""

    code = "INVALID_LOG_BASE"


def _div_trunc(a: int, b: int) -> int:
    """Integer division truncating toward zero, as Solidity does.

    ``-7 // 3 == -3`` in Python, while Solidity yields ``-2``.
    """
    if b == 0:
        raise ZeroDivisionError("Division by zero in _div_trunc")
    if (a >= 0) == (b >= 0):
        return a // b
    return -(abs(a) // abs(b))


def _ln(a: int) -> int:
    """Natural logarithm with 18 decimals, for a > 0.

    Removes large powers of e by digit extraction and finishes with the
    arctanh series ln(a) = 2 * (z + z^3/3 + z^5/5 + ...), z = (a-1)/(a+1).
    """
    if a < ONE_18:
        # ln(a) = -ln(1/a); every value below is positive from here on
        return -_ln((ONE_18 * ONE_18) // a)

    total = 0
    for x_n, a_n in zip(X_18, A_18):
        if a >= a_n * ONE_18:
            a //= a_n
            total += x_n

    # Switch to 20 decimals for the remaining terms
    total *= 100
    a *= 100

    for x_n, a_n in zip(X_20, A_20):
        if a >= a_n:
            a = (a * ONE_20) // a_n
            total += x_n

    z = ((a - ONE_20) * ONE_20) // (a + ONE_20)
    z_squared = (z * z) // ONE_20

    num = z
    series_sum = num
    for i in range(3, 12, 2):
        num = (num * z_squared) // ONE_20
        series_sum += num // i

    series_sum *= 2

    return (total + series_sum) // 100


def _ln_36(x: int) -> int:
    """Natural logarithm with 36 decimals, for x close to one."""
    x *= ONE_18

    # z is negative for x < 1
    z = _div_trunc((x - ONE_36) * ONE_36, x + ONE_36)
    z_squared = _div_trunc(z * z, ONE_36)

    num = z
    series_sum = num
    for i in range(3, 16, 2):
        num = _div_trunc(num * z_squared, ONE_36)
        series_sum += _div_trunc(num, i)

    return series_sum * 2


def exp(x: int) -> int:
    """Natural exponentiation e^x with 18 decimals.

    Raises:
        InvalidExponent: If x is outside [MIN_NATURAL_EXPONENT, MAX_NATURAL_EXPONENT]
    """
    if not (MIN_NATURAL_EXPONENT <= x <= MAX_NATURAL_EXPONENT):
        raise InvalidExponent(f"Exponent {x} outside valid range")

    if x < 0:
        return (ONE_18 * ONE_18) // exp(-x)

    if x >= X_18[0]:
        x -= X_18[0]
        first_an = A_18[0]
    elif x >= X_18[1]:
        x -= X_18[1]
        first_an = A_18[1]
    else:
        first_an = 1

    x *= 100

    # Only x_2 .. x_9 are needed here: what remains is below 2^-3 and the
    # Taylor series converges fast enough from there
    product = ONE_20
    for x_n, a_n in zip(X_20[:8], A_20[:8]):
        if x >= x_n:
            x -= x_n
            product = (product * a_n) // ONE_20

    series_sum = ONE_20
    term = x
    series_sum += term
    for i in range(2, 13):
        term = ((term * x) // ONE_20) // i
        series_sum += term

    return (((product * series_sum) // ONE_20) * first_an) // 100


def ln(a: int) -> int:
    """Natural logarithm of a positive 18-decimal value.

    Raises:
        OutOfBounds: If a <= 0
    """
    if a <= 0:
        raise OutOfBounds(f"Logarithm argument {a} must be positive")
    if LN_36_LOWER_BOUND < a < LN_36_UPPER_BOUND:
        return _div_trunc(_ln_36(a), ONE_18)
    return _ln(a)


def log(arg: int, base: int) -> int:
    """Logarithm of ``arg`` in ``base``, both 18-decimal values.

    Raises:
        OutOfBounds: If either argument is non-positive
        InvalidLogBase: If base is exactly one
    """
    if arg <= 0 or base <= 0:
        raise OutOfBounds(f"Logarithm arguments must be positive, got {arg} and {base}")

    if LN_36_LOWER_BOUND < base < LN_36_UPPER_BOUND:
        log_base = _ln_36(base)
    else:
        log_base = _ln(base) * ONE_18
    if log_base == 0:
        raise InvalidLogBase("Logarithm base must not be one")

    if LN_36_LOWER_BOUND < arg < LN_36_UPPER_BOUND:
        log_arg = _ln_36(arg)
    else:
        log_arg = _ln(arg) * ONE_18

    return _div_trunc(log_arg * ONE_18, log_base)


def pow_raw(x: int, y: int) -> int:
    """x^y for non-negative 18-decimal x and y, computed as exp(y * ln(x)).

    The result carries the approximation error of LogExpMath; callers that
    need a guaranteed bound go through ``Bfp.pow_up`` / ``Bfp.pow_down``.

    Raises:
        XOutOfBounds: If x does not fit in a signed 256-bit integer
        YOutOfBounds: If y >= MILD_EXPONENT_BOUND
        ProductOutOfBounds: If y * ln(x) is outside the domain of exp
    """
    if y == 0:
        return ONE_18
    if x == 0:
        return 0

    if x >= (1 << 255):
        raise XOutOfBounds(f"Base {x} too large")
    if y >= MILD_EXPONENT_BOUND:
        raise YOutOfBounds(f"Exponent {y} exceeds bound")

    if LN_36_LOWER_BOUND < x < LN_36_UPPER_BOUND:
        ln_36_x = _ln_36(x)
        # Split to keep precision: (ln_36_x / ONE_18) * y + (ln_36_x % ONE_18) * y / ONE_18
        quotient = _div_trunc(ln_36_x, ONE_18)
        remainder = ln_36_x - quotient * ONE_18
        logx_times_y = quotient * y + _div_trunc(remainder * y, ONE_18)
    else:
        logx_times_y = _ln(x) * y

    logx_times_y = _div_trunc(logx_times_y, ONE_18)

    if not (MIN_NATURAL_EXPONENT <= logx_times_y <= MAX_NATURAL_EXPONENT):
        raise ProductOutOfBounds(f"Product {logx_times_y} outside valid range")

    return exp(logx_times_y)
