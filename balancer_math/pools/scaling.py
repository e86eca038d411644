"""Balancer scaling and fee helpers.

Amounts cross three representations:

- human-scale decimal strings ("1.5"), as handed over by data providers and
  returned to callers;
- raw integer units in the token's own decimals (1_500_000 for 6 decimals),
  which is how the pool stores balances;
- 18-decimal fixed-point (Bfp), the domain of all pool math.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal, InvalidOperation, localcontext

from balancer_math.math.fixed_point import Bfp

from .errors import InvalidDecimalError, InvalidFeeError, InvalidScalingFactorError

MAX_DECIMALS = 18

_DECIMAL_PRECISION = 100


def parse_units(amount: str | Decimal | int, decimals: int) -> int:
    """Convert a human-scale amount to raw token units.

    Digits beyond the token's precision are truncated, since an on-chain
    amount can never carry them.

    Args:
        amount: Non-negative decimal string (or Decimal/int). Floats are
            rejected because they cannot represent most decimal amounts.
        decimals: Token decimals

    Returns:
        Amount in the token's native units

    Raises:
        InvalidDecimalError: If amount is not a finite non-negative decimal
    """
    if isinstance(amount, bool) or not isinstance(amount, (str, Decimal, int)):
        raise InvalidDecimalError(
            f"Amount must be a decimal string, got {type(amount).__name__}"
        )
    try:
        value = Decimal(amount.strip() if isinstance(amount, str) else amount)
    except InvalidOperation as err:
        raise InvalidDecimalError(f"Invalid decimal amount: {amount!r}") from err
    if not value.is_finite() or value < 0:
        raise InvalidDecimalError(f"Amount must be finite and non-negative: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = _DECIMAL_PRECISION
        raw = value.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN)
    return int(raw)


def format_units(raw: int, decimals: int) -> str:
    """Format raw token units as a human-scale decimal string.

    Trailing fractional zeros are stripped and exponent notation is never
    used: ``format_units(1_500_000, 6) == "1.5"``.
    """
    if raw < 0:
        raise InvalidDecimalError(f"Cannot format negative amount {raw}")
    if decimals == 0:
        return str(raw)
    whole, fraction = divmod(raw, 10**decimals)
    fraction_str = f"{fraction:0{decimals}d}".rstrip("0")
    if not fraction_str:
        return str(whole)
    return f"{whole}.{fraction_str}"


def scaling_factor(decimals: int) -> int:
    """Factor that brings a token with ``decimals`` to 18 decimals.

    Raises:
        InvalidScalingFactorError: If decimals is outside [0, 18]
    """
    if not 0 <= decimals <= MAX_DECIMALS:
        raise InvalidScalingFactorError(
            f"Token decimals must be in [0, {MAX_DECIMALS}], got {decimals}"
        )
    return 10 ** (MAX_DECIMALS - decimals)


def scale_up(amount: int, factor: int) -> Bfp:
    """Scale token amount to 18 decimals for internal math.

    Args:
        amount: Amount in token's native decimals
        factor: Factor to scale by (e.g., 10^12 for 6-decimal tokens)

    Raises:
        InvalidScalingFactorError: If factor <= 0
    """
    if factor <= 0:
        raise InvalidScalingFactorError(f"Scaling factor must be positive, got {factor}")
    return Bfp.from_wei(amount * factor)


def scale_down_down(bfp: Bfp, factor: int) -> int:
    """Scale 18-decimal result back to token decimals, rounding down.

    Raises:
        InvalidScalingFactorError: If factor <= 0
    """
    if factor <= 0:
        raise InvalidScalingFactorError(f"Scaling factor must be positive, got {factor}")
    return bfp.value // factor


def scale_down_up(bfp: Bfp, factor: int) -> int:
    """Scale 18-decimal result back to token decimals, rounding up.

    Raises:
        InvalidScalingFactorError: If factor <= 0
    """
    if factor <= 0:
        raise InvalidScalingFactorError(f"Scaling factor must be positive, got {factor}")
    if bfp.value == 0:
        return 0
    return (bfp.value - 1) // factor + 1


def _check_fee(swap_fee: Bfp) -> None:
    if swap_fee.value < 0 or swap_fee.value >= Bfp.ONE:
        raise InvalidFeeError(f"Swap fee must be in range [0, 1), got {swap_fee}")


def subtract_swap_fee_amount(amount: Bfp, swap_fee: Bfp) -> Bfp:
    """Subtract swap fee from an input amount.

    Used for given-in swaps: the fee is deducted before the curve. The fee
    amount is rounded up, so the pool keeps the rounding error.

    Raises:
        InvalidFeeError: If swap_fee is not in range [0, 1)
    """
    _check_fee(swap_fee)
    fee_amount = amount.mul_up(swap_fee)
    return amount.sub(fee_amount)


def add_swap_fee_amount(amount: Bfp, swap_fee: Bfp) -> Bfp:
    """Add swap fee to a computed input amount.

    Used for given-out swaps: the curve gives the fee-free input, which is
    grossed up as amount / (1 - fee), rounding up.

    Raises:
        InvalidFeeError: If swap_fee is not in range [0, 1)
    """
    _check_fee(swap_fee)
    return amount.div_up(swap_fee.complement())
