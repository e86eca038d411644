"""Balancer weighted pool math.

Port of WeightedMath.sol:
https://github.com/balancer-labs/balancer-core-v2/blob/70843e6a61ad11208c1cfabf5cfe15be216ca8d3/pkg/pool-weighted/contracts/WeightedMath.sol

All amounts, balances and weights are 18-decimal Bfp values. Each formula
rounds so that the pool never loses value: amounts out and BPT out round
down, amounts in and BPT in round up.
"""

from balancer_math.math.fixed_point import MIN_POW_BASE_FREE_EXPONENT, ONE, ZERO, Bfp

from .errors import (
    MaxInRatioError,
    MaxOutBptForTokenInError,
    MaxOutRatioError,
    MinBptInForTokenOutError,
    ZeroInvariantError,
)

# Swap limits: amounts swapped may not be larger than this share of the balance
MAX_IN_RATIO = Bfp(3 * 10**17)
MAX_OUT_RATIO = Bfp(3 * 10**17)

# Single-token joins and exits may not move the invariant outside [0.7, 3]
MAX_INVARIANT_RATIO = Bfp(3 * 10**18)
MIN_INVARIANT_RATIO = Bfp(7 * 10**17)


def calculate_invariant(normalized_weights: list[Bfp], balances: list[Bfp]) -> Bfp:
    """Weighted invariant: product of balance_i ^ weight_i, rounded down.

    Raises:
        ZeroInvariantError: If the invariant is zero
    """
    invariant = ONE
    for weight, balance in zip(normalized_weights, balances):
        invariant = invariant.mul_down(balance.pow_down(weight))

    if invariant.value <= 0:
        raise ZeroInvariantError("Weighted invariant is zero")

    return invariant


def calc_out_given_in(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_in: Bfp,
) -> Bfp:
    """Calculate output amount for a given input (sell order).

    Fee should be subtracted from amount_in BEFORE calling this function.

    Formula:
        amount_out = balance_out * (1 - (balance_in / (balance_in + amount_in))^(weight_in / weight_out))

    Raises:
        MaxInRatioError: If amount_in > balance_in * 0.3 (30% limit)
    """
    if amount_in > balance_in.mul_down(MAX_IN_RATIO):
        raise MaxInRatioError(f"Input {amount_in.value} exceeds 30% of balance {balance_in.value}")

    denominator = balance_in.add(amount_in)
    # The power is subtracted, so it rounds up along with its base. The base
    # is at most one, so the exponent rounds down.
    base = balance_in.div_up(denominator)
    exponent = weight_in.div_down(weight_out)
    power = base.pow_up(exponent)

    return balance_out.mul_down(power.complement())


def calc_in_given_out(
    balance_in: Bfp,
    weight_in: Bfp,
    balance_out: Bfp,
    weight_out: Bfp,
    amount_out: Bfp,
) -> Bfp:
    """Calculate input amount for a given output (buy order).

    Fee should be added to the result AFTER calling this function.

    Formula:
        amount_in = balance_in * ((balance_out / (balance_out - amount_out))^(weight_out / weight_in) - 1)

    Raises:
        MaxOutRatioError: If amount_out > balance_out * 0.3 (30% limit)
    """
    if amount_out > balance_out.mul_down(MAX_OUT_RATIO):
        raise MaxOutRatioError(
            f"Output {amount_out.value} exceeds 30% of balance {balance_out.value}"
        )

    # The base is at least one, so the exponent rounds up as well
    base = balance_out.div_up(balance_out.sub(amount_out))
    exponent = weight_out.div_up(weight_in)
    power = base.pow_up(exponent)

    ratio = power.sub(ONE)
    return balance_in.mul_up(ratio)


def calc_bpt_out_given_exact_tokens_in(
    balances: list[Bfp],
    normalized_weights: list[Bfp],
    amounts_in: list[Bfp],
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """BPT minted for a (possibly non-proportional) join, rounded down.

    The part of each deposit above the proportional share is an implicit
    swap against the other tokens and pays the swap fee; the proportional
    part is fee-free.
    """
    balance_ratios_with_fee = []
    invariant_ratio_with_fees = ZERO
    for balance, weight, amount_in in zip(balances, normalized_weights, amounts_in):
        ratio = balance.add(amount_in).div_down(balance)
        balance_ratios_with_fee.append(ratio)
        invariant_ratio_with_fees = invariant_ratio_with_fees.add(ratio.mul_down(weight))

    invariant_ratio = ONE
    for i, (balance, weight, amount_in) in enumerate(zip(balances, normalized_weights, amounts_in)):
        if balance_ratios_with_fee[i] > invariant_ratio_with_fees:
            non_taxable_amount = balance.mul_down(invariant_ratio_with_fees.sub(ONE))
            taxable_amount = amount_in.sub(non_taxable_amount)
            amount_in_without_fee = non_taxable_amount.add(
                taxable_amount.mul_down(ONE.sub(swap_fee))
            )
        else:
            amount_in_without_fee = amount_in

        balance_ratio = balance.add(amount_in_without_fee).div_down(balance)
        invariant_ratio = invariant_ratio.mul_down(balance_ratio.pow_down(weight))

    if invariant_ratio >= ONE:
        return bpt_total_supply.mul_down(invariant_ratio.sub(ONE))
    return ZERO


def calc_token_in_given_exact_bpt_out(
    balance: Bfp,
    normalized_weight: Bfp,
    bpt_amount_out: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Single-token deposit needed to mint exactly ``bpt_amount_out``, rounded up.

    Formula:
        amount_in = balance * (((supply + bpt_out) / supply)^(1 / weight) - 1)

    Raises:
        MaxOutBptForTokenInError: If the invariant would grow beyond 3x
    """
    invariant_ratio = bpt_total_supply.add(bpt_amount_out).div_up(bpt_total_supply)
    if invariant_ratio > MAX_INVARIANT_RATIO:
        raise MaxOutBptForTokenInError(
            f"Invariant ratio {invariant_ratio.value} exceeds {MAX_INVARIANT_RATIO.value}"
        )

    balance_ratio = invariant_ratio.pow_up(ONE.div_up(normalized_weight))
    amount_in_without_fee = balance.mul_up(balance_ratio.sub(ONE))

    # Only the share not backed by this token's weight is swapped virtually
    taxable_percentage = normalized_weight.complement()
    taxable_amount = amount_in_without_fee.mul_up(taxable_percentage)
    non_taxable_amount = amount_in_without_fee.sub(taxable_amount)

    return non_taxable_amount.add(taxable_amount.div_up(swap_fee.complement()))


def calc_bpt_in_given_exact_tokens_out(
    balances: list[Bfp],
    normalized_weights: list[Bfp],
    amounts_out: list[Bfp],
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """BPT burned for a (possibly non-proportional) exit, rounded up."""
    balance_ratios_without_fee = []
    invariant_ratio_without_fees = ZERO
    for balance, weight, amount_out in zip(balances, normalized_weights, amounts_out):
        ratio = balance.sub(amount_out).div_up(balance)
        balance_ratios_without_fee.append(ratio)
        invariant_ratio_without_fees = invariant_ratio_without_fees.add(ratio.mul_up(weight))

    invariant_ratio = ONE
    for i, (balance, weight, amount_out) in enumerate(
        zip(balances, normalized_weights, amounts_out)
    ):
        # There is no token in to charge, so the fee goes on the token out
        if invariant_ratio_without_fees > balance_ratios_without_fee[i]:
            non_taxable_amount = balance.mul_down(invariant_ratio_without_fees.complement())
            taxable_amount = amount_out.sub(non_taxable_amount)
            amount_out_with_fee = non_taxable_amount.add(
                taxable_amount.div_up(swap_fee.complement())
            )
        else:
            amount_out_with_fee = amount_out

        balance_ratio = balance.sub(amount_out_with_fee).div_down(balance)
        invariant_ratio = invariant_ratio.mul_down(balance_ratio.pow_down(weight))

    return bpt_total_supply.mul_up(invariant_ratio.complement())


def calc_token_out_given_exact_bpt_in(
    balance: Bfp,
    normalized_weight: Bfp,
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Single-token withdrawal for burning exactly ``bpt_amount_in``, rounded down.

    Formula:
        amount_out = balance * (1 - ((supply - bpt_in) / supply)^(1 / weight))

    Raises:
        MinBptInForTokenOutError: If the invariant would shrink below 0.7x
    """
    invariant_ratio = bpt_total_supply.sub(bpt_amount_in).div_up(bpt_total_supply)
    if invariant_ratio < MIN_INVARIANT_RATIO:
        raise MinBptInForTokenOutError(
            f"Invariant ratio {invariant_ratio.value} below {MIN_INVARIANT_RATIO.value}"
        )

    balance_ratio = invariant_ratio.pow_up(ONE.div_down(normalized_weight))

    # balance_ratio may round above one, hence the complement
    amount_out_without_fee = balance.mul_down(balance_ratio.complement())

    taxable_percentage = normalized_weight.complement()
    taxable_amount = amount_out_without_fee.mul_up(taxable_percentage)
    non_taxable_amount = amount_out_without_fee.sub(taxable_amount)

    return non_taxable_amount.add(taxable_amount.mul_down(swap_fee.complement()))


def calc_tokens_out_given_exact_bpt_in(
    balances: list[Bfp],
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
) -> list[Bfp]:
    """Proportional exit: balance_i * bpt_in / supply, rounded down."""
    bpt_ratio = bpt_amount_in.div_down(bpt_total_supply)
    return [balance.mul_down(bpt_ratio) for balance in balances]


def calc_due_token_protocol_swap_fee_amount(
    balance: Bfp,
    normalized_weight: Bfp,
    previous_invariant: Bfp,
    current_invariant: Bfp,
    protocol_swap_fee_percentage: Bfp,
) -> Bfp:
    """Protocol share of the swap fees accrued since ``previous_invariant``.

    Formula:
        fee = protocol_pct * balance * (1 - (previous / current)^(1 / weight))

    Rounds down. Returns zero when the invariant did not grow.
    """
    if current_invariant <= previous_invariant:
        return ZERO

    base = previous_invariant.div_up(current_invariant)
    exponent = ONE.div_down(normalized_weight)

    # The exponent can be large; below this base pow() loses its error bound
    base = max(base, Bfp(MIN_POW_BASE_FREE_EXPONENT))

    power = base.pow_up(exponent)
    token_accrued_fees = balance.mul_down(power.complement())
    return token_accrued_fees.mul_down(protocol_swap_fee_percentage)
