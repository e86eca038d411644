"""Balancer linear pool math.

Port of LinearMath.sol:
https://github.com/balancer-labs/balancer-v2-monorepo/blob/589542001aeca5bdc120404874fe0137f6a4c749/pkg/pool-linear/contracts/LinearMath.sol

A linear pool holds a main token, its wrapped (yield-bearing) version and
its own BPT. The main balance is mapped to a "nominal" balance that charges
a fee below the lower target and above the upper target and is fee-free in
between; the invariant is nominal_main + wrapped * rate.
"""

from dataclasses import dataclass

from balancer_math.math.fixed_point import ONE, Bfp


@dataclass(frozen=True)
class LinearParams:
    """Linear pool parameters, all 18-decimal fixed-point.

    Attributes:
        fee: Swap fee charged outside the targets
        rate: Wrapped-to-main exchange rate
        lower_target: Main balance below which deposits earn a fee rebate
        upper_target: Main balance above which deposits pay a fee
    """

    fee: Bfp
    rate: Bfp
    lower_target: Bfp
    upper_target: Bfp


def to_nominal(amount: Bfp, params: LinearParams) -> Bfp:
    """Map a real main balance to its nominal balance.

    Regions:
        amount < (1 - fee) * lower:                amount / (1 - fee)
        amount < upper - fee * lower:              amount + fee * lower
        otherwise:  (amount + fee * (lower + upper)) / (1 + fee)
    """
    fee_complement = ONE.sub(params.fee)
    fee_on_lower = params.fee.mul_up(params.lower_target)

    if amount < fee_complement.mul_up(params.lower_target):
        return amount.div_up(fee_complement)
    if amount < params.upper_target.sub(fee_on_lower):
        return amount.add(fee_on_lower)

    fee_on_targets = params.lower_target.add(params.upper_target).mul_up(params.fee)
    return amount.add(fee_on_targets).div_up(ONE.add(params.fee))


def from_nominal(nominal: Bfp, params: LinearParams) -> Bfp:
    """Inverse of to_nominal: map a nominal balance back to a real one."""
    if nominal < params.lower_target:
        return nominal.mul_up(ONE.sub(params.fee))
    if nominal < params.upper_target:
        return nominal.sub(params.fee.mul_up(params.lower_target))

    fee_on_targets = params.fee.mul_up(params.lower_target.add(params.upper_target))
    return nominal.mul_up(ONE.add(params.fee)).sub(fee_on_targets)


def calc_invariant_up(nominal_main_balance: Bfp, wrapped_balance: Bfp, params: LinearParams) -> Bfp:
    return nominal_main_balance.add(wrapped_balance.mul_up(params.rate))


def calc_invariant_down(
    nominal_main_balance: Bfp, wrapped_balance: Bfp, params: LinearParams
) -> Bfp:
    return nominal_main_balance.add(wrapped_balance.mul_down(params.rate))


# =============================================================================
# Main <-> BPT
# =============================================================================


def calc_bpt_out_per_main_in(
    main_in: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """BPT out for an exact main token deposit, rounded down.

    An uninitialized pool (zero supply) mints the nominal value of the deposit.
    """
    if bpt_supply.value == 0:
        return to_nominal(main_in, params)

    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(main_balance.add(main_in), params)
    delta_nominal_main = after_nominal_main.sub(previous_nominal_main)
    invariant = calc_invariant_up(previous_nominal_main, wrapped_balance, params)
    return bpt_supply.mul_down(delta_nominal_main).div_down(invariant)


def calc_bpt_in_per_main_out(
    main_out: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """BPT in for an exact main token withdrawal, rounded up."""
    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(main_balance.sub(main_out), params)
    delta_nominal_main = previous_nominal_main.sub(after_nominal_main)
    invariant = calc_invariant_down(previous_nominal_main, wrapped_balance, params)
    return bpt_supply.mul_up(delta_nominal_main).div_up(invariant)


def calc_main_in_per_bpt_out(
    bpt_out: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """Main token in for an exact BPT out, rounded up."""
    if bpt_supply.value == 0:
        return from_nominal(bpt_out, params)

    previous_nominal_main = to_nominal(main_balance, params)
    invariant = calc_invariant_up(previous_nominal_main, wrapped_balance, params)
    delta_nominal_main = invariant.mul_up(bpt_out).div_up(bpt_supply)
    after_nominal_main = previous_nominal_main.add(delta_nominal_main)
    new_main_balance = from_nominal(after_nominal_main, params)
    return new_main_balance.sub(main_balance)


def calc_main_out_per_bpt_in(
    bpt_in: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """Main token out for an exact BPT in, rounded down."""
    previous_nominal_main = to_nominal(main_balance, params)
    invariant = calc_invariant_down(previous_nominal_main, wrapped_balance, params)
    delta_nominal_main = invariant.mul_down(bpt_in).div_down(bpt_supply)
    after_nominal_main = previous_nominal_main.sub(delta_nominal_main)
    new_main_balance = from_nominal(after_nominal_main, params)
    return main_balance.sub(new_main_balance)


# =============================================================================
# Main <-> wrapped
# =============================================================================


def calc_wrapped_out_per_main_in(main_in: Bfp, main_balance: Bfp, params: LinearParams) -> Bfp:
    """Wrapped token out for an exact main token in, rounded down."""
    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(main_balance.add(main_in), params)
    delta_nominal_main = after_nominal_main.sub(previous_nominal_main)
    return delta_nominal_main.div_down(params.rate)


def calc_wrapped_in_per_main_out(main_out: Bfp, main_balance: Bfp, params: LinearParams) -> Bfp:
    """Wrapped token in for an exact main token out, rounded up."""
    previous_nominal_main = to_nominal(main_balance, params)
    after_nominal_main = to_nominal(main_balance.sub(main_out), params)
    delta_nominal_main = previous_nominal_main.sub(after_nominal_main)
    return delta_nominal_main.div_up(params.rate)


def calc_main_out_per_wrapped_in(wrapped_in: Bfp, main_balance: Bfp, params: LinearParams) -> Bfp:
    """Main token out for an exact wrapped token in, rounded down."""
    previous_nominal_main = to_nominal(main_balance, params)
    delta_nominal_main = wrapped_in.mul_down(params.rate)
    after_nominal_main = previous_nominal_main.sub(delta_nominal_main)
    new_main_balance = from_nominal(after_nominal_main, params)
    return main_balance.sub(new_main_balance)


def calc_main_in_per_wrapped_out(wrapped_out: Bfp, main_balance: Bfp, params: LinearParams) -> Bfp:
    """Main token in for an exact wrapped token out, rounded up."""
    previous_nominal_main = to_nominal(main_balance, params)
    delta_nominal_main = wrapped_out.mul_up(params.rate)
    after_nominal_main = previous_nominal_main.add(delta_nominal_main)
    new_main_balance = from_nominal(after_nominal_main, params)
    return new_main_balance.sub(main_balance)


# =============================================================================
# Wrapped <-> BPT
# =============================================================================


def calc_bpt_out_per_wrapped_in(
    wrapped_in: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """BPT out for an exact wrapped token deposit, rounded down."""
    if bpt_supply.value == 0:
        # Nominal main value of the deposit
        return wrapped_in.mul_down(params.rate)

    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)

    new_wrapped_balance = wrapped_balance.add(wrapped_in)
    new_invariant = calc_invariant_down(nominal_main, new_wrapped_balance, params)

    new_bpt_balance = bpt_supply.mul_down(new_invariant).div_down(previous_invariant)
    return new_bpt_balance.sub(bpt_supply)


def calc_bpt_in_per_wrapped_out(
    wrapped_out: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """BPT in for an exact wrapped token withdrawal, rounded up."""
    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)

    new_wrapped_balance = wrapped_balance.sub(wrapped_out)
    new_invariant = calc_invariant_down(nominal_main, new_wrapped_balance, params)

    new_bpt_balance = bpt_supply.mul_down(new_invariant).div_down(previous_invariant)
    return bpt_supply.sub(new_bpt_balance)


def calc_wrapped_in_per_bpt_out(
    bpt_out: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """Wrapped token in for an exact BPT out, rounded up."""
    if bpt_supply.value == 0:
        return bpt_out.div_up(params.rate)

    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)

    new_bpt_balance = bpt_supply.add(bpt_out)
    new_wrapped_balance = (
        new_bpt_balance.div_up(bpt_supply)
        .mul_up(previous_invariant)
        .sub(nominal_main)
        .div_up(params.rate)
    )
    return new_wrapped_balance.sub(wrapped_balance)


def calc_wrapped_out_per_bpt_in(
    bpt_in: Bfp,
    main_balance: Bfp,
    wrapped_balance: Bfp,
    bpt_supply: Bfp,
    params: LinearParams,
) -> Bfp:
    """Wrapped token out for an exact BPT in, rounded down."""
    nominal_main = to_nominal(main_balance, params)
    previous_invariant = calc_invariant_up(nominal_main, wrapped_balance, params)

    new_bpt_balance = bpt_supply.sub(bpt_in)
    new_wrapped_balance = (
        new_bpt_balance.div_up(bpt_supply)
        .mul_up(previous_invariant)
        .sub(nominal_main)
        .div_up(params.rate)
    )
    return wrapped_balance.sub(new_wrapped_balance)
