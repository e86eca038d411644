"""Balancer stable pool math.

Core math functions for stable (StableSwap/Curve-style) pools, ported from
StableMath.sol:
https://github.com/balancer-labs/balancer-core-v2/blob/70843e6a61ad11208c1cfabf5cfe15be216ca8d3/pkg/pool-stable/contracts/StableMath.sol

The two Newton-Raphson solvers work on raw integers through SafeInt so that
every step reverts where the contract would. The amplification parameter is
always passed pre-multiplied by AMP_PRECISION and equals A * n^(n-1).
"""

from balancer_math.math.fixed_point import ONE, ZERO, Bfp
from balancer_math.safe_int import S, SafeInt

from .errors import StableGetBalanceDidNotConverge, StableInvariantDidNotConverge

AMP_PRECISION = 1000

# Maximum iterations for Newton-Raphson convergence
_STABLE_MAX_ITERATIONS = 255


def _converged(new: SafeInt, prev: SafeInt) -> bool:
    return new.abs_diff(prev) <= 1


def _sum_balances(balances: list[Bfp]) -> Bfp:
    total = ZERO
    for balance in balances:
        total = total.add(balance)
    return total


def calculate_invariant(amp: int, balances: list[Bfp], round_up: bool) -> Bfp:
    """Calculate StableSwap invariant D using Newton-Raphson iteration.

    Solves  A * n^n * S + D = A * D * n^n + D^(n+1) / (n^n * P)  for D.

    Algorithm:
        1. Initial guess: D = sum(balances)
        2. Iterate until |D_new - D_old| <= 1 wei
        3. Max iterations: 255

    Args:
        amp: Amplification parameter (scaled by AMP_PRECISION=1000)
        balances: Token balances (already scaled to 18 decimals)
        round_up: Direction of every division inside the iteration

    Returns:
        The invariant D, or zero for an empty or all-zero pool

    Raises:
        StableInvariantDidNotConverge: If iteration doesn't converge
    """
    total = S(_sum_balances(balances).value)
    if total == 0:
        return ZERO

    n = S(len(balances))
    invariant = total
    amp_times_total = S(amp) * n

    for _ in range(_STABLE_MAX_ITERATIONS):
        p_d = n * S(balances[0].value)
        for balance in balances[1:]:
            p_d = (p_d * S(balance.value) * n).div(invariant, round_up)

        prev_invariant = invariant
        numerator = n * invariant * invariant + (amp_times_total * total * p_d).div(
            AMP_PRECISION, round_up
        )
        denominator = (n + 1) * invariant + (
            (amp_times_total - AMP_PRECISION) * p_d
        ).div(AMP_PRECISION, not round_up)
        invariant = numerator.div(denominator, round_up)

        if _converged(invariant, prev_invariant):
            return Bfp(invariant.value)

    raise StableInvariantDidNotConverge(
        f"Stable invariant did not converge after {_STABLE_MAX_ITERATIONS} iterations"
    )


def get_token_balance_given_invariant_and_all_other_balances(
    amp: int,
    balances: list[Bfp],
    invariant: Bfp,
    token_index: int,
) -> Bfp:
    """Solve for balances[token_index] given D and all other balances.

    The current value at token_index only enters through c, where it
    cancels out of the product term. Rounds up overall.

    Raises:
        StableGetBalanceDidNotConverge: If iteration doesn't converge
        IndexError: If token_index is out of range
    """
    n_coins = len(balances)
    if token_index < 0 or token_index >= n_coins:
        raise IndexError(f"token_index {token_index} out of range for {n_coins} tokens")

    n = S(n_coins)
    d = S(invariant.value)
    amp_times_total = S(amp) * n

    sum_balances = S(balances[0].value)
    p_d = n * S(balances[0].value)
    for balance in balances[1:]:
        p_d = (p_d * S(balance.value) * n) // d
        sum_balances = sum_balances + balance.value
    sum_others = sum_balances - balances[token_index].value

    inv2 = d * d
    c = inv2.div_up(amp_times_total * p_d) * AMP_PRECISION * balances[token_index].value
    b = sum_others + (d // amp_times_total) * AMP_PRECISION

    # First iteration is unrolled to seed the approximation
    token_balance = (inv2 + c).div_up(d + b)

    for _ in range(_STABLE_MAX_ITERATIONS):
        prev_token_balance = token_balance
        token_balance = (token_balance * token_balance + c).div_up(
            token_balance * 2 + b - d
        )

        if _converged(token_balance, prev_token_balance):
            return Bfp(token_balance.value)

    raise StableGetBalanceDidNotConverge(
        f"Stable get_balance did not converge after {_STABLE_MAX_ITERATIONS} iterations"
    )


def calc_out_given_in(
    amp: int,
    balances: list[Bfp],
    token_index_in: int,
    token_index_out: int,
    amount_in: Bfp,
) -> Bfp:
    """Calculate output amount for a given input in a stable pool.

    Fee should be subtracted from amount_in BEFORE calling this function.
    Unlike weighted pools, stable pools do not enforce ratio limits.

    The invariant is rounded up so the final balance out comes out larger,
    and one wei is kept back from the output.
    """
    invariant = calculate_invariant(amp, balances, True)

    new_balances = list(balances)
    new_balances[token_index_in] = balances[token_index_in].add(amount_in)

    final_balance_out = get_token_balance_given_invariant_and_all_other_balances(
        amp, new_balances, invariant, token_index_out
    )
    return balances[token_index_out].sub(final_balance_out).sub(Bfp(1))


def calc_in_given_out(
    amp: int,
    balances: list[Bfp],
    token_index_in: int,
    token_index_out: int,
    amount_out: Bfp,
) -> Bfp:
    """Calculate input amount for a given output in a stable pool.

    Fee should be added to the result AFTER calling this function.

    Raises:
        Underflow: If amount_out exceeds balance_out
    """
    invariant = calculate_invariant(amp, balances, True)

    new_balances = list(balances)
    new_balances[token_index_out] = balances[token_index_out].sub(amount_out)

    final_balance_in = get_token_balance_given_invariant_and_all_other_balances(
        amp, new_balances, invariant, token_index_in
    )
    return final_balance_in.sub(balances[token_index_in]).add(Bfp(1))


def calc_bpt_out_given_exact_tokens_in(
    amp: int,
    balances: list[Bfp],
    amounts_in: list[Bfp],
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """BPT minted for a (possibly non-proportional) join, rounded down.

    Stable pools have no weights, so each token's share of the balance sum
    stands in for its weight when splitting off the taxable excess.
    """
    sum_balances = _sum_balances(balances)

    balance_ratios_with_fee = []
    invariant_ratio_with_fees = ZERO
    for balance, amount_in in zip(balances, amounts_in):
        current_weight = balance.div_down(sum_balances)
        ratio = balance.add(amount_in).div_down(balance)
        balance_ratios_with_fee.append(ratio)
        invariant_ratio_with_fees = invariant_ratio_with_fees.add(ratio.mul_down(current_weight))

    new_balances = []
    for i, (balance, amount_in) in enumerate(zip(balances, amounts_in)):
        if balance_ratios_with_fee[i] > invariant_ratio_with_fees:
            non_taxable_amount = balance.mul_down(invariant_ratio_with_fees.sub(ONE))
            taxable_amount = amount_in.sub(non_taxable_amount)
            amount_in_without_fee = non_taxable_amount.add(
                taxable_amount.mul_down(ONE.sub(swap_fee))
            )
        else:
            amount_in_without_fee = amount_in
        new_balances.append(balance.add(amount_in_without_fee))

    current_invariant = calculate_invariant(amp, balances, True)
    new_invariant = calculate_invariant(amp, new_balances, False)
    invariant_ratio = new_invariant.div_down(current_invariant)

    # No BPT is minted if the invariant did not grow
    if invariant_ratio > ONE:
        return bpt_total_supply.mul_down(invariant_ratio.sub(ONE))
    return ZERO


def calc_token_in_given_exact_bpt_out(
    amp: int,
    balances: list[Bfp],
    token_index: int,
    bpt_amount_out: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Single-token deposit needed to mint exactly ``bpt_amount_out``, rounded up."""
    current_invariant = calculate_invariant(amp, balances, True)
    new_invariant = (
        bpt_total_supply.add(bpt_amount_out).div_up(bpt_total_supply).mul_up(current_invariant)
    )

    new_balance = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, new_invariant, token_index
    )
    amount_in_without_fee = new_balance.sub(balances[token_index])

    current_weight = balances[token_index].div_down(_sum_balances(balances))
    taxable_percentage = current_weight.complement()
    taxable_amount = amount_in_without_fee.mul_up(taxable_percentage)
    non_taxable_amount = amount_in_without_fee.sub(taxable_amount)

    return non_taxable_amount.add(taxable_amount.div_up(ONE.sub(swap_fee)))


def calc_bpt_in_given_exact_tokens_out(
    amp: int,
    balances: list[Bfp],
    amounts_out: list[Bfp],
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """BPT burned for a (possibly non-proportional) exit, rounded up."""
    sum_balances = _sum_balances(balances)

    balance_ratios_without_fee = []
    invariant_ratio_without_fees = ZERO
    for balance, amount_out in zip(balances, amounts_out):
        current_weight = balance.div_up(sum_balances)
        ratio = balance.sub(amount_out).div_up(balance)
        balance_ratios_without_fee.append(ratio)
        invariant_ratio_without_fees = invariant_ratio_without_fees.add(
            ratio.mul_up(current_weight)
        )

    new_balances = []
    for i, (balance, amount_out) in enumerate(zip(balances, amounts_out)):
        # There is no token in to charge, so the fee goes on the token out
        if invariant_ratio_without_fees > balance_ratios_without_fee[i]:
            non_taxable_amount = balance.mul_down(invariant_ratio_without_fees.complement())
            taxable_amount = amount_out.sub(non_taxable_amount)
            amount_out_with_fee = non_taxable_amount.add(
                taxable_amount.div_up(ONE.sub(swap_fee))
            )
        else:
            amount_out_with_fee = amount_out
        new_balances.append(balance.sub(amount_out_with_fee))

    current_invariant = calculate_invariant(amp, balances, True)
    new_invariant = calculate_invariant(amp, new_balances, False)
    invariant_ratio = new_invariant.div_down(current_invariant)

    return bpt_total_supply.mul_up(invariant_ratio.complement())


def calc_token_out_given_exact_bpt_in(
    amp: int,
    balances: list[Bfp],
    token_index: int,
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
    swap_fee: Bfp,
) -> Bfp:
    """Single-token withdrawal for burning exactly ``bpt_amount_in``, rounded down."""
    current_invariant = calculate_invariant(amp, balances, True)
    new_invariant = (
        bpt_total_supply.sub(bpt_amount_in).div_up(bpt_total_supply).mul_up(current_invariant)
    )

    new_balance = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, new_invariant, token_index
    )
    amount_out_without_fee = balances[token_index].sub(new_balance)

    current_weight = balances[token_index].div_down(_sum_balances(balances))
    taxable_percentage = current_weight.complement()
    taxable_amount = amount_out_without_fee.mul_up(taxable_percentage)
    non_taxable_amount = amount_out_without_fee.sub(taxable_amount)

    return non_taxable_amount.add(taxable_amount.mul_down(ONE.sub(swap_fee)))


def calc_tokens_out_given_exact_bpt_in(
    balances: list[Bfp],
    bpt_amount_in: Bfp,
    bpt_total_supply: Bfp,
) -> list[Bfp]:
    """Proportional exit: balance_i * bpt_in / supply, rounded down."""
    bpt_ratio = bpt_amount_in.div_down(bpt_total_supply)
    return [balance.mul_down(bpt_ratio) for balance in balances]


def calc_due_token_protocol_swap_fee_amount(
    amp: int,
    balances: list[Bfp],
    last_invariant: Bfp,
    token_index: int,
    protocol_swap_fee_percentage: Bfp,
) -> Bfp:
    """Protocol share of the swap fees accrued since ``last_invariant``, in one token.

    The fee token balance that would restore the old invariant is solved
    for; the excess over it is the accumulated fee. Rounds down.
    """
    final_balance_fee_token = get_token_balance_given_invariant_and_all_other_balances(
        amp, balances, last_invariant, token_index
    )

    # Only rounding can make this happen; returning zero keeps joins and exits working
    if balances[token_index] <= final_balance_fee_token:
        return ZERO

    accumulated_token_swap_fees = balances[token_index].sub(final_balance_fee_token)
    return accumulated_token_swap_fees.mul_down(protocol_swap_fee_percentage).div_down(ONE)
