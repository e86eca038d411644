"""Property-based tests for rounding directions and pool invariants."""

from decimal import Decimal

import hypothesis.strategies as st
from hypothesis import given, settings

from balancer_math.math.fixed_point import Bfp
from balancer_math.pools import (
    LinearParams,
    add_swap_fee_amount,
    format_units,
    linear_math,
    parse_units,
    scale_down_down,
    scale_down_up,
    subtract_swap_fee_amount,
    weighted_math,
)
from tests.helpers import make_stable_pool, make_weighted_pool

raw_amounts = st.integers(min_value=0, max_value=10**30)
fees = st.integers(min_value=0, max_value=10**17).map(Bfp)
decimals = st.integers(min_value=0, max_value=18)
# Swap fees in whole basis points, from 0.01% to the 10% maximum
fee_bps = st.integers(min_value=1, max_value=1000)
# Six-decimal token amounts from 1 to 250 units
usdc_amounts = st.integers(min_value=10**6, max_value=250 * 10**6).map(
    lambda raw: str(Decimal(raw).scaleb(-6))
)

LINEAR_PARAMS = LinearParams(
    fee=Bfp.from_decimal("0.01"),
    rate=Bfp.from_int(1),
    lower_target=Bfp.from_int(1000),
    upper_target=Bfp.from_int(2000),
)


@settings(max_examples=200, deadline=None)
@given(a=raw_amounts, b=raw_amounts)
def test_mul_rounding_brackets_exact_product(a: int, b: int) -> None:
    """mul_up is mul_down or one wei more."""
    down = Bfp(a).mul_down(Bfp(b))
    up = Bfp(a).mul_up(Bfp(b))
    assert 0 <= up.value - down.value <= 1


@settings(max_examples=200, deadline=None)
@given(amount=raw_amounts, fee=fees)
def test_swap_fee_favors_pool(amount: int, fee: Bfp) -> None:
    """Taking the fee never adds to an amount; grossing up never takes away."""
    assert subtract_swap_fee_amount(Bfp(amount), fee).value <= amount
    assert add_swap_fee_amount(Bfp(amount), fee).value >= amount


@settings(max_examples=200, deadline=None)
@given(value=raw_amounts, token_decimals=decimals)
def test_scale_down_up_not_below_down(value: int, token_decimals: int) -> None:
    """Rounding up after scaling down is at most one unit above rounding down."""
    factor = 10 ** (18 - token_decimals)
    down = scale_down_down(Bfp(value), factor)
    up = scale_down_up(Bfp(value), factor)
    assert 0 <= up - down <= 1


@settings(max_examples=200, deadline=None)
@given(raw=raw_amounts, token_decimals=decimals)
def test_format_then_parse_is_lossless(raw: int, token_decimals: int) -> None:
    """Formatted amounts parse back to the same raw value."""
    assert parse_units(format_units(raw, token_decimals), token_decimals) == raw


@settings(max_examples=200, deadline=None)
@given(amount=st.integers(min_value=0, max_value=10**25))
def test_nominal_round_trip_rounds_up_slightly(amount: int) -> None:
    """Real -> nominal -> real lands on the amount or a few wei above it."""
    nominal = linear_math.to_nominal(Bfp(amount), LINEAR_PARAMS)
    real = linear_math.from_nominal(nominal, LINEAR_PARAMS)
    assert 0 <= real.value - amount <= 3


@settings(max_examples=100, deadline=None)
@given(
    base=st.integers(min_value=10**16, max_value=10**22),
    exponent=st.integers(min_value=0, max_value=4 * 10**18),
)
def test_pow_down_not_above_pow_up(base: int, exponent: int) -> None:
    """The two pow roundings bracket the approximation."""
    assert Bfp(base).pow_down(Bfp(exponent)) <= Bfp(base).pow_up(Bfp(exponent))


@settings(max_examples=100, deadline=None)
@given(
    balance_in=st.integers(min_value=10**18, max_value=10**27),
    balance_out=st.integers(min_value=10**18, max_value=10**27),
    weight_in_tenths=st.integers(min_value=2, max_value=8),
    fraction_bps=st.integers(min_value=10, max_value=2900),
)
def test_weighted_swap_never_lowers_invariant(
    balance_in: int, balance_out: int, weight_in_tenths: int, fraction_bps: int
) -> None:
    """With a fee, a given-in swap leaves the invariant at least where it was."""
    weights = [Bfp(weight_in_tenths * 10**17), Bfp((10 - weight_in_tenths) * 10**17)]
    fee = Bfp.from_decimal("0.003")
    amount_in = Bfp(balance_in * fraction_bps // 10000)

    amount_out = weighted_math.calc_out_given_in(
        Bfp(balance_in),
        weights[0],
        Bfp(balance_out),
        weights[1],
        subtract_swap_fee_amount(amount_in, fee),
    )

    before = weighted_math.calculate_invariant(weights, [Bfp(balance_in), Bfp(balance_out)])
    after = weighted_math.calculate_invariant(
        weights, [Bfp(balance_in).add(amount_in), Bfp(balance_out).sub(amount_out)]
    )
    assert after >= before


def fee_string(bps: int) -> str:
    return str(Decimal(bps).scaleb(-4))


def quotes_at_fees(pool, low_bps: int, high_bps: int, quote) -> tuple[Decimal, Decimal]:
    """Run the same quote on a query pool at two fees."""
    low_bps, high_bps = sorted((low_bps, high_bps))
    pool.set_swap_fee_percentage(fee_string(low_bps))
    at_low = Decimal(quote(pool))
    pool.set_swap_fee_percentage(fee_string(high_bps))
    at_high = Decimal(quote(pool))
    return at_low, at_high


@settings(max_examples=50, deadline=None)
@given(amount=st.integers(min_value=1, max_value=290), a=fee_bps, b=fee_bps)
def test_weighted_given_in_output_falls_with_fee(amount: int, a: int, b: int) -> None:
    """A higher fee never buys more."""
    at_low, at_high = quotes_at_fees(
        make_weighted_pool(query=True),
        a,
        b,
        lambda pool: pool.swap_given_in("WETH", "DAI", str(amount)),
    )
    assert at_high <= at_low


@settings(max_examples=50, deadline=None)
@given(amount=st.integers(min_value=1, max_value=400), a=fee_bps, b=fee_bps)
def test_weighted_given_out_input_rises_with_fee(amount: int, a: int, b: int) -> None:
    """A higher fee never makes buying cheaper."""
    at_low, at_high = quotes_at_fees(
        make_weighted_pool(query=True),
        a,
        b,
        lambda pool: pool.swap_given_out("WETH", "DAI", str(amount)),
    )
    assert at_high >= at_low


@settings(max_examples=50, deadline=None)
@given(amount=st.integers(min_value=1, max_value=500), a=fee_bps, b=fee_bps)
def test_stable_given_in_output_falls_with_fee(amount: int, a: int, b: int) -> None:
    """A higher fee never buys more, after rounding to six decimals."""
    at_low, at_high = quotes_at_fees(
        make_stable_pool(query=True),
        a,
        b,
        lambda pool: pool.swap_given_in("DAI", "USDC", str(amount)),
    )
    assert at_high <= at_low


@settings(max_examples=50, deadline=None)
@given(amount=st.integers(min_value=1, max_value=500), a=fee_bps, b=fee_bps)
def test_stable_given_out_input_rises_with_fee(amount: int, a: int, b: int) -> None:
    """A higher fee never makes buying cheaper."""
    at_low, at_high = quotes_at_fees(
        make_stable_pool(query=True),
        a,
        b,
        lambda pool: pool.swap_given_out("DAI", "USDC", str(amount)),
    )
    assert at_high >= at_low


def assert_invariant_per_bpt_not_lower(pool, amounts: list[str]) -> None:
    """Join and compare invariant / supply before and after.

    The invariant is itself an approximation, so the comparison allows for
    a relative error far below what any join could move it.
    """
    invariant_before = Decimal(pool.get_invariant())
    supply_before = Decimal(pool.bpt_total_supply)

    pool.join_exact_tokens_in_for_bpt_out(amounts)

    invariant_after = Decimal(pool.get_invariant())
    supply_after = Decimal(pool.bpt_total_supply)
    tolerance = 1 - Decimal("1e-12")
    assert invariant_after * supply_before >= invariant_before * supply_after * tolerance


@settings(max_examples=50, deadline=None)
@given(
    weth_in=st.integers(min_value=0, max_value=300),
    dai_in=st.integers(min_value=0, max_value=450),
)
def test_weighted_join_never_dilutes_bpt(weth_in: int, dai_in: int) -> None:
    """Any mix of tokens in keeps the invariant per BPT at least where it was."""
    assert_invariant_per_bpt_not_lower(make_weighted_pool(), [str(weth_in), str(dai_in)])


@settings(max_examples=50, deadline=None)
@given(
    dai_in=st.integers(min_value=0, max_value=300),
    usdc_in=st.integers(min_value=0, max_value=300),
)
def test_stable_join_never_dilutes_bpt(dai_in: int, usdc_in: int) -> None:
    """Any mix of tokens in keeps the invariant per BPT at least where it was."""
    assert_invariant_per_bpt_not_lower(make_stable_pool(), [str(dai_in), str(usdc_in)])


@settings(max_examples=50, deadline=None)
@given(amount=st.integers(min_value=1, max_value=500))
def test_stable_swap_cycle_does_not_profit(amount: int) -> None:
    """Selling DAI for USDC and the USDC straight back returns at most the DAI sold."""
    pool = make_stable_pool()
    usdc = pool.swap_given_in("DAI", "USDC", str(amount))
    dai = pool.swap_given_in("USDC", "DAI", usdc)
    assert Decimal(dai) <= amount


@settings(max_examples=100, deadline=None)
@given(
    main_balance=st.integers(min_value=0, max_value=3000 * 10**18),
    main_in=st.integers(min_value=1, max_value=1000 * 10**18),
    rate=st.integers(min_value=5 * 10**17, max_value=2 * 10**18),
)
def test_linear_wrapped_rounding_favors_pool(main_balance: int, main_in: int, rate: int) -> None:
    """Buying back main just sold costs at least the wrapped it paid out."""
    params = LinearParams(
        fee=LINEAR_PARAMS.fee,
        rate=Bfp(rate),
        lower_target=LINEAR_PARAMS.lower_target,
        upper_target=LINEAR_PARAMS.upper_target,
    )
    wrapped_out = linear_math.calc_wrapped_out_per_main_in(
        Bfp(main_in), Bfp(main_balance), params
    )
    wrapped_in = linear_math.calc_wrapped_in_per_main_out(
        Bfp(main_in), Bfp(main_balance + main_in), params
    )
    assert wrapped_in >= wrapped_out


@settings(max_examples=100, deadline=None)
@given(
    nominal_main=st.integers(min_value=0, max_value=10**24),
    wrapped=st.integers(min_value=0, max_value=10**24),
    rate=st.integers(min_value=5 * 10**17, max_value=2 * 10**18),
)
def test_linear_invariant_up_not_below_down(nominal_main: int, wrapped: int, rate: int) -> None:
    """The two invariant roundings are at most one wei apart, up on top."""
    params = LinearParams(
        fee=LINEAR_PARAMS.fee,
        rate=Bfp(rate),
        lower_target=LINEAR_PARAMS.lower_target,
        upper_target=LINEAR_PARAMS.upper_target,
    )
    up = linear_math.calc_invariant_up(Bfp(nominal_main), Bfp(wrapped), params)
    down = linear_math.calc_invariant_down(Bfp(nominal_main), Bfp(wrapped), params)
    assert 0 <= up.value - down.value <= 1


@settings(max_examples=50, deadline=None)
@given(amount=usdc_amounts)
def test_weighted_given_out_covers_given_in(amount: str) -> None:
    """Buying back what a sale returned costs the amount sold, or one unit more."""
    quote = make_weighted_pool(symbols=("USDC", "DAI"), query=True)
    out = quote.swap_given_in("USDC", "DAI", amount)
    amount_in = Decimal(quote.swap_given_out("USDC", "DAI", out))
    assert Decimal(amount) <= amount_in <= Decimal(amount) + Decimal("0.000001")


@settings(max_examples=50, deadline=None)
@given(amount=usdc_amounts)
def test_stable_given_out_covers_given_in(amount: str) -> None:
    """Buying back what a sale returned costs the amount sold, or one unit more."""
    quote = make_stable_pool(query=True)
    out = quote.swap_given_in("USDC", "DAI", amount)
    amount_in = Decimal(quote.swap_given_out("USDC", "DAI", out))
    assert Decimal(amount) <= amount_in <= Decimal(amount) + Decimal("0.000001")
