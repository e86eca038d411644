"""Tests for the StablePool simulator.

The default pool holds 1000 DAI (18 decimals) and 1000 USDC (6 decimals),
so most cases also check that mixed decimals scale correctly.
"""

from decimal import Decimal

import pytest

from balancer_math.math.fixed_point import Bfp
from balancer_math.pools import (
    BalancerError,
    BptLimitError,
    MaxAmpError,
    MaxTokensError,
    MinAmpError,
    PoolKind,
    SwapLimitError,
    stable_math,
    subtract_swap_fee_amount,
)
from balancer_math.pools.stable_math import AMP_PRECISION
from tests.helpers import make_stable_pool

AMP = 100 * AMP_PRECISION
FEE = Bfp.from_decimal("0.0004")


def balances(pool) -> list[str]:
    return [token.balance for token in pool.tokens]


class TestConstruction:
    """Tests for StablePool construction."""

    def test_basic_pool(self, stable_pool) -> None:
        """Pool exposes its tokens without weights and A unscaled."""
        assert stable_pool.kind is PoolKind.STABLE
        assert stable_pool.amplification_parameter == "100"
        assert [(t.symbol, t.decimals, t.weight) for t in stable_pool.tokens] == [
            ("DAI", 18, None),
            ("USDC", 6, None),
        ]

    def test_fractional_amp(self) -> None:
        """A keeps AMP_PRECISION digits."""
        assert make_stable_pool(amp="1.5").amplification_parameter == "1.5"

    @pytest.mark.parametrize(("amp", "error"), [("0.5", MinAmpError), ("5001", MaxAmpError)])
    def test_amp_bounds(self, amp: str, error: type[Exception]) -> None:
        """A must lie within [1, 5000]."""
        with pytest.raises(error):
            make_stable_pool(amp=amp)

    def test_amp_bounds_inclusive(self) -> None:
        """The bounds themselves are accepted."""
        assert make_stable_pool(amp="1").amplification_parameter == "1"
        assert make_stable_pool(amp="5000").amplification_parameter == "5000"

    def test_too_many_tokens(self) -> None:
        """More than five tokens raise MaxTokensError."""
        with pytest.raises(MaxTokensError):
            make_stable_pool(
                balances=("100",) * 6, symbols=tuple(f"S{i}" for i in range(6))
            )

    def test_balanced_invariant_is_sum(self, stable_pool) -> None:
        """Balanced pools have D equal to the sum of balances, across decimals."""
        assert stable_pool.get_invariant() == "2000"


class TestSwaps:
    """Tests for swap_given_in() and swap_given_out()."""

    def test_given_in_matches_math(self, stable_pool) -> None:
        """Fee comes off first; the 18-decimal result rounds down to 6 decimals."""
        scaled_out = stable_math.calc_out_given_in(
            AMP,
            [Bfp.from_int(1000), Bfp.from_int(1000)],
            0,
            1,
            subtract_swap_fee_amount(Bfp.from_int(10), FEE),
        )
        expected = scaled_out.value // 10**12 * 10**12

        out = stable_pool.swap_given_in("DAI", "USDC", "10")

        assert Bfp.from_decimal(out).value == expected
        assert Decimal("9.99") < Decimal(out) < Decimal("9.996")

    def test_given_in_updates_balances(self, stable_pool) -> None:
        """The pool receives DAI and pays USDC."""
        out = stable_pool.swap_given_in("DAI", "USDC", "10")
        assert balances(stable_pool) == ["1010", str(Decimal("1000") - Decimal(out))]

    def test_given_out_costs_a_bit_more(self, stable_pool) -> None:
        """Buying 10 USDC costs just over 10 DAI, fee included."""
        amount_in = Decimal(stable_pool.swap_given_out("DAI", "USDC", "10"))
        assert Decimal("10.004") < amount_in < Decimal("10.01")
        assert stable_pool.tokens[1].balance == "990"

    def test_given_out_rounds_up_in_low_decimal_token(self, stable_pool) -> None:
        """Amounts in of a 6-decimal token are whole units, rounded up."""
        amount_in = Decimal(stable_pool.swap_given_out("USDC", "DAI", "10"))
        assert amount_in == amount_in.quantize(Decimal("0.000001"))
        assert amount_in > 10

    def test_query_mode(self) -> None:
        """Query pools return the same quote twice and keep their balances."""
        pool = make_stable_pool(query=True)
        assert pool.swap_given_in("DAI", "USDC", "10") == pool.swap_given_in("DAI", "USDC", "10")
        assert balances(pool) == ["1000", "1000"]

    def test_limits(self, stable_pool) -> None:
        """Limits apply on the computed side of the swap."""
        with pytest.raises(SwapLimitError):
            stable_pool.swap_given_in("DAI", "USDC", "10", limit="10")
        with pytest.raises(SwapLimitError):
            stable_pool.swap_given_out("DAI", "USDC", "10", limit="10")
        assert balances(stable_pool) == ["1000", "1000"]

    def test_higher_amp_less_slippage(self) -> None:
        """A large trade returns more in a flatter pool."""
        low = make_stable_pool(amp="10", query=True).swap_given_in("DAI", "USDC", "200")
        high = make_stable_pool(amp="1000", query=True).swap_given_in("DAI", "USDC", "200")
        assert Decimal(low) < Decimal(high) < 200

    def test_given_out_covers_given_in(self) -> None:
        """Buying back what 10 USDC sold for costs at least 10 USDC."""
        quote = make_stable_pool(query=True)
        out = quote.swap_given_in("USDC", "DAI", "10")
        amount_in = Decimal(quote.swap_given_out("USDC", "DAI", out))
        assert Decimal("10") <= amount_in <= Decimal("10.000001")

    @pytest.mark.parametrize(
        ("operation", "amount"),
        [("swap_given_out", "1500"), ("swap_given_in", "0.000000000000000001")],
    )
    def test_arithmetic_errors_are_balancer_errors(self, operation: str, amount: str) -> None:
        """Overdrawing the balance or selling a single wei raises a BalancerError."""
        pool = make_stable_pool(query=True)
        with pytest.raises(BalancerError):
            getattr(pool, operation)("DAI", "USDC", amount)


class TestJoinsAndExits:
    """Tests for the join and exit operations."""

    def test_proportional_join(self, stable_pool) -> None:
        """1% of each balance mints exactly 1% of supply."""
        assert stable_pool.join_exact_tokens_in_for_bpt_out({"USDC": "10", "DAI": "10"}) == "20"
        assert balances(stable_pool) == ["1010", "1010"]
        assert stable_pool.bpt_total_supply == "2020"

    def test_min_bpt_out(self, stable_pool) -> None:
        """Minting less than min_bpt_out raises BptLimitError."""
        with pytest.raises(BptLimitError):
            stable_pool.join_exact_tokens_in_for_bpt_out(["10", "10"], min_bpt_out="20.1")

    def test_single_token_join(self, stable_pool) -> None:
        """Minting 20 BPT with DAI alone costs a little over 20 DAI."""
        amount_in = Decimal(stable_pool.join_token_in_for_exact_bpt_out("DAI", "20"))
        assert Decimal(20) < amount_in < Decimal("20.02")
        assert stable_pool.bpt_total_supply == "2020"

    def test_proportional_exit(self, stable_pool) -> None:
        """10% of supply returns 10% of each balance, in each token's decimals."""
        assert stable_pool.exit_exact_bpt_in_for_tokens_out("200") == ["100", "100"]
        assert balances(stable_pool) == ["900", "900"]
        assert stable_pool.bpt_total_supply == "1800"

    def test_single_token_exit(self, stable_pool) -> None:
        """Burning 20 BPT for USDC alone returns a little under 20 USDC."""
        amount_out = Decimal(stable_pool.exit_exact_bpt_in_for_token_out("USDC", "20"))
        assert Decimal("19.98") < amount_out < Decimal(20)
        assert amount_out == amount_out.quantize(Decimal("0.000001"))

    def test_exact_tokens_out(self, stable_pool) -> None:
        """Taking 1% of each balance burns exactly 1% of supply."""
        assert stable_pool.exit_bpt_in_for_exact_tokens_out(["10", "10"]) == "20"
        assert stable_pool.bpt_total_supply == "1980"

    def test_max_bpt_in(self, stable_pool) -> None:
        """Burning more than max_bpt_in raises BptLimitError."""
        with pytest.raises(BptLimitError):
            stable_pool.exit_bpt_in_for_exact_tokens_out(["10", "0"], max_bpt_in="9.99")
