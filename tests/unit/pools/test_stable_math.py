"""Tests for stable pool math functions.

A balanced pool is a fixed point of the invariant iteration: D equals the
sum of balances exactly. Most expectations below build on that.
"""

import pytest

from balancer_math.math.fixed_point import ZERO, Bfp
from balancer_math.pools import (
    DEFAULT_POOL_LIMITS,
    StableGetBalanceDidNotConverge,
    StableInvariantDidNotConverge,
    stable_math,
)
from balancer_math.pools.stable_math import AMP_PRECISION
from balancer_math.safe_int import Underflow

AMP = 100 * AMP_PRECISION


def bfp(value: str | int) -> Bfp:
    return Bfp.from_decimal(str(value))


class TestConstants:
    """Tests for the stable math bounds."""

    def test_bounds(self) -> None:
        """Amplification and token count bounds match the contract."""
        assert AMP_PRECISION == 1000
        assert (DEFAULT_POOL_LIMITS.min_amp, DEFAULT_POOL_LIMITS.max_amp) == (1, 5000)
        assert DEFAULT_POOL_LIMITS.max_stable_tokens == 5


class TestCalculateInvariant:
    """Tests for calculate_invariant()."""

    def test_balanced_pool_invariant_is_sum(self) -> None:
        """Equal balances give D = sum(balances) in both rounding directions."""
        balances = [bfp(1000), bfp(1000)]
        assert stable_math.calculate_invariant(AMP, balances, True) == bfp(2000)
        assert stable_math.calculate_invariant(AMP, balances, False) == bfp(2000)

    def test_three_token_balanced_pool(self) -> None:
        """The fixed point holds for more tokens too."""
        balances = [bfp(500), bfp(500), bfp(500)]
        assert stable_math.calculate_invariant(AMP, balances, False) == bfp(1500)

    def test_imbalanced_pool_invariant_below_sum(self) -> None:
        """An imbalanced pool has D slightly below the sum."""
        invariant = stable_math.calculate_invariant(AMP, [bfp(1000), bfp(1200)], False)
        assert bfp(2199) < invariant < bfp(2200)

    def test_invariant_is_deterministic(self) -> None:
        """Recomputing the invariant of unchanged balances gives the same value."""
        balances = [bfp(1000), bfp(1200)]
        first = stable_math.calculate_invariant(AMP, balances, True)
        second = stable_math.calculate_invariant(AMP, balances, True)
        assert first == second

    def test_round_up_not_below_round_down(self) -> None:
        """Rounding up never gives a smaller invariant."""
        balances = [bfp(1000), bfp(1200)]
        assert stable_math.calculate_invariant(
            AMP, balances, True
        ) >= stable_math.calculate_invariant(AMP, balances, False)

    def test_empty_pool_invariant_is_zero(self) -> None:
        """All-zero balances short-circuit to zero."""
        assert stable_math.calculate_invariant(AMP, [ZERO, ZERO], True) == ZERO

    def test_higher_amp_moves_invariant_toward_sum(self) -> None:
        """The flatter the curve, the closer D is to the plain sum."""
        balances = [bfp(1000), bfp(1500)]
        low = stable_math.calculate_invariant(10 * AMP_PRECISION, balances, False)
        high = stable_math.calculate_invariant(1000 * AMP_PRECISION, balances, False)
        assert low < high < bfp(2500)


class TestGetTokenBalance:
    """Tests for get_token_balance_given_invariant_and_all_other_balances()."""

    def test_recovers_balance(self) -> None:
        """Solving for a token of a balanced pool gives back its balance, rounded up."""
        balance = stable_math.get_token_balance_given_invariant_and_all_other_balances(
            AMP, [bfp(1000), bfp(1000)], bfp(2000), 0
        )
        assert 10**21 <= balance.value <= 10**21 + 1

    def test_lower_invariant_needs_less(self) -> None:
        """A smaller invariant is matched by a smaller balance."""
        balance = stable_math.get_token_balance_given_invariant_and_all_other_balances(
            AMP, [bfp(1000), bfp(1000)], bfp(1990), 1
        )
        assert bfp(990) < balance < bfp(1000)

    def test_index_out_of_range_raises(self) -> None:
        """An index outside the balances raises IndexError."""
        with pytest.raises(IndexError):
            stable_math.get_token_balance_given_invariant_and_all_other_balances(
                AMP, [bfp(1000), bfp(1000)], bfp(2000), 2
            )


class TestConvergence:
    """Tests for the Newton-Raphson iteration cap."""

    @pytest.fixture
    def no_iterations(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(stable_math, "_STABLE_MAX_ITERATIONS", 0)

    def test_invariant_did_not_converge(self, no_iterations) -> None:
        """Running out of iterations raises StableInvariantDidNotConverge."""
        with pytest.raises(StableInvariantDidNotConverge):
            stable_math.calculate_invariant(AMP, [bfp(1), bfp(1000000)], True)

    def test_balance_did_not_converge(self, no_iterations) -> None:
        """Running out of iterations raises StableGetBalanceDidNotConverge."""
        with pytest.raises(StableGetBalanceDidNotConverge):
            stable_math.get_token_balance_given_invariant_and_all_other_balances(
                AMP, [bfp(1000), bfp(1000)], bfp(1990), 1
            )

    def test_swap_surfaces_convergence_error(self, no_iterations) -> None:
        """The error reaches callers of the swap math unchanged."""
        with pytest.raises(StableInvariantDidNotConverge):
            stable_math.calc_out_given_in(AMP, [bfp(1000), bfp(1000)], 0, 1, bfp(10))

    def test_empty_pool_needs_no_iterations(self, no_iterations) -> None:
        """An all-zero pool returns before the loop."""
        assert stable_math.calculate_invariant(AMP, [ZERO, ZERO], False) == ZERO


class TestSwaps:
    """Tests for calc_out_given_in() and calc_in_given_out()."""

    def test_out_given_in_near_parity(self) -> None:
        """A small trade in a balanced pool returns just under the amount in."""
        out = stable_math.calc_out_given_in(AMP, [bfp(1000), bfp(1000)], 0, 1, bfp(1))
        assert bfp("0.999") < out < bfp(1)

    def test_in_given_out_near_parity(self) -> None:
        """Buying a small amount costs just over that amount."""
        amount_in = stable_math.calc_in_given_out(AMP, [bfp(1000), bfp(1000)], 0, 1, bfp(1))
        assert bfp(1) < amount_in < bfp("1.001")

    def test_higher_amp_less_slippage(self) -> None:
        """A flatter curve returns more for the same trade."""
        balances = [bfp(1000), bfp(1000)]
        low = stable_math.calc_out_given_in(10 * AMP_PRECISION, balances, 0, 1, bfp(100))
        high = stable_math.calc_out_given_in(1000 * AMP_PRECISION, balances, 0, 1, bfp(100))
        assert low < high < bfp(100)

    def test_imbalanced_pool_pays_premium(self) -> None:
        """Selling the scarce token returns more than the amount in."""
        out = stable_math.calc_out_given_in(AMP, [bfp(500), bfp(1500)], 0, 1, bfp(1))
        assert out > bfp(1)

    def test_in_given_out_exceeding_balance_raises(self) -> None:
        """Asking for more than the pool holds underflows."""
        with pytest.raises(Underflow):
            stable_math.calc_in_given_out(AMP, [bfp(1000), bfp(1000)], 0, 1, bfp(1001))

    def test_in_given_out_inverts_out_given_in(self) -> None:
        """Buying back a sale's output costs the amount sold, to within a few wei."""
        balances = [bfp(1000), bfp(1200)]
        out = stable_math.calc_out_given_in(AMP, balances, 0, 1, bfp(10))
        amount_in = stable_math.calc_in_given_out(AMP, balances, 0, 1, out)
        assert abs(amount_in.value - bfp(10).value) <= 1000


class TestJoinsAndExits:
    """Tests for the join and exit formulas."""

    def test_proportional_join(self) -> None:
        """Adding 1% of each balance mints exactly 1% of supply."""
        bpt_out = stable_math.calc_bpt_out_given_exact_tokens_in(
            AMP, [bfp(1000), bfp(1000)], [bfp(10), bfp(10)], bfp(2000), bfp("0.01")
        )
        assert bpt_out == bfp(20)

    def test_single_sided_join_pays_fee(self) -> None:
        """A one-token join mints less with a fee."""
        balances, amounts = [bfp(1000), bfp(1000)], [bfp(10), ZERO]
        no_fee = stable_math.calc_bpt_out_given_exact_tokens_in(
            AMP, balances, amounts, bfp(2000), ZERO
        )
        with_fee = stable_math.calc_bpt_out_given_exact_tokens_in(
            AMP, balances, amounts, bfp(2000), bfp("0.01")
        )
        assert ZERO < with_fee < no_fee < bfp(10)

    def test_token_in_given_exact_bpt_out(self) -> None:
        """Minting 1% of supply with one token costs a bit more than 1% of the invariant."""
        amount_in = stable_math.calc_token_in_given_exact_bpt_out(
            AMP, [bfp(1000), bfp(1000)], 0, bfp(20), bfp(2000), ZERO
        )
        assert bfp(20) < amount_in < bfp("20.01")

    def test_proportional_exact_tokens_out(self) -> None:
        """Taking 1% of each balance burns exactly 1% of supply."""
        bpt_in = stable_math.calc_bpt_in_given_exact_tokens_out(
            AMP, [bfp(1000), bfp(1000)], [bfp(10), bfp(10)], bfp(2000), bfp("0.01")
        )
        assert bpt_in == bfp(20)

    def test_single_sided_exit_pays_fee(self) -> None:
        """A one-token exit burns more BPT with a fee."""
        balances, amounts = [bfp(1000), bfp(1000)], [bfp(10), ZERO]
        no_fee = stable_math.calc_bpt_in_given_exact_tokens_out(
            AMP, balances, amounts, bfp(2000), ZERO
        )
        with_fee = stable_math.calc_bpt_in_given_exact_tokens_out(
            AMP, balances, amounts, bfp(2000), bfp("0.01")
        )
        assert bfp(10) < no_fee < with_fee

    def test_token_out_given_exact_bpt_in(self) -> None:
        """Burning 1% of supply for one token returns a bit less than 1% of the invariant."""
        amount_out = stable_math.calc_token_out_given_exact_bpt_in(
            AMP, [bfp(1000), bfp(1000)], 0, bfp(20), bfp(2000), ZERO
        )
        assert bfp("19.99") < amount_out < bfp(20)

    def test_proportional_exit(self) -> None:
        """Burning 10% of supply returns 10% of every balance."""
        amounts = stable_math.calc_tokens_out_given_exact_bpt_in(
            [bfp(1000), bfp(1000)], bfp(200), bfp(2000)
        )
        assert amounts == [bfp(100), bfp(100)]


class TestProtocolSwapFee:
    """Tests for calc_due_token_protocol_swap_fee_amount()."""

    def test_unchanged_invariant_owes_nothing(self) -> None:
        """With no growth since the last invariant, no fee is due."""
        fee = stable_math.calc_due_token_protocol_swap_fee_amount(
            AMP, [bfp(1000), bfp(1000)], bfp(2000), 0, bfp("0.5")
        )
        assert fee == ZERO

    def test_growth_is_charged_in_one_token(self) -> None:
        """Growth from 1990 to 2000 owes the protocol its share of about 10 tokens."""
        fee = stable_math.calc_due_token_protocol_swap_fee_amount(
            AMP, [bfp(1000), bfp(1000)], bfp(1990), 0, bfp("0.5")
        )
        assert bfp("4.9") < fee < bfp(5)
