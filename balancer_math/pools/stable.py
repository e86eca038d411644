"""Balancer stable pool simulator."""

from __future__ import annotations

from collections.abc import Sequence

from balancer_math.math.fixed_point import Bfp

from . import stable_math
from .base import BPT_DECIMALS, Amount, Amounts, BasePool, PoolKind, Token
from .config import DEFAULT_POOL_LIMITS, PoolLimits
from .errors import MaxAmpError, MinAmpError
from .scaling import format_units, parse_units
from .stable_math import AMP_PRECISION

# AMP_PRECISION as a number of decimals
_AMP_DECIMALS = 3


class StablePool(BasePool):
    """StableSwap pool with 2 to ``PoolLimits.max_stable_tokens`` tokens.

    Args:
        amplification_parameter: Unscaled A, e.g. "200". It is stored
            multiplied by AMP_PRECISION, which is what the math expects.
    """

    kind = PoolKind.STABLE

    def __init__(
        self,
        *,
        id: str,
        address: str,
        tokens: Sequence[Token],
        bpt_total_supply: Amount,
        swap_fee_percentage: Amount,
        amplification_parameter: Amount,
        query: bool = False,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> None:
        super().__init__(
            id=id,
            address=address,
            tokens=tokens,
            bpt_total_supply=bpt_total_supply,
            swap_fee_percentage=swap_fee_percentage,
            max_tokens=limits.max_stable_tokens,
            query=query,
            limits=limits,
        )

        amp = parse_units(amplification_parameter, _AMP_DECIMALS)
        if amp < limits.min_amp * AMP_PRECISION:
            raise MinAmpError(f"Amplification {amplification_parameter} below {limits.min_amp}")
        if amp > limits.max_amp * AMP_PRECISION:
            raise MaxAmpError(f"Amplification {amplification_parameter} above {limits.max_amp}")
        self._amp = amp

    @property
    def amplification_parameter(self) -> str:
        """Unscaled amplification parameter A."""
        return format_units(self._amp, _AMP_DECIMALS)

    def get_invariant(self) -> str:
        invariant = stable_math.calculate_invariant(self._amp, self._scaled_balances(), False)
        return format_units(invariant.value, BPT_DECIMALS)

    # ---------------------- Swap actions ----------------------

    def swap_given_in(
        self, token_in: str, token_out: str, amount_in: Amount, limit: Amount | None = None
    ) -> str:
        index_in, index_out, raw_in, scaled_in = self._prepare_given_in(
            token_in, token_out, amount_in
        )
        scaled_out = stable_math.calc_out_given_in(
            self._amp, self._scaled_balances(), index_in, index_out, scaled_in
        )
        return self._finish_given_in(index_in, index_out, raw_in, scaled_out, limit)

    def swap_given_out(
        self, token_in: str, token_out: str, amount_out: Amount, limit: Amount | None = None
    ) -> str:
        index_in, index_out, raw_out, scaled_out = self._prepare_given_out(
            token_in, token_out, amount_out
        )
        scaled_in = stable_math.calc_in_given_out(
            self._amp, self._scaled_balances(), index_in, index_out, scaled_out
        )
        return self._finish_given_out(index_in, index_out, raw_out, scaled_in, limit)

    # ---------------------- LP actions ----------------------

    def join_exact_tokens_in_for_bpt_out(
        self, amounts_in: Amounts, min_bpt_out: Amount | None = None
    ) -> str:
        raw_amounts = self._raw_amounts(amounts_in)
        bpt_out = stable_math.calc_bpt_out_given_exact_tokens_in(
            self._amp,
            self._scaled_balances(),
            self._scaled_amounts(raw_amounts),
            self._bpt_supply(),
            self._swap_fee,
        ).value
        self._check_bpt_out(bpt_out, min_bpt_out)

        self._commit(
            "join_exact_tokens_in_for_bpt_out", dict(enumerate(raw_amounts)), bpt_delta=bpt_out
        )
        return format_units(bpt_out, BPT_DECIMALS)

    def join_token_in_for_exact_bpt_out(self, token_in: str, bpt_out: Amount) -> str:
        index = self._resolve(token_in)
        raw_bpt_out = parse_units(bpt_out, BPT_DECIMALS)
        scaled_in = stable_math.calc_token_in_given_exact_bpt_out(
            self._amp,
            self._scaled_balances(),
            index,
            Bfp(raw_bpt_out),
            self._bpt_supply(),
            self._swap_fee,
        )
        raw_in = self._amount_in(index, scaled_in)

        self._commit("join_token_in_for_exact_bpt_out", {index: raw_in}, bpt_delta=raw_bpt_out)
        return self._format(index, raw_in)

    def exit_exact_bpt_in_for_token_out(self, token_out: str, bpt_in: Amount) -> str:
        index = self._resolve(token_out)
        raw_bpt_in = self._parse_bpt_in(bpt_in)
        scaled_out = stable_math.calc_token_out_given_exact_bpt_in(
            self._amp,
            self._scaled_balances(),
            index,
            Bfp(raw_bpt_in),
            self._bpt_supply(),
            self._swap_fee,
        )
        raw_out = self._amount_out(index, scaled_out)

        self._commit("exit_exact_bpt_in_for_token_out", {index: -raw_out}, bpt_delta=-raw_bpt_in)
        return self._format(index, raw_out)

    def exit_exact_bpt_in_for_tokens_out(self, bpt_in: Amount) -> list[str]:
        raw_bpt_in = self._parse_bpt_in(bpt_in)
        scaled_amounts = stable_math.calc_tokens_out_given_exact_bpt_in(
            self._scaled_balances(), Bfp(raw_bpt_in), self._bpt_supply()
        )
        raw_amounts = [self._amount_out(i, amount) for i, amount in enumerate(scaled_amounts)]

        self._commit(
            "exit_exact_bpt_in_for_tokens_out",
            {i: -amount for i, amount in enumerate(raw_amounts)},
            bpt_delta=-raw_bpt_in,
        )
        return [self._format(i, amount) for i, amount in enumerate(raw_amounts)]

    def exit_bpt_in_for_exact_tokens_out(
        self, amounts_out: Amounts, max_bpt_in: Amount | None = None
    ) -> str:
        raw_amounts = self._raw_amounts(amounts_out)
        bpt_in = stable_math.calc_bpt_in_given_exact_tokens_out(
            self._amp,
            self._scaled_balances(),
            self._scaled_amounts(raw_amounts),
            self._bpt_supply(),
            self._swap_fee,
        ).value
        self._check_bpt_in(bpt_in, max_bpt_in)

        self._commit(
            "exit_bpt_in_for_exact_tokens_out",
            {i: -amount for i, amount in enumerate(raw_amounts)},
            bpt_delta=-bpt_in,
        )
        return format_units(bpt_in, BPT_DECIMALS)
