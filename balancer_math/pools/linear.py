"""Balancer linear pool simulator.

A linear pool trades a main token, its wrapped version and its own BPT
against each other. All six directions are swaps; joining or exiting with
a single token is the BPT swap of the same direction.
"""

from __future__ import annotations

from balancer_math.math.fixed_point import Bfp
from balancer_math.types import normalize_address

from . import linear_math
from .base import BPT_DECIMALS, Amount, Amounts, BasePool, PoolKind, Token
from .config import DEFAULT_POOL_LIMITS, PoolLimits
from .errors import (
    InvalidDecimalError,
    LowerGreaterThanUpperTargetError,
    SameTokenError,
    UnsupportedOperationError,
    UpperTargetTooHighError,
)
from .linear_math import LinearParams
from .scaling import format_units, parse_units, scale_down_down, scale_down_up, scale_up

BPT_SYMBOL = "BPT"

# Token slots; main and wrapped double as indexes into the pool tokens
MAIN = 0
WRAPPED = 1
BPT = 2


class LinearPool(BasePool):
    """Main/wrapped/BPT pool with a fee-free band between two targets.

    The swap fee is only charged through the nominal-balance transform, so
    swaps do not deduct it from amounts the way weighted and stable pools do.

    Args:
        main_token: The underlying token (e.g. DAI)
        wrapped_token: Its yield-bearing wrapper (e.g. aDAI)
        lower_target: Main balance below which the fee is rebated
        upper_target: Main balance above which the fee is charged
        wrapped_token_rate: Value of one wrapped token in main tokens
    """

    kind = PoolKind.LINEAR

    def __init__(
        self,
        *,
        id: str,
        address: str,
        main_token: Token,
        wrapped_token: Token,
        bpt_total_supply: Amount,
        swap_fee_percentage: Amount,
        lower_target: Amount,
        upper_target: Amount,
        wrapped_token_rate: Amount = "1",
        query: bool = False,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> None:
        super().__init__(
            id=id,
            address=address,
            tokens=[main_token, wrapped_token],
            bpt_total_supply=bpt_total_supply,
            swap_fee_percentage=swap_fee_percentage,
            max_tokens=2,
            query=query,
            limits=limits,
        )

        lower = parse_units(lower_target, BPT_DECIMALS)
        upper = parse_units(upper_target, BPT_DECIMALS)
        if lower > upper:
            raise LowerGreaterThanUpperTargetError(
                f"Lower target {lower_target} above upper target {upper_target}"
            )
        if upper > limits.max_token_balance:
            raise UpperTargetTooHighError(f"Upper target {upper_target} too high")

        rate = parse_units(wrapped_token_rate, BPT_DECIMALS)
        if rate == 0:
            raise InvalidDecimalError("Wrapped token rate must be positive")

        self._lower_target = Bfp(lower)
        self._upper_target = Bfp(upper)
        self._rate = Bfp(rate)

    # ---------------------- Accessors ----------------------

    @property
    def main_token(self) -> Token:
        return self._tokens[MAIN].view()

    @property
    def wrapped_token(self) -> Token:
        return self._tokens[WRAPPED].view()

    @property
    def bpt_token(self) -> Token:
        """Synthetic BPT token; its balance is the BPT virtual supply."""
        return Token(
            address=self.address,
            symbol=BPT_SYMBOL,
            decimals=BPT_DECIMALS,
            balance=self.bpt_total_supply,
        )

    @property
    def tokens(self) -> tuple[Token, ...]:
        return (self.main_token, self.wrapped_token, self.bpt_token)

    @property
    def lower_target(self) -> str:
        return format_units(self._lower_target.value, BPT_DECIMALS)

    @property
    def upper_target(self) -> str:
        return format_units(self._upper_target.value, BPT_DECIMALS)

    @property
    def wrapped_token_rate(self) -> str:
        return format_units(self._rate.value, BPT_DECIMALS)

    def set_wrapped_token_rate(self, wrapped_token_rate: Amount) -> None:
        rate = parse_units(wrapped_token_rate, BPT_DECIMALS)
        if rate == 0:
            raise InvalidDecimalError("Wrapped token rate must be positive")
        self._rate = Bfp(rate)

    def _params(self) -> LinearParams:
        return LinearParams(
            fee=self._swap_fee,
            rate=self._rate,
            lower_target=self._lower_target,
            upper_target=self._upper_target,
        )

    def get_invariant(self) -> str:
        nominal_main = linear_math.to_nominal(self._tokens[MAIN].scaled_balance, self._params())
        invariant = linear_math.calc_invariant_down(
            nominal_main, self._tokens[WRAPPED].scaled_balance, self._params()
        )
        return format_units(invariant.value, BPT_DECIMALS)

    # ---------------------- Slot helpers ----------------------

    def _resolve_slot(self, token: str) -> int:
        if token == BPT_SYMBOL or normalize_address(token) == self.address:
            return BPT
        return self._resolve(token)

    def _resolve_slots(self, token_in: str, token_out: str) -> tuple[int, int]:
        slot_in = self._resolve_slot(token_in)
        slot_out = self._resolve_slot(token_out)
        if slot_in == slot_out:
            raise SameTokenError(f"Cannot swap {token_in} for itself")
        return slot_in, slot_out

    def _symbol(self, slot: int) -> str:
        return BPT_SYMBOL if slot == BPT else self._tokens[slot].symbol

    def _decimals(self, slot: int) -> int:
        return BPT_DECIMALS if slot == BPT else self._tokens[slot].decimals

    def _scaling_factor(self, slot: int) -> int:
        return 1 if slot == BPT else self._tokens[slot].scaling_factor

    def _commit_swap(
        self, operation: str, slot_in: int, slot_out: int, raw_in: int, raw_out: int
    ) -> None:
        deltas: dict[int, int] = {}
        bpt_delta = 0
        if slot_in == BPT:
            bpt_delta = -raw_in
        else:
            deltas[slot_in] = raw_in
        if slot_out == BPT:
            bpt_delta = raw_out
        else:
            deltas[slot_out] = -raw_out
        self._commit(operation, deltas, bpt_delta=bpt_delta)

    # ---------------------- Swap actions ----------------------

    def swap_given_in(
        self, token_in: str, token_out: str, amount_in: Amount, limit: Amount | None = None
    ) -> str:
        slot_in, slot_out = self._resolve_slots(token_in, token_out)
        if slot_in == BPT:
            raw_in = self._parse_bpt_in(amount_in)
        else:
            raw_in = parse_units(amount_in, self._decimals(slot_in))
        scaled_in = scale_up(raw_in, self._scaling_factor(slot_in))

        main = self._tokens[MAIN].scaled_balance
        wrapped = self._tokens[WRAPPED].scaled_balance
        supply = self._bpt_supply()
        params = self._params()

        if slot_in == MAIN and slot_out == WRAPPED:
            scaled_out = linear_math.calc_wrapped_out_per_main_in(scaled_in, main, params)
        elif slot_in == MAIN:
            scaled_out = linear_math.calc_bpt_out_per_main_in(
                scaled_in, main, wrapped, supply, params
            )
        elif slot_in == WRAPPED and slot_out == MAIN:
            scaled_out = linear_math.calc_main_out_per_wrapped_in(scaled_in, main, params)
        elif slot_in == WRAPPED:
            scaled_out = linear_math.calc_bpt_out_per_wrapped_in(
                scaled_in, main, wrapped, supply, params
            )
        elif slot_out == MAIN:
            scaled_out = linear_math.calc_main_out_per_bpt_in(
                scaled_in, main, wrapped, supply, params
            )
        else:
            scaled_out = linear_math.calc_wrapped_out_per_bpt_in(
                scaled_in, main, wrapped, supply, params
            )

        raw_out = scale_down_down(scaled_out, self._scaling_factor(slot_out))
        self._check_min_out(self._symbol(slot_out), self._decimals(slot_out), raw_out, limit)

        self._commit_swap("swap_given_in", slot_in, slot_out, raw_in, raw_out)
        return format_units(raw_out, self._decimals(slot_out))

    def swap_given_out(
        self, token_in: str, token_out: str, amount_out: Amount, limit: Amount | None = None
    ) -> str:
        slot_in, slot_out = self._resolve_slots(token_in, token_out)
        raw_out = parse_units(amount_out, self._decimals(slot_out))
        scaled_out = scale_up(raw_out, self._scaling_factor(slot_out))

        main = self._tokens[MAIN].scaled_balance
        wrapped = self._tokens[WRAPPED].scaled_balance
        supply = self._bpt_supply()
        params = self._params()

        if slot_out == MAIN and slot_in == WRAPPED:
            scaled_in = linear_math.calc_wrapped_in_per_main_out(scaled_out, main, params)
        elif slot_out == MAIN:
            scaled_in = linear_math.calc_bpt_in_per_main_out(
                scaled_out, main, wrapped, supply, params
            )
        elif slot_out == WRAPPED and slot_in == MAIN:
            scaled_in = linear_math.calc_main_in_per_wrapped_out(scaled_out, main, params)
        elif slot_out == WRAPPED:
            scaled_in = linear_math.calc_bpt_in_per_wrapped_out(
                scaled_out, main, wrapped, supply, params
            )
        elif slot_in == MAIN:
            scaled_in = linear_math.calc_main_in_per_bpt_out(
                scaled_out, main, wrapped, supply, params
            )
        else:
            scaled_in = linear_math.calc_wrapped_in_per_bpt_out(
                scaled_out, main, wrapped, supply, params
            )

        raw_in = scale_down_up(scaled_in, self._scaling_factor(slot_in))
        self._check_max_in(self._symbol(slot_in), self._decimals(slot_in), raw_in, limit)

        self._commit_swap("swap_given_out", slot_in, slot_out, raw_in, raw_out)
        return format_units(raw_in, self._decimals(slot_in))

    # ---------------------- LP actions ----------------------

    def join_token_in_for_exact_bpt_out(self, token_in: str, bpt_out: Amount) -> str:
        return self.swap_given_out(token_in, BPT_SYMBOL, bpt_out)

    def exit_exact_bpt_in_for_token_out(self, token_out: str, bpt_in: Amount) -> str:
        return self.swap_given_in(BPT_SYMBOL, token_out, bpt_in)

    def join_exact_tokens_in_for_bpt_out(
        self, amounts_in: Amounts, min_bpt_out: Amount | None = None
    ) -> str:
        raise UnsupportedOperationError("Linear pools only mint BPT through swaps")

    def exit_exact_bpt_in_for_tokens_out(self, bpt_in: Amount) -> list[str]:
        raise UnsupportedOperationError("Linear pools only burn BPT through swaps")

    def exit_bpt_in_for_exact_tokens_out(
        self, amounts_out: Amounts, max_bpt_in: Amount | None = None
    ) -> str:
        raise UnsupportedOperationError("Linear pools only burn BPT through swaps")
