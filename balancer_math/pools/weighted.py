"""Balancer weighted pool simulator."""

from __future__ import annotations

from collections.abc import Sequence

from balancer_math.math.fixed_point import ONE, ZERO, Bfp

from . import weighted_math
from .base import BPT_DECIMALS, Amount, Amounts, BasePool, PoolKind, Token
from .config import DEFAULT_POOL_LIMITS, PoolLimits
from .errors import MinWeightError, NormalizedWeightInvariantError
from .scaling import format_units, parse_units


class WeightedPool(BasePool):
    """Constant-weighted-product pool with 2 to 8 tokens.

    Every token needs a ``weight``; the weights must each be at least
    MIN_WEIGHT and add up to exactly one. They are never renormalized.

    Example:
        pool = WeightedPool(
            id="0x01", address="0x...", bpt_total_supply="100",
            swap_fee_percentage="0.003",
            tokens=[
                Token(address="0x...", symbol="WETH", decimals=18, balance="1000", weight="0.5"),
                Token(address="0x...", symbol="DAI", decimals=18, balance="1500", weight="0.5"),
            ],
        )
        pool.swap_given_in("WETH", "DAI", "10")
    """

    kind = PoolKind.WEIGHTED

    def __init__(
        self,
        *,
        id: str,
        address: str,
        tokens: Sequence[Token],
        bpt_total_supply: Amount,
        swap_fee_percentage: Amount,
        query: bool = False,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> None:
        super().__init__(
            id=id,
            address=address,
            tokens=tokens,
            bpt_total_supply=bpt_total_supply,
            swap_fee_percentage=swap_fee_percentage,
            max_tokens=limits.max_weighted_tokens,
            query=query,
            limits=limits,
        )
        self._weights = self._validate_weights(tokens)

    def _validate_weights(self, tokens: Sequence[Token]) -> tuple[Bfp, ...]:
        weights = []
        total = ZERO
        for token in tokens:
            if token.weight is None:
                raise MinWeightError(f"Token {token.symbol} has no weight")
            weight = Bfp(parse_units(token.weight, BPT_DECIMALS))
            if weight.value < self._limits.min_weight:
                raise MinWeightError(f"Weight {token.weight} of {token.symbol} below minimum")
            weights.append(weight)
            total = total.add(weight)

        if total != ONE:
            raise NormalizedWeightInvariantError(
                f"Weights add up to {format_units(total.value, BPT_DECIMALS)}, not 1"
            )
        return tuple(weights)

    @property
    def tokens(self) -> tuple[Token, ...]:
        return tuple(token.view(weight) for token, weight in zip(self._tokens, self._weights))

    def get_invariant(self) -> str:
        invariant = weighted_math.calculate_invariant(list(self._weights), self._scaled_balances())
        return format_units(invariant.value, BPT_DECIMALS)

    # ---------------------- Swap actions ----------------------

    def swap_given_in(
        self, token_in: str, token_out: str, amount_in: Amount, limit: Amount | None = None
    ) -> str:
        index_in, index_out, raw_in, scaled_in = self._prepare_given_in(
            token_in, token_out, amount_in
        )
        scaled_out = weighted_math.calc_out_given_in(
            self._tokens[index_in].scaled_balance,
            self._weights[index_in],
            self._tokens[index_out].scaled_balance,
            self._weights[index_out],
            scaled_in,
        )
        return self._finish_given_in(index_in, index_out, raw_in, scaled_out, limit)

    def swap_given_out(
        self, token_in: str, token_out: str, amount_out: Amount, limit: Amount | None = None
    ) -> str:
        index_in, index_out, raw_out, scaled_out = self._prepare_given_out(
            token_in, token_out, amount_out
        )
        scaled_in = weighted_math.calc_in_given_out(
            self._tokens[index_in].scaled_balance,
            self._weights[index_in],
            self._tokens[index_out].scaled_balance,
            self._weights[index_out],
            scaled_out,
        )
        return self._finish_given_out(index_in, index_out, raw_out, scaled_in, limit)

    # ---------------------- LP actions ----------------------

    def join_exact_tokens_in_for_bpt_out(
        self, amounts_in: Amounts, min_bpt_out: Amount | None = None
    ) -> str:
        raw_amounts = self._raw_amounts(amounts_in)
        bpt_out = weighted_math.calc_bpt_out_given_exact_tokens_in(
            self._scaled_balances(),
            list(self._weights),
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
        scaled_in = weighted_math.calc_token_in_given_exact_bpt_out(
            self._tokens[index].scaled_balance,
            self._weights[index],
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
        scaled_out = weighted_math.calc_token_out_given_exact_bpt_in(
            self._tokens[index].scaled_balance,
            self._weights[index],
            Bfp(raw_bpt_in),
            self._bpt_supply(),
            self._swap_fee,
        )
        raw_out = self._amount_out(index, scaled_out)

        self._commit("exit_exact_bpt_in_for_token_out", {index: -raw_out}, bpt_delta=-raw_bpt_in)
        return self._format(index, raw_out)

    def exit_exact_bpt_in_for_tokens_out(self, bpt_in: Amount) -> list[str]:
        raw_bpt_in = self._parse_bpt_in(bpt_in)
        scaled_amounts = weighted_math.calc_tokens_out_given_exact_bpt_in(
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
        bpt_in = weighted_math.calc_bpt_in_given_exact_tokens_out(
            self._scaled_balances(),
            list(self._weights),
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
