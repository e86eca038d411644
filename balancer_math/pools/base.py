"""Shared pool state for the Balancer pool simulators.

Every pool owns its balances as integers in each token's native units and
hands out frozen Token views, so state only changes through the swap, join
and exit methods. Those methods all follow the same steps:

1. resolve tokens by symbol or address;
2. convert decimal-string amounts to native units, then to 18 decimals;
3. run the pool math (fees applied in the pool's favor);
4. scale the result back down, rounding against the caller;
5. unless ``query`` is set, commit the balance and BPT supply changes.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Protocol, runtime_checkable

import structlog

from balancer_math.math.fixed_point import Bfp
from balancer_math.types import normalize_address

from .config import DEFAULT_POOL_LIMITS, PoolLimits
from .errors import (
    BptInExceedsSupplyError,
    BptLimitError,
    DuplicateTokenError,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountsError,
    MaxSwapFeeError,
    MaxTokensError,
    MinSwapFeeError,
    MinTokensError,
    SameTokenError,
    SwapLimitError,
    UnknownTokenError,
)
from .scaling import (
    add_swap_fee_amount,
    format_units,
    parse_units,
    scale_down_down,
    scale_down_up,
    scale_up,
    scaling_factor,
    subtract_swap_fee_amount,
)

logger = structlog.get_logger()

# BPT, swap fees and weights are always 18-decimal quantities
BPT_DECIMALS = 18

Amount = str | Decimal | int
Amounts = Mapping[str, Amount] | Sequence[Amount]


def checked_address(address: str) -> str:
    """Lowercase form of a pool or token address.

    Raises:
        InvalidAddressError: If the address is not 0x plus 40 hex characters
    """
    try:
        return normalize_address(address, validate=True)
    except ValueError as err:
        raise InvalidAddressError(str(err)) from err


class PoolKind(str, Enum):
    """Pool type tag, spelled the way the Balancer subgraph spells it."""

    WEIGHTED = "Weighted"
    STABLE = "Stable"
    LINEAR = "Linear"


@dataclass(frozen=True)
class Token:
    """A pool token, as passed to a pool constructor and returned by ``tokens``.

    Attributes:
        address: Token address
        symbol: Token symbol, used as a lookup key alongside the address
        decimals: Token decimals (0 to 18)
        balance: Pool balance as a human-scale decimal string
        weight: Normalized weight as a decimal string (weighted pools only)
    """

    address: str
    symbol: str
    decimals: int
    balance: str
    weight: str | None = None


@dataclass
class PoolToken:
    """Mutable per-token state owned by a pool."""

    address: str
    symbol: str
    decimals: int
    balance: int
    scaling_factor: int

    @classmethod
    def from_token(cls, token: Token) -> PoolToken:
        return cls(
            address=checked_address(token.address),
            symbol=token.symbol,
            decimals=token.decimals,
            balance=parse_units(token.balance, token.decimals),
            scaling_factor=scaling_factor(token.decimals),
        )

    @property
    def scaled_balance(self) -> Bfp:
        return scale_up(self.balance, self.scaling_factor)

    def view(self, weight: Bfp | None = None) -> Token:
        return Token(
            address=self.address,
            symbol=self.symbol,
            decimals=self.decimals,
            balance=format_units(self.balance, self.decimals),
            weight=None if weight is None else format_units(weight.value, BPT_DECIMALS),
        )


@runtime_checkable
class QuotablePool(Protocol):
    """Operations every pool simulator supports.

    Amounts are decimal strings in the relevant token's own decimals, and
    so are the returned values. BPT amounts always have 18 decimals.
    """

    kind: ClassVar[PoolKind]
    id: str
    address: str
    query: bool

    @property
    def tokens(self) -> tuple[Token, ...]: ...

    @property
    def bpt_total_supply(self) -> str: ...

    @property
    def swap_fee_percentage(self) -> str: ...

    def set_swap_fee_percentage(self, swap_fee_percentage: Amount) -> None: ...

    def get_invariant(self) -> str: ...

    def swap_given_in(
        self, token_in: str, token_out: str, amount_in: Amount, limit: Amount | None = None
    ) -> str: ...

    def swap_given_out(
        self, token_in: str, token_out: str, amount_out: Amount, limit: Amount | None = None
    ) -> str: ...

    def join_exact_tokens_in_for_bpt_out(
        self, amounts_in: Amounts, min_bpt_out: Amount | None = None
    ) -> str: ...

    def join_token_in_for_exact_bpt_out(self, token_in: str, bpt_out: Amount) -> str: ...

    def exit_exact_bpt_in_for_token_out(self, token_out: str, bpt_in: Amount) -> str: ...

    def exit_exact_bpt_in_for_tokens_out(self, bpt_in: Amount) -> list[str]: ...

    def exit_bpt_in_for_exact_tokens_out(
        self, amounts_out: Amounts, max_bpt_in: Amount | None = None
    ) -> str: ...


class BasePool:
    """Balances, fee and BPT supply shared by all pool kinds.

    Attributes:
        id: Balancer pool id
        address: Pool contract address (lowercase)
        query: When True, operations return quotes without touching balances
    """

    kind: ClassVar[PoolKind]

    def __init__(
        self,
        *,
        id: str,
        address: str,
        tokens: Sequence[Token],
        bpt_total_supply: Amount,
        swap_fee_percentage: Amount,
        max_tokens: int,
        query: bool = False,
        limits: PoolLimits = DEFAULT_POOL_LIMITS,
    ) -> None:
        self.id = id
        self.address = checked_address(address)
        self.query = query
        self._limits = limits

        if len(tokens) < limits.min_tokens:
            raise MinTokensError(
                f"{self.kind.value} pool needs at least {limits.min_tokens} tokens, "
                f"got {len(tokens)}"
            )
        if len(tokens) > max_tokens:
            raise MaxTokensError(
                f"{self.kind.value} pool allows at most {max_tokens} tokens, got {len(tokens)}"
            )

        self._tokens = [PoolToken.from_token(token) for token in tokens]
        self._check_unique_tokens()
        self._bpt_total_supply = parse_units(bpt_total_supply, BPT_DECIMALS)
        self._swap_fee = self._validate_swap_fee(swap_fee_percentage)

    # ---------------------- Accessors ----------------------

    @property
    def tokens(self) -> tuple[Token, ...]:
        return tuple(token.view() for token in self._tokens)

    @property
    def bpt_total_supply(self) -> str:
        return format_units(self._bpt_total_supply, BPT_DECIMALS)

    @property
    def swap_fee_percentage(self) -> str:
        return format_units(self._swap_fee.value, BPT_DECIMALS)

    @property
    def swap_fee(self) -> Bfp:
        """Swap fee as 18-decimal fixed-point."""
        return self._swap_fee

    def set_swap_fee_percentage(self, swap_fee_percentage: Amount) -> None:
        """Change the swap fee.

        Raises:
            MinSwapFeeError: If the fee is below the minimum
            MaxSwapFeeError: If the fee is above the maximum
        """
        self._swap_fee = self._validate_swap_fee(swap_fee_percentage)

    def _validate_swap_fee(self, swap_fee_percentage: Amount) -> Bfp:
        fee = parse_units(swap_fee_percentage, BPT_DECIMALS)
        if fee < self._limits.min_swap_fee:
            raise MinSwapFeeError(f"Swap fee {swap_fee_percentage} below minimum")
        if fee > self._limits.max_swap_fee:
            raise MaxSwapFeeError(f"Swap fee {swap_fee_percentage} above maximum")
        return Bfp(fee)

    # ---------------------- Token resolution ----------------------

    def _check_unique_tokens(self) -> None:
        """Reject pools where two tokens would resolve to the same key.

        Raises:
            DuplicateTokenError: If two tokens share a symbol or an address
        """
        symbols = [token.symbol for token in self._tokens]
        addresses = [token.address for token in self._tokens]
        if len(set(symbols)) != len(symbols):
            raise DuplicateTokenError(f"Duplicate token symbol in {symbols}")
        if len(set(addresses)) != len(addresses):
            raise DuplicateTokenError(f"Duplicate token address in {addresses}")

    def _resolve(self, token: str) -> int:
        """Index of a token given its symbol or address.

        Raises:
            UnknownTokenError: If no pool token matches
        """
        for i, pool_token in enumerate(self._tokens):
            if pool_token.symbol == token:
                return i
        address = normalize_address(token)
        for i, pool_token in enumerate(self._tokens):
            if pool_token.address == address:
                return i
        raise UnknownTokenError(f"Token {token} is not in pool {self.id}")

    def _resolve_pair(self, token_in: str, token_out: str) -> tuple[int, int]:
        index_in = self._resolve(token_in)
        index_out = self._resolve(token_out)
        if index_in == index_out:
            raise SameTokenError(f"Cannot swap {token_in} for itself")
        return index_in, index_out

    def _raw_amounts(self, amounts: Amounts) -> list[int]:
        """Native-unit amounts in pool token order.

        Raises:
            InvalidAmountsError: If amounts do not cover every token exactly once
            UnknownTokenError: If a mapping key is not a pool token
        """
        n_tokens = len(self._tokens)

        if isinstance(amounts, Mapping):
            raw: list[int | None] = [None] * n_tokens
            for key, amount in amounts.items():
                index = self._resolve(key)
                if raw[index] is not None:
                    raise InvalidAmountsError(f"Token {key} given more than once")
                raw[index] = parse_units(amount, self._tokens[index].decimals)
            missing = [self._tokens[i].symbol for i, value in enumerate(raw) if value is None]
            if missing:
                raise InvalidAmountsError(f"Missing amounts for {', '.join(missing)}")
            return [value for value in raw if value is not None]

        if isinstance(amounts, (str, bytes)) or not isinstance(amounts, Sequence):
            raise InvalidAmountsError(
                f"Amounts must be a mapping or a sequence, got {type(amounts).__name__}"
            )
        if len(amounts) != n_tokens:
            raise InvalidAmountsError(f"Expected {n_tokens} amounts, got {len(amounts)}")
        return [
            parse_units(amount, token.decimals) for amount, token in zip(amounts, self._tokens)
        ]

    def _scaled_amounts(self, raw_amounts: list[int]) -> list[Bfp]:
        return [
            scale_up(amount, token.scaling_factor)
            for amount, token in zip(raw_amounts, self._tokens)
        ]

    def _scaled_balances(self) -> list[Bfp]:
        return [token.scaled_balance for token in self._tokens]

    def _bpt_supply(self) -> Bfp:
        return Bfp(self._bpt_total_supply)

    def _parse_bpt_in(self, bpt_in: Amount) -> int:
        raw = parse_units(bpt_in, BPT_DECIMALS)
        if raw > self._bpt_total_supply:
            raise BptInExceedsSupplyError(
                f"BPT in {bpt_in} exceeds total supply {self.bpt_total_supply}"
            )
        return raw

    # ---------------------- Swap plumbing ----------------------

    def _check_min_out(
        self, symbol: str, decimals: int, raw_out: int, limit: Amount | None
    ) -> None:
        if limit is not None and raw_out < parse_units(limit, decimals):
            logger.debug(
                "pool_swap_limit_exceeded",
                pool_id=self.id,
                token_out=symbol,
                amount_out=raw_out,
                limit=limit,
            )
            raise SwapLimitError(f"Amount out {raw_out} below limit {limit}")

    def _check_max_in(self, symbol: str, decimals: int, raw_in: int, limit: Amount | None) -> None:
        if limit is not None and raw_in > parse_units(limit, decimals):
            logger.debug(
                "pool_swap_limit_exceeded",
                pool_id=self.id,
                token_in=symbol,
                amount_in=raw_in,
                limit=limit,
            )
            raise SwapLimitError(f"Amount in {raw_in} above limit {limit}")

    def _prepare_given_in(
        self, token_in: str, token_out: str, amount_in: Amount
    ) -> tuple[int, int, int, Bfp]:
        """Resolve a given-in swap and scale its amount, net of the swap fee."""
        index_in, index_out = self._resolve_pair(token_in, token_out)
        pool_token_in = self._tokens[index_in]
        raw_in = parse_units(amount_in, pool_token_in.decimals)
        scaled_in = scale_up(raw_in, pool_token_in.scaling_factor)
        return index_in, index_out, raw_in, subtract_swap_fee_amount(scaled_in, self._swap_fee)

    def _finish_given_in(
        self,
        index_in: int,
        index_out: int,
        raw_in: int,
        scaled_out: Bfp,
        limit: Amount | None,
    ) -> str:
        pool_token_out = self._tokens[index_out]
        raw_out = scale_down_down(scaled_out, pool_token_out.scaling_factor)

        self._check_min_out(pool_token_out.symbol, pool_token_out.decimals, raw_out, limit)

        self._commit("swap_given_in", {index_in: raw_in, index_out: -raw_out})
        return format_units(raw_out, pool_token_out.decimals)

    def _prepare_given_out(
        self, token_in: str, token_out: str, amount_out: Amount
    ) -> tuple[int, int, int, Bfp]:
        index_in, index_out = self._resolve_pair(token_in, token_out)
        pool_token_out = self._tokens[index_out]
        raw_out = parse_units(amount_out, pool_token_out.decimals)
        return index_in, index_out, raw_out, scale_up(raw_out, pool_token_out.scaling_factor)

    def _finish_given_out(
        self,
        index_in: int,
        index_out: int,
        raw_out: int,
        scaled_in: Bfp,
        limit: Amount | None,
    ) -> str:
        """Add the swap fee to the curve's amount in, scale down and commit."""
        pool_token_in = self._tokens[index_in]
        scaled_in_with_fee = add_swap_fee_amount(scaled_in, self._swap_fee)
        raw_in = scale_down_up(scaled_in_with_fee, pool_token_in.scaling_factor)

        self._check_max_in(pool_token_in.symbol, pool_token_in.decimals, raw_in, limit)

        self._commit("swap_given_out", {index_in: raw_in, index_out: -raw_out})
        return format_units(raw_in, pool_token_in.decimals)

    # ---------------------- Join/exit plumbing ----------------------

    def _check_bpt_out(self, bpt_out: int, min_bpt_out: Amount | None) -> None:
        if min_bpt_out is not None and bpt_out < parse_units(min_bpt_out, BPT_DECIMALS):
            raise BptLimitError(f"BPT out {bpt_out} below minimum {min_bpt_out}")

    def _check_bpt_in(self, bpt_in: int, max_bpt_in: Amount | None) -> None:
        if max_bpt_in is not None and bpt_in > parse_units(max_bpt_in, BPT_DECIMALS):
            raise BptLimitError(f"BPT in {bpt_in} above maximum {max_bpt_in}")

    def _amount_in(self, index: int, scaled: Bfp) -> int:
        return scale_down_up(scaled, self._tokens[index].scaling_factor)

    def _amount_out(self, index: int, scaled: Bfp) -> int:
        return scale_down_down(scaled, self._tokens[index].scaling_factor)

    def _format(self, index: int, raw: int) -> str:
        return format_units(raw, self._tokens[index].decimals)

    # ---------------------- Mutation ----------------------

    def _commit(self, operation: str, deltas: Mapping[int, int], bpt_delta: int = 0) -> None:
        """Apply signed balance and BPT supply changes, unless in query mode.

        The resulting balances are checked in both modes, so a quote never
        promises more than the pool holds.

        Raises:
            InsufficientBalanceError: If a balance would go negative
        """
        for index, delta in deltas.items():
            if self._tokens[index].balance + delta < 0:
                raise InsufficientBalanceError(
                    f"Pool {self.id} holds {self._tokens[index].balance} "
                    f"{self._tokens[index].symbol}, cannot pay out {-delta}"
                )
        if self._bpt_total_supply + bpt_delta < 0:
            raise BptInExceedsSupplyError(
                f"BPT in {-bpt_delta} exceeds total supply {self._bpt_total_supply}"
            )

        if self.query:
            return

        for index, delta in deltas.items():
            self._tokens[index].balance += delta
        self._bpt_total_supply += bpt_delta

        logger.debug(
            "pool_balances_updated",
            pool_id=self.id,
            operation=operation,
            deltas={self._tokens[i].symbol: d for i, d in deltas.items()},
            bpt_delta=bpt_delta,
        )
