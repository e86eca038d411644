"""Balancer pool construction from provider data.

Validates the plain payload a data provider (subgraph, node, fixture file)
hands over and builds the matching pool simulator. Field names follow the
Balancer subgraph; snake_case names are accepted as well.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import structlog
from pydantic import BaseModel, Field

from balancer_math.types import Address, DecimalString

from .base import PoolKind, QuotablePool, Token
from .config import DEFAULT_POOL_LIMITS, PoolLimits
from .errors import MissingPoolParameterError, UnsupportedPoolTypeError
from .linear import LinearPool
from .stable import StablePool
from .weighted import WeightedPool

logger = structlog.get_logger()


class TokenData(BaseModel):
    """A pool token as reported by the data provider."""

    address: Address
    symbol: str
    decimals: int = Field(ge=0, le=18)
    balance: DecimalString
    weight: DecimalString | None = None

    model_config = {"populate_by_name": True}


class PoolData(BaseModel):
    """Pool state as reported by the data provider.

    Only the fields of the pool's own type are required: ``weight`` on
    every token for weighted pools, ``amp`` for stable pools, and the
    token indexes and targets for linear pools.
    """

    id: str
    address: Address
    pool_type: str = Field(alias="poolType")
    swap_fee: DecimalString = Field(alias="swapFee")
    total_shares: DecimalString = Field(alias="totalShares")
    tokens: list[TokenData]

    amp: DecimalString | None = None

    main_index: int | None = Field(default=None, alias="mainIndex", ge=0)
    wrapped_index: int | None = Field(default=None, alias="wrappedIndex", ge=0)
    lower_target: DecimalString | None = Field(default=None, alias="lowerTarget")
    upper_target: DecimalString | None = Field(default=None, alias="upperTarget")
    wrapped_token_rate: DecimalString | None = Field(default=None, alias="wrappedTokenRate")

    model_config = {"populate_by_name": True}


def _token(data: TokenData) -> Token:
    return Token(
        address=data.address,
        symbol=data.symbol,
        decimals=data.decimals,
        balance=data.balance,
        weight=data.weight,
    )


def _require(data: PoolData, field: str) -> Any:
    value = getattr(data, field)
    if value is None:
        logger.warning("pool_missing_parameter", pool_id=data.id, field=field)
        raise MissingPoolParameterError(f"{data.pool_type} pool {data.id} has no {field}")
    return value


def _build_weighted(data: PoolData, query: bool, limits: PoolLimits) -> WeightedPool:
    for token in data.tokens:
        if token.weight is None:
            logger.warning("pool_missing_parameter", pool_id=data.id, field="weight")
            raise MissingPoolParameterError(f"Token {token.symbol} of pool {data.id} has no weight")

    return WeightedPool(
        id=data.id,
        address=data.address,
        tokens=[_token(token) for token in data.tokens],
        bpt_total_supply=data.total_shares,
        swap_fee_percentage=data.swap_fee,
        query=query,
        limits=limits,
    )


def _build_stable(data: PoolData, query: bool, limits: PoolLimits) -> StablePool:
    return StablePool(
        id=data.id,
        address=data.address,
        tokens=[_token(token) for token in data.tokens],
        bpt_total_supply=data.total_shares,
        swap_fee_percentage=data.swap_fee,
        amplification_parameter=_require(data, "amp"),
        query=query,
        limits=limits,
    )


def _build_linear(data: PoolData, query: bool, limits: PoolLimits) -> LinearPool:
    main_index = _require(data, "main_index")
    wrapped_index = _require(data, "wrapped_index")
    for field, index in (("main_index", main_index), ("wrapped_index", wrapped_index)):
        if index >= len(data.tokens):
            logger.warning(
                "pool_invalid_token_index",
                pool_id=data.id,
                field=field,
                index=index,
                n_tokens=len(data.tokens),
            )
            raise MissingPoolParameterError(
                f"{field} {index} out of range for {len(data.tokens)} tokens"
            )

    return LinearPool(
        id=data.id,
        address=data.address,
        main_token=_token(data.tokens[main_index]),
        wrapped_token=_token(data.tokens[wrapped_index]),
        bpt_total_supply=data.total_shares,
        swap_fee_percentage=data.swap_fee,
        lower_target=_require(data, "lower_target"),
        upper_target=_require(data, "upper_target"),
        wrapped_token_rate=data.wrapped_token_rate or "1",
        query=query,
        limits=limits,
    )


_BUILDERS: dict[PoolKind, Callable[[PoolData, bool, PoolLimits], QuotablePool]] = {
    PoolKind.WEIGHTED: _build_weighted,
    PoolKind.STABLE: _build_stable,
    PoolKind.LINEAR: _build_linear,
}


def build_pool(
    data: PoolData | Mapping[str, Any],
    *,
    query: bool = False,
    limits: PoolLimits = DEFAULT_POOL_LIMITS,
) -> QuotablePool:
    """Build a pool simulator from provider data.

    Args:
        data: A PoolData, or a raw mapping to validate into one
        query: Start the pool in query mode
        limits: Protocol bounds to validate against

    Returns:
        WeightedPool, StablePool or LinearPool, depending on ``poolType``

    Raises:
        pydantic.ValidationError: If the payload is malformed (e.g. float amounts)
        UnsupportedPoolTypeError: If ``poolType`` has no simulator
        MissingPoolParameterError: If a field the pool type needs is absent
        BalancerError: If the pool violates a construction bound
    """
    if not isinstance(data, PoolData):
        data = PoolData.model_validate(data)

    try:
        kind = PoolKind(data.pool_type)
    except ValueError as err:
        logger.warning("pool_unsupported_type", pool_id=data.id, pool_type=data.pool_type)
        raise UnsupportedPoolTypeError(
            f"Pool {data.id} has unsupported type {data.pool_type}"
        ) from err

    pool = _BUILDERS[kind](data, query, limits)
    logger.debug(
        "pool_built",
        pool_id=data.id,
        pool_type=kind.value,
        n_tokens=len(pool.tokens),
        query=query,
    )
    return pool
