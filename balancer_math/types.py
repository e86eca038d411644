"""Shared type definitions for pool construction input.

Numeric fields cross the boundary as decimal strings: a float cannot carry
an 18-decimal amount exactly, so floats are rejected rather than converted.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated, Any

from pydantic import BeforeValidator, Field


def validate_decimal_string(value: Any) -> str:
    """Validate that a value is a finite, non-negative decimal string.

    Args:
        value: Value to validate (string or int)

    Returns:
        The value as a decimal string

    Raises:
        ValueError: If value is a float, not a number, negative or not finite
    """
    # bool is an int subclass, but True is not an amount
    if isinstance(value, bool):
        raise ValueError("Decimal amount cannot be a boolean")

    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Decimal amount cannot be negative: {value}")
        return str(value)

    if not isinstance(value, str):
        raise ValueError(f"Decimal amount must be string or int, got {type(value).__name__}")

    try:
        parsed = Decimal(value.strip())
    except InvalidOperation as err:
        raise ValueError(f"Decimal amount must be a decimal string: '{value}'") from err

    if not parsed.is_finite():
        raise ValueError(f"Decimal amount must be finite: '{value}'")
    if parsed < 0:
        raise ValueError(f"Decimal amount cannot be negative: {value}")

    return value.strip()


# Ethereum address (40 hex chars after 0x prefix)
Address = Annotated[str, Field(pattern=r"^0x[a-fA-F0-9]{40}$")]

# Non-negative human-scale amount as decimal string (validated)
DecimalString = Annotated[
    str,
    BeforeValidator(validate_decimal_string),
    Field(description="Non-negative decimal amount as string"),
]


def normalize_address(address: str, *, validate: bool = False) -> str:
    """Normalize an Ethereum address to lowercase.

    Args:
        address: An Ethereum address (with or without 0x prefix)
        validate: If True, raises ValueError for invalid addresses.
                  If False (default), returns normalized form without validation.

    Returns:
        Lowercase address with 0x prefix

    Raises:
        ValueError: If validate=True and address is not a valid Ethereum address
    """
    addr = address.lower()
    if not addr.startswith("0x"):
        addr = "0x" + addr

    if validate and not is_valid_address(addr):
        raise ValueError(f"Invalid address: {address}")

    return addr


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid Ethereum address."""
    if not isinstance(address, str):
        return False
    if not address.startswith("0x"):
        return False
    if len(address) != 42:
        return False
    try:
        int(address, 16)
        return True
    except ValueError:
        return False
