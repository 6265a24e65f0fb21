"""
Conversion between human-readable USDC amounts ("10.5") and the
6-decimal integer units the contracts work with (10500000).

Digits past the 6th decimal are truncated, never rounded.
"""
import re
from decimal import Decimal
from typing import Union

from eth_utils import from_wei, to_wei

from bridge_ops.constants import USDC_UNIT

_DECIMAL_AMOUNT = re.compile(r"\d+(\.\d*)?|\.\d+")


def to_units(amount: Union[str, int, Decimal]) -> int:
    """Converts a decimal amount to integer token units."""
    if isinstance(amount, bool) or isinstance(amount, float):
        raise TypeError(f"Amount must be a decimal string, got {type(amount).__name__}")
    if isinstance(amount, int):
        amount = str(amount)
    if isinstance(amount, Decimal):
        amount = format(amount, "f")
    if not isinstance(amount, str):
        raise TypeError(f"Amount must be a decimal string, got {type(amount).__name__}")

    amount = amount.strip()
    if not _DECIMAL_AMOUNT.fullmatch(amount):
        raise ValueError(f"'{amount}' is not a valid non-negative decimal amount")

    return to_wei(amount, USDC_UNIT)


def from_units(units: int) -> str:
    """Converts integer token units back to a decimal string without trailing zeros."""
    if isinstance(units, bool) or not isinstance(units, int):
        raise TypeError(f"Units must be an integer, got {type(units).__name__}")
    if units < 0:
        raise ValueError(f"Units must be non-negative, got {units}")

    value = from_wei(units, USDC_UNIT)
    return format(Decimal(value), "f")
