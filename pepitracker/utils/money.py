"""Mini README: Money parsing and formatting helpers.

This module converts user supplied amounts (strings from forms, ints, floats,
Decimals) into cent-quantised ``Decimal`` values and formats them for
display. Keeping the logic isolated avoids importing web framework
dependencies when the ledger is used from tests or the CLI.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from ..errors import InvalidAmount

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Coerce ``value`` into a cent-quantised Decimal without sign checks."""

    if isinstance(value, bool):
        raise InvalidAmount("Amounts must be numeric, not booleans.")
    try:
        if isinstance(value, float):
            # str() first so 0.1 becomes Decimal("0.1"), not the binary expansion
            amount = Decimal(str(value))
        else:
            amount = Decimal(str(value).strip()) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as error:
        raise InvalidAmount(f"Amount {value!r} is not a number.") from error
    if not amount.is_finite():
        raise InvalidAmount(f"Amount {value!r} is not a finite number.")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def parse_amount(value: AmountLike) -> Decimal:
    """Return a strictly positive amount or raise ``InvalidAmount``."""

    amount = to_decimal(value)
    if amount <= ZERO:
        raise InvalidAmount(f"Amount must be greater than zero, got {amount}.")
    return amount


def parse_non_negative(value: AmountLike) -> Decimal:
    """Return an amount that may be zero (book starting amounts)."""

    amount = to_decimal(value)
    if amount < ZERO:
        raise InvalidAmount(f"Amount must not be negative, got {amount}.")
    return amount


def format_currency(amount: Decimal, currency_code: str = "USD") -> str:
    """Render ``amount`` as ``$1,234.50`` for USD or ``1,234.50 EUR`` otherwise."""

    quantised = to_decimal(amount)
    sign = "-" if quantised < ZERO else ""
    body = f"{abs(quantised):,.2f}"
    if currency_code.upper() == "USD":
        return f"{sign}${body}"
    return f"{sign}{body} {currency_code.upper()}"
