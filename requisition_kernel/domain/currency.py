"""
Currency Normalizer (``requisition_kernel.domain.currency``).

Responsibility
--------------
Converts a requisition's native-currency amount into the USD reference
amount that every routing decision is made on.  The kernel never computes
FX rates: for non-USD requisitions it trusts the human-entered USD figure.

Architecture position
---------------------
**Kernel domain layer** -- pure function.  ZERO I/O.

Failure modes
-------------
* ``MissingConversionError`` -- non-USD amount without a USD equivalent.
* ``UnsupportedCurrencyError`` -- currency outside the accepted set.
* ``ValidationError`` -- negative amount or negative USD equivalent.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum

from requisition_kernel.exceptions import (
    MissingConversionError,
    UnsupportedCurrencyError,
    ValidationError,
)


class Currency(str, Enum):
    """Currencies a requisition may be raised in."""

    USD = "USD"
    ZWG = "ZWG"
    GBP = "GBP"
    EUR = "EUR"


CURRENCY_SYMBOLS: dict[Currency, str] = {
    Currency.USD: "$",
    Currency.ZWG: "ZW$",
    Currency.GBP: "£",
    Currency.EUR: "€",
}


def parse_currency(code: str | Currency) -> Currency:
    """Coerce a currency code to ``Currency`` or raise ``UnsupportedCurrencyError``."""
    if isinstance(code, Currency):
        return code
    try:
        return Currency(str(code).strip().upper())
    except ValueError:
        raise UnsupportedCurrencyError(str(code)) from None


def parse_amount(value: Decimal | int | str, field: str = "amount") -> Decimal:
    """Coerce a monetary input to a finite, non-negative ``Decimal``."""
    if isinstance(value, float):
        raise ValidationError(f"{field} must not be a float", field=field)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from None
    if not result.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)
    if result < 0:
        raise ValidationError(f"{field} must be non-negative", field=field)
    return result


def to_usd(
    amount: Decimal | int | str,
    currency: str | Currency,
    supplied_usd_equivalent: Decimal | int | str | None = None,
) -> Decimal:
    """
    Return the USD reference amount for a requisition.

    USD amounts are returned unchanged and any supplied equivalent is
    ignored.  For every other currency the supplied equivalent is
    mandatory and returned verbatim.

    Raises:
        MissingConversionError: non-USD currency with no supplied equivalent.
        UnsupportedCurrencyError: unknown currency code.
        ValidationError: negative or malformed amounts.
    """
    resolved = parse_currency(currency)
    native = parse_amount(amount, "amount")

    if resolved is Currency.USD:
        return native

    if supplied_usd_equivalent is None:
        raise MissingConversionError(resolved.value)

    return parse_amount(supplied_usd_equivalent, "usd_equivalent")
