"""
Module: ledger_kernel.db.types
Responsibility: Annotated column types and the sanctioned money helpers.
    Centralizes precision, rounding, and the balance tolerance so every model,
    service and pure function uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, selectors/ and the engines.  MUST NOT import from any of them.

Invariants enforced:
    - No floats.  Money is Decimal with Numeric(38, 9) storage.
    - round_money() is the only rounding function for financial values.
    - BALANCE_TOLERANCE (0.01) is the single debit/credit equality threshold.

Failure modes:
    - decimal.InvalidOperation from to_decimal() on non-numeric input.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated

from sqlalchemy import Numeric

# Monetary amount: 38 digits, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Quantities share the money precision so fractional units are exact
Quantity = Annotated[Decimal, Numeric(38, 9)]

MONEY_DECIMAL_PLACES = 9
DISPLAY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")

# Debits and credits are equal when |difference| is strictly below this.
BALANCE_TOLERANCE = Decimal("0.01")


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int/str/Decimal to Decimal.

    Floats are rejected: binary floating point cannot represent most
    currency amounts exactly.
    """
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted; pass Decimal or str")
    if isinstance(value, Decimal):
        return value
    return Decimal(value)


def round_money(
    value: Decimal,
    decimal_places: int = DISPLAY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Args:
        value: Decimal amount.
        decimal_places: Places to keep (default 2).
        rounding: decimal rounding mode (default ROUND_HALF_UP).

    Returns:
        Quantized Decimal.
    """
    quantum = Decimal(10) ** -decimal_places
    return value.quantize(quantum, rounding=rounding)


def is_within_tolerance(difference: Decimal) -> bool:
    """True when |difference| is strictly below BALANCE_TOLERANCE."""
    return abs(difference) < BALANCE_TOLERANCE
