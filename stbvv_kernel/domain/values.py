"""
Decimal value helpers for fee amounts.

All fee arithmetic runs on ``Decimal``. Values arriving from forms or
persisted documents may be ``int``, ``str`` or ``float``; floats are
converted through their shortest ``repr`` so ``0.1`` becomes
``Decimal("0.1")`` rather than its binary expansion.

Amounts are not rounded during calculation. ``round_cents`` is applied
only when a caller asks for display values.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """
    Coerce a value to Decimal.

    Returns ``default`` for None, booleans, NaN/infinite values and
    anything that does not parse as a number.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return default
    if not result.is_finite():
        return default
    return result


def is_number(value: Any) -> bool:
    """True if value is a finite int, float, Decimal or numeric string."""
    return to_decimal(value, default=None) is not None


def non_negative(value: Decimal) -> Decimal:
    """Clamp a Decimal at zero."""
    return value if value > ZERO else ZERO


def round_cents(value: Decimal) -> Decimal:
    """Round to whole cents, commercial rounding (half up)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_euro(value: Decimal) -> str:
    """
    Format an amount in German notation, e.g. ``1.234,56 €``.

    Used for validation messages shown to the user.
    """
    rounded = round_cents(value)
    sign = "-" if rounded < ZERO else ""
    whole, _, frac = f"{abs(rounded):.2f}".partition(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"{sign}{'.'.join(groups)},{frac} €"
