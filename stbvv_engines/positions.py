"""
Position and discount value objects.

A position is one billable line item. Its billing type decides which
amounts matter, so each billing type is its own frozen dataclass carrying
only the fields that type uses:

    ObjectValuePosition  object_value, tenth_rate, fee_table
    HourlyPosition       hourly_rate, hours
    FlatRatePosition     flat_rate

All three share ``id``, ``activity``, ``description``, ``quantity`` and
``apply_expense_fee``.

Constructors coerce numbers to Decimal but never reject values. A negative
hourly rate or a tenth rate of 0/0 is representable; the calculator turns
it into a zero amount and the validation pipeline reports it. A tenth rate
that is neither a TenthRate nor a mapping becomes 0/0.

Collaborators persist positions as flat camelCase mappings
(``billingType``, ``objectValue``, ``tenthRate`` ...). ``position_from_dict``
and ``position_to_dict`` convert at that boundary.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Union

from stbvv_engines.fee_tables import FeeTableId
from stbvv_kernel.domain.values import ZERO, to_decimal


class BillingType(str, Enum):
    """How a position is billed."""

    OBJECT_VALUE = "objectValue"  # Wertgebühr via fee table
    HOURLY = "hourly"  # Zeitgebühr
    FLAT_RATE = "flatRate"  # Pauschale


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def _coerce_fee_table(value: Any) -> FeeTableId | str:
    if isinstance(value, FeeTableId):
        return value
    text = "" if value is None else str(value).strip().upper()
    try:
        return FeeTableId(text)
    except ValueError:
        return text


@dataclass(frozen=True)
class TenthRate:
    """
    Fractional multiplier on the table fee, e.g. 6/10 (Zehntelsatz) or
    25/20 (Zwanzigstelsatz).
    """

    numerator: Decimal = Decimal("10")
    denominator: Decimal = Decimal("10")

    def __post_init__(self) -> None:
        object.__setattr__(self, "numerator", to_decimal(self.numerator))
        object.__setattr__(self, "denominator", to_decimal(self.denominator))

    @property
    def factor(self) -> Decimal:
        """numerator / denominator; 0 when either is non-positive."""
        if self.numerator <= ZERO or self.denominator <= ZERO:
            return ZERO
        return self.numerator / self.denominator

    def __str__(self) -> str:
        return f"{self.numerator.normalize():f}/{self.denominator.normalize():f}"


def _coerce_tenth_rate(value: Any) -> TenthRate:
    """TenthRate for a persisted value; unusable shapes get a zero factor."""
    if isinstance(value, TenthRate):
        return value
    if isinstance(value, Mapping):
        # Extra keys (e.g. a display label) are ignored.
        return TenthRate(numerator=value.get("numerator"), denominator=value.get("denominator"))
    return TenthRate(numerator=ZERO, denominator=ZERO)


def _coerce_flag(value: Any) -> bool:
    """Boolean for a persisted flag. Only True and "true" switch it on."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


@dataclass(frozen=True, kw_only=True)
class _PositionBase:
    """Fields shared by every billing type."""

    billing_type: ClassVar[BillingType]

    id: str
    activity: str = ""
    description: str = ""
    quantity: Any = 1
    apply_expense_fee: bool = False

    @property
    def effective_quantity(self) -> Decimal:
        """Quantity as Decimal; 0 when missing or not positive."""
        value = to_decimal(self.quantity)
        return value if value > ZERO else ZERO


@dataclass(frozen=True, kw_only=True)
class ObjectValuePosition(_PositionBase):
    """Billed from a fee table by object value (Gegenstandswert)."""

    billing_type: ClassVar[BillingType] = BillingType.OBJECT_VALUE

    object_value: Decimal = ZERO
    tenth_rate: TenthRate = field(default_factory=TenthRate)
    fee_table: FeeTableId | str = FeeTableId.A

    def __post_init__(self) -> None:
        object.__setattr__(self, "object_value", to_decimal(self.object_value))
        object.__setattr__(self, "fee_table", _coerce_fee_table(self.fee_table))
        object.__setattr__(self, "tenth_rate", _coerce_tenth_rate(self.tenth_rate))


@dataclass(frozen=True, kw_only=True)
class HourlyPosition(_PositionBase):
    """Billed by time: hourly_rate x hours."""

    billing_type: ClassVar[BillingType] = BillingType.HOURLY

    hourly_rate: Decimal = ZERO
    hours: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "hourly_rate", to_decimal(self.hourly_rate))
        object.__setattr__(self, "hours", to_decimal(self.hours))


@dataclass(frozen=True, kw_only=True)
class FlatRatePosition(_PositionBase):
    """Billed at a fixed amount."""

    billing_type: ClassVar[BillingType] = BillingType.FLAT_RATE

    flat_rate: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "flat_rate", to_decimal(self.flat_rate))


Position = Union[ObjectValuePosition, HourlyPosition, FlatRatePosition]


@dataclass(frozen=True)
class Discount:
    """Document-level discount, applied once before VAT."""

    type: DiscountType
    value: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", DiscountType(self.type))
        object.__setattr__(self, "value", to_decimal(self.value))


# ---------------------------------------------------------------------------
# Mapping boundary
# ---------------------------------------------------------------------------

# camelCase (persisted) -> snake_case (attribute)
_FIELD_ALIASES: dict[str, str] = {
    "billingType": "billing_type",
    "objectValue": "object_value",
    "tenthRate": "tenth_rate",
    "feeTable": "fee_table",
    "hourlyRate": "hourly_rate",
    "flatRate": "flat_rate",
    "applyExpenseFee": "apply_expense_fee",
}

_POSITION_TYPES: dict[BillingType, type] = {
    BillingType.OBJECT_VALUE: ObjectValuePosition,
    BillingType.HOURLY: HourlyPosition,
    BillingType.FLAT_RATE: FlatRatePosition,
}

_TYPE_FIELDS: dict[BillingType, tuple[str, ...]] = {
    BillingType.OBJECT_VALUE: ("object_value", "tenth_rate", "fee_table"),
    BillingType.HOURLY: ("hourly_rate", "hours"),
    BillingType.FLAT_RATE: ("flat_rate",),
}


def normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``data`` with camelCase keys translated to attribute names."""
    return {_FIELD_ALIASES.get(key, key): value for key, value in data.items()}


def parse_billing_type(value: Any) -> BillingType | None:
    """BillingType for a raw value, None if unrecognised."""
    if isinstance(value, BillingType):
        return value
    try:
        return BillingType(value)
    except ValueError:
        return None


def position_from_dict(data: Mapping[str, Any]) -> Position:
    """
    Build the typed position for a persisted mapping.

    Fields that do not belong to the billing type are ignored. A missing
    billing type means object-value billing.

    Raises:
        ValueError: If billingType is present but not a known billing type.
    """
    fields = normalize_keys(data)
    raw_type = fields.pop("billing_type", None)
    billing_type = BillingType.OBJECT_VALUE if raw_type in (None, "") else parse_billing_type(raw_type)
    if billing_type is None:
        raise ValueError(f"Unknown billing type: {raw_type!r}")

    kwargs: dict[str, Any] = {"id": str(fields.get("id") or "")}
    for name in ("activity", "description"):
        if fields.get(name) is not None:
            kwargs[name] = str(fields[name])
    if "quantity" in fields:
        kwargs["quantity"] = fields["quantity"]
    kwargs["apply_expense_fee"] = _coerce_flag(fields.get("apply_expense_fee"))
    for name in _TYPE_FIELDS[billing_type]:
        if fields.get(name) is not None:
            kwargs[name] = fields[name]
    return _POSITION_TYPES[billing_type](**kwargs)


def position_to_dict(position: Position) -> dict[str, Any]:
    """Flat camelCase mapping for a position (inverse of position_from_dict)."""
    data: dict[str, Any] = {
        "id": position.id,
        "activity": position.activity,
        "description": position.description,
        "quantity": position.quantity,
        "applyExpenseFee": position.apply_expense_fee,
        "billingType": position.billing_type.value,
    }
    if isinstance(position, ObjectValuePosition):
        data["objectValue"] = position.object_value
        data["tenthRate"] = {
            "numerator": position.tenth_rate.numerator,
            "denominator": position.tenth_rate.denominator,
        }
        data["feeTable"] = getattr(position.fee_table, "value", position.fee_table)
    elif isinstance(position, HourlyPosition):
        data["hourlyRate"] = position.hourly_rate
        data["hours"] = position.hours
    else:
        data["flatRate"] = position.flat_rate
    return data


def discount_from_dict(data: Mapping[str, Any] | None) -> Discount | None:
    """Discount for a persisted ``{type, value}`` mapping; None passes through."""
    if data is None:
        return None
    return Discount(type=DiscountType(data["type"]), value=data.get("value", 0))


def parse_discount_type(value: Any) -> DiscountType | None:
    """DiscountType for a raw value, None if unrecognised."""
    if isinstance(value, DiscountType):
        return value
    try:
        return DiscountType(value)
    except ValueError:
        return None
