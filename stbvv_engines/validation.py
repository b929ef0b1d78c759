"""
Validation Pipeline (``stbvv_engines.validation``).

Responsibility
--------------
Judges whether positions and documents are acceptable for export and
returns every problem found as data. Nothing here raises for user input.

Layers, all of which always run for a position:

1. Structural (error) -- required fields, numbers, allowed values,
   plausibility ceilings.
2. Completeness (error) -- the amounts the billing type needs are positive.
3. Statutory (warning) -- object value below the § 24 StBVV minimum for
   the activity; hourly rate outside the § 13 StBVV time-fee range.
4. Plausibility hints (info) -- tenth rate above the full fee, unusually
   high quantity.

``validate_document`` adds the document-level checks (at least one position,
position limit, discount, low total, VAT switched off) next to the totals.

Architecture position
---------------------
**Engines layer** -- pure functions, ZERO I/O. Reads the minimum-value
registry, fee-table ids and rate thresholds from ``EngineConfig``.

Export gating
-------------
``error`` issues block document generation. ``warning`` and ``info`` issues
are shown to the user but never block.

Issue fields use the persisted camelCase names (``objectValue``,
``tenthRate.numerator`` ...) so a form can attach messages to its inputs.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from stbvv_engines.calculator import TotalsResult, calculate_total
from stbvv_engines.engine_config import EngineConfig, resolve_config
from stbvv_engines.positions import (
    BillingType,
    Discount,
    DiscountType,
    Position,
    TenthRate,
    normalize_keys,
    parse_billing_type,
    parse_discount_type,
    position_to_dict,
)
from stbvv_engines.tracer import traced_engine
from stbvv_kernel.domain.values import HUNDRED, ZERO, format_euro, to_decimal
from stbvv_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.validation")


class Severity(str, Enum):
    """Issue severity. Only ERROR blocks export."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ValidationIssue:
    """One finding, addressed to a single field."""

    field: str
    severity: Severity
    code: str
    message: str
    suggestion: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    """All issues found for one position."""

    issues: tuple[ValidationIssue, ...] = ()

    @property
    def errors(self) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.issues if i.severity == Severity.ERROR)

    @property
    def warnings(self) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.issues if i.severity == Severity.WARNING)

    @property
    def has_errors(self) -> bool:
        return any(i.severity == Severity.ERROR for i in self.issues)

    @property
    def has_warnings(self) -> bool:
        return any(i.severity == Severity.WARNING for i in self.issues)

    @property
    def is_valid(self) -> bool:
        """True when nothing blocks export."""
        return not self.has_errors

    def for_field(self, name: str) -> tuple[ValidationIssue, ...]:
        return tuple(i for i in self.issues if i.field == name)


@dataclass(frozen=True)
class ValidationSummary:
    """Result of validating a list of positions."""

    is_valid: bool
    total_errors: int
    total_warnings: int
    incomplete_count: int
    position_results: dict[str, ValidationResult] = field(default_factory=dict)


@dataclass(frozen=True)
class DocumentValidationResult:
    """Export gate for a whole document: messages plus the totals checked."""

    errors: tuple[str, ...]
    warnings: tuple[str, ...]
    totals: TotalsResult

    @property
    def is_valid(self) -> bool:
        return not self.errors


# ============================================================================
# Limits and messages
# ============================================================================

SCHEMA_ERROR = "SCHEMA_VALIDATION_ERROR"

_MAX_ACTIVITY_LENGTH = 200
_MAX_DESCRIPTION_LENGTH = 1000
_MAX_QUANTITY = Decimal("999")
_HIGH_QUANTITY = Decimal("50")
_MIN_NUMERATOR = Decimal("0.1")
_MAX_NUMERATOR = Decimal("50")
_DENOMINATORS = (Decimal("10"), Decimal("20"))


@dataclass(frozen=True)
class _AmountRule:
    """Structural rule for one numeric position field."""

    field: str
    maximum: Decimal
    not_a_number: str
    negative: str
    too_large: str


_AMOUNT_RULES: dict[str, _AmountRule] = {
    "object_value": _AmountRule(
        "objectValue",
        Decimal("100000000"),
        "Gegenstandswert muss eine Zahl sein",
        "Gegenstandswert darf nicht negativ sein",
        "Gegenstandswert darf maximal 100.000.000 € betragen",
    ),
    "hourly_rate": _AmountRule(
        "hourlyRate",
        Decimal("500"),
        "Stundensatz muss eine Zahl sein",
        "Stundensatz darf nicht negativ sein",
        "Stundensatz darf maximal 500 € betragen",
    ),
    "hours": _AmountRule(
        "hours",
        Decimal("1000"),
        "Stunden müssen eine Zahl sein",
        "Stunden dürfen nicht negativ sein",
        "Stunden dürfen maximal 1000 sein",
    ),
    "flat_rate": _AmountRule(
        "flatRate",
        Decimal("100000"),
        "Pauschale muss eine Zahl sein",
        "Pauschale darf nicht negativ sein",
        "Pauschale darf maximal 100.000 € betragen",
    ),
}

# attribute -> (field, code, message) for the completeness layer
_REQUIRED_AMOUNTS: dict[BillingType, tuple[tuple[str, str, str, str], ...]] = {
    BillingType.OBJECT_VALUE: (
        ("object_value", "objectValue", "OBJECT_VALUE_REQUIRED",
         "Gegenstandswert muss größer als 0 sein"),
    ),
    BillingType.HOURLY: (
        ("hourly_rate", "hourlyRate", "HOURLY_RATE_REQUIRED",
         "Stundensatz muss größer als 0 sein"),
        ("hours", "hours", "HOURS_REQUIRED",
         "Stundenanzahl muss größer als 0 sein"),
    ),
    BillingType.FLAT_RATE: (
        ("flat_rate", "flatRate", "FLAT_RATE_REQUIRED",
         "Pauschalbetrag muss größer als 0 sein"),
    ),
}

_TYPE_AMOUNTS: dict[BillingType, tuple[str, ...]] = {
    billing_type: tuple(rule[0] for rule in rules)
    for billing_type, rules in _REQUIRED_AMOUNTS.items()
}


def _error(field_name: str, message: str, code: str = SCHEMA_ERROR) -> ValidationIssue:
    return ValidationIssue(field=field_name, severity=Severity.ERROR, code=code, message=message)


def _paragraph_label(paragraph: str) -> str:
    if not paragraph:
        return "§ 24 StBVV"
    return paragraph if "StBVV" in paragraph else f"{paragraph} StBVV"


def _field_view(position: Position | Mapping[str, Any]) -> dict[str, Any]:
    """Flat snake_case view of a typed position or a persisted mapping."""
    if isinstance(position, Mapping):
        view = normalize_keys(position)
    else:
        view = normalize_keys(position_to_dict(position))
    tenth_rate = view.get("tenth_rate")
    if isinstance(tenth_rate, TenthRate):
        view["tenth_rate"] = {
            "numerator": tenth_rate.numerator,
            "denominator": tenth_rate.denominator,
        }
    return view


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# ============================================================================
# Layers
# ============================================================================


def _check_structure(view: Mapping[str, Any], billing_type: BillingType | None,
                     config: EngineConfig) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    if not _text(view.get("id")).strip():
        issues.append(_error("id", "ID ist erforderlich"))

    issues.extend(_check_activity(view.get("activity")))

    if len(_text(view.get("description"))) > _MAX_DESCRIPTION_LENGTH:
        issues.append(_error(
            "description", f"Beschreibung darf maximal {_MAX_DESCRIPTION_LENGTH} Zeichen haben"
        ))

    raw_type = view.get("billing_type")
    if raw_type in (None, ""):
        issues.append(_error("billingType", "Abrechnungsart ist erforderlich"))
    elif billing_type is None:
        issues.append(_error("billingType", f"Unbekannte Abrechnungsart: {raw_type}"))

    flag = view.get("apply_expense_fee")
    if flag is not None and not isinstance(flag, bool):
        issues.append(_error("applyExpenseFee", "Auslagenpauschale muss ja oder nein sein"))

    issues.extend(_check_quantity(view.get("quantity")))

    if billing_type is not None:
        for attr in _TYPE_AMOUNTS[billing_type]:
            issues.extend(_check_amount(_AMOUNT_RULES[attr], view.get(attr)))

    if billing_type == BillingType.OBJECT_VALUE:
        issues.extend(_check_tenth_rate(view.get("tenth_rate")))
        fee_table = _text(view.get("fee_table")).strip()
        if not fee_table:
            issues.append(_error("feeTable", "Gebührentabelle ist erforderlich"))
        elif fee_table.upper() not in config.fee_tables:
            allowed = ", ".join(config.fee_tables.table_ids)
            issues.append(_error("feeTable", f"Gebührentabelle muss eine von {allowed} sein"))

    return issues


def _check_activity(raw: Any) -> list[ValidationIssue]:
    activity = _text(raw)
    if not activity.strip():
        return [_error("activity", "Bitte wählen Sie eine Tätigkeit aus", "ACTIVITY_REQUIRED")]
    if len(activity) > _MAX_ACTIVITY_LENGTH:
        return [_error("activity", f"Tätigkeit darf maximal {_MAX_ACTIVITY_LENGTH} Zeichen haben")]
    return []


def _check_amount(rule: _AmountRule, raw: Any) -> list[ValidationIssue]:
    # Missing amounts are reported by the completeness layer.
    if raw is None:
        return []
    value = to_decimal(raw, default=None)
    if value is None:
        return [_error(rule.field, rule.not_a_number)]
    if value < ZERO:
        return [_error(rule.field, rule.negative)]
    if value > rule.maximum:
        return [_error(rule.field, rule.too_large)]
    return []


def _check_quantity(raw: Any) -> list[ValidationIssue]:
    if raw is None:
        return [_error("quantity", "Menge ist erforderlich")]
    value = to_decimal(raw, default=None)
    if value is None:
        return [_error("quantity", "Menge muss eine Zahl sein")]
    if value < 1:
        return [_error("quantity", "Menge muss mindestens 1 sein", "QUANTITY_INVALID")]
    if value != value.to_integral_value():
        return [_error("quantity", "Menge muss eine ganze Zahl sein")]
    if value > _MAX_QUANTITY:
        return [_error("quantity", f"Menge darf maximal {_MAX_QUANTITY} sein")]
    if value > _HIGH_QUANTITY:
        return [ValidationIssue(
            field="quantity",
            severity=Severity.INFO,
            code="QUANTITY_HIGH",
            message="Ungewöhnlich hohe Menge - bitte prüfen",
        )]
    return []


def _check_tenth_rate(raw: Any) -> list[ValidationIssue]:
    if not isinstance(raw, Mapping):
        return [_error("tenthRate", "Zehntelsatz ist erforderlich")]

    issues: list[ValidationIssue] = []
    numerator = to_decimal(raw.get("numerator"), default=None)
    denominator = to_decimal(raw.get("denominator"), default=None)

    if numerator is None:
        issues.append(_error("tenthRate.numerator", "Ungültiger Zahlenwert"))
    elif numerator <= ZERO:
        issues.append(_error(
            "tenthRate.numerator", "Satz muss größer als 0 sein", "RATE_NUMERATOR_INVALID"
        ))
    elif numerator < _MIN_NUMERATOR:
        issues.append(_error("tenthRate.numerator", "Zähler muss mindestens 0,1 sein"))
    elif numerator > _MAX_NUMERATOR:
        issues.append(_error("tenthRate.numerator", "Zähler darf maximal 50 sein"))

    if denominator not in _DENOMINATORS:
        issues.append(_error("tenthRate.denominator", "Nenner muss 10 oder 20 sein"))
    elif numerator is not None and numerator > denominator:
        label = "Zehntelsatz über 10/10" if denominator == 10 else "Zwanzigstelsatz über 20/20"
        issues.append(ValidationIssue(
            field="tenthRate.numerator",
            severity=Severity.INFO,
            code="RATE_ABOVE_FULL",
            message=f"{label} bedeutet mehr als die volle Gebühr",
        ))
    return issues


def _check_completeness(view: Mapping[str, Any], billing_type: BillingType | None) -> list[ValidationIssue]:
    if billing_type is None:
        return []
    issues = []
    for attr, field_name, code, message in _REQUIRED_AMOUNTS[billing_type]:
        if to_decimal(view.get(attr)) <= ZERO:
            issues.append(_error(field_name, message, code))
    return issues


def _check_statutory(view: Mapping[str, Any], billing_type: BillingType | None,
                     config: EngineConfig) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []

    if billing_type == BillingType.OBJECT_VALUE:
        object_value = to_decimal(view.get("object_value"))
        activity = _text(view.get("activity")).strip()
        entry = config.minimum_values.entry_for(activity)
        if entry is not None and ZERO < object_value < entry.min_value:
            paragraph = _paragraph_label(entry.paragraph)
            minimum = format_euro(entry.min_value)
            issues.append(ValidationIssue(
                field="objectValue",
                severity=Severity.WARNING,
                code="BELOW_MIN_OBJECT_VALUE",
                message=f'Mindestgegenstandswert für "{activity}" ist {minimum} ({paragraph})',
                suggestion=f"Mindestgegenstandswert von {minimum} übernehmen ({paragraph})",
            ))

    elif billing_type == BillingType.HOURLY:
        rates = config.rates
        hourly_rate = to_decimal(view.get("hourly_rate"))
        if ZERO < hourly_rate < rates.min_hourly_rate:
            issues.append(ValidationIssue(
                field="hourlyRate",
                severity=Severity.WARNING,
                code="BELOW_MIN_HOURLY_RATE",
                message=(
                    "Stundensatz liegt unter dem Mindestsatz von "
                    f"{format_euro(rates.min_hourly_rate)} (§ 13 StBVV)"
                ),
                suggestion=f"Mindestsatz von {format_euro(rates.min_hourly_rate)} übernehmen",
            ))
        elif hourly_rate > rates.max_hourly_rate:
            issues.append(ValidationIssue(
                field="hourlyRate",
                severity=Severity.WARNING,
                code="ABOVE_MAX_HOURLY_RATE",
                message=(
                    "Stundensatz überschreitet den Höchstsatz von "
                    f"{format_euro(rates.max_hourly_rate)} (§ 13 StBVV)"
                ),
                suggestion=f"Höchstsatz von {format_euro(rates.max_hourly_rate)} übernehmen",
            ))

    return issues


# ============================================================================
# Public API
# ============================================================================


@traced_engine("position_validator", "1.0", fingerprint_fields=("position",))
def validate_position(
    position: Position | Mapping[str, Any],
    *,
    config: EngineConfig | None = None,
) -> ValidationResult:
    """
    Validate one position through every layer.

    Args:
        position: A typed position, or a persisted camelCase mapping.
        config: Engine configuration; the active StBVV set when omitted.

    Returns:
        ValidationResult with the issues in layer order.
    """
    cfg = resolve_config(config)
    view = _field_view(position)
    billing_type = parse_billing_type(view.get("billing_type"))

    issues: list[ValidationIssue] = []
    issues.extend(_check_structure(view, billing_type, cfg))
    issues.extend(_check_completeness(view, billing_type))
    issues.extend(_check_statutory(view, billing_type, cfg))
    result = ValidationResult(issues=tuple(issues))

    logger.debug("position_validated", extra={
        "position_id": _text(view.get("id")),
        "billing_type": billing_type.value if billing_type else None,
        "error_count": len(result.errors),
        "warning_count": len(result.warnings),
        "issue_codes": [i.code for i in result.issues],
    })
    return result


def is_position_complete(position: Position | Mapping[str, Any]) -> bool:
    """Activity chosen and every amount the billing type needs is positive."""
    view = _field_view(position)
    if not _text(view.get("activity")).strip():
        return False
    billing_type = parse_billing_type(view.get("billing_type"))
    if billing_type is None:
        return False
    return not _check_completeness(view, billing_type)


def validate_positions(
    positions: Iterable[Position | Mapping[str, Any]],
    *,
    config: EngineConfig | None = None,
) -> ValidationSummary:
    """
    Validate a list of positions.

    ``position_results`` is keyed by position id in list order. Positions
    sharing an id keep the result of the last one; the counts include all.
    """
    cfg = resolve_config(config)
    results: dict[str, ValidationResult] = {}
    total_errors = 0
    total_warnings = 0
    incomplete = 0

    for position in positions:
        position_id = _text(_field_view(position).get("id"))
        with LogContext.bind(position_id=position_id or None):
            result = validate_position(position, config=cfg)
        results[position_id] = result
        total_errors += len(result.errors)
        total_warnings += len(result.warnings)
        if not is_position_complete(position):
            incomplete += 1

    summary = ValidationSummary(
        is_valid=total_errors == 0,
        total_errors=total_errors,
        total_warnings=total_warnings,
        incomplete_count=incomplete,
        position_results=results,
    )
    logger.info("positions_validated", extra={
        "position_count": len(results),
        "total_errors": total_errors,
        "total_warnings": total_warnings,
        "incomplete_count": incomplete,
    })
    return summary


def validate_discount(discount: Discount | Mapping[str, Any] | None) -> list[ValidationIssue]:
    """Issues for a document discount. No discount is always valid."""
    if discount is None:
        return []
    if isinstance(discount, Discount):
        kind, raw_value = discount.type, discount.value
    else:
        kind, raw_value = parse_discount_type(discount.get("type")), discount.get("value")
        if kind is None:
            return [_error("discount.type", "Rabattart muss Prozent oder Festbetrag sein",
                           "DISCOUNT_TYPE_INVALID")]

    value = to_decimal(raw_value, default=None)
    if value is None:
        return [_error("discount.value", "Rabatt muss eine Zahl sein", "DISCOUNT_VALUE_INVALID")]
    if value < ZERO:
        return [_error("discount.value", "Rabatt darf nicht negativ sein", "DISCOUNT_NEGATIVE")]
    if kind == DiscountType.PERCENTAGE and value > HUNDRED:
        return [_error("discount.value", "Prozentualer Rabatt darf maximal 100 % betragen",
                       "DISCOUNT_PERCENTAGE_TOO_HIGH")]
    return []


@traced_engine(
    "document_validator",
    "1.0",
    fingerprint_fields=("positions", "document_fee", "include_vat", "discount"),
)
def validate_document(
    positions: Sequence[Position | Mapping[str, Any]],
    document_fee: Decimal | int | str | None = None,
    include_vat: bool = True,
    discount: Discount | Mapping[str, Any] | None = None,
    *,
    config: EngineConfig | None = None,
) -> DocumentValidationResult:
    """
    Export gate for a whole document.

    Position errors are reported as ``"Position <n>: <message>"`` with a
    1-based position number. Position warnings are not repeated here;
    ``validate_positions`` reports them per field.
    """
    t0 = time.monotonic()
    cfg = resolve_config(config)
    rates = cfg.rates
    positions = list(positions)
    errors: list[str] = []
    warnings: list[str] = []

    if not positions:
        errors.append("Bitte fügen Sie mindestens eine Position hinzu")
    elif len(positions) > rates.max_positions:
        errors.append(
            f"Maximal {rates.max_positions} Positionen erlaubt ({len(positions)} vorhanden)"
        )

    for number, position in enumerate(positions, start=1):
        position_id = _text(_field_view(position).get("id"))
        with LogContext.bind(position_id=position_id or None):
            position_errors = validate_position(position, config=cfg).errors
        errors.extend(f"Position {number}: {issue.message}" for issue in position_errors)

    errors.extend(issue.message for issue in validate_discount(discount))

    totals = calculate_total(positions, document_fee, include_vat, discount, config=cfg)
    if totals.total_gross < rates.min_total_warning:
        warnings.append(f"Gesamtsumme ({format_euro(totals.total_gross)}) ist sehr niedrig")
    if not include_vat:
        warnings.append("Umsatzsteuer ist nicht aktiviert")

    result = DocumentValidationResult(errors=tuple(errors), warnings=tuple(warnings), totals=totals)

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("document_validated", extra={
        "position_count": len(positions),
        "is_valid": result.is_valid,
        "error_count": len(errors),
        "warning_count": len(warnings),
        "total_gross": str(totals.total_gross),
        "duration_ms": duration_ms,
    })
    return result


_SINGLE_FIELD_AMOUNTS: dict[str, BillingType] = {
    "object_value": BillingType.OBJECT_VALUE,
    "hourly_rate": BillingType.HOURLY,
    "hours": BillingType.HOURLY,
    "flat_rate": BillingType.FLAT_RATE,
}


def validate_field(
    field_name: str,
    value: Any,
    context: Position | Mapping[str, Any] | None = None,
    *,
    config: EngineConfig | None = None,
) -> ValidationIssue | None:
    """
    Check a single field while the user types.

    ``field_name`` may be camelCase or snake_case. ``context`` is the rest of
    the position (billing type, activity). Amount fields are only checked
    when the context's billing type uses them.

    Returns:
        The first issue for the field, or None.
    """
    attr = normalize_keys({field_name: None}).popitem()[0]
    view = _field_view(context) if context is not None else {}
    view[attr] = value
    billing_type = parse_billing_type(view.get("billing_type"))

    if attr == "activity":
        candidates = _check_activity(value)
    elif attr == "quantity":
        candidates = _check_quantity(value)
    elif attr in _SINGLE_FIELD_AMOUNTS:
        if billing_type != _SINGLE_FIELD_AMOUNTS[attr]:
            return None
        cfg = resolve_config(config)
        rule = _AMOUNT_RULES[attr]
        candidates = _check_amount(rule, value)
        candidates += [i for i in _check_completeness(view, billing_type) if i.field == rule.field]
        candidates += [i for i in _check_statutory(view, billing_type, cfg) if i.field == rule.field]
    else:
        return None

    return candidates[0] if candidates else None
