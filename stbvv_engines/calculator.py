"""
StBVV Fee Calculator.

Pure functions with deterministic behavior. No I/O.

Two engines live here:

* ``calculate_position`` -- the fee of one position by billing type
  (Wertgebühr from a fee table, Zeitgebühr, Pauschale) plus the optional
  expense flat fee (Auslagenpauschale, Nr. 7002 VV).
* ``calculate_total`` -- the document breakdown: quantity-weighted sum of
  positions, document fee, discount, VAT.

Neither function raises for user data. Missing or out-of-range values
degrade to zero-valued amounts; judging whether the input is acceptable
is the job of ``stbvv_engines.validation``.

Results keep full Decimal precision. Use ``rounded()`` for display.

Usage:
    from stbvv_engines.calculator import calculate_position, calculate_total
    from stbvv_engines.positions import HourlyPosition

    pos = HourlyPosition(id="p1", activity="Beratung", hourly_rate=100, hours=2)
    calculate_position(pos).total_net          # Decimal("200")
    calculate_total([pos], document_fee=12, include_vat=True).total_gross
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation, Overflow, getcontext, localcontext
from typing import Any

from stbvv_engines.engine_config import EngineConfig, resolve_config
from stbvv_engines.positions import (
    Discount,
    DiscountType,
    FlatRatePosition,
    HourlyPosition,
    ObjectValuePosition,
    Position,
    parse_discount_type,
    position_from_dict,
)
from stbvv_engines.tracer import traced_engine
from stbvv_kernel.domain.values import HUNDRED, ZERO, non_negative, round_cents, to_decimal
from stbvv_kernel.logging_config import LogContext, get_logger

logger = get_logger("engines.calculator")


# ============================================================================
# Result Objects
# ============================================================================


@dataclass(frozen=True)
class CalculationResult:
    """Fee breakdown of one position (quantity not applied)."""

    base_fee: Decimal
    adjusted_fee: Decimal
    expense_fee: Decimal
    total_net: Decimal

    @classmethod
    def zero(cls) -> CalculationResult:
        return cls(base_fee=ZERO, adjusted_fee=ZERO, expense_fee=ZERO, total_net=ZERO)

    @property
    def is_zero(self) -> bool:
        return all(getattr(self, f.name) == ZERO for f in fields(self))

    def rounded(self) -> CalculationResult:
        """Copy with every amount rounded to cents (ROUND_HALF_UP)."""
        return CalculationResult(**{f.name: round_cents(getattr(self, f.name)) for f in fields(self)})


@dataclass(frozen=True)
class TotalsResult:
    """Document breakdown, from positions total down to gross total."""

    positions_total: Decimal
    document_fee: Decimal
    discount_amount: Decimal
    subtotal_net: Decimal
    vat_amount: Decimal
    total_gross: Decimal

    @property
    def subtotal_before_discount(self) -> Decimal:
        return self.positions_total + self.document_fee

    def rounded(self) -> TotalsResult:
        """
        Copy with every amount rounded to cents (ROUND_HALF_UP).

        Each field is rounded independently, so the rounded fields need not
        add up to the rounded gross total to the cent.
        """
        return TotalsResult(**{f.name: round_cents(getattr(self, f.name)) for f in fields(self)})


# ============================================================================
# Helpers
# ============================================================================


def _lenient_arithmetic():
    """
    Decimal context where overflow yields Infinity instead of raising.

    Finite inputs near the exponent limit (``"1e600000"``) would otherwise
    trap on multiplication. Results pass through ``_finite``.
    """
    ctx = getcontext().copy()
    ctx.traps[Overflow] = False
    ctx.traps[InvalidOperation] = False
    return localcontext(ctx)


def _finite(value: Decimal) -> Decimal:
    return value if value.is_finite() else ZERO


def _as_position(position: Position | Mapping[str, Any]) -> Position | None:
    if not isinstance(position, Mapping):
        return position
    try:
        return position_from_dict(position)
    except ValueError:
        logger.warning("position_billing_type_unknown", extra={
            "position_id": str(position.get("id", "")),
            "billing_type": str(position.get("billingType", position.get("billing_type"))),
        })
        return None


def _as_discount(discount: Discount | Mapping[str, Any] | None) -> Discount | None:
    if discount is None or isinstance(discount, Discount):
        return discount
    kind = parse_discount_type(discount.get("type"))
    if kind is None:
        logger.warning("discount_type_unknown", extra={"discount_type": str(discount.get("type"))})
        return None
    return Discount(type=kind, value=discount.get("value", 0))


def _object_value_fee(position: ObjectValuePosition, config: EngineConfig) -> tuple[Decimal, Decimal]:
    """(base_fee, adjusted_fee) for fee-table billing."""
    if position.object_value <= ZERO:
        return ZERO, ZERO
    if position.fee_table not in config.fee_tables:
        logger.warning("fee_table_unknown", extra={
            "position_id": position.id,
            "fee_table": str(position.fee_table),
        })
        return ZERO, ZERO
    base_fee = config.fee_tables.lookup(position.fee_table, position.object_value)
    return base_fee, _finite(base_fee * position.tenth_rate.factor)


def _expense_fee(adjusted_fee: Decimal, config: EngineConfig) -> Decimal:
    """Expense flat fee: a share of the fee, capped at the configured maximum."""
    rates = config.rates
    return min(adjusted_fee * rates.expense_fee_rate, rates.expense_fee_max)


def _discount_amount(discount: Discount | None, subtotal: Decimal) -> Decimal:
    if discount is None or discount.value <= ZERO:
        return ZERO
    if discount.type == DiscountType.PERCENTAGE:
        return _finite(subtotal * discount.value / HUNDRED)
    # Fixed discounts are not clamped to the subtotal.
    return discount.value


# ============================================================================
# Engines
# ============================================================================


@traced_engine("position_calculator", "1.0", fingerprint_fields=("position",))
def calculate_position(
    position: Position | Mapping[str, Any],
    *,
    config: EngineConfig | None = None,
) -> CalculationResult:
    """
    Calculate the fee of a single position.

    Pure function - no side effects, no I/O, deterministic output.

    Args:
        position: A typed position, or a persisted camelCase mapping.
        config: Engine configuration; the active StBVV set when omitted.

    Returns:
        CalculationResult. Quantity is not applied. An amount that overflows
        the Decimal range is zero.
    """
    cfg = resolve_config(config)
    pos = _as_position(position)
    if pos is None:
        return CalculationResult.zero()

    with _lenient_arithmetic():
        if isinstance(pos, HourlyPosition):
            base_fee = _finite(non_negative(pos.hourly_rate) * non_negative(pos.hours))
            adjusted_fee = base_fee
        elif isinstance(pos, FlatRatePosition):
            base_fee = adjusted_fee = non_negative(pos.flat_rate)
        else:
            base_fee, adjusted_fee = _object_value_fee(pos, cfg)

        expense_fee = _expense_fee(adjusted_fee, cfg) if pos.apply_expense_fee else ZERO
        result = CalculationResult(
            base_fee=base_fee,
            adjusted_fee=adjusted_fee,
            expense_fee=expense_fee,
            total_net=_finite(adjusted_fee + expense_fee),
        )

    logger.debug("position_calculated", extra={
        "position_id": pos.id,
        "billing_type": pos.billing_type.value,
        "base_fee": str(result.base_fee),
        "adjusted_fee": str(result.adjusted_fee),
        "expense_fee": str(result.expense_fee),
        "total_net": str(result.total_net),
    })
    return result


@traced_engine(
    "totals_aggregator",
    "1.0",
    fingerprint_fields=("positions", "document_fee", "include_vat", "discount"),
)
def calculate_total(
    positions: Iterable[Position | Mapping[str, Any]],
    document_fee: Decimal | int | str | None = None,
    include_vat: bool = True,
    discount: Discount | Mapping[str, Any] | None = None,
    *,
    config: EngineConfig | None = None,
) -> TotalsResult:
    """
    Calculate the totals of a document.

    Pure function - no side effects, no I/O, deterministic output.

    Order of operations:
        positions_total = sum(total_net x quantity)
        subtotal_before_discount = positions_total + document_fee
        subtotal_net = subtotal_before_discount - discount
        total_gross = subtotal_net + VAT (when include_vat)

    Args:
        positions: Positions in document order (typed or mappings).
        document_fee: Flat per-document charge; the configured default
            document fee when None.
        include_vat: Whether VAT is charged.
        discount: Optional document-level discount.
        config: Engine configuration; the active StBVV set when omitted.

    Returns:
        TotalsResult with unrounded Decimal amounts.
    """
    t0 = time.monotonic()
    cfg = resolve_config(config)
    disc = _as_discount(discount)

    positions_total = ZERO
    count = 0
    with _lenient_arithmetic():
        for position in positions:
            count += 1
            pos = _as_position(position)
            if pos is None:
                continue
            with LogContext.bind(position_id=pos.id or None):
                line = calculate_position(pos, config=cfg)
            positions_total = _finite(positions_total + line.total_net * pos.effective_quantity)

        fee = cfg.rates.default_document_fee if document_fee is None else to_decimal(document_fee)
        subtotal_before_discount = _finite(positions_total + fee)
        discount_amount = _discount_amount(disc, subtotal_before_discount)
        subtotal_net = _finite(subtotal_before_discount - discount_amount)
        vat_amount = _finite(subtotal_net * cfg.rates.vat_rate) if include_vat else ZERO

        result = TotalsResult(
            positions_total=positions_total,
            document_fee=fee,
            discount_amount=discount_amount,
            subtotal_net=subtotal_net,
            vat_amount=vat_amount,
            total_gross=_finite(subtotal_net + vat_amount),
        )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("totals_calculated", extra={
        "position_count": count,
        "positions_total": str(result.positions_total),
        "document_fee": str(result.document_fee),
        "discount_amount": str(result.discount_amount),
        "include_vat": include_vat,
        "total_gross": str(result.total_gross),
        "duration_ms": duration_ms,
    })
    if subtotal_net < ZERO:
        logger.warning("totals_negative_subtotal", extra={
            "subtotal_net": str(subtotal_net),
            "discount_type": disc.type.value if disc else None,
        })
    return result
