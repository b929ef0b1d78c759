"""
Module: stbvv_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the fee
    calculation and validation engines. This is the canonical import
    surface for collaborators (forms, export, archiving).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May import stbvv_kernel and sibling engine modules. Reaches
    stbvv_config only through ``resolve_config`` when no explicit
    ``EngineConfig`` is passed.

Invariants enforced:
    - Decimal-only arithmetic: all amounts use ``Decimal``; floats are
      converted through ``str`` at the boundary.
    - Determinism: identical inputs always produce identical outputs.
    - Calculation and validation never raise for user data.

Failure modes:
    - Typed ``StbvvError`` subclasses for malformed fee tables, unknown
      table ids and invalid configuration.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``stbvv_engines.tracer``), emitting STBVV_ENGINE_TRACE log records with
    engine name, version, input fingerprint and duration.

Usage:
    from stbvv_engines import HourlyPosition, calculate_total, validate_document

    positions = [HourlyPosition(id="p1", activity="Beratung", hourly_rate=120, hours=2)]
    totals = calculate_total(positions, document_fee=12, include_vat=True)
    gate = validate_document(positions, 12, True)
"""

from stbvv_kernel.logging_config import get_logger

logger = get_logger("engines")

from stbvv_engines.calculator import (
    CalculationResult,
    TotalsResult,
    calculate_position,
    calculate_total,
)
from stbvv_engines.engine_config import EngineConfig, FeeRates, resolve_config
from stbvv_engines.fee_tables import (
    FeeTable,
    FeeTableEntry,
    FeeTableId,
    FeeTableRepository,
    lookup,
)
from stbvv_engines.minimum_values import (
    MinimumValueEntry,
    MinimumValueRegistry,
    min_for,
)
from stbvv_engines.positions import (
    BillingType,
    Discount,
    DiscountType,
    FlatRatePosition,
    HourlyPosition,
    ObjectValuePosition,
    Position,
    TenthRate,
    discount_from_dict,
    position_from_dict,
    position_to_dict,
)
from stbvv_engines.tracer import traced_engine
from stbvv_engines.validation import (
    DocumentValidationResult,
    Severity,
    ValidationIssue,
    ValidationResult,
    ValidationSummary,
    is_position_complete,
    validate_discount,
    validate_document,
    validate_field,
    validate_position,
    validate_positions,
)

__all__ = [
    # calculator
    "CalculationResult",
    "TotalsResult",
    "calculate_position",
    "calculate_total",
    # config inputs
    "EngineConfig",
    "FeeRates",
    "resolve_config",
    # fee tables
    "FeeTable",
    "FeeTableEntry",
    "FeeTableId",
    "FeeTableRepository",
    "lookup",
    # minimum values
    "MinimumValueEntry",
    "MinimumValueRegistry",
    "min_for",
    # positions
    "BillingType",
    "Discount",
    "DiscountType",
    "FlatRatePosition",
    "HourlyPosition",
    "ObjectValuePosition",
    "Position",
    "TenthRate",
    "discount_from_dict",
    "position_from_dict",
    "position_to_dict",
    # tracer
    "traced_engine",
    # validation
    "DocumentValidationResult",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "ValidationSummary",
    "is_position_complete",
    "validate_discount",
    "validate_document",
    "validate_field",
    "validate_position",
    "validate_positions",
]
