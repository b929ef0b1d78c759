"""
Configuration Validator (``stbvv_config.validator``).

Responsibility
--------------
Validates an ``StbvvConfigurationSet`` before it is compiled into an
``EngineConfig``, so corrupted statutory data never reaches a calculation.

Architecture position
---------------------
**Config layer** -- load-time validation. Called by
``stbvv_config.get_active_config()`` after assembly and before
compilation.

Invariants enforced
-------------------
* Table coverage -- tables A, B, C and D are all present, once each.
* Band structure -- every table passes ``FeeTable`` construction
  (contiguous, non-decreasing, starting at zero).
* Minimum values -- non-negative; no activity listed under two paragraphs.
* Rates -- VAT and expense-fee rates between 0 and 1, amounts non-negative,
  the § 13 time-fee range ordered.

Failure modes
-------------
* Validation errors (``ConfigValidationResult.errors``)  -> configuration
  MUST NOT be compiled.
* Validation warnings (``ConfigValidationResult.warnings``)  ->
  configuration may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from stbvv_config.schema import StbvvConfigurationSet
from stbvv_engines.fee_tables import FeeTable, FeeTableId
from stbvv_kernel.exceptions import MalformedFeeTableError


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings do not block compilation but should be reviewed.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: StbvvConfigurationSet) -> ConfigValidationResult:
    """
    Validate a configuration set.

    A configuration with errors MUST NOT be compiled.
    """
    result = ConfigValidationResult()

    _validate_table_coverage(config, result)
    _validate_table_bands(config, result)
    _validate_minimum_values(config, result)
    _validate_rates(config, result)

    return result


def _validate_table_coverage(
    config: StbvvConfigurationSet, result: ConfigValidationResult
) -> None:
    """Check that each statutory table appears exactly once."""
    seen: dict[str, int] = {}
    for table in config.fee_tables:
        seen[table.table_id] = seen.get(table.table_id, 0) + 1
    for table_id, count in seen.items():
        if count > 1:
            result.add_error(f"Duplicate fee table: {table_id} appears {count} times")
        if table_id not in {t.value for t in FeeTableId}:
            result.add_warning(f"Fee table {table_id} is not a statutory table (A-D)")
    for table_id in FeeTableId:
        if table_id.value not in seen:
            result.add_error(f"Missing fee table: {table_id.value}")


def _validate_table_bands(
    config: StbvvConfigurationSet, result: ConfigValidationResult
) -> None:
    """Build every table once; FeeTable enforces the band invariants."""
    for table in config.fee_tables:
        try:
            FeeTable(table.table_id, table.bands, name=table.name)
        except MalformedFeeTableError as exc:
            result.add_error(str(exc))


def _validate_minimum_values(
    config: StbvvConfigurationSet, result: ConfigValidationResult
) -> None:
    """Check minimum values are non-negative and activities unique."""
    owner: dict[str, str] = {}
    for group in config.minimum_values:
        if group.min_value < 0:
            result.add_error(f"Minimum value for '{group.paragraph}' is negative")
        if not group.activities:
            result.add_warning(f"Minimum value group '{group.paragraph}' lists no activities")
        for activity in group.activities:
            key = activity.strip()
            if key in owner:
                result.add_error(
                    f"Activity '{key}' listed under both '{owner[key]}' and '{group.paragraph}'"
                )
            owner[key] = group.paragraph


def _validate_rates(
    config: StbvvConfigurationSet, result: ConfigValidationResult
) -> None:
    """Check rate ranges and the ordering of the time-fee bounds."""
    rates = config.rates
    for name in ("vat_rate", "expense_fee_rate"):
        value = getattr(rates, name)
        if not (Decimal("0") <= value <= Decimal("1")):
            result.add_error(f"Rate {name}={value} must be between 0 and 1")
    for name in ("expense_fee_max", "default_document_fee", "min_total_warning"):
        if getattr(rates, name) < 0:
            result.add_error(f"Amount {name} must be non-negative")
    if rates.max_positions < 1:
        result.add_error("max_positions must be at least 1")
    if rates.min_per_quarter_hour > rates.max_per_quarter_hour:
        result.add_error("time_fee.min_per_quarter_hour exceeds time_fee.max_per_quarter_hour")
    else:
        low = rates.min_per_quarter_hour * 4
        high = rates.max_per_quarter_hour * 4
        if not (low <= rates.default_hourly_rate <= high):
            result.add_warning(
                f"Default hourly rate {rates.default_hourly_rate} is outside "
                f"the statutory range {low}-{high}"
            )
