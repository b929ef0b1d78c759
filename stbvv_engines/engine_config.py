"""
Runtime inputs shared by the calculation and validation engines.

``EngineConfig`` bundles the fee-table repository, the minimum-value
registry and the rate settings of one StBVV version. It is produced by
``stbvv_config.get_active_config()``; engines accept it as an explicit
argument and fall back to the active configuration when none is passed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stbvv_engines.fee_tables import FeeTableRepository
    from stbvv_engines.minimum_values import MinimumValueRegistry

_QUARTER_HOURS_PER_HOUR = Decimal("4")


@dataclass(frozen=True)
class FeeRates:
    """
    Rates and thresholds applied by the engines.

    Rates are fractions (0.19 for 19 %), amounts are EUR.
    """

    vat_rate: Decimal = Decimal("0.19")
    expense_fee_rate: Decimal = Decimal("0.20")
    expense_fee_max: Decimal = Decimal("20.00")
    default_document_fee: Decimal = Decimal("12.00")
    min_total_warning: Decimal = Decimal("50.00")
    max_positions: int = 100
    # § 13 StBVV time fee, per started quarter hour
    min_per_quarter_hour: Decimal = Decimal("16.50")
    max_per_quarter_hour: Decimal = Decimal("41.00")
    default_hourly_rate: Decimal = Decimal("115.00")

    def __post_init__(self) -> None:
        for attr in ("vat_rate", "expense_fee_rate"):
            val = getattr(self, attr)
            if not (Decimal("0") <= val <= Decimal("1")):
                raise ValueError(f"{attr} must be between 0 and 1")
        for attr in ("expense_fee_max", "default_document_fee", "min_total_warning"):
            if getattr(self, attr) < 0:
                raise ValueError(f"{attr} must be non-negative")
        if self.max_positions < 1:
            raise ValueError("max_positions must be at least 1")
        if self.min_per_quarter_hour > self.max_per_quarter_hour:
            raise ValueError("min_per_quarter_hour exceeds max_per_quarter_hour")

    @property
    def min_hourly_rate(self) -> Decimal:
        return self.min_per_quarter_hour * _QUARTER_HOURS_PER_HOUR

    @property
    def max_hourly_rate(self) -> Decimal:
        return self.max_per_quarter_hour * _QUARTER_HOURS_PER_HOUR


@dataclass(frozen=True)
class EngineConfig:
    """Everything the engines read from configuration, for one StBVV version."""

    fee_tables: FeeTableRepository
    minimum_values: MinimumValueRegistry
    rates: FeeRates = field(default_factory=FeeRates)
    version: str = ""
    checksum: str = ""


def resolve_config(config: EngineConfig | None) -> EngineConfig:
    """Return ``config`` or, when None, the active StBVV configuration."""
    if config is not None:
        return config
    from stbvv_config import get_active_config

    return get_active_config()
