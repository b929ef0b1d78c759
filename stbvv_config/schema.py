"""
StbvvConfigurationSet schema.

Defines the human-authored, reviewable source artifact for one version of
the fee ordinance. YAML fragments are parsed into these types by the loader,
composed by the assembler, and compiled into an ``EngineConfig`` by the
compiler.

Key distinction:
  StbvvConfigurationSet = source artifact (human-authored, versioned)
  EngineConfig          = runtime artifact (validated tables and registry)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

# ---------------------------------------------------------------------------
# Version metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StbvvVersion:
    """Which amendment of the ordinance a set implements, and from when."""

    version: str
    effective_from: date
    published: date | None = None
    source_document: str = ""
    federal_gazette_ref: str = ""
    changes: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Statutory data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeeTableDef:
    """One fee table as authored: bands of (min_value, max_value, fee)."""

    table_id: str
    name: str
    bands: tuple[tuple[Decimal, Decimal | None, Decimal], ...]


@dataclass(frozen=True)
class MinimumValueDef:
    """A group of activities sharing one statutory minimum object value."""

    paragraph: str
    description: str
    min_value: Decimal
    activities: tuple[str, ...]


@dataclass(frozen=True)
class RateSettings:
    """Rates and thresholds from ``rates.yaml``."""

    vat_rate: Decimal
    expense_fee_rate: Decimal
    expense_fee_max: Decimal
    default_document_fee: Decimal
    min_total_warning: Decimal
    max_positions: int
    min_per_quarter_hour: Decimal
    max_per_quarter_hour: Decimal
    default_hourly_rate: Decimal


# ---------------------------------------------------------------------------
# Root: the complete configuration set
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StbvvConfigurationSet:
    """All statutory data of one ordinance version."""

    set_name: str
    version: StbvvVersion
    fee_tables: tuple[FeeTableDef, ...]
    minimum_values: tuple[MinimumValueDef, ...]
    rates: RateSettings
    checksum: str = ""

    @property
    def effective_from(self) -> date:
        return self.version.effective_from
