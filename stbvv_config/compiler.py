"""
stbvv_config.compiler -- turns a validated configuration set into runtime objects.

Responsibility:
    Builds the ``EngineConfig`` the engines consume: a ``FeeTableRepository``
    of validated tables, a ``MinimumValueRegistry`` with one entry per
    activity, and the ``FeeRates``.

Architecture position:
    Configuration -- the only place where config-layer schema types are
    translated into engine types. Engines never see YAML or schema objects.

Invariants enforced:
    - The compiled ``EngineConfig.checksum`` equals the source set checksum.
    - Compilation is deterministic: the same set always yields equal tables.

Failure modes:
    - ``MalformedFeeTableError`` if called on a set whose bands were never
      validated.
"""

from __future__ import annotations

from stbvv_config.schema import StbvvConfigurationSet
from stbvv_engines.engine_config import EngineConfig, FeeRates
from stbvv_engines.fee_tables import FeeTable, FeeTableRepository
from stbvv_engines.minimum_values import MinimumValueEntry, MinimumValueRegistry


def compile_engine_config(config_set: StbvvConfigurationSet) -> EngineConfig:
    """Compile a validated configuration set into an ``EngineConfig``."""
    repository = FeeTableRepository(
        FeeTable(t.table_id, t.bands, name=t.name) for t in config_set.fee_tables
    )
    registry = MinimumValueRegistry(
        MinimumValueEntry(
            activity=activity,
            min_value=group.min_value,
            paragraph=group.paragraph,
            description=group.description,
        )
        for group in config_set.minimum_values
        for activity in group.activities
    )
    r = config_set.rates
    rates = FeeRates(
        vat_rate=r.vat_rate,
        expense_fee_rate=r.expense_fee_rate,
        expense_fee_max=r.expense_fee_max,
        default_document_fee=r.default_document_fee,
        min_total_warning=r.min_total_warning,
        max_positions=r.max_positions,
        min_per_quarter_hour=r.min_per_quarter_hour,
        max_per_quarter_hour=r.max_per_quarter_hour,
        default_hourly_rate=r.default_hourly_rate,
    )
    return EngineConfig(
        fee_tables=repository,
        minimum_values=registry,
        rates=rates,
        version=config_set.version.version,
        checksum=config_set.checksum,
    )
