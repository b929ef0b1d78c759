"""
Configuration Loader (``stbvv_config.loader``).

Responsibility
--------------
Loads individual YAML fragment files and parses them into typed
``stbvv_config.schema`` dataclass instances. The single public entry point
for runtime config is ``stbvv_config.get_active_config()``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling. The loader is consumed by
``stbvv_config.assembler`` during configuration set assembly. It has no
dependency on the engines.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Amounts are parsed to ``Decimal`` from their string form; YAML floats
  never reach arithmetic.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Invalid date or amount  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from stbvv_config.schema import FeeTableDef, MinimumValueDef, RateSettings, StbvvVersion
from stbvv_kernel.domain.values import to_decimal


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """
    Parse a date from YAML (string or date object).

    Raises:
        ValueError: if ``value`` is not a valid date representation.
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_amount(value: Any, name: str) -> Decimal:
    """Parse a required Decimal amount. Raises ValueError."""
    amount = to_decimal(value, default=None)
    if amount is None:
        raise ValueError(f"{name}: expected a number, got {value!r}")
    return amount


def parse_version(data: dict[str, Any]) -> StbvvVersion:
    """Parse ``root.yaml`` into a StbvvVersion."""
    return StbvvVersion(
        version=str(data["version"]),
        effective_from=parse_date(data["effective_from"]),
        published=parse_date(data["published"]) if data.get("published") else None,
        source_document=data.get("source_document", ""),
        federal_gazette_ref=data.get("federal_gazette_ref", ""),
        changes=tuple(str(c) for c in data.get("changes", [])),
    )


def _parse_band(table_id: str, index: int, raw: Any) -> tuple[Decimal, Decimal | None, Decimal]:
    if isinstance(raw, Mapping):
        values = (raw["min_value"], raw.get("max_value"), raw["fee"])
    elif isinstance(raw, (list, tuple)) and len(raw) == 3:
        values = tuple(raw)
    else:
        raise ValueError(f"fee table {table_id} band {index}: expected [min, max, fee], got {raw!r}")
    where = f"fee table {table_id} band {index}"
    return (
        parse_amount(values[0], f"{where} min_value"),
        None if values[1] is None else parse_amount(values[1], f"{where} max_value"),
        parse_amount(values[2], f"{where} fee"),
    )


def parse_fee_table(data: dict[str, Any]) -> FeeTableDef:
    """
    Parse a ``FeeTableDef`` from a dict.

    Raises:
        KeyError: if ``id`` or ``bands`` is missing.
        ValueError: if a band is not a three-item list of numbers.
    """
    table_id = str(data["id"]).strip().upper()
    return FeeTableDef(
        table_id=table_id,
        name=data.get("name", ""),
        bands=tuple(_parse_band(table_id, i, band) for i, band in enumerate(data["bands"])),
    )


def parse_minimum_value(data: dict[str, Any]) -> MinimumValueDef:
    """Parse a ``MinimumValueDef`` (one paragraph, many activities)."""
    return MinimumValueDef(
        paragraph=data.get("paragraph", ""),
        description=data.get("description", ""),
        min_value=parse_amount(data["min_value"], f"minimum value {data.get('paragraph', '')}"),
        activities=tuple(str(a) for a in data.get("activities", [])),
    )


def parse_rates(data: dict[str, Any]) -> RateSettings:
    """Parse ``rates.yaml`` into RateSettings."""
    expense = data["expense_fee"]
    validation = data["validation"]
    time_fee = data["time_fee"]
    return RateSettings(
        vat_rate=parse_amount(data["vat_rate"], "vat_rate"),
        expense_fee_rate=parse_amount(expense["rate"], "expense_fee.rate"),
        expense_fee_max=parse_amount(expense["max"], "expense_fee.max"),
        default_document_fee=parse_amount(data["default_document_fee"], "default_document_fee"),
        min_total_warning=parse_amount(validation["min_total_warning"], "validation.min_total_warning"),
        max_positions=int(validation["max_positions"]),
        min_per_quarter_hour=parse_amount(time_fee["min_per_quarter_hour"], "time_fee.min_per_quarter_hour"),
        max_per_quarter_hour=parse_amount(time_fee["max_per_quarter_hour"], "time_fee.max_per_quarter_hour"),
        default_hourly_rate=parse_amount(time_fee["default_hourly"], "time_fee.default_hourly"),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
